from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

import httpx

from .config import COMMITMENT_LEVELS, normalize_commitment
from .errors import RpcError, program_error_code
from .project_constants import DEFAULT_POLL_INTERVAL_MS
from .rpc import RpcClient

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Confirmed:
    signature: str
    slot: int
    confirmation_status: str


@dataclass(frozen=True)
class FailedOnChain:
    signature: str
    err: Any
    code: int | None


@dataclass(frozen=True)
class TimedOut:
    """Nothing landed before the deadline. The transaction may still land."""

    signature: str
    elapsed_ms: int


PollOutcome = Union[Confirmed, FailedOnChain, TimedOut]


def _reaches(status: Optional[str], commitment: str) -> bool:
    if status not in COMMITMENT_LEVELS:
        return False
    return COMMITMENT_LEVELS.index(status) >= COMMITMENT_LEVELS.index(commitment)


def _evaluate_status(
    signature: str, status: Optional[Dict[str, Any]], commitment: str
) -> Optional[PollOutcome]:
    if not isinstance(status, dict):
        return None
    if status.get("err") is not None:
        err = status["err"]
        return FailedOnChain(signature=signature, err=err, code=program_error_code(err))
    confirmation_status = status.get("confirmationStatus")
    if _reaches(confirmation_status, commitment):
        slot = status.get("slot")
        return Confirmed(
            signature=signature,
            slot=slot if isinstance(slot, int) else 0,
            confirmation_status=confirmation_status,
        )
    return None


def await_confirmation(
    rpc: RpcClient,
    signature: str,
    timeout_ms: int,
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    commitment: str | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> PollOutcome:
    """
    Polls getSignatureStatuses until the signature is confirmed at
    ``commitment``, fails on-chain, or ``timeout_ms`` of wall-clock time has
    passed. Sleeps are clipped to the remaining time and each status request
    gets an httpx timeout of the remaining time or one poll interval, whichever
    is larger. With a responsive node this returns within timeout_ms plus one
    poll interval; httpx enforces that timeout per phase (connect, write, read,
    pool), so a node that stalls in several phases can stretch the last check.
    Malformed or failed status replies count as "not landed yet".
    """
    if timeout_ms <= 0 or poll_interval_ms <= 0:
        raise ValueError("timeout_ms and poll_interval_ms must be positive.")
    commitment = normalize_commitment(commitment or rpc.commitment)
    timeout_s = timeout_ms / 1000.0
    interval_s = poll_interval_ms / 1000.0
    started = clock()
    ticks = 0

    while True:
        remaining = timeout_s - (clock() - started)
        ticks += 1
        status = None
        try:
            # httpx applies this to each phase (connect, read, ...), not the whole request
            statuses = rpc.get_signature_statuses(
                [signature], timeout_s=max(remaining, interval_s)
            )
            status = statuses[0] if statuses else None
        except (httpx.HTTPError, RpcError) as e:
            log.warning("Status check %d for %s failed: %s", ticks, signature, e)
        except (KeyError, TypeError, IndexError, AttributeError, ValueError) as e:
            log.warning("Status check %d for %s returned a malformed reply: %r", ticks, signature, e)

        outcome = _evaluate_status(signature, status, commitment)
        if outcome is not None:
            log.info("Signature %s: %s after %d checks", signature, type(outcome).__name__, ticks)
            return outcome
        log.debug("Signature %s not %s yet (check %d)", signature, commitment, ticks)

        elapsed = clock() - started
        if elapsed >= timeout_s:
            log.info("Signature %s unconfirmed after %.1fs", signature, elapsed)
            return TimedOut(signature=signature, elapsed_ms=int(elapsed * 1000))
        sleep(min(interval_s, timeout_s - elapsed))

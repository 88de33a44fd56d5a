from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple, Union


from .candy_machine import ProgramState, fetch_program_state
from .classify import ClassifiedError, ErrorCategory, classify, not_yet_live, sold_out
from .config import Settings
from .confirm import Confirmed, FailedOnChain, await_confirmation
from .errors import LedgerStateError, MintInProgressError, SubmissionError
from .gate import GateDecision, evaluate
from .project_constants import LAMPORTS_PER_SOL
from .rpc import RpcClient
from .signer import Signer
from .submit import submit

log = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Congratulations! Mint succeeded!"


class AttemptStatus(enum.Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class MintAttempt:
    attempt_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: AttemptStatus = AttemptStatus.PENDING
    transaction_id: Optional[str] = None
    outcome: Optional[ClassifiedError] = None

    @property
    def in_flight(self) -> bool:
        return self.status in (AttemptStatus.PENDING, AttemptStatus.SUBMITTED)


@dataclass(frozen=True)
class MintSuccess:
    transaction_id: str
    message: str = SUCCESS_MESSAGE


MintOutcome = Union[MintSuccess, ClassifiedError]


@dataclass(frozen=True)
class MintContext:
    """Per-call inputs from the view layer: the connected wallet and, optionally,
    the state snapshot and instant the gate should be evaluated against."""

    signer: Signer
    state: Optional[ProgramState] = None
    now: Optional[datetime] = None


class Minter:
    """
    Runs one mint attempt at a time: gate -> submit -> confirm -> classify,
    then refreshes the wallet balance exactly once per admitted attempt.
    """

    def __init__(
        self,
        settings: Settings,
        rpc: RpcClient,
        on_balance: Callable[[Optional[float]], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.settings = settings
        self.rpc = rpc
        self.on_balance = on_balance
        self._clock = clock
        self._sleep = sleep
        self._now = now
        self._lock = threading.Lock()
        self._attempt: Optional[MintAttempt] = None
        self._state: Optional[ProgramState] = None

    @property
    def state(self) -> Optional[ProgramState]:
        return self._state

    @property
    def current_attempt(self) -> Optional[MintAttempt]:
        with self._lock:
            return self._attempt

    def load_state(self) -> Tuple[ProgramState, GateDecision]:
        self._state = fetch_program_state(
            self.rpc,
            self.settings.candy_machine_id,
            commitment=self.settings.connection.commitment,
        )
        decision = evaluate(self._now(), self._state)
        log.info("Gate decision: %s", decision.value)
        return self._state, decision

    def evaluate(self, now: datetime | None = None) -> GateDecision:
        """Re-evaluates the gate, e.g. when the countdown reports the target reached."""
        if self._state is None:
            raise RuntimeError("Candy machine state not loaded; call load_state() first.")
        return evaluate(now or self._now(), self._state)

    def attempt_mint(self, context: MintContext) -> MintOutcome:
        """
        Raises MintInProgressError, without side effects, while another attempt
        is pending. Every other call returns a MintSuccess or ClassifiedError.
        """
        self._begin()
        try:
            outcome = self._run(context)
        except Exception as e:
            log.exception("Mint attempt failed unexpectedly")
            outcome = classify(e)
            self._advance(status=AttemptStatus.FAILED, outcome=outcome)
        finally:
            try:
                self._refresh_balance(context.signer)
            finally:
                with self._lock:
                    self._attempt = None
        return outcome

    def _begin(self) -> MintAttempt:
        with self._lock:
            if self._attempt is not None and self._attempt.in_flight:
                raise MintInProgressError(
                    f"Mint attempt {self._attempt.attempt_id} is still {self._attempt.status.value}."
                )
            self._attempt = MintAttempt()
            log.debug("Started mint attempt %s", self._attempt.attempt_id)
            return self._attempt

    def _advance(self, **changes) -> None:
        with self._lock:
            if self._attempt is not None:
                self._attempt = replace(self._attempt, **changes)

    def _fail(self, error: ClassifiedError, status: AttemptStatus = AttemptStatus.FAILED) -> ClassifiedError:
        self._advance(status=status, outcome=error)
        log.info("Mint attempt ended: %s (%s)", error.category.value, error.message)
        return error

    def _run(self, context: MintContext) -> MintOutcome:
        state = context.state or self._state
        if state is None:
            try:
                state, _ = self.load_state()
            except LedgerStateError as e:
                return self._fail(classify(e))

        decision = evaluate(context.now or self._now(), state)
        if decision is GateDecision.SOLD_OUT:
            return self._fail(sold_out())
        if decision is GateDecision.NOT_STARTED:
            return self._fail(not_yet_live())

        settings = self.settings
        try:
            signature = submit(
                self.rpc,
                state,
                context.signer,
                settings.treasury_address,
                config_address=settings.config_address,
            )
        except SubmissionError as e:
            return self._fail(classify(e))
        self._advance(status=AttemptStatus.SUBMITTED, transaction_id=signature)

        result = await_confirmation(
            self.rpc,
            signature,
            timeout_ms=settings.tx_timeout_ms,
            poll_interval_ms=settings.poll_interval_ms,
            commitment=settings.connection.commitment,
            clock=self._clock,
            sleep=self._sleep,
        )
        if isinstance(result, Confirmed):
            self._advance(status=AttemptStatus.CONFIRMED)
            log.info("Mint confirmed: %s (slot %d)", signature, result.slot)
            return MintSuccess(transaction_id=signature)

        error = classify(result)
        if isinstance(result, FailedOnChain):
            if error.category is ErrorCategory.SOLD_OUT:
                self._state = replace(state, items_redeemed=state.items_available)
            return self._fail(error)
        return self._fail(error, status=AttemptStatus.TIMED_OUT)

    def _refresh_balance(self, signer: Signer) -> None:
        balance: Optional[float] = None
        try:
            lamports = self.rpc.get_balance(str(signer.public_key))
            balance = lamports / LAMPORTS_PER_SOL
        except Exception as e:
            log.warning("Balance refresh failed: %r", e)
        if self.on_balance is None:
            return
        try:
            self.on_balance(balance)
        except Exception:
            log.warning("Balance callback raised", exc_info=True)

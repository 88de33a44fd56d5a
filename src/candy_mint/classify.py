from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Tuple

import httpx

from .confirm import FailedOnChain, TimedOut
from .errors import (
    LedgerStateError,
    RpcError,
    SigningRejectedError,
    SubmissionError,
)
from .project_constants import (
    ERR_CANDY_MACHINE_EMPTY,
    ERR_NOT_ENOUGH_SOL,
    ERR_NOT_ENOUGH_TOKENS,
    ERR_NOT_LIVE_YET,
    INSUFFICIENT_FUNDS_TX_ERRORS,
)


class ErrorCategory(enum.Enum):
    SOLD_OUT = "sold_out"
    NOT_YET_LIVE = "not_yet_live"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NETWORK_TIMEOUT = "network_timeout"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ClassifiedError:
    category: ErrorCategory
    message: str
    retriable: bool
    code: int | None = None


SOLD_OUT_MESSAGE = "SOLD OUT!"
NOT_YET_LIVE_MESSAGE = "Minting period hasn't started yet."
INSUFFICIENT_FUNDS_MESSAGE = "Insufficient funds to mint. Please fund your wallet."
TIMEOUT_MESSAGE = (
    "Your mint has not been confirmed yet. It may still complete; "
    "check your wallet before trying again."
)
NETWORK_ERROR_MESSAGE = "Could not reach the network. Please try again."
NOT_APPROVED_MESSAGE = "The transaction was not approved in your wallet."

# Matched on the numeric program error, never on message text.
PROGRAM_ERRORS: Dict[int, Tuple[ErrorCategory, str, bool]] = {
    ERR_CANDY_MACHINE_EMPTY: (ErrorCategory.SOLD_OUT, SOLD_OUT_MESSAGE, False),
    ERR_NOT_LIVE_YET: (ErrorCategory.NOT_YET_LIVE, NOT_YET_LIVE_MESSAGE, True),
    ERR_NOT_ENOUGH_SOL: (ErrorCategory.INSUFFICIENT_FUNDS, INSUFFICIENT_FUNDS_MESSAGE, False),
    ERR_NOT_ENOUGH_TOKENS: (ErrorCategory.INSUFFICIENT_FUNDS, INSUFFICIENT_FUNDS_MESSAGE, False),
}


def sold_out() -> ClassifiedError:
    return ClassifiedError(ErrorCategory.SOLD_OUT, SOLD_OUT_MESSAGE, False)


def not_yet_live() -> ClassifiedError:
    return ClassifiedError(ErrorCategory.NOT_YET_LIVE, NOT_YET_LIVE_MESSAGE, True)


def _from_code(code: int | None, tx_error: object) -> ClassifiedError | None:
    if code is not None and code in PROGRAM_ERRORS:
        category, message, retriable = PROGRAM_ERRORS[code]
        return ClassifiedError(category, message, retriable, code=code)
    if isinstance(tx_error, str) and tx_error in INSUFFICIENT_FUNDS_TX_ERRORS:
        return ClassifiedError(
            ErrorCategory.INSUFFICIENT_FUNDS, INSUFFICIENT_FUNDS_MESSAGE, False
        )
    return None


def classify(failure: object) -> ClassifiedError:
    """Maps any raw failure or terminal poll outcome to a ClassifiedError."""
    if isinstance(failure, TimedOut):
        return ClassifiedError(ErrorCategory.NETWORK_TIMEOUT, TIMEOUT_MESSAGE, True)

    if isinstance(failure, FailedOnChain):
        known = _from_code(failure.code, failure.err)
        if known is not None:
            return known
        return ClassifiedError(
            ErrorCategory.UNKNOWN,
            f"Mint failed on-chain: {failure.err}",
            False,
            code=failure.code,
        )

    if isinstance(failure, SigningRejectedError):
        return ClassifiedError(ErrorCategory.UNKNOWN, NOT_APPROVED_MESSAGE, True)

    if isinstance(failure, SubmissionError):
        known = _from_code(failure.code, failure.tx_error)
        if known is not None:
            return known
        if isinstance(failure.__cause__, httpx.HTTPError):
            return ClassifiedError(ErrorCategory.NETWORK_ERROR, NETWORK_ERROR_MESSAGE, True)
        return ClassifiedError(ErrorCategory.UNKNOWN, str(failure), False, code=failure.code)

    if isinstance(failure, (LedgerStateError, httpx.HTTPError, RpcError)):
        return ClassifiedError(ErrorCategory.NETWORK_ERROR, NETWORK_ERROR_MESSAGE, True)

    return ClassifiedError(ErrorCategory.UNKNOWN, str(failure) or repr(failure), False)

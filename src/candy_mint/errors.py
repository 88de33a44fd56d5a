from __future__ import annotations

from typing import Any


class MinterError(RuntimeError):
    """Base class for failures raised by the mint engine."""


class ConfigError(MinterError):
    pass


class RpcError(MinterError):
    """The node answered with a JSON-RPC ``error`` member or an unreadable body."""

    def __init__(self, code: int | None, message: str, data: Any = None) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.rpc_message = message
        self.data = data


class LedgerStateError(MinterError):
    """Candy machine state could not be read or decoded."""


class SubmissionError(MinterError):
    """The mint transaction was not accepted by the network.

    ``code`` is the candy machine's custom program error when preflight
    simulation reported one; ``tx_error`` is the raw transaction error object.
    """

    def __init__(
        self,
        message: str,
        code: int | None = None,
        tx_error: Any = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.tx_error = tx_error


class SigningRejectedError(SubmissionError):
    """The signer refused to sign the mint transaction."""


class MintInProgressError(MinterError):
    """Another mint attempt is still pending on this minter."""


def program_error_code(tx_error: Any) -> int | None:
    """
    Pulls the custom program error out of a transaction error, e.g.
    {"InstructionError": [4, {"Custom": 311}]} -> 311.
    """
    if not isinstance(tx_error, dict):
        return None
    instruction_error = tx_error.get("InstructionError")
    if not isinstance(instruction_error, (list, tuple)) or len(instruction_error) != 2:
        return None
    detail = instruction_error[1]
    if isinstance(detail, dict) and isinstance(detail.get("Custom"), int):
        return detail["Custom"]
    return None

from __future__ import annotations

import base64
import hashlib
import logging
import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Tuple

import base58
import httpx

from .errors import LedgerStateError, RpcError
from .project_constants import CANDY_MACHINE_PROGRAM_ID
from .rpc import RpcClient

log = logging.getLogger(__name__)

CANDY_MACHINE_DISCRIMINATOR = hashlib.sha256(b"account:CandyMachine").digest()[:8]


@dataclass(frozen=True)
class ProgramState:
    candy_machine_id: str
    program_id: str
    go_live: datetime
    items_available: int
    items_redeemed: int
    config_address: str
    treasury_address: str
    authority: str
    price_lamports: int

    @property
    def items_remaining(self) -> int:
        return max(self.items_available - self.items_redeemed, 0)


class _Reader:
    """Sequential borsh reader over raw account bytes."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise LedgerStateError(
                f"Candy machine account truncated at byte {self.pos} (need {n} more)."
            )
        chunk = self.data[self.pos : self.pos + n]
        self.pos += n
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u32(self) -> int:
        return struct.unpack("<I", self.take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.take(8))[0]

    def i64(self) -> int:
        return struct.unpack("<q", self.take(8))[0]

    def pubkey(self) -> str:
        return base58.b58encode(self.take(32)).decode("ascii")

    def option_tag(self) -> bool:
        tag = self.u8()
        if tag not in (0, 1):
            raise LedgerStateError(f"Invalid option tag {tag} at byte {self.pos - 1}.")
        return tag == 1


def parse_candy_machine_account(data: bytes) -> Tuple[dict, int | None]:
    """
    Anchor account layout:
    discriminator(8) | authority(32) | wallet(32) | token_mint: Option<Pubkey> |
    config(32) | data{uuid: String, price: u64, items_available: u64,
    go_live_date: Option<i64>} | items_redeemed: u64 | bump: u8

    Returns the decoded fields and the go-live unix timestamp (None when unset).
    """
    r = _Reader(data)
    if r.take(8) != CANDY_MACHINE_DISCRIMINATOR:
        raise LedgerStateError("Account is not a candy machine (discriminator mismatch).")

    authority = r.pubkey()
    wallet = r.pubkey()
    if r.option_tag():
        r.take(32)  # payment token mint, unused by the mint flow
    config = r.pubkey()

    uuid_len = r.u32()
    r.take(uuid_len)
    price = r.u64()
    items_available = r.u64()
    go_live_ts = r.i64() if r.option_tag() else None
    items_redeemed = r.u64()

    fields = {
        "authority": authority,
        "treasury_address": wallet,
        "config_address": config,
        "price_lamports": price,
        "items_available": items_available,
        "items_redeemed": items_redeemed,
    }
    return fields, go_live_ts


def fetch_program_state(
    rpc: RpcClient,
    candy_machine_id: str,
    commitment: str | None = None,
    program_id: str = CANDY_MACHINE_PROGRAM_ID,
) -> ProgramState:
    """One getAccountInfo round trip; retrying is up to the caller."""
    try:
        account = rpc.get_account_info_base64(candy_machine_id, commitment=commitment)
    except (httpx.HTTPError, RpcError) as e:
        raise LedgerStateError(f"Could not read candy machine {candy_machine_id}: {e}") from e
    except (KeyError, TypeError, IndexError, AttributeError, ValueError) as e:
        raise LedgerStateError(
            f"Malformed getAccountInfo reply for {candy_machine_id}: {e!r}"
        ) from e

    if account is None:
        raise LedgerStateError(f"Candy machine account {candy_machine_id} not found.")
    if account["owner"] != program_id:
        raise LedgerStateError(
            f"Account {candy_machine_id} is owned by {account['owner']}, not {program_id}."
        )

    try:
        raw = base64.b64decode(account["data"], validate=True)
    except (ValueError, TypeError) as e:
        raise LedgerStateError(f"Candy machine account data is not valid base64: {e}") from e

    fields, go_live_ts = parse_candy_machine_account(raw)
    if go_live_ts is None:
        raise LedgerStateError(f"Candy machine {candy_machine_id} has no go-live date set.")

    state = ProgramState(
        candy_machine_id=candy_machine_id,
        program_id=program_id,
        go_live=datetime.fromtimestamp(go_live_ts, tz=timezone.utc),
        **fields,
    )
    log.info(
        "Candy machine %s: %d/%d remaining, live at %s",
        candy_machine_id,
        state.items_remaining,
        state.items_available,
        state.go_live.isoformat(),
    )
    return state

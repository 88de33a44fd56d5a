from __future__ import annotations

import struct
from datetime import datetime, timezone

import base58
from solders.hash import Hash
from solders.keypair import Keypair

from candy_mint.candy_machine import CANDY_MACHINE_DISCRIMINATOR, ProgramState
from candy_mint.project_constants import CANDY_MACHINE_PROGRAM_ID

GO_LIVE = datetime(2021, 9, 1, 18, 0, tzinfo=timezone.utc)


def new_address() -> str:
    return str(Keypair().pubkey())


def make_state(
    items_available: int = 10,
    items_redeemed: int = 0,
    go_live: datetime = GO_LIVE,
) -> ProgramState:
    return ProgramState(
        candy_machine_id=new_address(),
        program_id=CANDY_MACHINE_PROGRAM_ID,
        go_live=go_live,
        items_available=items_available,
        items_redeemed=items_redeemed,
        config_address=new_address(),
        treasury_address=new_address(),
        authority=new_address(),
        price_lamports=500_000_000,
    )


def candy_machine_account_bytes(
    authority: str,
    wallet: str,
    config: str,
    price: int = 500_000_000,
    items_available: int = 10,
    items_redeemed: int = 0,
    go_live_ts: int | None = int(GO_LIVE.timestamp()),
    token_mint: str | None = None,
    uuid: bytes = b"a1b2c3",
) -> bytes:
    out = CANDY_MACHINE_DISCRIMINATOR
    out += base58.b58decode(authority) + base58.b58decode(wallet)
    out += b"\x01" + base58.b58decode(token_mint) if token_mint else b"\x00"
    out += base58.b58decode(config)
    out += struct.pack("<I", len(uuid)) + uuid
    out += struct.pack("<QQ", price, items_available)
    out += b"\x01" + struct.pack("<q", go_live_ts) if go_live_ts is not None else b"\x00"
    out += struct.pack("<Q", items_redeemed)
    out += b"\xfe"  # bump
    return out + b"\x00" * 64  # anchor allocates spare space


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRpc:
    """Stands in for RpcClient; statuses are served one per poll, then None forever."""

    commitment = "confirmed"

    def __init__(self, statuses=None, balance: int = 2_500_000_000, send_error=None) -> None:
        self.statuses = list(statuses or [])
        self.balance = balance
        self.send_error = send_error
        self.sent: list[str] = []
        self.status_calls = 0
        self.balance_calls: list[str] = []

    def get_latest_blockhash(self, commitment=None) -> str:
        return str(Hash.default())

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        return 1_461_600

    def send_transaction(self, wire_tx_b64: str, preflight_commitment=None) -> str:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(wire_tx_b64)
        return "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"

    def get_signature_statuses(self, signatures, timeout_s=None):
        self.status_calls += 1
        if self.statuses:
            item = self.statuses.pop(0)
            if isinstance(item, Exception):
                raise item
            return [item]
        return [None]

    def get_balance(self, address: str, commitment=None) -> int:
        self.balance_calls.append(address)
        if isinstance(self.balance, Exception):
            raise self.balance
        return self.balance

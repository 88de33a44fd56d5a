from __future__ import annotations

import json
from pathlib import Path
from typing import List, Protocol, Sequence

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction


class Signer(Protocol):
    """Wallet capability handed to the minter. Key material stays behind it.

    Implementations raise ``SigningRejectedError`` when the user declines.
    """

    @property
    def public_key(self) -> Pubkey: ...

    def sign_transaction(self, tx: Transaction) -> Transaction: ...

    def sign_all_transactions(self, txs: Sequence[Transaction]) -> List[Transaction]: ...


class KeypairSigner:
    """Signs with a local keypair, e.g. a Solana CLI ``id.json``."""

    def __init__(self, keypair: Keypair) -> None:
        self._keypair = keypair

    @property
    def public_key(self) -> Pubkey:
        return self._keypair.pubkey()

    def sign_transaction(self, tx: Transaction) -> Transaction:
        tx.partial_sign([self._keypair], tx.message.recent_blockhash)
        return tx

    def sign_all_transactions(self, txs: Sequence[Transaction]) -> List[Transaction]:
        return [self.sign_transaction(tx) for tx in txs]


def load_keypair(path: str) -> Keypair:
    """Reads a Solana CLI keypair file (JSON array of 64 secret key bytes)."""
    raw = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    if not isinstance(raw, list) or len(raw) != 64:
        raise ValueError(f"{path}: expected a JSON array of 64 bytes.")
    return Keypair.from_bytes(bytes(raw))

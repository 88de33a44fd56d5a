from __future__ import annotations

import base64

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from candy_mint.errors import RpcError, SigningRejectedError, SubmissionError
from candy_mint.project_constants import CANDY_MACHINE_PROGRAM_ID
from candy_mint.signer import KeypairSigner, load_keypair
from candy_mint.submit import (
    MINT_NFT_DISCRIMINATOR,
    build_mint_transaction,
    master_edition_address,
    metadata_address,
    submit,
)
from tests.candy_helpers import FakeRpc, make_state


class RejectingSigner:
    def __init__(self) -> None:
        self.public_key = Keypair().pubkey()

    def sign_transaction(self, tx):
        raise SigningRejectedError("User rejected the request.")

    def sign_all_transactions(self, txs):
        raise SigningRejectedError("User rejected the request.")


def _decode(wire: str) -> Transaction:
    return Transaction.from_bytes(base64.b64decode(wire))


def _candy_machine_instructions(tx: Transaction):
    keys = tx.message.account_keys
    program = Pubkey.from_string(CANDY_MACHINE_PROGRAM_ID)
    return [ix for ix in tx.message.instructions if keys[ix.program_id_index] == program]


def test_submit_sends_exactly_once_with_one_mint_instruction() -> None:
    rpc = FakeRpc()
    state = make_state()
    signer = KeypairSigner(Keypair())

    signature = submit(rpc, state, signer, state.treasury_address)

    assert signature.startswith("5VER")
    assert len(rpc.sent) == 1
    tx = _decode(rpc.sent[0])
    mint_ixs = _candy_machine_instructions(tx)
    assert len(mint_ixs) == 1
    assert bytes(mint_ixs[0].data) == MINT_NFT_DISCRIMINATOR
    assert tx.message.account_keys[0] == signer.public_key
    assert all(sig != Signature.default() for sig in tx.signatures)


def test_mint_instruction_accounts() -> None:
    state = make_state()
    payer = Keypair().pubkey()
    mint = Keypair()
    tx = build_mint_transaction(
        state,
        payer=payer,
        mint=mint,
        treasury_address=state.treasury_address,
        config_address=state.config_address,
        recent_blockhash=FakeRpc().get_latest_blockhash(),
        rent_lamports=1_461_600,
    )
    keys = tx.message.account_keys
    (ix,) = _candy_machine_instructions(tx)
    accounts = [keys[i] for i in bytes(ix.accounts)]
    assert accounts[0] == Pubkey.from_string(state.config_address)
    assert accounts[1] == Pubkey.from_string(state.candy_machine_id)
    assert accounts[2] == payer
    assert accounts[3] == Pubkey.from_string(state.treasury_address)
    assert accounts[4] == metadata_address(mint.pubkey())
    assert accounts[5] == mint.pubkey()
    assert accounts[8] == master_edition_address(mint.pubkey())
    # fee payer signature still missing, mint keypair already signed
    assert tx.signatures[0] == Signature.default()
    assert Signature.default() not in tx.signatures[1:]


def test_signer_refusal_sends_nothing() -> None:
    rpc = FakeRpc()
    state = make_state()
    with pytest.raises(SigningRejectedError):
        submit(rpc, state, RejectingSigner(), state.treasury_address)
    assert rpc.sent == []


def test_preflight_rejection_carries_program_code() -> None:
    err = {"InstructionError": [4, {"Custom": 311}]}
    rpc = FakeRpc(send_error=RpcError(-32002, "Transaction simulation failed", {"err": err}))
    state = make_state()
    with pytest.raises(SubmissionError) as excinfo:
        submit(rpc, state, KeypairSigner(Keypair()), state.treasury_address)
    assert excinfo.value.code == 311
    assert excinfo.value.tx_error == err


def test_load_keypair_round_trip(tmp_path) -> None:
    kp = Keypair()
    path = tmp_path / "id.json"
    path.write_text(str(list(bytes(kp))), encoding="utf-8")
    assert load_keypair(str(path)).pubkey() == kp.pubkey()


def test_load_keypair_rejects_wrong_length(tmp_path) -> None:
    path = tmp_path / "id.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_keypair(str(path))

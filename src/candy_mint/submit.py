from __future__ import annotations

import base64
import hashlib
import logging
import struct
from typing import List

import httpx
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import CreateAccountParams, create_account
from solders.sysvar import CLOCK, RENT
from solders.transaction import Transaction

from .candy_machine import ProgramState
from .errors import RpcError, SubmissionError, program_error_code
from .project_constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    MINT_ACCOUNT_SIZE,
    TOKEN_METADATA_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from .rpc import RpcClient
from .signer import Signer

log = logging.getLogger(__name__)

MINT_NFT_DISCRIMINATOR = hashlib.sha256(b"global:mint_nft").digest()[:8]

TOKEN_PROGRAM = Pubkey.from_string(TOKEN_PROGRAM_ID)
TOKEN_METADATA_PROGRAM = Pubkey.from_string(TOKEN_METADATA_PROGRAM_ID)
ASSOCIATED_TOKEN_PROGRAM = Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID)

# SPL token instruction tags
_INITIALIZE_MINT = 0
_MINT_TO = 7


def associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [bytes(owner), bytes(TOKEN_PROGRAM), bytes(mint)], ASSOCIATED_TOKEN_PROGRAM
    )
    return address


def metadata_address(mint: Pubkey) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [b"metadata", bytes(TOKEN_METADATA_PROGRAM), bytes(mint)], TOKEN_METADATA_PROGRAM
    )
    return address


def master_edition_address(mint: Pubkey) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [b"metadata", bytes(TOKEN_METADATA_PROGRAM), bytes(mint), b"edition"],
        TOKEN_METADATA_PROGRAM,
    )
    return address


def _prepare_mint_instructions(payer: Pubkey, mint: Pubkey, rent_lamports: int) -> List[Instruction]:
    """Fresh 0-decimal mint owned by the payer, plus one token in the payer's ATA."""
    ata = associated_token_address(payer, mint)
    return [
        create_account(
            CreateAccountParams(
                from_pubkey=payer,
                to_pubkey=mint,
                lamports=rent_lamports,
                space=MINT_ACCOUNT_SIZE,
                owner=TOKEN_PROGRAM,
            )
        ),
        Instruction(
            TOKEN_PROGRAM,
            bytes([_INITIALIZE_MINT, 0]) + bytes(payer) + bytes([1]) + bytes(payer),
            [AccountMeta(mint, False, True), AccountMeta(RENT, False, False)],
        ),
        Instruction(
            ASSOCIATED_TOKEN_PROGRAM,
            b"",
            [
                AccountMeta(payer, True, True),
                AccountMeta(ata, False, True),
                AccountMeta(payer, False, False),
                AccountMeta(mint, False, False),
                AccountMeta(SYSTEM_PROGRAM_ID, False, False),
                AccountMeta(TOKEN_PROGRAM, False, False),
                AccountMeta(RENT, False, False),
            ],
        ),
        Instruction(
            TOKEN_PROGRAM,
            bytes([_MINT_TO]) + struct.pack("<Q", 1),
            [
                AccountMeta(mint, False, True),
                AccountMeta(ata, False, True),
                AccountMeta(payer, True, False),
            ],
        ),
    ]


def mint_nft_instruction(
    state: ProgramState,
    payer: Pubkey,
    mint: Pubkey,
    treasury: Pubkey,
    config: Pubkey,
) -> Instruction:
    """The single candy machine instruction of a mint transaction."""
    return Instruction(
        Pubkey.from_string(state.program_id),
        MINT_NFT_DISCRIMINATOR,
        [
            AccountMeta(config, False, False),
            AccountMeta(Pubkey.from_string(state.candy_machine_id), False, True),
            AccountMeta(payer, True, True),
            AccountMeta(treasury, False, True),
            AccountMeta(metadata_address(mint), False, True),
            AccountMeta(mint, False, True),
            AccountMeta(payer, True, False),  # mint authority
            AccountMeta(payer, True, False),  # update authority
            AccountMeta(master_edition_address(mint), False, True),
            AccountMeta(TOKEN_METADATA_PROGRAM, False, False),
            AccountMeta(TOKEN_PROGRAM, False, False),
            AccountMeta(SYSTEM_PROGRAM_ID, False, False),
            AccountMeta(RENT, False, False),
            AccountMeta(CLOCK, False, False),
        ],
    )


def build_mint_transaction(
    state: ProgramState,
    payer: Pubkey,
    mint: Keypair,
    treasury_address: str,
    config_address: str,
    recent_blockhash: str,
    rent_lamports: int,
) -> Transaction:
    """Unsigned by the payer; already carries the mint keypair's signature."""
    instructions = _prepare_mint_instructions(payer, mint.pubkey(), rent_lamports)
    instructions.append(
        mint_nft_instruction(
            state,
            payer=payer,
            mint=mint.pubkey(),
            treasury=Pubkey.from_string(treasury_address),
            config=Pubkey.from_string(config_address),
        )
    )
    blockhash = Hash.from_string(recent_blockhash)
    tx = Transaction.new_unsigned(Message.new_with_blockhash(instructions, payer, blockhash))
    tx.partial_sign([mint], blockhash)
    return tx


def submit(
    rpc: RpcClient,
    state: ProgramState,
    signer: Signer,
    treasury_address: str,
    config_address: str | None = None,
) -> str:
    """
    Builds, signs and sends one mint transaction. Returns the transaction
    signature as soon as the node accepts it; that is not a confirmation.
    The transaction is sent exactly once.
    """
    payer = signer.public_key
    try:
        recent_blockhash = rpc.get_latest_blockhash()
        rent_lamports = rpc.get_minimum_balance_for_rent_exemption(MINT_ACCOUNT_SIZE)
    except (httpx.HTTPError, RpcError) as e:
        raise SubmissionError(f"Could not prepare mint transaction: {e}") from e

    mint = Keypair()
    tx = build_mint_transaction(
        state,
        payer=payer,
        mint=mint,
        treasury_address=treasury_address,
        config_address=config_address or state.config_address,
        recent_blockhash=recent_blockhash,
        rent_lamports=rent_lamports,
    )
    log.debug("Requesting signature from %s for mint %s", payer, mint.pubkey())
    signed = signer.sign_transaction(tx)

    wire = base64.b64encode(bytes(signed)).decode("ascii")
    try:
        signature = rpc.send_transaction(wire)
    except RpcError as e:
        tx_error = e.data.get("err") if isinstance(e.data, dict) else None
        raise SubmissionError(
            f"Mint transaction rejected: {e.rpc_message}",
            code=program_error_code(tx_error),
            tx_error=tx_error,
        ) from e
    except httpx.HTTPError as e:
        raise SubmissionError(f"Could not send mint transaction: {e}") from e

    log.info("Submitted mint transaction %s (mint %s)", signature, mint.pubkey())
    return signature

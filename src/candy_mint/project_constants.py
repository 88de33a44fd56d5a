"""
Fixed on-chain parameters for the candy machine mint flow.

Program ids and error codes are part of the deployed candy machine program's
public contract. Changing them means targeting a different program.
"""

# Candy machine v1 program (Anchor)
CANDY_MACHINE_PROGRAM_ID = "cndyAnrLdpjq1Ssp1z8xxDsB8dxe7u4HL5Nxi2K5WXZ"

TOKEN_METADATA_PROGRAM_ID = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

LAMPORTS_PER_SOL = 1_000_000_000

# SPL mint account size (bytes)
MINT_ACCOUNT_SIZE = 82

# Anchor custom error codes raised by the candy machine program
ERR_NOT_ENOUGH_TOKENS = 308  # 0x134
ERR_NOT_ENOUGH_SOL = 309  # 0x135
ERR_CANDY_MACHINE_EMPTY = 311  # 0x137
ERR_NOT_LIVE_YET = 312  # 0x138

# Transaction-level errors reported by the node when the payer cannot cover the mint
INSUFFICIENT_FUNDS_TX_ERRORS = frozenset(
    {"InsufficientFundsForFee", "InsufficientFundsForRent", "AccountNotFound"}
)

CLUSTER_URLS = {
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
}

DEFAULT_TX_TIMEOUT_MS = 30_000
DEFAULT_POLL_INTERVAL_MS = 2_000
DEFAULT_COMMITMENT = "confirmed"

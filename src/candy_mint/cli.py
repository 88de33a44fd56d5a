from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone

from .classify import classify
from .config import Settings
from .confirm import Confirmed, await_confirmation
from .gate import seconds_until_live
from .minter import MintContext, Minter, MintOutcome, MintSuccess
from .project_constants import LAMPORTS_PER_SOL
from .rpc import RpcClient
from .signer import KeypairSigner, load_keypair


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(
        rpc_url_override=args.rpc_url,
        tx_timeout_ms_override=args.tx_timeout_ms,
        poll_interval_ms_override=args.poll_interval_ms,
    )


def cmd_state(args: argparse.Namespace) -> int:
    settings = _settings(args)
    rpc = RpcClient.from_connection(settings.connection, timeout_s=args.timeout)
    try:
        minter = Minter(settings, rpc)
        state, decision = minter.load_state()
    finally:
        rpc.close()

    now = datetime.now(timezone.utc)
    print("========================================")
    print("🍬 CANDY MACHINE")
    print("========================================")
    print(f"Candy machine : {state.candy_machine_id}")
    print(f"Config        : {state.config_address}")
    print(f"Treasury      : {state.treasury_address}")
    print(f"Price         : {state.price_lamports / LAMPORTS_PER_SOL:.4f} SOL")
    print(f"Items         : {state.items_remaining} of {state.items_available} remaining")
    print(f"Go-live (UTC) : {state.go_live.strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"Starts in     : {int(seconds_until_live(now, state))} s")
    print(f"Gate          : {decision.value}")
    return 0


def _print_outcome(outcome: MintOutcome) -> int:
    print("----------------------------------------")
    if isinstance(outcome, MintSuccess):
        print(f"✅ {outcome.message}")
        print(f"Transaction   : {outcome.transaction_id}")
        return 0
    print(f"❌ {outcome.message}")
    print(f"Category      : {outcome.category.value}")
    print(f"Retriable     : {'yes' if outcome.retriable else 'no'}")
    return 1


def cmd_mint(args: argparse.Namespace) -> int:
    settings = _settings(args)
    signer = KeypairSigner(load_keypair(args.keypair))
    log = logging.getLogger("mint")
    log.info("Wallet        : %s", signer.public_key)

    balances = []
    rpc = RpcClient.from_connection(settings.connection, timeout_s=args.timeout)
    try:
        minter = Minter(settings, rpc, on_balance=balances.append)
        outcome = minter.attempt_mint(MintContext(signer=signer))
    finally:
        rpc.close()

    code = _print_outcome(outcome)
    balance = balances[-1] if balances else None
    print(f"Balance       : {'unknown' if balance is None else f'{balance:,.4f} SOL'}")
    return code


def cmd_confirm(args: argparse.Namespace) -> int:
    settings = _settings(args)
    rpc = RpcClient.from_connection(settings.connection, timeout_s=args.timeout)
    try:
        result = await_confirmation(
            rpc,
            args.signature,
            timeout_ms=settings.tx_timeout_ms,
            poll_interval_ms=settings.poll_interval_ms,
        )
    finally:
        rpc.close()

    if isinstance(result, Confirmed):
        return _print_outcome(MintSuccess(transaction_id=result.signature))
    return _print_outcome(classify(result))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="candy-mint",
        description="Mint one token from a Solana candy machine.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")
    p.add_argument(
        "--tx-timeout-ms",
        type=int,
        default=None,
        help="Confirmation timeout in milliseconds (else TX_TIMEOUT_MS).",
    )
    p.add_argument(
        "--poll-interval-ms",
        type=int,
        default=None,
        help="Spacing between status checks in milliseconds (else POLL_INTERVAL_MS).",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("state", help="Show candy machine supply, go-live time and gate.")
    s.set_defaults(func=cmd_state)

    m = sub.add_parser("mint", help="Attempt to mint one token.")
    m.add_argument(
        "--keypair",
        default="~/.config/solana/id.json",
        help="Solana CLI keypair file of the paying wallet.",
    )
    m.set_defaults(func=cmd_mint)

    c = sub.add_parser("confirm", help="Wait for a submitted mint transaction.")
    c.add_argument("--signature", required=True, help="Transaction signature.")
    c.set_defaults(func=cmd_confirm)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    raise SystemExit(args.func(args))

from __future__ import annotations

from candy_mint import cli
from candy_mint.config import ConnectionConfig, Settings
from candy_mint.classify import sold_out
from candy_mint.confirm import Confirmed, TimedOut


def _settings(**_kwargs) -> Settings:
    return Settings(
        connection=ConnectionConfig("https://rpc.test"),
        candy_machine_id="CM111",
        config_address="Cfg111",
        treasury_address="Treasury111",
        tx_timeout_ms=1_000,
        poll_interval_ms=100,
    )


def test_parser_subcommands() -> None:
    parser = cli.build_parser()
    args = parser.parse_args(["--tx-timeout-ms", "15000", "mint", "--keypair", "/tmp/id.json"])
    assert args.func is cli.cmd_mint
    assert args.tx_timeout_ms == 15_000
    assert args.keypair == "/tmp/id.json"

    args = parser.parse_args(["confirm", "--signature", "abc"])
    assert args.func is cli.cmd_confirm
    assert args.signature == "abc"

    assert parser.parse_args(["state"]).func is cli.cmd_state


def test_confirm_exit_codes(monkeypatch, capsys) -> None:
    monkeypatch.setattr("candy_mint.cli.Settings.from_env", _settings)
    results = [Confirmed("abc", 10, "confirmed"), TimedOut("abc", 1_000)]
    monkeypatch.setattr("candy_mint.cli.await_confirmation", lambda *a, **k: results.pop(0))
    args = cli.build_parser().parse_args(["confirm", "--signature", "abc"])

    assert cli.cmd_confirm(args) == 0
    assert "Mint succeeded" in capsys.readouterr().out

    assert cli.cmd_confirm(args) == 1
    out = capsys.readouterr().out
    assert "network_timeout" in out
    assert "not been confirmed yet" in out


def test_print_outcome_reports_classified_errors(capsys) -> None:
    assert cli._print_outcome(sold_out()) == 1
    out = capsys.readouterr().out
    assert "sold_out" in out
    assert "Retriable     : no" in out

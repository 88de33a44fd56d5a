from __future__ import annotations

import os
from dataclasses import dataclass
from dotenv import load_dotenv

from .errors import ConfigError
from .project_constants import (
    CLUSTER_URLS,
    DEFAULT_COMMITMENT,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_TX_TIMEOUT_MS,
)

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")

# Older wallet adapters still pass these names.
_COMMITMENT_ALIASES = {
    "recent": "processed",
    "single": "confirmed",
    "singlegossip": "confirmed",
    "max": "finalized",
    "root": "finalized",
}


def normalize_commitment(value: str) -> str:
    level = value.strip().lower()
    level = _COMMITMENT_ALIASES.get(level, level)
    if level not in COMMITMENT_LEVELS:
        raise ConfigError(f"Unknown commitment level: {value!r}")
    return level


@dataclass(frozen=True)
class ConnectionConfig:
    endpoint: str
    commitment: str = DEFAULT_COMMITMENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "commitment", normalize_commitment(self.commitment))


@dataclass(frozen=True)
class Settings:
    connection: ConnectionConfig
    candy_machine_id: str
    config_address: str
    treasury_address: str
    tx_timeout_ms: int = DEFAULT_TX_TIMEOUT_MS
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS

    @staticmethod
    def from_env(
        rpc_url_override: str | None = None,
        tx_timeout_ms_override: int | None = None,
        poll_interval_ms_override: int | None = None,
    ) -> "Settings":
        load_dotenv()

        # If user provides --rpc-url, trust it.
        rpc_url = rpc_url_override or os.getenv("RPC_URL", "").strip()
        if not rpc_url:
            network = os.getenv("SOLANA_NETWORK", "devnet").strip()
            if network not in CLUSTER_URLS:
                raise ConfigError(
                    f"Unknown SOLANA_NETWORK {network!r}; expected one of {sorted(CLUSTER_URLS)}"
                )
            rpc_url = CLUSTER_URLS[network]

        connection = ConnectionConfig(
            endpoint=rpc_url,
            commitment=os.getenv("COMMITMENT", DEFAULT_COMMITMENT),
        )

        tx_timeout_ms = tx_timeout_ms_override or _int_env("TX_TIMEOUT_MS", DEFAULT_TX_TIMEOUT_MS)
        poll_interval_ms = poll_interval_ms_override or _int_env(
            "POLL_INTERVAL_MS", DEFAULT_POLL_INTERVAL_MS
        )

        return Settings(
            connection=connection,
            candy_machine_id=_required_env("CANDY_MACHINE_ID"),
            config_address=_required_env("CANDY_MACHINE_CONFIG"),
            treasury_address=_required_env("TREASURY_ADDRESS"),
            tx_timeout_ms=tx_timeout_ms,
            poll_interval_ms=poll_interval_ms,
        )


def _required_env(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ConfigError(f"Missing {name}. Put it in .env or export it.")
    return value


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer number of milliseconds, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value

from __future__ import annotations

import enum
from datetime import datetime

from .candy_machine import ProgramState


class GateDecision(enum.Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    SOLD_OUT = "sold_out"


def _require_aware(now: datetime) -> None:
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware (use datetime.now(timezone.utc)).")


def evaluate(now: datetime, state: ProgramState) -> GateDecision:
    """Sold out wins over time; the go-live instant itself counts as live."""
    _require_aware(now)
    if state.items_remaining == 0:
        return GateDecision.SOLD_OUT
    if now < state.go_live:
        return GateDecision.NOT_STARTED
    return GateDecision.ACTIVE


def seconds_until_live(now: datetime, state: ProgramState) -> float:
    _require_aware(now)
    return max((state.go_live - now).total_seconds(), 0.0)

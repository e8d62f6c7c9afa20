"""Daily learning streak arithmetic (UTC calendar days)."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Literal

StreakAction = Literal["increment", "reset"]


def _day(value: datetime | date) -> date:
    return value.date() if isinstance(value, datetime) else value


def next_streak(current: int, last_active: datetime | None, action: StreakAction, now: datetime | None = None) -> int:
    """
    New streak value after ``action``.

    increment: active yesterday -> +1, already active today -> unchanged,
    anything else (including never) -> 1. reset: 0.
    """
    if action == "reset":
        return 0
    if now is None:
        now = datetime.now(timezone.utc)
    if last_active is None:
        return 1

    today = _day(now)
    last = _day(last_active)
    if last == today:
        return current
    if last == today - timedelta(days=1):
        return current + 1
    return 1

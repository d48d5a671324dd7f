"""Shared builders for history aggregation tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from shared.schemas import HistoryRecord, Window

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: float) -> datetime:
    """Timestamp ``minutes`` after T0."""
    return T0 + timedelta(minutes=minutes)


def window(minutes: float = 100) -> Window:
    """Window starting at T0 and lasting ``minutes``."""
    return Window(start=T0, end=at(minutes))


def rec(minutes: float, state: str) -> HistoryRecord:
    return HistoryRecord(timestamp=at(minutes), raw_state=state)

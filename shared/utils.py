"""Utility functions for Foundry History."""

import math
from datetime import datetime, timezone

# Named colors accepted in threshold lists, mapped to the hex values the
# dashboard renders.
NAMED_COLORS: dict[str, str] = {
    "green": "#4CAF50",
    "red": "#F44336",
    "orange": "#FF9800",
    "yellow": "#FFEB3B",
    "purple": "#9C27B0",
    "blue": "#2196F3",
    "grey": "#9E9E9E",
}

_HOURS_PER_UNIT: dict[str, float] = {
    "minute": 1 / 60,
    "hour": 1.0,
    "day": 24.0,
    "week": 24.0 * 7,
}


def parse_numeric_state(raw_state: str | None) -> float | None:
    """Parse an entity state string as a float.

    Returns None for anything that is not a finite number (e.g. "unavailable",
    "unknown", "nan").
    """
    if raw_state is None:
        return None
    try:
        value = float(raw_state)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def resolve_color(name: str) -> str:
    """Map a named color to its hex value, passing anything else through."""
    return NAMED_COLORS.get(name, name)


def duration_to_hours(quantity: float, unit: str) -> float:
    """Convert a ``{quantity, unit}`` duration to hours.

    Example:
        duration_to_hours(2, "day") → 48.0
    """
    try:
        return quantity * _HOURS_PER_UNIT[unit]
    except KeyError:
        raise ValueError(f"Unsupported duration unit: {unit}") from None


def time_ago(moment: datetime, now: datetime | None = None) -> str:
    """Format how long ago ``moment`` was, e.g. "45m ago", "3h ago", "2d ago"."""
    if now is None:
        now = datetime.now(timezone.utc)
    diff = (now - moment).total_seconds()
    if diff < 3600:
        return f"{math.floor(diff / 60)}m ago"
    if diff < 86400:
        return f"{math.floor(diff / 3600)}h ago"
    return f"{math.floor(diff / 86400)}d ago"

"""Shared schemas and utilities for Foundry History."""

from shared.schemas import (
    Bucket,
    ClassificationMode,
    EntityHistory,
    HistoryRecord,
    Run,
    RunRect,
    Segment,
    Threshold,
    Window,
)
from shared.utils import duration_to_hours, parse_numeric_state, resolve_color, time_ago

__all__ = [
    "Bucket",
    "ClassificationMode",
    "EntityHistory",
    "HistoryRecord",
    "Run",
    "RunRect",
    "Segment",
    "Threshold",
    "Window",
    "duration_to_hours",
    "parse_numeric_state",
    "resolve_color",
    "time_ago",
]

"""Pydantic schemas for widget configuration and computed results."""

from foundry_history.schemas.result import (
    SeriesResult,
    StatePush,
    WidgetDetailResponse,
    WidgetResult,
    WidgetStatusResponse,
)
from foundry_history.schemas.widget import WidgetConfig, WidgetsFile

__all__ = [
    "SeriesResult",
    "StatePush",
    "WidgetConfig",
    "WidgetDetailResponse",
    "WidgetResult",
    "WidgetStatusResponse",
    "WidgetsFile",
]

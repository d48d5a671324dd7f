"""Computed widget output and API response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from shared.schemas import Bucket, ClassificationMode, Run, RunRect, Window


class SeriesResult(BaseModel):
    """Aggregated history of one entity.

    Numeric series fill ``path`` and ``scale``; threshold series fill ``runs``,
    ``rects`` and ``dividers``. ``summary`` is the whole-window aggregate
    (mean value or uptime percentage).
    """

    entity_id: str
    unit: str | None = None
    color: str | None = None
    buckets: list[Bucket]
    summary: float | None = None
    path: str = ""
    scale: tuple[float, float] | None = None
    runs: list[Run] = Field(default_factory=list)
    rects: list[RunRect] = Field(default_factory=list)
    dividers: list[float] = Field(default_factory=list)


class WidgetResult(BaseModel):
    """Everything the presentation layer needs to draw one widget."""

    widget_id: str
    mode: ClassificationMode
    window: Window
    generated_at: datetime = Field(description="Stamp of the refresh that produced this result")
    series: list[SeriesResult]
    live_state: str | None = None
    status_text: str = "unknown"
    footer_start: str = Field(default="", description='Window start label, e.g. "24h ago"')


class WidgetStatusResponse(BaseModel):
    """Summary row for GET /api/widgets."""

    widget_id: str
    title: str
    mode: ClassificationMode
    last_updated: datetime | None
    stale: bool
    refreshing: bool


class WidgetDetailResponse(BaseModel):
    """Response for GET /api/widgets/{widget_id}."""

    widget_id: str
    last_updated: datetime | None
    stale: bool
    result: WidgetResult | None


class StatePush(BaseModel):
    """Body for POST /api/widgets/{widget_id}/state."""

    state: str = Field(description="Current raw state pushed by the host")

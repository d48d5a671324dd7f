"""Widget configuration schema.

One ``WidgetConfig`` describes either a numeric chart (one to four sensor
series drawn as sparklines) or an uptime strip (one entity classified into
qualifying / non-qualifying time and colored by thresholds).
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from shared.schemas import ClassificationMode, Threshold
from shared.utils import duration_to_hours

DEFAULT_OK_STATES = ["on", "connected", "home", "open", "true", "running", "active"]
DEFAULT_KO_STATES = [
    "off",
    "disconnected",
    "not_home",
    "closed",
    "false",
    "stopped",
    "inactive",
]

DEFAULT_COLOR_THRESHOLDS = [
    Threshold(value=98, color="#4CAF50"),
    Threshold(value=90, color="#FF9800"),
    Threshold(value=0, color="#F44336"),
]

# Pen colors for chart series 1-4
DEFAULT_SERIES_COLORS = ["#C41E3A", "#1E3AC4", "#1EC43A", "#C4A61E"]
MAX_CHART_SERIES = len(DEFAULT_SERIES_COLORS)


class DurationConfig(BaseModel):
    """Alternative to ``hours_to_show``: e.g. ``{quantity: 7, unit: day}``."""

    quantity: float = Field(default=1, gt=0)
    unit: Literal["minute", "hour", "day", "week"] = "day"


class StateAlias(BaseModel):
    """Labels shown instead of the raw state for ok / ko states."""

    ok: str = "Up"
    ko: str = "Down"


class WidgetConfig(BaseModel):
    """Configuration of a single chart or uptime widget."""

    id: str = Field(min_length=1, description="Unique widget identifier")
    title: str = Field(default="", description="Display title")
    mode: ClassificationMode = Field(
        default=ClassificationMode.THRESHOLD,
        description="numeric (sparkline) or threshold (uptime strip)",
    )
    entity: str = Field(min_length=1, description="Primary entity id")
    entities: list[str] = Field(
        default_factory=list,
        description="Additional chart series (numeric mode only)",
    )
    hours_to_show: float = Field(default=24, gt=0)
    duration: DurationConfig | None = None
    bucket_count: int = Field(default=50, ge=1)
    update_interval: float = Field(default=60, gt=0, description="Refresh period in seconds")
    ok: list[str] = Field(default_factory=lambda: list(DEFAULT_OK_STATES))
    ko: list[str] = Field(default_factory=lambda: list(DEFAULT_KO_STATES))
    alias: StateAlias = Field(default_factory=StateAlias)
    color_thresholds: list[Threshold] = Field(
        default_factory=lambda: list(DEFAULT_COLOR_THRESHOLDS)
    )
    min: float | None = Field(default=None, description="Fixed lower bound of the chart scale")
    max: float | None = Field(default=None, description="Fixed upper bound of the chart scale")
    plot_width: float = Field(default=200, gt=0)
    plot_height: float = Field(default=60, gt=0)
    colors: list[str] = Field(default_factory=list, description="Per-series pen colors")

    @field_validator("ok", "ko", mode="before")
    @classmethod
    def coerce_state_list(cls, value: Any) -> Any:
        """Accept a single state string, and YAML booleans, as states."""
        if value is None:
            return value
        if isinstance(value, (str, bool)):
            value = [value]
        return [str(v).lower() if isinstance(v, bool) else v for v in value]

    @model_validator(mode="after")
    def validate_widget(self) -> "WidgetConfig":
        """Normalize the duration and check mode-specific constraints."""
        if self.duration is not None:
            self.hours_to_show = duration_to_hours(self.duration.quantity, self.duration.unit)

        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"Widget '{self.id}': min ({self.min}) is above max ({self.max})")

        if self.mode == ClassificationMode.NUMERIC:
            if len(self.all_entities) > MAX_CHART_SERIES:
                raise ValueError(
                    f"Widget '{self.id}': at most {MAX_CHART_SERIES} chart series are supported"
                )
        elif self.entities:
            raise ValueError(f"Widget '{self.id}': threshold mode tracks a single entity")
        return self

    @property
    def all_entities(self) -> list[str]:
        """Primary entity followed by any additional series, without duplicates."""
        return list(dict.fromkeys([self.entity, *self.entities]))

    def series_color(self, index: int) -> str:
        if index < len(self.colors):
            return self.colors[index]
        return DEFAULT_SERIES_COLORS[index % MAX_CHART_SERIES]

    def is_ok(self, state: str | None) -> bool:
        return state is not None and state in self.ok

    def is_ko(self, state: str | None) -> bool:
        return state is not None and state in self.ko

    def status_text(self, state: str | None) -> str:
        """Text for the live status line: the ok/ko alias or the raw state."""
        if state is None:
            return "unknown"
        if self.is_ok(state) and self.alias.ok:
            return self.alias.ok
        if self.is_ko(state) and self.alias.ko:
            return self.alias.ko
        return state


class WidgetsFile(BaseModel):
    """Top-level structure of the widgets YAML file."""

    widgets: list[WidgetConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "WidgetsFile":
        """Ensure all widget ids are unique."""
        ids = [w.id for w in self.widgets]
        if len(ids) != len(set(ids)):
            dupes = {i for i in ids if ids.count(i) > 1}
            raise ValueError(f"Duplicate widget ids: {dupes}")
        return self

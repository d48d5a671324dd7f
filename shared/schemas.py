"""Shared Pydantic schemas for Foundry History.

These are the immutable value types passed between the aggregation stages:
raw history records, the time window, step-function segments, buckets and
coalesced runs.
"""

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

SegmentValue = float | str | None


class ClassificationMode(str, Enum):
    """How bucket aggregates are turned into display categories."""

    NUMERIC = "numeric"
    THRESHOLD = "threshold"


class HistoryRecord(BaseModel):
    """A single state change reported by the host's history API."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(description="When the entity changed state")
    raw_state: str = Field(description="State string as reported by the host")


class Window(BaseModel):
    """The time span being visualized, ending at "now"."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def validate_order(self) -> "Window":
        """Reject windows that end before they start."""
        if self.end < self.start:
            raise ValueError(f"Window end {self.end} is before start {self.start}")
        return self

    @classmethod
    def ending_at(cls, end: datetime, hours: float) -> "Window":
        """Build the window covering the ``hours`` before ``end``."""
        return cls(start=end - timedelta(hours=hours), end=end)

    @property
    def duration_seconds(self) -> float:
        return (self.end - self.start).total_seconds()


class Segment(BaseModel):
    """A span over which the entity's value is constant."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    value: SegmentValue = None

    @model_validator(mode="after")
    def validate_span(self) -> "Segment":
        """Segments always cover a non-empty span."""
        if self.end <= self.start:
            raise ValueError(f"Segment must end after it starts ({self.start} >= {self.end})")
        return self


class Bucket(BaseModel):
    """One fixed-width slice of the window with its aggregate value.

    ``aggregate`` is the time-weighted mean (numeric mode, ``None`` when no
    parsable data overlapped the bucket) or the qualifying percentage
    (threshold mode, always 0-100). ``category`` is the plot y-coordinate in
    numeric mode and the resolved color in threshold mode.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    start: datetime
    end: datetime
    aggregate: float | None = None
    category: float | str | None = None


class Run(BaseModel):
    """A maximal sequence of consecutive buckets sharing one category."""

    model_config = ConfigDict(frozen=True)

    category: float | str | None
    bucket_count: int = Field(ge=1)


class RunRect(BaseModel):
    """Horizontal geometry of one coalesced run inside the status tube."""

    model_config = ConfigDict(frozen=True)

    x: float
    width: float
    color: str | None


class Threshold(BaseModel):
    """Upper bound (inclusive, percent) mapped to a display color."""

    model_config = ConfigDict(frozen=True)

    value: float
    color: str


class EntityHistory(BaseModel):
    """History records fetched for one entity over a window."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    records: tuple[HistoryRecord, ...] = ()
    unit: str | None = None

"""Time-weighted bucket aggregation over a segment sequence.

A single aggregator intersects every bucket with every segment and hands the
overlap to a strategy:

- ``NumericMean`` averages parsable values weighted by overlap. Buckets with
  no parsable data get ``None`` and render as a gap.
- ``QualifyingFraction`` measures the percentage of the bucket spent in a
  qualifying ("up") state. Missing data counts as not qualifying, so the
  percentage is always defined.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Protocol

from shared.schemas import Bucket, Segment, SegmentValue, Window

_UNSET = object()
_MIXED = object()


@dataclass(frozen=True)
class WeightAccumulator:
    """Running totals for one bucket."""

    weighted_sum: float = 0.0
    weighted_duration: float = 0.0
    # The single value seen so far, or _MIXED once two different values contributed.
    uniform_value: object = _UNSET


class AggregationStrategy(Protocol):
    """Mode-specific accumulation used by :func:`aggregate_buckets`."""

    def accumulate(
        self, acc: WeightAccumulator, value: SegmentValue, overlap: float
    ) -> WeightAccumulator: ...

    def finalize(self, acc: WeightAccumulator, bucket_duration: float) -> float | None: ...


@dataclass(frozen=True)
class NumericMean:
    """Overlap-weighted mean of numeric segment values."""

    def accumulate(
        self, acc: WeightAccumulator, value: SegmentValue, overlap: float
    ) -> WeightAccumulator:
        if value is None or isinstance(value, str):
            return acc
        uniform = acc.uniform_value
        if uniform is _UNSET:
            uniform = value
        elif uniform != value:
            uniform = _MIXED
        return WeightAccumulator(
            weighted_sum=acc.weighted_sum + value * overlap,
            weighted_duration=acc.weighted_duration + overlap,
            uniform_value=uniform,
        )

    def finalize(self, acc: WeightAccumulator, bucket_duration: float) -> float | None:
        if acc.weighted_duration <= 0:
            return None
        # A constant value is returned as-is so float rounding cannot drift it.
        if acc.uniform_value is not _UNSET and acc.uniform_value is not _MIXED:
            return float(acc.uniform_value)  # type: ignore[arg-type]
        return acc.weighted_sum / acc.weighted_duration


@dataclass(frozen=True)
class QualifyingFraction:
    """Percentage of the bucket spent in one of the qualifying states."""

    qualifying: frozenset[str]

    @classmethod
    def of(cls, states: Iterable[str]) -> "QualifyingFraction":
        return cls(qualifying=frozenset(states))

    def is_qualifying(self, value: SegmentValue) -> bool:
        return isinstance(value, str) and value in self.qualifying

    def accumulate(
        self, acc: WeightAccumulator, value: SegmentValue, overlap: float
    ) -> WeightAccumulator:
        if not self.is_qualifying(value):
            return acc
        return replace(acc, weighted_duration=acc.weighted_duration + overlap)

    def finalize(self, acc: WeightAccumulator, bucket_duration: float) -> float | None:
        if bucket_duration <= 0:
            return 0.0
        return acc.weighted_duration * 100.0 / bucket_duration


def overlap_seconds(
    seg_start: float, seg_end: float, bucket_start: float, bucket_end: float
) -> float:
    """Length of the intersection of two half-open spans, never negative."""
    return max(0.0, min(seg_end, bucket_end) - max(seg_start, bucket_start))


def _offsets(
    segments: Sequence[Segment], origin: datetime
) -> list[tuple[float, float, SegmentValue]]:
    """Express segment bounds as seconds from ``origin``."""
    return [
        (
            (s.start - origin).total_seconds(),
            (s.end - origin).total_seconds(),
            s.value,
        )
        for s in segments
    ]


def _aggregate_span(
    spans: Sequence[tuple[float, float, SegmentValue]],
    start: float,
    end: float,
    strategy: AggregationStrategy,
) -> float | None:
    acc = WeightAccumulator()
    for seg_start, seg_end, value in spans:
        overlap = overlap_seconds(seg_start, seg_end, start, end)
        if overlap <= 0:
            continue
        acc = strategy.accumulate(acc, value, overlap)
    return strategy.finalize(acc, end - start)


def aggregate_buckets(
    segments: Sequence[Segment],
    window: Window,
    bucket_count: int,
    strategy: AggregationStrategy,
) -> list[Bucket]:
    """Divide the window into equal buckets and aggregate each one.

    Args:
        segments: Ordered segments covering the window.
        window: The span to divide.
        bucket_count: Number of equal-duration buckets (>= 1).
        strategy: Accumulation rule (``NumericMean`` or ``QualifyingFraction``).

    Returns:
        ``bucket_count`` buckets with ``aggregate`` set and ``category`` unset.
    """
    if bucket_count < 1:
        raise ValueError(f"bucket_count must be >= 1, got {bucket_count}")

    spans = _offsets(segments, window.start)
    bucket_duration = window.duration_seconds / bucket_count

    buckets: list[Bucket] = []
    for i in range(bucket_count):
        b_start = i * bucket_duration
        b_end = (i + 1) * bucket_duration
        buckets.append(
            Bucket(
                index=i,
                start=window.start + timedelta(seconds=b_start),
                end=window.start + timedelta(seconds=b_end),
                aggregate=_aggregate_span(spans, b_start, b_end, strategy),
            )
        )
    return buckets


def summarize(
    segments: Sequence[Segment],
    window: Window,
    strategy: AggregationStrategy,
) -> float | None:
    """Aggregate the whole window as a single bucket.

    Gives the uptime percentage in threshold mode and the time-weighted mean
    in numeric mode.
    """
    spans = _offsets(segments, window.start)
    return _aggregate_span(spans, 0.0, window.duration_seconds, strategy)

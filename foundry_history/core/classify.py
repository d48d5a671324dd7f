"""Bucket classification: numeric plot coordinates and threshold colors."""

from __future__ import annotations

from collections.abc import Sequence

from shared.schemas import Bucket, Threshold
from shared.utils import resolve_color

# Used when no threshold matches (or none are configured).
FALLBACK_UP_COLOR = "#4CAF50"
FALLBACK_DOWN_COLOR = "#F44336"
FALLBACK_SPLIT_PCT = 50.0

# Padding applied to a degenerate (min == max) scale
DEGENERATE_SCALE_PADDING = 1.0


def numeric_scale(
    buckets: Sequence[Bucket],
    minimum: float | None = None,
    maximum: float | None = None,
) -> tuple[float, float]:
    """Compute the (min, max) used to normalize numeric aggregates.

    Explicit bounds win; missing bounds come from the non-null bucket
    aggregates. When the data lies on the wrong side of a single configured
    bound, the data-derived bound collapses onto it. With no data at all the
    scale defaults to ``(0, 1)``. A zero range is widened by one unit on each
    side.
    """
    values = [b.aggregate for b in buckets if b.aggregate is not None]
    if not values and minimum is None and maximum is None:
        return 0.0, 1.0

    low = minimum if minimum is not None else (min(values) if values else maximum)
    high = maximum if maximum is not None else (max(values) if values else minimum)
    assert low is not None and high is not None

    # A single configured bound stays put; the data-derived side moves to it.
    if low > high:
        if minimum is not None:
            high = low
        else:
            low = high

    if low == high:
        return low - DEGENERATE_SCALE_PADDING, high + DEGENERATE_SCALE_PADDING
    return low, high


def normalize_y(aggregate: float, scale: tuple[float, float], plot_height: float) -> float:
    """Map an aggregate onto SVG y (0 at the top, ``plot_height`` at the bottom)."""
    low, high = scale
    return plot_height - ((aggregate - low) / (high - low)) * plot_height


def classify_numeric(
    buckets: Sequence[Bucket],
    scale: tuple[float, float],
    plot_height: float,
) -> list[Bucket]:
    """Attach the plot y-coordinate to every bucket that has data."""
    return [
        b.model_copy(
            update={
                "category": (
                    normalize_y(b.aggregate, scale, plot_height)
                    if b.aggregate is not None
                    else None
                )
            }
        )
        for b in buckets
    ]


def threshold_color(pct: float, thresholds: Sequence[Threshold]) -> str:
    """Resolve the display color for a qualifying percentage.

    Thresholds are checked in ascending order of value; the first one with
    ``pct <= value`` wins. Without a match the color falls back to a 50% split.
    """
    for threshold in sorted(thresholds, key=lambda t: t.value):
        if pct <= threshold.value:
            return resolve_color(threshold.color)
    return FALLBACK_UP_COLOR if pct >= FALLBACK_SPLIT_PCT else FALLBACK_DOWN_COLOR


def classify_threshold(
    buckets: Sequence[Bucket],
    thresholds: Sequence[Threshold],
) -> list[Bucket]:
    """Attach the threshold color to every bucket."""
    return [
        b.model_copy(update={"category": threshold_color(b.aggregate or 0.0, thresholds)})
        for b in buckets
    ]

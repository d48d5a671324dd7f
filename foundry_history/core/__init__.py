"""History aggregation engine: segments, buckets, classification, runs."""

from foundry_history.core.aggregation import (
    AggregationStrategy,
    NumericMean,
    QualifyingFraction,
    WeightAccumulator,
    aggregate_buckets,
    summarize,
)
from foundry_history.core.classify import (
    classify_numeric,
    classify_threshold,
    normalize_y,
    numeric_scale,
    threshold_color,
)
from foundry_history.core.coalesce import coalesce_runs, expand_runs, layout_runs
from foundry_history.core.path import build_line_path
from foundry_history.core.segments import build_segments, value_parser

__all__ = [
    "AggregationStrategy",
    "NumericMean",
    "QualifyingFraction",
    "WeightAccumulator",
    "aggregate_buckets",
    "build_line_path",
    "build_segments",
    "classify_numeric",
    "classify_threshold",
    "coalesce_runs",
    "expand_runs",
    "layout_runs",
    "normalize_y",
    "numeric_scale",
    "summarize",
    "threshold_color",
    "value_parser",
]

"""Pure widget computation: (records, window, config) in, buckets/runs/summary out.

Nothing here performs I/O; the refresher feeds it whatever the history client
returned and stores the result.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime

from foundry_history.core.aggregation import (
    AggregationStrategy,
    NumericMean,
    QualifyingFraction,
    aggregate_buckets,
    summarize,
)
from foundry_history.core.classify import classify_numeric, classify_threshold, numeric_scale
from foundry_history.core.coalesce import coalesce_runs, layout_runs
from foundry_history.core.path import build_line_path
from foundry_history.core.segments import build_segments, value_parser
from foundry_history.schemas.result import SeriesResult, WidgetResult
from foundry_history.schemas.widget import WidgetConfig
from shared.schemas import ClassificationMode, EntityHistory, HistoryRecord, Window
from shared.utils import time_ago


def strategy_for(config: WidgetConfig) -> AggregationStrategy:
    """Pick the accumulation rule for the widget's mode."""
    if config.mode == ClassificationMode.NUMERIC:
        return NumericMean()
    return QualifyingFraction.of(config.ok)


def compute_series(
    entity_id: str,
    records: Sequence[HistoryRecord],
    window: Window,
    config: WidgetConfig,
    live_state: str | None = None,
    unit: str | None = None,
    color: str | None = None,
) -> SeriesResult:
    """Run the full aggregation pipeline for one entity.

    Args:
        entity_id: Entity the records belong to.
        records: Raw history records (any order, possibly out of window).
        window: The span to aggregate.
        config: Widget configuration (mode, bucket count, thresholds, scale).
        live_state: Current raw state, used when ``records`` is empty.
        unit: Unit of measurement reported by the host, if any.
        color: Pen color for numeric series.

    Returns:
        The classified buckets plus the mode-specific drawing data.
    """
    parse = value_parser(config.mode)
    live_value = parse(live_state) if live_state is not None else None
    segments = build_segments(records, window, live_value, parse)

    strategy = strategy_for(config)
    buckets = aggregate_buckets(segments, window, config.bucket_count, strategy)
    summary = summarize(segments, window, strategy)

    if config.mode == ClassificationMode.NUMERIC:
        scale = numeric_scale(buckets, config.min, config.max)
        buckets = classify_numeric(buckets, scale, config.plot_height)
        return SeriesResult(
            entity_id=entity_id,
            unit=unit,
            color=color,
            buckets=buckets,
            summary=summary,
            path=build_line_path(buckets, config.plot_width),
            scale=scale,
        )

    buckets = classify_threshold(buckets, config.color_thresholds)
    runs = coalesce_runs(buckets)
    rects, dividers = layout_runs(runs, config.bucket_count, config.plot_width)
    return SeriesResult(
        entity_id=entity_id,
        unit=unit,
        buckets=buckets,
        summary=summary,
        runs=runs,
        rects=rects,
        dividers=dividers,
    )


def compute_widget(
    config: WidgetConfig,
    window: Window,
    histories: Mapping[str, EntityHistory],
    live_states: Mapping[str, str | None],
    generated_at: datetime | None = None,
) -> WidgetResult:
    """Compute every series of a widget for one refresh.

    Entities missing from ``histories`` are treated as having no records and
    fall back to their live state.
    """
    entity_ids = (
        config.all_entities if config.mode == ClassificationMode.NUMERIC else [config.entity]
    )

    series = []
    for index, entity_id in enumerate(entity_ids):
        history = histories.get(entity_id) or EntityHistory(entity_id=entity_id)
        series.append(
            compute_series(
                entity_id,
                history.records,
                window,
                config,
                live_state=live_states.get(entity_id),
                unit=history.unit,
                color=(
                    config.series_color(index)
                    if config.mode == ClassificationMode.NUMERIC
                    else None
                ),
            )
        )

    live_state = live_states.get(config.entity)
    return WidgetResult(
        widget_id=config.id,
        mode=config.mode,
        window=window,
        generated_at=generated_at or window.end,
        series=series,
        live_state=live_state,
        status_text=config.status_text(live_state),
        footer_start=time_ago(window.start, window.end),
    )

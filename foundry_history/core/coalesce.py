"""Run-length coalescing of classified buckets for the status tube."""

from __future__ import annotations

from collections.abc import Sequence

from shared.schemas import Bucket, Run, RunRect


def coalesce_runs(buckets: Sequence[Bucket]) -> list[Run]:
    """Group consecutive buckets with the same category into runs."""
    runs: list[Run] = []
    if not buckets:
        return runs

    category = buckets[0].category
    count = 1
    for bucket in buckets[1:]:
        if bucket.category == category:
            count += 1
        else:
            runs.append(Run(category=category, bucket_count=count))
            category = bucket.category
            count = 1
    runs.append(Run(category=category, bucket_count=count))
    return runs


def expand_runs(runs: Sequence[Run]) -> list[float | str | None]:
    """Inverse of :func:`coalesce_runs`: the per-bucket category sequence."""
    categories: list[float | str | None] = []
    for run in runs:
        categories.extend([run.category] * run.bucket_count)
    return categories


def layout_runs(
    runs: Sequence[Run],
    bucket_count: int,
    width: float,
) -> tuple[list[RunRect], list[float]]:
    """Lay runs out left to right across a tube ``width`` units wide.

    Returns:
        (rects, dividers): one rectangle per run, and the x position of every
        boundary between two runs (there is no divider after the last run).
    """
    bar_width = width / bucket_count if bucket_count else 0.0
    rects: list[RunRect] = []
    dividers: list[float] = []

    x = 0.0
    for idx, run in enumerate(runs):
        run_width = run.bucket_count * bar_width
        color = run.category if isinstance(run.category, str) else None
        rects.append(RunRect(x=x, width=run_width, color=color))
        x += run_width
        if idx < len(runs) - 1:
            dividers.append(x)
    return rects, dividers

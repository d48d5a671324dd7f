"""SVG line path construction for numeric sparklines."""

from __future__ import annotations

from collections.abc import Sequence

from shared.schemas import Bucket


def _fmt(value: float) -> str:
    return f"{value:.2f}"


def bucket_x(index: int, bucket_count: int, plot_width: float) -> float:
    """Horizontal position of a bucket; the first and last touch the edges."""
    if bucket_count <= 1:
        return 0.0
    return index * plot_width / (bucket_count - 1)


def build_line_path(buckets: Sequence[Bucket], plot_width: float) -> str:
    """Build the ``d`` attribute of the sparkline path.

    Buckets whose ``category`` (y) is None break the line: the next bucket
    with data starts a new sub-path with ``M``. Returns an empty string when
    no bucket has data.
    """
    commands: list[str] = []
    pen_down = False
    count = len(buckets)
    for bucket in buckets:
        y = bucket.category
        if y is None or isinstance(y, str):
            pen_down = False
            continue
        x = bucket_x(bucket.index, count, plot_width)
        commands.append(f"{'L' if pen_down else 'M'} {_fmt(x)} {_fmt(y)}")
        pen_down = True
    return " ".join(commands)

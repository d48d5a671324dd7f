"""Step-function segment construction from raw history records.

Turns an unsorted list of state changes into contiguous segments that tile
the window exactly: every instant in ``[window.start, window.end)`` is
covered by one segment, with no gaps or overlaps.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from shared.schemas import ClassificationMode, HistoryRecord, Segment, SegmentValue, Window
from shared.utils import parse_numeric_state

ValueParser = Callable[[str], SegmentValue]


def _keep_raw(raw_state: str) -> SegmentValue:
    return raw_state


def value_parser(mode: ClassificationMode) -> ValueParser:
    """Return the state parser for a classification mode.

    Numeric mode parses floats (None when unparsable); threshold mode keeps
    the raw string so the caller can classify it.
    """
    if mode == ClassificationMode.NUMERIC:
        return parse_numeric_state
    return _keep_raw


def build_segments(
    records: Sequence[HistoryRecord],
    window: Window,
    live_value: SegmentValue,
    parse: ValueParser = _keep_raw,
) -> list[Segment]:
    """Build the ordered segment list covering ``window``.

    Args:
        records: History records, in any order. Records at or before the
            window start only establish the carried-in value; records at or
            after the window end are ignored.
        window: The span to cover.
        live_value: Value used for the whole window when there are no records.
        parse: Converts each record's raw state into a segment value.

    Returns:
        Segments in ascending time order tiling the window. Empty only for a
        zero-length window.
    """
    if window.end <= window.start:
        return []

    if not records:
        return [Segment(start=window.start, end=window.end, value=live_value)]

    ordered = sorted(records, key=lambda r: r.timestamp)

    segments: list[Segment] = []
    current = parse(ordered[0].raw_state)
    cursor = window.start

    for record in ordered:
        if record.timestamp >= window.end:
            break
        value = parse(record.raw_state)
        if record.timestamp <= cursor:
            current = value
            continue
        segments.append(Segment(start=cursor, end=record.timestamp, value=current))
        current = value
        cursor = record.timestamp

    if cursor < window.end:
        segments.append(Segment(start=cursor, end=window.end, value=current))

    return segments

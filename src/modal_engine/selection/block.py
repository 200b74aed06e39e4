"""Rectangular (blockwise) geometry over multi-caret selections."""

from __future__ import annotations

from typing import List, NamedTuple, Sequence, Tuple

from modal_engine.host.protocol import TextGeometry, line_length

Span = Tuple[int, int]


class BlockSegment(NamedTuple):
    line: int
    start: int
    end: int


def _trimmed(geometry: TextGeometry, spans: Sequence[Span]) -> List[Span]:
    """Normalize each span and pull an end sitting at column 0 back one."""

    result = []
    for first, second in spans:
        start, end = min(first, second), max(first, second)
        if end > start and geometry.offset_to_position(end).column == 0:
            end -= 1
        result.append((start, end))
    return sorted(result, key=lambda span: span[0])


def is_block(geometry: TextGeometry, selections: Sequence[Span]) -> bool:
    """Whether per-caret ``(start, end)`` spans form one rectangle.

    Every span must sit on a single line, all spans must share the start
    column, each end column must equal the widest end column clamped to its
    own line's length, and the lines must be consecutive.
    """

    if not selections:
        return False
    spans = _trimmed(geometry, selections)
    first = geometry.offset_to_position(spans[0][0])
    max_column = max(geometry.offset_to_position(end).column for _, end in spans)

    for index, (start, end) in enumerate(spans):
        start_pos = geometry.offset_to_position(start)
        end_pos = geometry.offset_to_position(end)
        if start_pos.line != end_pos.line:
            return False
        if start_pos.column != first.column:
            return False
        if end_pos.column != min(max_column, line_length(geometry, end_pos.line)):
            return False
        if start_pos.line != first.line + index:
            return False
    return True


def compute_bounds(geometry: TextGeometry, selections: Sequence[Span]) -> Span:
    """Top-left start offset and the bottom line's offset at the widest column."""

    if not selections:
        raise ValueError("block bounds need at least one selection")
    spans = sorted(
        ((min(a, b), max(a, b)) for a, b in selections), key=lambda span: span[0]
    )
    max_column = max(geometry.offset_to_position(end).column for _, end in spans)
    last_line = geometry.offset_to_position(spans[-1][0]).line
    return spans[0][0], geometry.position_to_offset(last_line, max_column)


def block_segments(
    geometry: TextGeometry,
    anchor: int,
    head: int,
    adj: int,
    *,
    to_line_end: bool = False,
) -> List[BlockSegment]:
    """Per-line raw selections displaying the block between ``anchor`` and ``head``.

    Short lines inside the rectangle are clamped to their own length.
    """

    anchor_pos = geometry.offset_to_position(anchor)
    head_pos = geometry.offset_to_position(head)
    top, bottom = sorted((anchor_pos.line, head_pos.line))
    left, right = sorted((anchor_pos.column, head_pos.column))

    segments = []
    for line in range(top, bottom + 1):
        line_start = geometry.line_start_offset(line)
        length = line_length(geometry, line)
        right_edge = length if to_line_end else min(right + adj, length)
        segments.append(
            BlockSegment(line, line_start + min(left, length), line_start + right_edge)
        )
    return segments


__all__ = ["BlockSegment", "block_segments", "compute_bounds", "is_block"]

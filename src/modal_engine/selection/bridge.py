"""Translation between host raw selections and semantic visual ranges.

Every function here is pure: it reads geometry from the host and returns
values, never mutating carets. ``adj`` is the inclusive/exclusive
adjustment (``EngineConfig.selection_adj``) and must be the same value on
both sides of a round trip.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from modal_engine.host.protocol import (
    TextGeometry,
    line_end_for_offset,
    line_of,
    line_start_for_offset,
)
from modal_engine.modes.base_mode import SubMode

from .block import block_segments, compute_bounds, is_block
from .ranges import RawSelection, SemanticSelection, VisualRange


def lead_selection_offset(
    selection: RawSelection, kind: SubMode = SubMode.CHARACTERWISE, adj: int = 1
) -> int:
    """Offset a selection grows from: the end opposite the caret.

    Without a selection this is the caret itself.
    """

    if selection.is_empty:
        return selection.offset
    return _semantic_range(selection, kind, adj).anchor


def _semantic_range(selection: RawSelection, kind: SubMode, adj: int) -> VisualRange:
    start, end = selection.normalized
    if start == end:
        return VisualRange(start, start, kind)
    if kind is SubMode.LINEWISE:
        # The raw end of a linewise selection is one past the line's newline.
        last = end - 1
    else:
        last = max(start, end - adj)
    if selection.is_backward:
        return VisualRange(last, start, kind)
    return VisualRange(start, last, kind)


def classify_sub_mode(
    geometry: TextGeometry, selections: Sequence[Tuple[int, int]]
) -> SubMode:
    """Shape of selections the engine did not create itself."""

    spans = [(min(a, b), max(a, b)) for a, b in selections]
    if len(spans) > 1 and is_block(geometry, spans):
        return SubMode.BLOCKWISE
    if spans and all(_covers_whole_lines(geometry, start, end) for start, end in spans):
        return SubMode.LINEWISE
    return SubMode.CHARACTERWISE


def _covers_whole_lines(geometry: TextGeometry, start: int, end: int) -> bool:
    if start == end or start != line_start_for_offset(geometry, start):
        return False
    return end == line_end_for_offset(geometry, end) or (
        end == line_end_for_offset(geometry, end - 1) + 1
    )


def to_semantic(
    geometry: TextGeometry,
    raw: Sequence[RawSelection],
    sub_mode: SubMode = SubMode.NONE,
    adj: int = 1,
) -> SemanticSelection:
    """Read every caret's raw selection as semantic ranges.

    With ``SubMode.NONE`` the shape is classified from geometry. A block is
    reported as a single range spanning its bounds; other shapes yield one
    range per caret.
    """

    kind = sub_mode
    if kind is SubMode.NONE:
        kind = classify_sub_mode(geometry, [s.normalized for s in raw])
    if kind is SubMode.BLOCKWISE and raw:
        start, end = compute_bounds(geometry, [s.normalized for s in raw])
        return SemanticSelection((VisualRange(start, max(start, end - adj), kind),), kind)
    return SemanticSelection(tuple(_semantic_range(s, kind, adj) for s in raw), kind)


def from_semantic(
    anchor: int,
    head: int,
    kind: SubMode,
    adj: int = 1,
    geometry: Optional[TextGeometry] = None,
) -> Tuple[int, int]:
    """Raw ``(start, end)`` the host should display for one caret.

    Linewise and blockwise shapes need ``geometry``. For a block this is the
    segment on the head's line; ``block_segments`` gives the full rectangle.
    """

    start, end = min(anchor, head), max(anchor, head)
    if kind is SubMode.LINEWISE:
        if geometry is None:
            raise ValueError("linewise selections need text geometry")
        line_end = line_end_for_offset(geometry, end)
        return (
            line_start_for_offset(geometry, start),
            min(line_end + 1, geometry.text_length),
        )
    if kind is SubMode.BLOCKWISE:
        if geometry is None:
            raise ValueError("blockwise selections need text geometry")
        head_line = line_of(geometry, head)
        for segment in block_segments(geometry, anchor, head, adj):
            if segment.line == head_line:
                return segment.start, segment.end
    end += adj
    if geometry is not None:
        end = min(end, geometry.text_length)
    return start, end


__all__ = [
    "classify_sub_mode",
    "from_semantic",
    "lead_selection_offset",
    "to_semantic",
]

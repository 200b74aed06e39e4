"""Caret motions.

Each motion returns the target offset for one caret; the dispatcher moves
the caret and redraws the visual selection.
"""

from __future__ import annotations

from typing import Optional

from modal_engine.host.protocol import HostCaret, line_length
from modal_engine.modes.base_mode import ModeContext
from modal_engine.selection.ranges import LAST_COLUMN


def _last_column(context: ModeContext, line: int) -> int:
    # Normal and visual mode rest on characters, never past the last one.
    return max(line_length(context.session.host, line) - 1, 0)


def _horizontal(context: ModeContext, caret: HostCaret, column: int) -> int:
    host = context.session.host
    line = host.offset_to_position(caret.offset).line
    column = max(0, min(column, _last_column(context, line)))
    context.session.caret_state(caret).remembered_column = column
    return host.position_to_offset(line, column)


def move_left(context: ModeContext, caret: HostCaret, count: int) -> int:
    column = context.session.host.offset_to_position(caret.offset).column
    return _horizontal(context, caret, column - count)


def move_right(context: ModeContext, caret: HostCaret, count: int) -> int:
    column = context.session.host.offset_to_position(caret.offset).column
    return _horizontal(context, caret, column + count)


def line_start(context: ModeContext, caret: HostCaret, count: int) -> int:
    del count
    return _horizontal(context, caret, 0)


def line_end(context: ModeContext, caret: HostCaret, count: int) -> int:
    """``$``: end of the line ``count - 1`` lines down, sticking to line ends."""

    host = context.session.host
    line = min(host.offset_to_position(caret.offset).line + count - 1, host.line_count - 1)
    context.session.caret_state(caret).remembered_column = LAST_COLUMN
    return host.position_to_offset(line, _last_column(context, line))


def _vertical(context: ModeContext, caret: HostCaret, delta: int) -> Optional[int]:
    host = context.session.host
    position = host.offset_to_position(caret.offset)
    line = max(0, min(position.line + delta, host.line_count - 1))
    if line == position.line:
        return None
    state = context.session.caret_state(caret)
    if state.remembered_column is None:
        state.remembered_column = position.column
    column = min(state.remembered_column, _last_column(context, line))
    return host.position_to_offset(line, column)


def move_down(context: ModeContext, caret: HostCaret, count: int) -> Optional[int]:
    return _vertical(context, caret, count)


def move_up(context: ModeContext, caret: HostCaret, count: int) -> Optional[int]:
    return _vertical(context, caret, -count)


__all__ = ["line_end", "line_start", "move_down", "move_left", "move_right", "move_up"]

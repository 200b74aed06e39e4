"""High-level editing verbs reused across modes."""

from .core import enter_insert_mode, exit_insert_mode, noop_action
from .motion import line_end, line_start, move_down, move_left, move_right, move_up
from .visual import (
    change_selection,
    delete_selection,
    exit_select,
    exit_visual,
    resume_last_visual,
    select_blockwise,
    select_characterwise,
    select_enter,
    select_linewise,
    swap_ends,
    swap_visual_selections,
    toggle_blockwise,
    toggle_characterwise,
    toggle_linewise,
    yank_line,
    yank_selection,
)

__all__ = [
    "change_selection",
    "delete_selection",
    "enter_insert_mode",
    "exit_insert_mode",
    "exit_select",
    "exit_visual",
    "line_end",
    "line_start",
    "move_down",
    "move_left",
    "move_right",
    "move_up",
    "noop_action",
    "resume_last_visual",
    "select_blockwise",
    "select_characterwise",
    "select_enter",
    "select_linewise",
    "swap_ends",
    "swap_visual_selections",
    "toggle_blockwise",
    "toggle_characterwise",
    "toggle_linewise",
    "yank_line",
    "yank_selection",
]

"""Actions dedicated to visual and select mode."""

from __future__ import annotations

from typing import Sequence

from modal_engine.buffer.registers import UNNAMED
from modal_engine.host.protocol import line_end_for_offset, line_start_for_offset
from modal_engine.modes.base_mode import (
    Invocation,
    ModeContext,
    ModeResult,
    OperatorTarget,
    SubMode,
)


def _toggle(context: ModeContext, invocation: Invocation, sub_mode: SubMode) -> ModeResult:
    if context.visual.toggle(sub_mode, invocation.raw_count):
        return ModeResult(consumed=True, status="visual_toggle")
    return ModeResult(consumed=True, status="visual_unavailable")


def toggle_characterwise(context: ModeContext, invocation: Invocation) -> ModeResult:
    return _toggle(context, invocation, SubMode.CHARACTERWISE)


def toggle_linewise(context: ModeContext, invocation: Invocation) -> ModeResult:
    return _toggle(context, invocation, SubMode.LINEWISE)


def toggle_blockwise(context: ModeContext, invocation: Invocation) -> ModeResult:
    return _toggle(context, invocation, SubMode.BLOCKWISE)


def exit_visual(context: ModeContext, invocation: Invocation) -> ModeResult:
    del invocation
    context.visual.exit_visual()
    return ModeResult(consumed=True, status="visual_exit")


def swap_ends(context: ModeContext, invocation: Invocation) -> ModeResult:
    del invocation
    session = context.session
    carets = (
        [session.primary_caret()] if session.stack.in_visual_block else session.carets()
    )
    for caret in carets:
        context.visual.swap_ends(caret)
    return ModeResult(consumed=True, status="visual_swap_ends")


def resume_last_visual(context: ModeContext, invocation: Invocation) -> ModeResult:
    del invocation
    if context.visual.resume_last_visual():
        return ModeResult(consumed=True, status="visual_resume")
    return ModeResult(consumed=True, status="visual_unavailable")


def swap_visual_selections(context: ModeContext, invocation: Invocation) -> ModeResult:
    del invocation
    if context.visual.swap_visual_selections():
        return ModeResult(consumed=True, status="visual_swap")
    return ModeResult(consumed=True, status="visual_unavailable")


# ----------------------------------------------------------------------
# Select mode
# ----------------------------------------------------------------------
def _enter_select(context: ModeContext, sub_mode: SubMode) -> ModeResult:
    session = context.session
    visual = context.visual
    host = session.host
    visual.enter_select(sub_mode)
    if sub_mode is SubMode.BLOCKWISE:
        carets = [session.primary_caret()]
    else:
        carets = session.carets()
    for caret in carets:
        offset = caret.offset
        if sub_mode is SubMode.LINEWISE:
            start = line_start_for_offset(host, offset)
            visual.set_selection(
                caret, start, line_end_for_offset(host, offset), move_caret=True
            )
        else:
            visual.set_selection(
                caret, offset, min(offset + 1, host.text_length), move_caret=True
            )
    return ModeResult(consumed=True, status="select_enter")


def select_characterwise(context: ModeContext, invocation: Invocation) -> ModeResult:
    del invocation
    return _enter_select(context, SubMode.CHARACTERWISE)


def select_linewise(context: ModeContext, invocation: Invocation) -> ModeResult:
    del invocation
    return _enter_select(context, SubMode.LINEWISE)


def select_blockwise(context: ModeContext, invocation: Invocation) -> ModeResult:
    del invocation
    return _enter_select(context, SubMode.BLOCKWISE)


def exit_select(context: ModeContext, invocation: Invocation) -> ModeResult:
    del invocation
    context.visual.exit_select(adjust_caret_position=True)
    return ModeResult(consumed=True, status="select_exit")


def select_enter(context: ModeContext, invocation: Invocation) -> ModeResult:
    del invocation
    context.visual.select_enter()
    return ModeResult(consumed=True, status="select_newline")


# ----------------------------------------------------------------------
# Operators
# ----------------------------------------------------------------------
def _collect(context: ModeContext, targets: Sequence[OperatorTarget]) -> str:
    host = context.session.host
    return "\n".join(host.get_text(target.start, target.end) for target in targets)


def _register_kind(targets: Sequence[OperatorTarget]) -> SubMode:
    return targets[0].kind if targets else SubMode.CHARACTERWISE


def yank_selection(
    context: ModeContext, invocation: Invocation, targets: Sequence[OperatorTarget]
) -> ModeResult:
    del invocation
    if not targets:
        return ModeResult(consumed=True, status="yank_empty")
    text = _collect(context, targets)
    context.registers.yank_to(UNNAMED, text, kind=_register_kind(targets))
    context.bus.emit("yank", text)
    return ModeResult(consumed=True, status="yank", message=text)


def delete_selection(
    context: ModeContext, invocation: Invocation, targets: Sequence[OperatorTarget]
) -> ModeResult:
    del invocation
    if not targets:
        return ModeResult(consumed=True, status="delete_empty")
    session = context.session
    text = _collect(context, targets)
    context.registers.yank_to(UNNAMED, text, kind=_register_kind(targets))
    with session.guard.hold():
        for target in sorted(targets, key=lambda t: t.start, reverse=True):
            target.caret.remove_selection()
            session.host.replace_text(target.start, target.end, "")
    return ModeResult(consumed=True, status="delete", message=text)


def change_selection(
    context: ModeContext, invocation: Invocation, targets: Sequence[OperatorTarget]
) -> ModeResult:
    result = delete_selection(context, invocation, targets)
    return ModeResult(consumed=True, status="change", message=result.message)


def yank_line(
    context: ModeContext, invocation: Invocation, targets: Sequence[OperatorTarget]
) -> ModeResult:
    """``Y``: yank whole lines, in normal mode ``count`` lines per caret."""

    result = yank_selection(context, invocation, targets)
    return ModeResult(consumed=True, status="yank_line", message=result.message)


__all__ = [
    "change_selection",
    "delete_selection",
    "exit_select",
    "exit_visual",
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

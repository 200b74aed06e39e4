"""Core action implementations shared across modes."""

from __future__ import annotations

from modal_engine.host.protocol import line_start_for_offset
from modal_engine.modes.base_mode import Invocation, ModeContext, ModeResult


def enter_insert_mode(context: ModeContext, invocation: Invocation) -> ModeResult:
    del invocation
    context.visual.enter_insert()
    return ModeResult(consumed=True, message="enter_insert")


def exit_insert_mode(context: ModeContext, invocation: Invocation) -> ModeResult:
    """Leave insert mode; the caret steps back onto the last inserted character."""

    del invocation
    session = context.session
    session.stack.unwind()
    host = session.host
    with session.guard.hold():
        for caret in session.carets():
            offset = caret.offset
            if offset > line_start_for_offset(host, offset):
                caret.move_to_offset(offset - 1)
    context.bus.emit("mode", session.stack.current())
    return ModeResult(consumed=True, message="exit_insert")


def noop_action(context: ModeContext, invocation: Invocation) -> ModeResult:
    del context, invocation
    return ModeResult(consumed=True, status="noop")


__all__ = ["enter_insert_mode", "exit_insert_mode", "noop_action"]

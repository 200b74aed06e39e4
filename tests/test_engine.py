from __future__ import annotations

import pytest

from modal_engine.engine import ModalEngine
from modal_engine.host import MemoryEditor
from modal_engine.keymaps import KeyStroke, ShortcutOwner
from modal_engine.modes import KeyInput, Mode
from modal_engine.runtime import EngineConfig


def test_open_session_is_idempotent_per_host() -> None:
    engine = ModalEngine()
    editor = MemoryEditor("text")

    first = engine.open_session(editor, name="main")
    second = engine.open_session(editor)

    assert first is second
    assert len(engine) == 1
    assert first.session.name == "main"


def test_unknown_host_raises() -> None:
    engine = ModalEngine()

    with pytest.raises(KeyError):
        engine.get(MemoryEditor())


def test_sessions_keep_their_own_modes() -> None:
    engine = ModalEngine()
    left = MemoryEditor("left")
    right = MemoryEditor("right")
    engine.open_session(left)
    engine.open_session(right)

    engine.handle_keystroke(left, KeyInput("v", text="v"))

    assert engine.mode(left) is Mode.VISUAL
    assert engine.mode(right) is Mode.NORMAL


def test_sessions_share_one_register_bank() -> None:
    engine = ModalEngine()
    left = MemoryEditor("left")
    right = MemoryEditor("right")

    assert engine.open_session(left).context.registers is engine.registers
    assert engine.open_session(right).context.registers is engine.registers


def test_declined_keys_are_not_consumed() -> None:
    engine = ModalEngine()
    editor = MemoryEditor("text")
    engine.open_session(editor)
    editor.lookup_active = True

    result = engine.handle_keystroke(editor, KeyInput("down"))

    assert not result.consumed
    assert result.status == "declined"
    assert result.message == "lookup"


def test_disabled_engine_declines_everything() -> None:
    engine = ModalEngine(EngineConfig(enabled=False))
    editor = MemoryEditor("text")
    engine.open_session(editor)

    result = engine.handle_keystroke(editor, KeyInput("v", text="v"))

    assert not result.consumed
    assert engine.mode(editor) is Mode.NORMAL


def test_host_conflicts_are_recorded_in_the_shared_table() -> None:
    engine = ModalEngine()
    editor = MemoryEditor("text")
    engine.open_session(editor)
    stroke = KeyStroke("s", ("ctrl",))
    editor.bind_host_action(stroke, "host.save")

    result = engine.handle_keystroke(editor, KeyInput("s", modifiers=("ctrl",)))

    assert result.consumed
    assert engine.conflicts.get(stroke) is ShortcutOwner.UNDEFINED

    engine.conflicts.set(stroke, ShortcutOwner.HOST)
    assert not engine.handle_keystroke(editor, KeyInput("s", modifiers=("ctrl",))).consumed


def test_closed_session_ignores_host_notifications() -> None:
    engine = ModalEngine()
    editor = MemoryEditor("hello world")
    entry = engine.open_session(editor)

    assert engine.close_session(editor)
    assert not engine.close_session(editor)

    editor.primary_caret().drag(0, 5)

    assert entry.closed
    assert entry.session.mode is Mode.NORMAL
    assert len(engine) == 0


def test_configured_timeout_reaches_pending_sequences() -> None:
    engine = ModalEngine(EngineConfig(pending_timeout_ms=250))
    editor = MemoryEditor("text")
    engine.open_session(editor)

    result = engine.handle_keystroke(editor, KeyInput("g", text="g"))

    assert result.status == "pending"
    assert result.timeout_ms == 250

from __future__ import annotations

from typing import List

from modal_engine.engine import EngineSession, ModalEngine
from modal_engine.host import MemoryEditor
from modal_engine.modes import KeyInput, Mode, SubMode

TEXT = "hello world\nsecond line\n"


def make_engine(text: str = TEXT, **editor_kwargs: object) -> tuple[ModalEngine, MemoryEditor, EngineSession]:
    engine = ModalEngine()
    editor = MemoryEditor(text, **editor_kwargs)
    return engine, editor, engine.open_session(editor)


def press(engine: ModalEngine, editor: MemoryEditor, *keys: str) -> None:
    for key in keys:
        engine.handle_keystroke(editor, KeyInput(key=key, text=key if len(key) == 1 else None))


def test_engine_driven_selection_changes_are_not_reported_back() -> None:
    engine, editor, entry = make_engine()
    calls: List[bool] = []
    entry.visual.on_host_selection_changed = lambda reset=False: calls.append(reset)

    press(engine, editor, "v", "l", "l", "j", "escape", "V", "k", "escape")

    assert calls == []
    assert not entry.session.guard.held
    assert entry.session.mode is Mode.NORMAL


def test_mouse_drag_enters_visual_mode() -> None:
    engine, editor, entry = make_engine()

    editor.primary_caret().drag(0, 5)

    assert engine.mode(editor) is Mode.VISUAL
    assert engine.sub_mode(editor) is SubMode.CHARACTERWISE
    caret = editor.primary_caret()
    assert (caret.selection_start, caret.selection_end) == (0, 5)
    assert caret.offset == 4
    assert entry.session.caret_state(caret).anchor == 0


def test_dragging_whole_lines_enters_linewise_visual() -> None:
    engine, editor, _ = make_engine()

    editor.primary_caret().drag(0, 12)

    assert engine.sub_mode(editor) is SubMode.LINEWISE


def test_clearing_a_drag_returns_to_normal() -> None:
    engine, editor, _ = make_engine()
    caret = editor.primary_caret()
    caret.drag(0, 5)

    caret.remove_selection()

    assert engine.mode(editor) is Mode.NORMAL


def test_clearing_a_drag_resumes_insert_mode() -> None:
    engine, editor, entry = make_engine()
    press(engine, editor, "i")
    caret = editor.primary_caret()

    caret.drag(0, 5)
    assert engine.mode(editor) is Mode.VISUAL
    assert entry.session.mode_before_non_modal_selection is Mode.INSERT

    caret.remove_selection()

    assert engine.mode(editor) is Mode.INSERT
    assert len(entry.session.stack) == 2


def test_template_selection_enters_select_mode() -> None:
    engine, editor, _ = make_engine()
    editor.template_active = True

    editor.primary_caret().drag(0, 5)

    assert engine.mode(editor) is Mode.SELECT
    assert editor.primary_caret().offset == 5


def test_one_line_editor_selection_enters_select_mode() -> None:
    engine, editor, _ = make_engine("single line", one_line=True)

    editor.primary_caret().drag(7, 11)

    assert engine.mode(editor) is Mode.SELECT


def test_reset_caret_to_insert_starts_inserting() -> None:
    engine, editor, _ = make_engine()

    assert engine.on_host_selection_changed(editor, reset_caret_to_insert=True)

    assert engine.mode(editor) is Mode.INSERT


def test_explicit_notification_is_ignored_while_the_guard_is_held() -> None:
    engine, editor, entry = make_engine()
    editor.primary_caret().set_selection(0, 5)
    assert engine.mode(editor) is Mode.VISUAL
    press(engine, editor, "escape")

    with entry.session.guard.hold():
        editor.primary_caret().set_selection(0, 5)
        assert not engine.on_host_selection_changed(editor)

    assert engine.mode(editor) is Mode.NORMAL


def test_extending_a_drag_still_resumes_insert_mode() -> None:
    engine, editor, entry = make_engine()
    press(engine, editor, "i")
    caret = editor.primary_caret()

    caret.drag(0, 3)
    caret.drag(0, 5)
    assert engine.mode(editor) is Mode.VISUAL
    assert entry.session.mode_before_non_modal_selection is Mode.INSERT

    caret.remove_selection()

    assert engine.mode(editor) is Mode.INSERT
    assert entry.session.mode_before_non_modal_selection is None


def test_drag_after_leaving_an_earlier_drag_does_not_resume_insert() -> None:
    engine, editor, _ = make_engine()
    press(engine, editor, "i")
    caret = editor.primary_caret()
    caret.drag(0, 5)
    press(engine, editor, "escape")
    assert engine.mode(editor) is Mode.NORMAL

    press(engine, editor, "v")
    caret.drag(0, 3)
    caret.remove_selection()

    assert engine.mode(editor) is Mode.NORMAL

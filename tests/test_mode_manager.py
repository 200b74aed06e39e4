from __future__ import annotations

from typing import List

from modal_engine.buffer import UNNAMED
from modal_engine.engine import EngineSession, ModalEngine
from modal_engine.host import MemoryEditor
from modal_engine.modes import KeyInput, Mode, ModeResult, SubMode
from modal_engine.selection import LAST_COLUMN, VisualChange


def make_engine(text: str = "hello world\n", *, offset: int = 0) -> tuple[ModalEngine, MemoryEditor, EngineSession]:
    engine = ModalEngine()
    editor = MemoryEditor(text)
    editor.primary_caret().move_to_offset(offset)
    return engine, editor, engine.open_session(editor)


def key(name: str, *modifiers: str) -> KeyInput:
    text = name if len(name) == 1 and not modifiers else None
    return KeyInput(key=name, modifiers=modifiers, text=text)


def press(engine: ModalEngine, editor: MemoryEditor, *keys: str | KeyInput) -> List[ModeResult]:
    return [
        engine.handle_keystroke(editor, item if isinstance(item, KeyInput) else key(item))
        for item in keys
    ]


def selection_of(editor: MemoryEditor) -> tuple[int, int]:
    caret = editor.primary_caret()
    return caret.selection_start, caret.selection_end


def test_insert_and_escape_step_back_one_character() -> None:
    engine, editor, _ = make_engine(offset=3)

    press(engine, editor, "i")
    assert engine.mode(editor) is Mode.INSERT

    press(engine, editor, "escape")
    assert engine.mode(editor) is Mode.NORMAL
    assert editor.primary_caret().offset == 2


def test_typing_in_insert_mode_is_left_to_the_host() -> None:
    engine, editor, _ = make_engine()
    press(engine, editor, "i")

    result = press(engine, editor, "a")[0]

    assert not result.consumed
    assert result.status == "passthrough"


def test_count_prefix_repeats_motions() -> None:
    engine, editor, entry = make_engine()

    results = press(engine, editor, "3")
    assert results[0].status == "count"
    assert entry.manager.count_prefix == "3"

    press(engine, editor, "l")

    assert editor.primary_caret().offset == 3
    assert entry.manager.count_prefix == ""


def test_multi_digit_count_is_clamped_by_the_motion() -> None:
    engine, editor, _ = make_engine()

    press(engine, editor, "1", "0", "l")

    assert editor.primary_caret().offset == 10


def test_leading_zero_is_the_line_start_motion() -> None:
    engine, editor, _ = make_engine(offset=4)

    results = press(engine, editor, "0")

    assert results[0].status == "motion"
    assert editor.primary_caret().offset == 0


def test_vertical_motion_keeps_the_remembered_column() -> None:
    engine, editor, _ = make_engine("abcdef\nab\nabcdef\n", offset=4)

    press(engine, editor, "j")
    assert editor.primary_caret().offset == 8

    press(engine, editor, "j")
    assert editor.primary_caret().offset == 14


def test_unbound_key_in_normal_mode_is_swallowed() -> None:
    engine, editor, _ = make_engine()

    result = press(engine, editor, "q")[0]

    assert result.consumed
    assert result.status == "miss"


def test_visual_yank_fills_the_unnamed_register() -> None:
    engine, editor, _ = make_engine()

    press(engine, editor, "v", "l", "l")
    assert selection_of(editor) == (0, 3)

    results = press(engine, editor, "y")

    assert results[0].status == "yank"
    assert engine.registers.get(UNNAMED).text == "hel"
    assert engine.mode(editor) is Mode.NORMAL
    assert editor.primary_caret().offset == 0
    assert not editor.primary_caret().has_selection()


def test_visual_delete_removes_the_selection() -> None:
    engine, editor, _ = make_engine(offset=6)

    press(engine, editor, "v", "$", "d")

    assert editor.text == "hello \n"
    assert engine.registers.get().text == "world"
    assert engine.mode(editor) is Mode.NORMAL


def test_visual_change_starts_inserting() -> None:
    engine, editor, _ = make_engine()

    press(engine, editor, "v", "l", "c")

    assert editor.text == "llo world\n"
    assert engine.mode(editor) is Mode.INSERT


def test_linewise_visual_delete_takes_whole_lines() -> None:
    engine, editor, _ = make_engine("a\nb\nc\n", offset=2)

    press(engine, editor, "V", "d")

    assert editor.text == "a\nc\n"
    assert engine.registers.get().kind is SubMode.LINEWISE


def test_counted_yank_line_in_normal_mode() -> None:
    engine, editor, _ = make_engine("a\nb\nc\n")

    result = press(engine, editor, "2", "Y")[1]

    assert result.status == "yank_line"
    value = engine.registers.get()
    assert value.text == "a\nb\n"
    assert value.kind is SubMode.LINEWISE
    assert engine.mode(editor) is Mode.NORMAL


def test_operator_records_the_visual_shape_for_counted_reselect() -> None:
    engine, editor, entry = make_engine()
    caret = editor.primary_caret()

    press(engine, editor, "v", "l", "l", "y")

    state = entry.session.caret_state(caret)
    assert state.last_visual_operator_range == VisualChange(1, 3, SubMode.CHARACTERWISE)

    press(engine, editor, "2", "v")

    assert engine.mode(editor) is Mode.VISUAL
    assert selection_of(editor) == (0, 6)


def test_counted_visual_without_history_is_refused() -> None:
    engine, editor, _ = make_engine()

    result = press(engine, editor, "2", "v")[1]

    assert result.status == "visual_unavailable"
    assert engine.mode(editor) is Mode.NORMAL


def test_gv_waits_for_the_second_key_then_reselects() -> None:
    engine, editor, entry = make_engine()
    press(engine, editor, "v", "l", "escape")

    pending = press(engine, editor, "g")[0]

    assert pending.status == "pending"
    assert pending.timeout_ms == engine.config.pending_timeout_ms
    assert entry.manager.pending == ("g",)

    press(engine, editor, "v")

    assert engine.mode(editor) is Mode.VISUAL
    assert selection_of(editor) == (0, 2)


def test_pending_prefix_times_out() -> None:
    engine, editor, entry = make_engine()
    press(engine, editor, "g")

    assert engine.process_timeouts() == {}

    outcome = entry.manager.force_timeout()

    assert outcome is not None
    assert outcome.status == "timeout"
    assert entry.manager.pending == ()
    assert entry.manager.force_timeout() is None


def test_dead_end_prefix_retries_the_key_alone() -> None:
    engine, editor, entry = make_engine()

    press(engine, editor, "g")
    result = press(engine, editor, "l")[0]

    assert result.status == "motion"
    assert entry.manager.pending == ()
    assert editor.primary_caret().offset == 1


def test_swap_ends_in_visual_mode() -> None:
    engine, editor, _ = make_engine()

    press(engine, editor, "v", "l", "l", "o")

    assert editor.primary_caret().offset == 0
    assert selection_of(editor) == (0, 3)


def test_blockwise_motion_adds_carets() -> None:
    engine, editor, _ = make_engine("abcdefghij\n" * 3)

    press(engine, editor, key("v", "ctrl"), "j", "l")

    assert engine.sub_mode(editor) is SubMode.BLOCKWISE
    spans = sorted((c.selection_start, c.selection_end) for c in editor.carets())
    assert spans == [(0, 2), (11, 13)]

    press(engine, editor, "escape")

    assert len(editor.carets()) == 1


def test_select_mode_replaces_the_selection_with_typed_text() -> None:
    engine, editor, _ = make_engine()

    press(engine, editor, "g", "h")
    assert engine.mode(editor) is Mode.SELECT
    assert selection_of(editor) == (0, 1)

    result = press(engine, editor, "Z")[0]

    assert result.status == "select_replace"
    assert editor.text == "Zello world\n"
    assert engine.mode(editor) is Mode.INSERT


def test_select_mode_escape_returns_to_normal() -> None:
    engine, editor, _ = make_engine()

    press(engine, editor, "g", "h", "escape")

    assert engine.mode(editor) is Mode.NORMAL
    assert not editor.primary_caret().has_selection()


def test_keymap_flags_can_be_overridden() -> None:
    engine, editor, entry = make_engine()
    entry.context.extras["keymap_flags"] = {"lookup_active": True}

    assert entry.manager.flags()["lookup_active"] is True
    assert entry.manager.flags()["file_editor"] is True


def test_block_to_line_end_is_repeated_to_each_line_end() -> None:
    engine, editor, entry = make_engine("abcdef\nxy\nabcdefgh\n")
    caret = editor.primary_caret()

    press(engine, editor, key("v", "ctrl"), "j", "j", "$")

    spans = sorted((c.selection_start, c.selection_end) for c in editor.carets())
    assert spans == [(0, 6), (7, 9), (10, 18)]

    press(engine, editor, "y")

    state = entry.session.caret_state(caret)
    assert state.last_visual_operator_range == VisualChange(3, LAST_COLUMN, SubMode.BLOCKWISE)
    assert engine.registers.get().text == "abcdef\nxy\nabcdefgh"
    assert engine.registers.get().kind is SubMode.BLOCKWISE
    assert caret.offset == 0
    assert len(editor.carets()) == 1

    press(engine, editor, "1", key("v", "ctrl"))

    assert engine.mode(editor) is Mode.VISUAL
    assert engine.sub_mode(editor) is SubMode.BLOCKWISE
    spans = sorted((c.selection_start, c.selection_end) for c in editor.carets())
    assert spans == [(0, 6), (7, 9), (10, 18)]

from __future__ import annotations

import pytest

from modal_engine.modes import MappingScope, Mode, ModeStack, ModeStackError, SubMode


def test_new_stack_has_a_single_base_frame() -> None:
    stack = ModeStack()

    assert len(stack) == 1
    assert stack.mode is Mode.NORMAL
    assert stack.sub_mode is SubMode.NONE
    assert stack.scope is MappingScope.NORMAL


def test_base_frame_must_be_a_base_mode() -> None:
    with pytest.raises(ModeStackError):
        ModeStack(Mode.VISUAL)


def test_push_and_pop_follow_the_top_frame() -> None:
    stack = ModeStack()

    stack.push(Mode.VISUAL, SubMode.LINEWISE)

    assert stack.in_visual
    assert stack.sub_mode is SubMode.LINEWISE
    assert stack.scope is MappingScope.VISUAL

    popped = stack.pop()

    assert popped.mode is Mode.VISUAL
    assert stack.mode is Mode.NORMAL


def test_pop_refuses_to_remove_the_base_frame() -> None:
    stack = ModeStack(Mode.INSERT)

    with pytest.raises(ModeStackError):
        stack.pop()
    assert stack.mode is Mode.INSERT


def test_sub_mode_setter_reshapes_the_top_frame_only() -> None:
    stack = ModeStack()
    stack.push(Mode.VISUAL, SubMode.CHARACTERWISE)

    stack.sub_mode = SubMode.BLOCKWISE

    assert stack.in_visual_block
    assert stack.base.sub_mode is SubMode.NONE


def test_pop_to_stops_at_the_matching_frame() -> None:
    stack = ModeStack()
    stack.push(Mode.INSERT)
    stack.push(Mode.VISUAL, SubMode.CHARACTERWISE)
    stack.push(Mode.SELECT, SubMode.CHARACTERWISE)

    popped = stack.pop_to(lambda frame: frame.mode is Mode.INSERT)

    assert [frame.mode for frame in popped] == [Mode.SELECT, Mode.VISUAL]
    assert stack.in_insert


def test_pop_to_never_removes_the_base_frame() -> None:
    stack = ModeStack()
    stack.push(Mode.VISUAL, SubMode.CHARACTERWISE)

    stack.pop_to(lambda frame: False)

    assert len(stack) == 1
    assert stack.mode is Mode.NORMAL


def test_unwind_returns_to_base() -> None:
    stack = ModeStack()
    stack.push(Mode.INSERT)
    stack.push(Mode.VISUAL, SubMode.CHARACTERWISE)

    popped = stack.unwind()

    assert len(popped) == 2
    assert len(stack) == 1
    assert stack.current() is stack.base


def test_replace_mode_reads_the_insert_keymap() -> None:
    stack = ModeStack(Mode.REPLACE)

    assert stack.in_insert
    assert stack.scope is MappingScope.INSERT


def test_explicit_scope_overrides_the_mode_default() -> None:
    stack = ModeStack()

    frame = stack.push(Mode.VISUAL, SubMode.CHARACTERWISE, MappingScope.OP_PENDING)

    assert frame.scope is MappingScope.OP_PENDING
    assert stack.scope is MappingScope.OP_PENDING
    stack.pop()
    assert stack.scope is MappingScope.NORMAL

"""Built-in keymaps that seed each scope with sensible defaults."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping, Sequence

from modal_engine.actions import core as core_actions
from modal_engine.actions import motion as motion_actions
from modal_engine.actions import visual as visual_actions
from modal_engine.modes.base_mode import MappingScope

from .models import ActionRef, Binding, HandlerKind, KeySequence
from .registry import KeymapRegistry

COMMAND = HandlerKind.COMMAND
MOTION = HandlerKind.MOTION
OPERATOR = HandlerKind.OPERATOR

DEFAULT_ACTIONS: tuple[ActionRef, ...] = (
    ActionRef("core.enter_insert", core_actions.enter_insert_mode, COMMAND, "Enter insert mode"),
    ActionRef("core.exit_insert", core_actions.exit_insert_mode, COMMAND, "Leave insert mode"),
    ActionRef("core.noop", core_actions.noop_action, COMMAND, "Do nothing"),
    ActionRef("motion.left", motion_actions.move_left, MOTION, "Move left"),
    ActionRef("motion.right", motion_actions.move_right, MOTION, "Move right"),
    ActionRef("motion.down", motion_actions.move_down, MOTION, "Move down"),
    ActionRef("motion.up", motion_actions.move_up, MOTION, "Move up"),
    ActionRef("motion.line_start", motion_actions.line_start, MOTION, "Go to line start"),
    ActionRef("motion.line_end", motion_actions.line_end, MOTION, "Go to line end"),
    ActionRef(
        "visual.toggle_characterwise",
        visual_actions.toggle_characterwise,
        COMMAND,
        "Toggle characterwise visual mode",
    ),
    ActionRef(
        "visual.toggle_linewise",
        visual_actions.toggle_linewise,
        COMMAND,
        "Toggle linewise visual mode",
    ),
    ActionRef(
        "visual.toggle_blockwise",
        visual_actions.toggle_blockwise,
        COMMAND,
        "Toggle blockwise visual mode",
    ),
    ActionRef("visual.exit", visual_actions.exit_visual, COMMAND, "Leave visual mode"),
    ActionRef("visual.swap_ends", visual_actions.swap_ends, COMMAND, "Swap selection ends"),
    ActionRef(
        "visual.resume_last",
        visual_actions.resume_last_visual,
        COMMAND,
        "Reselect the last visual area",
    ),
    ActionRef(
        "visual.swap_selections",
        visual_actions.swap_visual_selections,
        COMMAND,
        "Exchange current and previous visual area",
    ),
    ActionRef(
        "select.characterwise",
        visual_actions.select_characterwise,
        COMMAND,
        "Start characterwise select mode",
    ),
    ActionRef(
        "select.linewise", visual_actions.select_linewise, COMMAND, "Start linewise select mode"
    ),
    ActionRef(
        "select.blockwise",
        visual_actions.select_blockwise,
        COMMAND,
        "Start blockwise select mode",
    ),
    ActionRef("select.exit", visual_actions.exit_select, COMMAND, "Leave select mode"),
    ActionRef("select.enter", visual_actions.select_enter, COMMAND, "Replace selection by a line break"),
    ActionRef("operator.yank", visual_actions.yank_selection, OPERATOR, "Yank selection"),
    ActionRef("operator.delete", visual_actions.delete_selection, OPERATOR, "Delete selection"),
    ActionRef(
        "operator.change",
        visual_actions.change_selection,
        OPERATOR,
        "Change selection",
        metadata={"then_insert": True},
    ),
    ActionRef(
        "operator.yank_line",
        visual_actions.yank_line,
        OPERATOR,
        "Yank whole lines",
        metadata={"linewise": True},
    ),
)

_MOTION_KEYS: tuple[tuple[str, str], ...] = (
    ("h", "motion.left"),
    ("l", "motion.right"),
    ("j", "motion.down"),
    ("k", "motion.up"),
    ("0", "motion.line_start"),
    ("$", "motion.line_end"),
)

_SCOPED_KEYS: Mapping[MappingScope, tuple[tuple[str, str], ...]] = {
    MappingScope.NORMAL: (
        *_MOTION_KEYS,
        ("i", "core.enter_insert"),
        ("<Esc>", "core.noop"),
        ("v", "visual.toggle_characterwise"),
        ("V", "visual.toggle_linewise"),
        ("<C-V>", "visual.toggle_blockwise"),
        ("gv", "visual.resume_last"),
        ("gh", "select.characterwise"),
        ("gH", "select.linewise"),
        ("g<C-H>", "select.blockwise"),
        ("Y", "operator.yank_line"),
    ),
    MappingScope.INSERT: (
        ("<Esc>", "core.exit_insert"),
        ("<C-[>", "core.exit_insert"),
    ),
    MappingScope.VISUAL: (
        *_MOTION_KEYS,
        ("<Esc>", "visual.exit"),
        ("<C-[>", "visual.exit"),
        ("v", "visual.toggle_characterwise"),
        ("V", "visual.toggle_linewise"),
        ("<C-V>", "visual.toggle_blockwise"),
        ("o", "visual.swap_ends"),
        ("gv", "visual.swap_selections"),
        ("y", "operator.yank"),
        ("d", "operator.delete"),
        ("x", "operator.delete"),
        ("c", "operator.change"),
        ("Y", "operator.yank_line"),
    ),
    MappingScope.SELECT: (
        ("<Esc>", "select.exit"),
        ("<C-[>", "select.exit"),
        ("<CR>", "select.enter"),
    ),
}


def _binding_id(scope: MappingScope, notation: str) -> str:
    return f"{scope.value}.{notation}"


DEFAULT_BINDINGS: tuple[Binding, ...] = tuple(
    Binding(
        id=_binding_id(scope, notation),
        scope=scope,
        sequence=KeySequence.parse(notation),
        action_id=action_id,
    )
    for scope, entries in _SCOPED_KEYS.items()
    for notation, action_id in entries
)


def load_default_keymaps(
    registry: KeymapRegistry,
    *,
    replace: bool = False,
    extra_bindings: Iterable[Binding] | None = None,
    default_sequence_timeout_ms: int | None = None,
    include_actions: Sequence[str] | None = None,
    exclude_actions: Sequence[str] | None = None,
    include_bindings: Sequence[str] | None = None,
    exclude_bindings: Sequence[str] | None = None,
) -> None:
    """Register built-in actions and bindings for every scope."""

    allowed_actions = _build_filters(include_actions, exclude_actions)
    allowed_bindings = _build_filters(include_bindings, exclude_bindings)

    for action in DEFAULT_ACTIONS:
        if not _selected(action.id, allowed_actions):
            continue
        registry.register_action(action, replace=replace)

    for binding in DEFAULT_BINDINGS:
        if not _selected(binding.id, allowed_bindings):
            continue
        if not _selected(binding.action_id, allowed_actions):
            continue
        registry.register_binding(
            _binding_with_timeout(binding, default_sequence_timeout_ms),
            replace=replace,
        )

    if extra_bindings:
        for binding in extra_bindings:
            registry.register_binding(binding, replace=replace)


def _binding_with_timeout(binding: Binding, timeout_ms: int | None) -> Binding:
    if timeout_ms is None:
        return binding
    sequence = KeySequence(binding.sequence.strokes, timeout_ms=timeout_ms)
    return replace(binding, sequence=sequence)


def _build_filters(
    include: Sequence[str] | None, exclude: Sequence[str] | None
) -> tuple[set[str] | None, set[str]]:
    include_set = set(include) if include else None
    exclude_set = set(exclude or ())
    return include_set, exclude_set


def _selected(item_id: str, filters: tuple[set[str] | None, set[str]]) -> bool:
    include, exclude = filters
    if include is not None and item_id not in include:
        return False
    if item_id in exclude:
        return False
    return True


__all__ = ["DEFAULT_ACTIONS", "DEFAULT_BINDINGS", "load_default_keymaps"]

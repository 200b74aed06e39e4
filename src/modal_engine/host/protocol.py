"""Collaborator contract the engine expects from a host text editor."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Protocol, Sequence

from modal_engine.buffer.document import Position

if TYPE_CHECKING:  # pragma: no cover - typing only
    from modal_engine.keymaps.models import KeyStroke

SelectionListener = Callable[[], None]


class TextGeometry(Protocol):
    """Read-only offset arithmetic over the host's text."""

    @property
    def text_length(self) -> int: ...

    @property
    def line_count(self) -> int: ...

    def offset_to_position(self, offset: int) -> Position: ...

    def position_to_offset(self, line: int, column: int) -> int: ...

    def line_start_offset(self, line: int) -> int: ...

    def line_end_offset(self, line: int) -> int: ...


class HostCaret(Protocol):
    """One host caret with its raw, direction-less text selection."""

    @property
    def caret_id(self) -> int: ...

    @property
    def offset(self) -> int: ...

    @property
    def selection_start(self) -> int: ...

    @property
    def selection_end(self) -> int: ...

    def has_selection(self) -> bool: ...

    def move_to_offset(self, offset: int) -> None: ...

    def set_selection(self, start: int, end: int) -> None: ...

    def remove_selection(self) -> None: ...


class HostEditor(TextGeometry, Protocol):
    """Editor view the engine drives; one per ``EditorSession``."""

    def carets(self) -> Sequence[HostCaret]:
        """All carets in document order."""
        ...

    def primary_caret(self) -> HostCaret: ...

    def add_caret(self, offset: int) -> HostCaret | None:
        """Add a secondary caret; ``None`` when the host is single-caret."""
        ...

    def remove_secondary_carets(self) -> None: ...

    def get_text(self, start: int, end: int) -> str: ...

    def replace_text(self, start: int, end: int, text: str) -> None: ...

    def scroll_to_caret(self) -> None: ...

    def is_lookup_active(self) -> bool: ...

    def is_template_active(self) -> bool: ...

    @property
    def is_one_line_mode(self) -> bool: ...

    @property
    def is_file_editor(self) -> bool: ...

    @property
    def is_primary_editor(self) -> bool: ...

    def keymap_conflicts(self, stroke: "KeyStroke") -> Sequence[str]:
        """Host command ids bound to ``stroke``."""
        ...

    def add_selection_listener(self, listener: SelectionListener) -> None: ...


def line_of(geometry: TextGeometry, offset: int) -> int:
    return geometry.offset_to_position(offset).line


def column_of(geometry: TextGeometry, offset: int) -> int:
    return geometry.offset_to_position(offset).column


def line_end_for_offset(geometry: TextGeometry, offset: int) -> int:
    return geometry.line_end_offset(line_of(geometry, offset))


def line_start_for_offset(geometry: TextGeometry, offset: int) -> int:
    return geometry.line_start_offset(line_of(geometry, offset))


def line_length(geometry: TextGeometry, line: int) -> int:
    return geometry.line_end_offset(line) - geometry.line_start_offset(line)


def normalize_offset(geometry: TextGeometry, offset: int, *, allow_end: bool) -> int:
    """Clamp ``offset`` into the text; without ``allow_end`` stop before EOF."""

    length = geometry.text_length
    if length == 0:
        return 0
    upper = length if allow_end else length - 1
    return max(0, min(offset, upper))


__all__ = [
    "HostCaret",
    "HostEditor",
    "SelectionListener",
    "TextGeometry",
    "column_of",
    "line_end_for_offset",
    "line_length",
    "line_of",
    "line_start_for_offset",
    "normalize_offset",
]

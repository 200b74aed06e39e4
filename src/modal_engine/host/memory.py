"""In-process host editor backed by a ``BufferDocument``."""

from __future__ import annotations

from itertools import count
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from modal_engine.buffer.document import BufferDocument, Position

from .protocol import SelectionListener

if TYPE_CHECKING:  # pragma: no cover - typing only
    from modal_engine.keymaps.models import KeyStroke


class MemoryCaret:
    """Caret owned by a ``MemoryEditor``.

    The caret offset and the selection are independent, as in most GUI
    editors: moving the caret keeps the selection and vice versa.
    """

    def __init__(self, editor: "MemoryEditor", caret_id: int, offset: int) -> None:
        self._editor = editor
        self._caret_id = caret_id
        self._offset = offset
        self._start = offset
        self._end = offset

    def __repr__(self) -> str:
        return (
            f"MemoryCaret(id={self._caret_id}, offset={self._offset}, "
            f"selection=({self._start}, {self._end}))"
        )

    @property
    def caret_id(self) -> int:
        return self._caret_id

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def selection_start(self) -> int:
        return self._start if self.has_selection() else self._offset

    @property
    def selection_end(self) -> int:
        return self._end if self.has_selection() else self._offset

    def has_selection(self) -> bool:
        return self._start != self._end

    def move_to_offset(self, offset: int) -> None:
        self._offset = self._editor.document.clamp(offset)

    def set_selection(self, start: int, end: int) -> None:
        document = self._editor.document
        start, end = sorted((document.clamp(start), document.clamp(end)))
        if (start, end) == (self._start, self._end):
            return
        had_selection = self.has_selection()
        self._start, self._end = start, end
        if had_selection or self.has_selection():
            self._editor.notify_selection_changed()

    def remove_selection(self) -> None:
        self.set_selection(self._offset, self._offset)

    def drag(self, anchor: int, head: int) -> None:
        """Mimic a mouse drag: select ``anchor..head`` and park the caret at ``head``."""

        self.move_to_offset(head)
        self.set_selection(anchor, head)

    def _shift(self, start: int, end: int, delta: int) -> None:
        def moved(offset: int) -> int:
            if offset >= end:
                return offset + delta
            if offset > start:
                return start
            return offset

        self._offset = moved(self._offset)
        self._start = moved(self._start)
        self._end = moved(self._end)


class MemoryEditor:
    """Multi-caret editor living entirely in memory.

    Selection listeners fire synchronously whenever a caret's selection
    changes, which is what lets tests observe reentrancy suppression.
    """

    def __init__(
        self,
        text: str = "",
        *,
        name: str = "memory",
        file_editor: bool = True,
        primary_editor: bool = True,
        one_line: bool = False,
        keymap: Optional[Dict["KeyStroke", Iterable[str]]] = None,
    ) -> None:
        self.name = name
        self.document = BufferDocument.from_text(text)
        self.lookup_active = False
        self.template_active = False
        self.scroll_requests = 0
        self._file_editor = file_editor
        self._primary_editor = primary_editor
        self._one_line = one_line
        self._keymap = {stroke: tuple(ids) for stroke, ids in (keymap or {}).items()}
        self._ids = count()
        self._primary = MemoryCaret(self, next(self._ids), 0)
        self._secondary: List[MemoryCaret] = []
        self._listeners: List[SelectionListener] = []

    @property
    def text(self) -> str:
        return self.document.text

    @property
    def text_length(self) -> int:
        return self.document.length

    @property
    def line_count(self) -> int:
        return self.document.line_count

    def offset_to_position(self, offset: int) -> Position:
        return self.document.offset_to_position(offset)

    def position_to_offset(self, line: int, column: int) -> int:
        return self.document.position_to_offset(line, column)

    def line_start_offset(self, line: int) -> int:
        return self.document.line_start_offset(line)

    def line_end_offset(self, line: int) -> int:
        return self.document.line_end_offset(line)

    def carets(self) -> Sequence[MemoryCaret]:
        return sorted([self._primary, *self._secondary], key=lambda c: c.offset)

    def primary_caret(self) -> MemoryCaret:
        return self._primary

    def add_caret(self, offset: int) -> MemoryCaret | None:
        offset = self.document.clamp(offset)
        if any(caret.offset == offset for caret in self.carets()):
            return None
        caret = MemoryCaret(self, next(self._ids), offset)
        self._secondary.append(caret)
        return caret

    def remove_secondary_carets(self) -> None:
        dropped = [caret for caret in self._secondary if caret.has_selection()]
        self._secondary.clear()
        if dropped:
            self.notify_selection_changed()

    def get_text(self, start: int, end: int) -> str:
        start, end = sorted((self.document.clamp(start), self.document.clamp(end)))
        return self.document.text[start:end]

    def replace_text(self, start: int, end: int, text: str) -> None:
        start, end = sorted((self.document.clamp(start), self.document.clamp(end)))
        self.document = self.document.replace(start, end, text)
        delta = len(text) - (end - start)
        for caret in self.carets():
            caret._shift(start, end, delta)

    def scroll_to_caret(self) -> None:
        self.scroll_requests += 1

    def is_lookup_active(self) -> bool:
        return self.lookup_active

    def is_template_active(self) -> bool:
        return self.template_active

    @property
    def is_one_line_mode(self) -> bool:
        return self._one_line

    @property
    def is_file_editor(self) -> bool:
        return self._file_editor

    @property
    def is_primary_editor(self) -> bool:
        return self._primary_editor

    def keymap_conflicts(self, stroke: "KeyStroke") -> Sequence[str]:
        return self._keymap.get(stroke, ())

    def bind_host_action(self, stroke: "KeyStroke", action_id: str) -> None:
        self._keymap[stroke] = (*self._keymap.get(stroke, ()), action_id)

    def add_selection_listener(self, listener: SelectionListener) -> None:
        self._listeners.append(listener)

    def notify_selection_changed(self) -> None:
        for listener in tuple(self._listeners):
            listener()


__all__ = ["MemoryCaret", "MemoryEditor"]

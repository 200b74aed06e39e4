"""``HostEditor`` implementation on top of a Textual ``TextArea``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from textual.widgets import TextArea
from textual.widgets.text_area import Selection

from modal_engine.buffer.document import BufferDocument, Position
from modal_engine.host.protocol import SelectionListener

if TYPE_CHECKING:  # pragma: no cover - typing only
    from modal_engine.keymaps.models import KeyStroke


class TextAreaCaret:
    """The single caret of a ``TextArea``.

    Textual always draws the cursor on the moving end of the selection, so
    the caret offset is tracked here and the selection is re-oriented when
    the two need to differ.
    """

    caret_id = 0

    def __init__(self, host: "TextAreaHost") -> None:
        self._host = host
        self._offset = 0
        self._start = 0
        self._end = 0

    def __repr__(self) -> str:
        return f"TextAreaCaret(offset={self.offset}, selection=({self._start}, {self._end}))"

    @property
    def offset(self) -> int:
        self._host.sync()
        return self._offset

    @property
    def selection_start(self) -> int:
        self._host.sync()
        return self._start if self._start != self._end else self._offset

    @property
    def selection_end(self) -> int:
        self._host.sync()
        return self._end if self._start != self._end else self._offset

    def has_selection(self) -> bool:
        self._host.sync()
        return self._start != self._end

    def move_to_offset(self, offset: int) -> None:
        self._host.sync()
        self._offset = self._host.document.clamp(offset)
        self._host.render()

    def set_selection(self, start: int, end: int) -> None:
        self._host.sync()
        document = self._host.document
        start, end = sorted((document.clamp(start), document.clamp(end)))
        if (start, end) == (self._start, self._end):
            return
        had_selection = self._start != self._end
        self._start, self._end = start, end
        self._host.render()
        if had_selection or start != end:
            self._host.notify_selection_changed()

    def remove_selection(self) -> None:
        self.set_selection(self._offset, self._offset)

    def _adopt(self, anchor: int, cursor: int) -> None:
        self._offset = cursor
        self._start, self._end = sorted((anchor, cursor))


class TextAreaHost:
    """Single-caret host view of a Textual ``TextArea``.

    Selections written by the engine are remembered; the widget reports them
    back asynchronously through ``SelectionChanged`` and those echoes are
    dropped in ``on_widget_selection_changed``. Block selections show only
    the primary caret's line because the widget has one selection.
    """

    def __init__(
        self,
        text_area: TextArea,
        *,
        file_editor: bool = True,
        primary_editor: bool = True,
        keymap: Optional[Dict["KeyStroke", Iterable[str]]] = None,
    ) -> None:
        self.text_area = text_area
        self.lookup_active = False
        self.template_active = False
        self._file_editor = file_editor
        self._primary_editor = primary_editor
        self._keymap = {stroke: tuple(ids) for stroke, ids in (keymap or {}).items()}
        self._document = BufferDocument.from_text(text_area.text)
        self._written: Optional[Selection] = None
        self._listeners: List[SelectionListener] = []
        self._caret = TextAreaCaret(self)
        self.sync(force=True)

    # ------------------------------------------------------------------
    # Widget synchronisation
    # ------------------------------------------------------------------
    @property
    def document(self) -> BufferDocument:
        text = self.text_area.text
        if text != self._document.text:
            self._document = BufferDocument.from_text(text)
        return self._document

    def sync(self, *, force: bool = False) -> None:
        """Adopt the widget's selection unless it is the one last written."""

        selection = self.text_area.selection
        if not force and selection == self._written:
            return
        document = self.document
        anchor = document.position_to_offset(*selection.start)
        cursor = document.position_to_offset(*selection.end)
        self._caret._adopt(anchor, cursor)
        self._written = selection

    def render(self) -> None:
        caret = self._caret
        document = self.document
        offset = caret._offset
        start, end = caret._start, caret._end
        if start == end:
            location = tuple(document.offset_to_position(offset))
            selection = Selection.cursor(location)
        elif offset <= start:
            selection = Selection(
                tuple(document.offset_to_position(end)),
                tuple(document.offset_to_position(start)),
            )
        else:
            selection = Selection(
                tuple(document.offset_to_position(start)),
                tuple(document.offset_to_position(end)),
            )
        self._written = selection
        self.text_area.selection = selection

    def on_widget_selection_changed(self, selection: Selection) -> bool:
        """Handle a ``SelectionChanged`` message; ``False`` for engine echoes."""

        if selection == self._written:
            return False
        had_selection = self._caret._start != self._caret._end
        self.sync()
        if had_selection or selection.start != selection.end:
            self.notify_selection_changed()
        return True

    # ------------------------------------------------------------------
    # HostEditor
    # ------------------------------------------------------------------
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

    def carets(self) -> Sequence[TextAreaCaret]:
        return (self._caret,)

    def primary_caret(self) -> TextAreaCaret:
        return self._caret

    def add_caret(self, offset: int) -> None:
        del offset
        return None

    def remove_secondary_carets(self) -> None:
        return None

    def get_text(self, start: int, end: int) -> str:
        document = self.document
        start, end = sorted((document.clamp(start), document.clamp(end)))
        return document.text[start:end]

    def replace_text(self, start: int, end: int, text: str) -> None:
        document = self.document
        start, end = sorted((document.clamp(start), document.clamp(end)))
        self.text_area.replace(
            text,
            tuple(document.offset_to_position(start)),
            tuple(document.offset_to_position(end)),
        )
        self._caret._adopt(start + len(text), start + len(text))
        self.render()

    def scroll_to_caret(self) -> None:
        self.text_area.scroll_cursor_visible()

    def is_lookup_active(self) -> bool:
        return self.lookup_active

    def is_template_active(self) -> bool:
        return self.template_active

    @property
    def is_one_line_mode(self) -> bool:
        return False

    @property
    def is_file_editor(self) -> bool:
        return self._file_editor

    @property
    def is_primary_editor(self) -> bool:
        return self._primary_editor

    def keymap_conflicts(self, stroke: "KeyStroke") -> Sequence[str]:
        return self._keymap.get(stroke, ())

    def add_selection_listener(self, listener: SelectionListener) -> None:
        self._listeners.append(listener)

    def notify_selection_changed(self) -> None:
        for listener in tuple(self._listeners):
            listener()


__all__ = ["TextAreaCaret", "TextAreaHost"]

"""Visual and select mode orchestration for one editor session."""

from __future__ import annotations

from typing import Optional, Sequence

from modal_engine.host.protocol import (
    HostCaret,
    line_end_for_offset,
    line_length,
    line_start_for_offset,
    normalize_offset,
)
from modal_engine.modes.base_mode import Mode, ModeBus, SubMode
from modal_engine.runtime import telemetry
from modal_engine.session import EditorSession, VisualMarks

from .block import block_segments
from .bridge import classify_sub_mode, from_semantic, lead_selection_offset
from .ranges import LAST_COLUMN, RawSelection, VisualChange

LOGGER_NAME = "modal_engine.selection"


def raw_selection(caret: HostCaret) -> RawSelection:
    return RawSelection(caret.selection_start, caret.selection_end, caret.offset)


class VisualController:
    """Enters, updates and leaves visual/select mode for one session.

    Every host selection write happens under the session's reentrancy guard,
    so the notifications it causes are never mistaken for a user's mouse
    drag. Operations that cannot apply return ``False`` instead of raising.
    """

    def __init__(self, session: EditorSession, bus: Optional[ModeBus] = None) -> None:
        self.session = session
        self.bus = bus or ModeBus()

    @property
    def host(self):
        return self.session.host

    # ------------------------------------------------------------------
    # Entering
    # ------------------------------------------------------------------
    def toggle(self, sub_mode: SubMode, count: int = 0) -> bool:
        """Enter, leave, or reshape visual mode.

        ``count`` is the raw count typed before the command. A positive count
        re-applies the primary caret's last visual operator shape scaled by
        ``count``; this only works with a single caret and after a previous
        visual operator.
        """

        session = self.session
        stack = session.stack
        if not stack.in_visual:
            if count > 0:
                carets = session.carets()
                if len(carets) > 1:
                    self._declined("multiple carets", sub_mode)
                    return False
                primary = session.primary_caret()
                change = session.caret_state(primary).last_visual_operator_range
                if change is None:
                    self._declined("no previous visual operator", sub_mode)
                    return False
                start = primary.offset
                end = self._calculate_visual_range(primary, change, count)
                stack.push(Mode.VISUAL, change.kind)
                self.set_selection(primary, start, end, move_caret=True)
            else:
                stack.push(Mode.VISUAL, sub_mode)
                for caret in self._targets():
                    self.set_selection(caret, caret.offset)
            self._entered(Mode.VISUAL)
            self.host.scroll_to_caret()
            return True

        if sub_mode is stack.sub_mode:
            return self.exit_visual()

        previous = stack.sub_mode
        stack.sub_mode = sub_mode
        if SubMode.BLOCKWISE in (previous, sub_mode):
            self._collapse_secondaries()
        for caret in self._targets():
            self.update_editor_selection(caret)
        self.bus.emit("sub_mode", sub_mode)
        return True

    def enter_visual(self, sub_mode: Optional[SubMode] = None) -> bool:
        """Push a visual frame around whatever the host currently selects.

        Neither the caret nor the raw selection is touched.
        """

        kind = sub_mode
        if kind is None or kind is SubMode.NONE:
            kind = self.autodetect_sub_mode()
        self.session.stack.push(Mode.VISUAL, kind)
        self._anchor_targets()
        self._entered(Mode.VISUAL)
        return True

    def enter_select(self, sub_mode: SubMode) -> bool:
        self.session.stack.push(Mode.SELECT, sub_mode)
        self._anchor_targets()
        self._entered(Mode.SELECT)
        return True

    def enter_insert(self) -> bool:
        """Start inserting before the caret unless already inserting."""

        stack = self.session.stack
        if stack.in_insert:
            return False
        stack.push(Mode.INSERT)
        self.bus.emit("mode", stack.current())
        return True

    def resume_last_visual(self) -> bool:
        """Reselect the last exited visual range (``gv``)."""

        session = self.session
        kind = session.last_selection_kind
        marks = session.visual_marks
        if kind is None or marks is None:
            return False

        primary = session.primary_caret()
        self._collapse_secondaries()
        session.stack.push(Mode.VISUAL, kind)
        self.set_selection(primary, marks.start, marks.end, move_caret=True)
        self._entered(Mode.VISUAL)
        self.host.scroll_to_caret()
        return True

    def swap_visual_selections(self) -> bool:
        """Trade the current visual selection with the remembered one."""

        session = self.session
        kind = session.last_selection_kind
        marks = session.visual_marks
        if kind is None or marks is None or not session.stack.in_visual:
            return False

        primary = session.primary_caret()
        self._collapse_secondaries()
        anchor = self._anchor_of(primary)
        session.last_selection_kind = session.sub_mode
        session.visual_marks = VisualMarks(anchor, primary.offset)
        session.stack.sub_mode = kind
        self.set_selection(primary, marks.start, marks.end, move_caret=True)
        self.host.scroll_to_caret()
        return True

    # ------------------------------------------------------------------
    # Leaving
    # ------------------------------------------------------------------
    def exit_visual(self) -> bool:
        session = self.session
        if not session.stack.in_visual:
            return False
        kind = session.sub_mode
        with session.guard.hold():
            if kind is SubMode.BLOCKWISE:
                self.host.remove_secondary_carets()
            for caret in session.carets():
                caret.remove_selection()
        self._remember_marks(kind)
        session.stack.pop()
        self._exited(Mode.VISUAL, kind)
        return True

    def exit_select(self, adjust_caret_position: bool = True) -> bool:
        """Leave select mode.

        With ``adjust_caret_position`` a caret parked on a line end steps back
        one character so it does not overhang the line in normal mode.
        """

        session = self.session
        if not session.stack.in_select:
            return False
        kind = session.sub_mode
        self._remember_marks(kind)
        session.stack.pop()
        with session.guard.hold():
            if kind is SubMode.BLOCKWISE:
                self.host.remove_secondary_carets()
            for caret in session.carets():
                caret.remove_selection()
                if adjust_caret_position:
                    offset = caret.offset
                    line_end = line_end_for_offset(self.host, offset)
                    if offset == line_end and offset != line_start_for_offset(self.host, offset):
                        caret.move_to_offset(offset - 1)
        self._exited(Mode.SELECT, kind)
        return True

    # ------------------------------------------------------------------
    # Select mode editing
    # ------------------------------------------------------------------
    def replace_selection(self, text: str) -> bool:
        """Replace every select-mode selection with ``text`` and start inserting."""

        session = self.session
        if not session.stack.in_select:
            return False
        with session.guard.hold():
            for caret in reversed(session.carets()):
                start, end = caret.selection_start, caret.selection_end
                caret.remove_selection()
                self.host.replace_text(start, end, text)
                caret.move_to_offset(start + len(text))
        self.exit_select(adjust_caret_position=False)
        self.enter_insert()
        return True

    def select_enter(self) -> bool:
        """``<Enter>`` in select mode: break the line where the selection was."""

        return self.replace_selection("\n")

    # ------------------------------------------------------------------
    # Caret and selection updates
    # ------------------------------------------------------------------
    def swap_ends(self, caret: HostCaret) -> bool:
        """Exchange a caret's anchor and position; the extent is unchanged."""

        state = self.session.caret_state(caret)
        anchor = self._anchor_of(caret)
        state.anchor = caret.offset
        self.move_caret(caret, anchor)
        return True

    def move_caret(self, caret: HostCaret, offset: int) -> None:
        """Move ``caret`` and, inside visual/select mode, redraw its selection."""

        session = self.session
        with session.guard.hold():
            caret.move_to_offset(offset)
            if session.stack.mode in (Mode.VISUAL, Mode.SELECT):
                self.update_editor_selection(caret)

    def set_selection(
        self,
        caret: HostCaret,
        anchor: int,
        head: Optional[int] = None,
        *,
        move_caret: bool = False,
    ) -> None:
        """Make ``anchor..head`` the caret's semantic selection and display it."""

        head = anchor if head is None else head
        self.session.caret_state(caret).anchor = anchor
        with self.session.guard.hold():
            if move_caret:
                caret.move_to_offset(head)
            self._display(caret, anchor, head)

    def update_editor_selection(self, caret: HostCaret) -> None:
        """Redraw the host selection from the caret's anchor and offset."""

        anchor = self._anchor_of(caret)
        with self.session.guard.hold():
            self._display(caret, anchor, caret.offset)

    def _display(self, caret: HostCaret, anchor: int, head: int) -> None:
        session = self.session
        kind = session.sub_mode
        adj = session.selection_adj
        if kind is SubMode.BLOCKWISE:
            self._display_block(caret, anchor, head, adj)
            return
        if kind is SubMode.NONE:
            kind = SubMode.CHARACTERWISE
        start, end = from_semantic(anchor, head, kind, adj, self.host)
        caret.set_selection(start, end)

    def _display_block(self, caret: HostCaret, anchor: int, head: int, adj: int) -> None:
        host = self.host
        state = self.session.caret_state(caret)
        head_pos = host.offset_to_position(head)
        segments = block_segments(
            host, anchor, head, adj, to_line_end=state.remembered_column == LAST_COLUMN
        )
        host.remove_secondary_carets()
        for segment in segments:
            if segment.line == head_pos.line:
                caret.set_selection(segment.start, segment.end)
                continue
            line_start = host.line_start_offset(segment.line)
            offset = min(line_start + head_pos.column, host.line_end_offset(segment.line))
            extra = host.add_caret(offset)
            if extra is not None:
                extra.set_selection(segment.start, segment.end)

    # ------------------------------------------------------------------
    # Shape bookkeeping
    # ------------------------------------------------------------------
    def compute_operator_range(
        self,
        caret: HostCaret,
        sub_mode: Optional[SubMode] = None,
        *,
        linewise_motion: bool = False,
    ) -> VisualChange:
        """Position-independent shape of the caret's current selection."""

        host = self.host
        kind = self.session.sub_mode if sub_mode is None else sub_mode
        if kind is SubMode.BLOCKWISE:
            start, end = self._anchor_of(caret), caret.offset
        else:
            start, end = caret.selection_start, caret.selection_end
        start, end = sorted((start, end))
        start = normalize_offset(host, start, allow_end=False)
        end = normalize_offset(host, end, allow_end=False)
        sp = host.offset_to_position(start)
        ep = host.offset_to_position(end)
        lines = ep.line - sp.line + 1

        if kind is SubMode.LINEWISE or linewise_motion:
            return VisualChange(lines, ep.column, SubMode.LINEWISE)
        if kind is SubMode.CHARACTERWISE:
            columns = ep.column if lines > 1 else ep.column - sp.column
            return VisualChange(lines, columns, SubMode.CHARACTERWISE)
        primary = self.session.caret_state(self.session.primary_caret())
        if primary.remembered_column == LAST_COLUMN:
            return VisualChange(lines, LAST_COLUMN, SubMode.BLOCKWISE)
        return VisualChange(lines, ep.column - sp.column, SubMode.BLOCKWISE)

    def _calculate_visual_range(
        self, caret: HostCaret, change: VisualChange, count: int
    ) -> int:
        host = self.host
        lines, columns = change.lines, change.columns
        if change.kind in (SubMode.LINEWISE, SubMode.BLOCKWISE) or lines > 1:
            lines *= count
        if not change.to_line_end and (
            (change.kind is SubMode.CHARACTERWISE and lines == 1)
            or change.kind is SubMode.BLOCKWISE
        ):
            columns *= count

        start = caret.offset
        sp = host.offset_to_position(start)
        end_line = min(sp.line + lines - 1, max(host.line_count - 1, 0))

        if change.kind is SubMode.LINEWISE:
            return host.position_to_offset(end_line, sp.column)
        if change.kind is SubMode.CHARACTERWISE:
            line_start = host.line_start_offset(end_line)
            if lines > 1:
                return line_start + min(line_length(host, end_line), columns)
            last = max(line_start, host.line_end_offset(end_line) - 1)
            return max(line_start, min(start + columns - 1, last))
        if change.to_line_end:
            self.session.caret_state(caret).remembered_column = LAST_COLUMN
            return host.line_end_offset(end_line)
        end_column = min(line_length(host, end_line), sp.column + columns - 1)
        return host.position_to_offset(end_line, end_column)

    def autodetect_sub_mode(self, carets: Optional[Sequence[HostCaret]] = None) -> SubMode:
        """Classify a selection produced outside the engine."""

        carets = list(carets) if carets is not None else self.session.carets()
        spans = [(caret.selection_start, caret.selection_end) for caret in carets]
        return classify_sub_mode(self.host, spans)

    # ------------------------------------------------------------------
    # Host notifications
    # ------------------------------------------------------------------
    def handle_selection_event(self) -> bool:
        """Selection listener entry point; ignores changes the engine made."""

        if self.session.guard.held:
            return False
        self.on_host_selection_changed()
        return True

    def on_host_selection_changed(self, reset_caret_to_insert: bool = False) -> None:
        """Adopt a selection change that did not come from the engine.

        A new selection moves the session into visual mode (select mode for
        templates and single-line editors). A cleared selection leaves
        visual/select mode and resumes inserting when that is what the user
        was doing before.
        """

        session = self.session
        host = self.host
        carets = session.carets()
        if any(caret.has_selection() for caret in carets):
            # A drag already in visual/select mode keeps the mode it started from.
            if session.mode not in (Mode.VISUAL, Mode.SELECT):
                session.mode_before_non_modal_selection = session.mode
            session.stack.unwind()
            session.clear_anchors()
            kind = self.autodetect_sub_mode(carets)
            if host.is_template_active() or host.is_one_line_mode:
                self.enter_select(kind)
            else:
                self.enter_visual(kind)
                self._park_carets_on_selection(kind)
            return

        resume_insert = session.mode_before_non_modal_selection is Mode.INSERT
        self.exit_visual()
        self.exit_select(adjust_caret_position=True)
        if reset_caret_to_insert or host.is_template_active() or resume_insert:
            self.enter_insert()

    def _park_carets_on_selection(self, kind: SubMode) -> None:
        # A forward mouse selection leaves the caret one past the last
        # selected character; visual mode keeps it on that character.
        if kind is SubMode.BLOCKWISE:
            return
        adj = self.session.selection_adj
        with self.session.guard.hold():
            for caret in self.session.carets():
                raw = raw_selection(caret)
                start, end = raw.normalized
                if start != end and caret.offset == end and adj:
                    caret.move_to_offset(max(start, end - adj))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _targets(self) -> list[HostCaret]:
        if self.session.sub_mode is SubMode.BLOCKWISE:
            return [self.session.primary_caret()]
        return self.session.carets()

    def _anchor_targets(self) -> None:
        session = self.session
        kind = session.sub_mode
        adj = session.selection_adj
        for caret in self._targets():
            session.caret_state(caret).anchor = lead_selection_offset(
                raw_selection(caret), kind, adj
            )

    def _anchor_of(self, caret: HostCaret) -> int:
        anchor = self.session.caret_state(caret).anchor
        return caret.offset if anchor is None else anchor

    def _collapse_secondaries(self) -> None:
        with self.session.guard.hold():
            self.host.remove_secondary_carets()
        self.session.prune_caret_states()

    def _remember_marks(self, kind: SubMode) -> None:
        session = self.session
        primary = session.primary_caret()
        anchor = session.caret_state(primary).anchor
        if anchor is not None:
            session.visual_marks = VisualMarks(anchor, primary.offset)
            session.last_selection_kind = kind
        session.clear_anchors()
        session.prune_caret_states()

    def _entered(self, mode: Mode) -> None:
        session = self.session
        telemetry.record_event(
            f"{mode.value}.enter",
            data={"session": session.name, "sub_mode": session.sub_mode.value},
            logger_name=LOGGER_NAME,
        )
        self.bus.emit("mode", session.stack.current())

    def _exited(self, mode: Mode, kind: SubMode) -> None:
        session = self.session
        session.mode_before_non_modal_selection = None
        telemetry.record_event(
            f"{mode.value}.exit",
            data={"session": session.name, "sub_mode": kind.value, "now": session.mode.value},
            logger_name=LOGGER_NAME,
        )
        self.bus.emit("mode", session.stack.current())

    def _declined(self, reason: str, sub_mode: SubMode) -> None:
        telemetry.record_event(
            "visual.declined",
            level="debug",
            data={"session": self.session.name, "reason": reason, "sub_mode": sub_mode.value},
            logger_name=LOGGER_NAME,
        )


__all__ = ["LOGGER_NAME", "VisualController", "raw_selection"]

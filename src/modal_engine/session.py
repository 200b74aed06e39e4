"""Per-view session state: mode stack, caret decorations and visual marks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from modal_engine.host.protocol import HostCaret, HostEditor
from modal_engine.modes.base_mode import Mode, SubMode
from modal_engine.modes.mode_stack import ModeStack
from modal_engine.runtime.config import EngineConfig
from modal_engine.selection.guard import ReentrancyGuard

if TYPE_CHECKING:  # pragma: no cover - typing only
    from modal_engine.selection.ranges import VisualChange


class CaretStateError(RuntimeError):
    """Raised when the engine is asked to work on a host with no carets."""


@dataclass(slots=True)
class CaretState:
    """Engine-only decoration of one host caret."""

    anchor: Optional[int] = None
    last_visual_operator_range: Optional["VisualChange"] = None
    remembered_column: Optional[int] = None


@dataclass(frozen=True, slots=True)
class VisualMarks:
    """Last exited visual selection as ``(anchor, caret)``, direction kept."""

    start: int
    end: int

    @property
    def normalized(self) -> Tuple[int, int]:
        return (min(self.start, self.end), max(self.start, self.end))


class EditorSession:
    """Everything the engine remembers about one open editor view."""

    def __init__(
        self,
        host: HostEditor,
        config: Optional[EngineConfig] = None,
        *,
        name: str = "default",
        base: Mode = Mode.NORMAL,
    ) -> None:
        self.host = host
        self.config = config or EngineConfig()
        self.name = name
        self.stack = ModeStack(base, name=name)
        self.guard = ReentrancyGuard()
        self.visual_marks: Optional[VisualMarks] = None
        self.last_selection_kind: Optional[SubMode] = None
        self.mode_before_non_modal_selection: Optional[Mode] = None
        self.tab_action = False
        self._caret_states: Dict[int, CaretState] = {}

    def __repr__(self) -> str:
        return (
            f"EditorSession(name={self.name!r}, mode={self.mode.value}, "
            f"sub_mode={self.sub_mode.value})"
        )

    @property
    def mode(self) -> Mode:
        return self.stack.mode

    @property
    def sub_mode(self) -> SubMode:
        return self.stack.sub_mode

    @property
    def selection_adj(self) -> int:
        """Raw/semantic adjustment; select mode always behaves exclusively."""

        if self.stack.in_select:
            return 0
        return self.config.selection_adj

    def carets(self) -> List[HostCaret]:
        carets = list(self.host.carets())
        if not carets:
            raise CaretStateError(f"Session '{self.name}' has no carets")
        return carets

    def primary_caret(self) -> HostCaret:
        self.carets()
        return self.host.primary_caret()

    def caret_state(self, caret: HostCaret) -> CaretState:
        return self._caret_states.setdefault(caret.caret_id, CaretState())

    def anchors(self) -> Dict[int, Optional[int]]:
        return {caret_id: state.anchor for caret_id, state in self._caret_states.items()}

    def clear_anchors(self) -> None:
        for state in self._caret_states.values():
            state.anchor = None

    def prune_caret_states(self) -> None:
        """Forget decorations of carets the host no longer has."""

        live = {caret.caret_id for caret in self.host.carets()}
        for caret_id in list(self._caret_states):
            if caret_id not in live:
                del self._caret_states[caret_id]


__all__ = ["CaretState", "CaretStateError", "EditorSession", "VisualMarks"]

"""Mode enums and the shared value types passed between dispatch stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover - typing only
    from modal_engine.buffer import RegisterBank
    from modal_engine.host.protocol import HostCaret
    from modal_engine.keymaps.models import KeyStroke
    from modal_engine.selection.controller import VisualController
    from modal_engine.session import EditorSession


class Mode(str, Enum):
    """Top-level editing modes a frame can carry."""

    NORMAL = "normal"
    INSERT = "insert"
    VISUAL = "visual"
    SELECT = "select"
    REPLACE = "replace"
    OP_PENDING = "op_pending"

    @property
    def is_base(self) -> bool:
        return self in (Mode.NORMAL, Mode.INSERT, Mode.REPLACE)


class SubMode(str, Enum):
    """Shape qualifier of visual and select mode."""

    NONE = "none"
    CHARACTERWISE = "characterwise"
    LINEWISE = "linewise"
    BLOCKWISE = "blockwise"


class MappingScope(str, Enum):
    """Keymap table consulted while a frame is on top of the stack."""

    NORMAL = "normal"
    INSERT = "insert"
    VISUAL = "visual"
    SELECT = "select"
    OP_PENDING = "op_pending"

    @classmethod
    def for_mode(cls, mode: Mode) -> "MappingScope":
        return _SCOPE_FOR_MODE[mode]


_SCOPE_FOR_MODE: Dict[Mode, MappingScope] = {
    Mode.NORMAL: MappingScope.NORMAL,
    Mode.INSERT: MappingScope.INSERT,
    Mode.REPLACE: MappingScope.INSERT,
    Mode.VISUAL: MappingScope.VISUAL,
    Mode.SELECT: MappingScope.SELECT,
    Mode.OP_PENDING: MappingScope.OP_PENDING,
}


@dataclass(slots=True)
class KeyInput:
    """Normalized key event handed to the engine by a host adapter."""

    key: str
    modifiers: Tuple[str, ...] = ()
    text: Optional[str] = None

    @property
    def stroke(self) -> "KeyStroke":
        from modal_engine.keymaps.models import KeyStroke

        return KeyStroke(self.key, self.modifiers)


@dataclass(frozen=True, slots=True)
class Invocation:
    """What the dispatcher knows about the keystrokes that triggered an action."""

    action_id: str
    binding_id: str
    keys: Tuple[KeyInput, ...] = ()
    count: int = 1
    raw_count: int = 0


@dataclass(frozen=True, slots=True)
class OperatorTarget:
    """Raw range an operator acts on for one caret."""

    caret: "HostCaret"
    start: int
    end: int
    kind: SubMode


@dataclass(slots=True)
class ModeResult:
    """Outcome of handling one keystroke."""

    consumed: bool
    status: str = "ok"
    message: Optional[str] = None
    timeout_ms: Optional[int] = None


class ModeBus:
    """Minimal event bus so adapters can observe engine state changes."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, list[Callable[[object], None]]] = {}

    def subscribe(self, event: str, callback: Callable[[object], None]) -> None:
        self._subscribers.setdefault(event, []).append(callback)

    def emit(self, event: str, payload: object | None = None) -> None:
        for callback in self._subscribers.get(event, []):
            callback(payload)


@dataclass(slots=True)
class ModeContext:
    """Services every action handler can reach."""

    session: "EditorSession"
    visual: "VisualController"
    registers: "RegisterBank"
    bus: ModeBus
    extras: Dict[str, object] = field(default_factory=dict)


__all__ = [
    "KeyInput",
    "Invocation",
    "MappingScope",
    "Mode",
    "ModeBus",
    "ModeContext",
    "ModeResult",
    "OperatorTarget",
    "SubMode",
]

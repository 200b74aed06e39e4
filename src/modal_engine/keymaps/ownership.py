"""Per-keystroke arbitration between the engine and the host's own shortcuts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, Mapping, Optional

from modal_engine.modes.base_mode import Mode
from modal_engine.runtime import telemetry
from modal_engine.runtime.config import EngineConfig

from .models import KeyStroke, parse_keys

if TYPE_CHECKING:  # pragma: no cover - typing only
    from modal_engine.session import EditorSession

LOGGER_NAME = "modal_engine.keys"


def _strokes(key: str, *modifier_sets: tuple[str, ...]) -> set[KeyStroke]:
    return {KeyStroke(key, modifiers) for modifiers in modifier_sets}


_PLAIN: tuple[str, ...] = ()
_CTRL = ("ctrl",)
_SHIFT = ("shift",)
_CTRL_SHIFT = ("ctrl", "shift")

# Keys the engine claims in any editor regardless of the conflict table.
ENGINE_RESERVED_KEYS: FrozenSet[KeyStroke] = frozenset(
    set().union(
        _strokes("enter", _PLAIN),
        _strokes("escape", _PLAIN),
        _strokes("tab", _PLAIN),
        _strokes("backspace", _PLAIN, _CTRL),
        _strokes("insert", _PLAIN),
        _strokes("delete", _PLAIN, _CTRL),
        *(_strokes(key, _PLAIN, _CTRL, _SHIFT) for key in ("up", "down")),
        *(
            _strokes(key, _PLAIN, _CTRL, _SHIFT, _CTRL_SHIFT)
            for key in ("left", "right", "home", "end")
        ),
        *(_strokes(key, _PLAIN, _SHIFT, _CTRL_SHIFT) for key in ("pageup", "pagedown")),
    )
)

# Declined in insert mode outside file-backed editors (consoles, watches, ...).
NON_FILE_EDITOR_KEYS: FrozenSet[KeyStroke] = frozenset(
    KeyStroke(key) for key in ("enter", "escape", "tab", "up", "down")
)

# Claimed while a completion popup is open: escape variants, backspace,
# one-command and previous/next item.
LOOKUP_KEYS: FrozenSet[KeyStroke] = frozenset(
    parse_keys("<C-[><C-C><Esc><BS><C-O><C-P><C-N>")
)

TAB = KeyStroke("tab")


class ShortcutOwner(str, Enum):
    ENGINE = "engine"
    HOST = "host"
    UNDEFINED = "undefined"


class ShortcutConflictTable:
    """Saved owner of every keystroke that ever clashed with a host command.

    Process-wide; only the arbiter writes to it, from the UI thread.
    """

    def __init__(self, owners: Optional[Mapping[KeyStroke, ShortcutOwner]] = None) -> None:
        self._owners: Dict[KeyStroke, ShortcutOwner] = dict(owners or {})

    def __contains__(self, stroke: object) -> bool:
        return stroke in self._owners

    def __len__(self) -> int:
        return len(self._owners)

    def get(self, stroke: KeyStroke) -> ShortcutOwner:
        return self._owners.get(stroke, ShortcutOwner.UNDEFINED)

    def set(self, stroke: KeyStroke, owner: ShortcutOwner) -> None:
        self._owners[stroke] = ShortcutOwner(owner)

    def undecided(self) -> tuple[KeyStroke, ...]:
        return tuple(
            stroke for stroke, owner in self._owners.items() if owner is ShortcutOwner.UNDEFINED
        )

    def serialize(self) -> Dict[str, str]:
        ordered = sorted(self._owners.items(), key=lambda item: item[0].token)
        return {stroke.token: owner.value for stroke, owner in ordered}

    @classmethod
    def load(cls, data: Mapping[str, str]) -> "ShortcutConflictTable":
        return cls(
            {KeyStroke.from_token(token): ShortcutOwner(owner) for token, owner in data.items()}
        )


@dataclass(frozen=True, slots=True)
class OwnershipDecision:
    owned: bool
    reason: str

    def __bool__(self) -> bool:
        return self.owned


class KeyOwnershipArbiter:
    """Decides, one keystroke at a time, whether the engine or the host reacts.

    Host state (popups, file-backed views, conflicting host bindings) is
    queried afresh on every call; nothing is cached between keystrokes.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        conflicts: Optional[ShortcutConflictTable] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.conflicts = conflicts if conflicts is not None else ShortcutConflictTable()
        self._lookup_keys = LOOKUP_KEYS | _first_strokes(self.config.lookup_keys)

    def decide(self, session: "EditorSession", stroke: KeyStroke) -> OwnershipDecision:
        if not self.config.enabled:
            return self._decline(session, stroke, "disabled")

        host = session.host
        if stroke.is_typed_character:
            return OwnershipDecision(True, "typed")
        if host.is_lookup_active():
            if stroke in self._lookup_keys:
                return OwnershipDecision(True, "lookup")
            return self._decline(session, stroke, "lookup")
        if stroke.key == "escape":
            if host.is_primary_editor or (
                host.is_file_editor and session.mode is not Mode.NORMAL
            ):
                return OwnershipDecision(True, "escape")
            return self._decline(session, stroke, "escape")
        if session.stack.in_insert:
            if stroke == TAB:
                session.tab_action = True
                return self._decline(session, stroke, "tab")
            if stroke in NON_FILE_EDITOR_KEYS and not host.is_file_editor:
                return self._decline(session, stroke, "non-file editor")
        if stroke in ENGINE_RESERVED_KEYS:
            return OwnershipDecision(True, "reserved")

        owner = self.conflicts.get(stroke)
        conflict = bool(host.keymap_conflicts(stroke))
        if owner is ShortcutOwner.ENGINE:
            return OwnershipDecision(True, "engine")
        if owner is ShortcutOwner.HOST:
            if conflict:
                return self._decline(session, stroke, "host")
            return OwnershipDecision(True, "host")
        if conflict:
            self.conflicts.set(stroke, ShortcutOwner.UNDEFINED)
        return OwnershipDecision(True, "undefined")

    def _decline(
        self, session: "EditorSession", stroke: KeyStroke, reason: str
    ) -> OwnershipDecision:
        telemetry.record_event(
            "keys.declined",
            level="debug",
            data={"session": session.name, "key": stroke.token, "reason": reason},
            logger_name=LOGGER_NAME,
        )
        return OwnershipDecision(False, reason)


def _first_strokes(notations: Iterable[str]) -> FrozenSet[KeyStroke]:
    strokes = set()
    for notation in notations:
        parsed = parse_keys(notation)
        if parsed:
            strokes.add(parsed[0])
    return frozenset(strokes)


__all__ = [
    "ENGINE_RESERVED_KEYS",
    "KeyOwnershipArbiter",
    "LOOKUP_KEYS",
    "NON_FILE_EDITOR_KEYS",
    "OwnershipDecision",
    "ShortcutConflictTable",
    "ShortcutOwner",
]

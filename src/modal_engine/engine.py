"""Process-wide entry point: configuration, conflict table and open sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional

from modal_engine.buffer.registers import RegisterBank
from modal_engine.host.protocol import HostEditor
from modal_engine.keymaps import (
    KeymapRegistry,
    KeymapResolver,
    KeyOwnershipArbiter,
    ShortcutConflictTable,
    ShortcutOwner,
    load_default_keymaps,
)
from modal_engine.modes.base_mode import KeyInput, Mode, ModeBus, ModeContext, ModeResult, SubMode
from modal_engine.modes.mode_manager import ModeManager
from modal_engine.runtime import telemetry
from modal_engine.runtime.config import EngineConfig
from modal_engine.selection.controller import VisualController
from modal_engine.session import EditorSession

LOGGER_NAME = "modal_engine.engine"


@dataclass(slots=True)
class EngineSession:
    """Everything wired together for one open editor view."""

    session: EditorSession
    visual: VisualController
    manager: ModeManager
    bus: ModeBus
    closed: bool = field(default=False)

    @property
    def context(self) -> ModeContext:
        return self.manager.context


class ModalEngine:
    """Owns the shared configuration and hands keystrokes to the right session.

    Sessions are keyed by host editor identity. Nothing but the
    configuration, the conflict table, the keymap and the register bank is
    shared between them.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        registry: Optional[KeymapRegistry] = None,
        conflicts: Optional[ShortcutConflictTable] = None,
        registers: Optional[RegisterBank] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.conflicts = conflicts if conflicts is not None else ShortcutConflictTable()
        self.arbiter = KeyOwnershipArbiter(self.config, self.conflicts)
        self.registers = registers or RegisterBank()
        self.registry = registry or KeymapRegistry(logger_name="modal_engine.keymaps")
        if registry is None:
            load_default_keymaps(
                self.registry, default_sequence_timeout_ms=self.config.pending_timeout_ms
            )
        self.resolver = KeymapResolver(self.registry, logger_name="modal_engine.keymaps")
        self._sessions: Dict[int, EngineSession] = {}

    def __iter__(self) -> Iterator[EngineSession]:
        return iter(tuple(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def open_session(self, host: HostEditor, *, name: Optional[str] = None) -> EngineSession:
        key = id(host)
        if key in self._sessions:
            return self._sessions[key]

        session = EditorSession(host, self.config, name=name or f"session-{len(self._sessions)}")
        bus = ModeBus()
        visual = VisualController(session, bus)
        context = ModeContext(
            session=session, visual=visual, registers=self.registers, bus=bus, extras={}
        )
        manager = ModeManager(
            context,
            keymap_registry=self.registry,
            keymap_resolver=self.resolver,
            load_defaults=False,
        )
        entry = EngineSession(session=session, visual=visual, manager=manager, bus=bus)
        host.add_selection_listener(self._selection_listener(entry))
        self._sessions[key] = entry
        telemetry.record_event(
            "session.open", data={"session": session.name}, logger_name=LOGGER_NAME
        )
        return entry

    def close_session(self, host: HostEditor) -> bool:
        entry = self._sessions.pop(id(host), None)
        if entry is None:
            return False
        entry.closed = True
        entry.manager.reset()
        telemetry.record_event(
            "session.close", data={"session": entry.session.name}, logger_name=LOGGER_NAME
        )
        return True

    def get(self, host: HostEditor) -> EngineSession:
        try:
            return self._sessions[id(host)]
        except KeyError as exc:
            raise KeyError(f"No session is open for host {host!r}") from exc

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def handle_keystroke(self, host: HostEditor, key: KeyInput) -> ModeResult:
        """Arbitrate ownership of ``key`` and, if owned, dispatch it."""

        entry = self.get(host)
        session = entry.session
        stroke = key.stroke
        with telemetry.span(
            "engine::keystroke",
            logger_name=LOGGER_NAME,
            component="engine",
            metadata={"session": session.name, "key": stroke.token},
        ) as handle:
            decision = self.arbiter.decide(session, stroke)
            handle.add_metadata("owned", decision.owned)
            if not decision.owned:
                return ModeResult(consumed=False, status="declined", message=decision.reason)
            if stroke in self.conflicts and self.conflicts.get(stroke) is ShortcutOwner.UNDEFINED:
                telemetry.record_event(
                    "keys.conflict",
                    level="warning",
                    data={"session": session.name, "key": stroke.token},
                    logger_name=LOGGER_NAME,
                )
            return entry.manager.handle_key(key)

    def on_host_selection_changed(
        self, host: HostEditor, reset_caret_to_insert: bool = False
    ) -> bool:
        """Forward a host selection change unless the engine caused it."""

        entry = self.get(host)
        if entry.session.guard.held:
            return False
        entry.visual.on_host_selection_changed(reset_caret_to_insert)
        entry.manager.reset()
        return True

    def process_timeouts(self) -> Dict[str, ModeResult]:
        results: Dict[str, ModeResult] = {}
        for entry in self:
            outcome = entry.manager.process_timeouts()
            if outcome is not None:
                results[entry.session.name] = outcome
        return results

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def mode(self, host: HostEditor) -> Mode:
        return self.get(host).session.mode

    def sub_mode(self, host: HostEditor) -> SubMode:
        return self.get(host).session.sub_mode

    def visual(self, host: HostEditor) -> VisualController:
        return self.get(host).visual

    def _selection_listener(self, entry: EngineSession) -> Callable[[], None]:
        def listener() -> None:
            if entry.closed:
                return
            if entry.visual.handle_selection_event():
                entry.manager.reset()

        return listener


__all__ = ["EngineSession", "ModalEngine"]

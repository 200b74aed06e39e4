"""Minimal Textual adapter that wires engine results and bus events into UI callbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from modal_engine.engine import EngineSession, ModalEngine
from modal_engine.host.protocol import HostEditor
from modal_engine.modes import KeyInput, ModeFrame, ModeResult, SubMode


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class TextualUIHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    update_mode: Callable[[str], None]
    update_status: Callable[[str], None] = _noop
    handle_event: Callable[[str, object | None], None] = _noop
    # Optional realtime log callback a host may use to surface debug lines
    log: Callable[[str], None] = _noop


def mode_label(frame: ModeFrame) -> str:
    if frame.sub_mode in (SubMode.NONE, SubMode.CHARACTERWISE):
        return frame.mode.value.upper()
    return f"{frame.mode.value.upper()} {frame.sub_mode.value.upper()}"


class TextualModalAdapter:
    """Bridges one engine session + bus events to a Textual-friendly surface."""

    def __init__(self, engine: ModalEngine, host: HostEditor, hooks: TextualUIHooks) -> None:
        self.engine = engine
        self.host = host
        self.hooks = hooks
        self.entry: EngineSession = engine.open_session(host, name="textual")
        self._subscribe_events()
        self._refresh_mode()

    def handle_textual_key(
        self,
        key: str,
        *,
        text: Optional[str] = None,
        modifiers: Iterable[str] = (),
    ) -> ModeResult:
        """Translate a Textual key event into a KeyInput and dispatch it."""

        normalized_modifiers = tuple(str(mod).lower() for mod in modifiers)
        self._log_state("key ->", key=key, text=text, mods=normalized_modifiers)
        result = self.engine.handle_keystroke(
            self.host, KeyInput(key=key, text=text, modifiers=normalized_modifiers)
        )
        self._after_result(result)
        self._log_state(
            "result <-",
            consumed=result.consumed,
            status=result.status,
            message=result.message,
            timeout_ms=result.timeout_ms,
        )
        return result

    def handle_selection_changed(self) -> None:
        """Refresh the UI after the host reported a user selection change."""

        self._log_state("selection ->")
        self._refresh_mode()

    def process_timeouts(self) -> Dict[str, ModeResult]:
        """Forward expired timers and surface results to the UI."""

        results = self.engine.process_timeouts()
        for session_name, outcome in results.items():
            self.hooks.update_status(f"{session_name}:{outcome.status}")
            self._log_state("timeout ->", session=session_name, status=outcome.status)
        return results

    def _after_result(self, result: ModeResult) -> None:
        status = result.message or result.status
        if status:
            self.hooks.update_status(status)
        self._refresh_mode()

    def _subscribe_events(self) -> None:
        bus = self.entry.bus
        for event in ("mode", "sub_mode", "yank"):
            bus.subscribe(
                event, lambda payload, name=event: self._handle_event(name, payload)
            )

    def _handle_event(self, name: str, payload: object | None) -> None:
        self._log_state("event ->", event=name, payload=payload)
        self.hooks.handle_event(name, payload)
        if name in ("mode", "sub_mode"):
            self._refresh_mode()

    def _refresh_mode(self) -> None:
        self.hooks.update_mode(mode_label(self.entry.session.stack.current()))

    def _log_state(self, prefix: str, **fields: object) -> None:
        snapshot = self._state_metadata()
        snapshot.update({k: v for k, v in fields.items() if v is not None})
        parts = [prefix]
        for key, value in snapshot.items():
            parts.append(f"{key}={value!r}")
        self.hooks.log(" ".join(parts))

    def _state_metadata(self) -> Dict[str, object]:
        session = self.entry.session
        caret = self.host.primary_caret()
        return {
            "mode": session.mode.value,
            "sub_mode": session.sub_mode.value,
            "caret": caret.offset,
            "selection": (caret.selection_start, caret.selection_end),
            "pending": " ".join(self.entry.manager.pending),
            "session": session.name,
        }


__all__ = ["TextualModalAdapter", "TextualUIHooks", "mode_label"]

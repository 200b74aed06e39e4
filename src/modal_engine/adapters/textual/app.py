"""Executable Textual app that hosts the modal engine."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple

try:  # pragma: no cover - imported only when demo is run
    from textual import events
    from textual.app import App, ComposeResult
    from textual.widgets import Footer, Header, Static, TextArea
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use modal_engine.adapters.textual.app"
    ) from exc

from modal_engine.engine import ModalEngine
from modal_engine.runtime import telemetry
from modal_engine.runtime.config import SELECTION_STYLES, EngineConfig

from .controller import TextualModalAdapter, TextualUIHooks
from .host import TextAreaHost

QUIT_KEYS = {"ctrl+q"}


def normalize_key(event: events.Key) -> Optional[Tuple[str, Optional[str], Tuple[str, ...]]]:
    """Split a Textual key event into ``(key, text, modifiers)``.

    Printable characters carry no shift modifier: ``V`` arrives as ``"V"``.
    """

    if event.key in QUIT_KEYS:
        return None
    *modifiers, name = event.key.split("+")
    if event.character and event.is_printable:
        extra = tuple(mod for mod in modifiers if mod in ("ctrl", "alt"))
        return (event.character, event.character, extra)
    return (name, None, tuple(modifiers))


class ModalTextArea(TextArea):
    """``TextArea`` whose keys go through the modal engine first."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.adapter: TextualModalAdapter | None = None
        self.host: TextAreaHost | None = None

    async def _on_key(self, event: events.Key) -> None:
        if self.adapter is None:
            await super()._on_key(event)
            return
        normalized = normalize_key(event)
        if normalized is None:
            return
        key, text, modifiers = normalized
        result = self.adapter.handle_textual_key(key, text=text, modifiers=modifiers)
        if result.consumed:
            event.prevent_default()
            event.stop()
            return
        await super()._on_key(event)

    def on_text_area_selection_changed(self, message: TextArea.SelectionChanged) -> None:
        if self.host is None or self.adapter is None:
            return
        if self.host.on_widget_selection_changed(message.selection):
            self.adapter.handle_selection_changed()


class ModalEngineApp(App[None]):
    """Minimal Textual UI embedding the modal engine."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#editor {
		height: 1fr;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}

	#mode-line {
		height: 1;
		background: $surface-darken-2;
		padding: 0 1;
	}
	"""

    BINDINGS = [("ctrl+q", "quit", "Quit")]

    def __init__(self, *, text: str = "", config: Optional[EngineConfig] = None) -> None:
        super().__init__()
        self._text = text
        self._config = config or EngineConfig.from_env()
        self.engine: ModalEngine | None = None
        self.adapter: TextualModalAdapter | None = None
        self._editor: ModalTextArea | None = None
        self._status_widget: Static | None = None
        self._mode_widget: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        self._editor = ModalTextArea(self._text, id="editor")
        yield self._editor
        self._status_widget = Static("", id="status-line")
        self._mode_widget = Static("", id="mode-line")
        yield self._status_widget
        yield self._mode_widget
        yield Footer()

    async def on_mount(self) -> None:
        assert self._editor is not None
        self.engine = ModalEngine(self._config)
        host = TextAreaHost(self._editor)
        hooks = TextualUIHooks(
            update_mode=self._update_mode,
            update_status=self._update_status,
            log=self._log_line,
        )
        self.adapter = TextualModalAdapter(self.engine, host, hooks)
        self._editor.host = host
        self._editor.adapter = self.adapter
        self._editor.focus()
        self.set_interval(0.1, self._process_timeouts)

    def _process_timeouts(self) -> None:
        if self.adapter:
            self.adapter.process_timeouts()

    def _update_status(self, status: str) -> None:
        if self._status_widget:
            self._status_widget.update(status)

    def _update_mode(self, label: str) -> None:
        if self._mode_widget:
            self._mode_widget.update(f"-- {label} --")

    def _log_line(self, line: str) -> None:
        telemetry.log_kv(telemetry.get_logger("modal_engine.textual"), "debug", line)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the modal engine Textual demo.")
    parser.add_argument("path", nargs="?", help="File to load into the editor")
    parser.add_argument(
        "--selection",
        choices=SELECTION_STYLES,
        default=None,
        help="Selection style (default: MODAL_ENGINE_SELECTION or inclusive)",
    )
    parser.add_argument(
        "--preset",
        choices=("development", "production"),
        default=None,
        help="Telemetry preset to apply before starting",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    if args.preset:
        telemetry.configure(preset=args.preset)
    config = EngineConfig.from_env()
    if args.selection:
        config = EngineConfig(
            enabled=config.enabled,
            selection=args.selection,
            lookup_keys=config.lookup_keys,
            pending_timeout_ms=config.pending_timeout_ms,
        )
    text = Path(args.path).read_text(encoding="utf-8") if args.path else ""
    ModalEngineApp(text=text, config=config).run()


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()

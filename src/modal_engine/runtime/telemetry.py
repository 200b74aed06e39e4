"""Telemetry services for the modal engine, built on telelog.

The rest of the engine only touches four entry points:

``configure(...)`` -- adopt an explicit telelog config or a named preset
``get_logger(name)`` -- fetch (and cache) a logger bound to the active config
``record_event(name, ...)`` -- emit a structured event line
``span(name, ...)`` -- profile a block and optionally track it as a component
"""

from __future__ import annotations

import os
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, MutableMapping, Optional, Tuple, cast

import telelog  # type: ignore[import]

tl = cast(Any, telelog)

ENV_PREFIX = "MODAL_ENGINE_"
DEFAULT_LOGGER_NAME = os.getenv(f"{ENV_PREFIX}LOGGER", "modal_engine")
DEFAULT_LOG_FILE = os.getenv(f"{ENV_PREFIX}LOG_FILE", "")

_LOGGER_CACHE: MutableMapping[str, Any] = {}
_ACTIVE_CONFIG: Optional[Any] = None


def env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def env_flag(name: str, default: bool) -> bool:
    raw = env(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple, set)):
        return repr(value)
    return str(value)


def _pairs(data: Dict[str, Any]) -> list[tuple[str, str]]:
    return [(str(key), _stringify(value)) for key, value in data.items()]


def _with_profiling(config: Any) -> Any:
    config.with_profiling(True)
    return config


def _preset_config(preset: str) -> Any:
    config = tl.Config()
    key = preset.strip().lower()

    if key == "development":
        config.with_min_level("DEBUG")
        config.with_console_output(True)
        config.with_colored_output(True)
        config.with_json_format(False)
    elif key == "production":
        config.with_min_level("INFO")
        config.with_console_output(False)
        config.with_file_output(env("LOG_FILE", DEFAULT_LOG_FILE) or "modal_engine.log")
        config.with_buffering(True)
    else:
        raise ValueError(f"Unknown telemetry preset '{preset}'.")

    return _with_profiling(config)


def _env_config() -> Any:
    config = tl.Config()
    config.with_min_level((env("LOG_LEVEL") or "INFO").upper())

    console = not env_flag("DISABLE_CONSOLE", False)
    config.with_console_output(console)
    if console:
        config.with_colored_output(not env_flag("NO_COLOR", False))

    if env_flag("LOG_JSON", False):
        config.with_json_format(True)

    log_file = env("LOG_FILE") or DEFAULT_LOG_FILE
    if log_file:
        config.with_file_output(log_file)

    if env_flag("LOG_BUFFERED", False):
        config.with_buffering(True)
        config.with_buffer_size(int(env("LOG_BUFFER_SIZE") or "2048"))

    return _with_profiling(config)


def configure(*, config: Optional[Any] = None, preset: Optional[str] = None) -> None:
    """Replace the active telelog configuration.

    ``config`` adopts an explicit ``telelog.Config``; ``preset`` builds one of
    ``"development"`` or ``"production"``. With neither, the configuration is
    rebuilt from ``MODAL_ENGINE_*`` environment variables. Cached loggers are
    dropped so the next ``get_logger`` call picks the new settings up.
    """

    global _ACTIVE_CONFIG
    if config is not None and preset:
        raise ValueError("Provide either `config` or `preset`, not both.")

    if preset:
        config = _preset_config(preset)
    elif config is None:
        config = _env_config()

    _ACTIVE_CONFIG = _with_profiling(config)
    _LOGGER_CACHE.clear()


def _active_config() -> Any:
    global _ACTIVE_CONFIG
    if _ACTIVE_CONFIG is None:
        _ACTIVE_CONFIG = _env_config()
    return _ACTIVE_CONFIG


def get_logger(name: Optional[str] = None) -> Any:
    """Return a cached ``telelog.Logger`` for ``name``."""

    logger_name = name or DEFAULT_LOGGER_NAME
    if logger_name not in _LOGGER_CACHE:
        _LOGGER_CACHE[logger_name] = tl.Logger.with_config(
            logger_name, _active_config()
        )
    return _LOGGER_CACHE[logger_name]


def _level_method(logger: Any, level: str) -> Tuple[Any, bool]:
    name = str(level).lower()
    structured = getattr(logger, f"{name}_with", None)
    if structured is not None:
        return structured, True
    plain = getattr(logger, name, None)
    if plain is None:
        raise ValueError(f"Unsupported log level '{level}'.")
    return plain, False


def _emit(logger: Any, level: str, message: str, payload: Dict[str, Any]) -> None:
    method, structured = _level_method(logger, level)
    if structured:
        method(message, _pairs(payload))
    else:
        method(f"{message} {payload}")


def record_event(
    name: str,
    *,
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
    logger_name: Optional[str] = None,
) -> None:
    """Emit ``event::<name>`` with ``data`` attached as key/value pairs."""

    payload = {"event": name, **(data or {})}
    _emit(get_logger(logger_name), level, f"event::{name}", payload)


def log_kv(logger: Any, level: str, message: str, **fields: Any) -> None:
    """Log ``message`` with ``fields`` as structured key/value pairs."""

    _emit(logger, level, message, fields)


@dataclass
class SpanHandle:
    """Handle yielded by ``span`` for late metadata and failure reporting."""

    logger: Any
    span_name: str
    component_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = _stringify(value)

    def _report(
        self, level: str, message: str, extra: Optional[Dict[str, Any]] = None
    ) -> None:
        payload: Dict[str, Any] = {"span": self.span_name, **self.metadata}
        if self.component_name:
            payload["component"] = self.component_name
        if extra:
            payload.update(extra)
        _emit(self.logger, level, message, payload)

    def fail(self, reason: str) -> None:
        self._report("error", "span::fail", {"reason": reason})


@contextmanager
def span(
    name: str,
    *,
    logger_name: Optional[str] = None,
    component: Optional[str | bool] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Iterator[SpanHandle]:
    """Profile a block and, optionally, track it as a named component.

    ``component=True`` reuses ``name`` as the component id; a string names the
    component explicitly. ``metadata`` is pushed as logger context for the
    lifetime of the block. Exceptions are reported through
    ``SpanHandle.fail`` and re-raised.
    """

    log = get_logger(logger_name)
    component_name: Optional[str] = None
    if component is True:
        component_name = name
    elif isinstance(component, str):
        component_name = component

    pushed: list[str] = []
    serialized: Dict[str, Any] = {}
    for key, value in (metadata or {}).items():
        serialized[key] = _stringify(value)
        log.add_context(key, serialized[key])
        pushed.append(key)

    with ExitStack() as stack:
        if component_name:
            stack.enter_context(log.track_component(component_name))
        stack.enter_context(log.profile(name))
        handle = SpanHandle(
            logger=log,
            span_name=name,
            component_name=component_name,
            metadata=dict(serialized),
        )
        try:
            yield handle
        except Exception as exc:
            handle.fail(str(exc))
            raise
        finally:
            for key in pushed:
                log.remove_context(key)


configure()
logger = get_logger()

__all__ = [
    "ENV_PREFIX",
    "SpanHandle",
    "configure",
    "env",
    "env_flag",
    "get_logger",
    "log_kv",
    "logger",
    "record_event",
    "span",
]

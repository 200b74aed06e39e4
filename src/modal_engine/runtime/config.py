"""Process-wide engine configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .telemetry import env, env_flag

SELECTION_STYLES = ("inclusive", "old", "exclusive")


@dataclass(slots=True)
class EngineConfig:
    """Settings shared by every session; read-only while events are handled."""

    enabled: bool = True
    selection: str = "inclusive"
    lookup_keys: tuple[str, ...] = field(default_factory=tuple)
    pending_timeout_ms: int = 1000

    def __post_init__(self) -> None:
        style = self.selection.strip().lower()
        if style not in SELECTION_STYLES:
            raise ValueError(
                f"selection must be one of {SELECTION_STYLES}, got '{self.selection}'"
            )
        self.selection = style
        self.lookup_keys = tuple(key.strip() for key in self.lookup_keys if key.strip())
        if self.pending_timeout_ms <= 0:
            raise ValueError("pending_timeout_ms must be positive")

    @property
    def exclusive_selection(self) -> bool:
        return self.selection == "exclusive"

    @property
    def selection_adj(self) -> int:
        """Distance between the semantic head and the host's raw selection end."""

        return 0 if self.exclusive_selection else 1

    @classmethod
    def from_env(cls, *, default: Optional["EngineConfig"] = None) -> "EngineConfig":
        base = default or cls()
        lookup = env("LOOKUP_KEYS")
        timeout = env("TIMEOUT_MS")
        return cls(
            enabled=env_flag("ENABLED", base.enabled),
            selection=env("SELECTION") or base.selection,
            lookup_keys=tuple(lookup.split(",")) if lookup else base.lookup_keys,
            pending_timeout_ms=int(timeout) if timeout else base.pending_timeout_ms,
        )


__all__ = ["EngineConfig", "SELECTION_STYLES"]

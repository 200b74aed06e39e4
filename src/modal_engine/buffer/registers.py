"""Register storage for yanked and deleted text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping

from modal_engine.modes.base_mode import SubMode

UNNAMED = '"'


@dataclass(frozen=True, slots=True)
class RegisterValue:
    text: str
    kind: SubMode = SubMode.CHARACTERWISE


class RegisterBank:
    """Tracks the unnamed register plus any named registers written to."""

    def __init__(self) -> None:
        self._registers: Dict[str, RegisterValue] = {UNNAMED: RegisterValue(text="")}

    def get(self, name: str = UNNAMED) -> RegisterValue:
        return self._registers.get(name, RegisterValue(text=""))

    def set(self, name: str, value: RegisterValue) -> None:
        self._registers[name] = value
        if name != UNNAMED:
            self._registers[UNNAMED] = value

    def yank_to(
        self, name: str, text: str, *, kind: SubMode = SubMode.CHARACTERWISE
    ) -> None:
        self.set(name, RegisterValue(text=text, kind=kind))

    def serialize(self) -> Mapping[str, RegisterValue]:
        return dict(self._registers)


__all__ = ["RegisterBank", "RegisterValue", "UNNAMED"]

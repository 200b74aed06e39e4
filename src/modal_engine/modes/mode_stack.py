"""Per-session stack of mode frames."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, cast

from modal_engine.runtime import telemetry

from .base_mode import MappingScope, Mode, SubMode


class ModeStackError(RuntimeError):
    """Raised when a caller breaks the stack's structural invariants."""


@dataclass(slots=True)
class ModeFrame:
    mode: Mode
    sub_mode: SubMode = SubMode.NONE
    scope: Optional[MappingScope] = None

    def __post_init__(self) -> None:
        if self.scope is None:
            self.scope = MappingScope.for_mode(self.mode)


FramePredicate = Callable[[ModeFrame], bool]


class ModeStack:
    """Non-empty stack of frames; the top frame is the current mode.

    Nothing outside this class should cache ``mode`` or ``sub_mode`` beyond
    a single operation: both are always read from the top frame.
    """

    def __init__(self, base: Mode = Mode.NORMAL, *, name: str = "default") -> None:
        if not base.is_base:
            raise ModeStackError(f"Bottom frame must be a base mode, got '{base.value}'")
        self.name = name
        self._frames: List[ModeFrame] = [ModeFrame(base)]

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[ModeFrame]:
        return iter(tuple(self._frames))

    def current(self) -> ModeFrame:
        return self._frames[-1]

    @property
    def base(self) -> ModeFrame:
        return self._frames[0]

    @property
    def mode(self) -> Mode:
        return self._frames[-1].mode

    @property
    def sub_mode(self) -> SubMode:
        return self._frames[-1].sub_mode

    @sub_mode.setter
    def sub_mode(self, value: SubMode) -> None:
        self._frames[-1].sub_mode = value

    @property
    def scope(self) -> MappingScope:
        # ModeFrame.__post_init__ always fills the scope in.
        return cast(MappingScope, self._frames[-1].scope)

    def push(
        self,
        mode: Mode,
        sub_mode: SubMode = SubMode.NONE,
        scope: Optional[MappingScope] = None,
    ) -> ModeFrame:
        frame = ModeFrame(mode, sub_mode, scope)
        self._frames.append(frame)
        telemetry.record_event(
            "mode.push",
            level="debug",
            data={"session": self.name, "mode": mode.value, "sub_mode": sub_mode.value},
        )
        return frame

    def pop(self) -> ModeFrame:
        if len(self._frames) == 1:
            raise ModeStackError("Cannot pop the base mode frame")
        frame = self._frames.pop()
        telemetry.record_event(
            "mode.pop",
            level="debug",
            data={"session": self.name, "mode": frame.mode.value, "now": self.mode.value},
        )
        return frame

    def pop_to(self, predicate: FramePredicate) -> List[ModeFrame]:
        """Pop frames until ``predicate`` holds for the top one.

        The base frame is never removed: unwinding stops there even when the
        predicate rejects it. Returns the popped frames, top first.
        """

        popped: List[ModeFrame] = []
        while len(self._frames) > 1 and not predicate(self._frames[-1]):
            popped.append(self.pop())
        return popped

    def unwind(self) -> List[ModeFrame]:
        """Pop back to the base frame."""

        return self.pop_to(lambda frame: frame is self._frames[0])

    def in_mode(self, mode: Mode) -> bool:
        return self.mode is mode

    @property
    def in_visual(self) -> bool:
        return self.mode is Mode.VISUAL

    @property
    def in_select(self) -> bool:
        return self.mode is Mode.SELECT

    @property
    def in_insert(self) -> bool:
        return self.mode in (Mode.INSERT, Mode.REPLACE)

    @property
    def in_visual_block(self) -> bool:
        return self.in_visual and self.sub_mode is SubMode.BLOCKWISE


__all__ = ["FramePredicate", "ModeFrame", "ModeStack", "ModeStackError"]

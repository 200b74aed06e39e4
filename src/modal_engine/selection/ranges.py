"""Value types shared by the selection bridge and the visual controller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional

from modal_engine.modes.base_mode import SubMode

# Remembered column meaning "stick to the end of every line" (the ``$`` motion).
LAST_COLUMN = 9999


class RawSelection(NamedTuple):
    """Host-side selection of one caret: endpoints plus the caret offset."""

    start: int
    end: int
    offset: int

    @property
    def normalized(self) -> tuple[int, int]:
        return (self.start, self.end) if self.start <= self.end else (self.end, self.start)

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    @property
    def is_backward(self) -> bool:
        """Caret sits on the left edge of a non-empty selection."""

        start, end = self.normalized
        return start != end and self.offset == start


@dataclass(frozen=True, slots=True)
class VisualRange:
    """Semantic selection: fixed ``anchor``, moving ``head``, and a shape."""

    anchor: int
    head: int
    kind: SubMode

    @property
    def start(self) -> int:
        return min(self.anchor, self.head)

    @property
    def end(self) -> int:
        return max(self.anchor, self.head)


@dataclass(frozen=True, slots=True)
class SemanticSelection:
    """Result of translating every caret's raw selection at once."""

    ranges: tuple[VisualRange, ...]
    kind: SubMode

    @property
    def primary(self) -> Optional[VisualRange]:
        return self.ranges[0] if self.ranges else None


@dataclass(frozen=True, slots=True)
class VisualChange:
    """Position-independent shape of a visual selection.

    ``lines`` counts the lines spanned. ``columns`` is the end column for
    linewise and multi-line characterwise shapes, the column delta for
    single-line characterwise and blockwise shapes, or ``LAST_COLUMN`` for a
    block pinned to line ends.
    """

    lines: int
    columns: int
    kind: SubMode

    @property
    def to_line_end(self) -> bool:
        return self.columns == LAST_COLUMN


__all__ = [
    "LAST_COLUMN",
    "RawSelection",
    "SemanticSelection",
    "VisualChange",
    "VisualRange",
]

"""Text storage with offset <-> (line, column) arithmetic."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import List, NamedTuple, Sequence


class Position(NamedTuple):
    """Zero-based logical position inside a document."""

    line: int
    column: int


def _line_starts(text: str) -> List[int]:
    starts = [0]
    for index, char in enumerate(text):
        if char == "\n":
            starts.append(index + 1)
    return starts


@dataclass(slots=True)
class BufferDocument:
    """Immutable text snapshot plus a line-start table.

    Offsets are positions between characters in the flat text. A line's end
    offset is the offset of its terminating newline (or the text length on
    the last line), so ``line_end_offset(n) + 1 == line_start_offset(n + 1)``.
    """

    text: str = ""
    version: int = 0
    _starts: List[int] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self._starts = _line_starts(self.text)

    @classmethod
    def from_text(cls, text: str) -> "BufferDocument":
        return cls(text=text)

    def replace(self, start: int, end: int, text: str) -> "BufferDocument":
        """Return a new document with ``[start:end]`` replaced by ``text``."""

        start = self.clamp(start)
        end = self.clamp(end)
        if start > end:
            start, end = end, start
        updated = self.text[:start] + text + self.text[end:]
        return BufferDocument(text=updated, version=self.version + 1)

    def snapshot(self) -> Sequence[str]:
        return tuple(self.text.split("\n"))

    @property
    def length(self) -> int:
        return len(self.text)

    @property
    def line_count(self) -> int:
        return len(self._starts)

    def get_line(self, line: int) -> str:
        return self.text[self.line_start_offset(line) : self.line_end_offset(line)]

    def clamp(self, offset: int) -> int:
        return max(0, min(offset, len(self.text)))

    def line_start_offset(self, line: int) -> int:
        return self._starts[self._clamp_line(line)]

    def line_end_offset(self, line: int) -> int:
        line = self._clamp_line(line)
        if line + 1 < len(self._starts):
            return self._starts[line + 1] - 1
        return len(self.text)

    def line_length(self, line: int) -> int:
        return self.line_end_offset(line) - self.line_start_offset(line)

    def offset_to_position(self, offset: int) -> Position:
        offset = self.clamp(offset)
        line = bisect_right(self._starts, offset) - 1
        return Position(line, offset - self._starts[line])

    def position_to_offset(self, line: int, column: int) -> int:
        """Offset of ``column`` on ``line``, clamped to the line's end."""

        line = self._clamp_line(line)
        start = self._starts[line]
        return start + max(0, min(column, self.line_end_offset(line) - start))

    def _clamp_line(self, line: int) -> int:
        return max(0, min(line, len(self._starts) - 1))


__all__ = ["BufferDocument", "Position"]

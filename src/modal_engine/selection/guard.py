"""Same-thread suppression of selection notifications the engine caused."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator


class ReentrancyGuard:
    """Depth counter held while the engine mutates host selections.

    Nested ``hold()`` scopes are allowed; the guard is released when the
    outermost scope exits, including when it exits with an exception.
    """

    __slots__ = ("_depth",)

    def __init__(self) -> None:
        self._depth = 0

    @property
    def held(self) -> bool:
        return self._depth > 0

    @property
    def depth(self) -> int:
        return self._depth

    @contextmanager
    def hold(self) -> Iterator["ReentrancyGuard"]:
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1


__all__ = ["ReentrancyGuard"]

"""Document storage and registers."""

from .document import BufferDocument, Position
from .registers import UNNAMED, RegisterBank, RegisterValue

__all__ = [
    "BufferDocument",
    "Position",
    "RegisterBank",
    "RegisterValue",
    "UNNAMED",
]

"""Host editor contract and the in-memory reference host."""

from .memory import MemoryCaret, MemoryEditor
from .protocol import HostCaret, HostEditor, SelectionListener, TextGeometry

__all__ = [
    "HostCaret",
    "HostEditor",
    "MemoryCaret",
    "MemoryEditor",
    "SelectionListener",
    "TextGeometry",
]

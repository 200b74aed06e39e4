"""Textual host adapter: ``TextArea`` host, UI hooks and a demo app."""

from .controller import TextualModalAdapter, TextualUIHooks, mode_label
from .host import TextAreaCaret, TextAreaHost

__all__ = [
    "TextAreaCaret",
    "TextAreaHost",
    "TextualModalAdapter",
    "TextualUIHooks",
    "mode_label",
]

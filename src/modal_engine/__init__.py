"""Vim-style modal editing engine for hosts that only know carets and selections."""

__all__ = [
    "actions",
    "adapters",
    "buffer",
    "engine",
    "host",
    "keymaps",
    "modes",
    "runtime",
    "selection",
    "session",
]

__version__ = "0.1.0"

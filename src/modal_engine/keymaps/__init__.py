"""Declarative keymap registry, default bindings and key ownership."""

from .models import (
    ActionRef,
    Binding,
    HandlerKind,
    KeySequence,
    KeyStroke,
    WhenClause,
    parse_keys,
)
from .registry import KeymapConflictError, KeymapRegistry, RegistryStats
from .resolver import KeymapResolver, ResolutionMatch, ResolutionResult
from .ownership import (
    KeyOwnershipArbiter,
    OwnershipDecision,
    ShortcutConflictTable,
    ShortcutOwner,
)
from .defaults import load_default_keymaps

__all__ = [
    "ActionRef",
    "Binding",
    "HandlerKind",
    "KeySequence",
    "KeyStroke",
    "WhenClause",
    "parse_keys",
    "KeymapRegistry",
    "KeymapConflictError",
    "RegistryStats",
    "KeymapResolver",
    "ResolutionResult",
    "ResolutionMatch",
    "KeyOwnershipArbiter",
    "OwnershipDecision",
    "ShortcutConflictTable",
    "ShortcutOwner",
    "load_default_keymaps",
]

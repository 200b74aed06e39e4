"""Mode model: enums, frames, the per-session stack and dispatch types.

``ModeManager`` lives in :mod:`modal_engine.modes.mode_manager` and is
imported from there directly.
"""

from .base_mode import (
    Invocation,
    KeyInput,
    MappingScope,
    Mode,
    ModeBus,
    ModeContext,
    ModeResult,
    OperatorTarget,
    SubMode,
)
from .mode_stack import ModeFrame, ModeStack, ModeStackError

__all__ = [
    "Invocation",
    "KeyInput",
    "MappingScope",
    "Mode",
    "ModeBus",
    "ModeContext",
    "ModeFrame",
    "ModeResult",
    "ModeStack",
    "OperatorTarget",
    "ModeStackError",
    "SubMode",
]

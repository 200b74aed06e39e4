"""Selection translation, block geometry and reentrancy suppression.

``VisualController`` lives in ``modal_engine.selection.controller`` and is
not re-exported here because it depends on ``modal_engine.session``, which
in turn imports the guard from this package.
"""

from .block import BlockSegment, block_segments, compute_bounds, is_block
from .bridge import classify_sub_mode, from_semantic, lead_selection_offset, to_semantic
from .guard import ReentrancyGuard
from .ranges import LAST_COLUMN, RawSelection, SemanticSelection, VisualChange, VisualRange

__all__ = [
    "BlockSegment",
    "LAST_COLUMN",
    "RawSelection",
    "ReentrancyGuard",
    "SemanticSelection",
    "VisualChange",
    "VisualRange",
    "block_segments",
    "classify_sub_mode",
    "compute_bounds",
    "from_semantic",
    "is_block",
    "lead_selection_offset",
    "to_semantic",
]

"""
Board Core - Shared models, geometry, editing engine and causal layout.

This package provides the editing engine used by both the board server and
interactive front-ends, ensuring a single source of truth for board logic.
"""

from .models import (
    # Enums
    ShapeKind,
    AnchorSide,
    Polarity,
    CommentType,
    EntityKind,
    EdgeHandle,
    ResizeHandle,
    # Core models
    Point,
    ShapeAnchor,
    LiteralPoint,
    Anchor,
    Shape,
    Note,
    TextItem,
    Connector,
    Comment,
    Stroke,
    NodeEvidence,
    CausalNode,
    CausalLink,
    Cursor,
    BoardEvent,
    Board,
    Hit,
)

from .errors import BoardError, EntityNotFoundError, InteractionError
from .geometry import Bounds, Viewport
from .document import BoardDocument, DeletionResult
from .anchors import AnchorResolver
from .hit_testing import HitTester
from .selection import Selection, SelectionEngine, SelectionMode
from .marquee import MarqueeSelector, MarqueeVariant
from .layout import LayoutResult, compute_causal_layout, apply_causal_layout
from .status import propagate, status_rollup, known_groups
from .validation import validate_board, validation_summary, ValidationIssue, IssueSeverity
from .presence import PresenceMap, CursorThrottle
from .interaction import InteractionController, InteractionMode, Tool, PointerButton

__all__ = [
    # Enums
    "ShapeKind",
    "AnchorSide",
    "Polarity",
    "CommentType",
    "EntityKind",
    "EdgeHandle",
    "ResizeHandle",
    # Models
    "Point",
    "ShapeAnchor",
    "LiteralPoint",
    "Anchor",
    "Shape",
    "Note",
    "TextItem",
    "Connector",
    "Comment",
    "Stroke",
    "NodeEvidence",
    "CausalNode",
    "CausalLink",
    "Cursor",
    "BoardEvent",
    "Board",
    "Hit",
    # Errors
    "BoardError",
    "EntityNotFoundError",
    "InteractionError",
    # Geometry
    "Bounds",
    "Viewport",
    # Editing engine
    "BoardDocument",
    "DeletionResult",
    "AnchorResolver",
    "HitTester",
    "Selection",
    "SelectionEngine",
    "SelectionMode",
    "MarqueeSelector",
    "MarqueeVariant",
    "InteractionController",
    "InteractionMode",
    "Tool",
    "PointerButton",
    # Layout
    "LayoutResult",
    "compute_causal_layout",
    "apply_causal_layout",
    # Status
    "propagate",
    "status_rollup",
    "known_groups",
    # Validation
    "validate_board",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
    # Presence
    "PresenceMap",
    "CursorThrottle",
]

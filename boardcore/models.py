"""
Core data models for boards.

These models define the canonical board document:
- Drawable entities (shapes, strokes, texts, sticky notes, comment pins)
- Connectors whose endpoints are anchors (bound to a shape edge or literal)
- The causal-graph layer (nodes and polarity/weight labelled links)
- Presence cursors and push events

Field Naming Convention:
- Python attributes are snake_case
- JSON serialization uses the camelCase wire names (strokeWidth, causalNodes, ...)
- Connector and causal-link endpoints are `source`/`target` in Python and
  `from`/`to` on the wire (`from` is a Python keyword)
- Both spellings are accepted on input
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional, Union
import uuid

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

# Minimum width/height of notes and of a resized selection, in world units.
MIN_SIZE = 16.0

# Causal nodes are drawn and hit-tested as circles of this world-space radius.
CAUSAL_NODE_RADIUS = 28.0


def generate_id() -> str:
    """Generate an opaque entity id."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BoardModel(BaseModel):
    """Base for all wire models: camelCase aliases, snake_case attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Enums ---

class ShapeKind(str, Enum):
    """Freeform shape kinds."""
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"


class AnchorSide(str, Enum):
    """Named edge midpoints a connector may bind to."""
    LEFT = "left"
    RIGHT = "right"
    BOTTOM = "bottom"


class Polarity(str, Enum):
    """Sign of a causal influence."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class CommentType(str, Enum):
    COMMENT = "comment"
    REACTION = "reaction"


class EntityKind(str, Enum):
    """Kinds of board entity a hit or selection item can refer to."""
    SHAPE = "shape"
    NOTE = "note"
    TEXT = "text"
    CONNECTOR = "connector"
    CAUSAL_NODE = "causal-node"
    CAUSAL_LINK = "causal-link"
    COMMENT = "comment"
    STROKE = "stroke"


class EdgeHandle(str, Enum):
    """Sub-part of a connector or causal link under the pointer."""
    FROM = "from"
    TO = "to"
    MIDPOINT = "midpoint"


class ResizeHandle(str, Enum):
    """Corner handles of a selection outline."""
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"


# --- Geometry value types ---

class Point(BoardModel, frozen=True):
    """A point in world (or screen) space."""
    x: float
    y: float

    def translated(self, dx: float, dy: float) -> "Point":
        return Point(x=self.x + dx, y=self.y + dy)


# --- Anchors ---

class ShapeAnchor(BoardModel):
    """
    An endpoint bound to a named edge midpoint of a shape.

    The coordinate is re-resolved against the live shape on every use.
    `point` remembers where the anchor was when it was created and is only
    used once the shape has been deleted.
    """
    shape_id: str
    side: AnchorSide
    point: Optional[Point] = None


class LiteralPoint(BoardModel):
    """An endpoint pinned to a world coordinate. A missing point is malformed."""
    point: Optional[Point] = None

    @model_validator(mode="before")
    @classmethod
    def accept_bare_coordinates(cls, data: Any) -> Any:
        """Accept a bare {x, y} object as a literal anchor."""
        if isinstance(data, dict) and "point" not in data and "x" in data and "y" in data:
            return {"point": {"x": data["x"], "y": data["y"]}}
        return data


def _anchor_tag(value: Any) -> str:
    if isinstance(value, dict):
        return "shape" if (value.get("shapeId") or value.get("shape_id")) else "literal"
    return "shape" if isinstance(value, ShapeAnchor) else "literal"


Anchor = Annotated[
    Union[
        Annotated[ShapeAnchor, Tag("shape")],
        Annotated[LiteralPoint, Tag("literal")],
    ],
    Discriminator(_anchor_tag),
]


# --- Whiteboard entities ---

class Shape(BoardModel):
    """A rectangle or ellipse spanning two opposite corners (in any order)."""
    id: str = Field(default_factory=generate_id)
    kind: ShapeKind = ShapeKind.RECTANGLE
    points: list[Point]
    color: str = "#22d3ee"
    stroke_width: float = 2.0

    @field_validator("points")
    @classmethod
    def two_corners(cls, value: list[Point]) -> list[Point]:
        if len(value) != 2:
            raise ValueError(f"shape needs exactly two corner points, got {len(value)}")
        return value


class Note(BoardModel):
    """A sticky note. Size never drops below MIN_SIZE."""
    id: str = Field(default_factory=generate_id)
    position: Point
    width: float = 180.0
    height: float = 120.0
    content: str = ""
    color: str = "#fcd34d"

    @field_validator("width", "height")
    @classmethod
    def floor_size(cls, value: float) -> float:
        return max(MIN_SIZE, value)


class TextItem(BoardModel):
    """Free text anchored at its baseline; width is measured at render time."""
    id: str = Field(default_factory=generate_id)
    position: Point
    content: str = ""
    font_size: float = 16.0
    color: str = "#e5e7eb"


class Connector(BoardModel):
    """A directed line between two anchors."""
    id: str = Field(default_factory=generate_id)
    source: Anchor = Field(alias="from")
    target: Anchor = Field(alias="to")
    color: str = "#fbbf24"
    width: float = 2.0
    label: str = "flow"


class Comment(BoardModel):
    """A comment or reaction pinned to a world position."""
    id: str = Field(default_factory=generate_id)
    position: Point
    author: str = "You"
    content: str = ""
    type: CommentType = CommentType.COMMENT


class Stroke(BoardModel):
    """Freehand ink."""
    id: str = Field(default_factory=generate_id)
    points: list[Point] = Field(default_factory=list)
    color: str = "#22d3ee"
    width: float = 3.0
    smoothing: float = 0.45


# --- Causal graph ---

class NodeEvidence(BoardModel):
    """One upstream contribution to a causal node's derived status."""
    source_id: str
    source_label: str = ""
    status: Optional[str] = None
    confidence: Optional[float] = None
    polarity: Polarity = Polarity.POSITIVE
    weight: float = 1.0
    contribution: float = 0.0


class CausalNode(BoardModel):
    """A causal-graph variable; `position` is the centre of its circle."""
    id: str = Field(default_factory=generate_id)
    position: Point
    label: str = "Variable"
    kind: str = "variable"
    color: str = "#60a5fa"
    status: Optional[str] = None
    confidence: Optional[float] = None
    group: Optional[str] = None  # Free-text lane tag for auto layout
    status_updated_at: Optional[datetime] = None
    evidence: list[NodeEvidence] = Field(default_factory=list)


class CausalLink(BoardModel):
    """A signed, weighted influence between two distinct causal nodes."""
    id: str = Field(default_factory=generate_id)
    source: str = Field(alias="from")
    target: str = Field(alias="to")
    polarity: Polarity = Polarity.POSITIVE
    weight: float = 1.0
    label: str = "influences"

    @model_validator(mode="after")
    def distinct_endpoints(self) -> "CausalLink":
        if self.source == self.target:
            raise ValueError(f"causal link {self.id} connects node {self.source} to itself")
        return self


# --- Presence and events ---

class Cursor(BoardModel):
    """A participant's pointer, broadcast for presence."""
    id: str = ""
    label: str = "You"
    color: str = "#22d3ee"
    position: Point = Field(default_factory=lambda: Point(x=0, y=0))


class BoardEvent(BoardModel):
    """A push event about one board."""
    type: str
    board_id: str
    data: Any = None


# --- The board document ---

_COLLECTIONS = (
    "shapes", "strokes", "texts", "notes", "connectors",
    "comments", "causal_nodes", "causal_links",
)


class Board(BoardModel):
    """
    The complete board document.
    This is what gets fetched from and saved to the document store.
    """
    id: str = Field(default_factory=generate_id)
    name: str = "Untitled Board"
    shapes: list[Shape] = Field(default_factory=list)
    strokes: list[Stroke] = Field(default_factory=list)
    texts: list[TextItem] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    connectors: list[Connector] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    causal_nodes: list[CausalNode] = Field(default_factory=list)
    causal_links: list[CausalLink] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator(*_COLLECTIONS, mode="before")
    @classmethod
    def null_collection_is_empty(cls, value: Any) -> Any:
        """Missing or null collections load as empty lists."""
        return [] if value is None else value

    def to_json_dict(self) -> dict:
        """Convert to a JSON-serializable dict with wire field names."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    @classmethod
    def from_json_dict(cls, data: dict) -> "Board":
        """Create a Board from a JSON dict, normalising missing collections."""
        return cls.model_validate(data)


# --- Hits ---

@dataclass
class Hit:
    """
    The result of a spatial query: which entity is under a point.

    `handle` distinguishes grabbing a connector/link endpoint or its label
    midpoint from grabbing the whole edge (None).
    """
    type: EntityKind
    item: Any
    handle: Optional[EdgeHandle] = None
    midpoint: Optional[Point] = None

    @property
    def id(self) -> str:
        return self.item.id

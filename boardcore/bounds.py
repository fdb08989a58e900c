"""
Entity bounds and shape anchors.

One pure function per entity kind maps the entity to its axis-aligned
bounding box in world space. Boxes are recomputed from the entity's current
state on every call and never cached, so selection outlines and connector
endpoints follow entities as they move.
"""

from typing import TYPE_CHECKING, Callable, Optional

from .geometry import Bounds
from .models import (
    CAUSAL_NODE_RADIUS,
    MIN_SIZE,
    AnchorSide,
    CausalNode,
    Comment,
    EntityKind,
    Hit,
    Note,
    Point,
    Shape,
    Stroke,
    TextItem,
)

if TYPE_CHECKING:
    from .anchors import AnchorResolver

CONNECTOR_PADDING = 6.0
COMMENT_PIN_RADIUS = 10.0
DEFAULT_FONT_SIZE = 16.0

# Average glyph advance as a fraction of the font size.
GLYPH_WIDTH_RATIO = 0.6

TextMeasurer = Callable[[TextItem], float]


def approximate_text_width(text: TextItem) -> float:
    """Estimate rendered width; empty text measures as the placeholder "Text"."""
    size = text.font_size or DEFAULT_FONT_SIZE
    return max(MIN_SIZE, len(text.content or "Text") * size * GLYPH_WIDTH_RATIO)


def shape_bounds(shape: Shape) -> Optional[Bounds]:
    if len(shape.points) < 2:
        return None
    a, b = shape.points[0], shape.points[1]
    return Bounds.from_corners(a, b)


def note_bounds(note: Note) -> Bounds:
    return Bounds(note.position.x, note.position.y, note.width, note.height)


def text_bounds(text: TextItem, measure: TextMeasurer = approximate_text_width) -> Bounds:
    """Box of a text item: measured width, height equal to the font size."""
    return Bounds(
        text.position.x,
        text.position.y,
        measure(text),
        text.font_size or DEFAULT_FONT_SIZE,
    )


def causal_node_bounds(node: CausalNode) -> Bounds:
    r = CAUSAL_NODE_RADIUS
    return Bounds(node.position.x - r, node.position.y - r, r * 2, r * 2)


def stroke_bounds(stroke: Stroke) -> Optional[Bounds]:
    if not stroke.points:
        return None
    xs = [p.x for p in stroke.points]
    ys = [p.y for p in stroke.points]
    return Bounds(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def comment_bounds(comment: Comment) -> Bounds:
    r = COMMENT_PIN_RADIUS
    return Bounds(comment.position.x - r, comment.position.y - r, r * 2, r * 2)


def segment_bounds(start: Point, end: Point, padding: float = CONNECTOR_PADDING) -> Bounds:
    return Bounds.from_corners(start, end).padded(padding)


def shape_anchors(shape: Shape) -> Optional[dict[AnchorSide, Point]]:
    """Midpoints of the left, right and bottom edges of a shape's box."""
    box = shape_bounds(shape)
    if box is None:
        return None
    center_x = box.x + box.width / 2
    center_y = box.y + box.height / 2
    return {
        AnchorSide.LEFT: Point(x=box.x, y=center_y),
        AnchorSide.RIGHT: Point(x=box.right, y=center_y),
        AnchorSide.BOTTOM: Point(x=center_x, y=box.bottom),
    }


def bounds_for(
    hit: Optional[Hit],
    resolver: Optional["AnchorResolver"] = None,
    measure: TextMeasurer = approximate_text_width,
) -> Optional[Bounds]:
    """
    Bounding box of whatever a hit refers to.

    Connectors and causal links need a resolver for their endpoints and
    return None when either endpoint cannot be resolved.
    """
    if hit is None:
        return None

    kind = hit.type
    item = hit.item
    if kind == EntityKind.SHAPE:
        return shape_bounds(item)
    if kind == EntityKind.NOTE:
        return note_bounds(item)
    if kind == EntityKind.TEXT:
        return text_bounds(item, measure)
    if kind == EntityKind.CAUSAL_NODE:
        return causal_node_bounds(item)
    if kind == EntityKind.STROKE:
        return stroke_bounds(item)
    if kind == EntityKind.COMMENT:
        return comment_bounds(item)
    if kind in (EntityKind.CONNECTOR, EntityKind.CAUSAL_LINK):
        if resolver is None:
            return None
        if kind == EntityKind.CONNECTOR:
            points = resolver.connector_points(item)
        else:
            points = resolver.causal_link_points(item)
        if points is None:
            return None
        return segment_bounds(*points)
    return None

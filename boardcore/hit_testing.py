"""
Spatial queries against the board.

hit_test() answers "what is under this world point" using a fixed priority
(text, note, causal node, shape, connector) and, within a kind, the most
recently drawn entity first, matching paint order.
"""

from typing import Iterable, Optional

from .anchors import AnchorResolver
from .bounds import (
    TextMeasurer,
    approximate_text_width,
    bounds_for,
    note_bounds,
    shape_bounds,
    text_bounds,
)
from .document import BoardDocument
from .geometry import Bounds, Viewport, distance, midpoint, point_to_segment_distance, union_bounds
from .models import (
    CAUSAL_NODE_RADIUS,
    CausalNode,
    Comment,
    EdgeHandle,
    EntityKind,
    Hit,
    Note,
    Point,
    ResizeHandle,
    Shape,
    TextItem,
)

# World-space tolerance band around connectors and causal links.
EDGE_TOLERANCE = 10.0

# Screen-space sizes: these stay constant under zoom.
HANDLE_SIZE = 10.0
COMMENT_HIT_RADIUS = 14.0

# Text boxes extend this far below the baseline.
TEXT_DESCENT = 4.0

RESIZABLE_KINDS = frozenset({EntityKind.SHAPE, EntityKind.NOTE})


def is_resizable(kind: EntityKind) -> bool:
    return kind in RESIZABLE_KINDS


def classify_segment_hit(
    world: Point,
    start: Point,
    end: Point,
    tolerance: float = EDGE_TOLERANCE,
) -> tuple[bool, Optional[EdgeHandle]]:
    """
    Test a point against a segment.

    Returns:
        (hit, handle): handle is FROM/TO near an endpoint, MIDPOINT near the
        label position, or None when the body of the segment was hit
    """
    if distance(world, start) <= tolerance:
        return True, EdgeHandle.FROM
    if distance(world, end) <= tolerance:
        return True, EdgeHandle.TO
    if distance(world, midpoint(start, end)) <= tolerance:
        return True, EdgeHandle.MIDPOINT
    if point_to_segment_distance(world, start, end) <= tolerance:
        return True, None
    return False, None


class HitTester:
    """Point and segment queries over a board document."""

    def __init__(
        self,
        document: BoardDocument,
        resolver: AnchorResolver,
        measure_text: TextMeasurer = approximate_text_width,
    ):
        self._document = document
        self._resolver = resolver
        self._measure_text = measure_text

    @property
    def resolver(self) -> AnchorResolver:
        return self._resolver

    def hit_test(self, world: Point) -> Optional[Hit]:
        """Topmost entity under a world point, or None."""
        text = self.hit_text(world)
        if text is not None:
            return Hit(type=EntityKind.TEXT, item=text)
        note = self.hit_note(world)
        if note is not None:
            return Hit(type=EntityKind.NOTE, item=note)
        node = self.hit_causal_node(world)
        if node is not None:
            return Hit(type=EntityKind.CAUSAL_NODE, item=node)
        shape = self.hit_shape(world)
        if shape is not None:
            return Hit(type=EntityKind.SHAPE, item=shape)
        return self.hit_connector(world)

    # --- Per-kind queries (back-to-front) ---

    def hit_text(self, world: Point) -> Optional[TextItem]:
        for text in reversed(self._document.board.texts):
            box = text_bounds(text, self._measure_text)
            # Text is positioned at its baseline, so the box sits above y.
            if box.x <= world.x <= box.right and box.y - box.height <= world.y <= box.y + TEXT_DESCENT:
                return text
        return None

    def hit_note(self, world: Point) -> Optional[Note]:
        for note in reversed(self._document.board.notes):
            if note_bounds(note).contains(world):
                return note
        return None

    def hit_causal_node(self, world: Point) -> Optional[CausalNode]:
        for node in reversed(self._document.board.causal_nodes):
            if distance(world, node.position) <= CAUSAL_NODE_RADIUS:
                return node
        return None

    def hit_shape(self, world: Point) -> Optional[Shape]:
        for shape in reversed(self._document.board.shapes):
            box = shape_bounds(shape)
            if box is not None and box.contains(world):
                return shape
        return None

    def hit_connector(self, world: Point) -> Optional[Hit]:
        for connector in reversed(self._document.board.connectors):
            points = self._resolver.connector_points(connector)
            if points is None:
                continue
            hit, handle = classify_segment_hit(world, *points)
            if hit:
                return Hit(
                    type=EntityKind.CONNECTOR,
                    item=connector,
                    handle=handle,
                    midpoint=midpoint(*points),
                )
        return None

    def hit_causal_link(self, world: Point) -> Optional[Hit]:
        for link in reversed(self._document.board.causal_links):
            points = self._resolver.causal_link_points(link)
            if points is None:
                continue
            hit, handle = classify_segment_hit(world, *points)
            if hit:
                return Hit(
                    type=EntityKind.CAUSAL_LINK,
                    item=link,
                    handle=handle,
                    midpoint=midpoint(*points),
                )
        return None

    def hit_comment(self, world: Point, viewport: Viewport) -> Optional[Comment]:
        """Comment pins are hit in screen space so they stay grabbable when zoomed out."""
        screen = viewport.to_screen(world)
        for comment in self._document.board.comments:
            if distance(screen, viewport.to_screen(comment.position)) <= COMMENT_HIT_RADIUS:
                return comment
        return None

    # --- Bounds and handles ---

    def bounds(self, hit: Optional[Hit]) -> Optional[Bounds]:
        return bounds_for(hit, self._resolver, self._measure_text)

    def selection_bounds(self, hits: Iterable[Hit]) -> Optional[Bounds]:
        return union_bounds(self.bounds(hit) for hit in hits)

    @staticmethod
    def handle_positions(box: Bounds, viewport: Viewport) -> list[tuple[ResizeHandle, Point]]:
        """Screen positions of the four corner handles of a world box."""
        return [
            (ResizeHandle.NW, viewport.to_screen(Point(x=box.x, y=box.y))),
            (ResizeHandle.NE, viewport.to_screen(Point(x=box.right, y=box.y))),
            (ResizeHandle.SW, viewport.to_screen(Point(x=box.x, y=box.bottom))),
            (ResizeHandle.SE, viewport.to_screen(Point(x=box.right, y=box.bottom))),
        ]

    @staticmethod
    def handle_at(box: Bounds, screen: Point, viewport: Viewport) -> Optional[ResizeHandle]:
        for name, position in HitTester.handle_positions(box, viewport):
            if abs(position.x - screen.x) <= HANDLE_SIZE and abs(position.y - screen.y) <= HANDLE_SIZE:
                return name
        return None

    def detect_handle(self, hit: Hit, screen: Point, viewport: Viewport) -> Optional[ResizeHandle]:
        """Corner handle of a resizable entity under a screen point, if any."""
        if not is_resizable(hit.type):
            return None
        box = self.bounds(hit)
        if box is None:
            return None
        return self.handle_at(box, screen, viewport)

"""
Anchor resolution for connectors and causal links.

A connector endpoint is either bound to a shape edge (ShapeAnchor) or pinned
to a coordinate (LiteralPoint). Bound endpoints are never stored as
coordinates; they are resolved against the live shape every time, which is
how connectors follow shapes that move or resize.
"""

from typing import Optional

from .bounds import shape_anchors
from .config import settings
from .document import BoardDocument
from .geometry import distance
from .models import (
    Anchor,
    CausalLink,
    Connector,
    LiteralPoint,
    Point,
    ShapeAnchor,
)


class AnchorResolver:
    """Resolves anchors against a board document and snaps new endpoints."""

    def __init__(self, document: BoardDocument, snap_tolerance: Optional[float] = None):
        self._document = document
        self.snap_tolerance = (
            settings.effective_snap_tolerance if snap_tolerance is None else snap_tolerance
        )

    def resolve(self, anchor: Optional[Anchor]) -> Optional[Point]:
        """
        Current world position of an anchor.

        A shape anchor resolves to the live edge midpoint while its shape
        exists, then falls back to the point it carries. Returns None when
        nothing usable is left; callers skip the connector in that case.
        """
        if anchor is None:
            return None
        if isinstance(anchor, ShapeAnchor):
            shape = self._document.get_shape(anchor.shape_id)
            if shape is not None:
                anchors = shape_anchors(shape)
                if anchors is not None:
                    return anchors[anchor.side]
            return anchor.point
        if isinstance(anchor, LiteralPoint):
            return anchor.point
        raise TypeError(f"not an anchor: {anchor!r}")

    def snap_to_anchor(self, point: Point, tolerance: Optional[float] = None) -> Anchor:
        """
        Bind a point to the nearest shape anchor within tolerance.

        Args:
            point: World point where an endpoint was dropped
            tolerance: Snap radius in world units; defaults to the resolver's.
                A tolerance <= 0 disables snapping.

        Returns:
            A ShapeAnchor for the closest anchor in range, else a LiteralPoint
        """
        tolerance = self.snap_tolerance if tolerance is None else tolerance
        shapes = self._document.board.shapes
        if tolerance <= 0 or not shapes:
            return LiteralPoint(point=point)

        best: Optional[ShapeAnchor] = None
        best_dist = 0.0
        for shape in shapes:
            anchors = shape_anchors(shape)
            if anchors is None:
                continue
            for side, anchor_point in anchors.items():
                dist = distance(point, anchor_point)
                if dist <= tolerance and (best is None or dist < best_dist):
                    best = ShapeAnchor(shape_id=shape.id, side=side, point=anchor_point)
                    best_dist = dist

        if best is not None:
            return best
        return LiteralPoint(point=point)

    def connector_points(self, connector: Connector) -> Optional[tuple[Point, Point]]:
        """Resolved (from, to) endpoints, or None if either is unresolvable."""
        start = self.resolve(connector.source)
        end = self.resolve(connector.target)
        if start is None or end is None:
            return None
        return start, end

    def causal_link_points(self, link: CausalLink) -> Optional[tuple[Point, Point]]:
        """Centres of both linked nodes, or None if either node is gone."""
        source = self._document.get_causal_node(link.source)
        target = self._document.get_causal_node(link.target)
        if source is None or target is None:
            return None
        return source.position, target.position

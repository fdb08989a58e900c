"""
Marquee (drag-rectangle) selection.

Any entity whose own bounding box overlaps the marquee is picked; partial
overlap qualifies, containment is not required.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .document import BoardDocument
from .geometry import Bounds
from .hit_testing import HitTester
from .models import EntityKind, Hit, Point


class MarqueeVariant(str, Enum):
    """Which entity kinds a marquee can pick."""
    WHITEBOARD = "whiteboard"  # shapes, notes, texts
    CAUSAL = "causal"          # causal nodes


_PICKABLE: dict[MarqueeVariant, tuple[tuple[EntityKind, str], ...]] = {
    MarqueeVariant.WHITEBOARD: (
        (EntityKind.SHAPE, "shapes"),
        (EntityKind.NOTE, "notes"),
        (EntityKind.TEXT, "texts"),
    ),
    MarqueeVariant.CAUSAL: (
        (EntityKind.CAUSAL_NODE, "causal_nodes"),
    ),
}


@dataclass
class Marquee:
    start: Point
    current: Point

    @property
    def rect(self) -> Bounds:
        return Bounds.from_corners(self.start, self.current)


class MarqueeSelector:
    """Tracks one marquee gesture and collects the entities it overlaps."""

    def __init__(
        self,
        document: BoardDocument,
        hit_tester: HitTester,
        variant: MarqueeVariant = MarqueeVariant.WHITEBOARD,
    ):
        self._document = document
        self._hit_tester = hit_tester
        self.variant = variant
        self.marquee: Optional[Marquee] = None

    @property
    def active(self) -> bool:
        return self.marquee is not None

    def begin(self, world: Point) -> Marquee:
        self.marquee = Marquee(start=world, current=world)
        return self.marquee

    def update(self, world: Point) -> bool:
        if self.marquee is None:
            return False
        self.marquee.current = world
        return True

    def cancel(self):
        self.marquee = None

    def finish(self, world: Point) -> list[Hit]:
        """End the gesture at `world` and return every overlapped entity."""
        if self.marquee is None:
            return []
        self.marquee.current = world
        hits = self.collect(self.marquee.rect)
        self.marquee = None
        return hits

    def collect(self, rect: Bounds) -> list[Hit]:
        hits = []
        for kind, attr in _PICKABLE[self.variant]:
            for item in getattr(self._document.board, attr):
                hit = Hit(type=kind, item=item)
                box = self._hit_tester.bounds(hit)
                if box is not None and box.intersects(rect):
                    hits.append(hit)
        return hits

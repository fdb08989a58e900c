"""
World/screen geometry for the board canvas.

Provides:
- Bounds: axis-aligned boxes in world space
- Vector helpers (distance, point-to-segment distance, midpoints, blending)
- Viewport: the pan/zoom transform between world and screen coordinates

Coordinate Systems:
- World: a single unbounded plane all entities live in
- Screen: canvas pixels; screen = world * scale + offset
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from .models import Point

MIN_SCALE = 0.25
MAX_SCALE = 4.0

# Scale factors applied per wheel notch.
WHEEL_ZOOM_OUT = 0.9
WHEEL_ZOOM_IN = 1.1


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def midpoint(a: Point, b: Point) -> Point:
    return Point(x=(a.x + b.x) / 2, y=(a.y + b.y) / 2)


def blend(a: Point, b: Point, t: float) -> Point:
    """Point a fraction `t` (clamped to [0, 1]) of the way from a to b."""
    amount = 0.5 if math.isnan(t) else clamp(t, 0.0, 1.0)
    return Point(x=a.x + (b.x - a.x) * amount, y=a.y + (b.y - a.y) * amount)


def point_to_segment_distance(p: Point, a: Point, b: Point) -> float:
    """
    Distance from p to the finite segment a-b.

    The projection parameter is clamped to [0, 1] so points beyond either
    end measure to the nearest endpoint. A degenerate segment measures to a.
    """
    dx = b.x - a.x
    dy = b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return distance(p, a)
    t = clamp(((p.x - a.x) * dx + (p.y - a.y) * dy) / length_sq, 0.0, 1.0)
    return math.hypot(p.x - (a.x + t * dx), p.y - (a.y + t * dy))


@dataclass(frozen=True)
class Bounds:
    """An axis-aligned box: top-left corner plus size."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def origin(self) -> Point:
        return Point(x=self.x, y=self.y)

    @property
    def center(self) -> Point:
        return Point(x=self.x + self.width / 2, y=self.y + self.height / 2)

    @classmethod
    def from_corners(cls, a: Point, b: Point) -> "Bounds":
        """Box spanning two opposite corners given in any order."""
        left, top = min(a.x, b.x), min(a.y, b.y)
        return cls(left, top, abs(b.x - a.x), abs(b.y - a.y))

    def contains(self, point: Point) -> bool:
        """Inclusive point-in-box test."""
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom

    def intersects(self, other: "Bounds") -> bool:
        """Separating-axis overlap test; touching edges count as overlap."""
        return (
            self.x <= other.right
            and self.right >= other.x
            and self.y <= other.bottom
            and self.bottom >= other.y
        )

    def union(self, other: "Bounds") -> "Bounds":
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        return Bounds(
            left,
            top,
            max(self.right, other.right) - left,
            max(self.bottom, other.bottom) - top,
        )

    def padded(self, amount: float) -> "Bounds":
        return Bounds(
            self.x - amount, self.y - amount,
            self.width + amount * 2, self.height + amount * 2,
        )


def union_bounds(boxes: Iterable[Optional[Bounds]]) -> Optional[Bounds]:
    """Smallest box enclosing every non-None box, or None if there are none."""
    result: Optional[Bounds] = None
    for box in boxes:
        if box is None:
            continue
        result = box if result is None else result.union(box)
    return result


class Viewport:
    """
    Pan/zoom transform between world and screen space.

    Zooming keeps the world point under the zoom anchor fixed on screen;
    scale is clamped to [MIN_SCALE, MAX_SCALE]. Panning moves the offset by
    the screen-space pointer delta since the pan started.
    """

    def __init__(self, scale: float = 1.0, offset: Optional[Point] = None):
        self.scale = clamp(scale, MIN_SCALE, MAX_SCALE)
        self.offset = offset or Point(x=0, y=0)
        self._pan_origin: Optional[Point] = None
        self._pan_start_offset: Optional[Point] = None

    def to_world(self, screen: Point) -> Point:
        return Point(
            x=(screen.x - self.offset.x) / self.scale,
            y=(screen.y - self.offset.y) / self.scale,
        )

    def to_screen(self, world: Point) -> Point:
        return Point(
            x=world.x * self.scale + self.offset.x,
            y=world.y * self.scale + self.offset.y,
        )

    def zoom(self, anchor: Point, factor: float) -> float:
        """
        Multiply the scale by `factor` around a screen anchor.

        Args:
            anchor: Screen point whose world position must not move
            factor: Scale multiplier (> 0)

        Returns:
            The new (clamped) scale
        """
        if factor <= 0:
            raise ValueError(f"zoom factor must be positive, got {factor}")
        world_before = self.to_world(anchor)
        self.scale = clamp(self.scale * factor, MIN_SCALE, MAX_SCALE)
        self.offset = Point(
            x=anchor.x - world_before.x * self.scale,
            y=anchor.y - world_before.y * self.scale,
        )
        return self.scale

    def zoom_wheel(self, anchor: Point, delta_y: float) -> float:
        """Zoom one wheel notch: scrolling down zooms out, up zooms in."""
        return self.zoom(anchor, WHEEL_ZOOM_OUT if delta_y > 0 else WHEEL_ZOOM_IN)

    # --- Panning ---

    @property
    def panning(self) -> bool:
        return self._pan_origin is not None

    def begin_pan(self, screen: Point):
        self._pan_origin = screen
        self._pan_start_offset = self.offset

    def update_pan(self, screen: Point) -> bool:
        """Move the offset by the pointer delta since begin_pan. False if not panning."""
        if self._pan_origin is None or self._pan_start_offset is None:
            return False
        self.offset = Point(
            x=self._pan_start_offset.x + screen.x - self._pan_origin.x,
            y=self._pan_start_offset.y + screen.y - self._pan_origin.y,
        )
        return True

    def end_pan(self):
        self._pan_origin = None
        self._pan_start_offset = None

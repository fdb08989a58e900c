"""
Selection and affine group transforms.

A selection captures every selected entity's geometry when a gesture starts
and re-derives the live geometry from that snapshot on every pointer move,
so long drags accumulate no rounding drift:

- Move translates each captured geometry by (world - drag origin).
- Resize holds the corner opposite the grabbed handle fixed, moves the
  grabbed corner to the pointer (never shrinking below MIN_SIZE per axis)
  and maps every item from the old union box into the new one, so the
  relative layout of the group scales proportionally. Notes and shapes
  are floored at MIN_SIZE per axis afterwards, so a flat shape still
  resizes into a real box.

Mutations only set `dirty`; the document is committed once, on finish().
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .anchors import AnchorResolver
from .document import BoardDocument
from .geometry import Bounds
from .hit_testing import HitTester, is_resizable
from .models import MIN_SIZE, EntityKind, Hit, Point, ResizeHandle
from .utils.logging import get_logger

logger = get_logger(__name__)


class SelectionMode(str, Enum):
    MOVE = "move"
    RESIZE = "resize"


@dataclass
class InitialGeometry:
    """Geometry of one item at the instant the gesture started."""
    bounds: Optional[Bounds]
    points: Optional[list[Point]] = None  # shape corners
    position: Optional[Point] = None
    endpoints: Optional[tuple[Point, Point]] = None  # resolved connector ends


@dataclass
class SelectedItem:
    hit: Hit
    initial: InitialGeometry


@dataclass
class Selection:
    """The active selection and the state of the drag acting on it."""
    items: list[SelectedItem]
    origin: Point
    initial_union: Optional[Bounds]
    mode: SelectionMode = SelectionMode.MOVE
    handle: Optional[ResizeHandle] = None
    dragging: bool = True
    dirty: bool = False

    @property
    def hits(self) -> list[Hit]:
        return [item.hit for item in self.items]

    @property
    def ids(self) -> set[str]:
        return {item.hit.item.id for item in self.items}

    @property
    def resizable(self) -> bool:
        return bool(self.items) and all(is_resizable(item.hit.type) for item in self.items)


def resized_union(initial: Bounds, handle: ResizeHandle, world: Point, min_size: float = MIN_SIZE) -> Bounds:
    """
    Union box after dragging one corner handle to `world`.

    The opposite corner stays fixed and each axis is floored at `min_size`.
    """
    right = initial.right
    bottom = initial.bottom
    if handle == ResizeHandle.NW:
        x = min(world.x, right - min_size)
        y = min(world.y, bottom - min_size)
        return Bounds(x, y, right - x, bottom - y)
    if handle == ResizeHandle.NE:
        y = min(world.y, bottom - min_size)
        return Bounds(initial.x, y, max(min_size, world.x - initial.x), bottom - y)
    if handle == ResizeHandle.SW:
        x = min(world.x, right - min_size)
        return Bounds(x, initial.y, right - x, max(min_size, world.y - initial.y))
    return Bounds(
        initial.x,
        initial.y,
        max(min_size, world.x - initial.x),
        max(min_size, world.y - initial.y),
    )


def floor_shape_corners(corners: list[Point], within: Bounds, min_size: float = MIN_SIZE) -> list[Point]:
    """
    Widen a resized shape so each axis spans at least `min_size`.

    A short axis grows toward the centre of `within` (the resized union box),
    so a flat shape on either edge of the union stays inside it. Corner order
    is preserved.
    """
    a, b = corners
    centre = within.center

    def floor_axis(u: float, v: float, mid: float) -> tuple[float, float]:
        if abs(v - u) >= min_size:
            return u, v
        if (u + v) / 2 > mid:
            high = max(u, v)
            low = high - min_size
        else:
            low = min(u, v)
            high = low + min_size
        return (low, high) if u <= v else (high, low)

    ax, bx = floor_axis(a.x, b.x, centre.x)
    ay, by = floor_axis(a.y, b.y, centre.y)
    return [Point(x=ax, y=ay), Point(x=bx, y=by)]


class SelectionEngine:
    """
    Owns the current selection and applies move/resize drags to it.

    Every drag opens a local mutation window on the document; finish()
    commits it exactly once when anything changed, cancel() closes it
    without committing.
    """

    def __init__(self, document: BoardDocument, hit_tester: HitTester):
        self._document = document
        self._hit_tester = hit_tester
        self.selection: Optional[Selection] = None

    @property
    def _resolver(self) -> AnchorResolver:
        return self._hit_tester.resolver

    @property
    def is_dragging(self) -> bool:
        return self.selection is not None and self.selection.dragging

    # --- Starting and ending ---

    def start(self, hit: Hit, world: Point, handle: Optional[ResizeHandle] = None) -> Selection:
        """Select a single hit and start dragging it (resizing if a handle was grabbed)."""
        initial = self._capture(hit)
        self.selection = Selection(
            items=[SelectedItem(hit, initial)],
            origin=world,
            initial_union=initial.bounds,
            mode=SelectionMode.RESIZE if handle else SelectionMode.MOVE,
            handle=handle,
        )
        self._document.begin_local_mutation()
        return self.selection

    def start_from_hits(
        self,
        hits: list[Hit],
        world: Point,
        handle: Optional[ResizeHandle] = None,
        dragging: bool = True,
    ) -> Selection:
        """Select several hits, snapshotting their geometry and union box."""
        items = [SelectedItem(hit, self._capture(hit)) for hit in hits]
        union = None
        for item in items:
            if item.initial.bounds is None:
                continue
            union = item.initial.bounds if union is None else union.union(item.initial.bounds)
        self.selection = Selection(
            items=items,
            origin=world,
            initial_union=union,
            mode=SelectionMode.RESIZE if handle else SelectionMode.MOVE,
            handle=handle,
            dragging=dragging,
        )
        if dragging:
            self._document.begin_local_mutation()
        return self.selection

    def regrab(self, world: Point, handle: Optional[ResizeHandle] = None) -> Optional[Selection]:
        """Start a new drag on the existing selection, recapturing its geometry."""
        if self.selection is None or not self.selection.items:
            return None
        return self.start_from_hits(self.selection.hits, world, handle=handle)

    def clear(self):
        if self.is_dragging:
            self._document.abort_local_mutation()
        self.selection = None

    def finish(self) -> bool:
        """
        End the drag. Commits the document once if anything moved.

        Returns:
            True if a commit happened
        """
        sel = self.selection
        if sel is None or not sel.dragging:
            return False
        sel.dragging = False
        if sel.dirty:
            logger.debug("selection committed", mode=sel.mode.value, items=len(sel.items))
            self._document.commit()
            return True
        self._document.abort_local_mutation()
        return False

    def cancel(self):
        """End the drag without committing; the selection itself is kept."""
        if self.selection is not None and self.selection.dragging:
            self.selection.dragging = False
            self._document.abort_local_mutation()

    # --- Updating ---

    def update(self, world: Point) -> bool:
        """Apply the drag for the current pointer position. Returns True if anything changed."""
        sel = self.selection
        if sel is None or not sel.dragging or not sel.items:
            return False
        if sel.mode == SelectionMode.RESIZE and sel.handle and sel.resizable:
            return self._apply_resize(sel, world)
        if sel.mode == SelectionMode.MOVE:
            return self._apply_move(sel, world)
        return False

    def _capture(self, hit: Hit) -> InitialGeometry:
        item = hit.item
        initial = InitialGeometry(bounds=self._hit_tester.bounds(hit))
        if hit.type == EntityKind.SHAPE:
            initial.points = list(item.points)
        if hit.type == EntityKind.CONNECTOR:
            initial.endpoints = self._resolver.connector_points(item)
        position = getattr(item, "position", None)
        if position is not None:
            initial.position = position
        return initial

    def _apply_move(self, sel: Selection, world: Point) -> bool:
        dx = world.x - sel.origin.x
        dy = world.y - sel.origin.y
        changed = False
        connectors = []

        for selected in sel.items:
            hit, initial = selected.hit, selected.initial
            item = hit.item
            if hit.type == EntityKind.SHAPE and initial.points:
                item.points = [p.translated(dx, dy) for p in initial.points]
                changed = True
            elif hit.type == EntityKind.NOTE and initial.bounds is not None:
                item.position = Point(x=initial.bounds.x + dx, y=initial.bounds.y + dy)
                changed = True
            elif hit.type == EntityKind.TEXT and initial.position is not None:
                item.position = initial.position.translated(dx, dy)
                changed = True
            elif hit.type == EntityKind.CAUSAL_NODE and initial.bounds is not None:
                # Node position is the circle centre; derive it from the captured box.
                item.position = initial.bounds.center.translated(dx, dy)
                changed = True
            elif hit.type == EntityKind.CONNECTOR and initial.endpoints is not None:
                connectors.append(selected)

        # Re-snap after shapes have moved so endpoints bind to their new anchors.
        for selected in connectors:
            start, end = selected.initial.endpoints
            self._resnap(selected.hit, start.translated(dx, dy), end.translated(dx, dy))
            changed = True

        sel.dirty = sel.dirty or changed
        return changed

    def _apply_resize(self, sel: Selection, world: Point) -> bool:
        old = sel.initial_union
        if old is None:
            return False
        new = resized_union(old, sel.handle, world)
        scale_x = new.width / (old.width or 1)
        scale_y = new.height / (old.height or 1)

        def remap(p: Point) -> Point:
            return Point(
                x=new.x + (p.x - old.x) * scale_x,
                y=new.y + (p.y - old.y) * scale_y,
            )

        changed = False
        for selected in sel.items:
            hit, initial = selected.hit, selected.initial
            item = hit.item
            if hit.type == EntityKind.SHAPE and initial.points:
                item.points = floor_shape_corners([remap(p) for p in initial.points], new)
                changed = True
            elif hit.type == EntityKind.NOTE and initial.bounds is not None:
                item.position = remap(initial.bounds.origin)
                item.width = max(MIN_SIZE, initial.bounds.width * scale_x)
                item.height = max(MIN_SIZE, initial.bounds.height * scale_y)
                changed = True

        sel.dirty = sel.dirty or changed
        return changed

    def _resnap(self, hit: Hit, start: Point, end: Point):
        connector = hit.item
        connector.source = self._resolver.snap_to_anchor(start)
        connector.target = self._resolver.snap_to_anchor(end)

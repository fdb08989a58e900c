"""
Interaction controller - the per-gesture state machine.

Exactly one gesture is active at a time. Every pointer-down enters a mode
from Idle, pointer-move updates it, pointer-up commits it and pointer-leave
cancels it without committing:

    Idle -> Panning            (secondary button, or the pan tool)
    Idle -> SelectionDrag      (grab an entity or the current selection)
    Idle -> Marquee            (select tool on empty canvas)
    Idle -> ShapeDrawing       (rectangle, ellipse, connector, text, note)
    Idle -> StrokeDrawing      (pen)
    Idle -> CausalLinkDrawing  (causal-link tool on a node)

Pointer-down while not Idle raises InteractionError. Wheel zoom is allowed
in any mode. Clicks that open an editor (comments, new causal nodes,
double-click) leave the controller Idle; the editor reports back through
the callback it is handed.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Optional, Protocol

from .anchors import AnchorResolver
from .bounds import TextMeasurer, approximate_text_width
from .config import settings
from .document import MIN_STROKE_POINTS, BoardDocument, DeletionResult
from .errors import InteractionError
from .geometry import Viewport, blend, midpoint
from .hit_testing import HitTester
from .layout import LayoutResult, apply_causal_layout
from .marquee import MarqueeSelector, MarqueeVariant
from .models import (
    CausalLink,
    CausalNode,
    Comment,
    Connector,
    EntityKind,
    Hit,
    Note,
    Point,
    Shape,
    ShapeKind,
    Stroke,
    TextItem,
)
from .selection import SelectionEngine
from .status import assign_group, known_groups
from .utils.logging import get_logger

logger = get_logger(__name__)

SHAPE_COLORS = {
    ShapeKind.RECTANGLE: "#22d3ee",
    ShapeKind.ELLIPSE: "#a78bfa",
}
SHAPE_STROKE_WIDTH = 2.0
NEW_TEXT_FONT_SIZE = 18.0


class InteractionMode(str, Enum):
    IDLE = "idle"
    PANNING = "panning"
    SHAPE_DRAWING = "shape-drawing"
    STROKE_DRAWING = "stroke-drawing"
    CAUSAL_LINK_DRAWING = "causal-link-drawing"
    SELECTION_DRAG = "selection-drag"
    MARQUEE = "marquee"


class Tool(str, Enum):
    PAN = "pan"
    SELECT = "select"
    PEN = "pen"
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"
    CONNECTOR = "connector"
    TEXT = "text"
    NOTE = "note"
    COMMENT = "comment"
    CAUSAL_NODE = "causal-node"
    CAUSAL_LINK = "causal-link"


class PointerButton(IntEnum):
    PRIMARY = 0
    MIDDLE = 1
    SECONDARY = 2


class EditorHost(Protocol):
    """
    Opens inline editors for text, notes, comments and causal entities.

    `entity` is None when creating. The editor calls `on_commit` exactly once
    with the finished entity when the user confirms and never on cancel.
    """

    def open(
        self,
        kind: EntityKind,
        position: Point,
        entity: Optional[Any],
        on_commit: Callable[[Any], None],
    ) -> None: ...


@dataclass
class Drawing:
    """An in-progress creation gesture."""
    tool: Tool
    start: Point
    current: Point
    points: list[Point] = field(default_factory=list)  # pen only
    start_node_id: Optional[str] = None                # causal-link only
    color: Optional[str] = None
    width: Optional[float] = None
    smoothing: Optional[float] = None


# --- Entity factories ---

def make_shape(kind: ShapeKind, start: Point, end: Point) -> Shape:
    return Shape(
        kind=kind,
        points=[start, end],
        color=SHAPE_COLORS[kind],
        stroke_width=SHAPE_STROKE_WIDTH,
    )


def make_connector(resolver: AnchorResolver, start: Point, end: Point) -> Connector:
    """Connector between two dropped points, each snapped to a nearby shape anchor."""
    return Connector(
        source=resolver.snap_to_anchor(start),
        target=resolver.snap_to_anchor(end),
        color=settings.connector_color,
        width=settings.connector_width,
        label=settings.connector_label,
    )


def make_text(position: Point, content: str = "") -> TextItem:
    return TextItem(position=position, content=content, font_size=NEW_TEXT_FONT_SIZE)


def make_note(position: Point, content: str = "") -> Note:
    return Note(position=position, content=content)


def make_comment(position: Point, content: str = "", author: Optional[str] = None) -> Comment:
    return Comment(position=position, content=content, author=author or settings.cursor_label)


def make_causal_node(position: Point) -> CausalNode:
    return CausalNode(position=position)


def make_causal_link(source_id: str, target_id: str) -> CausalLink:
    return CausalLink(source=source_id, target=target_id)


def record_stroke_point(drawing: Drawing, point: Point) -> Optional[Point]:
    """
    Append a smoothed point to a pen drawing.

    The stored point is `last + (point - last) * (1 - smoothing)`; a
    smoothing of 0 follows the pointer exactly. Returns the stored point.
    """
    if not drawing.points:
        return None
    last = drawing.points[-1]
    smoothing = drawing.smoothing if drawing.smoothing is not None else settings.stroke_smoothing
    blended = blend(last, point, 1 - smoothing)
    drawing.points.append(blended)
    return blended


class InteractionController:
    """
    Routes pointer input to the viewport, selection, marquee and document.

    The controller never persists anything itself: committed changes go
    through BoardDocument.commit(), whose callbacks do the syncing.
    """

    def __init__(
        self,
        document: BoardDocument,
        viewport: Optional[Viewport] = None,
        editors: Optional[EditorHost] = None,
        variant: MarqueeVariant = MarqueeVariant.WHITEBOARD,
        measure_text: TextMeasurer = approximate_text_width,
        on_cursor: Optional[Callable[[Point], None]] = None,
    ):
        self.document = document
        self.viewport = viewport or Viewport()
        self.editors = editors
        self.resolver = AnchorResolver(document)
        self.hit_tester = HitTester(document, self.resolver, measure_text)
        self.selection = SelectionEngine(document, self.hit_tester)
        self.marquee = MarqueeSelector(document, self.hit_tester, variant)
        self.on_cursor = on_cursor

        self.mode = InteractionMode.IDLE
        self.tool = Tool.PAN
        self.drawing: Optional[Drawing] = None
        self.status = "Ready"

        document.on_replace(self._board_replaced)

    @property
    def variant(self) -> MarqueeVariant:
        return self.marquee.variant

    def set_variant(self, variant: MarqueeVariant):
        """Switch between the whiteboard and causal-graph editing surfaces."""
        self.pointer_leave()
        self.selection.clear()
        self.marquee.variant = variant
        self.tool = Tool.PAN

    def set_tool(self, tool: Tool):
        self.tool = Tool(tool)

    def _board_replaced(self, board):
        # Selected hits point at entities of the old board.
        self.selection.clear()

    # --- Pointer down ---

    def pointer_down(self, screen: Point, button: PointerButton = PointerButton.PRIMARY) -> InteractionMode:
        """Start a gesture. Raises InteractionError unless Idle."""
        if self.mode != InteractionMode.IDLE:
            raise InteractionError(f"cannot start a gesture while {self.mode.value}")
        world = self.viewport.to_world(screen)

        if button == PointerButton.SECONDARY or self.tool == Tool.PAN:
            self.viewport.begin_pan(screen)
            self.status = "Panning"
            return self._enter(InteractionMode.PANNING)

        if button == PointerButton.PRIMARY and self._grab_selection(screen, world):
            return self._enter(InteractionMode.SELECTION_DRAG)

        if self.variant == MarqueeVariant.CAUSAL:
            return self._causal_pointer_down(screen, world, button)
        return self._whiteboard_pointer_down(screen, world, button)

    def _grab_selection(self, screen: Point, world: Point) -> bool:
        """Re-grab the current selection by a corner handle or its body."""
        sel = self.selection.selection
        if sel is None or not sel.items:
            return False
        box = self.hit_tester.selection_bounds(sel.hits)
        if box is None:
            return False
        if self.variant == MarqueeVariant.WHITEBOARD:
            handle = HitTester.handle_at(box, screen, self.viewport)
            if handle is not None:
                self.selection.regrab(world, handle)
                return True
        if box.contains(world):
            self.selection.regrab(world)
            return True
        return False

    def _whiteboard_pointer_down(self, screen: Point, world: Point, button: PointerButton) -> InteractionMode:
        primary = button == PointerButton.PRIMARY
        if primary:
            pinned = self.hit_tester.hit_comment(world, self.viewport)
            if pinned is not None:
                self._open_editor(EntityKind.COMMENT, pinned.position, pinned)
                return self.mode
            if self.tool == Tool.COMMENT:
                self._open_editor(EntityKind.COMMENT, world, None)
                return self.mode

        hit = self.hit_tester.hit_test(world)
        if primary and self.tool == Tool.SELECT and hit is None:
            self.marquee.begin(world)
            return self._enter(InteractionMode.MARQUEE)

        if hit is not None:
            handle = self.hit_tester.detect_handle(hit, screen, self.viewport)
            self.selection.start(hit, world, handle)
            return self._enter(InteractionMode.SELECTION_DRAG)

        self.selection.clear()
        if not primary:
            return self.mode
        if self.tool == Tool.PEN:
            self.drawing = Drawing(
                tool=Tool.PEN,
                start=world,
                current=world,
                points=[world],
                color=settings.cursor_color,
                width=settings.stroke_width,
                smoothing=settings.stroke_smoothing,
            )
            return self._enter(InteractionMode.STROKE_DRAWING)
        self.drawing = Drawing(tool=self.tool, start=world, current=world)
        return self._enter(InteractionMode.SHAPE_DRAWING)

    def _causal_pointer_down(self, screen: Point, world: Point, button: PointerButton) -> InteractionMode:
        primary = button == PointerButton.PRIMARY
        node = self.hit_tester.hit_causal_node(world)

        if primary and self.tool == Tool.COMMENT:
            pinned = self.hit_tester.hit_comment(world, self.viewport)
            if pinned is not None:
                self._open_editor(EntityKind.COMMENT, pinned.position, pinned)
            else:
                self._open_editor(EntityKind.COMMENT, world, None)
            return self.mode

        if primary and self.tool == Tool.CAUSAL_NODE:
            created = self.document.add(make_causal_node(world))
            self.document.commit()
            self._open_editor(EntityKind.CAUSAL_NODE, created.position, created)
            return self.mode

        if primary and self.tool == Tool.CAUSAL_LINK:
            if node is not None:
                self.drawing = Drawing(
                    tool=Tool.CAUSAL_LINK,
                    start=node.position,
                    current=world,
                    start_node_id=node.id,
                )
                return self._enter(InteractionMode.CAUSAL_LINK_DRAWING)
            return self.mode

        if primary and self.tool == Tool.SELECT and node is None:
            link_hit = self.hit_tester.hit_causal_link(world)
            if link_hit is not None:
                self._open_editor(EntityKind.CAUSAL_LINK, link_hit.midpoint, link_hit.item)
                return self.mode
            self.marquee.begin(world)
            return self._enter(InteractionMode.MARQUEE)

        if node is not None:
            self.selection.start(Hit(type=EntityKind.CAUSAL_NODE, item=node), world)
            return self._enter(InteractionMode.SELECTION_DRAG)

        self.selection.clear()
        return self.mode

    # --- Pointer move / up / leave ---

    def pointer_move(self, screen: Point) -> bool:
        """Update the active gesture. Returns True if anything needs redrawing."""
        world = self.viewport.to_world(screen)
        changed = False

        if self.mode == InteractionMode.PANNING:
            changed = self.viewport.update_pan(screen)
        elif self.mode == InteractionMode.SELECTION_DRAG:
            changed = self.selection.update(world)
        elif self.mode == InteractionMode.MARQUEE:
            changed = self.marquee.update(world)
        elif self.mode == InteractionMode.STROKE_DRAWING and self.drawing is not None:
            changed = record_stroke_point(self.drawing, world) is not None
        elif self.drawing is not None:
            self.drawing.current = world
            changed = True

        if self.on_cursor is not None:
            self.on_cursor(world)
        return changed

    def pointer_up(self, screen: Point) -> InteractionMode:
        """Commit the active gesture and return to Idle. Returns the mode that ended."""
        world = self.viewport.to_world(screen)
        ended = self.mode

        try:
            if ended == InteractionMode.PANNING:
                self.viewport.end_pan()
                self.status = "Ready"
            elif ended == InteractionMode.SELECTION_DRAG:
                self.selection.finish()
            elif ended == InteractionMode.MARQUEE:
                hits = self.marquee.finish(world)
                if hits:
                    self.selection.start_from_hits(hits, world, dragging=False)
                else:
                    self.selection.clear()
            elif ended == InteractionMode.STROKE_DRAWING:
                self._finish_stroke()
            elif ended == InteractionMode.SHAPE_DRAWING:
                self._finish_drawing(world)
            elif ended == InteractionMode.CAUSAL_LINK_DRAWING:
                self._finish_causal_link(world)
        finally:
            self.drawing = None
            self.mode = InteractionMode.IDLE
        return ended

    def pointer_leave(self):
        """Cancel whatever gesture is active; nothing is committed."""
        if self.mode == InteractionMode.IDLE:
            return
        logger.debug("gesture cancelled", mode=self.mode.value)
        if self.mode == InteractionMode.PANNING:
            self.viewport.end_pan()
            self.status = "Ready"
        elif self.mode == InteractionMode.SELECTION_DRAG:
            self.selection.cancel()
        elif self.mode == InteractionMode.MARQUEE:
            self.marquee.cancel()
        self.drawing = None
        self.mode = InteractionMode.IDLE

    def wheel(self, screen: Point, delta_y: float) -> float:
        return self.viewport.zoom_wheel(screen, delta_y)

    def double_click(self, screen: Point) -> Optional[Hit]:
        """Open the editor for the note, text, causal node or link under the pointer."""
        world = self.viewport.to_world(screen)
        if self.variant == MarqueeVariant.CAUSAL:
            node = self.hit_tester.hit_causal_node(world)
            if node is not None:
                self._open_editor(EntityKind.CAUSAL_NODE, node.position, node)
                return Hit(type=EntityKind.CAUSAL_NODE, item=node)
            link_hit = self.hit_tester.hit_causal_link(world)
            if link_hit is not None:
                self._open_editor(EntityKind.CAUSAL_LINK, link_hit.midpoint, link_hit.item)
            return link_hit

        hit = self.hit_tester.hit_test(world)
        if hit is not None and hit.type in (EntityKind.NOTE, EntityKind.TEXT):
            self._open_editor(hit.type, hit.item.position, hit.item)
            return hit
        return None

    # --- Completing creation gestures ---

    def _finish_stroke(self):
        drawing = self.drawing
        if drawing is None or len(drawing.points) < MIN_STROKE_POINTS:
            return
        self.document.add(Stroke(
            points=list(drawing.points),
            color=drawing.color or settings.cursor_color,
            width=drawing.width or settings.stroke_width,
            smoothing=drawing.smoothing,
        ))
        self.document.commit()

    def _finish_drawing(self, world: Point):
        drawing = self.drawing
        if drawing is None:
            return
        if drawing.tool in (Tool.RECTANGLE, Tool.ELLIPSE):
            self.document.add(make_shape(ShapeKind(drawing.tool.value), drawing.start, world))
            self.document.commit()
        elif drawing.tool == Tool.CONNECTOR:
            self.document.add(make_connector(self.resolver, drawing.start, world))
            self.document.commit()
        elif drawing.tool == Tool.TEXT:
            self._open_editor(EntityKind.TEXT, world, None)
        elif drawing.tool == Tool.NOTE:
            self._open_editor(EntityKind.NOTE, world, None)

    def _finish_causal_link(self, world: Point):
        drawing = self.drawing
        end_node = self.hit_tester.hit_causal_node(world)
        if drawing is None or end_node is None or end_node.id == drawing.start_node_id:
            return
        # A remote replace may have removed the start node mid-gesture.
        if self.document.get_causal_node(drawing.start_node_id) is None:
            logger.info("causal link dropped: start node gone", node_id=drawing.start_node_id)
            return
        link = self.document.add(make_causal_link(drawing.start_node_id, end_node.id))
        self.document.commit()
        points = self.resolver.causal_link_points(link)
        anchor = midpoint(*points) if points else world
        self._open_editor(EntityKind.CAUSAL_LINK, anchor, link)

    # --- Editors ---

    def _open_editor(self, kind: EntityKind, position: Point, entity: Optional[Any]):
        if self.editors is None:
            logger.debug("no editor host; edit skipped", kind=kind.value)
            return
        self.editors.open(kind, position, entity, self._editor_committed)

    def _editor_committed(self, entity: Any):
        """Editor confirmation: add the entity if it is new, then commit once."""
        if self.document.find(entity.id) is None:
            self.document.add(entity)
        self.document.commit()

    # --- Commands ---

    def delete_selection(self) -> DeletionResult:
        """Delete every selected entity, cascading to dependents, and commit."""
        if self.mode != InteractionMode.IDLE:
            raise InteractionError(f"cannot delete while {self.mode.value}")
        sel = self.selection.selection
        if sel is None or not sel.items:
            return DeletionResult()
        ids = sel.ids
        self.selection.clear()
        result = self.document.delete(ids)
        self.document.commit()
        return result

    def assign_group(self, tag: str) -> int:
        """Tag every selected causal node with a group (an empty tag clears it)."""
        sel = self.selection.selection
        nodes = [h.item for h in (sel.hits if sel else []) if h.type == EntityKind.CAUSAL_NODE]
        if not nodes:
            self.status = "Select one or more causal nodes to group"
            return 0
        changed = assign_group(nodes, tag)
        self.document.commit()
        trimmed = (tag or "").strip()
        self.status = f'Grouped nodes under "{trimmed}"' if trimmed else "Cleared node grouping"
        return changed

    def auto_layout(self) -> Optional[LayoutResult]:
        """Lay out the causal graph with the known groups as lane order, then commit."""
        board = self.document.board
        if not board.causal_nodes:
            self.status = "Add causal nodes to run layout"
            return None
        result = apply_causal_layout(board, groups=known_groups(board.causal_nodes))
        self.document.commit()
        self.status = "Auto layout applied"
        return result

    def _enter(self, mode: InteractionMode) -> InteractionMode:
        self.mode = mode
        return mode

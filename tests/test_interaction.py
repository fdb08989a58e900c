"""Tests for the interaction state machine, driven by pointer events."""

import pytest

from boardcore.document import BoardDocument
from boardcore.errors import InteractionError
from boardcore.geometry import Viewport
from boardcore.interaction import (
    Drawing,
    InteractionController,
    InteractionMode,
    PointerButton,
    Tool,
    make_text,
    record_stroke_point,
)
from boardcore.marquee import MarqueeVariant
from boardcore.models import (
    AnchorSide,
    Board,
    CausalLink,
    CausalNode,
    Comment,
    Connector,
    EntityKind,
    LiteralPoint,
    Note,
    Point,
    Shape,
    ShapeAnchor,
    ShapeKind,
)


def p(x: float, y: float) -> Point:
    return Point(x=x, y=y)


def drag(controller: InteractionController, *points: Point) -> InteractionMode:
    """Press at the first point, move through the rest, release at the last."""
    controller.pointer_down(points[0])
    for point in points[1:]:
        controller.pointer_move(point)
    return controller.pointer_up(points[-1])


@pytest.fixture
def commits(document: BoardDocument) -> list[int]:
    recorded: list[int] = []
    document.on_commit(lambda: recorded.append(document.version))
    return recorded


@pytest.fixture
def controller(document: BoardDocument, editors) -> InteractionController:
    return InteractionController(document, editors=editors)


@pytest.fixture
def causal(document: BoardDocument, controller: InteractionController) -> InteractionController:
    document.add(CausalNode(id="a", label="A", position=p(0, 0)))
    document.add(CausalNode(id="b", label="B", position=p(200, 0)))
    controller.set_variant(MarqueeVariant.CAUSAL)
    return controller


class TestModes:
    def test_pan_tool_pans(self, controller: InteractionController) -> None:
        assert controller.pointer_down(p(10, 10)) == InteractionMode.PANNING
        controller.pointer_move(p(40, 30))
        assert controller.pointer_up(p(40, 30)) == InteractionMode.PANNING
        assert controller.viewport.offset == p(30, 20)
        assert controller.mode == InteractionMode.IDLE

    def test_secondary_button_pans_with_any_tool(self, controller: InteractionController) -> None:
        controller.set_tool(Tool.RECTANGLE)
        assert controller.pointer_down(p(0, 0), PointerButton.SECONDARY) == InteractionMode.PANNING

    def test_pointer_down_while_active_raises(self, controller: InteractionController) -> None:
        controller.pointer_down(p(0, 0))
        with pytest.raises(InteractionError):
            controller.pointer_down(p(5, 5))

    def test_pointer_leave_cancels_without_commit(
        self, document: BoardDocument, controller: InteractionController, commits: list[int]
    ) -> None:
        controller.set_tool(Tool.RECTANGLE)
        controller.pointer_down(p(0, 0))
        controller.pointer_move(p(50, 50))
        controller.pointer_leave()
        assert controller.mode == InteractionMode.IDLE
        assert controller.drawing is None
        assert document.board.shapes == []
        assert commits == []

    def test_wheel_zooms_in_any_mode(self, controller: InteractionController) -> None:
        controller.pointer_down(p(0, 0))
        assert controller.wheel(p(0, 0), -1) == pytest.approx(1.1)

    def test_cursor_callback_gets_world_point(self, document: BoardDocument) -> None:
        seen = []
        controller = InteractionController(document, viewport=Viewport(scale=2.0), on_cursor=seen.append)
        controller.pointer_move(p(100, 50))
        assert seen == [p(50, 25)]


class TestDrawing:
    def test_rectangle(self, document: BoardDocument, controller: InteractionController, commits: list[int]) -> None:
        controller.set_tool(Tool.RECTANGLE)
        drag(controller, p(10, 10), p(60, 30), p(110, 60))
        [shape] = document.board.shapes
        assert shape.kind == ShapeKind.RECTANGLE
        assert shape.points == [p(10, 10), p(110, 60)]
        assert len(commits) == 1

    def test_ellipse(self, document: BoardDocument, controller: InteractionController) -> None:
        controller.set_tool(Tool.ELLIPSE)
        drag(controller, p(0, 0), p(20, 20))
        assert document.board.shapes[0].kind == ShapeKind.ELLIPSE

    def test_connector_snaps_to_nearby_anchor(
        self, document: BoardDocument, controller: InteractionController
    ) -> None:
        document.add(Shape(id="s1", points=[p(0, 0), p(100, 50)]))
        controller.set_tool(Tool.CONNECTOR)
        drag(controller, p(110, 25), p(300, 300))
        [connector] = document.board.connectors
        assert isinstance(connector.source, ShapeAnchor)
        assert (connector.source.shape_id, connector.source.side) == ("s1", AnchorSide.RIGHT)
        assert isinstance(connector.target, LiteralPoint)

    def test_pen_stroke_is_smoothed(self, document: BoardDocument, controller: InteractionController) -> None:
        controller.set_tool(Tool.PEN)
        controller.pointer_down(p(0, 0))
        controller.drawing.smoothing = 0.5
        controller.pointer_move(p(100, 0))
        controller.pointer_up(p(100, 0))
        [stroke] = document.board.strokes
        assert stroke.points == [p(0, 0), p(50, 0)]

    def test_pen_click_leaves_no_stroke(
        self, document: BoardDocument, controller: InteractionController, commits: list[int]
    ) -> None:
        controller.set_tool(Tool.PEN)
        controller.pointer_down(p(0, 0))
        controller.pointer_up(p(0, 0))
        assert document.board.strokes == []
        assert commits == []

    def test_text_opens_editor_then_commits(
        self, document: BoardDocument, controller: InteractionController, editors, commits: list[int]
    ) -> None:
        controller.set_tool(Tool.TEXT)
        drag(controller, p(0, 0), p(40, 40))
        kind, position, entity, on_commit = editors.last
        assert (kind, position, entity) == (EntityKind.TEXT, p(40, 40), None)
        assert commits == []

        on_commit(make_text(position, "hello"))
        assert [t.content for t in document.board.texts] == ["hello"]
        assert len(commits) == 1

    def test_note_tool_opens_note_editor(self, controller: InteractionController, editors) -> None:
        controller.set_tool(Tool.NOTE)
        drag(controller, p(0, 0), p(10, 10))
        assert editors.last[0] == EntityKind.NOTE


def test_record_stroke_point_without_start() -> None:
    drawing = Drawing(tool=Tool.PEN, start=p(0, 0), current=p(0, 0))
    assert record_stroke_point(drawing, p(5, 5)) is None


class TestComments:
    def test_comment_tool_opens_new_comment(self, controller: InteractionController, editors) -> None:
        controller.set_tool(Tool.COMMENT)
        controller.pointer_down(p(30, 30))
        assert controller.mode == InteractionMode.IDLE
        assert editors.last[:3] == (EntityKind.COMMENT, p(30, 30), None)

    def test_clicking_a_pin_edits_it(
        self, document: BoardDocument, controller: InteractionController, editors
    ) -> None:
        pin = document.add(Comment(position=p(100, 100)))
        controller.set_tool(Tool.SELECT)
        controller.pointer_down(p(105, 100))
        assert editors.last[2] is pin


class TestSelection:
    @pytest.fixture
    def notes(self, document: BoardDocument, controller: InteractionController) -> InteractionController:
        document.add(Note(id="a", position=p(0, 0), width=40, height=40))
        document.add(Note(id="b", position=p(100, 0), width=40, height=40))
        controller.set_tool(Tool.SELECT)
        return controller

    def test_marquee_selects_without_commit(
        self, notes: InteractionController, commits: list[int]
    ) -> None:
        assert drag(notes, p(-10, -10), p(150, 50)) == InteractionMode.MARQUEE
        sel = notes.selection.selection
        assert sel.ids == {"a", "b"}
        assert not sel.dragging
        assert commits == []

    def test_empty_marquee_clears_selection(self, notes: InteractionController) -> None:
        drag(notes, p(-10, -10), p(150, 50))
        drag(notes, p(500, 500), p(600, 600))
        assert notes.selection.selection is None

    def test_group_move_commits_once(
        self, document: BoardDocument, notes: InteractionController, commits: list[int]
    ) -> None:
        drag(notes, p(-10, -10), p(150, 50))
        assert drag(notes, p(120, 20), p(125, 20), p(130, 20)) == InteractionMode.SELECTION_DRAG
        assert document.get_note("a").position == p(10, 0)
        assert document.get_note("b").position == p(110, 0)
        assert len(commits) == 1

    def test_group_resize_by_corner_handle(self, document: BoardDocument, notes: InteractionController) -> None:
        drag(notes, p(-10, -10), p(150, 50))
        drag(notes, p(140, 40), p(280, 40))
        a, b = document.get_note("a"), document.get_note("b")
        assert (a.width, b.width) == (80, 80)
        assert b.position == p(200, 0)

    def test_clicking_an_entity_selects_and_drags_it(
        self, document: BoardDocument, notes: InteractionController
    ) -> None:
        drag(notes, p(20, 20), p(30, 40))
        assert document.get_note("a").position == p(10, 20)
        assert notes.selection.selection.ids == {"a"}

    def test_double_click_edits_note(self, notes: InteractionController, editors) -> None:
        hit = notes.double_click(p(110, 10))
        assert hit.id == "b"
        assert editors.last[0] == EntityKind.NOTE

    def test_delete_selection_cascades(
        self, document: BoardDocument, controller: InteractionController, commits: list[int]
    ) -> None:
        document.add(Shape(id="s1", points=[p(0, 0), p(100, 50)]))
        document.add(Connector(
            id="c1",
            source=ShapeAnchor(shape_id="s1", side=AnchorSide.RIGHT),
            target=LiteralPoint(point=p(300, 25)),
        ))
        controller.set_tool(Tool.SELECT)
        drag(controller, p(50, 25))
        result = controller.delete_selection()
        assert result.ids(EntityKind.CONNECTOR) == ["c1"]
        assert document.board.shapes == [] and document.board.connectors == []
        assert len(commits) == 1
        assert controller.selection.selection is None

    def test_delete_during_gesture_raises(self, controller: InteractionController) -> None:
        controller.pointer_down(p(0, 0))
        with pytest.raises(InteractionError):
            controller.delete_selection()

    def test_remote_replacement_clears_selection(
        self, document: BoardDocument, notes: InteractionController
    ) -> None:
        drag(notes, p(-10, -10), p(150, 50))
        assert document.replace_from_remote(Board(id="board-1"))
        assert notes.selection.selection is None

    def test_remote_board_during_drag_is_dropped_on_commit(
        self, document: BoardDocument, notes: InteractionController
    ) -> None:
        notes.pointer_down(p(20, 20))
        notes.pointer_move(p(25, 20))
        assert not document.replace_from_remote(Board(id="board-1"))
        notes.pointer_up(p(25, 20))
        assert document.get_note("a").position == p(5, 0)
        assert not document.has_pending_remote


class TestCausal:
    def test_node_tool_adds_node_and_opens_editor(
        self, document: BoardDocument, causal: InteractionController, editors, commits: list[int]
    ) -> None:
        causal.set_tool(Tool.CAUSAL_NODE)
        causal.pointer_down(p(50, 300))
        kind, position, entity, on_commit = editors.last
        assert kind == EntityKind.CAUSAL_NODE
        assert document.get_causal_node(entity.id) is entity
        assert len(commits) == 1

        entity.label = "Demand"
        on_commit(entity)
        assert len(document.board.causal_nodes) == 3
        assert len(commits) == 2

    def test_link_drawn_between_two_nodes(
        self, document: BoardDocument, causal: InteractionController, editors
    ) -> None:
        causal.set_tool(Tool.CAUSAL_LINK)
        assert drag(causal, p(5, 0), p(150, 0), p(195, 5)) == InteractionMode.CAUSAL_LINK_DRAWING
        [link] = document.board.causal_links
        assert (link.source, link.target) == ("a", "b")
        assert editors.last[:2] == (EntityKind.CAUSAL_LINK, p(100, 0))

    @pytest.mark.parametrize("end", [p(3, 3), p(100, 400)])
    def test_link_to_same_node_or_nowhere_is_dropped(
        self, document: BoardDocument, causal: InteractionController, end: Point
    ) -> None:
        causal.set_tool(Tool.CAUSAL_LINK)
        drag(causal, p(0, 0), end)
        assert document.board.causal_links == []

    def test_remote_replace_removing_start_node_drops_link(
        self, document: BoardDocument, causal: InteractionController, commits: list[int]
    ) -> None:
        causal.set_tool(Tool.CAUSAL_LINK)
        assert causal.pointer_down(p(5, 0)) == InteractionMode.CAUSAL_LINK_DRAWING
        remote = Board(causal_nodes=[CausalNode(id="b", label="B", position=p(200, 0))])
        assert document.replace_from_remote(remote)

        assert causal.pointer_up(p(195, 5)) == InteractionMode.CAUSAL_LINK_DRAWING
        assert causal.mode == InteractionMode.IDLE
        assert document.board.causal_links == []
        assert commits == []
        assert causal.pointer_down(p(195, 5)) == InteractionMode.CAUSAL_LINK_DRAWING

    def test_failed_finish_still_returns_to_idle(
        self, document: BoardDocument, causal: InteractionController, editors
    ) -> None:
        def broken_open(*args) -> None:
            raise RuntimeError("editor unavailable")

        editors.open = broken_open
        causal.set_tool(Tool.CAUSAL_LINK)
        causal.pointer_down(p(5, 0))
        with pytest.raises(RuntimeError):
            causal.pointer_up(p(195, 5))
        assert causal.mode == InteractionMode.IDLE
        assert causal.drawing is None

    def test_link_tool_off_node_does_nothing(self, causal: InteractionController) -> None:
        causal.set_tool(Tool.CAUSAL_LINK)
        assert causal.pointer_down(p(100, 300)) == InteractionMode.IDLE

    def test_select_tool_opens_link_editor(
        self, document: BoardDocument, causal: InteractionController, editors
    ) -> None:
        document.add(CausalLink(id="ab", source="a", target="b"))
        causal.set_tool(Tool.SELECT)
        assert causal.pointer_down(p(100, 3)) == InteractionMode.IDLE
        assert editors.last[2].id == "ab"
        assert causal.pointer_down(p(100, 200)) == InteractionMode.MARQUEE

    def test_double_click_node(self, causal: InteractionController, editors) -> None:
        assert causal.double_click(p(200, 5)).id == "b"
        assert editors.last[0] == EntityKind.CAUSAL_NODE

    def test_marquee_then_group(
        self, document: BoardDocument, causal: InteractionController, commits: list[int]
    ) -> None:
        causal.set_tool(Tool.SELECT)
        assert causal.assign_group("supply") == 0
        assert causal.status == "Select one or more causal nodes to group"

        drag(causal, p(-50, -50), p(250, 50))
        assert causal.assign_group(" supply ") == 2
        assert causal.status == 'Grouped nodes under "supply"'
        assert {n.group for n in document.board.causal_nodes} == {"supply"}
        assert len(commits) == 1

        causal.assign_group("")
        assert causal.status == "Cleared node grouping"

    def test_auto_layout(self, document: BoardDocument, causal: InteractionController, commits: list[int]) -> None:
        document.add(CausalLink(source="a", target="b"))
        result = causal.auto_layout()
        assert causal.status == "Auto layout applied"
        assert document.get_causal_node("b").position == result.positions["b"]
        assert result.levels == {"a": 0, "b": 1}
        assert len(commits) == 1

    def test_auto_layout_without_nodes(self, controller: InteractionController) -> None:
        assert controller.auto_layout() is None
        assert controller.status == "Add causal nodes to run layout"

"""Tests for BoardDocument: indexes, cascade deletes and remote replacement."""

import pytest

from boardcore.document import BoardDocument
from boardcore.errors import EntityNotFoundError
from boardcore.models import (
    AnchorSide,
    Board,
    CausalLink,
    CausalNode,
    Connector,
    EntityKind,
    LiteralPoint,
    Note,
    Point,
    Shape,
    ShapeAnchor,
    Stroke,
)


def shape(shape_id: str) -> Shape:
    return Shape(id=shape_id, points=[Point(x=0, y=0), Point(x=10, y=10)])


def bound_connector(connector_id: str, source_shape: str, target_shape: str) -> Connector:
    return Connector(
        id=connector_id,
        source=ShapeAnchor(shape_id=source_shape, side=AnchorSide.RIGHT),
        target=ShapeAnchor(shape_id=target_shape, side=AnchorSide.LEFT),
    )


def node(node_id: str) -> CausalNode:
    return CausalNode(id=node_id, position=Point(x=0, y=0))


@pytest.fixture
def populated() -> BoardDocument:
    board = Board(
        id="b1",
        shapes=[shape("s1"), shape("s2"), shape("s3")],
        connectors=[
            bound_connector("c12", "s1", "s2"),
            bound_connector("c23", "s2", "s3"),
            Connector(
                id="free",
                source=LiteralPoint(point=Point(x=0, y=0)),
                target=LiteralPoint(point=Point(x=5, y=5)),
            ),
        ],
        causal_nodes=[node("a"), node("b"), node("c")],
        causal_links=[
            CausalLink(id="ab", source="a", target="b"),
            CausalLink(id="bc", source="b", target="c"),
        ],
    )
    return BoardDocument(board)


class TestLookups:
    def test_get_by_kind(self, populated: BoardDocument) -> None:
        assert populated.get_shape("s1").id == "s1"
        assert populated.get(EntityKind.CAUSAL_LINK, "ab").id == "ab"
        assert populated.get_shape("missing") is None

    def test_find_any_kind(self, populated: BoardDocument) -> None:
        hit = populated.find("b")
        assert hit.type == EntityKind.CAUSAL_NODE
        assert populated.find("nothing") is None

    def test_reverse_indexes(self, populated: BoardDocument) -> None:
        assert [c.id for c in populated.connectors_for_shape("s2")] == ["c12", "c23"]
        assert [link.id for link in populated.links_for_node("b")] == ["ab", "bc"]


class TestCascadeDelete:
    def test_deleting_shape_removes_bound_connectors(self, populated: BoardDocument) -> None:
        result = populated.delete(["s2"])
        assert result.ids(EntityKind.SHAPE) == ["s2"]
        assert sorted(result.ids(EntityKind.CONNECTOR)) == ["c12", "c23"]
        assert [c.id for c in populated.board.connectors] == ["free"]
        assert populated.get_connector("c12") is None

    def test_deleting_node_removes_links(self, populated: BoardDocument) -> None:
        populated.delete_causal_node("b")
        assert populated.board.causal_links == []
        assert [n.id for n in populated.board.causal_nodes] == ["a", "c"]

    def test_no_dangling_references_after_delete(self, populated: BoardDocument) -> None:
        populated.delete(["s1", "c"])
        shape_ids = {s.id for s in populated.board.shapes}
        node_ids = {n.id for n in populated.board.causal_nodes}
        for connector in populated.board.connectors:
            for anchor in (connector.source, connector.target):
                if isinstance(anchor, ShapeAnchor):
                    assert anchor.shape_id in shape_ids
        for link in populated.board.causal_links:
            assert link.source in node_ids and link.target in node_ids

    def test_unknown_ids_are_ignored(self, populated: BoardDocument) -> None:
        assert populated.delete(["nope"]).count == 0

    def test_delete_unknown_shape_raises(self, populated: BoardDocument) -> None:
        with pytest.raises(EntityNotFoundError):
            populated.delete_shape("nope")


class TestAdd:
    def test_short_stroke_rejected(self, document: BoardDocument) -> None:
        with pytest.raises(ValueError):
            document.add(Stroke(points=[Point(x=0, y=0)]))

    def test_link_to_missing_node_rejected(self, document: BoardDocument) -> None:
        document.add(node("a"))
        with pytest.raises(EntityNotFoundError):
            document.add(CausalLink(source="a", target="ghost"))

    def test_added_entity_is_indexed(self, document: BoardDocument) -> None:
        note = document.add(Note(position=Point(x=0, y=0)))
        assert document.get_note(note.id) is note


class TestCommitAndReplace:
    def test_commit_fires_callbacks_and_bumps_version(self, document: BoardDocument) -> None:
        calls = []
        document.on_commit(lambda: calls.append("commit"))
        document.commit()
        assert calls == ["commit"]
        assert document.version == 1

    def test_remote_replace_applies_when_idle(self, document: BoardDocument) -> None:
        replaced = []
        document.on_replace(replaced.append)
        remote = Board(id="board-1", shapes=[shape("r1")])
        assert document.replace_from_remote(remote)
        assert document.board is remote
        assert replaced == [remote]
        assert document.get_shape("r1") is not None

    def test_remote_replace_deferred_during_mutation(self, document: BoardDocument) -> None:
        document.begin_local_mutation()
        remote = Board(id="board-1", shapes=[shape("r1")])
        assert not document.replace_from_remote(remote)
        assert document.has_pending_remote
        assert document.board is not remote

    def test_deferred_remote_dropped_on_commit(self, document: BoardDocument) -> None:
        local = document.board
        document.begin_local_mutation()
        document.replace_from_remote(Board(id="board-1"))
        document.commit()
        assert document.board is local
        assert not document.has_pending_remote
        assert not document.mutation_in_flight

    def test_deferred_remote_applied_on_abort(self, document: BoardDocument) -> None:
        document.begin_local_mutation()
        remote = Board(id="board-1", shapes=[shape("r1")])
        document.replace_from_remote(remote)
        version = document.version
        document.abort_local_mutation()
        assert document.board is remote
        assert document.version == version + 1

    def test_load_clears_pending_state(self, document: BoardDocument) -> None:
        document.begin_local_mutation()
        document.replace_from_remote(Board(id="board-1"))
        fresh = Board(id="other")
        document.load(fresh)
        assert document.board is fresh
        assert not document.has_pending_remote
        assert not document.mutation_in_flight

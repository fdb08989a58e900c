"""
Board Document - In-memory ownership of one board and its id indexes.

This module implements:
- O(1) entity lookups via index dictionaries rebuilt per mutation
- Reverse indexes from shapes to the connectors bound to them and from
  causal nodes to their links
- Deletion by id with mandatory cascades (connectors bound to a deleted
  shape, causal links touching a deleted node)
- A version counter and an in-flight local mutation flag so a remote
  replacement arriving mid-drag is deferred instead of clobbering it
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from .errors import EntityNotFoundError
from .models import (
    Board,
    CausalLink,
    CausalNode,
    Comment,
    Connector,
    EntityKind,
    Hit,
    Note,
    Shape,
    ShapeAnchor,
    Stroke,
    TextItem,
)
from .utils.logging import get_logger

logger = get_logger(__name__)

# Entity class -> (kind, board collection attribute)
_COLLECTION_FOR: dict[type, tuple[EntityKind, str]] = {
    Shape: (EntityKind.SHAPE, "shapes"),
    Note: (EntityKind.NOTE, "notes"),
    TextItem: (EntityKind.TEXT, "texts"),
    Connector: (EntityKind.CONNECTOR, "connectors"),
    Stroke: (EntityKind.STROKE, "strokes"),
    Comment: (EntityKind.COMMENT, "comments"),
    CausalNode: (EntityKind.CAUSAL_NODE, "causal_nodes"),
    CausalLink: (EntityKind.CAUSAL_LINK, "causal_links"),
}

MIN_STROKE_POINTS = 2


def bound_shape_ids(connector: Connector) -> set[str]:
    """Ids of the shapes a connector's endpoints are bound to."""
    ids = set()
    for anchor in (connector.source, connector.target):
        if isinstance(anchor, ShapeAnchor):
            ids.add(anchor.shape_id)
    return ids


@dataclass
class DeletionResult:
    """Ids removed by one delete operation, cascades included."""
    removed: dict[EntityKind, list[str]] = field(default_factory=dict)

    def add(self, kind: EntityKind, entity_id: str):
        self.removed.setdefault(kind, []).append(entity_id)

    @property
    def count(self) -> int:
        return sum(len(ids) for ids in self.removed.values())

    def ids(self, kind: EntityKind) -> list[str]:
        return self.removed.get(kind, [])


class BoardDocument:
    """
    Owns the board currently being edited.

    Features:
    - O(1) lookups by id for every entity kind
    - Cascade deletes so no connector or causal link is left dangling
    - Commit callbacks, fired once per committed local change (persistence)
    - Replace callbacks, fired when the whole board is swapped out

    Gestures mutate entities in place between begin_local_mutation() and
    commit()/abort_local_mutation(). While that window is open a remote
    replacement is parked rather than applied.
    """

    def __init__(self, board: Optional[Board] = None):
        self._board = board or Board()
        self._version = 0
        self._mutation_in_flight = False
        self._pending_remote: Optional[Board] = None
        self._on_commit_callbacks: list[Callable[[], None]] = []
        self._on_replace_callbacks: list[Callable[[Board], None]] = []

        self._index: dict[EntityKind, dict[str, Any]] = {}
        self._connectors_by_shape: dict[str, set[str]] = {}
        self._links_by_node: dict[str, set[str]] = {}
        self._rebuild_indexes()

    # --- Index Management ---

    def _rebuild_indexes(self):
        """Rebuild all indexes from the current board state."""
        self._index = {kind: {} for kind, _ in _COLLECTION_FOR.values()}
        self._connectors_by_shape.clear()
        self._links_by_node.clear()

        for kind, attr in _COLLECTION_FOR.values():
            index = self._index[kind]
            for entity in getattr(self._board, attr):
                index[entity.id] = entity

        for connector in self._board.connectors:
            for shape_id in bound_shape_ids(connector):
                self._connectors_by_shape.setdefault(shape_id, set()).add(connector.id)

        for link in self._board.causal_links:
            self._links_by_node.setdefault(link.source, set()).add(link.id)
            self._links_by_node.setdefault(link.target, set()).add(link.id)

    # --- Properties ---

    @property
    def board(self) -> Board:
        return self._board

    @property
    def version(self) -> int:
        """Incremented on every commit and every board replacement."""
        return self._version

    @property
    def mutation_in_flight(self) -> bool:
        return self._mutation_in_flight

    @property
    def has_pending_remote(self) -> bool:
        return self._pending_remote is not None

    # --- Callbacks ---

    def on_commit(self, callback: Callable[[], None]):
        """Register a callback run after every committed local change."""
        self._on_commit_callbacks.append(callback)

    def on_replace(self, callback: Callable[[Board], None]):
        """Register a callback run after the board is replaced wholesale."""
        self._on_replace_callbacks.append(callback)

    # --- Lookups (O(1)) ---

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Any]:
        return self._index.get(kind, {}).get(entity_id)

    def get_shape(self, shape_id: str) -> Optional[Shape]:
        return self._index[EntityKind.SHAPE].get(shape_id)

    def get_note(self, note_id: str) -> Optional[Note]:
        return self._index[EntityKind.NOTE].get(note_id)

    def get_text(self, text_id: str) -> Optional[TextItem]:
        return self._index[EntityKind.TEXT].get(text_id)

    def get_connector(self, connector_id: str) -> Optional[Connector]:
        return self._index[EntityKind.CONNECTOR].get(connector_id)

    def get_causal_node(self, node_id: str) -> Optional[CausalNode]:
        return self._index[EntityKind.CAUSAL_NODE].get(node_id)

    def get_causal_link(self, link_id: str) -> Optional[CausalLink]:
        return self._index[EntityKind.CAUSAL_LINK].get(link_id)

    def find(self, entity_id: str) -> Optional[Hit]:
        """Locate an entity of any kind by id."""
        for kind, index in self._index.items():
            entity = index.get(entity_id)
            if entity is not None:
                return Hit(type=kind, item=entity)
        return None

    def connectors_for_shape(self, shape_id: str) -> list[Connector]:
        ids = self._connectors_by_shape.get(shape_id, set())
        return [c for c in self._board.connectors if c.id in ids]

    def links_for_node(self, node_id: str) -> list[CausalLink]:
        ids = self._links_by_node.get(node_id, set())
        return [link for link in self._board.causal_links if link.id in ids]

    # --- Creation ---

    def add(self, entity: Any) -> Any:
        """
        Append an entity to its collection.

        Strokes with fewer than two points are not persisted and causal links
        must reference existing nodes.
        """
        kind, attr = _COLLECTION_FOR[type(entity)]
        if isinstance(entity, Stroke) and len(entity.points) < MIN_STROKE_POINTS:
            raise ValueError(f"stroke needs at least {MIN_STROKE_POINTS} points")
        if isinstance(entity, CausalLink):
            for node_id in (entity.source, entity.target):
                if self.get_causal_node(node_id) is None:
                    raise EntityNotFoundError("causal node", node_id)

        getattr(self._board, attr).append(entity)
        self._rebuild_indexes()
        logger.debug("entity added", kind=kind.value, entity_id=entity.id)
        return entity

    # --- Deletion ---

    def delete(self, ids: Iterable[str]) -> DeletionResult:
        """
        Delete entities by id, cascading to dependents in the same operation.

        Connectors bound to a removed shape and causal links touching a
        removed causal node are removed too. Unknown ids are ignored.
        """
        targets = set(ids)
        result = DeletionResult()
        board = self._board

        removed_shapes = {s.id for s in board.shapes if s.id in targets}
        removed_nodes = {n.id for n in board.causal_nodes if n.id in targets}

        for kind, attr in _COLLECTION_FOR.values():
            kept = []
            for entity in getattr(board, attr):
                if entity.id in targets or self._is_dependent(entity, removed_shapes, removed_nodes):
                    result.add(kind, entity.id)
                else:
                    kept.append(entity)
            setattr(board, attr, kept)

        self._rebuild_indexes()
        if result.count:
            logger.debug(
                "entities deleted",
                requested=len(targets),
                removed=result.count,
            )
        return result

    @staticmethod
    def _is_dependent(entity: Any, removed_shapes: set[str], removed_nodes: set[str]) -> bool:
        if isinstance(entity, Connector):
            return bool(bound_shape_ids(entity) & removed_shapes)
        if isinstance(entity, CausalLink):
            return entity.source in removed_nodes or entity.target in removed_nodes
        return False

    def delete_shape(self, shape_id: str) -> DeletionResult:
        if self.get_shape(shape_id) is None:
            raise EntityNotFoundError("shape", shape_id)
        return self.delete([shape_id])

    def delete_causal_node(self, node_id: str) -> DeletionResult:
        if self.get_causal_node(node_id) is None:
            raise EntityNotFoundError("causal node", node_id)
        return self.delete([node_id])

    # --- Local mutation window ---

    def begin_local_mutation(self):
        """Mark the start of an uncommitted in-place edit (e.g. a drag)."""
        self._mutation_in_flight = True

    def abort_local_mutation(self):
        """
        Close the mutation window without committing.

        A remote board parked during the window is applied now, since
        nothing local will be written over it.
        """
        self._mutation_in_flight = False
        pending, self._pending_remote = self._pending_remote, None
        if pending is not None:
            self._replace(pending, source="deferred-remote")

    def commit(self):
        """
        Record a completed local change and notify commit callbacks once.

        Any remote board parked during the mutation window is dropped: the
        local write that follows supersedes it (last writer wins).
        """
        self._mutation_in_flight = False
        if self._pending_remote is not None:
            logger.info("discarding deferred remote board", board_id=self._pending_remote.id)
            self._pending_remote = None
        self._rebuild_indexes()
        self._version += 1
        for callback in self._on_commit_callbacks:
            callback()

    # --- Replacement ---

    def load(self, board: Board):
        """Replace the board with a freshly fetched one."""
        self._pending_remote = None
        self._mutation_in_flight = False
        self._replace(board, source="load")

    def replace_from_remote(self, board: Board) -> bool:
        """
        Apply a board pushed by another client.

        Returns:
            True if applied now, False if parked behind an in-flight local edit
        """
        if self._mutation_in_flight:
            self._pending_remote = board
            logger.debug("remote board deferred", board_id=board.id)
            return False
        self._replace(board, source="remote")
        return True

    def _replace(self, board: Board, source: str):
        self._board = board
        self._rebuild_indexes()
        self._version += 1
        logger.debug("board replaced", board_id=board.id, source=source, version=self._version)
        for callback in self._on_replace_callbacks:
            callback(board)

"""
Layout algorithm for the causal graph.

Arranges causal nodes into columns by dependency depth and into horizontal
lanes by group tag:
- Level: longest-path distance from a source node (Kahn's algorithm)
- Lane: one vertical band per group tag, stacked top-to-bottom
- Within a lane, nodes are ordered by (level, label) for determinism

Nodes inside a cycle never reach in-degree zero; they are placed at level 0
and reported in `LayoutResult.cyclic` instead of failing.

compute_causal_layout() is pure; apply_causal_layout() writes the result
into a board's nodes in-place.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional

from .models import Point
from .utils.logging import get_logger

if TYPE_CHECKING:
    from .models import Board, CausalLink, CausalNode

logger = get_logger(__name__)

# Default layout parameters
DEFAULT_COLUMN_SPACING = 220
DEFAULT_NODE_SPACING = 140
DEFAULT_LANE_PADDING = 60
DEFAULT_LANE_GAP = 120

UNGROUPED = "ungrouped"


@dataclass
class LayoutResult:
    """Positions keyed by node id, plus the lane order that produced them."""
    positions: dict[str, Point] = field(default_factory=dict)
    groups: list[str] = field(default_factory=list)
    levels: dict[str, int] = field(default_factory=dict)
    cyclic: list[str] = field(default_factory=list)  # Node ids left unleveled by a cycle


def lane_key(group: Optional[str]) -> str:
    return group or UNGROUPED


def compute_levels(
    nodes: list["CausalNode"],
    links: list["CausalLink"],
) -> tuple[dict[str, int], list[str]]:
    """
    Assign each node its longest-path depth using Kahn's algorithm.

    Links that reference unknown nodes are ignored and parallel links count
    once. Nodes never dequeued (they sit on or behind a cycle) get level 0.

    Args:
        nodes: Causal nodes, in document order
        links: Causal links

    Returns:
        (levels by node id, ids of nodes that were never dequeued)
    """
    node_ids = [n.id for n in nodes]
    known = set(node_ids)

    # Insertion-ordered adjacency keeps iteration deterministic.
    outgoing: dict[str, dict[str, None]] = {nid: {} for nid in node_ids}
    incoming: dict[str, dict[str, None]] = {nid: {} for nid in node_ids}
    for link in links:
        if link.source not in known or link.target not in known:
            continue
        outgoing[link.source][link.target] = None
        incoming[link.target][link.source] = None

    indegree = {nid: len(incoming[nid]) for nid in node_ids}
    queue = deque(nid for nid in node_ids if indegree[nid] == 0)
    levels: dict[str, int] = {}
    processed: set[str] = set()

    while queue:
        current = queue.popleft()
        processed.add(current)
        current_level = levels.get(current, 0)
        for nxt in outgoing[current]:
            levels[nxt] = max(levels.get(nxt, 0), current_level + 1)
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                queue.append(nxt)

    cyclic = [nid for nid in node_ids if nid not in processed]
    for nid in node_ids:
        if nid not in processed:
            levels[nid] = 0
        else:
            levels.setdefault(nid, 0)
    return levels, cyclic


def derive_groups(nodes: Iterable["CausalNode"], preferred: Optional[list[str]] = None) -> list[str]:
    """
    Lane order: preferred groups first, then groups found in the data.

    "ungrouped" is appended when any node has no tag or no group exists.
    """
    found: dict[str, None] = {g: None for g in (preferred or []) if g}
    has_ungrouped = False
    for node in nodes:
        if node.group:
            found[node.group] = None
        else:
            has_ungrouped = True
    if has_ungrouped or not found:
        found[UNGROUPED] = None
    return list(found)


def compute_causal_layout(
    nodes: list["CausalNode"],
    links: list["CausalLink"],
    groups: Optional[list[str]] = None,
    column_spacing: float = DEFAULT_COLUMN_SPACING,
    node_spacing: float = DEFAULT_NODE_SPACING,
    lane_padding: float = DEFAULT_LANE_PADDING,
    lane_gap: float = DEFAULT_LANE_GAP,
) -> LayoutResult:
    """
    Compute deterministic positions for a causal graph.

    Identical input (including list order) always yields identical output.

    Args:
        nodes: Causal nodes to place
        links: Causal links defining the dependency order
        groups: Preferred lane order; groups found in the data are appended
        column_spacing: Horizontal distance between levels
        node_spacing: Vertical distance between nodes in a lane
        lane_padding: Space above and below the nodes of each lane
        lane_gap: Extra space between consecutive lanes

    Returns:
        LayoutResult with a position for every node
    """
    group_order = derive_groups(nodes, groups)
    levels, cyclic = compute_levels(nodes, links)

    lanes: dict[str, list["CausalNode"]] = {g: [] for g in group_order}
    for node in nodes:
        lanes.setdefault(lane_key(node.group), []).append(node)

    # Lane k starts below the full extent of lanes 0..k-1.
    origins: dict[str, float] = {}
    cursor = 0.0
    for group in group_order:
        origins[group] = cursor + lane_padding
        count = len(lanes[group]) or 1
        cursor += lane_padding * 2 + node_spacing * count + lane_gap

    positions: dict[str, Point] = {}
    for group, members in lanes.items():
        ordered = sorted(members, key=lambda n: (levels.get(n.id, 0), n.label or ""))
        for index, node in enumerate(ordered):
            level = levels.get(node.id, 0)
            positions[node.id] = Point(
                x=column_spacing * level + column_spacing,
                y=origins[group] + index * node_spacing,
            )

    if cyclic:
        logger.warning("causal graph has cycles; cyclic nodes placed at level 0", nodes=cyclic)

    return LayoutResult(positions=positions, groups=group_order, levels=levels, cyclic=cyclic)


def apply_causal_layout(
    board: "Board",
    groups: Optional[list[str]] = None,
    **options: float,
) -> LayoutResult:
    """
    Lay out a board's causal nodes in-place.

    Args:
        board: Board whose causal_nodes are repositioned
        groups: Preferred lane order
        **options: Spacing overrides passed to compute_causal_layout

    Returns:
        The LayoutResult that was applied
    """
    result = compute_causal_layout(board.causal_nodes, board.causal_links, groups=groups, **options)
    for node in board.causal_nodes:
        position = result.positions.get(node.id)
        if position is not None:
            node.position = position
    logger.info("causal layout applied", nodes=len(result.positions), lanes=len(result.groups))
    return result

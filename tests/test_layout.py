"""Tests for the causal graph layout."""

from boardcore.layout import (
    DEFAULT_COLUMN_SPACING,
    DEFAULT_LANE_GAP,
    DEFAULT_LANE_PADDING,
    DEFAULT_NODE_SPACING,
    UNGROUPED,
    apply_causal_layout,
    compute_causal_layout,
    compute_levels,
    derive_groups,
)
from boardcore.models import Board, CausalLink, CausalNode, Point


def node(node_id: str, label: str = "", group: str = None) -> CausalNode:
    return CausalNode(id=node_id, label=label or node_id, group=group, position=Point(x=0, y=0))


def link(source: str, target: str) -> CausalLink:
    return CausalLink(source=source, target=target)


class TestLevels:
    def test_longest_path_depth(self) -> None:
        nodes = [node("a"), node("b"), node("c"), node("d")]
        # a -> b -> c and a -> c: c sits at the longer path's depth.
        links = [link("a", "b"), link("b", "c"), link("a", "c"), link("d", "c")]
        levels, cyclic = compute_levels(nodes, links)
        assert levels == {"a": 0, "b": 1, "c": 2, "d": 0}
        assert cyclic == []

    def test_cycle_members_get_level_zero(self) -> None:
        nodes = [node("a"), node("b"), node("c"), node("d")]
        links = [link("a", "b"), link("b", "c"), link("c", "b"), link("c", "d")]
        levels, cyclic = compute_levels(nodes, links)
        assert cyclic == ["b", "c", "d"]
        assert levels["b"] == levels["c"] == levels["d"] == 0
        assert levels["a"] == 0

    def test_links_to_unknown_nodes_are_ignored(self) -> None:
        levels, cyclic = compute_levels([node("a")], [link("a", "ghost")])
        assert levels == {"a": 0}
        assert cyclic == []


class TestGroups:
    def test_preferred_order_then_data(self) -> None:
        nodes = [node("a", group="supply"), node("b", group="demand"), node("c")]
        assert derive_groups(nodes, ["demand"]) == ["demand", "supply", UNGROUPED]

    def test_ungrouped_lane_when_nothing_tagged(self) -> None:
        assert derive_groups([]) == [UNGROUPED]
        assert derive_groups([node("a", group="x")]) == ["x"]


class TestLayout:
    def test_single_lane_positions(self) -> None:
        nodes = [node("a"), node("b"), node("c")]
        result = compute_causal_layout(nodes, [link("a", "b"), link("a", "c")])
        col, pad, spacing = DEFAULT_COLUMN_SPACING, DEFAULT_LANE_PADDING, DEFAULT_NODE_SPACING
        assert result.positions["a"] == Point(x=col, y=pad)
        # b and c share level 1 and are ordered by label.
        assert result.positions["b"] == Point(x=col * 2, y=pad + spacing)
        assert result.positions["c"] == Point(x=col * 2, y=pad + spacing * 2)

    def test_lanes_stack_by_full_extent(self) -> None:
        nodes = [node("a", group="one"), node("b", group="one"), node("c", group="two")]
        result = compute_causal_layout(nodes, [], groups=["one", "two"])
        pad, spacing, gap = DEFAULT_LANE_PADDING, DEFAULT_NODE_SPACING, DEFAULT_LANE_GAP
        lane_one_extent = pad * 2 + spacing * 2 + gap
        assert result.groups == ["one", "two"]
        assert result.positions["c"].y == lane_one_extent + pad

    def test_empty_preferred_lane_still_takes_space(self) -> None:
        result = compute_causal_layout([node("a", group="late")], [], groups=["early", "late"])
        pad, spacing, gap = DEFAULT_LANE_PADDING, DEFAULT_NODE_SPACING, DEFAULT_LANE_GAP
        assert result.positions["a"].y == (pad * 2 + spacing + gap) + pad

    def test_identical_input_gives_identical_output(self) -> None:
        def build():
            nodes = [node(str(i), label=f"n{i % 3}", group="g" if i % 2 else None) for i in range(12)]
            links = [link(str(i), str(i + 1)) for i in range(11)]
            return compute_causal_layout(nodes, links, groups=["g"])

        first, second = build(), build()
        assert first.positions == second.positions
        assert first.groups == second.groups

    def test_cyclic_graph_still_places_every_node(self) -> None:
        nodes = [node("a"), node("b")]
        result = compute_causal_layout(nodes, [link("a", "b"), link("b", "a")])
        assert set(result.positions) == {"a", "b"}
        assert sorted(result.cyclic) == ["a", "b"]

    def test_custom_spacing(self) -> None:
        result = compute_causal_layout([node("a")], [], column_spacing=100, lane_padding=10)
        assert result.positions["a"] == Point(x=100, y=10)


def test_apply_moves_nodes_in_place() -> None:
    board = Board(
        causal_nodes=[node("a"), node("b")],
        causal_links=[link("a", "b")],
    )
    result = apply_causal_layout(board)
    assert board.causal_nodes[1].position == result.positions["b"]
    assert board.causal_nodes[1].position.x == DEFAULT_COLUMN_SPACING * 2

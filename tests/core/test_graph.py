"""Tests for the in-memory DependencyGraph and its model."""

from __future__ import annotations

import pytest

from knitcheck.core.errors import GraphIntegrityError
from knitcheck.core.graph.graph import DependencyGraph
from knitcheck.core.graph.model import (
    EdgeType,
    GraphEdge,
    GraphNode,
    NodeType,
    generate_cycle_id,
    generate_edge_id,
    generate_issue_id,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def graph() -> DependencyGraph:
    """Return a fresh, empty DependencyGraph."""
    return DependencyGraph()


def _make_node(node_id: str = "com.app.OrderService", label: str | None = None) -> GraphNode:
    return GraphNode(
        id=node_id,
        label=label or node_id.rsplit(".", 1)[-1],
        type=NodeType.COMPONENT,
        package_name=node_id.rpartition(".")[0],
    )


def _populated(*ids: str) -> DependencyGraph:
    g = DependencyGraph()
    for node_id in ids:
        g.add_node(_make_node(node_id))
    return g


# ---------------------------------------------------------------------------
# Id formatting
# ---------------------------------------------------------------------------


class TestIdFormatting:
    def test_edge_id_replaces_dots(self) -> None:
        assert generate_edge_id("com.a.A", "com.b.B") == "com_a_A_to_com_b_B"

    def test_edge_id_without_packages(self) -> None:
        assert generate_edge_id("A", "B") == "A_to_B"

    def test_edge_id_is_deterministic(self) -> None:
        assert generate_edge_id("x.Y", "z.W") == generate_edge_id("x.Y", "z.W")

    def test_edge_property_uses_generator(self) -> None:
        edge = GraphEdge(source="p.A", target="p.B")
        assert edge.id == generate_edge_id("p.A", "p.B")

    def test_issue_and_cycle_ids_are_one_based(self) -> None:
        assert generate_issue_id(0) == "issue_1"
        assert generate_cycle_id(2) == "cycle_3"


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class TestNodes:
    def test_add_and_get_node(self, graph: DependencyGraph) -> None:
        node = _make_node()
        assert graph.add_node(node) is True
        assert graph.get_node(node.id) is node
        assert graph.has_node(node.id)

    def test_get_missing_node_returns_none(self, graph: DependencyGraph) -> None:
        assert graph.get_node("missing") is None

    def test_duplicate_id_keeps_first(self, graph: DependencyGraph) -> None:
        first = _make_node("p.A", label="First")
        second = _make_node("p.A", label="Second")
        graph.add_node(first)
        assert graph.add_node(second) is False
        assert graph.get_node("p.A").label == "First"
        assert graph.node_count == 1

    def test_insertion_order_preserved(self) -> None:
        g = _populated("p.C", "p.A", "p.B")
        assert [n.id for n in g.iter_nodes()] == ["p.C", "p.A", "p.B"]


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


class TestEdges:
    def test_add_edge(self) -> None:
        g = _populated("p.A", "p.B")
        assert g.add_edge(GraphEdge("p.A", "p.B")) is True
        assert g.has_edge("p.A", "p.B")
        assert not g.has_edge("p.B", "p.A")
        assert g.edge_count == 1

    def test_dangling_edge_rejected(self) -> None:
        g = _populated("p.A")
        with pytest.raises(GraphIntegrityError):
            g.add_edge(GraphEdge("p.A", "p.Missing"))
        assert g.edge_count == 0

    def test_duplicate_pair_keeps_first(self) -> None:
        g = _populated("p.A", "p.B")
        g.add_edge(GraphEdge("p.A", "p.B", type=EdgeType.NAMED))
        assert g.add_edge(GraphEdge("p.A", "p.B", type=EdgeType.SINGLETON)) is False
        assert g.get_edge("p.A", "p.B").type == EdgeType.NAMED

    def test_self_loop_allowed(self) -> None:
        g = _populated("p.A")
        assert g.add_edge(GraphEdge("p.A", "p.A"))
        assert g.successors("p.A") == ["p.A"]

    def test_outgoing_and_incoming(self) -> None:
        g = _populated("p.A", "p.B", "p.C")
        g.add_edge(GraphEdge("p.A", "p.B"))
        g.add_edge(GraphEdge("p.A", "p.C", type=EdgeType.FACTORY))
        g.add_edge(GraphEdge("p.C", "p.B"))

        assert [e.target for e in g.get_outgoing("p.A")] == ["p.B", "p.C"]
        assert [e.target for e in g.get_outgoing("p.A", EdgeType.FACTORY)] == ["p.C"]
        assert [e.source for e in g.get_incoming("p.B")] == ["p.A", "p.C"]

    def test_successors_in_edge_insertion_order(self) -> None:
        g = _populated("p.A", "p.B", "p.C")
        g.add_edge(GraphEdge("p.A", "p.C"))
        g.add_edge(GraphEdge("p.A", "p.B"))
        assert g.successors("p.A") == ["p.C", "p.B"]

    def test_connected_nodes(self) -> None:
        g = _populated("p.A", "p.B", "p.C", "p.D")
        g.add_edge(GraphEdge("p.A", "p.B"))
        g.add_edge(GraphEdge("p.C", "p.A"))
        assert {n.id for n in g.connected_nodes("p.A")} == {"p.B", "p.C"}

    def test_stats(self) -> None:
        g = _populated("p.A", "p.B")
        g.add_edge(GraphEdge("p.A", "p.B"))
        assert g.stats() == {"nodes": 2, "edges": 1}

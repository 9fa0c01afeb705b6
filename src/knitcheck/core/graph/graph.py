"""In-memory dependency graph for knitcheck.

Provides a lightweight, dict-backed graph of :class:`GraphNode` and
:class:`GraphEdge` instances with O(1) lookups by ID.  Adjacency indexes keep
neighbour queries proportional to the *result* set, and insertion order is
preserved everywhere so traversals are reproducible.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterator

from knitcheck.core.errors import GraphIntegrityError
from knitcheck.core.graph.model import EdgeType, GraphEdge, GraphNode


class DependencyGraph:
    """A directed graph of components and the dependencies between them.

    Nodes are keyed by their ``id``; edges by their ``(source, target)``
    pair, so at most one edge exists between two nodes.  Adding an edge
    whose endpoints are not both present raises :class:`GraphIntegrityError`.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, GraphNode] = {}
        self._edges: dict[tuple[str, str], GraphEdge] = {}

        # Adjacency indexes keyed by the neighbour id, kept in sync by add_edge.
        self._outgoing: dict[str, dict[str, GraphEdge]] = defaultdict(dict)
        self._incoming: dict[str, dict[str, GraphEdge]] = defaultdict(dict)

    def iter_nodes(self) -> Iterator[GraphNode]:
        """Yield all nodes in insertion order."""
        return iter(self._nodes.values())

    def iter_edges(self) -> Iterator[GraphEdge]:
        """Yield all edges in insertion order."""
        return iter(self._edges.values())

    @property
    def nodes(self) -> list[GraphNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[GraphEdge]:
        return list(self._edges.values())

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def add_node(self, node: GraphNode) -> bool:
        """Add *node* unless a node with the same id exists.

        Returns:
            ``True`` if the node was added, ``False`` for a duplicate id.
        """
        if node.id in self._nodes:
            return False
        self._nodes[node.id] = node
        return True

    def get_node(self, node_id: str) -> GraphNode | None:
        """Return the node with *node_id*, or ``None`` if it does not exist."""
        return self._nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def add_edge(self, edge: GraphEdge) -> bool:
        """Add *edge* unless an edge between the same endpoints exists.

        Returns:
            ``True`` if the edge was added, ``False`` for a duplicate.

        Raises:
            GraphIntegrityError: if either endpoint is not a node.
        """
        for endpoint in (edge.source, edge.target):
            if endpoint not in self._nodes:
                raise GraphIntegrityError(
                    f"Edge {edge.source} -> {edge.target} references unknown node {endpoint}"
                )
        key = (edge.source, edge.target)
        if key in self._edges:
            return False
        self._edges[key] = edge
        self._outgoing[edge.source][edge.target] = edge
        self._incoming[edge.target][edge.source] = edge
        return True

    def get_edge(self, source: str, target: str) -> GraphEdge | None:
        """Return the edge from *source* to *target*, if any."""
        return self._edges.get((source, target))

    def has_edge(self, source: str, target: str) -> bool:
        return (source, target) in self._edges

    def get_outgoing(
        self, node_id: str, edge_type: EdgeType | None = None
    ) -> list[GraphEdge]:
        """Return edges leaving *node_id*, optionally filtered by *edge_type*."""
        edges = self._outgoing.get(node_id, {})
        if edge_type is None:
            return list(edges.values())
        return [e for e in edges.values() if e.type == edge_type]

    def get_incoming(
        self, node_id: str, edge_type: EdgeType | None = None
    ) -> list[GraphEdge]:
        """Return edges entering *node_id*, optionally filtered by *edge_type*."""
        edges = self._incoming.get(node_id, {})
        if edge_type is None:
            return list(edges.values())
        return [e for e in edges.values() if e.type == edge_type]

    def successors(self, node_id: str) -> list[str]:
        """Return target ids of edges leaving *node_id*, in insertion order."""
        return list(self._outgoing.get(node_id, {}))

    def connected_nodes(self, node_id: str) -> list[GraphNode]:
        """Return every node sharing an edge with *node_id* (excluding itself)."""
        seen: dict[str, None] = dict.fromkeys(self._outgoing.get(node_id, {}))
        for source in self._incoming.get(node_id, {}):
            seen.setdefault(source)
        seen.pop(node_id, None)
        return [self._nodes[nid] for nid in seen]

    def stats(self) -> dict[str, int]:
        """Return a summary of graph size."""
        return {"nodes": len(self._nodes), "edges": len(self._edges)}

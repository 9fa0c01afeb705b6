"""Dependency graph data model for knitcheck.

Defines the node and edge types that represent DI components and the
resolved dependencies between them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from knitcheck.core.symbols import MetaValue


class NodeType(Enum):
    """Kinds of graph node."""

    COMPONENT = "COMPONENT"
    PROVIDER = "PROVIDER"
    INTERFACE = "INTERFACE"


class EdgeType(Enum):
    """Kinds of directed edge.

    SINGLETON, NAMED and FACTORY are dependency edges refined by the flags
    of the dependency that produced them.
    """

    DEPENDENCY = "DEPENDENCY"
    PROVIDES = "PROVIDES"
    SINGLETON = "SINGLETON"
    NAMED = "NAMED"
    FACTORY = "FACTORY"
    COLLECTION = "COLLECTION"


DEPENDENCY_EDGE_TYPES: frozenset[EdgeType] = frozenset(
    {EdgeType.DEPENDENCY, EdgeType.SINGLETON, EdgeType.NAMED, EdgeType.FACTORY}
)


def generate_edge_id(source: str, target: str) -> str:
    """Produce the deterministic edge ID used on the wire.

    Format: ``{source}_to_{target}`` with every ``.`` replaced by ``_``.

    Args:
        source: ID of the node the edge leaves.
        target: ID of the node the edge enters.

    Returns:
        An underscore-only string suitable as an edge ID.
    """
    return f"{source}_to_{target}".replace(".", "_")


def generate_issue_id(index: int) -> str:
    """Return the 1-based wire ID for the *index*-th (0-based) issue."""
    return f"issue_{index + 1}"


def generate_cycle_id(index: int) -> str:
    """Return the 1-based wire ID for the *index*-th (0-based) cycle."""
    return f"cycle_{index + 1}"


@dataclass
class GraphNode:
    """A node in the dependency graph, one per component.

    ``id``, ``label`` and ``type`` are required.  ``label`` is the simple
    class name; ``package_name`` the owning package.
    """

    id: str
    label: str
    type: NodeType
    package_name: str = ""

    properties: dict[str, MetaValue] = field(default_factory=dict)


@dataclass
class GraphEdge:
    """A directed edge from a consumer to the component providing its dependency.

    ``qualifier`` carries the named qualifier the dependency was resolved
    with, if any.
    """

    source: str
    target: str
    type: EdgeType = EdgeType.DEPENDENCY
    label: str | None = None
    qualifier: str | None = None

    properties: dict[str, MetaValue] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return generate_edge_id(self.source, self.target)

"""Graph construction for knitcheck.

Turns an ordered list of components into a :class:`DependencyGraph`: one
node per component and one edge from each consumer to every component
owning a provider that satisfies one of its dependencies.  Unresolved
dependencies simply produce no edge; detecting them is a detector's job.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from knitcheck.core.graph.graph import DependencyGraph
from knitcheck.core.graph.model import EdgeType, GraphEdge, GraphNode, NodeType
from knitcheck.core.providers import ProviderIndex
from knitcheck.core.symbols import Component, ComponentType, Dependency, make_metadata

logger = logging.getLogger(__name__)

_NODE_TYPES: dict[ComponentType, NodeType] = {
    ComponentType.COMPONENT: NodeType.COMPONENT,
    ComponentType.PROVIDER: NodeType.PROVIDER,
    ComponentType.CONSUMER: NodeType.COMPONENT,
    ComponentType.COMPOSITE: NodeType.COMPONENT,
}


@dataclass
class BuildResult:
    """The built graph plus the component ids that were dropped as duplicates."""

    graph: DependencyGraph
    duplicate_ids: list[str] = field(default_factory=list)


def edge_type_for(dependency: Dependency) -> EdgeType:
    """Pick the edge type that best describes *dependency*."""
    if dependency.is_singleton:
        return EdgeType.SINGLETON
    if dependency.is_factory:
        return EdgeType.FACTORY
    if dependency.is_named:
        return EdgeType.NAMED
    return EdgeType.DEPENDENCY


def edge_label_for(dependency: Dependency) -> str:
    """Return the display label for an edge created by *dependency*.

    Named dependencies render as ``prop (@Named(qualifier))``.
    """
    if dependency.is_named and dependency.named_qualifier:
        return f"{dependency.property_name} (@Named({dependency.named_qualifier}))"
    return dependency.property_name


def build_graph(components: Sequence[Component], providers: ProviderIndex) -> BuildResult:
    """Build the dependency graph for *components*.

    Components are added in input order; a component whose id was already
    seen is skipped and reported in :attr:`BuildResult.duplicate_ids`.  For
    each dependency every matching provider yields one edge to its owning
    component; repeated (source, target) pairs keep the first edge.

    Args:
        components: The ordered snapshot.
        providers: The active-provider index built from the same snapshot.

    Returns:
        A :class:`BuildResult` with the graph and any duplicate ids.
    """
    graph = DependencyGraph()
    result = BuildResult(graph=graph)
    accepted: list[Component] = []

    for component in components:
        node = GraphNode(
            id=component.id,
            label=component.class_name,
            type=_NODE_TYPES[component.type],
            package_name=component.package_name,
        )
        if graph.add_node(node):
            accepted.append(component)
        else:
            result.duplicate_ids.append(component.id)
            logger.warning("Duplicate component id %s; keeping the first", component.id)

    for component in accepted:
        for dependency in component.dependencies:
            matches = providers.lookup(dependency.target_type, dependency.qualifier)
            if not matches:
                logger.debug(
                    "No provider for %s.%s (%s)",
                    component.id,
                    dependency.property_name,
                    dependency.target_type,
                )
                continue
            for entry in matches:
                if not graph.has_node(entry.component_id):
                    continue
                graph.add_edge(
                    GraphEdge(
                        source=component.id,
                        target=entry.component_id,
                        type=edge_type_for(dependency),
                        label=edge_label_for(dependency),
                        qualifier=dependency.qualifier,
                        properties=make_metadata(
                            isNamed=dependency.is_named,
                            isSingleton=dependency.is_singleton,
                            isFactory=dependency.is_factory,
                            isLoadable=dependency.is_loadable,
                        ),
                    )
                )

    logger.info(
        "Built dependency graph: %d nodes, %d edges", graph.node_count, graph.edge_count
    )
    return result

"""Export of analysis results to the graph-viewer JSON contract.

:func:`export_document` is a pure transform: it reads the graph, the final
issue list and the cycle report, and returns an :class:`ExportDocument`
whose :meth:`~ExportDocument.to_dict` is the wire format.  It performs no
I/O; the analysis timestamp is passed in.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from knitcheck import __version__
from knitcheck.core.errors import ExportError
from knitcheck.core.export.highlight import ErrorHighlight, highlight_edge, highlight_node
from knitcheck.core.graph.cycles import CycleReport
from knitcheck.core.graph.graph import DependencyGraph
from knitcheck.core.graph.model import (
    EdgeType,
    GraphEdge,
    generate_cycle_id,
    generate_edge_id,
    generate_issue_id,
)
from knitcheck.core.symbols import Component, Issue, IssueType, Severity

logger = logging.getLogger(__name__)

_PROVIDER_ISSUES = frozenset({IssueType.AMBIGUOUS_PROVIDER, IssueType.SINGLETON_VIOLATION})


# ---------------------------------------------------------------------------
# Document model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExportNode:
    id: str
    label: str
    type: str
    package_name: str
    class_name: str
    source_file: str | None
    dependency_count: int
    provider_count: int
    issue_count: int
    error_highlight: ErrorHighlight

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "packageName": self.package_name,
            "className": self.class_name,
            "metadata": {
                "sourceFile": self.source_file,
                "dependencyCount": self.dependency_count,
                "providerCount": self.provider_count,
                "issueCount": self.issue_count,
            },
            "errorHighlight": self.error_highlight.to_dict(),
        }


@dataclass(frozen=True)
class ExportEdge:
    id: str
    source: str
    target: str
    type: str
    label: str | None
    is_named: bool
    named_qualifier: str | None
    is_singleton: bool
    is_factory: bool
    error_highlight: ErrorHighlight

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
            "label": self.label,
            "metadata": {
                "isNamed": self.is_named,
                "namedQualifier": self.named_qualifier,
                "isSingleton": self.is_singleton,
                "isFactory": self.is_factory,
            },
            "errorHighlight": self.error_highlight.to_dict(),
        }


@dataclass(frozen=True)
class ExportCycle:
    id: str
    path: tuple[str, ...]
    node_ids: tuple[str, ...]
    edge_ids: tuple[str, ...]
    severity: Severity

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "path": list(self.path),
            "nodeIds": list(self.node_ids),
            "edgeIds": list(self.edge_ids),
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class IssueDetail:
    id: str
    type: IssueType
    severity: Severity
    message: str
    affected_nodes: tuple[str, ...]
    affected_edges: tuple[str, ...]
    suggested_fix: str | None
    confidence_score: float

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "affectedNodes": list(self.affected_nodes),
            "affectedEdges": list(self.affected_edges),
            "suggestedFix": self.suggested_fix,
            "confidenceScore": self.confidence_score,
        }


@dataclass(frozen=True)
class ErrorContext:
    total_errors: int = 0
    total_warnings: int = 0
    cycles: tuple[ExportCycle, ...] = ()
    issue_details: tuple[IssueDetail, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "totalErrors": self.total_errors,
            "totalWarnings": self.total_warnings,
            "cycles": [c.to_dict() for c in self.cycles],
            "issueDetails": [d.to_dict() for d in self.issue_details],
        }


@dataclass(frozen=True)
class ExportMetadata:
    project_name: str
    analysis_timestamp: int
    total_components: int
    total_dependencies: int
    knit_version: str | None = None
    plugin_version: str = __version__

    def to_dict(self) -> dict[str, object]:
        return {
            "projectName": self.project_name,
            "analysisTimestamp": self.analysis_timestamp,
            "totalComponents": self.total_components,
            "totalDependencies": self.total_dependencies,
            "knitVersion": self.knit_version,
            "pluginVersion": self.plugin_version,
        }


@dataclass(frozen=True)
class ExportDocument:
    """The complete exported analysis."""

    nodes: tuple[ExportNode, ...]
    edges: tuple[ExportEdge, ...]
    error_context: ErrorContext
    metadata: ExportMetadata = field(
        default_factory=lambda: ExportMetadata(project_name="", analysis_timestamp=0,
                                               total_components=0, total_dependencies=0)
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "graph": {
                "nodes": [n.to_dict() for n in self.nodes],
                "edges": [e.to_dict() for e in self.edges],
            },
            "errorContext": self.error_context.to_dict(),
            "metadata": self.metadata.to_dict(),
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Transform
# ---------------------------------------------------------------------------


def _edge_flag(edge: GraphEdge, key: str, fallback: bool) -> bool:
    value = edge.properties.get(key)
    return value.as_bool() if value is not None else fallback


def _affected_edges(issue: Issue, graph: DependencyGraph) -> tuple[str, ...]:
    """Edge ids an issue is drawn on.

    Cycles cover their path, unresolved dependencies the consumer's outgoing
    edges, provider conflicts the edges into each conflicting component.
    """
    if issue.type == IssueType.CIRCULAR_DEPENDENCY:
        path = issue.meta_list("cyclePath") or issue.component_names
        count = len(path)
        return tuple(generate_edge_id(path[i], path[(i + 1) % count]) for i in range(count))
    if issue.type == IssueType.UNRESOLVED_DEPENDENCY:
        return tuple(
            edge.id
            for name in issue.component_names
            for edge in graph.get_outgoing(name)
        )
    if issue.type in _PROVIDER_ISSUES:
        return tuple(
            edge.id
            for name in issue.component_names
            for edge in graph.get_incoming(name)
        )
    return ()


def _edge_state(
    issues: Sequence[Issue], in_cycle: bool
) -> tuple[Severity | None, tuple[IssueType, ...]]:
    if issues:
        severity = min((i.severity for i in issues), key=lambda s: s.rank)
        return severity, tuple(dict.fromkeys(i.type for i in issues))
    if in_cycle:
        return Severity.ERROR, (IssueType.CIRCULAR_DEPENDENCY,)
    return None, ()


def export_document(
    graph: DependencyGraph,
    issues: Sequence[Issue],
    cycle_report: CycleReport,
    components: Sequence[Component],
    *,
    project_name: str = "",
    analysis_timestamp: int = 0,
    knit_version: str | None = None,
) -> ExportDocument:
    """Build the export document.

    Args:
        graph: The dependency graph of the run.
        issues: The reconciled (and usually validated) issues.
        cycle_report: Cycles found in *graph*.
        components: The snapshot components, for node metadata.
        project_name: Shown in the document metadata.
        analysis_timestamp: Milliseconds since the epoch.
        knit_version: Version of the DI framework, if known.

    Raises:
        ExportError: if an edge references a node missing from *graph*.
    """
    by_id = {c.id: c for c in components}

    # Every component is claimed by at most one issue after reconciliation.
    node_issue: dict[str, Issue] = {}
    issue_counts: dict[str, int] = {}
    for issue in issues:
        for name in issue.component_names:
            node_issue.setdefault(name, issue)
            issue_counts[name] = issue_counts.get(name, 0) + 1

    cycles: list[ExportCycle] = []
    node_cycle: dict[str, str] = {}
    edge_cycle: dict[str, str] = {}
    labels = {node.id: node.label for node in graph.iter_nodes()}
    for index, cycle in enumerate(cycle_report.cycles):
        cycle_id = generate_cycle_id(index)
        cycles.append(
            ExportCycle(
                id=cycle_id,
                path=tuple(labels.get(n, n) for n in cycle.path),
                node_ids=cycle.path,
                edge_ids=tuple(cycle.edge_ids),
                severity=Severity.ERROR,
            )
        )
        for node_id in cycle.path:
            node_cycle.setdefault(node_id, cycle_id)
        for edge_id in cycle.edge_ids:
            edge_cycle.setdefault(edge_id, cycle_id)

    nodes: list[ExportNode] = []
    for node in graph.iter_nodes():
        component = by_id.get(node.id)
        issue = node_issue.get(node.id)
        cycle_id = node_cycle.get(node.id)
        if issue is not None:
            severity: Severity | None = issue.severity
            types: tuple[IssueType, ...] = (issue.type,)
        elif cycle_id is not None:
            severity, types = Severity.ERROR, (IssueType.CIRCULAR_DEPENDENCY,)
        else:
            severity, types = None, ()
        nodes.append(
            ExportNode(
                id=node.id,
                label=node.label,
                type=node.type.value,
                package_name=node.package_name,
                class_name=component.class_name if component else node.label,
                source_file=component.source_file if component else None,
                dependency_count=len(component.dependencies) if component else 0,
                provider_count=len(component.providers) if component else 0,
                issue_count=issue_counts.get(node.id, 0),
                error_highlight=highlight_node(severity, types, cycle_id),
            )
        )

    affected = [_affected_edges(issue, graph) for issue in issues]
    edge_issues: dict[str, list[Issue]] = {}
    for issue, edge_ids in zip(issues, affected):
        for edge_id in dict.fromkeys(edge_ids):
            edge_issues.setdefault(edge_id, []).append(issue)

    edges: list[ExportEdge] = []
    for edge in graph.iter_edges():
        if not (graph.has_node(edge.source) and graph.has_node(edge.target)):
            raise ExportError(f"Edge {edge.id} references a node missing from the graph")
        cycle_id = edge_cycle.get(edge.id)
        edge_severity, edge_types = _edge_state(
            edge_issues.get(edge.id, ()), cycle_id is not None
        )
        edges.append(
            ExportEdge(
                id=edge.id,
                source=edge.source,
                target=edge.target,
                type=edge.type.value,
                label=edge.label,
                is_named=_edge_flag(edge, "isNamed", edge.qualifier is not None),
                named_qualifier=edge.qualifier,
                is_singleton=_edge_flag(edge, "isSingleton", edge.type == EdgeType.SINGLETON),
                is_factory=_edge_flag(edge, "isFactory", edge.type == EdgeType.FACTORY),
                error_highlight=highlight_edge(edge_severity, edge_types, cycle_id),
            )
        )

    details = tuple(
        IssueDetail(
            id=generate_issue_id(index),
            type=issue.type,
            severity=issue.severity,
            message=issue.message,
            affected_nodes=tuple(n for n in issue.component_names if graph.has_node(n)),
            affected_edges=affected[index],
            suggested_fix=issue.suggested_fix,
            confidence_score=issue.confidence_score,
        )
        for index, issue in enumerate(issues)
    )

    document = ExportDocument(
        nodes=tuple(nodes),
        edges=tuple(edges),
        error_context=ErrorContext(
            total_errors=sum(1 for i in issues if i.severity == Severity.ERROR),
            total_warnings=sum(1 for i in issues if i.severity == Severity.WARNING),
            cycles=tuple(cycles),
            issue_details=details,
        ),
        metadata=ExportMetadata(
            project_name=project_name,
            analysis_timestamp=analysis_timestamp,
            total_components=graph.node_count,
            total_dependencies=graph.edge_count,
            knit_version=knit_version,
        ),
    )
    logger.debug(
        "Exported %d nodes, %d edges, %d issues", len(nodes), len(edges), len(details)
    )
    return document

"""Error highlighting for exported graph elements.

Maps an element's issue severity and cycle membership to the visual hints
a graph viewer applies: colours, widths, line style and CSS classes.
"""

from __future__ import annotations

from dataclasses import dataclass

from knitcheck.core.symbols import IssueType, Severity

HEALTHY_BORDER = "#28a745"
HEALTHY_BACKGROUND = "#f8fff9"
WARNING_BORDER = "#ff8c00"
WARNING_BACKGROUND = "#fff8e1"
ERROR_BORDER = "#ff0000"
ERROR_BACKGROUND = "#ffeeee"

CYCLE_NODE_CLASS = "cycle-participant"
CYCLE_EDGE_CLASS = "cycle-edge"


@dataclass(frozen=True)
class NodeVisualHints:
    border_color: str
    background_color: str
    border_width: int
    classes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "borderColor": self.border_color,
            "backgroundColor": self.background_color,
            "borderWidth": self.border_width,
            "classes": list(self.classes),
        }


@dataclass(frozen=True)
class EdgeVisualHints:
    border_color: str
    color: str
    width: int
    style: str
    classes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "borderColor": self.border_color,
            "color": self.color,
            "width": self.width,
            "style": self.style,
            "classes": list(self.classes),
        }


@dataclass(frozen=True)
class ErrorHighlight:
    """Error state of one node or edge."""

    has_errors: bool
    error_severity: Severity | None
    error_types: tuple[IssueType, ...]
    is_part_of_cycle: bool
    cycle_id: str | None
    visual_hints: NodeVisualHints | EdgeVisualHints

    def to_dict(self) -> dict[str, object]:
        return {
            "hasErrors": self.has_errors,
            "errorSeverity": self.error_severity.value if self.error_severity else None,
            "errorTypes": [t.value for t in self.error_types],
            "isPartOfCycle": self.is_part_of_cycle,
            "cycleId": self.cycle_id,
            "visualHints": self.visual_hints.to_dict(),
        }


def node_hints(severity: Severity | None, in_cycle: bool = False) -> NodeVisualHints:
    """Visual hints for a node; INFO renders like a healthy node."""
    if severity == Severity.ERROR:
        hints = NodeVisualHints(ERROR_BORDER, ERROR_BACKGROUND, 2, ("error-node",))
    elif severity == Severity.WARNING:
        hints = NodeVisualHints(WARNING_BORDER, WARNING_BACKGROUND, 2, ("warning-node",))
    else:
        hints = NodeVisualHints(HEALTHY_BORDER, HEALTHY_BACKGROUND, 1, ("healthy-node",))
    if in_cycle:
        hints = NodeVisualHints(
            hints.border_color,
            hints.background_color,
            hints.border_width,
            (*hints.classes, CYCLE_NODE_CLASS),
        )
    return hints


def edge_hints(severity: Severity | None, in_cycle: bool = False) -> EdgeVisualHints:
    """Visual hints for an edge; cycle edges always render as errors."""
    if severity == Severity.ERROR or in_cycle:
        classes: tuple[str, ...] = ("error-edge",)
        if in_cycle:
            classes += (CYCLE_EDGE_CLASS,)
        return EdgeVisualHints(ERROR_BORDER, ERROR_BORDER, 3, "solid", classes)
    if severity == Severity.WARNING:
        return EdgeVisualHints(WARNING_BORDER, WARNING_BORDER, 2, "dashed", ("warning-edge",))
    return EdgeVisualHints(HEALTHY_BORDER, HEALTHY_BORDER, 1, "solid", ("healthy-edge",))


def highlight_node(
    severity: Severity | None,
    error_types: tuple[IssueType, ...] = (),
    cycle_id: str | None = None,
) -> ErrorHighlight:
    in_cycle = cycle_id is not None
    return ErrorHighlight(
        has_errors=severity is not None,
        error_severity=severity,
        error_types=error_types,
        is_part_of_cycle=in_cycle,
        cycle_id=cycle_id,
        visual_hints=node_hints(severity, in_cycle),
    )


def highlight_edge(
    severity: Severity | None,
    error_types: tuple[IssueType, ...] = (),
    cycle_id: str | None = None,
) -> ErrorHighlight:
    in_cycle = cycle_id is not None
    return ErrorHighlight(
        has_errors=severity is not None,
        error_severity=severity,
        error_types=error_types,
        is_part_of_cycle=in_cycle,
        cycle_id=cycle_id,
        visual_hints=edge_hints(severity, in_cycle),
    )

"""Circular dependency detection.

Emits one issue per distinct cycle in the snapshot's cycle report.
"""

from __future__ import annotations

import logging

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.context import Snapshot
from knitcheck.core.symbols import Issue, IssueType, Severity, make_metadata

logger = logging.getLogger(__name__)

CYCLE_FIX = (
    "Break the cycle by depending on an interface, introducing a mediator "
    "component, or deferring one side with a factory or lazy dependency"
)


def detect_circular_dependencies(snapshot: Snapshot, settings: AnalysisSettings) -> list[Issue]:
    """Return a CIRCULAR_DEPENDENCY issue for every cycle found."""
    labels = snapshot.labels
    issues: list[Issue] = []

    for cycle in snapshot.cycle_report.cycles:
        issues.append(
            Issue(
                type=IssueType.CIRCULAR_DEPENDENCY,
                severity=Severity.ERROR,
                message=f"Circular dependency detected: {cycle.display_path(labels)}",
                component_names=cycle.path,
                suggested_fix=CYCLE_FIX,
                metadata=make_metadata(
                    cyclePath=list(cycle.path),
                    cycleLength=cycle.length,
                ),
                confidence_score=settings.cycle_confidence,
            )
        )

    logger.debug("Circular detector: %d issues", len(issues))
    return issues

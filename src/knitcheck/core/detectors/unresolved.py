"""Unresolved dependency detection."""

from __future__ import annotations

import logging

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.context import Snapshot
from knitcheck.core.detectors.common import describe_binding, dependency_defect_key
from knitcheck.core.providers import normalize_type
from knitcheck.core.symbols import Issue, IssueType, Severity, make_metadata

logger = logging.getLogger(__name__)


def detect_unresolved_dependencies(
    snapshot: Snapshot, settings: AnalysisSettings
) -> list[Issue]:
    """Return one issue per dependency whose key matches no active provider."""
    issues: list[Issue] = []

    for component in snapshot.components:
        for dependency in component.dependencies:
            if snapshot.providers.lookup(dependency.target_type, dependency.qualifier):
                continue
            target = normalize_type(dependency.target_type)
            binding = describe_binding(target, dependency.qualifier)
            issues.append(
                Issue(
                    type=IssueType.UNRESOLVED_DEPENDENCY,
                    severity=Severity.ERROR,
                    message=(
                        f"Unresolved dependency: {component.class_name}.{dependency.property_name} "
                        f"requires {binding} but no provider was found"
                    ),
                    component_names=(component.id,),
                    suggested_fix=f"Add a provider for {binding} or correct the dependency type",
                    source_location=component.source_file,
                    metadata=make_metadata(
                        defectKey=dependency_defect_key(component.id, dependency.property_name),
                        propertyName=dependency.property_name,
                        targetType=target,
                        qualifier=dependency.qualifier,
                    ),
                )
            )

    logger.debug("Unresolved detector: %d issues", len(issues))
    return issues

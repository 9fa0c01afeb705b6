"""Named qualifier mismatch detection.

A named dependency whose qualifier matches no provider, while providers of
the same type exist under other qualifiers, almost always means a typo or a
renamed qualifier.
"""

from __future__ import annotations

import logging

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.context import Snapshot
from knitcheck.core.detectors.common import dependency_defect_key
from knitcheck.core.providers import normalize_type
from knitcheck.core.symbols import Issue, IssueType, Severity, make_metadata

logger = logging.getLogger(__name__)


def detect_qualifier_mismatches(snapshot: Snapshot, settings: AnalysisSettings) -> list[Issue]:
    issues: list[Issue] = []

    for component in snapshot.components:
        for dependency in component.dependencies:
            qualifier = dependency.qualifier
            if qualifier is None:
                continue
            if snapshot.providers.lookup(dependency.target_type, qualifier):
                continue
            available = [
                q for q in snapshot.providers.qualifiers_for(dependency.target_type)
                if q != qualifier
            ]
            if not available:
                continue

            target = normalize_type(dependency.target_type)
            quoted = ", ".join(f"'{q}'" for q in available)
            issues.append(
                Issue(
                    type=IssueType.NAMED_QUALIFIER_MISMATCH,
                    severity=Severity.ERROR,
                    message=(
                        f"{component.class_name}.{dependency.property_name} requests "
                        f"@Named('{qualifier}') {target}, but only {quoted} are provided"
                    ),
                    component_names=(component.id,),
                    suggested_fix=f"Use one of the available qualifiers: {quoted}",
                    source_location=component.source_file,
                    metadata=make_metadata(
                        defectKey=dependency_defect_key(component.id, dependency.property_name),
                        targetType=target,
                        requestedQualifier=qualifier,
                        availableQualifiers=available,
                    ),
                )
            )

    logger.debug("Qualifier detector: %d issues", len(issues))
    return issues

"""Singleton violation detection.

Two checks:

* **duplicate**: two or more active singleton providers are bound to the
  same ``(type, qualifier)`` key, so the "single" instance is not single.
* **scope** (optional): a dependency declared singleton is satisfied only
  by non-singleton providers.  Reported as a warning.
"""

from __future__ import annotations

import logging

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.context import Snapshot
from knitcheck.core.detectors.common import (
    describe_binding,
    dependency_defect_key,
    distinct,
    provider_defect_key,
)
from knitcheck.core.providers import normalize_type
from knitcheck.core.symbols import Issue, IssueType, Severity, make_metadata

logger = logging.getLogger(__name__)

VARIANT_DUPLICATE = "duplicate"
VARIANT_SCOPE = "scope"


def _duplicate_singletons(snapshot: Snapshot) -> list[Issue]:
    issues: list[Issue] = []
    for (type_name, qualifier), entries in snapshot.providers.explicit_groups():
        singletons = [
            e for e in entries if e.provider.is_singleton and not e.provider.is_collection
        ]
        if len(singletons) < 2:
            continue

        binding = describe_binding(type_name, qualifier)
        provider_ids = [e.provider_id for e in singletons]
        issues.append(
            Issue(
                type=IssueType.SINGLETON_VIOLATION,
                severity=Severity.ERROR,
                message=(
                    f"Singleton violation: {len(singletons)} singleton providers "
                    f"for {binding} ({', '.join(provider_ids)})"
                ),
                component_names=distinct(e.component_id for e in singletons),
                suggested_fix=f"Keep a single singleton provider for {binding}",
                metadata=make_metadata(
                    defectKey=provider_defect_key(type_name, qualifier),
                    variant=VARIANT_DUPLICATE,
                    providedType=type_name,
                    qualifier=qualifier,
                    providers=provider_ids,
                ),
            )
        )
    return issues


def _scope_mismatches(snapshot: Snapshot) -> list[Issue]:
    issues: list[Issue] = []
    for component in snapshot.components:
        for dependency in component.dependencies:
            if not dependency.is_singleton:
                continue
            matches = snapshot.providers.lookup(dependency.target_type, dependency.qualifier)
            if not matches or any(e.provider.is_singleton for e in matches):
                continue

            target = normalize_type(dependency.target_type)
            binding = describe_binding(target, dependency.qualifier)
            issues.append(
                Issue(
                    type=IssueType.SINGLETON_VIOLATION,
                    severity=Severity.WARNING,
                    message=(
                        f"{component.class_name}.{dependency.property_name} expects a singleton "
                        f"{binding} but every provider creates new instances"
                    ),
                    component_names=(component.id,),
                    suggested_fix=f"Mark the provider of {binding} as @Singleton",
                    source_location=component.source_file,
                    metadata=make_metadata(
                        defectKey=dependency_defect_key(component.id, dependency.property_name),
                        variant=VARIANT_SCOPE,
                        targetType=target,
                        qualifier=dependency.qualifier,
                        propertyName=dependency.property_name,
                    ),
                )
            )
    return issues


def detect_singleton_violations(snapshot: Snapshot, settings: AnalysisSettings) -> list[Issue]:
    issues = _duplicate_singletons(snapshot)
    if settings.check_singleton_scope:
        issues.extend(_scope_mismatches(snapshot))
    logger.debug("Singleton detector: %d issues", len(issues))
    return issues

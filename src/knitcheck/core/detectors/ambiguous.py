"""Ambiguous provider detection.

Two or more active, non-collection providers bound to the same
``(type, qualifier)`` key make injection of that key ambiguous.
Multibinding contributions (into set, list or map) are expected to share a
key and never count.  Implicit constructor providers are ignored.
"""

from __future__ import annotations

import logging

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.context import Snapshot
from knitcheck.core.detectors.common import describe_binding, distinct, provider_defect_key
from knitcheck.core.symbols import Issue, IssueType, Severity, make_metadata

logger = logging.getLogger(__name__)


def detect_ambiguous_providers(snapshot: Snapshot, settings: AnalysisSettings) -> list[Issue]:
    issues: list[Issue] = []

    for (type_name, qualifier), entries in snapshot.providers.explicit_groups():
        competing = [e for e in entries if not e.provider.is_collection]
        if len(competing) < 2:
            continue

        binding = describe_binding(type_name, qualifier)
        provider_ids = [e.provider_id for e in competing]
        issues.append(
            Issue(
                type=IssueType.AMBIGUOUS_PROVIDER,
                severity=Severity.ERROR,
                message=(
                    f"Ambiguous providers for {binding}: "
                    f"{len(competing)} providers found ({', '.join(provider_ids)})"
                ),
                component_names=distinct(e.component_id for e in competing),
                suggested_fix=(
                    f"Add distinct @Named qualifiers to the providers of {binding}, "
                    "or remove the redundant ones"
                ),
                metadata=make_metadata(
                    defectKey=provider_defect_key(type_name, qualifier),
                    providedType=type_name,
                    qualifier=qualifier,
                    providerCount=len(competing),
                    providers=provider_ids,
                ),
            )
        )

    logger.debug("Ambiguous detector: %d issues", len(issues))
    return issues

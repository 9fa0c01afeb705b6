"""Issue validation for knitcheck.

Re-checks every reconciled issue against the snapshot and replaces its
confidence score with one derived from that cross-check, then classifies
the issue as a true positive, a false positive or undecided using the
configured thresholds.  A fault while checking one issue marks only that
issue as ``VALIDATION_FAILED``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.context import Snapshot
from knitcheck.core.detectors.singleton import VARIANT_SCOPE
from knitcheck.core.symbols import Issue, IssueType, ValidationStatus

logger = logging.getLogger(__name__)


def _circular_confidence(issue: Issue, snapshot: Snapshot) -> float:
    path = issue.meta_list("cyclePath") or issue.component_names
    count = len(path)
    if count == 0:
        return 0.0
    present = sum(
        1 for i in range(count) if snapshot.graph.has_edge(path[i], path[(i + 1) % count])
    )
    if present == count:
        return 1.0
    return 0.3 * (present / count)


def _binding(issue: Issue, type_key: str) -> tuple[str, str | None]:
    type_name = issue.meta_str(type_key)
    if type_name is None:
        raise ValueError(f"{issue.type.value} issue has no '{type_key}' metadata")
    return type_name, issue.meta_str("qualifier")


def _ambiguous_confidence(issue: Issue, snapshot: Snapshot) -> float:
    type_name, qualifier = _binding(issue, "providedType")
    competing = [
        e for e in snapshot.providers.lookup(type_name, qualifier)
        if not e.implicit and not e.provider.is_collection
    ]
    n = len(competing)
    if n >= 2:
        return min(1.0, 0.7 + 0.1 * n)
    if n == 1:
        return 0.15
    return 0.1


def _unresolved_confidence(issue: Issue, snapshot: Snapshot) -> float:
    type_name, qualifier = _binding(issue, "targetType")
    return 0.2 if snapshot.providers.lookup(type_name, qualifier) else 0.9


def _singleton_confidence(issue: Issue, snapshot: Snapshot) -> float:
    if issue.meta_str("variant") == VARIANT_SCOPE:
        type_name, qualifier = _binding(issue, "targetType")
        matches = snapshot.providers.lookup(type_name, qualifier)
        if matches and not any(e.provider.is_singleton for e in matches):
            return 0.75
        return 0.2

    type_name, qualifier = _binding(issue, "providedType")
    singletons = [
        e for e in snapshot.providers.lookup(type_name, qualifier)
        if not e.implicit and e.provider.is_singleton and not e.provider.is_collection
    ]
    return 0.9 if len(singletons) >= 2 else 0.2


def _qualifier_confidence(issue: Issue, snapshot: Snapshot) -> float:
    type_name = issue.meta_str("targetType")
    requested = issue.meta_str("requestedQualifier")
    if type_name is None or requested is None:
        raise ValueError("qualifier mismatch issue lacks targetType/requestedQualifier metadata")
    if snapshot.providers.lookup(type_name, requested):
        return 0.25
    others = [q for q in snapshot.providers.qualifiers_for(type_name) if q != requested]
    return 0.8 if others else 0.5


def _annotation_confidence(issue: Issue, snapshot: Snapshot) -> float:
    component = snapshot.component(issue.component_names[0])
    if component is None:
        return 0.1
    if component.dependencies or component.providers:
        return 0.7
    return 0.25


_SCORERS: dict[IssueType, Callable[[Issue, Snapshot], float]] = {
    IssueType.CIRCULAR_DEPENDENCY: _circular_confidence,
    IssueType.AMBIGUOUS_PROVIDER: _ambiguous_confidence,
    IssueType.UNRESOLVED_DEPENDENCY: _unresolved_confidence,
    IssueType.SINGLETON_VIOLATION: _singleton_confidence,
    IssueType.NAMED_QUALIFIER_MISMATCH: _qualifier_confidence,
    IssueType.MISSING_COMPONENT_ANNOTATION: _annotation_confidence,
}


def classify(confidence: float, settings: AnalysisSettings) -> ValidationStatus:
    """Map a confidence score to a validation status using the thresholds."""
    if confidence >= settings.true_positive_threshold:
        return ValidationStatus.VALIDATED_TRUE_POSITIVE
    if confidence <= settings.false_positive_threshold:
        return ValidationStatus.VALIDATED_FALSE_POSITIVE
    return ValidationStatus.NOT_VALIDATED


class Validator:
    """Attaches confidence scores and validation statuses to issues."""

    def __init__(self, snapshot: Snapshot, settings: AnalysisSettings | None = None) -> None:
        self._snapshot = snapshot
        self._settings = settings or AnalysisSettings()
        self.failures: list[tuple[Issue, str]] = []

    def validate_issue(self, issue: Issue) -> Issue:
        """Return a copy of *issue* with recomputed confidence and status."""
        score = _SCORERS[issue.type](issue, self._snapshot)
        confidence = min(1.0, max(0.0, score))
        return replace(
            issue,
            confidence_score=confidence,
            validation_status=classify(confidence, self._settings),
        )

    def validate(self, issues: Sequence[Issue]) -> list[Issue]:
        """Validate *issues*, preserving order.

        When validation is disabled the issues are returned unchanged.
        """
        if not self._settings.validation_enabled:
            return list(issues)

        validated: list[Issue] = []
        for issue in issues:
            try:
                validated.append(self.validate_issue(issue))
            except Exception as e:
                logger.warning(
                    "Validation failed for %s on %s: %s",
                    issue.type.value,
                    issue.component_name,
                    e,
                )
                self.failures.append((issue, str(e)))
                validated.append(
                    replace(issue, validation_status=ValidationStatus.VALIDATION_FAILED)
                )

        true_positives = sum(
            1 for i in validated if i.validation_status == ValidationStatus.VALIDATED_TRUE_POSITIVE
        )
        logger.info(
            "Validated %d issues: %d true positives, %d failures",
            len(validated),
            true_positives,
            len(self.failures),
        )
        return validated

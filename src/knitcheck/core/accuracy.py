"""Accuracy metrics for knitcheck.

Scores a validated issue list against an expected issue count: precision,
recall, F1, false-positive rate and the statistical error between what was
reported and what was expected.  Everything here is a pure function.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from knitcheck.core.symbols import Component, Issue, IssueType, ValidationStatus

TREND_TOLERANCE = 0.05


@dataclass(frozen=True)
class TypeBreakdown:
    """Validation counts for one issue type."""

    detected: int
    validated: int
    false_positives: int
    average_confidence: float

    @property
    def accuracy(self) -> float:
        if self.detected == 0:
            return 1.0
        return (self.detected - self.false_positives) / self.detected


@dataclass(frozen=True)
class AccuracyMetrics:
    total_reported: int
    expected_issues: int
    true_positives: int
    false_positives: int
    false_negatives: int
    undecided: int
    failed: int
    precision: float
    recall: float
    f1_score: float
    false_positive_rate: float
    statistical_error: float
    average_confidence: float
    by_type: dict[IssueType, TypeBreakdown] = field(default_factory=dict)

    @property
    def total_validated(self) -> int:
        return self.true_positives + self.false_positives

    def to_dict(self) -> dict[str, object]:
        return {
            "totalReported": self.total_reported,
            "expectedIssues": self.expected_issues,
            "truePositives": self.true_positives,
            "falsePositives": self.false_positives,
            "falseNegatives": self.false_negatives,
            "precision": self.precision,
            "recall": self.recall,
            "f1Score": self.f1_score,
            "falsePositiveRate": self.false_positive_rate,
            "statisticalError": self.statistical_error,
            "averageConfidence": self.average_confidence,
            "byType": {
                t.value: {
                    "detected": b.detected,
                    "validated": b.validated,
                    "falsePositives": b.false_positives,
                    "averageConfidence": b.average_confidence,
                }
                for t, b in self.by_type.items()
            },
        }


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 1.0


def compute_accuracy(issues: Sequence[Issue], expected_issues: int) -> AccuracyMetrics:
    """Score *issues* against *expected_issues*.

    Precision and recall are 1.0 when their denominators are zero (nothing
    validated, nothing expected and nothing found).
    """
    expected = max(0, expected_issues)
    statuses = [i.validation_status for i in issues]
    tp = statuses.count(ValidationStatus.VALIDATED_TRUE_POSITIVE)
    fp = statuses.count(ValidationStatus.VALIDATED_FALSE_POSITIVE)
    fn = max(0, expected - tp)

    precision = _ratio(tp, tp + fp)
    recall = _ratio(tp, tp + fn)
    f1 = 2 * precision * recall / (precision + recall) if precision + recall else 0.0
    reported = len(issues)

    grouped: dict[IssueType, list[Issue]] = defaultdict(list)
    for issue in issues:
        grouped[issue.type].append(issue)
    by_type = {
        issue_type: TypeBreakdown(
            detected=len(group),
            validated=sum(1 for i in group if i.validation_status != ValidationStatus.NOT_VALIDATED),
            false_positives=sum(
                1 for i in group if i.validation_status == ValidationStatus.VALIDATED_FALSE_POSITIVE
            ),
            average_confidence=sum(i.confidence_score for i in group) / len(group),
        )
        for issue_type, group in grouped.items()
    }

    return AccuracyMetrics(
        total_reported=reported,
        expected_issues=expected,
        true_positives=tp,
        false_positives=fp,
        false_negatives=fn,
        undecided=statuses.count(ValidationStatus.NOT_VALIDATED),
        failed=statuses.count(ValidationStatus.VALIDATION_FAILED),
        precision=precision,
        recall=recall,
        f1_score=f1,
        false_positive_rate=fp / reported if reported else 0.0,
        statistical_error=abs(reported - expected) / max(expected, 1),
        average_confidence=(
            sum(i.confidence_score for i in issues) / reported if reported else 0.0
        ),
        by_type=by_type,
    )


def estimate_expected_issues(components: Sequence[Component]) -> int:
    """Rough guess at how many issues a project of this shape usually has.

    Larger projects get a higher per-dependency issue rate and a complexity
    allowance for cycles; about 2% of providers are assumed faulty.
    """
    count = len(components)
    dependencies = sum(len(c.dependencies) for c in components)
    providers = sum(len(c.providers) for c in components)

    if count > 100:
        dependency_pct, complexity = 3, 3
    elif count > 50:
        dependency_pct, complexity = 2, 2
    elif count > 20:
        dependency_pct, complexity = 1, 1
    else:
        dependency_pct, complexity = 1, 0

    return dependencies * dependency_pct // 100 + providers * 2 // 100 + complexity


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def format_accuracy_report(metrics: AccuracyMetrics) -> str:
    """Render *metrics* as a plain-text report."""
    lines = [
        "=== Accuracy Report ===",
        "",
        "Overall:",
        f"  Precision:            {_pct(metrics.precision)}",
        f"  Recall:               {_pct(metrics.recall)}",
        f"  F1 score:             {_pct(metrics.f1_score)}",
        f"  Average confidence:   {_pct(metrics.average_confidence)}",
        "",
        "Detection:",
        f"  Issues reported:      {metrics.total_reported}",
        f"  Issues validated:     {metrics.total_validated}",
        f"  True positives:       {metrics.true_positives}",
        f"  False positives:      {metrics.false_positives}",
    ]
    if metrics.expected_issues > 0:
        lines.append(f"  Expected issues:      {metrics.expected_issues}")
        lines.append(f"  False negatives:      {metrics.false_negatives}")
    lines += [
        "",
        "Quality:",
        f"  False positive rate:  {_pct(metrics.false_positive_rate)}",
        f"  Statistical error:    {_pct(metrics.statistical_error)}",
    ]

    if metrics.by_type:
        lines += ["", "By issue type:"]
        for issue_type, breakdown in sorted(metrics.by_type.items(), key=lambda kv: kv[0].value):
            lines.append(
                f"  {issue_type.value}: {breakdown.detected} detected, "
                f"{breakdown.false_positives} false positives, "
                f"accuracy {_pct(breakdown.accuracy)}, "
                f"confidence {_pct(breakdown.average_confidence)}"
            )

    lines += ["", f"Verdict: {accuracy_verdict(metrics)}"]
    return "\n".join(lines)


def accuracy_verdict(metrics: AccuracyMetrics) -> str:
    overall = _ratio(metrics.true_positives, metrics.total_validated)
    fp_rate = metrics.false_positive_rate
    if overall >= 0.95 and fp_rate < 0.05:
        return "EXCELLENT"
    if overall >= 0.80 and fp_rate < 0.10:
        return "GOOD"
    if overall >= 0.60:
        return "NEEDS IMPROVEMENT"
    return "POOR"


class AccuracyTrend(Enum):
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    DECLINING = "DECLINING"
    NO_DATA = "NO_DATA"


@dataclass(frozen=True)
class AccuracyComparison:
    trend: AccuracyTrend
    precision_change: float = 0.0
    recall_change: float = 0.0
    false_positive_change: int = 0

    @property
    def has_comparison(self) -> bool:
        return self.trend != AccuracyTrend.NO_DATA


def compare_accuracy(
    current: AccuracyMetrics, previous: AccuracyMetrics | None
) -> AccuracyComparison:
    """Compare two runs.

    IMPROVING needs both precision and recall up by more than
    :data:`TREND_TOLERANCE`; either one dropping by more than that is
    DECLINING.
    """
    if previous is None:
        return AccuracyComparison(trend=AccuracyTrend.NO_DATA)

    precision_change = current.precision - previous.precision
    recall_change = current.recall - previous.recall
    if precision_change > TREND_TOLERANCE and recall_change > TREND_TOLERANCE:
        trend = AccuracyTrend.IMPROVING
    elif precision_change < -TREND_TOLERANCE or recall_change < -TREND_TOLERANCE:
        trend = AccuracyTrend.DECLINING
    else:
        trend = AccuracyTrend.STABLE

    return AccuracyComparison(
        trend=trend,
        precision_change=precision_change,
        recall_change=recall_change,
        false_positive_change=current.false_positives - previous.false_positives,
    )

"""Analysis pipeline for knitcheck.

Runs every stage over one component snapshot and returns an
:class:`AnalysisResult`.

Stages executed:
    1. Snapshot (provider index + dependency graph)
    2. Cycle analysis
    3. Issue detection (every registered detector, isolated)
    4. Reconciliation
    5. Validation
    6. Accuracy (when an expected count is given or estimation is enabled)
    7. Export
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.accuracy import AccuracyMetrics, compute_accuracy, estimate_expected_issues
from knitcheck.core.context import (
    AnalysisContext,
    Diagnostic,
    DiagnosticLevel,
    Snapshot,
    build_snapshot,
)
from knitcheck.core.detectors import DETECTORS
from knitcheck.core.export.exporter import ExportDocument, export_document
from knitcheck.core.graph.cycles import CycleAnalyzer, CycleReport
from knitcheck.core.graph.graph import DependencyGraph
from knitcheck.core.reconcile import Reconciler
from knitcheck.core.symbols import Component, Issue
from knitcheck.core.validation import Validator

logger = logging.getLogger(__name__)


class AnalysisStatus(Enum):
    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"
    FATAL = "FATAL"


@dataclass
class AnalysisResult:
    """Outcome of one :func:`analyze` call.

    ``document`` is ``None`` when the run was FATAL.
    """

    status: AnalysisStatus = AnalysisStatus.SUCCESS
    diagnostics: list[Diagnostic] = field(default_factory=list)
    document: ExportDocument | None = None
    issues: list[Issue] = field(default_factory=list)
    graph: DependencyGraph = field(default_factory=DependencyGraph)
    cycle_report: CycleReport = field(default_factory=CycleReport)
    accuracy: AccuracyMetrics | None = None
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        return sum(self.timings.values())


class _FatalStage(Exception):
    """Raised inside :func:`analyze` to abort after a fatal diagnostic."""


def _fatal(ctx: AnalysisContext, stage: str, error: Exception) -> _FatalStage:
    ctx.add_diagnostic(stage, DiagnosticLevel.ERROR, f"{type(error).__name__}: {error}")
    return _FatalStage(stage)


def _record_snapshot_diagnostics(ctx: AnalysisContext, snapshot: Snapshot) -> None:
    for duplicate in snapshot.duplicate_ids:
        ctx.add_diagnostic(
            "graph", DiagnosticLevel.WARNING, f"Duplicate component id {duplicate}; kept the first"
        )
    for exclusion in snapshot.exclusions:
        level = DiagnosticLevel.WARNING if exclusion.inconsistent else DiagnosticLevel.INFO
        ctx.add_diagnostic(
            "providers",
            level,
            f"Excluded provider {exclusion.component_id}.{exclusion.method_name}: "
            f"{exclusion.reason}",
        )


def _detect(ctx: AnalysisContext, snapshot: Snapshot) -> list[Issue]:
    candidates: list[Issue] = []
    for name, detector in DETECTORS:
        try:
            found = detector(snapshot, ctx.settings)
        except Exception as e:
            # Isolated: the remaining detectors still run.
            ctx.add_diagnostic(
                "detection", DiagnosticLevel.ERROR, f"Detector '{name}' failed: {e}"
            )
            continue
        logger.debug("Detector %s produced %d candidates", name, len(found))
        candidates.extend(found)
    return candidates


def analyze(
    components: Sequence[Component] | None,
    settings: AnalysisSettings | None = None,
    *,
    project_name: str = "",
    knit_version: str | None = None,
    expected_issues: int | None = None,
    analysis_timestamp: int | None = None,
    progress_callback: Callable[[str, float], None] | None = None,
) -> AnalysisResult:
    """Analyse one component snapshot.

    Parameters
    ----------
    components:
        The ordered component records.  An empty list or ``None`` is valid
        and yields an empty, successful result.
    settings:
        Analysis settings; defaults apply when ``None``.
    project_name, knit_version:
        Copied into the export metadata.
    expected_issues:
        Expected issue count for accuracy scoring.  When ``None`` accuracy is
        computed only if ``settings.estimate_expected_issues`` is set.
    analysis_timestamp:
        Milliseconds since the epoch; the current time when ``None``.
    progress_callback:
        Optional ``(stage_name, progress)`` callback where *progress* is a
        float in ``[0.0, 1.0]``.

    Returns
    -------
    AnalysisResult
        Status, diagnostics, issues, graph, cycle report, accuracy, export
        document and per-stage timings.
    """
    components = components or ()
    ctx = AnalysisContext(settings=settings or AnalysisSettings())
    result = AnalysisResult(diagnostics=ctx.diagnostics, timings=ctx.timings)

    def report(stage: str, pct: float) -> None:
        if progress_callback is not None:
            progress_callback(stage, pct)

    try:
        report("Building graph", 0.0)
        with ctx.timed("graph"):
            try:
                snapshot = build_snapshot(components, ctx.settings)
            except Exception as e:
                raise _fatal(ctx, "graph", e) from e
        _record_snapshot_diagnostics(ctx, snapshot)
        result.graph = snapshot.graph
        report("Building graph", 1.0)

        report("Analyzing cycles", 0.0)
        with ctx.timed("cycles"):
            cycle_report = CycleAnalyzer(snapshot.graph).cycle_report()
        snapshot = replace(snapshot, cycle_report=cycle_report)
        result.cycle_report = cycle_report
        report("Analyzing cycles", 1.0)

        report("Detecting issues", 0.0)
        with ctx.timed("detection"):
            candidates = _detect(ctx, snapshot)
        report("Detecting issues", 1.0)

        report("Reconciling issues", 0.0)
        with ctx.timed("reconcile"):
            try:
                issues = Reconciler().reconcile(candidates)
            except Exception as e:
                raise _fatal(ctx, "reconcile", e) from e
        report("Reconciling issues", 1.0)

        report("Validating issues", 0.0)
        with ctx.timed("validation"):
            validator = Validator(snapshot, ctx.settings)
            issues = validator.validate(issues)
        for issue, reason in validator.failures:
            ctx.add_diagnostic(
                "validation",
                DiagnosticLevel.WARNING,
                f"Could not validate {issue.type.value} on {issue.component_name}: {reason}",
            )
        result.issues = issues
        report("Validating issues", 1.0)

        expected = expected_issues
        if expected is None and ctx.settings.estimate_expected_issues:
            expected = estimate_expected_issues(snapshot.components)
        if expected is not None:
            with ctx.timed("accuracy"):
                result.accuracy = compute_accuracy(issues, expected)

        report("Exporting", 0.0)
        timestamp = (
            analysis_timestamp if analysis_timestamp is not None else int(time.time() * 1000)
        )
        with ctx.timed("export"):
            try:
                result.document = export_document(
                    snapshot.graph,
                    issues,
                    cycle_report,
                    snapshot.components,
                    project_name=project_name,
                    analysis_timestamp=timestamp,
                    knit_version=knit_version,
                )
            except Exception as e:
                raise _fatal(ctx, "export", e) from e
        report("Exporting", 1.0)
    except _FatalStage as stage:
        logger.error("Analysis aborted during %s", stage)
        result.status = AnalysisStatus.FATAL
        result.document = None
        return result

    result.status = AnalysisStatus.PARTIAL if ctx.has_problems else AnalysisStatus.SUCCESS
    logger.info(
        "Analysis finished: %s, %d issues in %.3fs",
        result.status.value,
        len(result.issues),
        result.duration_seconds,
    )
    return result

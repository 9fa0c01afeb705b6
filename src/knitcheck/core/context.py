"""Per-run state for the knitcheck pipeline.

A :class:`Snapshot` holds everything derived from the input components that
later stages read: the provider index, the dependency graph and the cycle
report.  It is immutable and safe to hand to every detector.

An :class:`AnalysisContext` is the only mutable state of a run.  It collects
diagnostics and stage timings and is created fresh by each
:func:`~knitcheck.core.pipeline.analyze` call.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.graph.builder import build_graph
from knitcheck.core.graph.cycles import CycleReport
from knitcheck.core.graph.graph import DependencyGraph
from knitcheck.core.providers import ProviderExclusion, ProviderIndex, build_provider_index
from knitcheck.core.symbols import Component

logger = logging.getLogger(__name__)


class DiagnosticLevel(Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


_LOG_LEVELS: dict[DiagnosticLevel, int] = {
    DiagnosticLevel.INFO: logging.INFO,
    DiagnosticLevel.WARNING: logging.WARNING,
    DiagnosticLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Diagnostic:
    """A note about the analysis itself (not about the analysed wiring)."""

    stage: str
    level: DiagnosticLevel
    message: str


@dataclass(frozen=True)
class Snapshot:
    """Immutable inputs and derived structures for one analysis run."""

    components: tuple[Component, ...]
    graph: DependencyGraph
    providers: ProviderIndex
    cycle_report: CycleReport = field(default_factory=CycleReport)
    exclusions: tuple[ProviderExclusion, ...] = ()
    duplicate_ids: tuple[str, ...] = ()

    _by_id: dict[str, Component] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_id: dict[str, Component] = {}
        for component in self.components:
            by_id.setdefault(component.id, component)
        object.__setattr__(self, "_by_id", by_id)

    def component(self, component_id: str) -> Component | None:
        """Return the first component with *component_id*, if any."""
        return self._by_id.get(component_id)

    @property
    def labels(self) -> dict[str, str]:
        """Map of node id to display label."""
        return {node.id: node.label for node in self.graph.iter_nodes()}


def build_snapshot(
    components: Sequence[Component], settings: AnalysisSettings | None = None
) -> Snapshot:
    """Index providers and build the graph for *components*.

    Components sharing an id are collapsed to the first occurrence before
    indexing, so a duplicate cannot contribute providers.  The cycle report
    is left empty; the pipeline fills it in its own stage.
    """
    settings = settings or AnalysisSettings()
    unique: dict[str, Component] = {}
    for component in components:
        unique.setdefault(component.id, component)

    providers, exclusions = build_provider_index(unique.values(), settings)
    built = build_graph(components, providers)
    return Snapshot(
        components=tuple(unique.values()),
        graph=built.graph,
        providers=providers,
        exclusions=tuple(exclusions),
        duplicate_ids=tuple(built.duplicate_ids),
    )


@dataclass
class AnalysisContext:
    """Mutable bookkeeping for one run: settings, diagnostics, timings."""

    settings: AnalysisSettings = field(default_factory=AnalysisSettings)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    timings: dict[str, float] = field(default_factory=dict)

    def add_diagnostic(self, stage: str, level: DiagnosticLevel, message: str) -> Diagnostic:
        """Record a diagnostic and log it at the matching level."""
        diagnostic = Diagnostic(stage=stage, level=level, message=message)
        self.diagnostics.append(diagnostic)
        logger.log(_LOG_LEVELS[level], "[%s] %s", stage, message)
        return diagnostic

    @contextmanager
    def timed(self, stage: str) -> Iterator[None]:
        """Record the wall-clock duration of the enclosed block under *stage*."""
        start = time.monotonic()
        try:
            yield
        finally:
            self.timings[stage] = time.monotonic() - start

    def diagnostics_at(self, level: DiagnosticLevel) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.level == level]

    @property
    def has_problems(self) -> bool:
        """``True`` when any WARNING or ERROR diagnostic was recorded."""
        return any(d.level != DiagnosticLevel.INFO for d in self.diagnostics)

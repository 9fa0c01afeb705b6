"""Issues attached to components by extraction.

Extraction may already have flagged components (for example a class that
is injected but lacks its component annotation).  Those findings enter
reconciliation as ordinary candidates.
"""

from __future__ import annotations

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.context import Snapshot
from knitcheck.core.symbols import Issue


def collect_attached_issues(snapshot: Snapshot, settings: AnalysisSettings) -> list[Issue]:
    if not settings.include_component_issues:
        return []
    return [issue for component in snapshot.components for issue in component.issues]

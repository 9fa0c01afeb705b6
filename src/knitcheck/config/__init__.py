"""knitcheck configuration: analysis settings and their loading."""

from knitcheck.config.settings import (
    DEFAULT_INACTIVE_MARKERS,
    AnalysisSettings,
    load_settings,
    settings_from_mapping,
)

__all__ = [
    "DEFAULT_INACTIVE_MARKERS",
    "AnalysisSettings",
    "load_settings",
    "settings_from_mapping",
]

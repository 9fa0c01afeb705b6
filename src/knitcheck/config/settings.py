"""Analysis settings for knitcheck.

Settings live in a ``[tool.knitcheck]`` table of ``pyproject.toml`` or at the
top level of a standalone ``knitcheck.toml``.  Missing files yield defaults.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path

from knitcheck.core.errors import SettingsError

logger = logging.getLogger(__name__)

DEFAULT_INACTIVE_MARKERS: tuple[str, ...] = ("commented", "disabled", "temp", "old", "test")

SETTINGS_FILENAME = "knitcheck.toml"


@dataclass(frozen=True)
class AnalysisSettings:
    """Tunable knobs for one analysis run."""

    validation_enabled: bool = True
    true_positive_threshold: float = 0.7
    false_positive_threshold: float = 0.3
    cycle_confidence: float = 0.9

    implicit_class_providers: bool = True
    inactive_provider_markers: tuple[str, ...] = DEFAULT_INACTIVE_MARKERS

    check_singleton_scope: bool = True
    include_component_issues: bool = True
    estimate_expected_issues: bool = False

    def __post_init__(self) -> None:
        for name in ("true_positive_threshold", "false_positive_threshold", "cycle_confidence"):
            object.__setattr__(self, name, _clamp(float(getattr(self, name))))
        if self.false_positive_threshold > self.true_positive_threshold:
            raise SettingsError(
                "false_positive_threshold must not exceed true_positive_threshold"
            )
        markers = self.inactive_provider_markers
        if isinstance(markers, str):
            markers = (markers,)
        object.__setattr__(
            self, "inactive_provider_markers", tuple(m.lower() for m in markers)
        )

    def with_overrides(self, **overrides: object) -> AnalysisSettings:
        """Return a copy with the non-``None`` *overrides* applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        _reject_unknown(changes)
        return replace(self, **changes)


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def _reject_unknown(values: dict[str, object]) -> None:
    known = {f.name for f in fields(AnalysisSettings)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise SettingsError(f"Unknown setting(s): {', '.join(unknown)}")


def settings_from_mapping(data: dict[str, object]) -> AnalysisSettings:
    """Build settings from a TOML table, accepting ``-`` or ``_`` in keys."""
    values = {key.replace("-", "_"): value for key, value in data.items()}
    _reject_unknown(values)
    if "inactive_provider_markers" in values:
        values["inactive_provider_markers"] = tuple(values["inactive_provider_markers"])  # type: ignore[arg-type]
    return AnalysisSettings(**values)  # type: ignore[arg-type]


def load_settings(path: Path | None = None) -> AnalysisSettings:
    """Load settings from *path*, or discover them in the working directory.

    *path* may be a ``pyproject.toml`` (the ``[tool.knitcheck]`` table is
    read), any other TOML file (read whole), or a directory to search for
    ``knitcheck.toml`` then ``pyproject.toml``.  Returns defaults when no
    file is found.

    Raises:
        SettingsError: if the file cannot be parsed or has unknown keys.
    """
    target = path if path is not None else Path.cwd()
    if target.is_dir():
        candidates = [target / SETTINGS_FILENAME, target / "pyproject.toml"]
        found = next((c for c in candidates if c.is_file()), None)
        if found is None:
            return AnalysisSettings()
        target = found
    elif not target.is_file():
        raise SettingsError(f"Settings file not found: {target}")

    try:
        with open(target, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise SettingsError(f"Could not read settings from {target}: {e}") from e

    if target.name == "pyproject.toml":
        data = data.get("tool", {}).get("knitcheck", {})

    logger.debug("Loaded settings from %s", target)
    return settings_from_mapping(data)

"""Helpers shared by the issue detectors."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.context import Snapshot
from knitcheck.core.symbols import Issue

Detector = Callable[[Snapshot, AnalysisSettings], list[Issue]]

DEFECT_KEY = "defectKey"


def provider_defect_key(type_name: str, qualifier: str | None) -> str:
    """Key identifying a defect in the bindings of ``(type_name, qualifier)``."""
    return f"provider:{type_name}|{qualifier or ''}"


def dependency_defect_key(component_id: str, property_name: str) -> str:
    """Key identifying a defect in one declared dependency."""
    return f"dependency:{component_id}#{property_name}"


def describe_binding(type_name: str, qualifier: str | None) -> str:
    """Render a binding key for messages, e.g. ``Repo @Named(primary)``."""
    if qualifier is None:
        return type_name
    return f"{type_name} @Named({qualifier})"


def distinct(values: Iterable[str]) -> tuple[str, ...]:
    """Deduplicate *values*, keeping first-seen order."""
    return tuple(dict.fromkeys(values))

"""Component snapshot loading.

Reads component records that an extractor already produced, as JSON with
camelCase field names.  The file holds either a list of components or an
object with a ``components`` list.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from knitcheck.core.errors import ComponentLoadError
from knitcheck.core.symbols import (
    Component,
    ComponentType,
    Dependency,
    Issue,
    IssueType,
    Provider,
    Severity,
    infer_component_type,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def _require_str(record: Mapping[str, Any], key: str, where: str) -> str:
    value = record.get(key)
    if not isinstance(value, str):
        raise ComponentLoadError(f"{where}: '{key}' must be a string")
    return value


def _optional_str(record: Mapping[str, Any], key: str) -> str | None:
    value = record.get(key)
    return value if isinstance(value, str) else None


def _flag(record: Mapping[str, Any], key: str) -> bool:
    return bool(record.get(key, False))


def _list(record: Mapping[str, Any], key: str, where: str) -> list[Any]:
    value = record.get(key, [])
    if not isinstance(value, list):
        raise ComponentLoadError(f"{where}: '{key}' must be a list")
    return value


def dependency_from_dict(record: Mapping[str, Any], where: str = "dependency") -> Dependency:
    return Dependency(
        property_name=_require_str(record, "propertyName", where),
        target_type=_require_str(record, "targetType", where),
        is_named=_flag(record, "isNamed"),
        named_qualifier=_optional_str(record, "namedQualifier"),
        is_factory=_flag(record, "isFactory"),
        is_loadable=_flag(record, "isLoadable"),
        is_singleton=_flag(record, "isSingleton"),
    )


def provider_from_dict(record: Mapping[str, Any], where: str = "provider") -> Provider:
    # Blank names are kept; the provider index reports them as inconsistent.
    return Provider(
        method_name=_require_str(record, "methodName", where),
        return_type=_require_str(record, "returnType", where),
        provides_type=_optional_str(record, "providesType"),
        is_named=_flag(record, "isNamed"),
        named_qualifier=_optional_str(record, "namedQualifier"),
        is_singleton=_flag(record, "isSingleton"),
        is_into_set=_flag(record, "isIntoSet"),
        is_into_list=_flag(record, "isIntoList"),
        is_into_map=_flag(record, "isIntoMap"),
    )


def _enum(enum_type: type[E], value: object, where: str) -> E:
    try:
        return enum_type(value)
    except ValueError as e:
        raise ComponentLoadError(f"{where}: unknown {enum_type.__name__} {value!r}") from e


def issue_from_dict(
    record: Mapping[str, Any], default_component: str, where: str = "issue"
) -> Issue:
    names = record.get("componentNames")
    if names is None:
        single = record.get("componentName")
        names = [n.strip() for n in single.split(",")] if isinstance(single, str) else []
    if not names:
        names = [default_component]
    issue_type = _enum(IssueType, record.get("type"), where)
    severity = _enum(Severity, record.get("severity", "WARNING"), where)
    message = _require_str(record, "message", where)
    try:
        confidence = float(record.get("confidenceScore", 1.0))
        return Issue(
            type=issue_type,
            severity=severity,
            message=message,
            component_names=tuple(str(n) for n in names),
            suggested_fix=_optional_str(record, "suggestedFix"),
            source_location=_optional_str(record, "sourceLocation"),
            confidence_score=confidence,
        )
    except (TypeError, ValueError) as e:
        raise ComponentLoadError(f"{where}: {e}") from e


def component_from_dict(record: Mapping[str, Any], index: int = 0) -> Component:
    """Decode one component record.

    ``type`` is optional; when absent it is inferred from what the
    component declares.
    """
    if not isinstance(record, Mapping):
        raise ComponentLoadError(f"component #{index}: expected an object")
    where = f"component #{index}"
    class_name = _require_str(record, "className", where)
    package_name = record.get("packageName") or ""
    if not isinstance(package_name, str):
        raise ComponentLoadError(f"{where}: 'packageName' must be a string")
    where = f"component {package_name + '.' if package_name else ''}{class_name}"

    dependencies = tuple(
        dependency_from_dict(d, f"{where} dependency #{i}")
        for i, d in enumerate(_list(record, "dependencies", where))
    )
    providers = tuple(
        provider_from_dict(p, f"{where} provider #{i}")
        for i, p in enumerate(_list(record, "providers", where))
    )
    component_id = f"{package_name}.{class_name}" if package_name else class_name
    issues = tuple(
        issue_from_dict(s, component_id, f"{where} issue #{i}")
        for i, s in enumerate(_list(record, "issues", where))
    )

    raw_type = record.get("type")
    component_type = (
        _enum(ComponentType, raw_type, where)
        if raw_type is not None
        else infer_component_type(dependencies, providers)
    )
    return Component(
        class_name=class_name,
        package_name=package_name,
        type=component_type,
        dependencies=dependencies,
        providers=providers,
        source_file=_optional_str(record, "sourceFile"),
        issues=issues,
    )


def components_from_data(data: object) -> list[Component]:
    """Decode already-parsed JSON data into components."""
    if isinstance(data, Mapping):
        data = data.get("components")
    if not isinstance(data, list):
        raise ComponentLoadError("expected a list of components or an object with 'components'")
    return [component_from_dict(record, i) for i, record in enumerate(data)]


def load_components(path: Path) -> list[Component]:
    """Load components from the JSON file at *path*.

    Raises:
        ComponentLoadError: if the file is missing, is not valid JSON, or
            holds a malformed record.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ComponentLoadError(f"Cannot read {path}: {e}") from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ComponentLoadError(f"{path} is not valid JSON: {e}") from e

    components = components_from_data(data)
    logger.info("Loaded %d components from %s", len(components), path)
    return components

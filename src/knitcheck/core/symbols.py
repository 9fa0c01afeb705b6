"""Symbol model for knitcheck.

Immutable records describing one extraction snapshot of a DI wiring
(components, their dependencies and providers) and the issues the engine
reports about it.  Everything here is a frozen dataclass; stages derive new
values with :func:`dataclasses.replace` instead of mutating.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class ComponentType(Enum):
    """Role a component plays in the wiring."""

    COMPONENT = "COMPONENT"
    PROVIDER = "PROVIDER"
    CONSUMER = "CONSUMER"
    COMPOSITE = "COMPOSITE"


class IssueType(Enum):
    """Kinds of structural defect the engine can report."""

    CIRCULAR_DEPENDENCY = "CIRCULAR_DEPENDENCY"
    AMBIGUOUS_PROVIDER = "AMBIGUOUS_PROVIDER"
    UNRESOLVED_DEPENDENCY = "UNRESOLVED_DEPENDENCY"
    SINGLETON_VIOLATION = "SINGLETON_VIOLATION"
    NAMED_QUALIFIER_MISMATCH = "NAMED_QUALIFIER_MISMATCH"
    MISSING_COMPONENT_ANNOTATION = "MISSING_COMPONENT_ANNOTATION"


class Severity(Enum):
    """Issue severity, most severe first."""

    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        """Sort key: ``0`` for ERROR, ``2`` for INFO."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
}


class ValidationStatus(Enum):
    """Outcome of cross-checking an issue against the snapshot."""

    NOT_VALIDATED = "NOT_VALIDATED"
    VALIDATED_TRUE_POSITIVE = "VALIDATED_TRUE_POSITIVE"
    VALIDATED_FALSE_POSITIVE = "VALIDATED_FALSE_POSITIVE"
    VALIDATION_FAILED = "VALIDATION_FAILED"


# ---------------------------------------------------------------------------
# Tagged metadata values
# ---------------------------------------------------------------------------


class MetaKind(Enum):
    """The value kinds metadata may carry."""

    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    STRING_LIST = "string_list"


MetaPayload = Union[str, int, float, bool, tuple[str, ...]]


@dataclass(frozen=True)
class MetaValue:
    """A tagged metadata value.

    Use :meth:`of` to build one from a plain Python value; the accessors
    raise :class:`TypeError` when the stored kind does not match.
    """

    kind: MetaKind
    value: MetaPayload

    @classmethod
    def of(cls, value: object) -> MetaValue:
        """Wrap *value*, inferring its kind."""
        if isinstance(value, MetaValue):
            return value
        # bool before number: bool is an int subclass.
        if isinstance(value, bool):
            return cls(MetaKind.BOOL, value)
        if isinstance(value, (int, float)):
            return cls(MetaKind.NUMBER, value)
        if isinstance(value, str):
            return cls(MetaKind.STRING, value)
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            return cls(MetaKind.STRING_LIST, tuple(value))
        raise TypeError(f"Unsupported metadata value: {value!r}")

    def as_str(self) -> str:
        self._expect(MetaKind.STRING)
        return self.value  # type: ignore[return-value]

    def as_number(self) -> float:
        self._expect(MetaKind.NUMBER)
        return self.value  # type: ignore[return-value]

    def as_bool(self) -> bool:
        self._expect(MetaKind.BOOL)
        return self.value  # type: ignore[return-value]

    def as_list(self) -> tuple[str, ...]:
        self._expect(MetaKind.STRING_LIST)
        return self.value  # type: ignore[return-value]

    def to_json(self) -> object:
        """Return a JSON-serialisable form of the payload."""
        if self.kind == MetaKind.STRING_LIST:
            return list(self.value)  # type: ignore[arg-type]
        return self.value

    def _expect(self, kind: MetaKind) -> None:
        if self.kind != kind:
            raise TypeError(f"Metadata value is {self.kind.value}, not {kind.value}")


def make_metadata(**values: object) -> dict[str, MetaValue]:
    """Build a metadata mapping, skipping ``None`` values."""
    return {key: MetaValue.of(value) for key, value in values.items() if value is not None}


# ---------------------------------------------------------------------------
# Wiring records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Dependency:
    """A declared requirement for an instance of *target_type*."""

    property_name: str
    target_type: str
    is_named: bool = False
    named_qualifier: str | None = None
    is_factory: bool = False
    is_loadable: bool = False
    is_singleton: bool = False

    @property
    def qualifier(self) -> str | None:
        """The qualifier used for lookup, ``None`` when unqualified."""
        return self.named_qualifier if self.is_named else None


@dataclass(frozen=True)
class Provider:
    """A method or constructor supplying an instance of some type."""

    method_name: str
    return_type: str
    provides_type: str | None = None
    is_named: bool = False
    named_qualifier: str | None = None
    is_singleton: bool = False
    is_into_set: bool = False
    is_into_list: bool = False
    is_into_map: bool = False

    @property
    def provided_type(self) -> str:
        """The type this provider is bound to (interface override first)."""
        return self.provides_type if self.provides_type is not None else self.return_type

    @property
    def qualifier(self) -> str | None:
        return self.named_qualifier if self.is_named else None

    @property
    def is_collection(self) -> bool:
        """``True`` for multibinding contributions (set, list or map)."""
        return self.is_into_set or self.is_into_list or self.is_into_map


@dataclass(frozen=True)
class Issue:
    """A structural defect reported by the engine.

    ``component_names`` lists every component the issue names; most issues
    name one, ambiguous-provider and cycle issues name several.  Metadata is
    excluded from equality so that re-running detection compares issues by
    their reported content.
    """

    type: IssueType
    severity: Severity
    message: str
    component_names: tuple[str, ...]
    suggested_fix: str | None = None
    source_location: str | None = None
    metadata: Mapping[str, MetaValue] = field(default_factory=dict, compare=False, hash=False)
    confidence_score: float = 1.0
    validation_status: ValidationStatus = ValidationStatus.NOT_VALIDATED

    def __post_init__(self) -> None:
        if isinstance(self.component_names, str):
            object.__setattr__(self, "component_names", (self.component_names,))
        elif not isinstance(self.component_names, tuple):
            object.__setattr__(self, "component_names", tuple(self.component_names))
        if not 0.0 <= self.confidence_score <= 1.0:
            raise ValueError(
                f"confidence_score must be within [0, 1], got {self.confidence_score}"
            )

    @property
    def component_name(self) -> str:
        """All named components joined with ``", "``."""
        return ", ".join(self.component_names)

    def meta_str(self, key: str, default: str | None = None) -> str | None:
        value = self.metadata.get(key)
        return value.as_str() if value is not None else default

    def meta_list(self, key: str) -> tuple[str, ...]:
        value = self.metadata.get(key)
        return value.as_list() if value is not None else ()


@dataclass(frozen=True)
class Component:
    """A DI participant: a consumer and/or provider of instances.

    The id is ``packageName.className`` (just the class name when the
    package is empty).
    """

    class_name: str
    package_name: str
    type: ComponentType
    dependencies: tuple[Dependency, ...] = ()
    providers: tuple[Provider, ...] = ()
    source_file: str | None = None
    issues: tuple[Issue, ...] = ()

    def __post_init__(self) -> None:
        for name in ("dependencies", "providers", "issues"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    @property
    def id(self) -> str:
        if self.package_name:
            return f"{self.package_name}.{self.class_name}"
        return self.class_name


def infer_component_type(
    dependencies: Iterable[Dependency], providers: Iterable[Provider]
) -> ComponentType:
    """Classify a component from what it declares.

    Both dependencies and providers make it COMPOSITE, only providers
    PROVIDER, only dependencies CONSUMER, neither a plain COMPONENT.
    """
    has_deps = any(True for _ in dependencies)
    has_providers = any(True for _ in providers)
    if has_deps and has_providers:
        return ComponentType.COMPOSITE
    if has_providers:
        return ComponentType.PROVIDER
    if has_deps:
        return ComponentType.CONSUMER
    return ComponentType.COMPONENT

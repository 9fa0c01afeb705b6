"""Provider index for knitcheck.

Indexes every active provider of a snapshot under its ``(type, qualifier)``
key so that graph construction, detectors and the validator all resolve
dependencies the same way.  Providers whose records are malformed or carry
an inactive marker are kept out of the index and reported as exclusions.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.symbols import Component, Provider

logger = logging.getLogger(__name__)

IMPLICIT_PROVIDER_METHOD = "<init>"

ProviderKey = tuple[str, str | None]


def normalize_type(type_name: str) -> str:
    """Strip generic arguments and nullability, and turn ``/`` into ``.``.

    ``com/example/Repo<User>?`` becomes ``com.example.Repo``.
    """
    base = type_name.split("<", 1)[0].strip().rstrip("?")
    return base.replace("/", ".")


def simple_name(type_name: str) -> str:
    """Return the part of *type_name* after the last ``.``."""
    return type_name.rsplit(".", 1)[-1]


def _is_qualified(type_name: str) -> bool:
    return "." in type_name


@dataclass(frozen=True)
class ProviderEntry:
    """An active provider together with the component that owns it.

    ``implicit`` marks a constructor provider synthesised for a component
    that declares no provider of its own type.
    """

    component_id: str
    provider: Provider
    implicit: bool = False

    @property
    def provided_type(self) -> str:
        return normalize_type(self.provider.provided_type)

    @property
    def qualifier(self) -> str | None:
        return self.provider.qualifier

    @property
    def key(self) -> ProviderKey:
        return (self.provided_type, self.qualifier)

    @property
    def provider_id(self) -> str:
        return f"{self.component_id}.{self.provider.method_name}"


@dataclass(frozen=True)
class ProviderExclusion:
    """A provider left out of the index, and why.

    ``inconsistent`` is ``True`` for malformed records and ``False`` for
    providers that merely look inactive.
    """

    component_id: str
    method_name: str
    reason: str
    inconsistent: bool


_WORD_RE = re.compile(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])")


def _method_words(method_name: str) -> set[str]:
    """Split a camelCase or snake_case name into lower-case words."""
    return {w.lower() for w in _WORD_RE.findall(method_name)}


def provider_exclusion_reason(
    provider: Provider, inactive_markers: Sequence[str] = ()
) -> tuple[str, bool] | None:
    """Return ``(reason, inconsistent)`` if *provider* must not be indexed.

    Returns ``None`` for an active, well-formed provider.
    """
    if not provider.method_name.strip() or not provider.return_type.strip():
        return "blank method name or return type", True
    if provider.is_named and not (provider.named_qualifier or "").strip():
        return "named provider without a qualifier", True
    if provider.provides_type is not None and not provider.provides_type.strip():
        return "blank provided type", True
    collection_flags = (provider.is_into_set, provider.is_into_list, provider.is_into_map)
    if sum(collection_flags) > 1:
        return "contributes to more than one collection kind", True

    words = _method_words(provider.method_name)
    for marker in inactive_markers:
        if marker and marker in words:
            return f"method name contains inactive marker '{marker}'", False
    return None


class ProviderIndex:
    """Lookup table of active providers by ``(type, qualifier)``.

    Lookups match the normalised type exactly; when nothing matches and
    either side is an unqualified (package-less) name, they fall back to
    matching simple names.
    """

    def __init__(self, entries: Iterable[ProviderEntry] = ()) -> None:
        self._entries: tuple[ProviderEntry, ...] = tuple(entries)
        self._by_key: dict[ProviderKey, list[ProviderEntry]] = defaultdict(list)
        self._by_simple_key: dict[ProviderKey, list[ProviderEntry]] = defaultdict(list)
        self._by_type: dict[str, list[ProviderEntry]] = defaultdict(list)
        self._by_simple_type: dict[str, list[ProviderEntry]] = defaultdict(list)

        for entry in self._entries:
            provided = entry.provided_type
            self._by_key[entry.key].append(entry)
            self._by_simple_key[(simple_name(provided), entry.qualifier)].append(entry)
            self._by_type[provided].append(entry)
            self._by_simple_type[simple_name(provided)].append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ProviderEntry]:
        return iter(self._entries)

    def lookup(self, type_name: str, qualifier: str | None = None) -> list[ProviderEntry]:
        """Return every entry bound to ``(type_name, qualifier)``."""
        target = normalize_type(type_name)
        exact = self._by_key.get((target, qualifier))
        if exact:
            return list(exact)
        candidates = self._by_simple_key.get((simple_name(target), qualifier), [])
        return _simple_name_matches(target, candidates)

    def entries_for_type(self, type_name: str) -> list[ProviderEntry]:
        """Return every entry bound to *type_name* under any qualifier."""
        target = normalize_type(type_name)
        exact = self._by_type.get(target)
        if exact:
            return list(exact)
        candidates = self._by_simple_type.get(simple_name(target), [])
        return _simple_name_matches(target, candidates)

    def qualifiers_for(self, type_name: str) -> list[str]:
        """Return the distinct non-empty qualifiers bound to *type_name*, in order."""
        seen: dict[str, None] = {}
        for entry in self.entries_for_type(type_name):
            if entry.qualifier is not None:
                seen.setdefault(entry.qualifier)
        return list(seen)

    def explicit_groups(self) -> Iterator[tuple[ProviderKey, list[ProviderEntry]]]:
        """Yield ``(key, entries)`` for declared providers, in first-seen key order."""
        for key, entries in self._by_key.items():
            declared = [e for e in entries if not e.implicit]
            if declared:
                yield key, declared


def _simple_name_matches(target: str, candidates: list[ProviderEntry]) -> list[ProviderEntry]:
    return [
        e for e in candidates
        if not _is_qualified(target) or not _is_qualified(e.provided_type)
    ]


def _provides_itself(component: Component, entries: list[ProviderEntry]) -> bool:
    own = {component.id, component.class_name}
    return any(e.provided_type in own for e in entries)


def build_provider_index(
    components: Iterable[Component],
    settings: AnalysisSettings | None = None,
) -> tuple[ProviderIndex, list[ProviderExclusion]]:
    """Index the active providers of *components*.

    Returns:
        The index and the list of providers that were excluded from it.
    """
    settings = settings or AnalysisSettings()
    entries: list[ProviderEntry] = []
    exclusions: list[ProviderExclusion] = []

    for component in components:
        own_entries: list[ProviderEntry] = []
        for provider in component.providers:
            excluded = provider_exclusion_reason(provider, settings.inactive_provider_markers)
            if excluded is not None:
                reason, inconsistent = excluded
                exclusions.append(
                    ProviderExclusion(component.id, provider.method_name, reason, inconsistent)
                )
                logger.debug(
                    "Excluded provider %s.%s: %s", component.id, provider.method_name, reason
                )
                continue
            own_entries.append(ProviderEntry(component.id, provider))

        if settings.implicit_class_providers and not _provides_itself(component, own_entries):
            own_entries.append(
                ProviderEntry(
                    component.id,
                    Provider(method_name=IMPLICIT_PROVIDER_METHOD, return_type=component.id),
                    implicit=True,
                )
            )
        entries.extend(own_entries)

    logger.debug("Indexed %d providers, excluded %d", len(entries), len(exclusions))
    return ProviderIndex(entries), exclusions

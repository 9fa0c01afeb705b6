"""Issue reconciliation for knitcheck.

Detectors run independently and may report the same defect more than once
or under more than one type.  The :class:`Reconciler` is the single place
that decides which findings survive:

1. Findings that share a defect key and name the same components are merged;
   the more specific diagnosis wins (a qualifier mismatch over an unresolved
   dependency, a singleton violation over an ambiguous provider).
2. Cycle findings are taken shortest first; a cycle sharing any component
   with an already kept cycle is dropped, but its other members stay
   reserved so no other finding is reported for them.
3. Exact duplicates collapse to one.
4. Remaining findings claim components in fixed type priority; a finding
   naming an already claimed component is dropped.

A reconciler records what it dropped in :attr:`Reconciler.discarded`; use a
fresh instance per run.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence

from knitcheck.core.detectors.common import DEFECT_KEY
from knitcheck.core.errors import ReconciliationError
from knitcheck.core.symbols import Issue, IssueType

logger = logging.getLogger(__name__)

TYPE_PRIORITY: dict[IssueType, int] = {
    IssueType.CIRCULAR_DEPENDENCY: 0,
    IssueType.UNRESOLVED_DEPENDENCY: 1,
    IssueType.AMBIGUOUS_PROVIDER: 2,
    IssueType.SINGLETON_VIOLATION: 3,
    IssueType.NAMED_QUALIFIER_MISMATCH: 4,
    IssueType.MISSING_COMPONENT_ANNOTATION: 5,
}

# winner -> loser, applied only within one defect.
SUPERSEDES: dict[IssueType, IssueType] = {
    IssueType.NAMED_QUALIFIER_MISMATCH: IssueType.UNRESOLVED_DEPENDENCY,
    IssueType.SINGLETON_VIOLATION: IssueType.AMBIGUOUS_PROVIDER,
}


def issue_sort_key(issue: Issue) -> tuple[int, int, tuple[str, ...]]:
    """Order by severity, then type priority, then component names."""
    return (issue.severity.rank, TYPE_PRIORITY[issue.type], issue.component_names)


class Reconciler:
    """Turns raw detector output into the final, non-overlapping issue list."""

    def __init__(self) -> None:
        self.discarded: list[tuple[Issue, str]] = []
        self._cycle_members: set[str] = set()

    def _discard(self, issue: Issue, reason: str) -> None:
        self.discarded.append((issue, reason))
        logger.debug("Discarded %s for %s: %s", issue.type.value, issue.component_name, reason)

    def reconcile(self, issues: Sequence[Issue]) -> list[Issue]:
        """Return the surviving issues sorted by :func:`issue_sort_key`.

        Raises:
            ReconciliationError: if an issue cannot be reconciled (for
                example it names no component or carries a malformed
                defect key).
        """
        self.discarded = []
        self._cycle_members = set()
        for issue in issues:
            if not issue.component_names:
                raise ReconciliationError(
                    f"{issue.type.value} issue names no component: {issue.message}"
                )

        try:
            merged = self._merge_same_defect(list(issues))
        except TypeError as e:
            raise ReconciliationError(f"Malformed {DEFECT_KEY} metadata: {e}") from e

        cycles = self._select_cycles([i for i in merged if i.type == IssueType.CIRCULAR_DEPENDENCY])
        others = [i for i in merged if i.type != IssueType.CIRCULAR_DEPENDENCY]
        unique = self._collapse_duplicates(cycles + others)
        survivors = self._claim_components(unique, reserved=self._cycle_members)

        logger.info(
            "Reconciled %d candidate issues into %d (%d discarded)",
            len(issues),
            len(survivors),
            len(self.discarded),
        )
        return sorted(survivors, key=issue_sort_key)

    def _merge_same_defect(self, issues: list[Issue]) -> list[Issue]:
        groups: dict[tuple[str, frozenset[str]], list[int]] = defaultdict(list)
        for index, issue in enumerate(issues):
            key = issue.meta_str(DEFECT_KEY)
            if key:
                groups[(key, frozenset(issue.component_names))].append(index)

        superseded: set[int] = set()
        for indices in groups.values():
            present = {issues[i].type for i in indices}
            for winner, loser in SUPERSEDES.items():
                if winner in present and loser in present:
                    superseded.update(i for i in indices if issues[i].type == loser)

        kept: list[Issue] = []
        for index, issue in enumerate(issues):
            if index in superseded:
                self._discard(issue, "superseded by a more specific diagnosis")
            else:
                kept.append(issue)
        return kept

    def _select_cycles(self, cycles: list[Issue]) -> list[Issue]:
        ordered = sorted(cycles, key=lambda i: (len(i.component_names), i.component_names))
        covered: set[str] = set()
        kept: list[Issue] = []
        overlapping: list[Issue] = []
        for issue in ordered:
            names = set(issue.component_names)
            if names & covered:
                overlapping.append(issue)
                self._discard(issue, "overlaps a shorter cycle")
                continue
            kept.append(issue)
            covered |= names
        # Members of dropped cycles stay reserved for the cycle finding.
        self._cycle_members = {
            n for issue in overlapping for n in issue.component_names
        } - covered
        return kept

    def _collapse_duplicates(self, issues: list[Issue]) -> list[Issue]:
        seen: set[tuple[IssueType, tuple[str, ...], str]] = set()
        unique: list[Issue] = []
        for issue in issues:
            key = (issue.type, issue.component_names, issue.message)
            if key in seen:
                self._discard(issue, "exact duplicate")
                continue
            seen.add(key)
            unique.append(issue)
        return unique

    def _claim_components(
        self, issues: list[Issue], reserved: set[str] | frozenset[str] = frozenset()
    ) -> list[Issue]:
        # sorted() is stable, so detector order breaks ties within a type.
        ordered = sorted(issues, key=lambda i: TYPE_PRIORITY[i.type])
        claimed: set[str] = set(reserved)
        survivors: list[Issue] = []
        for issue in ordered:
            taken = [n for n in issue.component_names if n in claimed]
            if taken:
                self._discard(issue, f"component already claimed: {', '.join(taken)}")
                continue
            survivors.append(issue)
            claimed.update(issue.component_names)
        return survivors

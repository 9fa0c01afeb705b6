"""Cycle analysis for knitcheck.

Finds dependency cycles with depth-first search and groups mutually
reachable components with Tarjan's strongly-connected-components algorithm.
Every traversal runs on an explicit work stack instead of the call stack, so
deep or degenerate chains cannot exhaust recursion limits, and visits nodes
in insertion order so results are reproducible.

A :class:`CycleAnalyzer` keeps per-run traversal state and caches; create one
per graph and do not share it between concurrent runs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from knitcheck.core.graph.graph import DependencyGraph
from knitcheck.core.graph.model import generate_edge_id

logger = logging.getLogger(__name__)

PATH_SEPARATOR = " → "


@dataclass(frozen=True)
class CycleInfo:
    """One closed walk through the graph.

    ``path`` holds the node ids in traversal order without repeating the
    first node; the closing edge runs from the last node back to the first.
    A self-loop has a single-element path.
    """

    path: tuple[str, ...]

    @property
    def length(self) -> int:
        return len(self.path)

    @property
    def node_set(self) -> frozenset[str]:
        return frozenset(self.path)

    @property
    def is_self_loop(self) -> bool:
        return len(self.path) == 1

    @property
    def edges(self) -> list[tuple[str, str]]:
        """Return the ``(source, target)`` pairs of the walk, closing edge included."""
        count = len(self.path)
        return [(self.path[i], self.path[(i + 1) % count]) for i in range(count)]

    @property
    def edge_ids(self) -> list[str]:
        return [generate_edge_id(source, target) for source, target in self.edges]

    def display_path(self, labels: Mapping[str, str] | None = None) -> str:
        """Render the walk as ``A → B → A``, using *labels* for node names if given."""
        names = [labels.get(n, n) if labels else n for n in self.path]
        return PATH_SEPARATOR.join([*names, names[0]])


@dataclass(frozen=True)
class CycleReport:
    """Aggregate view over every cycle and SCC in a graph."""

    cycles: tuple[CycleInfo, ...] = ()
    strongly_connected_components: tuple[tuple[str, ...], ...] = ()

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)

    @property
    def shortest(self) -> CycleInfo | None:
        return min(self.cycles, key=lambda c: c.length, default=None)

    @property
    def longest(self) -> CycleInfo | None:
        return max(self.cycles, key=lambda c: c.length, default=None)

    @property
    def cycle_node_ids(self) -> frozenset[str]:
        """Ids of every node touched by at least one cycle."""
        return frozenset(n for cycle in self.cycles for n in cycle.path)

    @property
    def nodes_in_cycles(self) -> int:
        return len(self.cycle_node_ids)


class CycleAnalyzer:
    """Cycle and SCC queries over one :class:`DependencyGraph`."""

    def __init__(self, graph: DependencyGraph) -> None:
        self._graph = graph
        self._cycles: list[CycleInfo] | None = None
        self._sccs: list[list[str]] | None = None

    def _node_ids(self) -> list[str]:
        return [node.id for node in self._graph.iter_nodes()]

    def _successors(self, node_id: str) -> Iterator[str]:
        return iter(self._graph.successors(node_id))

    def has_cycles(self) -> bool:
        """Return ``True`` if any back-edge targets a node on the recursion stack."""
        visited: set[str] = set()
        on_stack: set[str] = set()

        for start in self._node_ids():
            if start in visited:
                continue
            visited.add(start)
            on_stack.add(start)
            work: list[tuple[str, Iterator[str]]] = [(start, self._successors(start))]

            while work:
                node, successors = work[-1]
                descended = False
                for succ in successors:
                    if succ in on_stack:
                        return True
                    if succ not in visited:
                        visited.add(succ)
                        on_stack.add(succ)
                        work.append((succ, self._successors(succ)))
                        descended = True
                        break
                if not descended:
                    work.pop()
                    on_stack.discard(node)
        return False

    def find_cycles(self) -> list[CycleInfo]:
        """Enumerate cycles found by DFS back-edges.

        On a back-edge to a node X still on the stack, the stack slice from X
        to the top becomes one cycle.  Cycles with the same node set are
        reported once.  The result is cached.
        """
        if self._cycles is not None:
            return list(self._cycles)

        cycles: list[CycleInfo] = []
        seen: set[tuple[str, ...]] = set()
        visited: set[str] = set()

        for start in self._node_ids():
            if start in visited:
                continue
            visited.add(start)
            path: list[str] = [start]
            position: dict[str, int] = {start: 0}
            work: list[Iterator[str]] = [self._successors(start)]

            while work:
                node = path[-1]
                descended = False
                for succ in work[-1]:
                    if succ in position:
                        cycle = tuple(path[position[succ]:])
                        key = tuple(sorted(cycle))
                        if key not in seen:
                            seen.add(key)
                            cycles.append(CycleInfo(cycle))
                            logger.debug("Cycle found: %s", PATH_SEPARATOR.join(cycle))
                        continue
                    if succ not in visited:
                        visited.add(succ)
                        position[succ] = len(path)
                        path.append(succ)
                        work.append(self._successors(succ))
                        descended = True
                        break
                if not descended:
                    work.pop()
                    path.pop()
                    del position[node]

        self._cycles = cycles
        return list(cycles)

    def strongly_connected_components(self) -> list[list[str]]:
        """Return Tarjan SCCs of size > 1, plus single nodes with a self-loop.

        Nodes within a component appear in discovery order.  The result is
        cached.
        """
        if self._sccs is not None:
            return [list(c) for c in self._sccs]

        index_of: dict[str, int] = {}
        lowlink: dict[str, int] = {}
        stack: list[str] = []
        on_stack: set[str] = set()
        components: list[list[str]] = []
        counter = 0

        for start in self._node_ids():
            if start in index_of:
                continue
            index_of[start] = lowlink[start] = counter
            counter += 1
            stack.append(start)
            on_stack.add(start)
            work: list[tuple[str, Iterator[str]]] = [(start, self._successors(start))]

            while work:
                node, successors = work[-1]
                descended = False
                for succ in successors:
                    if succ not in index_of:
                        index_of[succ] = lowlink[succ] = counter
                        counter += 1
                        stack.append(succ)
                        on_stack.add(succ)
                        work.append((succ, self._successors(succ)))
                        descended = True
                        break
                    if succ in on_stack:
                        lowlink[node] = min(lowlink[node], index_of[succ])
                if descended:
                    continue

                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])

                if lowlink[node] == index_of[node]:
                    component: list[str] = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    component.reverse()
                    # A lone node only counts when it depends on itself.
                    if len(component) > 1 or self._graph.has_edge(node, node):
                        components.append(component)

        self._sccs = components
        return [list(c) for c in components]

    def cycle_report(self) -> CycleReport:
        """Bundle cycles and SCCs into a :class:`CycleReport`."""
        report = CycleReport(
            cycles=tuple(self.find_cycles()),
            strongly_connected_components=tuple(
                tuple(c) for c in self.strongly_connected_components()
            ),
        )
        logger.info(
            "Cycle analysis: %d cycles, %d SCCs, %d nodes involved",
            len(report.cycles),
            len(report.strongly_connected_components),
            report.nodes_in_cycles,
        )
        return report

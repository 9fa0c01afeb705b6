"""Tests for snapshots and the per-run analysis context."""

from __future__ import annotations

import logging

import pytest

from knitcheck.config.settings import AnalysisSettings
from knitcheck.core.context import AnalysisContext, DiagnosticLevel, build_snapshot
from knitcheck.core.symbols import Component, ComponentType, Dependency, Provider


def _make_component(
    name: str,
    dependencies: tuple[Dependency, ...] = (),
    providers: tuple[Provider, ...] = (),
    package: str = "com.app",
) -> Component:
    return Component(
        class_name=name,
        package_name=package,
        type=ComponentType.COMPOSITE,
        dependencies=dependencies,
        providers=providers,
    )


class TestBuildSnapshot:
    def test_empty(self) -> None:
        snapshot = build_snapshot([])
        assert snapshot.components == ()
        assert snapshot.graph.node_count == 0
        assert len(snapshot.providers) == 0
        assert not snapshot.cycle_report.has_cycles

    def test_component_lookup(self) -> None:
        snapshot = build_snapshot([_make_component("A"), _make_component("B")])
        found = snapshot.component("com.app.B")
        assert found is not None and found.class_name == "B"
        assert snapshot.component("com.app.Z") is None

    def test_labels(self) -> None:
        snapshot = build_snapshot([_make_component("A")])
        assert snapshot.labels == {"com.app.A": "A"}

    def test_duplicate_ids_keep_first(self) -> None:
        first = _make_component("A", providers=(Provider("repo", "Repo"),))
        second = _make_component("A", providers=(Provider("other", "Other"),))
        snapshot = build_snapshot([first, second])

        assert snapshot.components == (first,)
        assert snapshot.duplicate_ids == ("com.app.A",)
        assert snapshot.providers.lookup("Repo")
        assert snapshot.providers.lookup("Other") == []

    def test_exclusions_carried(self) -> None:
        component = _make_component("M", providers=(Provider("provideOldRepo", "Repo"),))
        snapshot = build_snapshot([component])
        assert len(snapshot.exclusions) == 1
        assert snapshot.exclusions[0].inconsistent is False

    def test_settings_disable_implicit_providers(self) -> None:
        settings = AnalysisSettings(implicit_class_providers=False)
        snapshot = build_snapshot(
            [_make_component("A", (Dependency("b", "B"),)), _make_component("B")], settings
        )
        assert snapshot.graph.edge_count == 0


class TestAnalysisContext:
    def test_diagnostics_are_recorded_and_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        ctx = AnalysisContext()
        with caplog.at_level(logging.WARNING, logger="knitcheck.core.context"):
            ctx.add_diagnostic("graph", DiagnosticLevel.WARNING, "duplicate id")
        assert ctx.diagnostics[0].stage == "graph"
        assert "[graph] duplicate id" in caplog.text

    def test_has_problems_ignores_info(self) -> None:
        ctx = AnalysisContext()
        ctx.add_diagnostic("providers", DiagnosticLevel.INFO, "skipped provider")
        assert not ctx.has_problems
        ctx.add_diagnostic("detection", DiagnosticLevel.ERROR, "boom")
        assert ctx.has_problems

    def test_diagnostics_at(self) -> None:
        ctx = AnalysisContext()
        ctx.add_diagnostic("a", DiagnosticLevel.INFO, "one")
        ctx.add_diagnostic("b", DiagnosticLevel.ERROR, "two")
        assert [d.message for d in ctx.diagnostics_at(DiagnosticLevel.ERROR)] == ["two"]

    def test_timed_records_even_on_error(self) -> None:
        ctx = AnalysisContext()
        with ctx.timed("ok"):
            pass
        with pytest.raises(RuntimeError):
            with ctx.timed("failing"):
                raise RuntimeError("stage failed")
        assert set(ctx.timings) == {"ok", "failing"}
        assert all(t >= 0.0 for t in ctx.timings.values())

    def test_contexts_are_independent(self) -> None:
        first = AnalysisContext()
        first.add_diagnostic("x", DiagnosticLevel.ERROR, "m")
        assert AnalysisContext().diagnostics == []

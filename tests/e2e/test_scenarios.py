"""End-to-end tests for the full knitcheck pipeline.

Each scenario writes a component snapshot as JSON, loads it the way the CLI
does, runs the whole pipeline and checks the reconciled issues together
with the exported document.
"""

from __future__ import annotations

import json
import random
import time
from pathlib import Path

import pytest

from knitcheck.core.loader import load_components
from knitcheck.core.pipeline import AnalysisResult, AnalysisStatus, analyze
from knitcheck.core.symbols import IssueType, Severity, ValidationStatus

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _dep(target: str, **flags: object) -> dict[str, object]:
    return {"propertyName": target[0].lower() + target[1:], "targetType": target, **flags}


def _provider(method: str, returns: str, **flags: object) -> dict[str, object]:
    return {"methodName": method, "returnType": returns, **flags}


def _component(
    name: str,
    dependencies: list[dict] | None = None,
    providers: list[dict] | None = None,
    package: str = "com.shop",
) -> dict[str, object]:
    return {
        "className": name,
        "packageName": package,
        "dependencies": dependencies or [],
        "providers": providers or [],
        "sourceFile": f"src/main/kotlin/{package.replace('.', '/')}/{name}.kt",
    }


def _run(tmp_path: Path, records: list[dict]) -> AnalysisResult:
    path = tmp_path / "components.json"
    path.write_text(json.dumps({"components": records}), encoding="utf-8")
    return analyze(load_components(path), project_name="shop", analysis_timestamp=0)


def _of_type(result: AnalysisResult, issue_type: IssueType) -> list:
    return [i for i in result.issues if i.type == issue_type]


# ---------------------------------------------------------------------------
# Scenario A: mutual dependency
# ---------------------------------------------------------------------------


class TestMutualDependency:
    @pytest.fixture()
    def result(self, tmp_path: Path) -> AnalysisResult:
        return _run(
            tmp_path,
            [
                _component("OrderService", [_dep("InventoryService")]),
                _component("InventoryService", [_dep("OrderService")]),
            ],
        )

    def test_single_cycle(self, result: AnalysisResult) -> None:
        cycles = _of_type(result, IssueType.CIRCULAR_DEPENDENCY)
        assert len(cycles) == 1
        assert cycles[0].severity == Severity.ERROR
        assert set(cycles[0].component_names) == {
            "com.shop.OrderService",
            "com.shop.InventoryService",
        }

    def test_no_unresolved(self, result: AnalysisResult) -> None:
        assert _of_type(result, IssueType.UNRESOLVED_DEPENDENCY) == []

    def test_cycle_confirmed(self, result: AnalysisResult) -> None:
        cycle = _of_type(result, IssueType.CIRCULAR_DEPENDENCY)[0]
        assert cycle.confidence_score == 1.0
        assert cycle.validation_status == ValidationStatus.VALIDATED_TRUE_POSITIVE

    def test_export_highlights_cycle(self, result: AnalysisResult) -> None:
        assert result.document is not None
        data = result.document.to_dict()
        assert len(data["errorContext"]["cycles"]) == 1
        assert all(n["errorHighlight"]["isPartOfCycle"] for n in data["graph"]["nodes"])
        assert all(e["errorHighlight"]["isPartOfCycle"] for e in data["graph"]["edges"])


# ---------------------------------------------------------------------------
# Scenario B: ambiguous providers
# ---------------------------------------------------------------------------


class TestAmbiguousProviders:
    def test_one_issue_names_all_four(self, tmp_path: Path) -> None:
        modules = [
            _component(name, providers=[_provider("provideRepository", "UserRepository")])
            for name in ("SqlModule", "CacheModule", "RemoteModule", "MemoryModule")
        ]
        result = _run(
            tmp_path, [*modules, _component("UserService", [_dep("UserRepository")])]
        )

        ambiguous = _of_type(result, IssueType.AMBIGUOUS_PROVIDER)
        assert len(ambiguous) == 1
        assert set(ambiguous[0].component_names) == {
            "com.shop.SqlModule",
            "com.shop.CacheModule",
            "com.shop.RemoteModule",
            "com.shop.MemoryModule",
        }
        assert _of_type(result, IssueType.UNRESOLVED_DEPENDENCY) == []

    def test_qualifiers_disambiguate(self, tmp_path: Path) -> None:
        modules = [
            _component(
                f"Module{q}",
                providers=[
                    _provider("provideRepository", "UserRepository", isNamed=True, namedQualifier=q)
                ],
            )
            for q in ("sql", "cache")
        ]
        result = _run(tmp_path, modules)
        assert _of_type(result, IssueType.AMBIGUOUS_PROVIDER) == []


# ---------------------------------------------------------------------------
# Scenario C: unresolved dependency
# ---------------------------------------------------------------------------


class TestUnresolvedDependency:
    def test_missing_gateway(self, tmp_path: Path) -> None:
        result = _run(tmp_path, [_component("PaymentService", [_dep("PaymentGateway")])])

        unresolved = _of_type(result, IssueType.UNRESOLVED_DEPENDENCY)
        assert len(unresolved) == 1
        assert unresolved[0].component_names == ("com.shop.PaymentService",)
        assert "PaymentGateway" in unresolved[0].message
        assert result.status == AnalysisStatus.SUCCESS

    def test_qualifier_typo(self, tmp_path: Path) -> None:
        result = _run(
            tmp_path,
            [
                _component(
                    "ReportService",
                    [_dep("Database", isNamed=True, namedQualifier="primay")],
                ),
                _component(
                    "DbModule",
                    providers=[
                        _provider("primaryDb", "Database", isNamed=True, namedQualifier="primary")
                    ],
                ),
            ],
        )
        assert [i.type for i in result.issues] == [IssueType.NAMED_QUALIFIER_MISMATCH]
        assert "primary" in (result.issues[0].suggested_fix or "")


# ---------------------------------------------------------------------------
# Scenario D: singleton conflict
# ---------------------------------------------------------------------------


class TestSingletonConflict:
    def test_two_singletons(self, tmp_path: Path) -> None:
        result = _run(
            tmp_path,
            [
                _component(
                    "AuthModule",
                    providers=[_provider("provideAuth", "AuthService", isSingleton=True)],
                ),
                _component(
                    "SessionModule",
                    providers=[_provider("provideAuthService", "AuthService", isSingleton=True)],
                ),
            ],
        )

        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.type == IssueType.SINGLETON_VIOLATION
        assert issue.severity == Severity.ERROR
        assert set(issue.component_names) == {"com.shop.AuthModule", "com.shop.SessionModule"}


# ---------------------------------------------------------------------------
# Scenario E: scale
# ---------------------------------------------------------------------------


def _large_wiring(count: int = 1000, cycle_rate: float = 0.1, seed: int = 7) -> list[dict]:
    """Chained components with back edges injected at *cycle_rate*.

    Every component depends on its successor, so each injected back edge
    closes a cycle.
    """
    rng = random.Random(seed)
    names = [f"Service{i:04d}" for i in range(count)]
    records = []
    for i, name in enumerate(names):
        deps = []
        for step in (1, 7):
            if i + step < count:
                deps.append(_dep(names[i + step]))
        if i > 0 and rng.random() < cycle_rate:
            deps.append(_dep(names[rng.randrange(max(0, i - 20), i)]))
        records.append(_component(name, deps))
    return records


class TestScale:
    @pytest.fixture()
    def records(self) -> list[dict]:
        return _large_wiring()

    def test_completes_quickly(self, tmp_path: Path, records: list[dict]) -> None:
        start = time.perf_counter()
        result = _run(tmp_path, records)
        elapsed = time.perf_counter() - start

        assert result.status == AnalysisStatus.SUCCESS
        assert result.graph.node_count == 1000
        assert result.cycle_report.has_cycles
        assert elapsed < 10.0

    def test_stable_across_runs(self, tmp_path: Path, records: list[dict]) -> None:
        first = _run(tmp_path, records)
        second = _run(tmp_path, records)
        assert first.issues == second.issues
        assert first.document is not None and second.document is not None
        assert first.document.to_dict() == second.document.to_dict()

    def test_components_owned_once(self, tmp_path: Path, records: list[dict]) -> None:
        result = _run(tmp_path, records)
        names = [n for issue in result.issues for n in issue.component_names]
        assert len(names) == len(set(names))
        assert _of_type(result, IssueType.CIRCULAR_DEPENDENCY)
        assert _of_type(result, IssueType.UNRESOLVED_DEPENDENCY) == []

"""Tests for the knitcheck CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from knitcheck import __version__
from knitcheck.cli.main import app

runner = CliRunner()


def _component(name: str, *targets: str, providers: list[dict] | None = None) -> dict:
    return {
        "className": name,
        "packageName": "com.app",
        "dependencies": [
            {"propertyName": t[0].lower() + t[1:], "targetType": t} for t in targets
        ],
        "providers": providers or [],
    }


@pytest.fixture()
def cyclic_input(tmp_path: Path) -> Path:
    path = tmp_path / "shop.json"
    path.write_text(
        json.dumps(
            [
                _component("UserService", "UserRepository"),
                _component("UserRepository", "UserService"),
                _component("Checkout", "PaymentGateway"),
            ]
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def clean_input(tmp_path: Path) -> Path:
    path = tmp_path / "clean.json"
    path.write_text(
        json.dumps({"components": [_component("Api", "Store"), _component("Store")]}),
        encoding="utf-8",
    )
    return path


class TestVersion:
    """Tests for the --version flag."""

    def test_version_long_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"knitcheck v{__version__}" in result.output

    def test_version_short_flag(self) -> None:
        result = runner.invoke(app, ["-v"])
        assert result.exit_code == 0
        assert f"knitcheck v{__version__}" in result.output


class TestHelp:
    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for cmd in ("analyze", "cycles"):
            assert cmd in result.output, f"Command '{cmd}' not found in --help output"


class TestAnalyze:
    def test_reports_issues(self, cyclic_input: Path) -> None:
        result = runner.invoke(app, ["analyze", str(cyclic_input)])
        assert result.exit_code == 0, result.output
        assert "Analysis complete" in result.output
        assert "Cycles:         1" in result.output
        assert "Errors:         2" in result.output

    def test_clean_input(self, clean_input: Path) -> None:
        result = runner.invoke(app, ["analyze", str(clean_input)])
        assert result.exit_code == 0, result.output
        assert "Errors:         0" in result.output
        assert "Issues" not in result.output

    def test_writes_export(self, cyclic_input: Path, tmp_path: Path) -> None:
        output = tmp_path / "graph.json"
        result = runner.invoke(
            app,
            ["analyze", str(cyclic_input), "-o", str(output), "--knit-version", "1.4.0"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["metadata"]["projectName"] == "shop"
        assert data["metadata"]["knitVersion"] == "1.4.0"
        assert data["errorContext"]["totalErrors"] == 2
        assert data["errorContext"]["cycles"][0]["id"] == "cycle_1"

    def test_project_name_option(self, cyclic_input: Path, tmp_path: Path) -> None:
        output = tmp_path / "graph.json"
        runner.invoke(
            app, ["analyze", str(cyclic_input), "-o", str(output), "--project-name", "Store"]
        )
        assert json.loads(output.read_text(encoding="utf-8"))["metadata"]["projectName"] == "Store"

    def test_accuracy_report(self, cyclic_input: Path) -> None:
        result = runner.invoke(app, ["analyze", str(cyclic_input), "--expected", "2"])
        assert result.exit_code == 0, result.output
        assert "=== Accuracy Report ===" in result.output
        assert "Verdict: EXCELLENT" in result.output

    def test_strict_exits_two_on_errors(self, cyclic_input: Path) -> None:
        result = runner.invoke(app, ["analyze", str(cyclic_input), "--strict"])
        assert result.exit_code == 2

    def test_strict_passes_clean_input(self, clean_input: Path) -> None:
        result = runner.invoke(app, ["analyze", str(clean_input), "--strict"])
        assert result.exit_code == 0

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["analyze", str(tmp_path / "absent.json")])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_malformed_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text('[{"packageName": "x"}]', encoding="utf-8")
        result = runner.invoke(app, ["analyze", str(path)])
        assert result.exit_code == 1

    def test_bad_settings_file(self, cyclic_input: Path, tmp_path: Path) -> None:
        config = tmp_path / "knitcheck.toml"
        config.write_text("no_such_setting = true\n", encoding="utf-8")
        result = runner.invoke(app, ["analyze", str(cyclic_input), "--config", str(config)])
        assert result.exit_code == 1
        assert "Unknown setting" in result.output

    def test_threshold_option(self, cyclic_input: Path, tmp_path: Path) -> None:
        output = tmp_path / "graph.json"
        result = runner.invoke(
            app, ["analyze", str(cyclic_input), "--threshold", "0.95", "-o", str(output)]
        )
        assert result.exit_code == 0, result.output
        details = json.loads(output.read_text(encoding="utf-8"))["errorContext"]["issueDetails"]
        # The unresolved finding scores 0.9, below the raised threshold.
        assert sorted(d["confidenceScore"] for d in details) == [0.9, 1.0]


class TestCycles:
    def test_lists_cycles(self, cyclic_input: Path) -> None:
        result = runner.invoke(app, ["cycles", str(cyclic_input)])
        assert result.exit_code == 0, result.output
        assert "1 cycle(s)" in result.output
        assert "UserService → UserRepository → UserService" in result.output

    def test_no_cycles(self, clean_input: Path) -> None:
        result = runner.invoke(app, ["cycles", str(clean_input)])
        assert result.exit_code == 0
        assert "No cycles found." in result.output

"""Tests for analysis settings (config/settings.py)."""

from __future__ import annotations

from pathlib import Path

import pytest

from knitcheck.config import DEFAULT_INACTIVE_MARKERS, AnalysisSettings, load_settings
from knitcheck.config.settings import settings_from_mapping
from knitcheck.core.errors import SettingsError


class TestAnalysisSettings:
    def test_defaults(self) -> None:
        settings = AnalysisSettings()
        assert settings.validation_enabled is True
        assert settings.true_positive_threshold == 0.7
        assert settings.false_positive_threshold == 0.3
        assert settings.cycle_confidence == 0.9
        assert settings.inactive_provider_markers == DEFAULT_INACTIVE_MARKERS

    def test_thresholds_are_clamped(self) -> None:
        settings = AnalysisSettings(true_positive_threshold=1.5, cycle_confidence=-1)
        assert settings.true_positive_threshold == 1.0
        assert settings.cycle_confidence == 0.0

    def test_inverted_thresholds_rejected(self) -> None:
        with pytest.raises(SettingsError):
            AnalysisSettings(true_positive_threshold=0.2, false_positive_threshold=0.5)

    def test_markers_lowercased(self) -> None:
        settings = AnalysisSettings(inactive_provider_markers=("Legacy", "OLD"))
        assert settings.inactive_provider_markers == ("legacy", "old")

    def test_with_overrides_ignores_none(self) -> None:
        settings = AnalysisSettings().with_overrides(
            true_positive_threshold=0.8, cycle_confidence=None
        )
        assert settings.true_positive_threshold == 0.8
        assert settings.cycle_confidence == 0.9

    def test_with_overrides_rejects_unknown(self) -> None:
        with pytest.raises(SettingsError):
            AnalysisSettings().with_overrides(bogus=1)


class TestSettingsFromMapping:
    def test_accepts_dashed_keys(self) -> None:
        settings = settings_from_mapping({"validation-enabled": False})
        assert settings.validation_enabled is False

    def test_markers_list(self) -> None:
        settings = settings_from_mapping({"inactive_provider_markers": ["legacy"]})
        assert settings.inactive_provider_markers == ("legacy",)

    def test_unknown_key(self) -> None:
        with pytest.raises(SettingsError, match="bogus"):
            settings_from_mapping({"bogus": True})


class TestLoadSettings:
    def test_missing_directory_config_gives_defaults(self, tmp_path: Path) -> None:
        assert load_settings(tmp_path) == AnalysisSettings()

    def test_standalone_file(self, tmp_path: Path) -> None:
        (tmp_path / "knitcheck.toml").write_text(
            "true_positive_threshold = 0.8\ncheck_singleton_scope = false\n", encoding="utf-8"
        )
        settings = load_settings(tmp_path)
        assert settings.true_positive_threshold == 0.8
        assert settings.check_singleton_scope is False

    def test_pyproject_table(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(
            "[project]\nname = 'x'\n\n[tool.knitcheck]\ncycle-confidence = 0.5\n",
            encoding="utf-8",
        )
        assert load_settings(tmp_path).cycle_confidence == 0.5

    def test_pyproject_without_table(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n", encoding="utf-8")
        assert load_settings(tmp_path) == AnalysisSettings()

    def test_standalone_file_wins_over_pyproject(self, tmp_path: Path) -> None:
        (tmp_path / "knitcheck.toml").write_text("cycle_confidence = 0.4\n", encoding="utf-8")
        (tmp_path / "pyproject.toml").write_text(
            "[tool.knitcheck]\ncycle_confidence = 0.6\n", encoding="utf-8"
        )
        assert load_settings(tmp_path).cycle_confidence == 0.4

    def test_explicit_file_path(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.toml"
        path.write_text("validation_enabled = false\n", encoding="utf-8")
        assert load_settings(path).validation_enabled is False

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SettingsError):
            load_settings(tmp_path / "nope.toml")

    def test_invalid_toml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "knitcheck.toml"
        path.write_text("this is = = not toml", encoding="utf-8")
        with pytest.raises(SettingsError):
            load_settings(path)

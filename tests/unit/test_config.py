"""Tests for import and project configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from storyloom.pipeline.config import (
    MB,
    ImportConfig,
    ProjectConfig,
    ProjectConfigError,
    RepairPolicy,
    create_default_config,
    load_project_config,
)

if TYPE_CHECKING:
    from pathlib import Path


class TestImportConfig:
    def test_defaults(self) -> None:
        cfg = ImportConfig()

        assert cfg.chapter_min_confidence == 0.3
        assert cfg.max_file_bytes == 50 * MB
        assert cfg.reading_wpm == 200
        assert cfg.max_characters == 50

    def test_from_dict_coerces_and_ignores_unknown(self) -> None:
        cfg = ImportConfig.from_dict({"reading_wpm": "250", "chapter_min_confidence": 1, "nope": 3})

        assert cfg.reading_wpm == 250
        assert cfg.chapter_min_confidence == 1.0
        assert isinstance(cfg.chapter_min_confidence, float)

    def test_from_dict_bad_value(self) -> None:
        with pytest.raises(ValueError):
            ImportConfig.from_dict({"reading_wpm": "fast"})

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STORYLOOM_MAX_FILE_MB", "1.5")
        monkeypatch.setenv("STORYLOOM_READING_WPM", "300")

        cfg = ImportConfig.from_dict({"reading_wpm": 100})

        assert cfg.max_file_bytes == int(1.5 * MB)
        assert cfg.reading_wpm == 300

    def test_frozen(self) -> None:
        cfg = ImportConfig()
        with pytest.raises(AttributeError):
            cfg.reading_wpm = 10  # type: ignore[misc]


class TestProjectConfig:
    def test_from_dict(self) -> None:
        cfg = ProjectConfig.from_dict(
            {
                "name": "novel",
                "import": {"preview_chars": 100},
                "repair": {"auto_repair": False, "raise_on_error": True},
            }
        )

        assert cfg.name == "novel"
        assert cfg.import_.preview_chars == 100
        assert cfg.repair == RepairPolicy(auto_repair=False, raise_on_error=True)

    def test_missing_sections_use_defaults(self) -> None:
        cfg = ProjectConfig.from_dict({"import": None})

        assert cfg.name == "unnamed"
        assert cfg.import_ == ImportConfig()
        assert cfg.repair == RepairPolicy()

    def test_create_default_config(self) -> None:
        assert create_default_config("draft").name == "draft"


class TestLoadProjectConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        project = tmp_path / "my-novel"
        project.mkdir()

        cfg = load_project_config(project)

        assert cfg.name == "my-novel"
        assert cfg.repair.auto_repair

    def test_loads_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "storyloom.yaml").write_text(
            "name: lighthouse\n"
            "import:\n"
            "  reading_wpm: 180\n"
            "  max_characters: 10\n"
            "repair:\n"
            "  raise_on_error: true\n",
            encoding="utf-8",
        )

        cfg = load_project_config(tmp_path)

        assert cfg.name == "lighthouse"
        assert cfg.import_.reading_wpm == 180
        assert cfg.import_.max_characters == 10
        assert cfg.repair.raise_on_error
        assert cfg.repair.auto_repair

    def test_empty_file(self, tmp_path: Path) -> None:
        (tmp_path / "storyloom.yaml").write_text("", encoding="utf-8")

        with pytest.raises(ProjectConfigError, match="Empty file"):
            load_project_config(tmp_path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "storyloom.yaml").write_text("name: [unclosed\n", encoding="utf-8")

        with pytest.raises(ProjectConfigError) as exc_info:
            load_project_config(tmp_path)

        assert exc_info.value.path == tmp_path / "storyloom.yaml"

    def test_bad_value_wrapped(self, tmp_path: Path) -> None:
        (tmp_path / "storyloom.yaml").write_text("import:\n  reading_wpm: fast\n", encoding="utf-8")

        with pytest.raises(ProjectConfigError, match="Failed to load config"):
            load_project_config(tmp_path)

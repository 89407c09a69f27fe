"""Import and repair configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from ruamel.yaml import YAML

CONFIG_FILENAME = "storyloom.yaml"

MB = 1024 * 1024


@dataclass(frozen=True)
class ImportConfig:
    """Tunable thresholds for the import pipeline.

    Every constant the detectors and checks use lives here so that tests and
    callers can tighten or relax them without touching detection code.

    Attributes:
        chapter_min_confidence: Chapter candidates below this are discarded.
        character_min_confidence: Characters below this are rejected.
        character_min_occurrences_strong: Minimum sightings for names seen in
            dialogue, attribution or action context.
        character_min_occurrences_weak: Minimum sightings for names only seen
            at sentence starts.
        max_characters: Cap on characters carried into the story graph.
        preview_chars: Length of the preview text.
        preview_chapter_titles: Number of chapter titles in the preview.
        reading_wpm: Words per minute for the reading-time estimate.
        max_file_bytes: Inputs above this size are rejected.
        large_file_bytes: Inputs above this size produce a warning.
        long_line_chars: Lines above this length produce a warning.
        corruption_ratio: Decoded text with a larger share of unprintable
            characters is rejected.
        replacement_error_ratio: Replacement-character share above which the
            text-integrity check fails.
        close_chapter_lines: Chapters closer than this produce an overlap warning.
    """

    chapter_min_confidence: float = 0.3
    character_min_confidence: float = 0.5
    character_min_occurrences_strong: int = 2
    character_min_occurrences_weak: int = 5
    max_characters: int = 50
    preview_chars: int = 500
    preview_chapter_titles: int = 10
    reading_wpm: int = 200
    max_file_bytes: int = 50 * MB
    large_file_bytes: int = 10 * MB
    long_line_chars: int = 10_000
    corruption_ratio: float = 0.10
    replacement_error_ratio: float = 0.01
    close_chapter_lines: int = 5

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImportConfig:
        """Create config from dictionary, ignoring unknown keys.

        Environment variables STORYLOOM_MAX_FILE_MB and STORYLOOM_READING_WPM
        override the dictionary values.

        Raises:
            ValueError: If a value cannot be converted to the field's type.
        """
        known = {f.name: f for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, raw in data.items():
            if key not in known:
                continue
            default = known[key].default
            values[key] = type(default)(raw)

        if env_mb := os.getenv("STORYLOOM_MAX_FILE_MB"):
            values["max_file_bytes"] = int(float(env_mb) * MB)
        if env_wpm := os.getenv("STORYLOOM_READING_WPM"):
            values["reading_wpm"] = int(env_wpm)

        return cls(**values)


@dataclass(frozen=True)
class RepairPolicy:
    """How the integrity guard reacts to invariant violations.

    Attributes:
        auto_repair: Run ``repair()`` when validation finds errors.
        raise_on_error: Raise StoryIntegrityError if errors remain.
    """

    auto_repair: bool = True
    raise_on_error: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepairPolicy:
        return cls(
            auto_repair=bool(data.get("auto_repair", True)),
            raise_on_error=bool(data.get("raise_on_error", False)),
        )


@dataclass(frozen=True)
class ProjectConfig:
    """Configuration read from storyloom.yaml."""

    name: str = "unnamed"
    import_: ImportConfig = field(default_factory=ImportConfig)
    repair: RepairPolicy = field(default_factory=RepairPolicy)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary with optional ``name``, ``import`` and ``repair``
                sections.

        Returns:
            ProjectConfig instance.
        """
        return cls(
            name=data.get("name", "unnamed"),
            import_=ImportConfig.from_dict(dict(data.get("import") or {})),
            repair=RepairPolicy.from_dict(dict(data.get("repair") or {})),
        )


class ProjectConfigError(Exception):
    """Raised when configuration cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load config at {path}: {reason}")


def create_default_config(name: str = "unnamed") -> ProjectConfig:
    """Create a configuration with default values (environment still applies)."""
    return ProjectConfig(name=name, import_=ImportConfig.from_dict({}))


def load_project_config(project_path: Path) -> ProjectConfig:
    """Load configuration from ``storyloom.yaml`` in ``project_path``.

    A missing file yields the defaults.

    Raises:
        ProjectConfigError: If the file exists but cannot be read or parsed.
    """
    config_path = project_path / CONFIG_FILENAME

    if not config_path.exists():
        return create_default_config(project_path.name or "unnamed")

    yaml = YAML()
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            raise ProjectConfigError(config_path, "Empty file")

        return ProjectConfig.from_dict(dict(data))
    except Exception as e:
        if isinstance(e, ProjectConfigError):
            raise
        raise ProjectConfigError(config_path, str(e)) from e

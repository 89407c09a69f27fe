"""Import pipeline: bytes in, ``ImportResult`` and ``StoryGraph`` out."""

from storyloom.pipeline.config import (
    ImportConfig,
    ProjectConfig,
    ProjectConfigError,
    RepairPolicy,
    create_default_config,
    load_project_config,
)
from storyloom.pipeline.converter import convert, default_story_id
from storyloom.pipeline.extractor import TextExtractor, file_kind, validate_file
from storyloom.pipeline.orchestrator import ImportPipeline, extract_title, import_bytes
from storyloom.pipeline.registry import StepMeta, StepRegistry

__all__ = [
    "ImportConfig",
    "ImportPipeline",
    "ProjectConfig",
    "ProjectConfigError",
    "RepairPolicy",
    "StepMeta",
    "StepRegistry",
    "TextExtractor",
    "convert",
    "create_default_config",
    "default_story_id",
    "extract_title",
    "file_kind",
    "import_bytes",
    "load_project_config",
    "validate_file",
]

"""Pydantic models for the story graph and the import pipeline.

``models.story`` holds the persisted entities (Story, Chapter, Scene,
Character, StoryGraph). ``models.ingest`` holds what the import pipeline
produces before conversion.
"""

from storyloom.models.ingest import (
    DecodedText,
    DetectedChapter,
    DetectedCharacter,
    DetectedScene,
    EncodingReport,
    ImportResult,
    ImportValidation,
    NormalizedText,
    PreviewData,
    WordCounts,
)
from storyloom.models.story import (
    Chapter,
    Character,
    Scene,
    SceneStatus,
    Story,
    StoryGraph,
)

__all__ = [
    "Chapter",
    "Character",
    "DecodedText",
    "DetectedChapter",
    "DetectedCharacter",
    "DetectedScene",
    "EncodingReport",
    "ImportResult",
    "ImportValidation",
    "NormalizedText",
    "PreviewData",
    "Scene",
    "SceneStatus",
    "Story",
    "StoryGraph",
    "WordCounts",
]

"""Import pipeline stage implementations.

Each stage is a pure function over the previous stage's output:
``recover_text`` -> ``normalize_lines`` -> ``detect_chapters`` /
``detect_scenes`` / ``detect_characters`` -> ``count_document``.
"""

from __future__ import annotations

from storyloom.pipeline.stages.chapters import (
    CHAPTER_PATTERNS,
    clean_title,
    dedupe_titles,
    detect_chapters,
    roman_to_int,
)
from storyloom.pipeline.stages.characters import detect_characters, is_valid_name
from storyloom.pipeline.stages.counting import count_document, count_lines, count_words
from storyloom.pipeline.stages.encoding import recover_text
from storyloom.pipeline.stages.lines import detect_line_ending, normalize_lines
from storyloom.pipeline.stages.scenes import detect_scenes, is_separator
from storyloom.pipeline.stages.scoring import (
    LineContext,
    chapter_confidence,
    character_confidence,
)

__all__ = [
    "CHAPTER_PATTERNS",
    "LineContext",
    "chapter_confidence",
    "character_confidence",
    "clean_title",
    "count_document",
    "count_lines",
    "count_words",
    "dedupe_titles",
    "detect_chapters",
    "detect_characters",
    "detect_line_ending",
    "detect_scenes",
    "is_separator",
    "is_valid_name",
    "normalize_lines",
    "recover_text",
    "roman_to_int",
]

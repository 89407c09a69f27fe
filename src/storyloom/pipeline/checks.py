"""Sanity checks on an import and the preview payload.

These checks look at the imported text and the detected structure. They
never raise: problems come back as errors and warnings in
``ImportValidation``. Story-graph invariants are checked separately by
``storyloom.graph.integrity``.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from storyloom.models.ingest import ImportValidation, PreviewData
from storyloom.pipeline.config import ImportConfig
from storyloom.pipeline.stages.chapters import MARKDOWN_PATTERNS
from storyloom.pipeline.stages.counting import chapter_spans
from storyloom.pipeline.stages.encoding import REPLACEMENT_CHAR
from storyloom.pipeline.stages.scenes import is_separator

if TYPE_CHECKING:
    from collections.abc import Sequence

    from storyloom.models.ingest import (
        DetectedChapter,
        DetectedCharacter,
        DetectedScene,
        EncodingReport,
        NormalizedText,
        WordCounts,
    )

LOW_CONFIDENCE = 0.5


def check_text_integrity(text: str, *, max_replacement_ratio: float = 0.01) -> bool:
    """False if the text holds null bytes or too many replacement characters."""
    if "\x00" in text:
        return False
    if not text:
        return True
    return text.count(REPLACEMENT_CHAR) / len(text) <= max_replacement_ratio


def close_chapter_pairs(
    chapters: Sequence[DetectedChapter], min_distance: int
) -> list[tuple[DetectedChapter, DetectedChapter]]:
    """Consecutive chapters whose headings are fewer than ``min_distance`` lines apart."""
    return [
        (a, b)
        for a, b in zip(chapters, chapters[1:], strict=False)
        if b.line_index - a.line_index < min_distance
    ]


def empty_chapters(
    lines: Sequence[str], chapters: Sequence[DetectedChapter]
) -> list[DetectedChapter]:
    """Chapters whose body holds nothing but blank and separator lines."""
    result = []
    for chapter, (start, end) in zip(chapters, chapter_spans(chapters, len(lines)), strict=True):
        body = lines[start:end]
        if not any(line.strip() and not is_separator(line) for line in body):
            result.append(chapter)
    return result


def has_mixed_markers(chapters: Sequence[DetectedChapter]) -> bool:
    """True when markdown and plain-text chapter headings are both present."""
    kinds = {c.matched_pattern in MARKDOWN_PATTERNS for c in chapters}
    return len(kinds) == 2


def validate_import(
    normalized: NormalizedText,
    chapters: Sequence[DetectedChapter],
    *,
    encoding: EncodingReport | None = None,
    extra_warnings: Sequence[str] = (),
    config: ImportConfig | None = None,
) -> ImportValidation:
    """Collect errors and warnings about an import.

    Args:
        normalized: The normalized text.
        chapters: Detected chapters (after duplicate titles were renamed).
        encoding: Encoding report; its warnings become ``encoding_issues``.
        extra_warnings: Warnings raised by earlier steps, kept first.
        config: Thresholds; defaults when omitted.
    """
    cfg = config or ImportConfig()
    text = normalized.text
    errors: list[str] = []
    warnings: list[str] = list(extra_warnings)
    encoding_issues: list[str] = list(encoding.warnings) if encoding else []

    integrity = check_text_integrity(text, max_replacement_ratio=cfg.replacement_error_ratio)
    if not integrity:
        errors.append("Text integrity check failed - possible corruption detected")

    if REPLACEMENT_CHAR in text:
        encoding_issues.append(
            "Text contains replacement characters indicating encoding problems"
        )
        warnings.append("Some characters may not have been decoded correctly")

    if not text.strip():
        errors.append("File appears to be empty")

    if chapters:
        close = close_chapter_pairs(chapters, cfg.close_chapter_lines)
        if close:
            warnings.append(
                f"Found {len(close)} pair(s) of chapter markers fewer than "
                f"{cfg.close_chapter_lines} lines apart (possible overlap)"
            )
        low = [c for c in chapters if c.confidence < LOW_CONFIDENCE]
        if low:
            warnings.append(
                f"{len(low)} chapter(s) detected with low confidence (< {LOW_CONFIDENCE})"
            )
        empty = empty_chapters(normalized.lines, chapters)
        if empty:
            titles = ", ".join(c.title for c in empty)
            warnings.append(f"Found {len(empty)} chapter(s) with no scenes: {titles}")
        if has_mixed_markers(chapters):
            warnings.append(
                "Chapter markers mix markdown headers and plain text; "
                "some chapters may have been missed"
            )
    else:
        warnings.append(
            "No chapter markers detected. All content will be placed in a single chapter."
        )

    if normalized.byte_length > cfg.large_file_bytes:
        warnings.append(
            f"File is very large (>{cfg.large_file_bytes // (1024 * 1024)}MB) - "
            "processing may be slow"
        )

    long_lines = [line for line in normalized.lines if len(line) > cfg.long_line_chars]
    if long_lines:
        warnings.append(
            f"Found {len(long_lines)} very long line(s) (>{cfg.long_line_chars:,} characters)"
        )

    return ImportValidation(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        text_integrity=integrity,
        encoding_issues=encoding_issues,
    )


def build_preview(
    normalized: NormalizedText,
    chapters: Sequence[DetectedChapter],
    scenes: Sequence[DetectedScene],
    characters: Sequence[DetectedCharacter],
    word_counts: WordCounts,
    *,
    config: ImportConfig | None = None,
) -> PreviewData:
    """Summary shown before the author accepts an import."""
    cfg = config or ImportConfig()
    return PreviewData(
        total_words=word_counts.total,
        total_characters=normalized.character_count,
        chapter_count=len(chapters),
        scene_count=len(scenes),
        character_count=len(characters),
        estimated_reading_minutes=math.ceil(word_counts.total / cfg.reading_wpm),
        preview_text=normalized.text[: cfg.preview_chars].replace("\n", " ").strip(),
        chapter_titles=[c.title for c in chapters[: cfg.preview_chapter_titles]],
    )

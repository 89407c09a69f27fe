"""Word counting.

A word is a maximal run of non-whitespace characters. The same rule is
applied to the document, to chapter spans and to scene spans, so counts of
non-overlapping spans add up.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from storyloom.models.ingest import WordCounts

if TYPE_CHECKING:
    from collections.abc import Sequence

    from storyloom.models.ingest import DetectedChapter, DetectedScene


def count_words(text: str) -> int:
    return len(text.split())


def count_lines(lines: Sequence[str], start: int, end: int) -> int:
    """Words in ``lines[start:end]``."""
    return sum(count_words(line) for line in lines[start:end])


def chapter_spans(chapters: Sequence[DetectedChapter], line_count: int) -> list[tuple[int, int]]:
    """Half-open line ranges of chapter bodies: heading line excluded."""
    spans = []
    for i, chapter in enumerate(chapters):
        end = chapters[i + 1].line_index if i + 1 < len(chapters) else line_count
        spans.append((chapter.line_index + 1, end))
    return spans


def scene_spans(scenes: Sequence[DetectedScene], line_count: int) -> list[tuple[int, int]]:
    """Half-open line ranges of scenes.

    Explicit separators and chapter headings are markup, so the range starts
    on the next line. A paragraph break's line is the scene's first line.
    """
    spans = []
    for i, scene in enumerate(scenes):
        end = scenes[i + 1].line_index if i + 1 < len(scenes) else line_count
        start = scene.line_index if scene.break_type == "paragraph" else scene.line_index + 1
        spans.append((min(start, end), end))
    return spans


def count_document(
    lines: Sequence[str],
    chapters: Sequence[DetectedChapter],
    scenes: Sequence[DetectedScene],
) -> WordCounts:
    """Total, per-chapter and per-scene word counts for a split document."""
    line_count = len(lines)
    front_end = scenes[0].line_index if scenes else line_count
    return WordCounts(
        total=count_lines(lines, 0, line_count),
        chapters=[count_lines(lines, s, e) for s, e in chapter_spans(chapters, line_count)],
        scenes=[count_lines(lines, s, e) for s, e in scene_spans(scenes, line_count)],
        front_matter=count_lines(lines, 0, front_end),
    )

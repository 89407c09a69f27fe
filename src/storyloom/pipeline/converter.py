"""Materialize an ``ImportResult`` as a ``StoryGraph``.

Chapters come from the detected headings. Text before the first heading
becomes a "Prologue" chapter, and a document without headings becomes a
single "Chapter 1". Inside each chapter, every non-chapter scene break
starts a new scene. Separator lines and headings never end up in scene
content, and segments without text produce no scene.

Ids are derived from the story id and a running counter, so converting
the same result with the same ``story_id`` always yields the same graph.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from storyloom.models.story import Chapter, Character, Scene, Story, StoryGraph
from storyloom.pipeline.stages.counting import count_words
from storyloom.pipeline.stages.scenes import is_separator

if TYPE_CHECKING:
    from collections.abc import Sequence

    from storyloom.models.ingest import DetectedScene, ImportResult

PROLOGUE_TITLE = "Prologue"
UNTITLED_SCENE = "Untitled Scene"
SCENE_TITLE_CHARS = 80


@dataclass(frozen=True)
class _ChapterSpan:
    title: str
    start: int
    end: int


def default_story_id(result: ImportResult) -> str:
    """Content-derived story id: same title and text give the same id."""
    digest = hashlib.sha256(f"{result.title}\n{result.normalized.text}".encode()).hexdigest()
    return f"story-{digest[:12]}"


def _has_text(lines: Sequence[str]) -> bool:
    return any(line.strip() and not is_separator(line) for line in lines)


def _chapter_spans(result: ImportResult) -> list[_ChapterSpan]:
    lines = result.normalized.lines
    chapters = result.chapters
    if not chapters:
        return [_ChapterSpan("Chapter 1", 0, len(lines))]

    spans: list[_ChapterSpan] = []
    first = chapters[0].line_index
    if _has_text(lines[:first]):
        spans.append(_ChapterSpan(PROLOGUE_TITLE, 0, first))
    for i, chapter in enumerate(chapters):
        end = chapters[i + 1].line_index if i + 1 < len(chapters) else len(lines)
        spans.append(_ChapterSpan(chapter.title, chapter.line_index + 1, end))
    return spans


def _segments(span: _ChapterSpan, breaks: Sequence[DetectedScene]) -> list[tuple[int, int]]:
    """Split a chapter body at the scene breaks that fall inside it."""
    inner = [
        b
        for b in breaks
        if b.break_type != "chapter-boundary" and span.start <= b.line_index < span.end
    ]
    segments: list[tuple[int, int]] = []
    start = span.start
    for brk in inner:
        segments.append((start, brk.line_index))
        start = brk.line_index + 1 if brk.break_type == "explicit" else brk.line_index
    segments.append((start, span.end))
    return segments


def _scene_title(chapter_title: str, first_in_chapter: bool, body: list[str]) -> str:
    if first_in_chapter:
        return chapter_title
    for line in body:
        if line.strip():
            return line.strip()[:SCENE_TITLE_CHARS]
    return UNTITLED_SCENE


def convert(
    result: ImportResult,
    *,
    story_id: str | None = None,
    now: datetime | None = None,
    min_character_confidence: float = 0.5,
    max_characters: int = 50,
) -> StoryGraph:
    """Build a story graph from an import result.

    Args:
        result: Output of ``ImportPipeline.run``.
        story_id: Id for the new story; derived from the content if omitted.
        now: Timestamp for ``created_at``/``updated_at``; current UTC time
            if omitted.
        min_character_confidence: Characters below this are left out.
        max_characters: Keep at most this many characters (most confident
            first, then most frequent).

    Returns:
        A graph that satisfies every integrity invariant.
    """
    sid = story_id or default_story_id(result)
    stamp = now or datetime.now(UTC)
    lines = result.normalized.lines

    chapters: list[Chapter] = []
    scenes: list[Scene] = []
    for ch_order, span in enumerate(_chapter_spans(result), start=1):
        chapter = Chapter(
            id=f"{sid}-ch-{ch_order}",
            title=span.title,
            story_id=sid,
            order=ch_order,
        )
        for start, end in _segments(span, result.scenes):
            body = [line for line in lines[start:end] if not is_separator(line)]
            content = "\n".join(body).strip()
            if not content:
                continue
            scene = Scene(
                id=f"{sid}-sc-{len(scenes) + 1}",
                title=_scene_title(span.title, not chapter.scene_ids, body),
                chapter_id=chapter.id,
                order=len(chapter.scene_ids) + 1,
                content=content,
                word_count=count_words(content),
            )
            scenes.append(scene)
            chapter.scene_ids.append(scene.id)
        chapters.append(chapter)

    ranked = sorted(
        (c for c in result.characters if c.confidence >= min_character_confidence),
        key=lambda c: (-c.confidence, -c.occurrences, c.first_seen, c.name),
    )[:max_characters]
    characters = [
        Character(
            id=f"{sid}-char-{i}",
            name=c.name,
            confidence=c.confidence,
            occurrences=c.occurrences,
            first_seen=c.first_seen,
            description=f"Detected in text ({c.occurrences} occurrences)",
        )
        for i, c in enumerate(ranked, start=1)
    ]

    story = Story(
        id=sid,
        title=result.title,
        chapter_ids=[c.id for c in chapters],
        created_at=stamp,
        updated_at=stamp,
    )
    return StoryGraph(story=story, chapters=chapters, scenes=scenes, characters=characters)

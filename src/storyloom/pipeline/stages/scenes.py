"""Scene-break detection.

Three sources of breaks, deduplicated by line index:

- chapter boundaries (every detected chapter line), at the chapter's confidence
- explicit separator lines such as ``***`` or ``* * *``, at confidence 1.0
- a gap of two or more blank lines, recorded at the first non-blank line
  after the gap, at confidence 0.5

When two sources land on the same line the stronger one is kept:
chapter-boundary, then explicit, then paragraph.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storyloom.models.ingest import DetectedScene
from storyloom.observability.tracing import NULL_TRACER

if TYPE_CHECKING:
    from collections.abc import Sequence

    from storyloom.models.ingest import DetectedChapter, SceneBreakType
    from storyloom.observability.tracing import Tracer

MIN_BLANK_GAP = 2
PARAGRAPH_CONFIDENCE = 0.5

SEPARATOR_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("asterisks", re.compile(r"^\*{3,}$")),
    ("dashes", re.compile(r"^-{3,}$")),
    ("equals", re.compile(r"^={3,}$")),
    ("spaced_asterisks", re.compile(r"^\* \* \*$")),
    ("tildes", re.compile(r"^~{3,}$")),
    ("underscores", re.compile(r"^_{3,}$")),
    ("mixed_separator", re.compile(r"^[*\-=]{5,}$")),
)

_PRECEDENCE: dict[SceneBreakType, int] = {
    "chapter-boundary": 3,
    "explicit": 2,
    "paragraph": 1,
}


def match_separator(line: str) -> str | None:
    """Name of the separator pattern matching the stripped ``line``, if any."""
    stripped = line.strip()
    for name, regex in SEPARATOR_PATTERNS:
        if regex.match(stripped):
            return name
    return None


def is_separator(line: str) -> bool:
    return match_separator(line) is not None


@dataclass
class _BreakSet:
    """Accumulator keyed by line index; keeps the strongest break per line."""

    tracer: Tracer
    by_line: dict[int, DetectedScene] = field(default_factory=dict)

    def offer(self, scene: DetectedScene) -> None:
        current = self.by_line.get(scene.line_index)
        if current is None:
            self.by_line[scene.line_index] = scene
            return
        if _PRECEDENCE[scene.break_type] > _PRECEDENCE[current.break_type]:
            self.by_line[scene.line_index] = scene
            dropped = current
        else:
            dropped = scene
        self.tracer.event(
            "scene_break_deduplicated",
            line=scene.line_index,
            kept=self.by_line[scene.line_index].break_type,
            dropped=dropped.break_type,
        )

    def ordered(self) -> list[DetectedScene]:
        return [self.by_line[i] for i in sorted(self.by_line)]


def detect_scenes(
    lines: Sequence[str],
    chapters: Sequence[DetectedChapter],
    *,
    tracer: Tracer = NULL_TRACER,
) -> list[DetectedScene]:
    """Find scene breaks, ordered by line index, at most one per line.

    A scene starts at its break line. For explicit and chapter-boundary
    breaks the break line itself is markup and is excluded from the scene's
    content; for paragraph breaks it is the scene's first line.
    """
    breaks = _BreakSet(tracer=tracer)

    for chapter in chapters:
        breaks.offer(
            DetectedScene(
                line_index=chapter.line_index,
                break_type="chapter-boundary",
                confidence=chapter.confidence,
                matched_pattern=chapter.matched_pattern,
                original_line=chapter.original_line,
            )
        )

    for index, line in enumerate(lines):
        name = match_separator(line)
        if name is not None:
            breaks.offer(
                DetectedScene(
                    line_index=index,
                    break_type="explicit",
                    confidence=1.0,
                    matched_pattern=name,
                    original_line=line.strip(),
                )
            )

    blank_run = 0
    for index, line in enumerate(lines):
        if not line.strip():
            blank_run += 1
            continue
        if blank_run >= MIN_BLANK_GAP:
            breaks.offer(
                DetectedScene(
                    line_index=index,
                    break_type="paragraph",
                    confidence=PARAGRAPH_CONFIDENCE,
                    matched_pattern="blank_gap",
                )
            )
        blank_run = 0

    scenes = breaks.ordered()
    tracer.event("scene_breaks_detected", count=len(scenes))
    return scenes

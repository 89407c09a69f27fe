"""Chapter heading detection.

Each stripped line is tested against ``CHAPTER_PATTERNS`` in table order;
the first pattern that matches supplies the base weight, which
``scoring.chapter_confidence`` adjusts for the line's surroundings.
Candidates under the acceptance threshold are dropped.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storyloom.models.ingest import DetectedChapter
from storyloom.observability.tracing import NULL_TRACER
from storyloom.pipeline.stages.scoring import LineContext, chapter_confidence

if TYPE_CHECKING:
    from collections.abc import Sequence

    from storyloom.observability.tracing import Tracer

DEFAULT_MIN_CONFIDENCE = 0.3

_ROMAN = r"(?P<roman>[ivxlcdm]+)"
_NUM = r"(?P<num>\d+)"


@dataclass(frozen=True)
class ChapterPattern:
    """One row of the chapter pattern table."""

    name: str
    regex: re.Pattern[str]
    weight: float


def _p(name: str, pattern: str, weight: float, *, ignore_case: bool = True) -> ChapterPattern:
    flags = re.IGNORECASE if ignore_case else 0
    return ChapterPattern(name=name, regex=re.compile(pattern, flags), weight=weight)


# More specific patterns first: only the first match counts.
CHAPTER_PATTERNS: tuple[ChapterPattern, ...] = (
    _p("markdown_chapter_number", rf"^#{{1,3}}\s+chapter\s+{_NUM}\s*$", 1.0),
    _p("chapter_number", rf"^chapter\s+{_NUM}\s*$", 0.95),
    _p("chapter_number_text", rf"^chapter\s+{_NUM}\s+.+$", 0.9),
    _p("chapter_number_title", rf"^chapter\s+{_NUM}[:.]\s*.+$", 0.9),
    _p("chapter_roman", rf"^chapter\s+{_ROMAN}\s*$", 0.95),
    _p("part_number", rf"^part\s+{_NUM}\s*$", 0.9),
    _p("part_roman", rf"^part\s+{_ROMAN}\s*$", 0.9),
    _p("bold_chapter_number", rf"^\*\*chapter\s+{_NUM}\*\*\s*$", 0.85),
    _p("markdown_chapter_roman", rf"^#{{1,3}}\s+chapter\s+{_ROMAN}\s*$", 0.8),
    _p("act_number", rf"^act\s+{_NUM}\s*$", 0.75),
    _p("act_roman", rf"^act\s+{_ROMAN}\s*$", 0.75),
    _p("book_number", rf"^book\s+{_NUM}\s*$", 0.75),
    _p("book_roman", rf"^book\s+{_ROMAN}\s*$", 0.75),
    _p("chapter_word", r"^chapter\s*$", 0.6),
    _p("markdown_header", r"^#{1,6}\s+.+$", 0.5),
    _p("numeric_header", rf"^{_NUM}\.?$", 0.45),
    _p("all_caps_line", r"^[A-Z][A-Z\s]{10,}$", 0.4, ignore_case=False),
)

MARKDOWN_PATTERNS = frozenset(
    {"markdown_chapter_number", "markdown_chapter_roman", "markdown_header"}
)

_CANONICAL_ROMAN = re.compile(
    r"^M{0,3}(CM|CD|D?C{0,3})(XC|XL|L?X{0,3})(IX|IV|V?I{0,3})$", re.IGNORECASE
)
_ROMAN_VALUES = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100, "D": 500, "M": 1000}


def roman_to_int(numeral: str) -> int | None:
    """Convert a Roman numeral, or return None if it is not a canonical one."""
    if not numeral or not _CANONICAL_ROMAN.match(numeral):
        return None
    values = [_ROMAN_VALUES[ch] for ch in numeral.upper()]
    total = 0
    for i, value in enumerate(values):
        if i + 1 < len(values) and value < values[i + 1]:
            total -= value
        else:
            total += value
    return total


def match_pattern(line: str) -> tuple[ChapterPattern, re.Match[str]] | None:
    """First pattern in table order matching the stripped ``line``."""
    for pattern in CHAPTER_PATTERNS:
        m = pattern.regex.match(line)
        if m:
            return pattern, m
    return None


def _number_of(m: re.Match[str]) -> int | None:
    groups = m.groupdict()
    if groups.get("num"):
        return int(groups["num"])
    if groups.get("roman"):
        return roman_to_int(groups["roman"])
    return None


def _is_unprintable(ch: str) -> bool:
    return ch == "\ufffd" or unicodedata.category(ch) in {"Cc", "Cf", "Cs", "Co", "Cn"}


def clean_title(line: str) -> str:
    """Strip heading and emphasis markup, collapse whitespace, drop unprintables."""
    cleaned = re.sub(r"^#+\s*", "", line.strip())
    cleaned = re.sub(r"\s*#+$", "", cleaned)
    cleaned = cleaned.replace("**", "").replace("__", "")
    cleaned = "".join(ch for ch in cleaned if not _is_unprintable(ch) or ch.isspace())
    return " ".join(cleaned.split())


def has_alphanumeric(text: str) -> bool:
    return any(ch.isalnum() for ch in text)


@dataclass
class _ChapterScan:
    """Accumulator threaded through the line scan."""

    min_confidence: float
    tracer: Tracer
    found: list[DetectedChapter] = field(default_factory=list)

    def consider(self, lines: Sequence[str], index: int) -> None:
        stripped = lines[index].strip()
        if not stripped:
            return
        matched = match_pattern(stripped)
        if matched is None:
            return
        pattern, m = matched

        confidence = chapter_confidence(pattern.weight, LineContext.of(lines, index))
        if confidence < self.min_confidence:
            self.tracer.event(
                "chapter_candidate_rejected",
                line=index,
                pattern=pattern.name,
                confidence=confidence,
            )
            return

        number = _number_of(m)
        title = clean_title(stripped)
        if not has_alphanumeric(title):
            fallback_number = number if number is not None else len(self.found) + 1
            title = f"Chapter {fallback_number}"
            self.tracer.event("chapter_title_fallback", line=index, title=title)

        self.found.append(
            DetectedChapter(
                line_index=index,
                title=title,
                original_line=stripped,
                confidence=confidence,
                matched_pattern=pattern.name,
                number=number,
            )
        )
        self.tracer.event(
            "chapter_accepted",
            line=index,
            pattern=pattern.name,
            confidence=confidence,
            title=title,
        )


def detect_chapters(
    lines: Sequence[str],
    *,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    tracer: Tracer = NULL_TRACER,
) -> list[DetectedChapter]:
    """Find chapter headings, ordered by line index.

    Titles are never empty: a heading whose cleaned title has no letters or
    digits is titled "Chapter N", with N taken from the heading's number when
    the pattern captured one and from its position among detected chapters
    otherwise.
    """
    scan = _ChapterScan(min_confidence=min_confidence, tracer=tracer)
    for index in range(len(lines)):
        scan.consider(lines, index)
    return scan.found


def dedupe_titles(chapters: Sequence[DetectedChapter]) -> tuple[list[DetectedChapter], list[str]]:
    """Rename repeated titles to ``"<title> (2)"``, ``"(3)"`` and so on.

    Returns:
        The renamed chapters and one warning per renamed chapter.
    """
    seen: dict[str, int] = {}
    taken = {c.title for c in chapters}
    result: list[DetectedChapter] = []
    warnings: list[str] = []
    for chapter in chapters:
        count = seen.get(chapter.title, 0) + 1
        seen[chapter.title] = count
        if count == 1:
            result.append(chapter)
            continue
        suffix = count
        new_title = f"{chapter.title} ({suffix})"
        while new_title in taken:
            suffix += 1
            new_title = f"{chapter.title} ({suffix})"
        taken.add(new_title)
        warnings.append(
            f"Duplicate chapter title '{chapter.title}' at line {chapter.line_index + 1} "
            f"renamed to '{new_title}'"
        )
        result.append(chapter.model_copy(update={"title": new_title}))
    return result, warnings

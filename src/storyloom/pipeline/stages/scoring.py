"""Confidence arithmetic for the structure detectors.

Everything here is a pure function of numbers and strings so each
adjustment can be tested without scanning a document.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from storyloom.models.ingest import CharacterContext

if TYPE_CHECKING:
    from collections.abc import Sequence

ISOLATION_BONUS = 0.10
LONG_LINE_CHARS = 100
LONG_LINE_FACTOR = 0.7
SHORT_LINE_CHARS = 50
SHORT_NUMERIC_BONUS = 0.05
QUOTE_FACTOR = 0.8

# Straight and curly double quotes; apostrophes do not count.
_QUOTE_CHARS = re.compile(r'["\u201c\u201d\u201e]')
_DIGIT = re.compile(r"\d")

CONTEXT_SCORES: dict[CharacterContext, float] = {
    "dialogue": 1.0,
    "attribution": 0.9,
    "action": 0.9,
    "sentence-start": 0.2,
}
STRONG_CONTEXTS: frozenset[CharacterContext] = frozenset({"dialogue", "attribution", "action"})

OCCURRENCE_CAP = 10
OCCURRENCE_WEIGHT = 0.3
LENGTH_WEIGHT = 0.2
CONTEXT_WEIGHT = 0.5


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class LineContext:
    """The facts about a line that adjust a chapter pattern's base weight.

    Attributes:
        length: Length of the stripped line.
        isolated: Previous line blank (or start of document) and next line
            non-blank.
        has_digit: Line contains a decimal digit.
        has_quotes: Line contains a double quotation mark.
    """

    length: int
    isolated: bool
    has_digit: bool
    has_quotes: bool

    @classmethod
    def of(cls, lines: Sequence[str], index: int) -> LineContext:
        """Build the context for ``lines[index]``."""
        line = lines[index].strip()
        prev_blank = index == 0 or not lines[index - 1].strip()
        next_filled = index + 1 < len(lines) and bool(lines[index + 1].strip())
        return cls(
            length=len(line),
            isolated=prev_blank and next_filled,
            has_digit=bool(_DIGIT.search(line)),
            has_quotes=bool(_QUOTE_CHARS.search(line)),
        )


def chapter_confidence(base_weight: float, context: LineContext) -> float:
    """Adjust a chapter pattern's base weight for its surroundings.

    Adjustments apply in a fixed order: isolation bonus, long-line penalty,
    short-with-digit bonus, quotation penalty. The result is clamped to
    [0, 1] and rounded to four places so float noise never changes ranking.

    The quotation penalty has no minimum line length: a short heading such
    as ``Chapter 3: "Home"`` is penalized like a long line of dialogue.
    """
    confidence = base_weight
    if context.isolated:
        confidence += ISOLATION_BONUS
    if context.length > LONG_LINE_CHARS:
        confidence *= LONG_LINE_FACTOR
    if context.length < SHORT_LINE_CHARS and context.has_digit:
        confidence += SHORT_NUMERIC_BONUS
    if context.has_quotes:
        confidence *= QUOTE_FACTOR
    return round(clamp(confidence), 4)


def strongest_context(contexts: set[CharacterContext]) -> CharacterContext:
    """The highest-scoring context in ``contexts`` (ties resolved by table order)."""
    return max(
        contexts,
        key=lambda c: (CONTEXT_SCORES[c], -list(CONTEXT_SCORES).index(c)),
    )


def character_confidence(occurrences: int, word_count: int, context: CharacterContext) -> float:
    """Blend frequency, name-length plausibility and context strength.

    ``0.3 * min(occurrences / 10, 1) + 0.2 * length + 0.5 * context`` where
    length is 1.0 for one to three words and 0.7 otherwise.
    """
    occurrence_score = min(occurrences / OCCURRENCE_CAP, 1.0)
    length_score = 1.0 if 1 <= word_count <= 3 else 0.7
    confidence = (
        occurrence_score * OCCURRENCE_WEIGHT
        + length_score * LENGTH_WEIGHT
        + CONTEXT_SCORES[context] * CONTEXT_WEIGHT
    )
    return round(clamp(confidence), 4)

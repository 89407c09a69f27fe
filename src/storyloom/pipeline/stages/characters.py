"""Character-name detection from capitalized phrases.

Four context patterns feed a candidate table:

===============  ===================================  =====
context          example                              score
===============  ===================================  =====
dialogue         ``"Maria" said``                     1.0
attribution      ``Maria asked``                      0.9
action           ``Maria walked``                     0.9
sentence-start   ``. Maria``                          0.2
===============  ===================================  =====

A sentence-start sighting only counts when no strong context has already
produced the same name. Afterwards, candidates never seen in a strong
context are dropped if their lower-case form appears as a whole word in the
text. This is a heuristic: a character called "Hope" who is only ever seen
at sentence starts is lost if the noun "hope" appears too, and a common
word that is never written lower-case survives.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storyloom.models.ingest import DetectedCharacter
from storyloom.observability.tracing import NULL_TRACER
from storyloom.pipeline.stages.scoring import (
    STRONG_CONTEXTS,
    character_confidence,
    strongest_context,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from storyloom.models.ingest import CharacterContext
    from storyloom.observability.tracing import Tracer

DEFAULT_MIN_CONFIDENCE = 0.5
DEFAULT_MIN_OCCURRENCES_STRONG = 2
DEFAULT_MIN_OCCURRENCES_WEAK = 5

EXCLUDED_WORDS = frozenset(
    # articles, conjunctions, question words
    "the a an and or but if once when where while what which who why how "
    # prepositions
    "in on at to for of with by from as into onto upon over under through "
    "during before after since until "
    # auxiliaries
    "is was are were been be have has had do does did will would could "
    "should may might must can "
    # pronouns and determiners
    "this that these those he she it they we you i me him her us them his "
    "hers its their our your my mine yours theirs ours "
    "nothing nobody someone something everyone everything anyone anything "
    # dialogue verbs
    "said says say asked asks ask replied replies reply thought think thinks "
    # common verbs
    "felt feels feel looked looks look saw see sees went go goes came come "
    "comes got get gets took take takes made make makes know knows knew want "
    "wants wanted need needs needed like likes liked "
    # time and place
    "then there here now today yesterday tomorrow soon later always never "
    "sometimes often "
    # discourse markers
    "however therefore thus hence moreover furthermore nevertheless "
    "nonetheless meanwhile besides "
    # structural headings
    "chapter part act book prologue epilogue interlude".split()
)

TITLE_WORDS = frozenset({"mr", "mrs", "ms", "dr", "prof", "sir", "madam", "lord", "lady"})

_WORD = r"[A-Z][a-z]+(?:[-'][A-Z][a-z]+)?"
_NAME = rf"(?P<name>{_WORD}(?:[ \t]+{_WORD})*)"
_QUOTE = "[\"'\u201c\u201d\u2018\u2019]"
_SPEECH_VERBS = "said|says|asked|asks|replied|replies|whispered|shouted|exclaimed"
_THOUGHT_VERBS = "thought|thinks"
_ACTION_VERBS = (
    "walked|ran|stood|sat|looked|glanced|stared|smiled|frowned|nodded|shook|"
    "turned|moved|went|came|entered|left|opened|closed|picked|put|threw|caught|"
    "grabbed|reached|pushed|pulled|stepped|jumped|fell|rose|woke|slept|ate|drank|"
    "spoke|laughed|cried|sighed|breathed|gasped|screamed|murmured|muttered|"
    "stammered|stuttered"
)

# Name capture is case-sensitive; only the verbs ignore case.
CONTEXT_PATTERNS: tuple[tuple[CharacterContext, re.Pattern[str]], ...] = (
    ("dialogue", re.compile(rf"{_QUOTE}{_NAME}{_QUOTE}\s+(?i:{_SPEECH_VERBS})\b")),
    (
        "attribution",
        re.compile(rf"\b{_NAME}\s+(?i:{_SPEECH_VERBS}|{_THOUGHT_VERBS})\b"),
    ),
    ("action", re.compile(rf"\b{_NAME}\s+(?i:{_ACTION_VERBS})\b")),
)
SENTENCE_START = re.compile(rf"(?:^|[.!?]\s+){_QUOTE}?{_NAME}")

_VALID_CHARS = re.compile(r"^[A-Za-z\s\-']+$")


def is_valid_name(name: str) -> bool:
    """Whether a phrase is plausible as a character name."""
    if not 3 <= len(name) <= 30:
        return False
    if not name[0].isupper():
        return False
    if name == name.upper():
        return False
    lower = name.lower()
    if lower in EXCLUDED_WORDS:
        return False
    if not _VALID_CHARS.match(name):
        return False
    words = lower.split()
    if words[0] in TITLE_WORDS:
        return False
    return not (len(words) == 1 and len(words[0]) < 4)


def trim_leading_function_words(phrase: str) -> tuple[str, int]:
    """Drop excluded words from the front of a phrase ("Then Maria" -> "Maria").

    Returns:
        The trimmed phrase and its offset within ``phrase`` (the empty string
        if every word was excluded).
    """
    offset = 0
    rest = phrase
    while rest:
        head, _, tail = rest.partition(" ")
        if head.lower() not in EXCLUDED_WORDS:
            break
        stripped_tail = tail.lstrip()
        offset += len(rest) - len(stripped_tail)
        rest = stripped_tail
    return rest, offset


@dataclass
class _Candidate:
    occurrences: int
    first_seen: int
    contexts: set[CharacterContext] = field(default_factory=set)

    @property
    def strong(self) -> bool:
        return bool(self.contexts & STRONG_CONTEXTS)


@dataclass
class _CharacterScan:
    """Accumulator for one pass over the lines."""

    tracer: Tracer
    candidates: dict[str, _Candidate] = field(default_factory=dict)
    spans: set[tuple[int, int]] = field(default_factory=set)

    def _name_at(self, m: re.Match[str]) -> tuple[str, int] | None:
        phrase = m.group("name")
        name, offset = trim_leading_function_words(phrase)
        if not name or not is_valid_name(name):
            return None
        return name, m.start("name") + offset

    def sight(self, line_index: int, m: re.Match[str], context: CharacterContext) -> None:
        found = self._name_at(m)
        if found is None:
            return
        name, start = found
        span = (line_index, start)
        if span in self.spans:
            return
        if context == "sentence-start":
            existing = self.candidates.get(name)
            if existing is not None and existing.strong:
                return
        self.spans.add(span)
        candidate = self.candidates.setdefault(name, _Candidate(0, line_index))
        candidate.occurrences += 1
        candidate.contexts.add(context)

    def scan_line(self, line_index: int, line: str) -> None:
        for context, regex in CONTEXT_PATTERNS:
            for m in regex.finditer(line):
                self.sight(line_index, m, context)
        for m in SENTENCE_START.finditer(line):
            self.sight(line_index, m, "sentence-start")

    def drop_common_words(self, text: str) -> None:
        for name in sorted(self.candidates):
            candidate = self.candidates[name]
            if candidate.strong:
                continue
            if re.search(rf"\b{re.escape(name.lower())}\b", text):
                del self.candidates[name]
                self.tracer.event("character_lowercase_dropped", name=name)


def detect_characters(
    lines: Sequence[str],
    *,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    min_occurrences_strong: int = DEFAULT_MIN_OCCURRENCES_STRONG,
    min_occurrences_weak: int = DEFAULT_MIN_OCCURRENCES_WEAK,
    skip_lines: Collection[int] = (),
    tracer: Tracer = NULL_TRACER,
) -> list[DetectedCharacter]:
    """Detect characters, most confident first.

    Lines listed in ``skip_lines`` (chapter headings) are not scanned.

    Ties are broken by occurrence count (descending), first-seen line, then
    name, so the order is fully determined by the input.
    """
    scan = _CharacterScan(tracer=tracer)
    for index, line in enumerate(lines):
        if index not in skip_lines:
            scan.scan_line(index, line)
    scan.drop_common_words("\n".join(lines))

    accepted: list[DetectedCharacter] = []
    for name, candidate in scan.candidates.items():
        context = strongest_context(candidate.contexts)
        confidence = character_confidence(candidate.occurrences, len(name.split()), context)
        needed = min_occurrences_strong if candidate.strong else min_occurrences_weak
        if confidence < min_confidence or candidate.occurrences < needed:
            tracer.event(
                "character_rejected",
                name=name,
                confidence=confidence,
                occurrences=candidate.occurrences,
            )
            continue
        accepted.append(
            DetectedCharacter(
                name=name,
                confidence=confidence,
                occurrences=candidate.occurrences,
                first_seen=candidate.first_seen,
                strongest_context=context,
            )
        )

    accepted.sort(key=lambda c: (-c.confidence, -c.occurrences, c.first_seen, c.name))
    tracer.event("characters_detected", count=len(accepted))
    return accepted

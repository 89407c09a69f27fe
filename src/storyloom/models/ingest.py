"""Models produced by the import pipeline.

Detection records (``DetectedChapter``, ``DetectedScene``,
``DetectedCharacter``) are transient: the converter materializes them into
the persisted models in ``models.story`` and they are never stored.

``ImportResult`` contains no timestamps, so two runs over the same bytes
compare equal.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

LineEnding = Literal["CRLF", "LF", "CR", "MIXED"]
SceneBreakType = Literal["explicit", "paragraph", "chapter-boundary"]
CharacterContext = Literal["dialogue", "attribution", "action", "sentence-start"]

Confidence = Annotated[float, Field(ge=0.0, le=1.0)]


class EncodingReport(BaseModel):
    """How the raw bytes were decoded."""

    encoding: str
    confidence: Confidence
    has_bom: bool = False
    warnings: list[str] = Field(default_factory=list)


class DecodedText(BaseModel):
    """Decoded text with its encoding report."""

    text: str
    report: EncodingReport
    character_count: int
    byte_length: int


class NormalizedText(BaseModel):
    """Text with LF line endings, split into lines.

    ``original_line_ending`` is diagnostic only; output always uses LF.
    """

    text: str
    lines: list[str]
    original_line_ending: LineEnding
    crlf_count: int = 0
    lf_count: int = 0
    cr_count: int = 0
    character_count: int
    byte_length: int


class DetectedChapter(BaseModel):
    """A chapter heading candidate that passed the confidence threshold."""

    line_index: int = Field(ge=0)
    title: str = Field(min_length=1)
    original_line: str
    confidence: Confidence
    matched_pattern: str
    number: int | None = None


class DetectedScene(BaseModel):
    """A scene break. Scenes start at the break line."""

    line_index: int = Field(ge=0)
    break_type: SceneBreakType
    confidence: Confidence
    matched_pattern: str
    original_line: str | None = None


class DetectedCharacter(BaseModel):
    """A proper-noun phrase accepted as a character name."""

    name: str
    confidence: Confidence
    occurrences: int
    first_seen: int
    strongest_context: CharacterContext


class WordCounts(BaseModel):
    """Word counts for the document and for each detected unit.

    ``chapters[i]`` and ``scenes[i]`` follow the order of the detected lists.
    ``front_matter`` counts lines before the first scene break.
    """

    total: int = 0
    chapters: list[int] = Field(default_factory=list)
    scenes: list[int] = Field(default_factory=list)
    front_matter: int = 0


class ImportValidation(BaseModel):
    """Sanity report on the imported text (not the story graph invariants)."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    text_integrity: bool = True
    encoding_issues: list[str] = Field(default_factory=list)


class PreviewData(BaseModel):
    """Summary shown to the author before they accept an import."""

    total_words: int
    total_characters: int
    chapter_count: int
    scene_count: int
    character_count: int
    estimated_reading_minutes: int
    preview_text: str
    chapter_titles: list[str] = Field(default_factory=list)


class ImportResult(BaseModel):
    """Everything the pipeline recovered from one document."""

    title: str
    encoding: EncodingReport
    normalized: NormalizedText
    chapters: list[DetectedChapter] = Field(default_factory=list)
    scenes: list[DetectedScene] = Field(default_factory=list)
    characters: list[DetectedCharacter] = Field(default_factory=list)
    word_counts: WordCounts = Field(default_factory=WordCounts)
    validation: ImportValidation
    preview: PreviewData

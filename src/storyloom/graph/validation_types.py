"""Issue and report types shared by integrity validation and repair."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class IssueSeverity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueCategory(StrEnum):
    """What kind of invariant a story graph violates."""

    SCENE_INVALID_CHAPTER = "scene_invalid_chapter"
    CHAPTER_MISSING_SCENE = "chapter_missing_scene"
    CHAPTER_FOREIGN_SCENE = "chapter_foreign_scene"
    CHAPTER_DUPLICATE_SCENE_REF = "chapter_duplicate_scene_ref"
    SCENE_NOT_IN_CHAPTER = "scene_not_in_chapter"
    CHAPTER_MISSING_POSITION = "chapter_missing_position"
    CHAPTER_DUPLICATE_POSITION = "chapter_duplicate_position"
    CHAPTER_INVALID_POSITION = "chapter_invalid_position"
    SCENE_MISSING_POSITION = "scene_missing_position"
    SCENE_DUPLICATE_POSITION = "scene_duplicate_position"
    SCENE_INVALID_POSITION = "scene_invalid_position"
    STORY_MISSING_CHAPTER = "story_missing_chapter"
    STORY_DUPLICATE_CHAPTER_REF = "story_duplicate_chapter_ref"
    ORPHANED_CHAPTER = "orphaned_chapter"
    CHAPTER_WRONG_STORY = "chapter_wrong_story"
    DUPLICATE_ENTITY_ID = "duplicate_entity_id"


@dataclass(frozen=True)
class ValidationIssue:
    """One invariant violation.

    Attributes:
        severity: How serious the violation is.
        category: Which invariant is violated.
        entity_id: Id of the offending story, chapter or scene.
        message: Human-readable description.
        context: Structured details (offending value, expected value...).
    """

    severity: IssueSeverity
    category: IssueCategory
    entity_id: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": str(self.severity),
            "category": str(self.category),
            "entity_id": self.entity_id,
            "message": self.message,
            "context": dict(self.context),
        }


@dataclass
class ValidationReport:
    """Ordered issues found in one story graph.

    Attributes:
        issues: Issues in detection order.
    """

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.WARNING]

    @property
    def has_errors(self) -> bool:
        """True if any issue has severity 'error'."""
        return any(i.severity == IssueSeverity.ERROR for i in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def of(self, category: IssueCategory) -> list[ValidationIssue]:
        """Issues of one category."""
        return [i for i in self.issues if i.category == category]

    @property
    def summary(self) -> str:
        """Human-readable summary of all issues."""
        if not self.issues:
            return "no issues"
        counts = [
            (len([i for i in self.issues if i.severity == sev]), label)
            for sev, label in (
                (IssueSeverity.ERROR, "errors"),
                (IssueSeverity.WARNING, "warnings"),
                (IssueSeverity.INFO, "info"),
            )
        ]
        return ", ".join(f"{n} {label}" for n, label in counts if n)

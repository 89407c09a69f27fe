"""Story-graph integrity: validation, repair, and the persistence guard."""

from storyloom.graph.errors import StoryIntegrityError
from storyloom.graph.guard import GuardedStore, GuardOutcome, IntegrityGuard
from storyloom.graph.integrity import validate
from storyloom.graph.repair import REPAIR_STEPS, RepairAction, RepairResult, repair
from storyloom.graph.store import JsonStoryStore, MemoryStoryStore, StoryStore
from storyloom.graph.validation_types import (
    IssueCategory,
    IssueSeverity,
    ValidationIssue,
    ValidationReport,
)

__all__ = [
    "REPAIR_STEPS",
    "GuardOutcome",
    "GuardedStore",
    "IntegrityGuard",
    "IssueCategory",
    "IssueSeverity",
    "JsonStoryStore",
    "MemoryStoryStore",
    "RepairAction",
    "RepairResult",
    "StoryIntegrityError",
    "StoryStore",
    "ValidationIssue",
    "ValidationReport",
    "repair",
    "validate",
]

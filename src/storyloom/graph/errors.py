"""Graph integrity error raised at persistence boundaries.

``validate()`` and ``repair()`` report violations as data. Only the
``IntegrityGuard`` turns remaining violations into an exception, and only
when its policy asks it to.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storyloom.graph.validation_types import ValidationReport


class StoryIntegrityError(Exception):
    """Raised when a story graph still violates invariants at a checkpoint.

    Attributes:
        story_id: Id of the offending story.
        checkpoint: Where the guard ran ("after_import", "after_restore",
            "before_save").
        report: The validation report of the graph that was rejected.
    """

    def __init__(self, story_id: str, checkpoint: str, report: ValidationReport) -> None:
        self.story_id = story_id
        self.checkpoint = checkpoint
        self.report = report
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = [
            f"Story '{self.story_id}' failed integrity checks at {self.checkpoint}: "
            f"{self.report.summary}"
        ]
        lines.extend(f"  - {issue.category}: {issue.message}" for issue in self.report.errors[:10])
        if len(self.report.errors) > 10:
            lines.append(f"  ... and {len(self.report.errors) - 10} more")
        return "\n".join(lines)

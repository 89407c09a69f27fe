"""Integrity gate for story graphs crossing a persistence boundary.

The guard runs at three checkpoints: right after an import is converted,
right after a graph is restored from storage, and right before a graph is
saved. At each one it validates the graph and, depending on its
``RepairPolicy``, repairs it, raises, or passes it through with the report
attached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storyloom.graph.errors import StoryIntegrityError
from storyloom.graph.integrity import validate
from storyloom.graph.repair import RepairAction, repair
from storyloom.observability.logging import get_logger
from storyloom.observability.tracing import NULL_TRACER
from storyloom.pipeline.config import RepairPolicy

if TYPE_CHECKING:
    from storyloom.graph.store import StoryStore
    from storyloom.graph.validation_types import ValidationReport
    from storyloom.models.story import StoryGraph
    from storyloom.observability.tracing import Tracer

log = get_logger(__name__)

AFTER_IMPORT = "after_import"
AFTER_RESTORE = "after_restore"
BEFORE_SAVE = "before_save"


@dataclass
class GuardOutcome:
    """What the guard decided at one checkpoint.

    Attributes:
        graph: The graph to use from here on (repaired copy or the input).
        report: Validation of ``graph``.
        repaired: True when ``graph`` is a repaired copy.
        actions: Repair actions, empty when no repair ran.
    """

    graph: StoryGraph
    report: ValidationReport
    repaired: bool = False
    actions: list[RepairAction] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.report.has_errors


class IntegrityGuard:
    """Validate, optionally repair, optionally block."""

    def __init__(self, policy: RepairPolicy | None = None, *, tracer: Tracer = NULL_TRACER) -> None:
        self.policy = policy or RepairPolicy()
        self._tracer = tracer

    def check(self, graph: StoryGraph, checkpoint: str) -> GuardOutcome:
        """Run the guard at a named checkpoint.

        Raises:
            StoryIntegrityError: If errors remain and the policy sets
                ``raise_on_error``.
        """
        report = validate(graph)
        outcome = GuardOutcome(graph=graph, report=report)

        if report.has_errors and self.policy.auto_repair:
            result = repair(graph, tracer=self._tracer)
            if result.success and result.final_report is not None:
                outcome = GuardOutcome(
                    graph=result.repaired,
                    report=result.final_report,
                    repaired=True,
                    actions=result.actions,
                )
                log.info(
                    "guard_repaired",
                    checkpoint=checkpoint,
                    story_id=graph.story.id,
                    actions=len(result.actions),
                )
            else:
                log.warning(
                    "guard_repair_failed",
                    checkpoint=checkpoint,
                    story_id=graph.story.id,
                    remaining_errors=len(result.final_report.errors) if result.final_report else 0,
                )

        if outcome.report.has_errors:
            if self.policy.raise_on_error:
                raise StoryIntegrityError(graph.story.id, checkpoint, outcome.report)
            log.warning(
                "guard_passed_with_errors",
                checkpoint=checkpoint,
                story_id=graph.story.id,
                summary=outcome.report.summary,
            )
        else:
            log.debug("guard_passed", checkpoint=checkpoint, story_id=graph.story.id)
        return outcome

    def after_import(self, graph: StoryGraph) -> GuardOutcome:
        return self.check(graph, AFTER_IMPORT)

    def after_restore(self, graph: StoryGraph) -> GuardOutcome:
        return self.check(graph, AFTER_RESTORE)

    def before_save(self, graph: StoryGraph) -> GuardOutcome:
        return self.check(graph, BEFORE_SAVE)


class GuardedStore:
    """A ``StoryStore`` that runs the guard around another store.

    ``save`` persists the guarded graph (the repaired copy when repair ran);
    ``load`` returns the guarded graph and leaves storage untouched.
    """

    def __init__(self, inner: StoryStore, guard: IntegrityGuard | None = None) -> None:
        self.inner = inner
        self.guard = guard or IntegrityGuard()

    def load(self, story_id: str) -> StoryGraph | None:
        graph = self.inner.load(story_id)
        if graph is None:
            return None
        return self.guard.after_restore(graph).graph

    def save(self, graph: StoryGraph) -> None:
        outcome = self.guard.before_save(graph)
        self.inner.save(outcome.graph)
        log.debug("story_saved", story_id=outcome.graph.story.id, repaired=outcome.repaired)

    def list_ids(self) -> list[str]:
        return self.inner.list_ids()

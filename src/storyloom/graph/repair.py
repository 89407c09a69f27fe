"""Deterministic story-graph repair.

``repair()`` runs the registered passes on a deep copy of the graph, in the
order the step registry derives from their declared dependencies:

1. ``reattach_scenes``: scenes pointing at a missing chapter move to the
   story's first chapter; dangling, repeated and foreign list references
   are pruned.
2. ``renumber_chapters``: the story's chapters get orders ``1..N``.
3. ``renumber_scenes``: each chapter's scenes get orders ``1..M``.
4. ``reconcile_orphans``: unlisted chapters and scenes are appended to
   their owner's list; chapters get the story's id.

Each pass is idempotent, and no pass deletes a chapter or a scene. Only
references that resolve to nothing are dropped. Repair cannot fix
duplicate entity ids, so a graph with them never repairs successfully.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storyloom.graph.integrity import chapter_index, listed_chapters, scene_index, validate
from storyloom.observability.tracing import NULL_TRACER
from storyloom.pipeline.registry import StepMeta, StepRegistry

if TYPE_CHECKING:
    from collections.abc import Callable

    from storyloom.graph.validation_types import ValidationReport
    from storyloom.models.story import Chapter, StoryGraph
    from storyloom.observability.tracing import Tracer


@dataclass(frozen=True)
class RepairAction:
    """One change made by a repair pass."""

    pass_name: str
    entity_id: str
    message: str

    def __str__(self) -> str:
        return f"[{self.pass_name}] {self.entity_id}: {self.message}"


@dataclass
class RepairResult:
    """Outcome of ``repair()``.

    Attributes:
        success: True when no error-severity issue remains.
        repaired: The repaired copy. The input graph is never modified.
        actions: Every change, in the order it was made.
        initial_report: Validation of the input graph.
        final_report: Validation of ``repaired``.
    """

    success: bool
    repaired: StoryGraph
    actions: list[RepairAction] = field(default_factory=list)
    initial_report: ValidationReport | None = None
    final_report: ValidationReport | None = None


@dataclass
class _PassContext:
    graph: StoryGraph
    tracer: Tracer
    actions: list[RepairAction] = field(default_factory=list)
    current: str = ""

    def record(self, entity_id: str, message: str) -> None:
        self.actions.append(RepairAction(self.current, entity_id, message))
        self.tracer.event("repair_action", step=self.current, entity_id=entity_id, message=message)


REPAIR_STEPS = StepRegistry()


def repair_pass(
    name: str, *, depends_on: tuple[str, ...] = (), description: str = ""
) -> Callable[[Callable[[_PassContext], None]], Callable[[_PassContext], None]]:
    """Register a repair pass in ``REPAIR_STEPS``."""

    def decorator(fn: Callable[[_PassContext], None]) -> Callable[[_PassContext], None]:
        REPAIR_STEPS.register(
            fn,
            StepMeta(
                name=name,
                depends_on=depends_on,
                priority=len(REPAIR_STEPS),
                description=description,
            ),
        )
        return fn

    return decorator


def _array_positions(graph: StoryGraph) -> dict[int, int]:
    """Array index of every chapter and scene, keyed by object identity."""
    positions = {id(c): i for i, c in enumerate(graph.chapters)}
    positions.update({id(s): i for i, s in enumerate(graph.scenes)})
    return positions


def first_chapter(graph: StoryGraph) -> Chapter | None:
    """The story's first chapter by (order, array index).

    Listed chapters are preferred; unlisted ones are used only when the
    story lists none.
    """
    positions = _array_positions(graph)
    candidates = listed_chapters(graph) or list(chapter_index(graph).values())
    if not candidates:
        return None
    return min(candidates, key=lambda c: (c.order, positions[id(c)]))


@repair_pass(
    "reattach_scenes",
    description="Move scenes with a missing chapter to the first chapter; prune bad references",
)
def reattach_scenes(ctx: _PassContext) -> None:
    graph = ctx.graph
    chapters = chapter_index(graph)
    target = first_chapter(graph)

    for scene in graph.scenes:
        if scene.chapter_id in chapters:
            continue
        if target is None:
            ctx.tracer.event("repair_no_chapter_for_scene", scene_id=scene.id)
            continue
        old = scene.chapter_id
        scene.order = max((s.order for s in graph.scenes_of(target.id)), default=0) + 1
        scene.chapter_id = target.id
        if scene.id not in target.scene_ids:
            target.scene_ids.append(scene.id)
        ctx.record(scene.id, f"reattached from missing chapter '{old}' to '{target.id}'")

    scenes = scene_index(graph)
    for chapter in graph.chapters:
        kept: list[str] = []
        for scene_id in chapter.scene_ids:
            scene = scenes.get(scene_id)
            if scene_id in kept:
                ctx.record(chapter.id, f"dropped repeated scene reference '{scene_id}'")
            elif scene is None:
                ctx.record(chapter.id, f"dropped reference to missing scene '{scene_id}'")
            elif scene.chapter_id != chapter.id:
                ctx.record(
                    chapter.id,
                    f"dropped reference to scene '{scene_id}' owned by '{scene.chapter_id}'",
                )
            else:
                kept.append(scene_id)
        chapter.scene_ids = kept

    story = graph.story
    kept_chapters: list[str] = []
    for chapter_id in story.chapter_ids:
        if chapter_id in kept_chapters:
            ctx.record(story.id, f"dropped repeated chapter reference '{chapter_id}'")
        elif chapter_id not in chapters:
            ctx.record(story.id, f"dropped reference to missing chapter '{chapter_id}'")
        else:
            kept_chapters.append(chapter_id)
    story.chapter_ids = kept_chapters


@repair_pass(
    "renumber_chapters",
    depends_on=("reattach_scenes",),
    description="Renumber the story's chapters to 1..N",
)
def renumber_chapters(ctx: _PassContext) -> None:
    graph = ctx.graph
    positions = _array_positions(graph)
    ordered = sorted(listed_chapters(graph), key=lambda c: (c.order, positions[id(c)]))
    for number, chapter in enumerate(ordered, start=1):
        if chapter.order != number:
            ctx.record(chapter.id, f"order {chapter.order} -> {number}")
            chapter.order = number

    new_ids = [c.id for c in ordered]
    if graph.story.chapter_ids != new_ids:
        graph.story.chapter_ids = new_ids
        ctx.record(graph.story.id, "chapter list re-sorted by order")


@repair_pass(
    "renumber_scenes",
    depends_on=("reattach_scenes",),
    description="Renumber each chapter's scenes to 1..M",
)
def renumber_scenes(ctx: _PassContext) -> None:
    graph = ctx.graph
    positions = _array_positions(graph)
    for chapter in chapter_index(graph).values():
        members = sorted(graph.scenes_of(chapter.id), key=lambda s: (s.order, positions[id(s)]))
        for number, scene in enumerate(members, start=1):
            if scene.order != number:
                ctx.record(scene.id, f"order {scene.order} -> {number}")
                scene.order = number

        rank = {s.id: s.order for s in reversed(members)}
        resorted = sorted(chapter.scene_ids, key=lambda sid: rank.get(sid, 0))
        if resorted != chapter.scene_ids:
            chapter.scene_ids = resorted
            ctx.record(chapter.id, "scene list re-sorted by order")


@repair_pass(
    "reconcile_orphans",
    depends_on=("renumber_chapters", "renumber_scenes"),
    description="List orphan chapters and scenes under their owners",
)
def reconcile_orphans(ctx: _PassContext) -> None:
    graph = ctx.graph
    story = graph.story
    chapters = chapter_index(graph)
    positions = _array_positions(graph)

    listed = set(story.chapter_ids)
    orphans = sorted(
        (c for c in chapters.values() if c.id not in listed),
        key=lambda c: (c.order, positions[id(c)]),
    )
    next_order = len(story.chapter_ids) + 1
    for chapter in orphans:
        story.chapter_ids.append(chapter.id)
        ctx.record(chapter.id, f"orphan chapter appended to story with order {next_order}")
        chapter.order = next_order
        next_order += 1

    for chapter in chapters.values():
        if chapter.story_id != story.id:
            ctx.record(chapter.id, f"story reference '{chapter.story_id}' -> '{story.id}'")
            chapter.story_id = story.id

    touched: dict[str, Chapter] = {}
    for scene in graph.scenes:
        owner = chapters.get(scene.chapter_id)
        if owner is not None and scene.id not in owner.scene_ids:
            owner.scene_ids.append(scene.id)
            touched[owner.id] = owner
            ctx.record(scene.id, f"orphan scene appended to chapter '{owner.id}'")

    for owner in touched.values():
        rank = {s.id: s.order for s in reversed(graph.scenes_of(owner.id))}
        owner.scene_ids.sort(key=lambda sid: rank.get(sid, 0))


def repair(graph: StoryGraph, *, tracer: Tracer = NULL_TRACER) -> RepairResult:
    """Repair a copy of ``graph``.

    Args:
        graph: The graph to repair. It is not modified.
        tracer: Receives one event per pass and per action.

    Returns:
        The repaired copy, the actions taken, and the validation reports
        before and after. ``success`` is False when error-severity issues
        remain; repair never raises for invariant violations.
    """
    initial = validate(graph)
    ctx = _PassContext(graph=graph.model_copy(deep=True), tracer=tracer)

    for meta, fn in REPAIR_STEPS.steps():
        ctx.current = meta.name
        before = len(ctx.actions)
        fn(ctx)
        tracer.event("repair_pass_completed", step=meta.name, actions=len(ctx.actions) - before)

    final = validate(ctx.graph)
    tracer.event(
        "repair_completed",
        success=not final.has_errors,
        actions=len(ctx.actions),
        remaining_errors=len(final.errors),
    )
    return RepairResult(
        success=not final.has_errors,
        repaired=ctx.graph,
        actions=ctx.actions,
        initial_report=initial,
        final_report=final,
    )

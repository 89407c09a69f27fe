"""Read-only integrity validation of a story graph.

``validate()`` never mutates the graph and never raises for a violation;
it returns every violation as a ``ValidationIssue``. Checks run in a fixed
order (identity, scene references, chapter scene lists, story chapter list,
chapter ownership, chapter positions, scene positions) so reports are
reproducible.

Membership rules used by the position checks:

- a story's chapters are the existing chapters named in ``story.chapter_ids``
  (first mention wins)
- a chapter's scenes are the scenes whose ``chapter_id`` names it, whether
  or not the chapter's ``scene_ids`` lists them
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

from storyloom.graph.validation_types import (
    IssueCategory,
    IssueSeverity,
    ValidationIssue,
    ValidationReport,
)

if TYPE_CHECKING:
    from storyloom.models.story import Chapter, Scene, StoryGraph

ERROR = IssueSeverity.ERROR
WARNING = IssueSeverity.WARNING


def _issue(
    severity: IssueSeverity,
    category: IssueCategory,
    entity_id: str,
    message: str,
    **context: Any,
) -> ValidationIssue:
    return ValidationIssue(
        severity=severity,
        category=category,
        entity_id=entity_id,
        message=message,
        context=context,
    )


def chapter_index(graph: StoryGraph) -> dict[str, Chapter]:
    """Chapters by id; the first chapter wins when ids repeat."""
    index: dict[str, Chapter] = {}
    for chapter in graph.chapters:
        index.setdefault(chapter.id, chapter)
    return index


def scene_index(graph: StoryGraph) -> dict[str, Scene]:
    """Scenes by id; the first scene wins when ids repeat."""
    index: dict[str, Scene] = {}
    for scene in graph.scenes:
        index.setdefault(scene.id, scene)
    return index


def listed_chapters(graph: StoryGraph) -> list[Chapter]:
    """Existing chapters named by the story, in list order, without repeats."""
    chapters = chapter_index(graph)
    seen: set[str] = set()
    result: list[Chapter] = []
    for chapter_id in graph.story.chapter_ids:
        if chapter_id in chapters and chapter_id not in seen:
            seen.add(chapter_id)
            result.append(chapters[chapter_id])
    return result


def member_scenes(graph: StoryGraph, chapter_id: str) -> list[Scene]:
    """Scenes whose chapter reference is ``chapter_id``, in array order."""
    return graph.scenes_of(chapter_id)


def _duplicate_ids(graph: StoryGraph) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for kind, ids in (
        ("chapter", [c.id for c in graph.chapters]),
        ("scene", [s.id for s in graph.scenes]),
    ):
        counts = Counter(ids)
        for entity_id in dict.fromkeys(ids):
            if counts[entity_id] > 1:
                issues.append(
                    _issue(
                        ERROR,
                        IssueCategory.DUPLICATE_ENTITY_ID,
                        entity_id,
                        f"{counts[entity_id]} {kind}s share the id '{entity_id}'",
                        kind=kind,
                        count=counts[entity_id],
                    )
                )
    return issues


def _scene_references(graph: StoryGraph, chapters: dict[str, Chapter]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for scene in graph.scenes:
        if scene.chapter_id not in chapters:
            issues.append(
                _issue(
                    ERROR,
                    IssueCategory.SCENE_INVALID_CHAPTER,
                    scene.id,
                    f"Scene '{scene.id}' references missing chapter '{scene.chapter_id}'",
                    chapter_id=scene.chapter_id,
                )
            )
    return issues


def _chapter_scene_lists(
    graph: StoryGraph,
    chapters: dict[str, Chapter],
    scenes: dict[str, Scene],
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for chapter in graph.chapters:
        seen: set[str] = set()
        reported_dupes: set[str] = set()
        for scene_id in chapter.scene_ids:
            if scene_id in seen:
                if scene_id not in reported_dupes:
                    reported_dupes.add(scene_id)
                    issues.append(
                        _issue(
                            ERROR,
                            IssueCategory.CHAPTER_DUPLICATE_SCENE_REF,
                            chapter.id,
                            f"Chapter '{chapter.id}' lists scene '{scene_id}' more than once",
                            scene_id=scene_id,
                        )
                    )
                continue
            seen.add(scene_id)
            scene = scenes.get(scene_id)
            if scene is None:
                issues.append(
                    _issue(
                        ERROR,
                        IssueCategory.CHAPTER_MISSING_SCENE,
                        chapter.id,
                        f"Chapter '{chapter.id}' lists missing scene '{scene_id}'",
                        scene_id=scene_id,
                    )
                )
            elif scene.chapter_id != chapter.id:
                issues.append(
                    _issue(
                        ERROR,
                        IssueCategory.CHAPTER_FOREIGN_SCENE,
                        chapter.id,
                        f"Chapter '{chapter.id}' lists scene '{scene_id}', "
                        f"which belongs to '{scene.chapter_id}'",
                        scene_id=scene_id,
                        owner_id=scene.chapter_id,
                    )
                )

    for scene in graph.scenes:
        owner = chapters.get(scene.chapter_id)
        if owner is not None and scene.id not in owner.scene_ids:
            issues.append(
                _issue(
                    WARNING,
                    IssueCategory.SCENE_NOT_IN_CHAPTER,
                    scene.id,
                    f"Scene '{scene.id}' is missing from chapter '{owner.id}' scene list",
                    chapter_id=owner.id,
                )
            )
    return issues


def _story_chapter_list(graph: StoryGraph, chapters: dict[str, Chapter]) -> list[ValidationIssue]:
    story = graph.story
    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    reported_dupes: set[str] = set()
    for chapter_id in story.chapter_ids:
        if chapter_id in seen:
            if chapter_id not in reported_dupes:
                reported_dupes.add(chapter_id)
                issues.append(
                    _issue(
                        ERROR,
                        IssueCategory.STORY_DUPLICATE_CHAPTER_REF,
                        story.id,
                        f"Story '{story.id}' lists chapter '{chapter_id}' more than once",
                        chapter_id=chapter_id,
                    )
                )
            continue
        seen.add(chapter_id)
        if chapter_id not in chapters:
            issues.append(
                _issue(
                    ERROR,
                    IssueCategory.STORY_MISSING_CHAPTER,
                    story.id,
                    f"Story '{story.id}' lists missing chapter '{chapter_id}'",
                    chapter_id=chapter_id,
                )
            )

    for chapter in chapters.values():
        if chapter.id not in seen:
            issues.append(
                _issue(
                    WARNING,
                    IssueCategory.ORPHANED_CHAPTER,
                    chapter.id,
                    f"Chapter '{chapter.id}' is not listed by story '{story.id}'",
                    story_id=story.id,
                )
            )
    return issues


def _chapter_ownership(graph: StoryGraph) -> list[ValidationIssue]:
    story = graph.story
    return [
        _issue(
            ERROR,
            IssueCategory.CHAPTER_WRONG_STORY,
            chapter.id,
            f"Chapter '{chapter.id}' names story '{chapter.story_id}', expected '{story.id}'",
            story_id=chapter.story_id,
            expected=story.id,
        )
        for chapter in listed_chapters(graph)
        if chapter.story_id != story.id
    ]


def position_issues(
    entries: list[tuple[str, int]],
    *,
    owner_id: str,
    kind: str,
) -> list[ValidationIssue]:
    """Check that ``order`` values of one group form exactly ``1..N``.

    Args:
        entries: ``(entity_id, order)`` for every member, in array order.
        owner_id: Story id for chapters, chapter id for scenes.
        kind: "chapter" or "scene".
    """
    if kind == "chapter":
        invalid = IssueCategory.CHAPTER_INVALID_POSITION
        duplicate = IssueCategory.CHAPTER_DUPLICATE_POSITION
        missing = IssueCategory.CHAPTER_MISSING_POSITION
    else:
        invalid = IssueCategory.SCENE_INVALID_POSITION
        duplicate = IssueCategory.SCENE_DUPLICATE_POSITION
        missing = IssueCategory.SCENE_MISSING_POSITION

    size = len(entries)
    issues: list[ValidationIssue] = []
    holders: dict[int, str] = {}
    for entity_id, order in entries:
        if not 1 <= order <= size:
            issues.append(
                _issue(
                    ERROR,
                    invalid,
                    entity_id,
                    f"{kind.capitalize()} '{entity_id}' has order {order}, outside 1..{size}",
                    order=order,
                    expected_range=[1, size],
                    owner_id=owner_id,
                )
            )
        elif order in holders:
            issues.append(
                _issue(
                    ERROR,
                    duplicate,
                    entity_id,
                    f"{kind.capitalize()} '{entity_id}' repeats order {order} "
                    f"already held by '{holders[order]}'",
                    order=order,
                    conflicts_with=holders[order],
                    owner_id=owner_id,
                )
            )
        else:
            holders[order] = entity_id

    for position in range(1, size + 1):
        if position not in holders:
            issues.append(
                _issue(
                    ERROR,
                    missing,
                    owner_id,
                    f"No {kind} holds order {position} in '{owner_id}'",
                    position=position,
                )
            )
    return issues


def validate(graph: StoryGraph) -> ValidationReport:
    """Check every integrity invariant of ``graph``.

    Returns:
        All violations, in check order. An empty report means the graph is
        consistent.
    """
    chapters = chapter_index(graph)
    scenes = scene_index(graph)

    issues: list[ValidationIssue] = []
    issues.extend(_duplicate_ids(graph))
    issues.extend(_scene_references(graph, chapters))
    issues.extend(_chapter_scene_lists(graph, chapters, scenes))
    issues.extend(_story_chapter_list(graph, chapters))
    issues.extend(_chapter_ownership(graph))

    story_chapters = listed_chapters(graph)
    issues.extend(
        position_issues(
            [(c.id, c.order) for c in story_chapters],
            owner_id=graph.story.id,
            kind="chapter",
        )
    )
    for chapter in graph.chapters:
        if chapters[chapter.id] is not chapter:
            continue
        issues.extend(
            position_issues(
                [(s.id, s.order) for s in member_scenes(graph, chapter.id)],
                owner_id=chapter.id,
                kind="scene",
            )
        )
    return ValidationReport(issues=issues)

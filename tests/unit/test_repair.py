"""Tests for deterministic story graph repair."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from storyloom.graph.integrity import validate
from storyloom.graph.repair import REPAIR_STEPS, RepairAction, first_chapter, repair
from storyloom.graph.validation_types import IssueCategory
from tests.fixtures.story_graphs import (
    corrupted_graphs,
    make_chapter,
    make_dangling_scene_graph,
    make_duplicate_order_graph,
    make_graph,
    make_scene,
)

if TYPE_CHECKING:
    from storyloom.models.story import StoryGraph
    from storyloom.observability.tracing import RecordingTracer

CORRUPTED = corrupted_graphs()
CORRUPTED_IDS = [label for label, _graph in CORRUPTED]


def _payload(graph: StoryGraph) -> tuple[set[tuple[str, ...]], set[tuple[str, str]]]:
    scenes = {(s.id, s.title, s.content, str(s.word_count)) for s in graph.scenes}
    chapters = {(c.id, c.title) for c in graph.chapters}
    return scenes, chapters


class TestScenarios:
    def test_dangling_scene_reattached_to_first_chapter(self) -> None:
        graph = make_dangling_scene_graph()

        result = repair(graph)

        assert result.success
        fixed = result.repaired
        s3 = fixed.scene("s3")
        assert s3 is not None
        assert s3.chapter_id == "c1"
        assert s3.order == 3
        c1 = fixed.chapter("c1")
        assert c1 is not None
        assert c1.scene_ids == ["s1", "s2", "s3"]
        assert [str(a) for a in result.actions] == [
            "[reattach_scenes] s3: reattached from missing chapter 'C999' to 'c1'"
        ]
        assert validate(fixed).issues == []

    def test_duplicate_chapter_orders_renumbered(self) -> None:
        result = repair(make_duplicate_order_graph())

        assert result.success
        assert [(c.id, c.order) for c in result.repaired.chapters] == [
            ("ca", 1),
            ("cb", 2),
            ("cc", 3),
        ]
        assert result.actions == [RepairAction("renumber_chapters", "cb", "order 1 -> 2")]

    def test_consistent_graph_untouched(self, consistent_graph: StoryGraph) -> None:
        result = repair(consistent_graph)

        assert result.success
        assert result.actions == []
        assert result.repaired == consistent_graph
        assert result.initial_report is not None
        assert result.initial_report.issues == []


class TestRepairProperties:
    @pytest.mark.parametrize(("label", "graph"), CORRUPTED, ids=CORRUPTED_IDS)
    def test_repair_yields_consistent_graph(self, label: str, graph: StoryGraph) -> None:
        result = repair(graph)

        assert result.success, label
        assert result.final_report is not None
        assert result.final_report.issues == []
        assert validate(result.repaired).issues == []

    @pytest.mark.parametrize(("label", "graph"), CORRUPTED, ids=CORRUPTED_IDS)
    def test_repair_is_idempotent(self, label: str, graph: StoryGraph) -> None:
        first = repair(graph)
        second = repair(first.repaired)

        assert second.actions == [], label
        assert second.repaired == first.repaired

    @pytest.mark.parametrize(("label", "graph"), CORRUPTED, ids=CORRUPTED_IDS)
    def test_every_scene_resolves(self, label: str, graph: StoryGraph) -> None:
        fixed = repair(graph).repaired
        chapter_ids = {c.id for c in fixed.chapters}

        assert all(s.chapter_id in chapter_ids for s in fixed.scenes), label
        for chapter in fixed.chapters:
            orders = sorted(s.order for s in fixed.scenes_of(chapter.id))
            assert orders == list(range(1, len(orders) + 1))
        assert sorted(c.order for c in fixed.chapters) == list(range(1, len(fixed.chapters) + 1))

    @pytest.mark.parametrize(("label", "graph"), CORRUPTED, ids=CORRUPTED_IDS)
    def test_nothing_is_deleted(self, label: str, graph: StoryGraph) -> None:
        fixed = repair(graph).repaired

        assert _payload(fixed) == _payload(graph), label
        assert len(fixed.scenes) == len(graph.scenes)
        assert len(fixed.chapters) == len(graph.chapters)

    @pytest.mark.parametrize(("label", "graph"), CORRUPTED, ids=CORRUPTED_IDS)
    def test_input_not_modified(self, label: str, graph: StoryGraph) -> None:
        before = graph.model_dump()

        repair(graph)

        assert graph.model_dump() == before, label


class TestUnrepairable:
    def test_duplicate_ids_never_succeed(self) -> None:
        graph = make_graph(
            [make_chapter("c1", 1, ["s1"])],
            [make_scene("s1", "c1", 1), make_scene("s1", "c1", 2)],
        )

        result = repair(graph)

        assert not result.success
        assert result.final_report is not None
        assert result.final_report.of(IssueCategory.DUPLICATE_ENTITY_ID)

    def test_no_chapter_to_reattach_to(self, recorder: RecordingTracer) -> None:
        graph = make_graph([], [make_scene("s1", "gone", 1)])

        result = repair(graph, tracer=recorder)

        assert not result.success
        assert result.repaired.scenes[0].chapter_id == "gone"
        assert [e.fields for e in recorder.of("repair_no_chapter_for_scene")] == [
            {"scene_id": "s1"}
        ]


class TestPasses:
    def test_pass_order(self) -> None:
        assert REPAIR_STEPS.execution_order() == [
            "reattach_scenes",
            "renumber_chapters",
            "renumber_scenes",
            "reconcile_orphans",
        ]
        assert REPAIR_STEPS.validate() == []

    def test_first_chapter_prefers_listed(self) -> None:
        graph = make_graph(
            [make_chapter("unlisted", 1), make_chapter("c2", 3), make_chapter("c1", 2)],
            [],
            chapter_ids=["c2", "c1"],
        )

        chapter = first_chapter(graph)

        assert chapter is not None
        assert chapter.id == "c1"

    def test_first_chapter_falls_back_to_unlisted(self) -> None:
        graph = make_graph([make_chapter("b", 2), make_chapter("a", 2)], [], chapter_ids=[])

        chapter = first_chapter(graph)

        assert chapter is not None
        assert chapter.id == "b"
        assert first_chapter(make_graph([], [])) is None

    def test_reattached_scene_goes_last(self) -> None:
        graph = make_graph(
            [make_chapter("c1", 1, ["s1"])],
            [make_scene("s9", "void", 1), make_scene("s1", "c1", 1)],
        )

        fixed = repair(graph).repaired

        c1 = fixed.chapter("c1")
        assert c1 is not None
        assert c1.scene_ids == ["s1", "s9"]
        assert [(s.id, s.order) for s in fixed.scenes] == [("s9", 2), ("s1", 1)]

    def test_orphans_appended_after_listed(self) -> None:
        graph = make_graph(
            [make_chapter("late", 1, ["s1"]), make_chapter("c1", 5, ["s2"])],
            [make_scene("s1", "late", 1), make_scene("s2", "c1", 1)],
            chapter_ids=["c1"],
        )

        fixed = repair(graph).repaired

        assert fixed.story.chapter_ids == ["c1", "late"]
        assert [(c.id, c.order) for c in fixed.chapters] == [("late", 2), ("c1", 1)]

    def test_chapter_story_reference_fixed(self) -> None:
        graph = make_graph([make_chapter("c1", 1, story_id="other")], [])

        result = repair(graph)

        assert result.repaired.chapters[0].story_id == "story-1"
        assert result.actions[0].pass_name == "reconcile_orphans"

    def test_timestamps_untouched(self) -> None:
        graph = make_duplicate_order_graph()

        fixed = repair(graph).repaired

        assert fixed.story.created_at == graph.story.created_at
        assert fixed.story.updated_at == graph.story.updated_at


class TestTracing:
    def test_events(self, recorder: RecordingTracer) -> None:
        result = repair(make_dangling_scene_graph(), tracer=recorder)

        completed = recorder.of("repair_pass_completed")
        assert [e.fields["step"] for e in completed] == REPAIR_STEPS.execution_order()
        assert [e.fields["actions"] for e in completed] == [1, 0, 0, 0]
        assert len(recorder.of("repair_action")) == len(result.actions)
        assert recorder.of("repair_completed")[0].fields == {
            "success": True,
            "actions": 1,
            "remaining_errors": 0,
        }

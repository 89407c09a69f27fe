"""Tests for word counting."""

from __future__ import annotations

from storyloom.pipeline.stages.chapters import detect_chapters
from storyloom.pipeline.stages.counting import (
    chapter_spans,
    count_document,
    count_lines,
    count_words,
    scene_spans,
)
from storyloom.pipeline.stages.scenes import detect_scenes


class TestCountWords:
    def test_whitespace_runs(self) -> None:
        assert count_words("Hello   world.\tHow are\nyou?") == 5

    def test_punctuation_counts_as_a_word(self) -> None:
        assert count_words("Wait - what?") == 3

    def test_empty(self) -> None:
        assert count_words("") == 0
        assert count_words("   \n\t ") == 0

    def test_idempotent(self) -> None:
        text = "The lamp room smelled of oil."
        assert count_words(text) == count_words(text) == 6


class TestSpans:
    LINES = ["Chapter 1", "", "One two.", "***", "Three.", "Chapter 2", "Four five six."]

    def test_chapter_spans_exclude_heading(self) -> None:
        chapters = detect_chapters(self.LINES)
        assert chapter_spans(chapters, len(self.LINES)) == [(1, 5), (6, 7)]

    def test_scene_spans_skip_markup_lines(self) -> None:
        chapters = detect_chapters(self.LINES)
        scenes = detect_scenes(self.LINES, chapters)

        assert scene_spans(scenes, len(self.LINES)) == [(1, 3), (4, 5), (6, 7)]

    def test_paragraph_scene_starts_on_break_line(self) -> None:
        lines = ["One.", "", "", "Two three."]
        scenes = detect_scenes(lines, [])
        assert scene_spans(scenes, len(lines)) == [(3, 4)]


class TestCountDocument:
    def test_scenario_single_chapter(self) -> None:
        lines = ["Chapter 1", "", "Hello world."]
        chapters = detect_chapters(lines)
        scenes = detect_scenes(lines, chapters)

        counts = count_document(lines, chapters, scenes)

        assert counts.total == 4
        assert counts.chapters == [2]
        assert counts.scenes == [2]
        assert counts.front_matter == 0

    def test_spans_add_up(self) -> None:
        lines = [
            "Preface text here.",
            "",
            "Chapter 1",
            "One two.",
            "***",
            "Three.",
            "Chapter 2",
            "Four.",
        ]
        chapters = detect_chapters(lines)
        scenes = detect_scenes(lines, chapters)

        counts = count_document(lines, chapters, scenes)

        markup = sum(
            count_words(lines[s.line_index]) for s in scenes if s.break_type != "paragraph"
        )
        assert counts.front_matter == 3
        assert counts.total == counts.front_matter + sum(counts.scenes) + markup
        assert sum(counts.chapters) == count_lines(lines, 3, 6) + count_lines(lines, 7, 8)

    def test_no_structure(self) -> None:
        lines = ["Just one paragraph of text."]

        counts = count_document(lines, [], [])

        assert counts.total == 5
        assert counts.chapters == []
        assert counts.scenes == []
        assert counts.front_matter == 5

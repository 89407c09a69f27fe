"""Tests for the import pipeline orchestrator."""

from __future__ import annotations

import pytest

from storyloom.errors import EncodingError, FileValidationError, PipelineError
from storyloom.observability.tracing import RecordingTracer
from storyloom.pipeline.config import ImportConfig
from storyloom.pipeline.orchestrator import ImportPipeline, extract_title, import_bytes


class _FakeExtractor:
    def __init__(self, text: str = "Chapter 1\n\nExtracted text here.") -> None:
        self.text = text
        self.calls: list[str] = []

    def extract(self, data: bytes, filename: str) -> str:
        self.calls.append(filename)
        return self.text


class _BrokenExtractor:
    def extract(self, data: bytes, filename: str) -> str:
        raise ValueError("not a real PDF")


class TestExtractTitle:
    def test_explicit_title_wins(self) -> None:
        assert extract_title("  My Book ", "file.txt", ["First line"]) == "My Book"

    def test_filename_next(self) -> None:
        assert extract_title(None, "the_keeper.txt", ["First line"]) == "the_keeper"

    def test_first_short_line(self) -> None:
        lines = ["", "x" * 120, "  The Keeper  ", "Text"]
        assert extract_title(None, "", lines) == "The Keeper"

    def test_default(self) -> None:
        assert extract_title("", "", ["", "   "]) == "Imported Story"


class TestScenarios:
    def test_single_chapter(self) -> None:
        result = import_bytes(b"Chapter 1\n\nHello world.")

        assert len(result.chapters) == 1
        assert result.chapters[0].title == "Chapter 1"
        assert result.chapters[0].confidence >= 0.95
        assert len(result.scenes) == 1
        assert result.word_counts.total == 4
        assert result.word_counts.chapters == [2]
        assert result.word_counts.scenes == [2]
        assert result.title == "Chapter 1"

    def test_symbol_title_falls_back(self) -> None:
        result = import_bytes(b"Intro text.\n\n# *** ###\nThe story begins.")

        assert [c.title for c in result.chapters] == ["Chapter 1"]

    def test_three_blank_lines(self) -> None:
        result = import_bytes(b"First paragraph.\n\n\n\nSecond paragraph.")

        paragraph = [s for s in result.scenes if s.break_type == "paragraph"]
        assert len(paragraph) == 1
        assert paragraph[0].line_index == 4

    def test_speech_attribution(self) -> None:
        text = '"Maria" said, "Let\'s go."\nThe sun rose.\n"Maria" said, "Let\'s go."\n'

        result = import_bytes(text.encode())

        names = [c.name for c in result.characters]
        assert names == ["Maria"]
        assert result.characters[0].confidence >= 0.5

    def test_chapter_headings_are_not_characters(self) -> None:
        body = "".join(
            f"Chapter {i}\n\nThe rain fell on the town. Nothing moved in the square.\n"
            for i in range(1, 9)
        )

        result = import_bytes(body.encode(), "book.txt")

        assert len(result.chapters) == 8
        assert result.characters == []


class TestManuscript:
    def test_structure(self, manuscript_text: str) -> None:
        result = import_bytes(manuscript_text.encode())

        assert result.title == "The Lighthouse Keeper"
        assert result.encoding.encoding == "UTF-8"
        assert result.normalized.original_line_ending == "LF"
        assert [c.title for c in result.chapters] == ["Chapter 1: Arrival", "Chapter 2: The Storm"]
        assert [s.break_type for s in result.scenes] == [
            "chapter-boundary",
            "explicit",
            "chapter-boundary",
            "paragraph",
        ]
        assert [c.name for c in result.characters] == ["Maria", "Tomas"]
        assert result.validation.is_valid
        assert result.validation.warnings == []

    def test_preview(self, manuscript_text: str) -> None:
        result = import_bytes(manuscript_text.encode())
        preview = result.preview

        assert preview.chapter_count == 2
        assert preview.scene_count == 4
        assert preview.character_count == 2
        assert preview.total_words == result.word_counts.total
        assert preview.chapter_titles == ["Chapter 1: Arrival", "Chapter 2: The Storm"]
        assert preview.preview_text.startswith("The Lighthouse Keeper  Chapter 1: Arrival")

    def test_crlf_input_gives_same_structure(self, manuscript_text: str) -> None:
        lf = import_bytes(manuscript_text.encode())
        crlf = import_bytes(manuscript_text.replace("\n", "\r\n").encode())

        assert crlf.normalized.original_line_ending == "CRLF"
        assert crlf.chapters == lf.chapters
        assert crlf.scenes == lf.scenes
        assert crlf.characters == lf.characters
        assert crlf.word_counts == lf.word_counts


class TestDeterminism:
    def test_identical_bytes_identical_result(self, manuscript_text: str) -> None:
        data = manuscript_text.encode()

        first = ImportPipeline().run(data, "lighthouse.txt")
        second = ImportPipeline().run(data, "lighthouse.txt")

        assert first.model_dump() == second.model_dump()
        assert first.model_dump_json() == second.model_dump_json()

    def test_pipeline_instance_is_reusable(self, manuscript_text: str) -> None:
        pipeline = ImportPipeline()
        data = manuscript_text.encode()

        assert pipeline.run(data) == pipeline.run(data)


class TestErrors:
    def test_empty_input(self) -> None:
        with pytest.raises(FileValidationError):
            import_bytes(b"", "story.txt")

    def test_oversized_input(self) -> None:
        with pytest.raises(FileValidationError, match="File too large"):
            import_bytes(b"x" * 100, "story.txt", config=ImportConfig(max_file_bytes=50))

    def test_unsupported_extension(self) -> None:
        with pytest.raises(FileValidationError, match="not supported"):
            import_bytes(b"text", "story.rtf")

    def test_corrupted_input(self) -> None:
        with pytest.raises(EncodingError):
            import_bytes(bytes(range(1, 32)) * 10, "story.txt")

    def test_rich_file_without_extractor(self) -> None:
        with pytest.raises(FileValidationError, match="need a text extractor"):
            import_bytes(b"%PDF-1.4", "novel.pdf")

    def test_extractor_failure_wrapped(self) -> None:
        pipeline = ImportPipeline(extractor=_BrokenExtractor())

        with pytest.raises(PipelineError) as exc_info:
            pipeline.run(b"%PDF-1.4", "novel.pdf")

        assert exc_info.value.stage == "extract"
        assert exc_info.value.code == "PIPELINE_ERROR"
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_stage_failure_wrapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def explode(*args: object, **kwargs: object) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr("storyloom.pipeline.orchestrator.detect_scenes", explode)

        with pytest.raises(PipelineError, match="stage 'scenes': boom") as exc_info:
            import_bytes(b"Chapter 1\n\nText.")

        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestExtractorPath:
    def test_extracted_text_imported(self) -> None:
        extractor = _FakeExtractor()

        result = ImportPipeline(extractor=extractor).run(b"%PDF-1.4 binary", "novel.pdf")

        assert extractor.calls == ["novel.pdf"]
        assert result.encoding.encoding == "PDF (extracted)"
        assert result.encoding.confidence == 1.0
        assert result.title == "novel"
        assert [c.title for c in result.chapters] == ["Chapter 1"]


class TestTracing:
    def test_stage_events(self) -> None:
        recorder = RecordingTracer()

        ImportPipeline(tracer=recorder).run(b"Chapter 1\n\nHello world.")

        stages = [e.fields["stage"] for e in recorder.of("stage_started")]
        assert stages == [
            "normalize",
            "chapters",
            "chapter_titles",
            "scenes",
            "characters",
            "counting",
            "validation",
            "preview",
        ]
        assert "chapter_accepted" in recorder.names()
        assert "encoding_accepted" in recorder.names()

    def test_tracer_does_not_change_result(self) -> None:
        data = b"Chapter 1\n\nHello world."
        assert ImportPipeline(tracer=RecordingTracer()).run(data) == ImportPipeline().run(data)

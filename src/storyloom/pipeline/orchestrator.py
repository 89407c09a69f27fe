"""Import pipeline orchestration.

Runs the stages in their fixed order (decode, normalize, detect chapters,
detect scenes, detect characters, count, check) and assembles the
``ImportResult``. Import errors raised by a stage propagate unchanged; any
other exception is wrapped in ``PipelineError`` naming the stage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from storyloom.errors import FileValidationError, PipelineError, StoryImportError
from storyloom.models.ingest import DecodedText, EncodingReport, ImportResult
from storyloom.observability.logging import get_logger
from storyloom.observability.tracing import NULL_TRACER
from storyloom.pipeline.checks import build_preview, validate_import
from storyloom.pipeline.config import ImportConfig
from storyloom.pipeline.extractor import file_kind, title_from_filename, validate_file
from storyloom.pipeline.stages import (
    count_document,
    dedupe_titles,
    detect_chapters,
    detect_characters,
    detect_scenes,
    normalize_lines,
    recover_text,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from storyloom.observability.tracing import Tracer
    from storyloom.pipeline.extractor import TextExtractor

log = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TITLE = "Imported Story"
MAX_TITLE_LINE = 100


def extract_title(explicit: str | None, filename: str, lines: Sequence[str]) -> str:
    """Pick the story title.

    Order: explicit title, filename without extension, first non-empty line
    shorter than 100 characters, then "Imported Story".
    """
    if explicit and explicit.strip():
        return explicit.strip()
    from_name = title_from_filename(filename)
    if from_name:
        return from_name
    for line in lines:
        stripped = line.strip()
        if stripped and len(stripped) < MAX_TITLE_LINE:
            return stripped
    return DEFAULT_TITLE


class ImportPipeline:
    """Turn raw bytes into an ``ImportResult``.

    The pipeline holds no per-document state, so one instance can import any
    number of documents, and identical bytes always give equal results.

    Attributes:
        config: Thresholds used by every stage.
    """

    def __init__(
        self,
        config: ImportConfig | None = None,
        *,
        extractor: TextExtractor | None = None,
        tracer: Tracer = NULL_TRACER,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Thresholds; defaults when omitted.
            extractor: Text extractor for PDF and DOCX containers. Without
                one, those inputs are rejected.
            tracer: Receives the detectors' decisions.
        """
        self.config = config or ImportConfig()
        self._extractor = extractor
        self._tracer = tracer

    def _stage(self, name: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        self._tracer.event("stage_started", stage=name)
        try:
            return fn(*args, **kwargs)
        except StoryImportError:
            raise
        except Exception as e:
            log.error("import_stage_failed", stage=name, error=str(e))
            raise PipelineError(name, str(e)) from e

    def _decode(self, data: bytes, filename: str) -> DecodedText:
        kind = file_kind(filename) if filename else "text"
        if kind == "text":
            return recover_text(
                data,
                corruption_ratio=self.config.corruption_ratio,
                tracer=self._tracer,
            )

        if self._extractor is None:
            raise FileValidationError(
                f"{kind.upper()} files need a text extractor; none was configured"
            )
        text = self._stage("extract", self._extractor.extract, data, filename)
        return DecodedText(
            text=text,
            report=EncodingReport(encoding=f"{kind.upper()} (extracted)", confidence=1.0),
            character_count=len(text),
            byte_length=len(text.encode("utf-8")),
        )

    def run(self, data: bytes, filename: str = "", *, title: str | None = None) -> ImportResult:
        """Import one document.

        Args:
            data: Raw file contents.
            filename: Original filename; selects the decode path and supplies
                a fallback title. Empty means plain text.
            title: Explicit story title.

        Returns:
            The detected structure with counts, checks and preview.

        Raises:
            FileValidationError: If the input is empty, too large, or of an
                unsupported type.
            EncodingError: If the input cannot be decoded or is corrupted.
            PipelineError: If a later stage fails unexpectedly.
        """
        cfg = self.config
        warnings = validate_file(
            filename,
            len(data),
            max_bytes=cfg.max_file_bytes,
            large_bytes=cfg.large_file_bytes,
        )
        log.debug("import_started", filename=filename, bytes=len(data))

        decoded = self._decode(data, filename)
        normalized = self._stage("normalize", normalize_lines, decoded.text)
        lines = normalized.lines

        chapters = self._stage(
            "chapters",
            detect_chapters,
            lines,
            min_confidence=cfg.chapter_min_confidence,
            tracer=self._tracer,
        )
        chapters, rename_warnings = self._stage("chapter_titles", dedupe_titles, chapters)
        warnings.extend(rename_warnings)

        scenes = self._stage("scenes", detect_scenes, lines, chapters, tracer=self._tracer)
        characters = self._stage(
            "characters",
            detect_characters,
            lines,
            min_confidence=cfg.character_min_confidence,
            min_occurrences_strong=cfg.character_min_occurrences_strong,
            min_occurrences_weak=cfg.character_min_occurrences_weak,
            skip_lines={c.line_index for c in chapters},
            tracer=self._tracer,
        )
        word_counts = self._stage("counting", count_document, lines, chapters, scenes)

        validation = self._stage(
            "validation",
            validate_import,
            normalized,
            chapters,
            encoding=decoded.report,
            extra_warnings=warnings,
            config=cfg,
        )
        preview = self._stage(
            "preview",
            build_preview,
            normalized,
            chapters,
            scenes,
            characters,
            word_counts,
            config=cfg,
        )

        result = ImportResult(
            title=extract_title(title, filename, lines),
            encoding=decoded.report,
            normalized=normalized,
            chapters=chapters,
            scenes=scenes,
            characters=characters,
            word_counts=word_counts,
            validation=validation,
            preview=preview,
        )
        log.info(
            "import_completed",
            title=result.title,
            encoding=decoded.report.encoding,
            chapters=len(chapters),
            scenes=len(scenes),
            characters=len(characters),
            words=word_counts.total,
            valid=validation.is_valid,
        )
        return result


def import_bytes(
    data: bytes,
    filename: str = "",
    *,
    title: str | None = None,
    config: ImportConfig | None = None,
) -> ImportResult:
    """Convenience wrapper: run a default ``ImportPipeline`` once."""
    return ImportPipeline(config).run(data, filename, title=title)

"""Import error types.

Every failure of the import pipeline is a ``StoryImportError`` carrying a
machine-readable ``code``. Invariant violations in a story graph are *not*
errors in this sense: they are reported as data by ``graph.integrity``.
"""

from __future__ import annotations


class StoryImportError(Exception):
    """Base class for failures while turning bytes into an ImportResult.

    Attributes:
        code: Stable identifier for programmatic handling.
    """

    code = "IMPORT_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class FileValidationError(StoryImportError):
    """Raised before decoding when the input cannot be imported at all.

    Covers empty input, oversized input, unsupported extensions, and rich
    containers supplied without a text extractor.
    """

    code = "FILE_VALIDATION_ERROR"


class EncodingError(StoryImportError):
    """Raised when decoded text is unusable.

    Two situations trigger it: the decoded text is heavily corrupted
    (too many unprintable characters), or no decode path produced a string.
    The second cannot happen with the built-in strategies because the final
    fallback always decodes; it is kept for custom strategy lists.
    """

    code = "ENCODING_ERROR"


class PipelineError(StoryImportError):
    """Raised when a stage after decoding fails unexpectedly.

    The original exception is chained as ``__cause__``.

    Attributes:
        stage: Name of the stage that failed.
    """

    code = "PIPELINE_ERROR"

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        super().__init__(f"Pipeline error in stage '{stage}': {message}")

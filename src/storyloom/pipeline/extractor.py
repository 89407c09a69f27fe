"""Input file checks and the text-extractor collaborator.

Plain text and markdown are decoded directly. PDF and DOCX containers are
handed to a ``TextExtractor`` supplied by the caller; this package does not
parse binary formats itself.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Literal, Protocol, runtime_checkable

from storyloom.errors import FileValidationError

FileKind = Literal["text", "pdf", "docx"]

TEXT_EXTENSIONS = frozenset({".txt", ".md", ".markdown", ".text", ".mdwn"})
RICH_EXTENSIONS: dict[str, FileKind] = {".pdf": "pdf", ".docx": "docx"}

MB = 1024 * 1024


@runtime_checkable
class TextExtractor(Protocol):
    """Turns a rich document container into plain text."""

    def extract(self, data: bytes, filename: str) -> str:
        """Return the document's text.

        Raises:
            Exception: Any failure; the pipeline wraps it in PipelineError.
        """
        ...


def file_kind(filename: str) -> FileKind:
    """Classify a file by extension.

    Raises:
        FileValidationError: If the extension is not supported.
    """
    suffix = PurePath(filename).suffix.lower()
    if suffix in TEXT_EXTENSIONS:
        return "text"
    if suffix in RICH_EXTENSIONS:
        return RICH_EXTENSIONS[suffix]
    supported = ", ".join(sorted(TEXT_EXTENSIONS | set(RICH_EXTENSIONS)))
    raise FileValidationError(
        f"File format not supported: '{suffix or filename}'. Supported extensions: {supported}"
    )


def validate_file(
    filename: str,
    size: int,
    *,
    max_bytes: int = 50 * MB,
    large_bytes: int = 10 * MB,
) -> list[str]:
    """Check an input before reading it.

    Returns:
        Warnings (currently only the large-input warning).

    Raises:
        FileValidationError: If the input is empty, too large, or of an
            unsupported type.
    """
    if size == 0:
        raise FileValidationError("File is empty. Please import a file with content.")
    if size > max_bytes:
        raise FileValidationError(
            f"File too large: {size / MB:.2f}MB. Maximum size is {max_bytes / MB:.0f}MB."
        )
    if filename:
        file_kind(filename)

    warnings: list[str] = []
    if size > large_bytes:
        warnings.append(
            f"Large file detected ({size / MB:.2f}MB). Processing may take longer."
        )
    return warnings


def title_from_filename(filename: str) -> str:
    """Filename without directory or extension (may be empty)."""
    return PurePath(filename).stem.strip() if filename else ""

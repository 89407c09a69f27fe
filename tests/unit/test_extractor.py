"""Tests for input file checks and the extractor protocol."""

from __future__ import annotations

import pytest

from storyloom.errors import FileValidationError
from storyloom.pipeline.extractor import (
    MB,
    TextExtractor,
    file_kind,
    title_from_filename,
    validate_file,
)


class _UpperExtractor:
    def extract(self, data: bytes, filename: str) -> str:
        return data.decode().upper()


class TestFileKind:
    @pytest.mark.parametrize("name", ["story.txt", "STORY.MD", "a.markdown", "b.text", "c.mdwn"])
    def test_text(self, name: str) -> None:
        assert file_kind(name) == "text"

    def test_rich_containers(self) -> None:
        assert file_kind("novel.pdf") == "pdf"
        assert file_kind("draft.DOCX") == "docx"

    @pytest.mark.parametrize("name", ["image.png", "book.epub", "noextension"])
    def test_unsupported(self, name: str) -> None:
        with pytest.raises(FileValidationError, match="File format not supported"):
            file_kind(name)


class TestValidateFile:
    def test_empty_rejected(self) -> None:
        with pytest.raises(FileValidationError, match="empty"):
            validate_file("story.txt", 0)

    def test_too_large_rejected(self) -> None:
        with pytest.raises(FileValidationError, match="File too large"):
            validate_file("story.txt", 51 * MB)

    def test_large_file_warns(self) -> None:
        warnings = validate_file("story.txt", 11 * MB)

        assert len(warnings) == 1
        assert "Large file detected" in warnings[0]

    def test_limits_configurable(self) -> None:
        with pytest.raises(FileValidationError):
            validate_file("story.txt", 200, max_bytes=100)
        assert validate_file("story.txt", 50, max_bytes=100, large_bytes=10)

    def test_extension_checked(self) -> None:
        with pytest.raises(FileValidationError):
            validate_file("story.exe", 10)

    def test_nameless_input_allowed(self) -> None:
        assert validate_file("", 10) == []

    def test_error_code(self) -> None:
        with pytest.raises(FileValidationError) as exc_info:
            validate_file("story.txt", 0)
        assert exc_info.value.code == "FILE_VALIDATION_ERROR"


class TestHelpers:
    def test_title_from_filename(self) -> None:
        assert title_from_filename("drafts/The Keeper.txt") == "The Keeper"
        assert title_from_filename("") == ""

    def test_extractor_protocol(self) -> None:
        assert isinstance(_UpperExtractor(), TextExtractor)

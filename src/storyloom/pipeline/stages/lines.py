"""Line-ending normalization."""

from __future__ import annotations

import re

from storyloom.models.ingest import LineEnding, NormalizedText

_LONE_CR = re.compile(r"\r(?!\n)")
_LONE_LF = re.compile(r"(?<!\r)\n")


def detect_line_ending(text: str) -> tuple[LineEnding, int, int, int]:
    """Return the dominant line ending and the CRLF, LF and CR counts.

    Text with no line breaks reports LF. Text where the dominant convention
    is not the only one reports MIXED.
    """
    crlf = text.count("\r\n")
    cr = len(_LONE_CR.findall(text))
    lf = len(_LONE_LF.findall(text))
    total = crlf + cr + lf
    if total == 0:
        return "LF", 0, 0, 0

    counts: list[tuple[LineEnding, int]] = [("CRLF", crlf), ("LF", lf), ("CR", cr)]
    dominant, count = max(counts, key=lambda item: item[1])
    if count != total:
        return "MIXED", crlf, lf, cr
    return dominant, crlf, lf, cr


def normalize_lines(text: str) -> NormalizedText:
    """Convert every line ending to LF and split into lines.

    Empty lines are kept; a trailing newline yields a trailing empty line.
    """
    ending, crlf, lf, cr = detect_line_ending(text)
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return NormalizedText(
        text=normalized,
        lines=normalized.split("\n"),
        original_line_ending=ending,
        crlf_count=crlf,
        lf_count=lf,
        cr_count=cr,
        character_count=len(normalized),
        byte_length=len(normalized.encode("utf-8")),
    )

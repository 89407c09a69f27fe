"""Encoding recovery: raw bytes to canonical text.

Detection order:

1. Byte-order marks (UTF-8, UTF-16LE, UTF-16BE), confidence 1.0.
2. UTF-8 without replacement characters, confidence 0.9.
3. Windows-1252, then Latin-1, confidence 0.8 and 0.7.
4. UTF-8 with replacement, confidence 0.5 and a warning.

Latin-1 maps every byte, so step 4 is only reached when the single-byte
codecs are unavailable. It stays as the last resort.
"""

from __future__ import annotations

import unicodedata
from typing import TYPE_CHECKING

from storyloom.errors import EncodingError
from storyloom.models.ingest import DecodedText, EncodingReport
from storyloom.observability.tracing import NULL_TRACER

if TYPE_CHECKING:
    from storyloom.observability.tracing import Tracer

REPLACEMENT_CHAR = "\ufffd"
BOM_CHAR = "\ufeff"

# (bom bytes, report name, python codec)
_BOMS: tuple[tuple[bytes, str, str], ...] = (
    (b"\xef\xbb\xbf", "UTF-8", "utf-8"),
    (b"\xff\xfe", "UTF-16LE", "utf-16-le"),
    (b"\xfe\xff", "UTF-16BE", "utf-16-be"),
)

# (report name, python codec, confidence)
_CANDIDATES: tuple[tuple[str, str, float], ...] = (
    ("UTF-8", "utf-8", 0.9),
    ("windows-1252", "cp1252", 0.8),
    ("iso-8859-1", "latin-1", 0.7),
)

_ALLOWED_CONTROLS = frozenset("\n\r\t")


def is_unprintable(char: str) -> bool:
    """True for control characters other than newline, CR and tab, and for U+FFFD."""
    if char == REPLACEMENT_CHAR:
        return True
    if char in _ALLOWED_CONTROLS:
        return False
    return unicodedata.category(char) == "Cc"


def unprintable_ratio(text: str) -> float:
    """Share of ``text`` made of unprintable characters (0.0 for empty text)."""
    if not text:
        return 0.0
    return sum(1 for ch in text if is_unprintable(ch)) / len(text)


def _sniff_bom(data: bytes) -> tuple[str, str, int] | None:
    for bom, name, codec in _BOMS:
        if data.startswith(bom):
            return name, codec, len(bom)
    return None


def _decode(data: bytes, *, tracer: Tracer) -> tuple[str, EncodingReport]:
    sniffed = _sniff_bom(data)
    if sniffed is not None:
        name, codec, skip = sniffed
        tracer.event("encoding_bom_detected", encoding=name)
        text = data[skip:].decode(codec, errors="replace")
        return text, EncodingReport(encoding=name, confidence=1.0, has_bom=True)

    for name, codec, confidence in _CANDIDATES:
        try:
            text = data.decode(codec, errors="replace")
        except LookupError:
            tracer.event("encoding_codec_unavailable", encoding=name)
            continue
        if REPLACEMENT_CHAR not in text:
            tracer.event("encoding_accepted", encoding=name, confidence=confidence)
            return text, EncodingReport(encoding=name, confidence=confidence)
        tracer.event("encoding_rejected", encoding=name)

    text = data.decode("utf-8", errors="replace")
    warning = "No encoding decoded cleanly; fell back to UTF-8 with replacement characters"
    tracer.event("encoding_fallback", encoding="UTF-8")
    return text, EncodingReport(encoding="UTF-8", confidence=0.5, warnings=[warning])


def recover_text(
    data: bytes,
    *,
    corruption_ratio: float = 0.10,
    tracer: Tracer = NULL_TRACER,
) -> DecodedText:
    """Decode raw bytes into text with an encoding report.

    A leading U+FEFF is stripped after decoding. Null bytes are removed
    (after the corruption check, where they count as unprintable) and
    recorded as a warning.

    Args:
        data: Raw file contents.
        corruption_ratio: Maximum share of unprintable characters accepted.
        tracer: Receives the decoding decisions.

    Returns:
        The decoded text and how it was decoded.

    Raises:
        EncodingError: If no decode path yields a string, or the result is
            more than ``corruption_ratio`` unprintable.
    """
    try:
        text, report = _decode(data, tracer=tracer)
    except (UnicodeError, LookupError) as e:
        raise EncodingError(f"Unable to decode input: {e}") from e

    if text.startswith(BOM_CHAR):
        text = text[1:]

    ratio = unprintable_ratio(text)
    if ratio > corruption_ratio:
        tracer.event("encoding_corrupted", ratio=round(ratio, 4))
        raise EncodingError(
            f"Input appears corrupted: {ratio:.1%} of characters are unprintable "
            f"(limit {corruption_ratio:.0%}). Is this a binary file?"
        )

    warnings = list(report.warnings)
    null_count = text.count("\x00")
    if null_count:
        text = text.replace("\x00", "")
        warnings.append(f"Removed {null_count} null byte(s) from decoded text")
        tracer.event("encoding_null_bytes_removed", count=null_count)

    replacements = text.count(REPLACEMENT_CHAR)
    if replacements:
        warnings.append(f"Decoded text contains {replacements} replacement character(s)")

    report = report.model_copy(update={"warnings": warnings})
    return DecodedText(
        text=text,
        report=report,
        character_count=len(text),
        byte_length=len(text.encode("utf-8")),
    )

from __future__ import annotations

from ..model import ClassificationResult, EncodingKind
from .validator import Utf8Validator, default_validator

UTF8_BOM = b"\xef\xbb\xbf"


def has_bom(buffer: bytes) -> bool:
    """Whether `buffer` starts with the UTF-8 byte order mark."""
    return buffer[:3] == UTF8_BOM


def classify(
    buffer: bytes, validator: Utf8Validator | None = None
) -> ClassificationResult:
    """Classify `buffer` as strict ASCII, valid UTF-8 or invalid UTF-8.

    An empty buffer is ASCII. For invalid input the offset of the first
    ill-formed sequence, relative to `buffer`, is reported.
    """
    if buffer.isascii():
        return ClassificationResult(EncodingKind.STRICT_ASCII)
    offset = (validator or default_validator()).find_invalid(buffer)
    if offset is None:
        return ClassificationResult(EncodingKind.VALID_UTF8)
    return ClassificationResult(EncodingKind.INVALID_UTF8, offending_offset=offset)

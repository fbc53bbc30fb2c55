"""UTF-8 validators.

Both implementations answer the same question, "where does the first
ill-formed sequence start?", and must agree on every input. The reported
offset is always the first byte of the offending sequence: a stray
continuation byte or bad lead byte reports itself, a truncated or otherwise
broken multi-byte sequence reports its lead byte.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..log import logger

# (lead-byte mask, lead-byte pattern, continuation count, smallest code point)
_SEQUENCE_SHAPES = (
    (0xE0, 0xC0, 1, 0x80),
    (0xF0, 0xE0, 2, 0x800),
    (0xF8, 0xF0, 3, 0x10000),
)

_MAX_CODE_POINT = 0x10FFFF
_SURROGATES = range(0xD800, 0xE000)

# Inputs every strict validator must reject, with the expected offset.
_PROBE_VECTORS = (
    (b"\xc0\x80", 0),  # overlong NUL
    (b"a\xe0\x80\xaf", 1),  # overlong '/'
    (b"\xed\xa0\x80", 0),  # high surrogate
    (b"ab\xed\xbf\xbf", 2),  # low surrogate
    (b"\xf4\x90\x80\x80", 0),  # above U+10FFFF
    (b"\xc3\xa9\x80", 2),  # stray continuation
    (b"\xe2\x82", 0),  # truncated
)


@runtime_checkable
class Utf8Validator(Protocol):
    """Strategy for validating a buffer as UTF-8."""

    @property
    def name(self) -> str:
        """Short identifier used in logs and the CLI."""
        ...

    def find_invalid(self, buffer: bytes) -> int | None:
        """Return the offset of the first ill-formed sequence, or None."""
        ...


class StateMachineUtf8Validator:
    """Reference validator, a byte-at-a-time decoder in pure Python."""

    name = "reference"

    def find_invalid(self, buffer: bytes) -> int | None:
        size = len(buffer)
        i = 0
        while i < size:
            lead = buffer[i]
            if lead < 0x80:
                i += 1
                continue

            for mask, pattern, count, minimum in _SEQUENCE_SHAPES:
                if lead & mask == pattern:
                    break
            else:
                # 10xxxxxx without a lead, or 11111xxx
                return i

            if i + count >= size:
                return i  # truncated

            code_point = lead & (0x3F >> count)
            for j in range(i + 1, i + count + 1):
                byte = buffer[j]
                if byte & 0xC0 != 0x80:
                    return i
                code_point = (code_point << 6) | (byte & 0x3F)

            if code_point < minimum:
                return i  # overlong
            if code_point in _SURROGATES or code_point > _MAX_CODE_POINT:
                return i
            i += count + 1
        return None


class CodecUtf8Validator:
    """Validator backed by the interpreter's built-in strict UTF-8 codec."""

    name = "codec"

    def find_invalid(self, buffer: bytes) -> int | None:
        try:
            buffer.decode("utf-8")
        except UnicodeDecodeError as exc:
            return exc.start
        return None


def codec_is_strict() -> bool:
    """Probe the built-in codec against the classic validator pitfalls."""
    codec = CodecUtf8Validator()
    try:
        return all(
            codec.find_invalid(vector) == expected
            for vector, expected in _PROBE_VECTORS
        )
    except LookupError:
        return False


def select_validator(preference: str = "auto") -> Utf8Validator:
    """Build a validator for `preference` (`auto`, `codec` or `reference`)."""
    choice = str(preference or "auto").strip().lower()
    if choice == "reference":
        return StateMachineUtf8Validator()
    if choice == "codec":
        return CodecUtf8Validator()
    if choice != "auto":
        raise ValueError(f"Unsupported validator: {preference}")
    if codec_is_strict():
        return CodecUtf8Validator()
    logger.warning("[validator] built-in codec failed the probe, using reference")
    return StateMachineUtf8Validator()


_default_validator: Utf8Validator | None = None


def default_validator() -> Utf8Validator:
    """Process-wide validator, selected on first use."""
    global _default_validator
    if _default_validator is None:
        _default_validator = select_validator("auto")
        logger.debug("[validator] selected %s", _default_validator.name)
    return _default_validator

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from ..log import logger
from ..model import (
    ClassificationResult,
    DeclaredMode,
    FailureReason,
    Segment,
    Verdict,
)
from .classifier import classify, has_bom
from .declarations import MalformedInputError, iter_segments, split_lines
from .validator import Utf8Validator, default_validator


def check_consistency(
    classification: ClassificationResult,
    bom_present: bool,
    mode: DeclaredMode,
) -> Verdict:
    """Reconcile detected encoding, BOM and declared mode; first rule wins."""
    if bom_present:
        return Verdict.fail(FailureReason.BOM_PRESENT)
    if classification.is_invalid and mode == DeclaredMode.UTF8:
        return Verdict.fail(FailureReason.INVALID_UTF8_IN_UTF8_MODE)
    if classification.is_valid_utf8 and mode == DeclaredMode.LATIN1:
        return Verdict.fail(FailureReason.UNDECLARED_UTF8)
    # Invalid UTF-8 under LATIN1 is plain 8-bit text; ASCII always passes.
    return Verdict.ok()


def _segment_verdict(segment: Segment, validator: Utf8Validator) -> Verdict:
    result = classify(segment.content, validator)
    verdict = check_consistency(result, False, segment.mode)
    if verdict.passed:
        return verdict

    where = f"line {segment.line_number} ({segment.stream})"
    if verdict.reason == FailureReason.UNDECLARED_UTF8:
        return Verdict.fail(
            verdict.reason,
            f"UTF-8 unexpected at {where}",
            line_number=segment.line_number,
            offset=segment.offset,
        )
    offset = segment.offset + (result.offending_offset or 0)
    return Verdict.fail(
        verdict.reason,
        f"Non-UTF-8 unexpected at {where}, byte offset {offset}",
        line_number=segment.line_number,
        offset=offset,
    )


def check_lines(
    lines: Iterable[bytes], validator: Utf8Validator | None = None
) -> Verdict:
    """Check already-split lines; the first failing segment decides.

    Raises `MalformedInputError` if `lines` is not a line decomposition.
    """
    validator = validator or default_validator()
    for segment in iter_segments(lines):
        verdict = _segment_verdict(segment, validator)
        if not verdict.passed:
            return verdict
    return Verdict.ok()


def check_buffer(raw: bytes, validator: Utf8Validator | None = None) -> Verdict:
    """Check a whole file's contents."""
    if has_bom(raw):
        return Verdict.fail(
            FailureReason.BOM_PRESENT,
            "UTF-8 BOM (Byte Order Mark) found",
            line_number=1,
            offset=0,
        )
    return check_lines(split_lines(raw), validator)


def read_buffer(path: Path) -> bytes:
    with path.open("rb") as fh:
        return fh.read()


def file_encoding_ok(path: Path, validator: Utf8Validator | None = None) -> Verdict:
    """Check one file. Per-file problems come back as failing verdicts."""
    path = Path(path)
    try:
        raw = read_buffer(path)
    except (FileNotFoundError, NotADirectoryError):
        return Verdict.fail(FailureReason.IO_ERROR, f"{path} does not exist")
    except IsADirectoryError:
        return Verdict.fail(FailureReason.IO_ERROR, f"{path} is not a file")
    except OSError as exc:
        logger.debug("[audit] read failed for %s: %s", path, exc)
        return Verdict.fail(FailureReason.IO_ERROR, f"can't open {path}: {exc}")

    try:
        return check_buffer(raw, validator)
    except MalformedInputError as exc:
        return Verdict.fail(FailureReason.MALFORMED_INPUT, str(exc))

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class EncodingKind(str, Enum):
    STRICT_ASCII = "ascii"
    VALID_UTF8 = "utf8"
    INVALID_UTF8 = "invalid"

    def __str__(self) -> str:
        return self.value


class DeclaredMode(str, Enum):
    LATIN1 = "latin1"
    UTF8 = "utf8"

    @classmethod
    def from_encoding_name(cls, name: str) -> DeclaredMode:
        """Map a POD `=encoding` name onto a mode.

        `UTF-8`, `utf8` and `UTF8` all select UTF8; anything else is treated
        as an 8-bit legacy encoding.
        """
        normalized = name.strip().lower().replace("-", "")
        return cls.UTF8 if normalized == "utf8" else cls.LATIN1

    def __str__(self) -> str:
        return self.value


class DeclarationStream(str, Enum):
    SOURCE = "source"
    POD = "POD"

    def __str__(self) -> str:
        return self.value


class FailureReason(str, Enum):
    BOM_PRESENT = "bom_present"
    INVALID_UTF8_IN_UTF8_MODE = "invalid_utf8_in_utf8_mode"
    UNDECLARED_UTF8 = "undeclared_utf8"
    IO_ERROR = "io_error"
    MALFORMED_INPUT = "malformed_input"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ClassificationResult:
    kind: EncodingKind
    offending_offset: int | None = None

    def __post_init__(self) -> None:
        invalid = self.kind == EncodingKind.INVALID_UTF8
        if invalid != (self.offending_offset is not None):
            raise ValueError(
                "offending_offset must be set exactly when kind is INVALID_UTF8"
            )

    @property
    def is_ascii(self) -> bool:
        return self.kind == EncodingKind.STRICT_ASCII

    @property
    def is_valid_utf8(self) -> bool:
        return self.kind == EncodingKind.VALID_UTF8

    @property
    def is_invalid(self) -> bool:
        return self.kind == EncodingKind.INVALID_UTF8


@dataclass(frozen=True)
class DeclarationEvent:
    mode: DeclaredMode
    line_number: int
    stream: DeclarationStream = DeclarationStream.SOURCE


@dataclass(frozen=True)
class DeclarationState:
    """Ordered declaration events of one file, top to bottom."""

    events: tuple[DeclarationEvent, ...] = ()

    def for_stream(self, stream: DeclarationStream) -> tuple[DeclarationEvent, ...]:
        return tuple(event for event in self.events if event.stream == stream)

    def mode_at(
        self,
        line_number: int,
        stream: DeclarationStream = DeclarationStream.SOURCE,
    ) -> DeclaredMode:
        """Mode in force at the start of `line_number` for `stream`."""
        mode = DeclaredMode.LATIN1
        for event in self.for_stream(stream):
            if event.line_number >= line_number:
                break
            mode = event.mode
        return mode

    def final_mode(
        self, stream: DeclarationStream = DeclarationStream.SOURCE
    ) -> DeclaredMode:
        events = self.for_stream(stream)
        return events[-1].mode if events else DeclaredMode.LATIN1


@dataclass(frozen=True)
class Segment:
    """One piece of file content checked against a single effective mode."""

    stream: DeclarationStream
    line_number: int
    offset: int
    content: bytes
    mode: DeclaredMode


@dataclass(frozen=True)
class Verdict:
    passed: bool
    reason: FailureReason | None = None
    message: str = ""
    line_number: int | None = None
    offset: int | None = None

    def __post_init__(self) -> None:
        if self.passed == (self.reason is not None):
            raise ValueError("reason must be set exactly when the verdict fails")

    @classmethod
    def ok(cls) -> Verdict:
        return cls(passed=True)

    @classmethod
    def fail(
        cls,
        reason: FailureReason,
        message: str = "",
        *,
        line_number: int | None = None,
        offset: int | None = None,
    ) -> Verdict:
        return cls(
            passed=False,
            reason=reason,
            message=message,
            line_number=line_number,
            offset=offset,
        )


@dataclass(frozen=True)
class FileResult:
    path: Path
    name: str
    verdict: Verdict

    @property
    def passed(self) -> bool:
        return self.verdict.passed


@dataclass
class AuditSummary:
    """Outcome of one audit run."""

    results: list[FileResult]
    skipped: bool = False
    skip_reason: str = ""

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def ok(self) -> bool:
        return self.skipped or self.failed == 0

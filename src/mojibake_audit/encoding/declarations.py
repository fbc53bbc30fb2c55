"""Encoding declarations in Perl source and POD.

Source code and POD carry independent declaration streams. Source mode is
switched by `use utf8` (and the pragmas that imply it) or `no utf8`; POD
mode by an `=encoding` command. Each stream is a two-state machine starting
in LATIN1.

Whole-line comments are blanked before source lines are scanned: author
names in header comments frequently contain UTF-8 before any `use utf8`.
Trailing comments after code are kept and checked like any other bytes.
"""

from __future__ import annotations

import io
import re
from collections.abc import Iterable, Iterator

from ..model import (
    DeclarationEvent,
    DeclarationState,
    DeclarationStream,
    DeclaredMode,
    Segment,
)

_COMMENT_LINE = re.compile(rb"^\s*#")
_POD_CUT = re.compile(rb"^=+cut\s*$")
_POD_ENCODING = re.compile(rb"^=+encoding\s+([\w\-]+)")
_POD_COMMAND = re.compile(rb"^=+\w+")
_STATEMENT = re.compile(rb"[^;]+")

_SOURCE_DECLARATIONS = (
    (re.compile(rb"use\s+utf8(?:::all)?"), DeclaredMode.UTF8),
    (re.compile(rb"use\s+common::sense"), DeclaredMode.UTF8),
    (re.compile(rb"no\s+utf8"), DeclaredMode.LATIN1),
)


class MalformedInputError(ValueError):
    """Line sequence that cannot come from splitting a buffer into lines."""


class ModeMachine:
    """LATIN1/UTF8 toggle; only recognized declarations move it."""

    def __init__(self) -> None:
        self.mode = DeclaredMode.LATIN1

    def switch(self, mode: DeclaredMode) -> None:
        self.mode = mode


def split_lines(raw: bytes) -> list[bytes]:
    """Split on LF only, keeping terminators so offsets stay exact."""
    return io.BytesIO(raw).readlines()


def match_source_declaration(statement: bytes) -> DeclaredMode | None:
    """Mode selected by a trimmed source statement, if it is a declaration."""
    for pattern, mode in _SOURCE_DECLARATIONS:
        if pattern.fullmatch(statement):
            return mode
    return None


def is_comment_line(line: bytes) -> bool:
    return _COMMENT_LINE.match(line) is not None


class DeclarationScanner:
    """Walk lines top to bottom, yielding content segments with their mode.

    Declaration events seen so far are collected in `events`.
    """

    def __init__(self) -> None:
        self.events: list[DeclarationEvent] = []
        self._source = ModeMachine()
        self._pod = ModeMachine()
        self._in_pod = False

    @property
    def state(self) -> DeclarationState:
        return DeclarationState(tuple(self.events))

    def iter_segments(self, lines: Iterable[bytes]) -> Iterator[Segment]:
        offset = 0
        for number, line in enumerate(lines, start=1):
            newline_at = line.find(b"\n")
            if newline_at != -1 and newline_at != len(line) - 1:
                raise MalformedInputError(
                    f"line {number} contains an embedded line break"
                )

            encoding = _POD_ENCODING.match(line)
            if _POD_CUT.match(line):
                self._in_pod = False
            elif encoding:
                mode = DeclaredMode.from_encoding_name(encoding.group(1).decode("ascii"))
                self._pod.switch(mode)
                self.events.append(
                    DeclarationEvent(mode, number, DeclarationStream.POD)
                )
                self._in_pod = True
            elif _POD_COMMAND.match(line):
                self._in_pod = True
            elif not self._in_pod:
                yield from self._source_segments(line, number, offset)

            if self._in_pod:
                yield Segment(
                    stream=DeclarationStream.POD,
                    line_number=number,
                    offset=offset,
                    content=line,
                    mode=self._pod.mode,
                )
            offset += len(line)

    def _source_segments(
        self, line: bytes, number: int, offset: int
    ) -> Iterator[Segment]:
        if is_comment_line(line):
            return
        for match in _STATEMENT.finditer(line):
            raw = match.group()
            statement = raw.strip()
            if not statement:
                continue
            mode = match_source_declaration(statement)
            if mode is not None:
                self._source.switch(mode)
                self.events.append(
                    DeclarationEvent(mode, number, DeclarationStream.SOURCE)
                )
            leading = len(raw) - len(raw.lstrip())
            yield Segment(
                stream=DeclarationStream.SOURCE,
                line_number=number,
                offset=offset + match.start() + leading,
                content=statement,
                mode=self._source.mode,
            )


def iter_segments(lines: Iterable[bytes]) -> Iterator[Segment]:
    """Content segments of `lines`, each tagged with its effective mode."""
    return DeclarationScanner().iter_segments(lines)


def scan_declarations(lines: Iterable[bytes]) -> DeclarationState:
    """Ordered declaration events found in `lines`."""
    scanner = DeclarationScanner()
    for _ in scanner.iter_segments(lines):
        pass
    return scanner.state

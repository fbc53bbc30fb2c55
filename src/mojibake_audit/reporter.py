from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, TextIO

from .model import AuditSummary, FileResult


def default_test_name(path: Path | str) -> str:
    return f"Mojibake test for {path}"


class TapReporter:
    """Write audit results as a TAP stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout
        self._count = 0

    def _emit(self, line: str) -> None:
        self.stream.write(f"{line}\n")

    def plan(self, total: int) -> None:
        self._emit(f"1..{total}")

    def skip_all(self, reason: str) -> None:
        self._emit(f"1..0 # SKIP {reason}")

    def diag(self, message: str) -> None:
        for line in str(message).splitlines() or [""]:
            self._emit(f"# {line}")

    def report(self, result: FileResult) -> None:
        self._count += 1
        status = "ok" if result.passed else "not ok"
        self._emit(f"{status} {self._count} - {result.name}")
        if result.passed:
            return
        verdict = result.verdict
        self.diag(f"  Failed test '{result.name}'")
        self.diag(f"  {verdict.reason}: {verdict.message or 'no detail'}")

    def summary(self, summary: AuditSummary) -> None:
        self.diag(f"checked {summary.total} files, {summary.passed} passed")


def summary_to_dict(summary: AuditSummary) -> dict[str, Any]:
    return {
        "total": summary.total,
        "passed": summary.passed,
        "failed": summary.failed,
        "skipped": summary.skipped,
        "skip_reason": summary.skip_reason,
        "results": [
            {
                "path": str(result.path),
                "name": result.name,
                "passed": result.passed,
                "reason": (
                    str(result.verdict.reason) if result.verdict.reason else None
                ),
                "message": result.verdict.message,
                "line": result.verdict.line_number,
                "offset": result.verdict.offset,
            }
            for result in summary.results
        ],
    }


def write_json_report(out_path: Path, summary: AuditSummary) -> Path:
    """Write `summary` as pretty-printed UTF-8 JSON."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(summary_to_dict(summary), f, ensure_ascii=False, indent=2)
    return out_path

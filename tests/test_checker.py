from __future__ import annotations

import os
import sys
import tempfile
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from mojibake_audit.encoding import (  # noqa: E402
    StateMachineUtf8Validator,
    check_buffer,
    check_consistency,
    check_lines,
    file_encoding_ok,
)
from mojibake_audit.model import (  # noqa: E402
    ClassificationResult,
    DeclaredMode,
    EncodingKind,
    FailureReason,
    Verdict,
)

ASCII = ClassificationResult(EncodingKind.STRICT_ASCII)
UTF8 = ClassificationResult(EncodingKind.VALID_UTF8)
INVALID = ClassificationResult(EncodingKind.INVALID_UTF8, offending_offset=0)


class DecisionTableTest(unittest.TestCase):
    def test_bom_wins_over_everything(self) -> None:
        for result in (ASCII, UTF8, INVALID):
            for mode in DeclaredMode:
                verdict = check_consistency(result, True, mode)
                self.assertEqual(verdict.reason, FailureReason.BOM_PRESENT)

    def test_invalid_in_utf8_mode_fails(self) -> None:
        verdict = check_consistency(INVALID, False, DeclaredMode.UTF8)
        self.assertEqual(verdict.reason, FailureReason.INVALID_UTF8_IN_UTF8_MODE)

    def test_utf8_without_declaration_fails(self) -> None:
        verdict = check_consistency(UTF8, False, DeclaredMode.LATIN1)
        self.assertEqual(verdict.reason, FailureReason.UNDECLARED_UTF8)

    def test_passing_combinations(self) -> None:
        for result, mode in (
            (INVALID, DeclaredMode.LATIN1),
            (UTF8, DeclaredMode.UTF8),
            (ASCII, DeclaredMode.LATIN1),
            (ASCII, DeclaredMode.UTF8),
        ):
            with self.subTest(kind=result.kind, mode=mode):
                verdict = check_consistency(result, False, mode)
                self.assertTrue(verdict.passed)
                self.assertIsNone(verdict.reason)

    def test_verdict_reason_invariant(self) -> None:
        with self.assertRaises(ValueError):
            Verdict(passed=True, reason=FailureReason.IO_ERROR)
        with self.assertRaises(ValueError):
            Verdict(passed=False)


class CheckBufferTest(unittest.TestCase):
    def test_ascii_passes_in_any_mode(self) -> None:
        self.assertTrue(check_buffer(b"use strict;\nprint 1;\n").passed)
        self.assertTrue(check_buffer(b"use utf8;\nprint 1;\n").passed)
        self.assertTrue(check_buffer(b"").passed)

    def test_bom_fails_regardless_of_content(self) -> None:
        for body in (b"", b"use utf8;\n", b"print '\xc3\xa9';\n", b"\xff"):
            with self.subTest(body=body):
                verdict = check_buffer(b"\xef\xbb\xbf" + body)
                self.assertEqual(verdict.reason, FailureReason.BOM_PRESENT)
                self.assertEqual(verdict.offset, 0)

    def test_undeclared_utf8_fails_then_passes_with_declaration(self) -> None:
        body = b"my $s = 'caf\xc3\xa9';\n"
        verdict = check_buffer(body)
        self.assertEqual(verdict.reason, FailureReason.UNDECLARED_UTF8)
        self.assertEqual(verdict.line_number, 1)
        self.assertIn("line 1 (source)", verdict.message)

        self.assertTrue(check_buffer(b"use utf8;\n" + body).passed)

    def test_latin1_byte_passes_then_fails_in_utf8_mode(self) -> None:
        body = b"my $x = '\xff';\n"
        self.assertTrue(check_buffer(body).passed)

        verdict = check_buffer(b"use utf8;\n" + body)
        self.assertEqual(verdict.reason, FailureReason.INVALID_UTF8_IN_UTF8_MODE)
        self.assertEqual(verdict.line_number, 2)
        self.assertEqual(verdict.offset, 19)
        self.assertIn("byte offset 19", verdict.message)

    def test_header_comment_with_author_name_is_ignored(self) -> None:
        text = (
            b"#!/usr/bin/perl\n"
            b"# Copyright Jos\xc3\xa9 Dupr\xe9\n"
            b"use utf8;\n"
            b"my $s = '\xc3\xa9';\n"
        )
        self.assertTrue(check_buffer(text).passed)

    def test_trailing_comment_bytes_are_classified(self) -> None:
        verdict = check_buffer(b"my $x = 1; # Jos\xc3\xa9\n")
        self.assertEqual(verdict.reason, FailureReason.UNDECLARED_UTF8)

        verdict = check_buffer(b"use utf8; my $x = 1; # Dupr\xe9\n")
        self.assertEqual(verdict.reason, FailureReason.INVALID_UTF8_IN_UTF8_MODE)

    def test_declaration_on_same_line_applies_to_following_statements(self) -> None:
        self.assertTrue(check_buffer(b"use utf8; my $s = '\xc3\xa9';\n").passed)

    def test_no_utf8_switches_back(self) -> None:
        verdict = check_buffer(b"use utf8;\nno utf8;\nmy $s = '\xc3\xa9';\n")
        self.assertEqual(verdict.reason, FailureReason.UNDECLARED_UTF8)
        self.assertEqual(verdict.line_number, 3)

    def test_pod_checked_against_its_own_declaration(self) -> None:
        pod = b"\n=head1 AUTHOR\n\nJos\xc3\xa9\n\n=cut\n"

        verdict = check_buffer(b"use utf8;\n" + pod)
        self.assertEqual(verdict.reason, FailureReason.UNDECLARED_UTF8)
        self.assertIn("(POD)", verdict.message)

        self.assertTrue(check_buffer(b"=encoding utf8\n" + pod).passed)

    def test_pod_declaration_does_not_cover_source(self) -> None:
        text = b"=encoding utf8\n\nJos\xc3\xa9\n\n=cut\n\nmy $s = '\xc3\xa9';\n"
        verdict = check_buffer(text)
        self.assertEqual(verdict.reason, FailureReason.UNDECLARED_UTF8)
        self.assertEqual(verdict.line_number, 7)

    def test_latin1_pod_in_utf8_pod_fails(self) -> None:
        verdict = check_buffer(b"=encoding UTF-8\n\nDupr\xe9\n")
        self.assertEqual(verdict.reason, FailureReason.INVALID_UTF8_IN_UTF8_MODE)
        self.assertEqual(verdict.line_number, 3)

    def test_first_failure_is_reported(self) -> None:
        text = b"my $a = '\xc3\xa9';\nuse utf8;\nmy $b = '\xff';\n"
        verdict = check_buffer(text)
        self.assertEqual(verdict.reason, FailureReason.UNDECLARED_UTF8)
        self.assertEqual(verdict.line_number, 1)

    def test_reference_validator_gives_same_verdicts(self) -> None:
        reference = StateMachineUtf8Validator()
        for text in (
            b"use utf8;\nmy $x = '\xff';\n",
            b"my $s = '\xc3\xa9';\n",
            b"use utf8;\nmy $s = '\xed\xa0\x80';\n",
        ):
            with self.subTest(text=text):
                self.assertEqual(check_buffer(text, reference), check_buffer(text))

    def test_check_lines_rejects_non_line_input(self) -> None:
        from mojibake_audit.encoding import MalformedInputError

        with self.assertRaises(MalformedInputError):
            check_lines([b"a;\nb;\n"])


class FileEncodingOkTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory(prefix="mojibake_checker_")
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, name: str, data: bytes) -> Path:
        path = self.root / name
        path.write_bytes(data)
        return path

    def test_missing_file_is_io_error(self) -> None:
        verdict = file_encoding_ok(self.root / "Missing.pm")
        self.assertEqual(verdict.reason, FailureReason.IO_ERROR)
        self.assertIn("does not exist", verdict.message)

    def test_directory_is_io_error(self) -> None:
        verdict = file_encoding_ok(self.root)
        self.assertEqual(verdict.reason, FailureReason.IO_ERROR)

    def test_overlong_file_name_is_io_error(self) -> None:
        verdict = file_encoding_ok(self.root / ("x" * 5000 + ".pm"))
        self.assertFalse(verdict.passed)
        self.assertEqual(verdict.reason, FailureReason.IO_ERROR)
        self.assertIn("can't open", verdict.message)

    @unittest.skipIf(
        os.name == "nt" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        "permission bits not enforced",
    )
    def test_unreadable_file_is_io_error(self) -> None:
        path = self._write("Locked.pm", b"1;\n")
        path.chmod(0)
        try:
            verdict = file_encoding_ok(path)
        finally:
            path.chmod(0o644)
        self.assertEqual(verdict.reason, FailureReason.IO_ERROR)

    def test_checks_file_contents(self) -> None:
        good = self._write("Good.pm", b"package Good;\nuse utf8;\nmy $s = '\xc3\xa9';\n1;\n")
        bad = self._write("Bad.pm", b"package Bad;\nmy $s = '\xc3\xa9';\n1;\n")
        self.assertTrue(file_encoding_ok(good).passed)
        self.assertEqual(file_encoding_ok(bad).reason, FailureReason.UNDECLARED_UTF8)

    def test_repeated_checks_are_identical(self) -> None:
        path = self._write("Again.pm", b"use utf8;\nmy $x = '\xff';\n")
        self.assertEqual(file_encoding_ok(path), file_encoding_ok(path))


if __name__ == "__main__":
    unittest.main()

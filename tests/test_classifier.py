from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from mojibake_audit.encoding import (  # noqa: E402
    CodecUtf8Validator,
    StateMachineUtf8Validator,
    classify,
    has_bom,
)
from mojibake_audit.model import ClassificationResult, EncodingKind  # noqa: E402


class ClassifyTest(unittest.TestCase):
    def test_empty_buffer_is_ascii(self) -> None:
        self.assertEqual(classify(b"").kind, EncodingKind.STRICT_ASCII)

    def test_seven_bit_bytes_are_ascii(self) -> None:
        result = classify(bytes(range(0x80)))
        self.assertTrue(result.is_ascii)
        self.assertIsNone(result.offending_offset)

    def test_multibyte_utf8_is_valid(self) -> None:
        result = classify("naïve café".encode("utf-8"))
        self.assertEqual(result.kind, EncodingKind.VALID_UTF8)
        self.assertIsNone(result.offending_offset)

    def test_latin1_byte_is_invalid_with_offset(self) -> None:
        result = classify("café".encode("latin-1"))
        self.assertEqual(result.kind, EncodingKind.INVALID_UTF8)
        self.assertEqual(result.offending_offset, 3)

    def test_overlong_nul_is_invalid(self) -> None:
        result = classify(b"\xc0\x80")
        self.assertTrue(result.is_invalid)
        self.assertEqual(result.offending_offset, 0)

    def test_surrogate_is_invalid(self) -> None:
        result = classify(b"ab\xed\xa0\x80")
        self.assertTrue(result.is_invalid)
        self.assertEqual(result.offending_offset, 2)

    def test_same_result_with_either_validator(self) -> None:
        for buffer in (b"", b"abc", b"\xc3\xa9", b"x\xff", b"\xe0\x80\x80"):
            with self.subTest(buffer=buffer):
                self.assertEqual(
                    classify(buffer, StateMachineUtf8Validator()),
                    classify(buffer, CodecUtf8Validator()),
                )


class ClassificationResultTest(unittest.TestCase):
    def test_offset_required_for_invalid(self) -> None:
        with self.assertRaises(ValueError):
            ClassificationResult(EncodingKind.INVALID_UTF8)

    def test_offset_forbidden_otherwise(self) -> None:
        with self.assertRaises(ValueError):
            ClassificationResult(EncodingKind.VALID_UTF8, offending_offset=3)


class BomTest(unittest.TestCase):
    def test_detects_bom_at_start(self) -> None:
        self.assertTrue(has_bom(b"\xef\xbb\xbfuse strict;"))

    def test_ignores_bom_elsewhere_and_short_buffers(self) -> None:
        self.assertFalse(has_bom(b"x\xef\xbb\xbf"))
        self.assertFalse(has_bom(b"\xef\xbb"))
        self.assertFalse(has_bom(b""))


if __name__ == "__main__":
    unittest.main()

from .checker import (
    check_buffer,
    check_consistency,
    check_lines,
    file_encoding_ok,
)
from .classifier import UTF8_BOM, classify, has_bom
from .declarations import (
    DeclarationScanner,
    MalformedInputError,
    ModeMachine,
    iter_segments,
    scan_declarations,
    split_lines,
)
from .validator import (
    CodecUtf8Validator,
    StateMachineUtf8Validator,
    Utf8Validator,
    default_validator,
    select_validator,
)

__all__ = [
    "UTF8_BOM",
    "CodecUtf8Validator",
    "DeclarationScanner",
    "MalformedInputError",
    "ModeMachine",
    "StateMachineUtf8Validator",
    "Utf8Validator",
    "check_buffer",
    "check_consistency",
    "check_lines",
    "classify",
    "default_validator",
    "file_encoding_ok",
    "has_bom",
    "iter_segments",
    "scan_declarations",
    "select_validator",
    "split_lines",
]

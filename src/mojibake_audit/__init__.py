from .config import AuditConfig
from .discovery import default_roots, discover_files, is_source_file
from .encoding import (
    CodecUtf8Validator,
    MalformedInputError,
    StateMachineUtf8Validator,
    Utf8Validator,
    check_buffer,
    check_consistency,
    classify,
    default_validator,
    file_encoding_ok,
    has_bom,
    scan_declarations,
    select_validator,
)
from .main import AuditApp, all_files_encoding_ok
from .model import (
    AuditSummary,
    ClassificationResult,
    DeclarationEvent,
    DeclarationState,
    DeclarationStream,
    DeclaredMode,
    EncodingKind,
    FailureReason,
    FileResult,
    Segment,
    Verdict,
)
from .reporter import TapReporter, summary_to_dict, write_json_report
from .scheduler import AuditSchedulerService, AuditWatch
from .version import __version__

__all__ = [
    "__version__",
    "AuditApp",
    "AuditConfig",
    "AuditSchedulerService",
    "AuditSummary",
    "AuditWatch",
    "ClassificationResult",
    "CodecUtf8Validator",
    "DeclarationEvent",
    "DeclarationState",
    "DeclarationStream",
    "DeclaredMode",
    "EncodingKind",
    "FailureReason",
    "FileResult",
    "MalformedInputError",
    "Segment",
    "StateMachineUtf8Validator",
    "TapReporter",
    "Utf8Validator",
    "Verdict",
    "all_files_encoding_ok",
    "check_buffer",
    "check_consistency",
    "classify",
    "default_roots",
    "default_validator",
    "discover_files",
    "file_encoding_ok",
    "has_bom",
    "is_source_file",
    "scan_declarations",
    "select_validator",
    "summary_to_dict",
    "write_json_report",
]

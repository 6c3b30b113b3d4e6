# errors.py — Engine exception taxonomy
# IO/parse, profiling, resolution and execution failures
"""
errors.py — Engine Exceptions

Every failure carries a stable machine-readable ``code`` so the pipeline can
route it without string matching. Semantic violations are NOT exceptions;
see ``engine.semantic_guard``.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for all engine errors."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# =============================================================================
# IO / PARSE ERRORS
# =============================================================================

class DataParseError(EngineError):
    """Raised when a dataset file cannot be read or parsed."""
    code = "PARSE_ERROR"


class DatasetFileNotFoundError(DataParseError):
    code = "FILE_NOT_FOUND"


class FilePermissionError(DataParseError):
    code = "PERMISSION_DENIED"


class EmptyFileError(DataParseError):
    code = "EMPTY_FILE"


class UnsupportedFormatError(DataParseError):
    code = "UNSUPPORTED_FORMAT"


class MalformedRowError(DataParseError):
    """Raised when a row's field count differs from the header's."""

    code = "MALFORMED_ROW"

    def __init__(self, row_number: int | None, found: int | None, expected: int, detail: str | None = None):
        if row_number is not None and found is not None:
            message = f"Row {row_number} has {found} columns, expected {expected}"
        else:
            message = f"Malformed row: expected {expected} columns"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.row_number = row_number
        self.found = found
        self.expected = expected


# =============================================================================
# PROFILING ERRORS
# =============================================================================

class EmptyDatasetError(EngineError):
    code = "EMPTY_DATASET"


# =============================================================================
# RESOLUTION ERRORS
# =============================================================================

class ResolutionError(EngineError):
    """Raised when the question cannot be mapped onto dataset columns."""
    code = "RESOLUTION_ERROR"


class NoNumericColumnsError(ResolutionError):
    code = "NO_NUMERIC_COLUMNS"


class DimensionNotFoundError(ResolutionError):
    code = "DIMENSION_NOT_FOUND"


class TimeColumnNotFoundError(ResolutionError):
    code = "TIME_COLUMN_NOT_FOUND"


class UnsupportedQueryError(ResolutionError):
    code = "UNSUPPORTED_QUERY"


# =============================================================================
# EXECUTION ERRORS
# =============================================================================

class ExecutionError(EngineError):
    """Defense-in-depth failure raised by the execution layer."""
    code = "EXECUTION_ERROR"

# data_parser.py — CSV / spreadsheet parsing
# Handles existence & permission checks, encoding detection, arity validation
"""
data_parser.py — Dataset Parsing

Loads a delimited text file or the first sheet of a workbook into a uniform
``ParsedData`` table:

- Every cell is read as text, trimmed, and empty cells become None
- Rows whose field count differs from the header are a hard error
- Spreadsheet rows are normalized to the header's key set
"""

from __future__ import annotations

import io
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from engine.errors import (
    DataParseError,
    DatasetFileNotFoundError,
    EmptyFileError,
    FilePermissionError,
    MalformedRowError,
    UnsupportedFormatError,
)
from engine.models import ParsedData
from engine.values import is_null

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

SUPPORTED_ENCODINGS = ["utf-8-sig", "latin-1", "cp1252"]
DELIMITED_EXTENSIONS = {".csv": ",", ".tsv": "\t"}
SPREADSHEET_EXTENSIONS = {".xlsx", ".xls"}
BAD_LINE_PATTERN = re.compile(r"Expected (\d+) fields in line (\d+), saw (\d+)")


@dataclass(frozen=True)
class ParseOptions:
    has_headers: bool = True
    delimiter: str | None = None  # None → by extension (comma for .csv)


# =============================================================================
# HELPERS
# =============================================================================

def _check_readable(path: Path) -> None:
    if not path.exists():
        raise DatasetFileNotFoundError(f"File not found: {path}")
    if not os.access(path, os.R_OK):
        raise FilePermissionError(f"Cannot access file: {path}. Please check file permissions.")


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except PermissionError as e:
        raise FilePermissionError(f"Cannot access file: {path}. Please check file permissions.") from e
    except OSError as e:
        raise DataParseError(f"Failed to read file: {e}. File path: {path}") from e


def _decode(raw_bytes: bytes, path: Path) -> str:
    for encoding in SUPPORTED_ENCODINGS:
        try:
            return raw_bytes.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise DataParseError(f"Failed to decode file with any supported encoding: {path}")


def _cell_text(value: Any) -> str | None:
    """Render one cell as trimmed text; empty cells become None."""
    if is_null(value):
        return None
    if isinstance(value, (pd.Timestamp, datetime)):
        if (value.hour, value.minute, value.second) == (0, 0, 0):
            return value.strftime("%Y-%m-%d")
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or None


def _record_number(text: str, physical_line: int) -> int:
    """1-based record number of a physical line, not counting empty lines."""
    return sum(1 for line in text.splitlines()[:physical_line] if line)


def _build_headers(header_cells: list[Any] | None, width: int) -> tuple[str, ...]:
    """Trim header names, fill blanks and de-duplicate with numeric suffixes."""
    if header_cells is None:
        return tuple(f"column_{i + 1}" for i in range(width))

    headers = []
    used: set[str] = set()
    last_suffix: dict[str, int] = {}
    for i, cell in enumerate(header_cells):
        base = _cell_text(cell) or f"column_{i + 1}"
        name, suffix = base, last_suffix.get(base, 1)
        # A generated suffix must not collide with a real header either
        while name in used:
            suffix += 1
            name = f"{base}_{suffix}"
        last_suffix[base] = suffix
        used.add(name)
        headers.append(name)
    return tuple(headers)


def _to_parsed(frame: pd.DataFrame, has_headers: bool, path: Path, kind: str) -> ParsedData:
    if frame.empty or frame.shape[1] == 0:
        raise EmptyFileError(f"{kind} file contains no data: {path}")

    if has_headers:
        header_cells = list(frame.iloc[0])
        if all(_cell_text(cell) is None for cell in header_cells):
            raise EmptyFileError(f"{kind} file has an empty header row: {path}")
        body = frame.iloc[1:]
    else:
        header_cells = None
        body = frame

    headers = _build_headers(header_cells, frame.shape[1])
    rows = tuple(
        {header: _cell_text(cell) for header, cell in zip(headers, record)}
        for record in body.itertuples(index=False, name=None)
    )
    if not rows:
        raise EmptyFileError(f"{kind} file contains no data rows: {path}")

    return ParsedData(headers=headers, rows=rows, source_path=str(path))


# =============================================================================
# PARSERS
# =============================================================================

def parse_csv(file_path: str | Path, options: ParseOptions | None = None) -> ParsedData:
    """
    Parse a delimited text file.

    Args:
        file_path: Path to the file
        options: Header / delimiter options (comma and header row by default)

    Returns:
        ParsedData with trimmed string cells

    Raises:
        DatasetFileNotFoundError, FilePermissionError, EmptyFileError,
        MalformedRowError, DataParseError
    """
    options = options or ParseOptions()
    path = Path(file_path)
    _check_readable(path)

    text = _decode(_read_bytes(path), path)
    if not text.strip():
        raise EmptyFileError(f"File is empty: {path}")

    delimiter = options.delimiter or DELIMITED_EXTENSIONS.get(path.suffix.lower(), ",")
    header_offset = 1 if options.has_headers else 0

    try:
        frame = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines="error",
        )
    except pd.errors.EmptyDataError as e:
        raise EmptyFileError(f"File is empty: {path}") from e
    except pd.errors.ParserError as e:
        match = BAD_LINE_PATTERN.search(str(e))
        if match:
            expected, line, found = (int(g) for g in match.groups())
            row_number = _record_number(text, line) - header_offset
            raise MalformedRowError(row_number, found, expected, f"file {path}") from e
        raise DataParseError(f"CSV parsing error: {e}. File path: {path}") from e

    # Short rows are padded with NaN; real empty cells stay "" with keep_default_na=False.
    # Frame positions already skip blank lines, matching _record_number.
    short_rows = frame.isna().any(axis=1)
    if short_rows.any():
        position = int(short_rows.to_numpy().argmax())
        found = int(frame.iloc[position].notna().sum())
        raise MalformedRowError(position + 1 - header_offset, found, frame.shape[1], f"file {path}")

    parsed = _to_parsed(frame, options.has_headers, path, "CSV")
    logger.info("Parsed CSV %s: %d rows x %d columns", path.name, parsed.row_count, parsed.column_count)
    return parsed


def parse_xlsx(file_path: str | Path, options: ParseOptions | None = None) -> ParsedData:
    """Parse the first sheet of a workbook, reading every cell as text."""
    options = options or ParseOptions()
    path = Path(file_path)
    _check_readable(path)

    if path.stat().st_size == 0:
        raise EmptyFileError(f"File is empty: {path}")

    try:
        frame = pd.read_excel(path, sheet_name=0, header=None, dtype=object)
    except PermissionError as e:
        raise FilePermissionError(f"Cannot access file: {path}. Please check file permissions.") from e
    except Exception as e:
        raise DataParseError(f"Failed to parse spreadsheet: {e}. File path: {path}") from e

    # Blank spreadsheet rows are skipped, like blank lines in delimited text
    frame = frame.dropna(how="all")

    parsed = _to_parsed(frame, options.has_headers, path, "Spreadsheet")
    logger.info("Parsed spreadsheet %s: %d rows x %d columns", path.name, parsed.row_count, parsed.column_count)
    return parsed


def parse_file(file_path: str | Path, options: ParseOptions | None = None) -> ParsedData:
    """Parse a dataset file, dispatching on its extension."""
    ext = Path(file_path).suffix.lower()
    if ext in DELIMITED_EXTENSIONS:
        return parse_csv(file_path, options)
    if ext in SPREADSHEET_EXTENSIONS:
        return parse_xlsx(file_path, options)
    supported = ", ".join(sorted(set(DELIMITED_EXTENSIONS) | SPREADSHEET_EXTENSIONS))
    raise UnsupportedFormatError(f"Unsupported file format: {ext or '(none)'}. Supported formats: {supported}")

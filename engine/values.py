# values.py — Cell token parsing & the tagged Value type
# Boolean / number / date token recognition shared by every engine stage
"""
values.py — Cell Values

Single home for recognizing what a raw cell token means. The profiler, the
execution engine and the report services all parse through these helpers so
that "is this a number" has exactly one answer across the codebase.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Union

import pandas as pd


# =============================================================================
# CONSTANTS
# =============================================================================

BOOLEAN_TOKENS = frozenset({"true", "false", "1", "0", "yes", "no"})
TRUTHY_TOKENS = frozenset({"true", "1", "yes"})
# Tokens that are booleans in a single cell; 1/0 only read as booleans at column level
SCALAR_BOOLEAN_TOKENS = frozenset({"true", "false", "yes", "no"})

NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

# YYYY-MM-DD / YYYY/MM/DD with optional time
ISO_DATE_PATTERN = re.compile(
    r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})"
    r"(?:[T ](\d{1,2}):(\d{2})(?::(\d{2}))?)?"
)
# MM/DD/YYYY / MM-DD-YYYY (DD/MM/YYYY when the first part cannot be a month)
US_DATE_PATTERN = re.compile(
    r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})"
    r"(?:[T ](\d{1,2}):(\d{2})(?::(\d{2}))?)?"
)


# =============================================================================
# TOKEN PARSERS
# =============================================================================

def is_null(raw: object) -> bool:
    if raw is None:
        return True
    if isinstance(raw, float) and math.isnan(raw):
        return True
    return isinstance(raw, str) and raw.strip() == ""


def is_boolean_token(raw: object) -> bool:
    return not is_null(raw) and str(raw).strip().lower() in BOOLEAN_TOKENS


def is_truthy_token(raw: object) -> bool:
    return not is_null(raw) and str(raw).strip().lower() in TRUTHY_TOKENS


def parse_number(raw: object) -> float | None:
    """Parse a finite number, ignoring thousands separators. None if not numeric."""
    if is_null(raw):
        return None
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else None
    text = str(raw).strip().replace(",", "")
    if not NUMBER_PATTERN.match(text):
        return None
    value = float(text)
    return value if math.isfinite(value) else None


def _build_datetime(year: int, month: int, day: int, groups: tuple) -> datetime | None:
    hour, minute, second = (int(g) if g else 0 for g in groups)
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None


def parse_date(raw: object) -> datetime | None:
    """Parse a recognized date pattern. None if the token is not a valid date."""
    if is_null(raw):
        return None
    if isinstance(raw, datetime):
        return raw
    text = str(raw).strip()

    match = ISO_DATE_PATTERN.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups()[:3])
        return _build_datetime(year, month, day, match.groups()[3:])

    match = US_DATE_PATTERN.match(text)
    if match:
        first, second, year = (int(g) for g in match.groups()[:3])
        month, day = (first, second) if first <= 12 else (second, first)
        return _build_datetime(year, month, day, match.groups()[3:])

    return None


def numeric_series(series: pd.Series) -> pd.Series:
    """Float series with NaN wherever the cell is not a finite number."""
    return pd.to_numeric(series.map(parse_number), errors="coerce").astype(float)


def date_series(series: pd.Series) -> pd.Series:
    """Datetime series with NaT wherever the cell is not a recognized date."""
    return pd.to_datetime(series.map(parse_date), errors="coerce")


# =============================================================================
# TAGGED VALUES
# =============================================================================

@dataclass(frozen=True)
class NullValue:
    pass


@dataclass(frozen=True)
class BoolValue:
    value: bool
    raw: str


@dataclass(frozen=True)
class NumberValue:
    value: float
    raw: str


@dataclass(frozen=True)
class DateValue:
    value: datetime
    raw: str


@dataclass(frozen=True)
class TextValue:
    value: str


Value = Union[NullValue, BoolValue, NumberValue, DateValue, TextValue]

NULL = NullValue()


def to_value(raw: object) -> Value:
    """Classify one raw cell into a tagged value."""
    if is_null(raw):
        return NULL
    text = str(raw).strip()
    if text.lower() in SCALAR_BOOLEAN_TOKENS:
        return BoolValue(text.lower() in TRUTHY_TOKENS, text)
    number = parse_number(text)
    if number is not None:
        return NumberValue(number, text)
    date = parse_date(text)
    if date is not None:
        return DateValue(date, text)
    return TextValue(text)

# semantics.py — Column type inference & semantic classification
# Shared by the profiler, the semantic guard and the baseline template
"""
semantics.py — Column Semantics

One module decides what a column *is*:

- ``infer_column_type``: raw profiler type (string / number / boolean / date)
  by majority vote over non-null cells.
- ``semantic_type_for``: guard-level type. Refines numeric or string columns
  with a date-like name into ``date`` so that day-of-month or year fields are
  never summed or averaged.
- ``is_identifier_column`` / ``is_timestamp_column``: name heuristics that
  keep keys and timestamps out of statistical templates.
"""

from __future__ import annotations

import logging
import re

import pandas as pd

from engine.models import ColumnProfile, ColumnType, SemanticType
from engine.values import is_boolean_token, is_null, parse_date, parse_number

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

BOOLEAN_MAJORITY_RATIO = 1.0  # every non-null value must be a boolean token
DATE_MAJORITY_RATIO = 0.8  # strictly more than this share must parse as dates
NUMBER_MAJORITY_RATIO = 0.8  # strictly more than this share must parse as numbers

DATE_NAME_PATTERN = re.compile(r"date|time|day|month|year|created|updated|journey", re.IGNORECASE)
STRONG_DATE_NAME_PATTERN = re.compile(r"date.*journey|journey.*date|date_of", re.IGNORECASE)
DATE_COMPONENT_ENVELOPES = (
    (1, 31),  # day of month
    (1, 12),  # month
    (1000, 9999),  # year
)

IDENTIFIER_NAME_PATTERNS = re.compile(
    r"(^id$|_id$|^uuid$|^guid$|^hash$|_hash$|^key$|_key$|^pk$|^fk$|^primary_key$|^foreign_key$)",
    re.IGNORECASE,
)
TIMESTAMP_NAME_PATTERNS = re.compile(
    r"(timestamp|_at$|^created|^updated|^date$|^time$|datetime)",
    re.IGNORECASE,
)


# =============================================================================
# RAW TYPE INFERENCE
# =============================================================================

def infer_column_type(series: pd.Series) -> ColumnType:
    """
    Infer the raw type of a column from its cells.

    Priority: boolean (all non-null values are boolean tokens), date (>80%
    recognized dates), number (>80% finite numbers), else string. An
    all-null column is a string column.
    """
    non_null = series[~series.map(is_null)]
    total = len(non_null)
    if total == 0:
        return ColumnType.STRING

    boolean_ratio = non_null.map(is_boolean_token).sum() / total
    if boolean_ratio >= BOOLEAN_MAJORITY_RATIO:
        return ColumnType.BOOLEAN

    date_ratio = non_null.map(lambda v: parse_date(v) is not None).sum() / total
    if date_ratio > DATE_MAJORITY_RATIO:
        return ColumnType.DATE

    number_ratio = non_null.map(lambda v: parse_number(v) is not None).sum() / total
    if number_ratio > NUMBER_MAJORITY_RATIO:
        return ColumnType.NUMBER

    return ColumnType.STRING


# =============================================================================
# SEMANTIC TYPE (GUARD LEVEL)
# =============================================================================

def has_date_like_name(name: str) -> bool:
    """True when a date keyword appears anywhere in the name (`weekday`, `traveldate`)."""
    return DATE_NAME_PATTERN.search(name) is not None


def _fits_date_envelope(column: ColumnProfile) -> bool:
    if column.min is None or column.max is None:
        return False
    return any(low <= column.min and column.max <= high for low, high in DATE_COMPONENT_ENVELOPES)


def semantic_type_for(column: ColumnProfile) -> SemanticType:
    """Map a profiled column onto the semantic type used by the guard."""
    if column.type in (ColumnType.NUMBER, ColumnType.STRING) and has_date_like_name(column.name):
        if column.type == ColumnType.NUMBER and _fits_date_envelope(column):
            logger.debug("Column %r reclassified as date (range %s..%s)", column.name, column.min, column.max)
            return SemanticType.DATE
        if STRONG_DATE_NAME_PATTERN.search(column.name):
            logger.debug("Column %r reclassified as date (name)", column.name)
            return SemanticType.DATE

    if column.type == ColumnType.NUMBER:
        return SemanticType.NUMERIC
    if column.type == ColumnType.DATE:
        return SemanticType.DATE
    if column.type == ColumnType.BOOLEAN:
        return SemanticType.BOOLEAN
    if column.type == ColumnType.STRING:
        return SemanticType.CATEGORICAL
    return SemanticType.UNKNOWN


# =============================================================================
# IDENTIFIER / TIMESTAMP HEURISTICS
# =============================================================================

def is_identifier_column(name: str) -> bool:
    return bool(IDENTIFIER_NAME_PATTERNS.search(name.strip()))


def is_timestamp_column(name: str) -> bool:
    return bool(TIMESTAMP_NAME_PATTERNS.search(name.strip()))


def has_identifier_cardinality(
    column: ColumnProfile,
    row_count: int,
    distinct_ratio: float,
    min_distinct: int,
) -> bool:
    """Near-unique columns with many values behave like keys."""
    if row_count == 0:
        return False
    return column.distinct_count / row_count > distinct_ratio and column.distinct_count > min_distinct

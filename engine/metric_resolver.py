# metric_resolver.py — Metric, dimension & time-column resolution
# Reconciles question wording with the profiled columns
"""
metric_resolver.py — Column Resolution

Given a question, the dataset profile and the classified intent, selects:

- the metric column (always),
- the grouping dimension (mandatory for group_by),
- the time column (mandatory for time_series).

An explicitly named column is selected for the metric slot regardless of its
type. Rejecting a nonsensical operation on a correctly identified column is
the semantic guard's job, not the resolver's.
"""

from __future__ import annotations

import logging
import re

from engine.errors import (
    DimensionNotFoundError,
    NoNumericColumnsError,
    TimeColumnNotFoundError,
    UnsupportedQueryError,
)
from engine.models import (
    AnalyticsIntent,
    ColumnProfile,
    ColumnType,
    DatasetProfile,
    MetricResolution,
    ResolvedColumn,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

METRIC_SYNONYMS: dict[str, tuple[str, ...]] = {
    "revenue": ("revenue", "income", "sales", "amount", "value", "price", "cost"),
    "sales": ("sales", "revenue", "income"),
    "amount": ("amount", "value", "total"),
    "price": ("price", "cost", "amount", "value"),
    "total": ("total", "sum", "amount", "value"),
    "quantity": ("quantity", "qty", "units", "items", "count", "number"),
    "count": ("count", "number", "quantity", "qty"),
}
DIMENSION_KEYWORDS = ("country", "region", "category", "type", "status", "group", "class")
TIME_KEYWORDS = ("date", "time", "day", "month", "year", "created", "updated", "timestamp")

DIMENSION_PHRASE = re.compile(r"\b(by|per|for each|for every)\s+([a-z_]+)\b", re.IGNORECASE)

MIN_MAX_INTENTS = (AnalyticsIntent.AGGREGATE_MIN, AnalyticsIntent.AGGREGATE_MAX)


# =============================================================================
# HELPERS
# =============================================================================

def _name_forms(name: str) -> set[str]:
    """A column name as written, and with underscores read as spaces."""
    lower = name.lower().strip()
    return {lower, lower.replace("_", " "), lower.replace(" ", "_")}


def _mention_position(question: str, column: ColumnProfile) -> int | None:
    """Position of a whole-word mention of the column in the question."""
    positions = []
    for form in _name_forms(column.name):
        if not form:
            continue
        pattern = rf"(?<![a-z0-9_]){re.escape(form)}(?![a-z0-9_])"
        match = re.search(pattern, question)
        if match:
            positions.append(match.start())
    return min(positions) if positions else None


def _matches_token(column: ColumnProfile, token: str) -> bool:
    return any(token in form or form in token for form in _name_forms(column.name) if form)


def _dimension_for_token(token: str, columns: tuple[ColumnProfile, ...]) -> ColumnProfile | None:
    """Column named by a "by X" token: an exact name match first, then a substring match."""
    for col in columns:
        if token in _name_forms(col.name):
            return col
    return next((col for col in columns if _matches_token(col, token)), None)


def _dimension_tokens(question: str) -> list[str]:
    return [match.group(2).lower() for match in DIMENSION_PHRASE.finditer(question)]


def _allowed_types(intent: AnalyticsIntent | None) -> tuple[ColumnType, ...]:
    if intent in MIN_MAX_INTENTS:
        return (ColumnType.NUMBER, ColumnType.DATE)
    if intent == AnalyticsIntent.AGGREGATE_COUNT:
        return tuple(ColumnType)
    return (ColumnType.NUMBER,)


def _resolved(column: ColumnProfile) -> ResolvedColumn:
    return ResolvedColumn(column_name=column.name, column_profile=column)


# =============================================================================
# RESOLVERS
# =============================================================================

def resolve_metric(
    question: str,
    profile: DatasetProfile,
    intent: AnalyticsIntent | None = None,
) -> ResolvedColumn:
    """
    Resolve the metric column.

    Policy, in order: explicit whole-word column mention (any type; columns
    named as the "by X" grouping target are skipped, earliest mention wins),
    substring match over allowed columns, synonym table, first allowed column.

    Raises:
        NoNumericColumnsError: no column of an allowed type exists
    """
    normalized = question.lower()
    allowed = profile.columns_of_type(*_allowed_types(intent))

    if not allowed:
        if intent in MIN_MAX_INTENTS:
            raise NoNumericColumnsError("Dataset contains no numeric or date columns for min/max operations")
        raise NoNumericColumnsError("Dataset contains no numeric columns for aggregation")

    # 1. Explicit mention, regardless of type
    by_targets = [_dimension_for_token(token, profile.columns) for token in _dimension_tokens(normalized)]
    mentions = []
    for index, col in enumerate(profile.columns):
        if any(col is target for target in by_targets):
            continue
        position = _mention_position(normalized, col)
        if position is not None:
            mentions.append((position, index, col))
    if mentions:
        col = min(mentions, key=lambda m: (m[0], m[1]))[2]
        logger.debug("Metric resolved by explicit mention: %s", col.name)
        return _resolved(col)

    # 2. Substring match over allowed columns
    for col in allowed:
        if any(form in normalized for form in _name_forms(col.name) if form):
            return _resolved(col)

    # 3. Synonym table
    for keyword, synonyms in METRIC_SYNONYMS.items():
        if not any(syn in normalized for syn in synonyms):
            continue
        for col in allowed:
            name = col.name.lower()
            if keyword in name or any(syn in name for syn in synonyms):
                logger.debug("Metric resolved by synonym %r: %s", keyword, col.name)
                return _resolved(col)

    # 4. First allowed column
    return _resolved(allowed[0])


def resolve_dimension(question: str, profile: DatasetProfile) -> ResolvedColumn | None:
    """Resolve the grouping dimension from "by/per/for each X" phrasing, then keywords."""
    normalized = question.lower()

    for token in _dimension_tokens(normalized):
        col = _dimension_for_token(token, profile.columns)
        if col is not None:
            return _resolved(col)

    for keyword in DIMENSION_KEYWORDS:
        if keyword not in normalized:
            continue
        for col in profile.columns:
            if keyword in col.name.lower():
                return _resolved(col)

    return None


def resolve_time_column(question: str, profile: DatasetProfile) -> ResolvedColumn | None:
    """Resolve a date-typed column, preferring one named by a temporal keyword."""
    normalized = question.lower()
    date_columns = profile.columns_of_type(ColumnType.DATE)
    if not date_columns:
        return None

    for keyword in TIME_KEYWORDS:
        if keyword not in normalized:
            continue
        for col in date_columns:
            if keyword in col.name.lower():
                return _resolved(col)

    return _resolved(date_columns[0])


def resolve_all(question: str, profile: DatasetProfile, intent: AnalyticsIntent) -> MetricResolution:
    """
    Resolve every column slot the intent needs.

    Raises:
        UnsupportedQueryError: intent is unsupported_query
        NoNumericColumnsError: no metric candidate exists
        DimensionNotFoundError: group_by without a resolvable dimension
        TimeColumnNotFoundError: time_series without a date column
    """
    if intent == AnalyticsIntent.UNSUPPORTED_QUERY:
        raise UnsupportedQueryError("Query intent is not supported")

    metric = resolve_metric(question, profile, intent)

    dimension = resolve_dimension(question, profile)
    if intent == AnalyticsIntent.GROUP_BY and dimension is None:
        raise DimensionNotFoundError("Could not identify dimension column for grouping")

    time_column = resolve_time_column(question, profile)
    if intent == AnalyticsIntent.TIME_SERIES and time_column is None:
        raise TimeColumnNotFoundError("Could not identify time column for time series analysis")

    logger.info(
        "Resolved metric=%s dimension=%s time=%s",
        metric.column_name,
        dimension.column_name if dimension else None,
        time_column.column_name if time_column else None,
    )
    return MetricResolution(metric=metric, dimension=dimension, time_column=time_column)

# execution_engine.py — Deterministic aggregation engine
# sum / avg / min / max / count / group_by / time_series over a re-parsed file
"""
execution_engine.py — Analysis Execution

Runs one resolved, guard-approved query against the dataset file. The file
is re-parsed on every call; nothing is shared between calls.

Result shapes:
- scalar: ``data`` is a number, a cell's text (min/max over dates or text),
  or None (average over zero values)
- table:  ``[{<dimension>: value, "total": x}, ...]`` sorted by total descending
- series: ``[{"time_bucket": key, "total": x}, ...]`` sorted by key ascending
"""

from __future__ import annotations

import logging
import operator
from pathlib import Path
from typing import Any, Callable

import pandas as pd

from engine.data_parser import parse_file
from engine.errors import DataParseError, ExecutionError
from engine.models import (
    AnalysisResult,
    AnalyticsIntent,
    ColumnType,
    MetricResolution,
    ParsedData,
    ResolvedColumn,
    ResultType,
    TimeBucket,
)
from engine.values import (
    BoolValue,
    DateValue,
    NullValue,
    NumberValue,
    TextValue,
    Value,
    date_series,
    numeric_series,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

BUCKET_FORMATS = {
    TimeBucket.DAY: "%Y-%m-%d",
    TimeBucket.MONTH: "%Y-%m",
    TimeBucket.YEAR: "%Y",
}


# =============================================================================
# COLUMN ACCESS
# =============================================================================

def _normalize_header(name: str) -> str:
    return "_".join(name.strip().lower().split())


def find_column(parsed_data: ParsedData, column_name: str) -> str:
    """
    Map a resolved column name onto the parsed header, tolerating case and
    space/underscore drift.

    Raises:
        ExecutionError: no header matches
    """
    if column_name in parsed_data.headers:
        return column_name

    lower = column_name.lower()
    for header in parsed_data.headers:
        if header.lower() == lower:
            return header

    normalized = _normalize_header(column_name)
    for header in parsed_data.headers:
        if _normalize_header(header) == normalized:
            return header

    raise ExecutionError(f"Column '{column_name}' not found in dataset")


def _numbers(values: tuple[Value, ...]) -> list[float]:
    return [v.value for v in values if isinstance(v, NumberValue)]


def _raw_text(value: Value) -> str:
    if isinstance(value, (NumberValue, DateValue, BoolValue)):
        return value.raw
    if isinstance(value, TextValue):
        return value.value
    return ""


def _metadata(intent: AnalyticsIntent, resolution: MetricResolution, **extra: Any) -> dict:
    meta = {
        "metric": resolution.metric.column_name,
        "dimension": resolution.dimension.column_name if resolution.dimension else None,
        "time_column": resolution.time_column.column_name if resolution.time_column else None,
        "intent": intent.value,
    }
    meta.update(extra)
    return meta


# =============================================================================
# AGGREGATES
# =============================================================================

def execute_sum(parsed_data: ParsedData, column: str) -> tuple[float, int]:
    numbers = _numbers(parsed_data.values(column))
    return float(sum(numbers)), len(numbers)


def execute_avg(parsed_data: ParsedData, column: str) -> tuple[float | None, int]:
    """Mean over parseable numbers; None when there are none."""
    numbers = _numbers(parsed_data.values(column))
    if not numbers:
        return None, 0
    return sum(numbers) / len(numbers), len(numbers)


def execute_count(parsed_data: ParsedData) -> int:
    return parsed_data.row_count


def _extreme(
    parsed_data: ParsedData,
    column: str,
    column_type: ColumnType,
    better: Callable[[Any, Any], bool],
) -> tuple[Any, int]:
    """
    Single pass min/max over one comparison domain.

    Number columns compare parsed numbers, date columns compare parsed dates,
    anything else compares cell text lexically. Values outside the domain
    are skipped.
    """
    values = [v for v in parsed_data.values(column) if not isinstance(v, NullValue)]

    if column_type == ColumnType.NUMBER and any(isinstance(v, NumberValue) for v in values):
        candidates = [(v.value, v.value) for v in values if isinstance(v, NumberValue)]
    elif column_type == ColumnType.DATE and any(isinstance(v, DateValue) for v in values):
        candidates = [(v.value, v.raw) for v in values if isinstance(v, DateValue)]
    else:
        candidates = [(_raw_text(v), _raw_text(v)) for v in values]

    best_key, best_out = None, None
    for key, out in candidates:
        if best_key is None or better(key, best_key):
            best_key, best_out = key, out
    return best_out, len(candidates)


def execute_group_by(parsed_data: ParsedData, metric: str, dimension: str) -> list[dict]:
    """Sum of the metric per dimension value. Ties keep first-seen order."""
    frame = pd.DataFrame({
        "key": parsed_data.column(dimension),
        "value": numeric_series(parsed_data.column(metric)),
    }).dropna()

    totals = frame.groupby("key", sort=False)["value"].sum()
    ordered = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    return [{dimension: key, "total": float(total)} for key, total in ordered]


def execute_time_series(
    parsed_data: ParsedData,
    metric: str,
    time_column: str,
    bucket: TimeBucket = TimeBucket.DAY,
) -> list[dict]:
    """Sum of the metric per time bucket, keys ascending."""
    frame = pd.DataFrame({
        "when": date_series(parsed_data.column(time_column)),
        "value": numeric_series(parsed_data.column(metric)),
    }).dropna()
    if frame.empty:
        return []

    frame["time_bucket"] = frame["when"].dt.strftime(BUCKET_FORMATS[bucket])
    totals = frame.groupby("time_bucket", sort=True)["value"].sum()
    return [{"time_bucket": key, "total": float(total)} for key, total in totals.items()]


# =============================================================================
# ENTRY POINT
# =============================================================================

def _required(slot: ResolvedColumn | None, label: str, intent: AnalyticsIntent) -> ResolvedColumn:
    if slot is None:
        raise ExecutionError(f"{label} column required for {intent.value}")
    return slot


def execute_analysis(
    file_path: str | Path,
    intent: AnalyticsIntent,
    resolution: MetricResolution,
    bucket: TimeBucket | str = TimeBucket.DAY,
) -> AnalysisResult:
    """
    Execute a resolved query against the dataset file.

    Args:
        file_path: Path of the dataset file (re-parsed on every call)
        intent: Classified intent
        resolution: Output of ``resolve_all``, already approved by the guard
        bucket: Time-series granularity; day unless requested otherwise

    Returns:
        AnalysisResult

    Raises:
        ExecutionError: unreadable file, unknown intent, missing required
            dimension / time column, or a column absent from the file
    """
    try:
        intent = AnalyticsIntent(intent)
        bucket = TimeBucket(bucket)
    except ValueError as e:
        raise ExecutionError(f"Unknown intent or bucket: {e}") from e

    try:
        parsed = parse_file(file_path)
    except DataParseError as e:
        raise ExecutionError(e.message) from e

    metric_profile = resolution.metric.column_profile
    metric = find_column(parsed, resolution.metric.column_name)

    if intent == AnalyticsIntent.AGGREGATE_SUM:
        total, used = execute_sum(parsed, metric)
        result = AnalysisResult(ResultType.SCALAR, total, _metadata(intent, resolution, values_used=used))

    elif intent == AnalyticsIntent.AGGREGATE_AVG:
        mean, used = execute_avg(parsed, metric)
        result = AnalysisResult(ResultType.SCALAR, mean, _metadata(intent, resolution, values_used=used))

    elif intent == AnalyticsIntent.AGGREGATE_COUNT:
        count = execute_count(parsed)
        result = AnalysisResult(ResultType.SCALAR, count, _metadata(intent, resolution, values_used=count))

    elif intent in (AnalyticsIntent.AGGREGATE_MIN, AnalyticsIntent.AGGREGATE_MAX):
        better = operator.lt if intent == AnalyticsIntent.AGGREGATE_MIN else operator.gt
        value, used = _extreme(parsed, metric, metric_profile.type, better)
        result = AnalysisResult(ResultType.SCALAR, value, _metadata(intent, resolution, values_used=used))

    elif intent == AnalyticsIntent.GROUP_BY:
        dimension = find_column(parsed, _required(resolution.dimension, "Dimension", intent).column_name)
        rows = execute_group_by(parsed, metric, dimension)
        result = AnalysisResult(ResultType.TABLE, rows, _metadata(intent, resolution, groups=len(rows)))

    elif intent == AnalyticsIntent.TIME_SERIES:
        time_column = find_column(parsed, _required(resolution.time_column, "Time", intent).column_name)
        rows = execute_time_series(parsed, metric, time_column, bucket)
        result = AnalysisResult(
            ResultType.SERIES, rows,
            _metadata(intent, resolution, bucket=bucket.value, points=len(rows)),
        )

    else:
        raise ExecutionError(f"Unsupported intent: {intent.value}")

    logger.info("Executed %s on %s -> %s", intent.value, metric, result.type.value)
    return result

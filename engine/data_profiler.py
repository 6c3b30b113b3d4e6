# data_profiler.py — Deterministic column profiling
# Type inference, null density, distinct counts, numeric summaries
"""
data_profiler.py — Dataset Profiling

Profiles every column of a ``ParsedData`` table without any model calls.
Re-profiling the same data always yields an identical profile.
"""

from __future__ import annotations

import logging

import pandas as pd

from engine.errors import EmptyDatasetError
from engine.models import ColumnProfile, ColumnType, DatasetProfile, ParsedData
from engine.semantics import infer_column_type
from engine.values import is_null, numeric_series

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

NULL_RATIO_DECIMALS = 4
STAT_DECIMALS = 2


# =============================================================================
# COLUMN STATISTICS
# =============================================================================

def _numeric_stats(series: pd.Series) -> dict:
    """Min / max / mean over parseable numbers only; unparseable cells are excluded."""
    numbers = numeric_series(series).dropna()
    if numbers.empty:
        return {"numeric_count": 0}
    return {
        "min": round(float(numbers.min()), STAT_DECIMALS),
        "max": round(float(numbers.max()), STAT_DECIMALS),
        "mean": round(float(numbers.mean()), STAT_DECIMALS),
        "numeric_count": int(len(numbers)),
    }


def _distinct_count(series: pd.Series) -> int:
    non_null = series[~series.map(is_null)]
    return int(non_null.map(lambda v: str(v).strip().lower()).nunique())


def profile_column(name: str, series: pd.Series) -> ColumnProfile:
    row_count = len(series)
    null_count = int(series.map(is_null).sum())
    null_ratio = round(null_count / row_count, NULL_RATIO_DECIMALS) if row_count else 0.0
    column_type = infer_column_type(series)
    stats = _numeric_stats(series) if column_type == ColumnType.NUMBER else {}

    logger.debug("Column %r profiled as %s (nulls=%d)", name, column_type.value, null_count)
    return ColumnProfile(
        name=name,
        type=column_type,
        null_count=null_count,
        null_ratio=null_ratio,
        distinct_count=_distinct_count(series),
        **stats,
    )


# =============================================================================
# DATASET PROFILE
# =============================================================================

def profile_dataset(parsed_data: ParsedData, dataset_version_id: str) -> DatasetProfile:
    """
    Profile a parsed dataset.

    Args:
        parsed_data: Output of ``parse_file``
        dataset_version_id: Opaque version identifier from the dataset store

    Returns:
        DatasetProfile with one ColumnProfile per header, in header order

    Raises:
        EmptyDatasetError: zero rows or zero columns
    """
    if parsed_data.row_count == 0:
        raise EmptyDatasetError("Cannot profile empty dataset")
    if parsed_data.column_count == 0:
        raise EmptyDatasetError("Cannot profile dataset with no columns")

    columns = tuple(
        profile_column(header, parsed_data.column(header))
        for header in parsed_data.headers
    )

    logger.info(
        "Profiled dataset %s: %d rows, %d columns",
        dataset_version_id, parsed_data.row_count, parsed_data.column_count,
    )
    return DatasetProfile(
        dataset_version_id=dataset_version_id,
        row_count=parsed_data.row_count,
        column_count=parsed_data.column_count,
        columns=columns,
    )

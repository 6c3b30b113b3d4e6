# models.py — Engine record types
# Parsed data, profiles, intents, resolutions, guard results, analysis results
"""
models.py — Engine Data Model

Immutable records passed between engine stages. Every record that leaves the
engine exposes ``to_dict()`` returning a JSON-serializable dict.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any

import pandas as pd

from engine.values import Value, to_value


# =============================================================================
# ENUMS
# =============================================================================

class ColumnType(str, Enum):
    """Raw type inferred by the profiler."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"


class SemanticType(str, Enum):
    """Guard-level classification deciding which operations are meaningful."""
    NUMERIC = "numeric"
    DATE = "date"
    CATEGORICAL = "categorical"
    BOOLEAN = "boolean"
    UNKNOWN = "unknown"


class AnalyticsIntent(str, Enum):
    AGGREGATE_SUM = "aggregate_sum"
    AGGREGATE_AVG = "aggregate_avg"
    AGGREGATE_MIN = "aggregate_min"
    AGGREGATE_MAX = "aggregate_max"
    AGGREGATE_COUNT = "aggregate_count"
    GROUP_BY = "group_by"
    TIME_SERIES = "time_series"
    UNSUPPORTED_QUERY = "unsupported_query"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class OperationCategory(str, Enum):
    AVERAGE = "average"
    SUM = "sum"
    MIN = "min"
    MAX = "max"
    COUNT = "count"
    GROUP_BY = "group_by"
    TIME_BUCKET = "time_bucket"
    CORRELATION = "correlation"
    DISTRIBUTION = "distribution"


class ResultType(str, Enum):
    SCALAR = "scalar"
    TABLE = "table"
    SERIES = "series"


class TimeBucket(str, Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


# =============================================================================
# PARSED DATA
# =============================================================================

@dataclass(frozen=True, eq=False)
class ParsedData:
    """
    Uniform in-memory table produced by the parser.

    Cells are trimmed strings, or None for empty cells. Every row holds
    exactly ``len(headers)`` keys.
    """

    headers: tuple[str, ...]
    rows: tuple[dict[str, str | None], ...]
    source_path: str | None = None
    _value_cache: dict[str, tuple[Value, ...]] = field(
        default_factory=dict, repr=False, compare=False
    )

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    @cached_property
    def frame(self) -> pd.DataFrame:
        """Object-dtype DataFrame view of the rows (None kept as missing)."""
        return pd.DataFrame(list(self.rows), columns=list(self.headers), dtype=object)

    def column(self, name: str) -> pd.Series:
        return self.frame[name]

    def values(self, name: str) -> tuple[Value, ...]:
        """Typed values of one column, derived once and cached."""
        if name not in self._value_cache:
            self._value_cache[name] = tuple(to_value(row[name]) for row in self.rows)
        return self._value_cache[name]

    def to_dict(self) -> dict:
        return {
            "headers": list(self.headers),
            "rows": [dict(row) for row in self.rows],
            "row_count": self.row_count,
            "column_count": self.column_count,
        }


# =============================================================================
# PROFILES
# =============================================================================

@dataclass(frozen=True)
class ColumnProfile:
    name: str
    type: ColumnType
    null_count: int
    null_ratio: float
    distinct_count: int
    min: float | None = None
    max: float | None = None
    mean: float | None = None
    numeric_count: int | None = None

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "name": self.name,
            "type": self.type.value,
            "null_count": self.null_count,
            "null_ratio": self.null_ratio,
            "distinct_count": self.distinct_count,
        }
        for key in ("min", "max", "mean", "numeric_count"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


@dataclass(frozen=True)
class DatasetProfile:
    dataset_version_id: str
    row_count: int
    column_count: int
    columns: tuple[ColumnProfile, ...]

    def column(self, name: str) -> ColumnProfile | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def columns_of_type(self, *types: ColumnType) -> list[ColumnProfile]:
        return [col for col in self.columns if col.type in types]

    def to_dict(self) -> dict:
        return {
            "dataset_version_id": self.dataset_version_id,
            "row_count": self.row_count,
            "column_count": self.column_count,
            "columns": [col.to_dict() for col in self.columns],
        }


# =============================================================================
# INTENT & RESOLUTION
# =============================================================================

@dataclass(frozen=True)
class IntentClassification:
    intent: AnalyticsIntent
    confidence: Confidence

    def to_dict(self) -> dict:
        return {"intent": self.intent.value, "confidence": self.confidence.value}


@dataclass(frozen=True)
class ResolvedColumn:
    column_name: str
    column_profile: ColumnProfile

    def to_dict(self) -> dict:
        return {"column_name": self.column_name, "column_profile": self.column_profile.to_dict()}


@dataclass(frozen=True)
class MetricResolution:
    metric: ResolvedColumn
    dimension: ResolvedColumn | None = None
    time_column: ResolvedColumn | None = None

    def to_dict(self) -> dict:
        return {
            "metric": self.metric.to_dict(),
            "dimension": self.dimension.to_dict() if self.dimension else None,
            "time_column": self.time_column.to_dict() if self.time_column else None,
        }


# =============================================================================
# GUARD & EXECUTION RESULTS
# =============================================================================

@dataclass(frozen=True)
class SemanticGuardResult:
    is_valid: bool
    column: str
    semantic_type: SemanticType
    attempted_operation: OperationCategory
    reason: str | None = None
    suggested_alternatives: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "is_valid": self.is_valid,
            "column": self.column,
            "semantic_type": self.semantic_type.value,
            "attempted_operation": self.attempted_operation.value,
        }
        if not self.is_valid:
            out["reason"] = self.reason
            out["suggested_alternatives"] = list(self.suggested_alternatives)
        return out


@dataclass(frozen=True)
class AnalysisResult:
    type: ResultType
    data: Any
    metadata: dict[str, Any]

    def to_dict(self) -> dict:
        return {"type": self.type.value, "data": self.data, "metadata": dict(self.metadata)}

"""Tests for the semantic operation guard."""

from __future__ import annotations

import pytest

from engine.models import (
    AnalyticsIntent,
    ColumnProfile,
    ColumnType,
    MetricResolution,
    OperationCategory,
    ResolvedColumn,
    SemanticType,
)
from engine.semantic_guard import (
    allowed_operations,
    operation_for_intent,
    validate_dimension_operation,
    validate_operation,
    validate_semantic_operations,
    validate_time_column_operation,
)

Op = OperationCategory


def _column(name: str, column_type: ColumnType, **stats) -> ColumnProfile:
    return ColumnProfile(name=name, type=column_type, null_count=0, null_ratio=0.0, distinct_count=10, **stats)


AMOUNT = _column("amount", ColumnType.NUMBER, min=5.0, max=900.0, mean=120.0, numeric_count=10)
REGION = _column("region", ColumnType.STRING)
CHURNED = _column("churned", ColumnType.BOOLEAN)
SIGNUP = _column("signup_date", ColumnType.DATE)
DAY_OF_MONTH = _column("Date_of_Journey", ColumnType.NUMBER, min=1.0, max=27.0, mean=14.0, numeric_count=10)


def _resolved(column: ColumnProfile) -> ResolvedColumn:
    return ResolvedColumn(column_name=column.name, column_profile=column)


@pytest.mark.parametrize("operation", [op for op in Op if op != Op.TIME_BUCKET])
def test_numeric_columns_allow_every_statistical_operation(operation: OperationCategory) -> None:
    assert validate_operation(AMOUNT, operation).is_valid


def test_numeric_columns_cannot_be_time_bucketed() -> None:
    result = validate_operation(AMOUNT, Op.TIME_BUCKET)

    assert not result.is_valid
    assert result.reason == 'The operation "time-based analysis" is not meaningful for numeric columns.'


def test_summing_a_categorical_column_is_blocked() -> None:
    result = validate_operation(REGION, Op.SUM)

    assert not result.is_valid
    assert result.semantic_type == SemanticType.CATEGORICAL
    assert "categorical" in result.reason
    assert "labels, not quantities" in result.reason
    assert result.suggested_alternatives == ("count", "group_by", "distribution")


def test_averaging_a_day_of_month_column_is_blocked() -> None:
    """A numeric day-of-month column is treated as a date."""
    result = validate_operation(DAY_OF_MONTH, Op.AVERAGE)

    assert not result.is_valid
    assert result.semantic_type == SemanticType.DATE
    assert "date column" in result.reason
    assert result.suggested_alternatives == ("min", "max", "count", "group_by", "time_bucket")


@pytest.mark.parametrize(
    ("name", "low", "high"),
    [
        ("dayofmonth", 1.0, 27.0),
        ("weekday", 1.0, 7.0),
        ("traveldate", 1.0, 27.0),
        ("birthyear", 1951.0, 1977.0),
    ],
)
def test_lower_case_date_component_names_are_blocked(name: str, low: float, high: float) -> None:
    column = _column(name, ColumnType.NUMBER, min=low, max=high, mean=(low + high) / 2, numeric_count=10)
    resolution = MetricResolution(metric=_resolved(column))

    blocked = validate_semantic_operations(resolution, AnalyticsIntent.AGGREGATE_AVG, "v1")

    assert blocked is not None
    assert blocked.semantic_type == SemanticType.DATE
    assert blocked.attempted_operation == Op.AVERAGE


def test_boolean_min_uses_generic_reason() -> None:
    result = validate_operation(CHURNED, Op.MIN)

    assert not result.is_valid
    assert result.reason == 'The operation "finding minimum" is not meaningful for boolean columns.'
    assert result.suggested_alternatives == ("count", "group_by")


def test_correlation_on_categorical_column_is_blocked() -> None:
    result = validate_operation(REGION, Op.CORRELATION)

    assert not result.is_valid
    assert result.reason.startswith("Correlation requires numeric values.")


def test_attempted_operation_is_never_suggested() -> None:
    result = validate_operation(SIGNUP, Op.SUM)

    assert Op.SUM.value not in result.suggested_alternatives
    assert set(result.suggested_alternatives) <= {op.value for op in allowed_operations(SemanticType.DATE)}


def test_unknown_type_allows_nothing() -> None:
    assert allowed_operations(SemanticType.UNKNOWN) == ()


def test_intent_operation_mapping() -> None:
    assert operation_for_intent(AnalyticsIntent.AGGREGATE_AVG) == Op.AVERAGE
    assert operation_for_intent(AnalyticsIntent.AGGREGATE_COUNT) == Op.COUNT
    assert operation_for_intent(AnalyticsIntent.GROUP_BY) == Op.SUM
    assert operation_for_intent(AnalyticsIntent.TIME_SERIES) == Op.SUM
    assert operation_for_intent(AnalyticsIntent.UNSUPPORTED_QUERY) == Op.COUNT


def test_valid_group_by_passes_every_check() -> None:
    resolution = MetricResolution(metric=_resolved(AMOUNT), dimension=_resolved(REGION))

    assert validate_semantic_operations(resolution, AnalyticsIntent.GROUP_BY, "v1") is None


def test_group_by_over_categorical_metric_is_blocked_on_the_metric() -> None:
    resolution = MetricResolution(metric=_resolved(REGION), dimension=_resolved(CHURNED))

    blocked = validate_semantic_operations(resolution, AnalyticsIntent.GROUP_BY, "v1")

    assert blocked is not None
    assert blocked.column == "region"
    assert blocked.attempted_operation == Op.SUM


def test_dimension_is_only_checked_for_group_by() -> None:
    resolution = MetricResolution(metric=_resolved(AMOUNT), dimension=_resolved(REGION))

    assert validate_dimension_operation(resolution, AnalyticsIntent.AGGREGATE_SUM, "v1") is None
    assert validate_dimension_operation(resolution, AnalyticsIntent.GROUP_BY, "v1").is_valid


def test_time_series_requires_a_date_time_column() -> None:
    valid = MetricResolution(metric=_resolved(AMOUNT), time_column=_resolved(SIGNUP))
    invalid = MetricResolution(metric=_resolved(AMOUNT), time_column=_resolved(AMOUNT))

    assert validate_semantic_operations(valid, AnalyticsIntent.TIME_SERIES, "v1") is None
    assert validate_time_column_operation(valid, AnalyticsIntent.AGGREGATE_SUM, "v1") is None
    blocked = validate_semantic_operations(invalid, AnalyticsIntent.TIME_SERIES, "v1")
    assert blocked.attempted_operation == Op.TIME_BUCKET


def test_guard_result_serialization() -> None:
    valid = validate_operation(AMOUNT, Op.SUM).to_dict()
    blocked = validate_operation(REGION, Op.AVERAGE).to_dict()

    assert valid == {"is_valid": True, "column": "amount", "semantic_type": "numeric", "attempted_operation": "sum"}
    assert blocked["is_valid"] is False
    assert blocked["suggested_alternatives"] == ["count", "group_by", "distribution"]

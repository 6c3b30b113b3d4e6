"""Tests for the data quality checker."""

from __future__ import annotations

from datetime import date, timedelta

import pandas as pd

from config.settings import QualityThresholds
from engine.data_parser import parse_file
from engine.data_profiler import profile_dataset
from engine.models import ParsedData
from reports.data_quality import Severity, check_row_count, outlier_ratio, run_data_quality_checks


def _dataset(headers: tuple[str, ...], rows: list[tuple]):
    parsed = ParsedData(headers=headers, rows=tuple(dict(zip(headers, row)) for row in rows))
    return parsed, profile_dataset(parsed, "dq")


def test_small_dataset_warns_about_row_count(make_sales_csv) -> None:
    parsed = parse_file(make_sales_csv(30))

    result = run_data_quality_checks(parsed, profile_dataset(parsed, "v1"), "v1")

    low = [w for w in result.warnings if w.code == "LOW_ROW_COUNT"]
    assert len(low) == 1
    assert low[0].severity == Severity.MEDIUM
    assert "30 rows" in low[0].message


def test_large_dataset_has_no_row_count_warning(make_sales_csv) -> None:
    parsed = parse_file(make_sales_csv(10_000))

    result = run_data_quality_checks(parsed, profile_dataset(parsed, "v1"), "v1")

    assert "LOW_ROW_COUNT" not in result.codes()
    assert result.row_count == 10_000


def test_row_count_threshold_is_inclusive() -> None:
    thresholds = QualityThresholds()

    assert check_row_count(50, thresholds) is None
    assert check_row_count(49, thresholds) is not None


def test_clean_daily_dataset_has_full_coverage(sales_data, sales_profile) -> None:
    result = run_data_quality_checks(sales_data, sales_profile, "v1")

    coverage = result.time_coverage
    assert coverage.column == "order_date"
    assert coverage.expected_granularity == "daily"
    assert coverage.expected_periods == 60
    assert coverage.observed_periods == 60
    assert coverage.coverage_ratio == 1.0
    assert coverage.is_partial_latest_period is False
    assert result.warnings == []


def test_gaps_lower_time_coverage() -> None:
    days = [date(2024, 1, 1) + timedelta(days=i) for i in range(10)] + [date(2024, 2, 20)]
    parsed, profile = _dataset(("day", "sales"), [(d.isoformat(), "5") for d in days])

    result = run_data_quality_checks(parsed, profile, "dq")

    assert result.time_coverage.expected_periods == 51
    assert result.time_coverage.missing_periods_count == 40
    assert "LOW_TIME_COVERAGE" in result.codes()


def test_thin_latest_month_is_partial() -> None:
    rows = []
    for month in range(13):
        year, m = 2023 + month // 12, month % 12 + 1
        rows.extend((date(year, m, day).isoformat(), "1") for day in (1, 8, 15, 22))
    rows.append((date(2024, 2, 1).isoformat(), "1"))
    parsed, profile = _dataset(("booked", "nights"), rows)

    result = run_data_quality_checks(parsed, profile, "dq")

    assert result.time_coverage.expected_granularity == "monthly"
    assert result.time_coverage.is_partial_latest_period is True
    assert "PARTIAL_LATEST_PERIOD" in result.codes()


def test_null_density_severity() -> None:
    rows = [
        ("a" if i < 6 else None, "x" if i < 3 else None, "1")
        for i in range(10)
    ]
    parsed, profile = _dataset(("sparse", "mostly_empty", "full"), rows)

    result = run_data_quality_checks(parsed, profile, "dq")

    issues = {issue.column: issue.null_ratio for issue in result.null_issues}
    severities = {w.message.split('"')[1]: w.severity for w in result.warnings if w.code == "HIGH_NULL_RATIO"}
    assert issues == {"sparse": 0.4, "mostly_empty": 0.7}
    assert severities == {"sparse": Severity.MEDIUM, "mostly_empty": Severity.HIGH}


def test_outlier_ratio_uses_iqr_fences() -> None:
    values = pd.Series([10.0] * 15 + [1000.0] * 5)

    assert outlier_ratio(values, 1.5) == 0.25


def test_outlier_heavy_column_is_reported() -> None:
    rows = [(str(v),) for v in [10] * 15 + [1000] * 5]
    parsed, profile = _dataset(("amount",), rows)

    result = run_data_quality_checks(parsed, profile, "dq")

    assert [o.metric for o in result.outlier_summary] == ["amount"]
    assert result.outlier_summary[0].sampled is False
    assert "HIGH_OUTLIER_RATIO" in result.codes()


def test_outlier_check_skips_short_columns() -> None:
    parsed, profile = _dataset(("amount",), [(str(v),) for v in (1, 1, 1, 1, 500)])

    result = run_data_quality_checks(parsed, profile, "dq")

    assert result.outlier_summary == []


def test_large_columns_are_sampled() -> None:
    values = [-10_000] * 70 + list(range(100, 360)) + [10_000] * 70
    parsed, profile = _dataset(("amount",), [(str(v),) for v in values])

    result = run_data_quality_checks(parsed, profile, "dq", QualityThresholds(outlier_sample_size=200))

    assert result.outlier_summary[0].sampled is True
    warning = next(w for w in result.warnings if w.code == "HIGH_OUTLIER_RATIO")
    assert warning.message.endswith("(Based on sample)")


def test_result_serializes_to_plain_types(sales_data, sales_profile) -> None:
    payload = run_data_quality_checks(sales_data, sales_profile, "v1").to_dict()

    assert payload["dataset_version_id"] == "v1"
    assert payload["time_coverage"]["expected_granularity"] == "daily"
    assert payload["warnings"] == []

# data_quality.py — Deterministic data quality checks
# Row count, time coverage, null density, IQR outlier density
"""
data_quality.py — Data Quality Checker

Four independent, rule-based checks over a parsed and profiled dataset:

A. Row count sanity
B. Time coverage on the first date column (granularity inferred from span)
C. Null density per column
D. Outlier density per numeric column (IQR fences, sampled above a size cap)

Every threshold lives in ``config.settings.QualityThresholds``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import pandas as pd

from config.settings import QualityThresholds
from engine.models import ColumnType, DatasetProfile, ParsedData
from engine.values import date_series, numeric_series

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

GRANULARITY_FREQUENCIES = {
    "daily": "D",
    "weekly": "W-SUN",  # weeks run Monday..Sunday
    "monthly": "M",
}
OUTLIER_METHOD = "IQR"
SAMPLE_RANDOM_STATE = 42


# =============================================================================
# RESULT TYPES
# =============================================================================

class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class QualityWarning:
    code: str
    severity: Severity
    message: str

    def to_dict(self) -> dict:
        return {"code": self.code, "severity": self.severity.value, "message": self.message}


@dataclass(frozen=True)
class TimeCoverage:
    column: str
    min_date: str
    max_date: str
    expected_granularity: str
    expected_periods: int
    observed_periods: int
    missing_periods_count: int
    coverage_ratio: float
    is_partial_latest_period: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class NullIssue:
    column: str
    null_ratio: float

    def to_dict(self) -> dict:
        return {"column": self.column, "null_ratio": self.null_ratio}


@dataclass(frozen=True)
class OutlierSummary:
    metric: str
    method: str
    outlier_ratio: float
    sampled: bool = False

    def to_dict(self) -> dict:
        return {
            "metric": self.metric,
            "method": self.method,
            "outlier_ratio": self.outlier_ratio,
            "sampled": self.sampled,
        }


@dataclass
class DataQualityCheckResult:
    dataset_version_id: str
    checks_run_at: str
    row_count: int
    time_coverage: TimeCoverage | None = None
    null_issues: list[NullIssue] = field(default_factory=list)
    outlier_summary: list[OutlierSummary] = field(default_factory=list)
    warnings: list[QualityWarning] = field(default_factory=list)

    def codes(self) -> list[str]:
        return [w.code for w in self.warnings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset_version_id": self.dataset_version_id,
            "checks_run_at": self.checks_run_at,
            "row_count": self.row_count,
            "time_coverage": self.time_coverage.to_dict() if self.time_coverage else None,
            "null_issues": [n.to_dict() for n in self.null_issues],
            "outlier_summary": [o.to_dict() for o in self.outlier_summary],
            "warnings": [w.to_dict() for w in self.warnings],
        }


# =============================================================================
# CHECK A: ROW COUNT
# =============================================================================

def check_row_count(row_count: int, thresholds: QualityThresholds) -> QualityWarning | None:
    if row_count >= thresholds.min_row_count:
        return None
    return QualityWarning(
        code="LOW_ROW_COUNT",
        severity=Severity.MEDIUM,
        message=(
            f"Dataset has only {row_count} rows. "
            "Results may be unreliable with such a small sample size."
        ),
    )


# =============================================================================
# CHECK B: TIME COVERAGE
# =============================================================================

def _granularity(span_days: float, thresholds: QualityThresholds) -> str:
    if span_days < thresholds.daily_span_days:
        return "daily"
    if span_days < thresholds.weekly_span_days:
        return "weekly"
    return "monthly"


def check_time_coverage(
    parsed_data: ParsedData,
    profile: DatasetProfile,
    thresholds: QualityThresholds,
) -> tuple[TimeCoverage | None, list[QualityWarning]]:
    """Coverage of the first date column, compared period by period."""
    date_columns = profile.columns_of_type(ColumnType.DATE)
    if not date_columns or date_columns[0].name not in parsed_data.headers:
        return None, []

    column = date_columns[0].name
    dates = date_series(parsed_data.column(column)).dropna()
    if dates.empty:
        return None, []

    min_date, max_date = dates.min(), dates.max()
    span_days = (max_date - min_date).total_seconds() / 86400
    granularity = _granularity(span_days, thresholds)
    freq = GRANULARITY_FREQUENCIES[granularity]

    periods = dates.dt.to_period(freq)
    expected = len(pd.period_range(min_date.to_period(freq), max_date.to_period(freq), freq=freq))
    observed = int(periods.nunique())
    missing = expected - observed
    coverage_ratio = observed / expected

    latest_count = int((periods == max_date.to_period(freq)).sum())
    average_count = len(dates) / observed
    is_partial = latest_count < average_count * thresholds.partial_period_ratio

    coverage = TimeCoverage(
        column=column,
        min_date=min_date.isoformat(),
        max_date=max_date.isoformat(),
        expected_granularity=granularity,
        expected_periods=expected,
        observed_periods=observed,
        missing_periods_count=missing,
        coverage_ratio=round(coverage_ratio, 4),
        is_partial_latest_period=is_partial,
    )

    warnings = []
    if is_partial:
        warnings.append(QualityWarning(
            code="PARTIAL_LATEST_PERIOD",
            severity=Severity.MEDIUM,
            message=(
                f"Latest {granularity} period appears incomplete. "
                "Results may not reflect the full period."
            ),
        ))
    if coverage_ratio < thresholds.time_coverage_threshold:
        warnings.append(QualityWarning(
            code="LOW_TIME_COVERAGE",
            severity=Severity.MEDIUM,
            message=(
                f"Time series has {missing} missing periods ({coverage_ratio * 100:.1f}% coverage). "
                "Analysis may be affected by gaps."
            ),
        ))
    return coverage, warnings


# =============================================================================
# CHECK C: NULL DENSITY
# =============================================================================

def check_null_density(
    profile: DatasetProfile,
    thresholds: QualityThresholds,
) -> tuple[list[NullIssue], list[QualityWarning]]:
    issues, warnings = [], []
    for column in profile.columns:
        if column.null_ratio <= thresholds.null_ratio_threshold:
            continue

        issues.append(NullIssue(column=column.name, null_ratio=column.null_ratio))
        severity = Severity.HIGH if column.null_ratio > thresholds.null_ratio_high_severity else Severity.MEDIUM
        warnings.append(QualityWarning(
            code="HIGH_NULL_RATIO",
            severity=severity,
            message=(
                f'Column "{column.name}" has {column.null_ratio * 100:.1f}% null values. '
                "This may affect analysis accuracy."
            ),
        ))
    return issues, warnings


# =============================================================================
# CHECK D: OUTLIERS
# =============================================================================

def outlier_ratio(values: pd.Series, iqr_multiplier: float) -> float:
    """Share of values outside the IQR fences."""
    q1, q3 = values.quantile(0.25), values.quantile(0.75)
    iqr = q3 - q1
    lower, upper = q1 - iqr_multiplier * iqr, q3 + iqr_multiplier * iqr
    return float(((values < lower) | (values > upper)).sum() / len(values))


def check_outliers(
    parsed_data: ParsedData,
    profile: DatasetProfile,
    thresholds: QualityThresholds,
) -> tuple[list[OutlierSummary], list[QualityWarning]]:
    summaries, warnings = [], []
    for column in profile.columns_of_type(ColumnType.NUMBER):
        if column.name not in parsed_data.headers:
            continue
        values = numeric_series(parsed_data.column(column.name)).dropna()

        sampled = len(values) > thresholds.outlier_sample_size
        if sampled:
            values = values.sample(n=thresholds.outlier_sample_size, random_state=SAMPLE_RANDOM_STATE)

        if len(values) < thresholds.min_outlier_observations:
            continue

        ratio = outlier_ratio(values, thresholds.iqr_multiplier)
        if ratio <= thresholds.outlier_ratio_threshold:
            continue

        summaries.append(OutlierSummary(
            metric=column.name, method=OUTLIER_METHOD, outlier_ratio=round(ratio, 4), sampled=sampled,
        ))
        suffix = " (Based on sample)" if sampled else ""
        warnings.append(QualityWarning(
            code="HIGH_OUTLIER_RATIO",
            severity=Severity.MEDIUM,
            message=(
                f'Column "{column.name}" has {ratio * 100:.1f}% outliers. '
                f"Results may be skewed by extreme values.{suffix}"
            ),
        ))
    return summaries, warnings


# =============================================================================
# ENTRY POINT
# =============================================================================

def run_data_quality_checks(
    parsed_data: ParsedData,
    profile: DatasetProfile,
    dataset_version_id: str,
    thresholds: QualityThresholds | None = None,
) -> DataQualityCheckResult:
    """
    Run every quality check.

    Args:
        parsed_data: Output of ``parse_file``
        profile: Output of ``profile_dataset`` for the same data
        dataset_version_id: Opaque version identifier
        thresholds: Override the default thresholds

    Returns:
        DataQualityCheckResult; warnings are ordered by check (A, B, C, D)
    """
    thresholds = thresholds or QualityThresholds()
    result = DataQualityCheckResult(
        dataset_version_id=dataset_version_id,
        checks_run_at=datetime.now(timezone.utc).isoformat(),
        row_count=profile.row_count,
    )

    row_warning = check_row_count(profile.row_count, thresholds)
    if row_warning:
        result.warnings.append(row_warning)

    result.time_coverage, time_warnings = check_time_coverage(parsed_data, profile, thresholds)
    result.warnings.extend(time_warnings)

    result.null_issues, null_warnings = check_null_density(profile, thresholds)
    result.warnings.extend(null_warnings)

    result.outlier_summary, outlier_warnings = check_outliers(parsed_data, profile, thresholds)
    result.warnings.extend(outlier_warnings)

    logger.info(
        "Quality checks for %s: %d warning(s) %s",
        dataset_version_id, len(result.warnings), result.codes(),
    )
    return result

# settings.py — Engine thresholds & logging configuration
# Tunable constants for quality checks and the baseline template
"""
settings.py — Configuration

All thresholds are named constants grouped in frozen dataclasses. Check logic
reads them from the dataclass it is handed, so tuning never touches the
checks themselves. Optional overrides come from ``ANALYST_<FIELD>``
environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields


# =============================================================================
# CONSTANTS
# =============================================================================

ENV_PREFIX = "ANALYST_"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Data quality
MIN_ROW_COUNT = 50
NULL_RATIO_THRESHOLD = 0.3
NULL_RATIO_HIGH_SEVERITY = 0.5
OUTLIER_RATIO_THRESHOLD = 0.2
IQR_MULTIPLIER = 1.5
MIN_OUTLIER_OBSERVATIONS = 10
OUTLIER_SAMPLE_SIZE = 10_000
TIME_COVERAGE_THRESHOLD = 0.8
PARTIAL_PERIOD_RATIO = 0.5
DAILY_SPAN_DAYS = 90
WEEKLY_SPAN_DAYS = 365

# Baseline template
NON_NULL_THRESHOLD = 0.6
MAX_CATEGORICAL_CARDINALITY = 20
MIN_OUTCOME_BALANCE = 0.05
HISTOGRAM_BUCKETS = 10
MAX_KEY_DIFFERENCES = 7
IDENTIFIER_DISTINCT_RATIO = 0.9
IDENTIFIER_MIN_DISTINCT = 100


def _env_overrides(cls) -> dict:
    """Collect ANALYST_<FIELD> overrides, cast to each field's default type."""
    overrides = {}
    for f in fields(cls):
        raw = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is None or raw.strip() == "":
            continue
        caster = type(f.default)
        try:
            overrides[f.name] = caster(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}") from e
    return overrides


# =============================================================================
# CONFIG OBJECTS
# =============================================================================

@dataclass(frozen=True)
class QualityThresholds:
    """Thresholds for the data quality checker."""
    min_row_count: int = MIN_ROW_COUNT
    null_ratio_threshold: float = NULL_RATIO_THRESHOLD
    null_ratio_high_severity: float = NULL_RATIO_HIGH_SEVERITY
    outlier_ratio_threshold: float = OUTLIER_RATIO_THRESHOLD
    iqr_multiplier: float = IQR_MULTIPLIER
    min_outlier_observations: int = MIN_OUTLIER_OBSERVATIONS
    outlier_sample_size: int = OUTLIER_SAMPLE_SIZE
    time_coverage_threshold: float = TIME_COVERAGE_THRESHOLD
    partial_period_ratio: float = PARTIAL_PERIOD_RATIO
    daily_span_days: int = DAILY_SPAN_DAYS
    weekly_span_days: int = WEEKLY_SPAN_DAYS

    @classmethod
    def from_env(cls) -> "QualityThresholds":
        return cls(**_env_overrides(cls))


@dataclass(frozen=True)
class BaselineSettings:
    """Column selection and ranking limits for baseline / drill-down templates."""
    non_null_threshold: float = NON_NULL_THRESHOLD
    max_categorical_cardinality: int = MAX_CATEGORICAL_CARDINALITY
    min_outcome_balance: float = MIN_OUTCOME_BALANCE
    histogram_buckets: int = HISTOGRAM_BUCKETS
    max_key_differences: int = MAX_KEY_DIFFERENCES
    identifier_distinct_ratio: float = IDENTIFIER_DISTINCT_RATIO
    identifier_min_distinct: int = IDENTIFIER_MIN_DISTINCT

    @classmethod
    def from_env(cls) -> "BaselineSettings":
        return cls(**_env_overrides(cls))


# =============================================================================
# LOGGING
# =============================================================================

def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    level_name = (level or os.environ.get(f"{ENV_PREFIX}LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level_name, format=LOG_FORMAT)
    root.setLevel(level_name)

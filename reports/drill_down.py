# drill_down.py — Metric-scoped drill-down
# Per-outcome-group distributions, percentiles and one secondary breakdown
"""
drill_down.py — Drill-Down Template

Given one metric and one outcome column, shows how the metric is distributed
in each outcome group and how its average varies across the most stable
categorical dimension.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path

import pandas as pd

from config.settings import BaselineSettings
from engine.data_parser import parse_file
from engine.execution_engine import find_column
from engine.models import ColumnProfile, DatasetProfile
from engine.values import numeric_series
from reports.baseline_analysis import (
    CategoryBreakdown,
    average_by_category,
    category_labels,
    outcome_labels,
    positive_outcome,
    select_categorical_columns,
)
from reports.histogram import (
    DistributionBucket,
    PercentileStats,
    calculate_percentiles,
    generate_histogram,
)

logger = logging.getLogger(__name__)

GROUP_A_LABEL = "With Outcome"
GROUP_B_LABEL = "Without Outcome"


@dataclass(frozen=True)
class DrillDownRequest:
    dataset_version_id: str
    file_path: str | Path
    metric_column: str
    outcome_column: str


@dataclass(frozen=True)
class GroupDistribution:
    group_label: str
    distribution: list[DistributionBucket]
    percentile_stats: PercentileStats
    count: int


@dataclass(frozen=True)
class SecondaryBreakdown:
    dimension_column: str
    breakdowns: list[CategoryBreakdown]


@dataclass(frozen=True)
class DrillDownResult:
    metric_column: str
    outcome_column: str
    positive_outcome: str | None
    group_a: GroupDistribution
    group_b: GroupDistribution
    secondary_breakdown: SecondaryBreakdown | None = None

    def to_dict(self) -> dict:
        return {
            "metric_column": self.metric_column,
            "outcome_column": self.outcome_column,
            "positive_outcome": self.positive_outcome,
            "group_distributions": {
                "group_a": asdict(self.group_a),
                "group_b": asdict(self.group_b),
            },
            "secondary_breakdown": asdict(self.secondary_breakdown) if self.secondary_breakdown else None,
        }


def select_secondary_dimension(
    profile: DatasetProfile,
    metric_column: str,
    outcome_column: str,
    settings: BaselineSettings,
) -> ColumnProfile | None:
    """Lowest-cardinality eligible categorical column, ties broken by name."""
    candidates = select_categorical_columns(profile, settings, exclude=(metric_column, outcome_column))
    return candidates[0] if candidates else None


def _group(label: str, values: pd.Series, settings: BaselineSettings) -> GroupDistribution:
    return GroupDistribution(
        group_label=label,
        distribution=generate_histogram(values, settings.histogram_buckets),
        percentile_stats=calculate_percentiles(values),
        count=int(len(values)),
    )


def generate_drill_down(
    request: DrillDownRequest,
    profile: DatasetProfile,
    settings: BaselineSettings | None = None,
) -> DrillDownResult:
    """
    Drill into one metric split by one outcome column.

    Raises:
        ExecutionError: metric or outcome column not in the file
    """
    settings = settings or BaselineSettings()
    data = parse_file(request.file_path)

    metric = find_column(data, request.metric_column)
    outcome = find_column(data, request.outcome_column)
    outcome_profile = profile.column(outcome) or profile.column(request.outcome_column)

    labels = outcome_labels(data.column(outcome))
    values = numeric_series(data.column(metric))
    positive = positive_outcome(outcome_profile, labels) if outcome_profile else None

    usable = values.notna() & labels.notna()
    is_positive = labels == positive
    group_a = values[usable & is_positive]
    group_b = values[usable & ~is_positive]

    secondary = None
    dimension = select_secondary_dimension(profile, metric, outcome, settings)
    if dimension is not None and dimension.name in data.headers:
        categories = category_labels(data.column(dimension.name)).where(usable)
        breakdowns = average_by_category(categories, values)
        if breakdowns:
            secondary = SecondaryBreakdown(dimension_column=dimension.name, breakdowns=breakdowns)

    logger.info(
        "Drill-down %s by %s on %s: %d / %d values",
        metric, outcome, request.dataset_version_id, len(group_a), len(group_b),
    )
    return DrillDownResult(
        metric_column=metric,
        outcome_column=outcome,
        positive_outcome=positive,
        group_a=_group(GROUP_A_LABEL, group_a, settings),
        group_b=_group(GROUP_B_LABEL, group_b, settings),
        secondary_breakdown=secondary,
    )

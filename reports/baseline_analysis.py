# baseline_analysis.py — Fixed baseline analysis template
# Phase A metric summaries, Phase B breakdowns, Phase C outcome analysis
"""
baseline_analysis.py — Baseline Analysis Template

A fixed checklist applied uniformly to every dataset, independent of any
question:

Phase A: summary statistics and a histogram for every eligible numeric column
Phase B: average of each numeric column per value of each low-cardinality
         categorical column
Phase C: detection of a binary outcome column and, if one exists, outcome
         rates per category, metric averages per outcome group, and a ranked
         table of the largest differences between the two groups

Identifier-like, timestamp-like and near-unique columns are excluded from
every phase.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import pandas as pd
from scipy import stats

from config.settings import BaselineSettings
from engine.data_parser import parse_file
from engine.models import ColumnProfile, ColumnType, DatasetProfile, ParsedData, SemanticType
from engine.semantics import (
    has_identifier_cardinality,
    is_identifier_column,
    is_timestamp_column,
    semantic_type_for,
)
from engine.values import is_null, is_truthy_token, numeric_series
from reports.histogram import DistributionBucket, generate_histogram

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class MetricSummary:
    column_name: str
    row_count: int
    non_null_count: int
    mean: float
    median: float
    std: float
    min: float
    max: float
    skewness: float
    distribution: list[DistributionBucket]


@dataclass(frozen=True)
class CategoryBreakdown:
    category: str
    count: int
    average_metric: float


@dataclass(frozen=True)
class BreakdownResult:
    categorical_column: str
    metric_column: str
    breakdowns: list[CategoryBreakdown]


@dataclass(frozen=True)
class CategoryOutcomeRate:
    category: str
    outcome_rate: float
    count: int


@dataclass(frozen=True)
class CategoryOutcomeBreakdown:
    category_column: str
    breakdowns: list[CategoryOutcomeRate]


@dataclass(frozen=True)
class MetricOutcomeBreakdown:
    metric_column: str
    average_with_outcome: float
    average_without_outcome: float
    difference: float


@dataclass(frozen=True)
class KeyDifference:
    metric_column: str
    average_group_a: float
    average_group_b: float
    absolute_difference: float
    relative_difference: float  # percent
    rank: int


@dataclass(frozen=True)
class OutcomeAnalysis:
    outcome_column: str
    positive_outcome: str
    outcome_rate: float
    breakdowns_by_category: list[CategoryOutcomeBreakdown]
    breakdowns_by_metric: list[MetricOutcomeBreakdown]
    key_differences: list[KeyDifference] = field(default_factory=list)


@dataclass(frozen=True)
class BaselineAnalysisResult:
    dataset_version_id: str
    row_count: int
    analyzed_at: str
    metric_summaries: list[MetricSummary]
    breakdowns: list[BreakdownResult]
    outcome_analysis: OutcomeAnalysis | None

    def to_dict(self) -> dict:
        return {
            "phase_a": {"metric_summaries": [asdict(m) for m in self.metric_summaries]},
            "phase_b": {"breakdowns": [asdict(b) for b in self.breakdowns]},
            "phase_c": {
                "outcome_analysis": asdict(self.outcome_analysis) if self.outcome_analysis else None,
            },
            "metadata": {
                "dataset_version_id": self.dataset_version_id,
                "row_count": self.row_count,
                "analyzed_at": self.analyzed_at,
            },
        }


# =============================================================================
# COLUMN SELECTION
# =============================================================================

def is_excluded_column(column: ColumnProfile, row_count: int, settings: BaselineSettings) -> bool:
    """Identifier, timestamp or near-unique columns stay out of every template."""
    return (
        is_identifier_column(column.name)
        or is_timestamp_column(column.name)
        or has_identifier_cardinality(
            column, row_count, settings.identifier_distinct_ratio, settings.identifier_min_distinct
        )
    )


def select_numeric_columns(profile: DatasetProfile, settings: BaselineSettings) -> list[ColumnProfile]:
    """Phase A candidates: dense numeric measures (day/month/year fields excluded)."""
    selected = []
    for col in profile.columns_of_type(ColumnType.NUMBER):
        if 1 - col.null_ratio < settings.non_null_threshold:
            continue
        if is_excluded_column(col, profile.row_count, settings):
            continue
        if semantic_type_for(col) == SemanticType.DATE:
            continue
        selected.append(col)
    return selected


def select_categorical_columns(
    profile: DatasetProfile,
    settings: BaselineSettings,
    exclude: tuple[str, ...] = (),
) -> list[ColumnProfile]:
    """Low-cardinality string/boolean columns, ordered by cardinality then name."""
    candidates = [
        col for col in profile.columns_of_type(ColumnType.STRING, ColumnType.BOOLEAN)
        if 2 <= col.distinct_count <= settings.max_categorical_cardinality
        and col.name not in exclude
        and not is_identifier_column(col.name)
        and not is_timestamp_column(col.name)
    ]
    return sorted(candidates, key=lambda c: (c.distinct_count, c.name))


# =============================================================================
# OUTCOME DETECTION
# =============================================================================

def category_labels(series: pd.Series) -> pd.Series:
    """Trimmed labels, None for null cells."""
    return series.map(lambda v: None if is_null(v) else str(v).strip())


def outcome_labels(series: pd.Series) -> pd.Series:
    """Case-folded labels, None for null cells."""
    return series.map(lambda v: None if is_null(v) else str(v).strip().lower())


def positive_outcome(column: ColumnProfile, labels: pd.Series) -> str | None:
    """
    The class counted as "with outcome".

    Boolean columns use their truthy token; anything else uses the first
    value seen.
    """
    seen = list(dict.fromkeys(labels.dropna()))
    if not seen:
        return None
    if column.type == ColumnType.BOOLEAN:
        for label in seen:
            if is_truthy_token(label):
                return label
    return seen[0]


def detect_outcome_column(
    profile: DatasetProfile,
    data: ParsedData,
    settings: BaselineSettings | None = None,
) -> str | None:
    """
    Find a binary outcome column.

    Candidates are boolean columns, then string columns with exactly two
    distinct values. The minority class must hold at least
    ``min_outcome_balance`` of the non-null values.
    """
    settings = settings or BaselineSettings()
    candidates = profile.columns_of_type(ColumnType.BOOLEAN) + [
        col for col in profile.columns_of_type(ColumnType.STRING) if col.distinct_count == 2
    ]

    for col in candidates:
        if is_identifier_column(col.name) or col.name not in data.headers:
            continue
        counts = outcome_labels(data.column(col.name)).value_counts()
        if len(counts) != 2:
            continue
        minority_share = counts.min() / counts.sum()
        if minority_share >= settings.min_outcome_balance:
            logger.debug("Outcome column detected: %s (minority share %.3f)", col.name, minority_share)
            return col.name

    return None


# =============================================================================
# PHASE A: METRIC SUMMARY
# =============================================================================

def _finite_or_zero(value: float) -> float:
    return float(value) if np.isfinite(value) else 0.0


def summarize_metric(column: str, values: pd.Series, row_count: int, settings: BaselineSettings) -> MetricSummary:
    skewness = stats.skew(values, nan_policy="omit") if values.nunique() > 1 else 0.0
    return MetricSummary(
        column_name=column,
        row_count=row_count,
        non_null_count=int(len(values)),
        mean=round(float(values.mean()), 2),
        median=round(float(values.median()), 2),
        std=round(_finite_or_zero(values.std()), 2),
        min=round(float(values.min()), 2),
        max=round(float(values.max()), 2),
        skewness=round(_finite_or_zero(skewness), 4),
        distribution=generate_histogram(values, settings.histogram_buckets),
    )


def generate_metric_summaries(
    data: ParsedData,
    numeric_columns: list[ColumnProfile],
    settings: BaselineSettings,
) -> list[MetricSummary]:
    summaries = []
    for col in numeric_columns:
        values = numeric_series(data.column(col.name)).dropna()
        if values.empty:
            continue
        summaries.append(summarize_metric(col.name, values, data.row_count, settings))
    return summaries


# =============================================================================
# PHASE B: BREAKDOWNS
# =============================================================================

def average_by_category(categories: pd.Series, values: pd.Series) -> list[CategoryBreakdown]:
    """Mean of values per category, categories in alphabetical order."""
    frame = pd.DataFrame({"category": categories, "value": values}).dropna()
    if frame.empty:
        return []
    grouped = frame.groupby("category", sort=True)["value"].agg(["count", "mean"])
    return [
        CategoryBreakdown(category=str(cat), count=int(row["count"]), average_metric=round(float(row["mean"]), 2))
        for cat, row in grouped.iterrows()
    ]


def generate_breakdowns(
    data: ParsedData,
    numeric_columns: list[ColumnProfile],
    categorical_columns: list[ColumnProfile],
) -> list[BreakdownResult]:
    results = []
    for cat_col in categorical_columns:
        categories = category_labels(data.column(cat_col.name))
        for num_col in numeric_columns:
            breakdowns = average_by_category(categories, numeric_series(data.column(num_col.name)))
            if breakdowns:
                results.append(BreakdownResult(
                    categorical_column=cat_col.name,
                    metric_column=num_col.name,
                    breakdowns=breakdowns,
                ))
    return results


# =============================================================================
# PHASE C: OUTCOME ANALYSIS
# =============================================================================

def rank_key_differences(
    by_metric: list[MetricOutcomeBreakdown],
    limit: int,
) -> list[KeyDifference]:
    """Top metrics by absolute, then relative, difference between the groups."""
    scored = []
    for metric in by_metric:
        avg_a, avg_b = metric.average_with_outcome, metric.average_without_outcome
        absolute = abs(avg_a - avg_b)
        if avg_a != 0:
            relative = absolute / abs(avg_a) * 100
        elif avg_b != 0:
            relative = absolute / abs(avg_b) * 100
        else:
            relative = 0.0
        scored.append((metric, round(absolute, 2), round(relative, 2)))

    scored.sort(key=lambda item: (item[1], item[2]), reverse=True)
    return [
        KeyDifference(
            metric_column=metric.metric_column,
            average_group_a=metric.average_with_outcome,
            average_group_b=metric.average_without_outcome,
            absolute_difference=absolute,
            relative_difference=relative,
            rank=rank,
        )
        for rank, (metric, absolute, relative) in enumerate(scored[:limit], start=1)
    ]


def generate_outcome_analysis(
    profile: DatasetProfile,
    data: ParsedData,
    outcome_column: str,
    numeric_columns: list[ColumnProfile],
    categorical_columns: list[ColumnProfile],
    settings: BaselineSettings,
) -> OutcomeAnalysis | None:
    labels = outcome_labels(data.column(outcome_column))
    positive = positive_outcome(profile.column(outcome_column), labels)
    if positive is None:
        return None

    known = labels.notna()
    is_positive = labels == positive
    outcome_rate = round(float(is_positive[known].mean()), 4)

    by_category = []
    for cat_col in categorical_columns:
        if cat_col.name == outcome_column:
            continue
        frame = pd.DataFrame({
            "category": category_labels(data.column(cat_col.name)),
            "positive": is_positive.astype(float).where(known),
        }).dropna()
        if frame.empty:
            continue
        grouped = frame.groupby("category", sort=True)["positive"].agg(["count", "mean"])
        by_category.append(CategoryOutcomeBreakdown(
            category_column=cat_col.name,
            breakdowns=[
                CategoryOutcomeRate(
                    category=str(cat), outcome_rate=round(float(row["mean"]), 4), count=int(row["count"]),
                )
                for cat, row in grouped.iterrows()
            ],
        ))

    by_metric = []
    for num_col in numeric_columns:
        values = numeric_series(data.column(num_col.name))
        usable = values.notna() & known
        with_outcome = values[usable & is_positive]
        without_outcome = values[usable & ~is_positive]
        avg_with = float(with_outcome.mean()) if len(with_outcome) else 0.0
        avg_without = float(without_outcome.mean()) if len(without_outcome) else 0.0
        by_metric.append(MetricOutcomeBreakdown(
            metric_column=num_col.name,
            average_with_outcome=round(avg_with, 2),
            average_without_outcome=round(avg_without, 2),
            difference=round(avg_with - avg_without, 2),
        ))

    return OutcomeAnalysis(
        outcome_column=outcome_column,
        positive_outcome=positive,
        outcome_rate=outcome_rate,
        breakdowns_by_category=by_category,
        breakdowns_by_metric=by_metric,
        key_differences=rank_key_differences(by_metric, settings.max_key_differences),
    )


# =============================================================================
# ENTRY POINT
# =============================================================================

def generate_baseline_analysis(
    profile: DatasetProfile,
    file_path: str | Path,
    settings: BaselineSettings | None = None,
) -> BaselineAnalysisResult:
    """
    Run the baseline template over a dataset file.

    Args:
        profile: Profile of the dataset stored at ``file_path``
        file_path: Dataset file, re-parsed here
        settings: Override the default selection limits

    Returns:
        BaselineAnalysisResult (``to_dict()`` groups it by phase)
    """
    settings = settings or BaselineSettings()
    data = parse_file(file_path)

    numeric_columns = select_numeric_columns(profile, settings)
    categorical_columns = select_categorical_columns(profile, settings)
    outcome_column = detect_outcome_column(profile, data, settings)

    outcome_analysis = None
    if outcome_column:
        outcome_analysis = generate_outcome_analysis(
            profile, data, outcome_column, numeric_columns, categorical_columns, settings,
        )

    result = BaselineAnalysisResult(
        dataset_version_id=profile.dataset_version_id,
        row_count=profile.row_count,
        analyzed_at=datetime.now(timezone.utc).isoformat(),
        metric_summaries=generate_metric_summaries(data, numeric_columns, settings),
        breakdowns=generate_breakdowns(data, numeric_columns, categorical_columns),
        outcome_analysis=outcome_analysis,
    )
    logger.info(
        "Baseline analysis for %s: %d metric(s), %d breakdown(s), outcome=%s",
        profile.dataset_version_id, len(result.metric_summaries), len(result.breakdowns), outcome_column,
    )
    return result

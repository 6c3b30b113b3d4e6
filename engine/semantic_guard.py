# semantic_guard.py — Semantic operation guard
# Blocks statistically meaningless column operations before execution
"""
semantic_guard.py — Semantic Operation Guard

Every aggregation path goes through this module. A column's guard-level
semantic type (see ``engine.semantics``) decides which operations are
meaningful; anything outside the allow-list comes back as an invalid
``SemanticGuardResult`` carrying a readable reason and the operations that
would have been allowed.

Blocked operations are values, not exceptions. The caller relays them.
"""

from __future__ import annotations

import logging

from engine.models import (
    AnalyticsIntent,
    ColumnProfile,
    MetricResolution,
    OperationCategory,
    SemanticGuardResult,
    SemanticType,
)
from engine.semantics import semantic_type_for

logger = logging.getLogger(__name__)

Op = OperationCategory


# =============================================================================
# OPERATION TABLES
# =============================================================================

# group_by and time_series sum the metric per bucket, so the metric slot is
# checked as a sum. The dimension and time column get their own checks.
INTENT_METRIC_OPERATIONS: dict[AnalyticsIntent, OperationCategory] = {
    AnalyticsIntent.AGGREGATE_AVG: Op.AVERAGE,
    AnalyticsIntent.AGGREGATE_SUM: Op.SUM,
    AnalyticsIntent.AGGREGATE_MIN: Op.MIN,
    AnalyticsIntent.AGGREGATE_MAX: Op.MAX,
    AnalyticsIntent.AGGREGATE_COUNT: Op.COUNT,
    AnalyticsIntent.GROUP_BY: Op.SUM,
    AnalyticsIntent.TIME_SERIES: Op.SUM,
}

ALLOWED_OPERATIONS: dict[SemanticType, tuple[OperationCategory, ...]] = {
    SemanticType.NUMERIC: (
        Op.AVERAGE, Op.SUM, Op.MIN, Op.MAX, Op.COUNT,
        Op.GROUP_BY, Op.CORRELATION, Op.DISTRIBUTION,
    ),
    SemanticType.DATE: (Op.MIN, Op.MAX, Op.COUNT, Op.GROUP_BY, Op.TIME_BUCKET),
    SemanticType.CATEGORICAL: (Op.COUNT, Op.GROUP_BY, Op.DISTRIBUTION),
    SemanticType.BOOLEAN: (Op.COUNT, Op.GROUP_BY),
    SemanticType.UNKNOWN: (),
}

OPERATION_VERBS = {
    Op.AVERAGE: "averaging",
    Op.SUM: "summing",
    Op.MIN: "finding minimum",
    Op.MAX: "finding maximum",
    Op.COUNT: "counting",
    Op.GROUP_BY: "grouping by",
    Op.TIME_BUCKET: "time-based analysis",
    Op.CORRELATION: "correlation",
    Op.DISTRIBUTION: "distribution",
}

SUM_LIKE_REASONS = {
    SemanticType.DATE: (
        "Averaging or summing a date column doesn't have a real-world meaning. "
        "Dates are ordinal values, not scalar quantities."
    ),
    SemanticType.CATEGORICAL: (
        "Averaging or summing a categorical column doesn't have a real-world meaning. "
        "Categorical values are labels, not quantities."
    ),
    SemanticType.BOOLEAN: (
        "Averaging or summing a boolean column doesn't have a real-world meaning. "
        "Boolean values are true/false, not quantities."
    ),
}

CORRELATION_REASONS = {
    SemanticType.DATE: "Correlation on date columns requires numeric time deltas. Use time-based analysis instead.",
    SemanticType.CATEGORICAL: (
        "Correlation requires numeric values. "
        "Categorical columns can be used for grouping or distribution analysis."
    ),
    SemanticType.BOOLEAN: "Correlation requires numeric values. Boolean columns can be used for counting or grouping.",
}

UNKNOWN_TYPE_REASON = (
    "The column type is unknown. Please select a different column "
    "or ensure the column has been properly profiled."
)
NO_ALTERNATIVES_HINT = "Please select a different column or clarify the column type"


# =============================================================================
# HELPERS
# =============================================================================

def allowed_operations(semantic_type: SemanticType) -> tuple[OperationCategory, ...]:
    return ALLOWED_OPERATIONS.get(semantic_type, ())


def operation_for_intent(intent: AnalyticsIntent) -> OperationCategory:
    """Operation applied to the metric column. Unmapped intents fall back to count."""
    return INTENT_METRIC_OPERATIONS.get(intent, Op.COUNT)


def _block_reason(semantic_type: SemanticType, operation: OperationCategory) -> str:
    if semantic_type == SemanticType.UNKNOWN:
        return UNKNOWN_TYPE_REASON
    if operation in (Op.AVERAGE, Op.SUM) and semantic_type in SUM_LIKE_REASONS:
        return SUM_LIKE_REASONS[semantic_type]
    if operation == Op.CORRELATION and semantic_type in CORRELATION_REASONS:
        return CORRELATION_REASONS[semantic_type]
    return f'The operation "{OPERATION_VERBS[operation]}" is not meaningful for {semantic_type.value} columns.'


def _suggested_alternatives(semantic_type: SemanticType, operation: OperationCategory) -> tuple[str, ...]:
    allowed = allowed_operations(semantic_type)
    if not allowed:
        return (NO_ALTERNATIVES_HINT,)
    return tuple(op.value for op in allowed if op != operation)


def validate_operation(column: ColumnProfile, operation: OperationCategory) -> SemanticGuardResult:
    """Validate one column-operation pair."""
    semantic_type = semantic_type_for(column)
    if operation in allowed_operations(semantic_type):
        return SemanticGuardResult(
            is_valid=True,
            column=column.name,
            semantic_type=semantic_type,
            attempted_operation=operation,
        )

    logger.warning(
        "Blocked %s on column %r (semantic type %s)",
        operation.value, column.name, semantic_type.value,
    )
    return SemanticGuardResult(
        is_valid=False,
        column=column.name,
        semantic_type=semantic_type,
        attempted_operation=operation,
        reason=_block_reason(semantic_type, operation),
        suggested_alternatives=_suggested_alternatives(semantic_type, operation),
    )


# =============================================================================
# GUARD ENTRY POINTS
# =============================================================================

def validate_metric_operation(
    resolution: MetricResolution,
    intent: AnalyticsIntent,
    dataset_version_id: str,
) -> SemanticGuardResult:
    """The metric column is always checked."""
    return validate_operation(resolution.metric.column_profile, operation_for_intent(intent))


def validate_dimension_operation(
    resolution: MetricResolution,
    intent: AnalyticsIntent,
    dataset_version_id: str,
) -> SemanticGuardResult | None:
    """The dimension is only checked for group_by."""
    if intent != AnalyticsIntent.GROUP_BY or resolution.dimension is None:
        return None
    return validate_operation(resolution.dimension.column_profile, Op.GROUP_BY)


def validate_time_column_operation(
    resolution: MetricResolution,
    intent: AnalyticsIntent,
    dataset_version_id: str,
) -> SemanticGuardResult | None:
    """The time column is only checked for time_series."""
    if intent != AnalyticsIntent.TIME_SERIES or resolution.time_column is None:
        return None
    return validate_operation(resolution.time_column.column_profile, Op.TIME_BUCKET)


def validate_semantic_operations(
    resolution: MetricResolution,
    intent: AnalyticsIntent,
    dataset_version_id: str,
) -> SemanticGuardResult | None:
    """
    Validate every operation the resolution implies.

    Args:
        resolution: Output of ``resolve_all``
        intent: Classified intent
        dataset_version_id: Version the profile belongs to (logged only)

    Returns:
        The first invalid SemanticGuardResult, or None when everything is valid
    """
    checks = (
        validate_metric_operation,
        validate_dimension_operation,
        validate_time_column_operation,
    )
    for check in checks:
        result = check(resolution, intent, dataset_version_id)
        if result is not None and not result.is_valid:
            logger.info("Semantic guard blocked query on dataset %s", dataset_version_id)
            return result
    return None

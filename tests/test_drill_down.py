"""Tests for the drill-down template."""

from __future__ import annotations

import pytest

from engine.errors import ExecutionError
from reports.drill_down import DrillDownRequest, generate_drill_down
from reports.histogram import PercentileStats


def _request(sales_csv, metric: str = "price", outcome: str = "returned") -> DrillDownRequest:
    return DrillDownRequest(
        dataset_version_id="sales-v1",
        file_path=sales_csv,
        metric_column=metric,
        outcome_column=outcome,
    )


def test_groups_split_on_positive_outcome(sales_csv, sales_profile) -> None:
    result = generate_drill_down(_request(sales_csv), sales_profile)

    assert result.positive_outcome == "yes"
    assert result.group_a.group_label == "With Outcome"
    assert result.group_a.count == 15
    assert result.group_b.count == 45
    assert result.group_a.percentile_stats == PercentileStats(p25=22.0, p50=38.0, p75=54.0)
    assert sum(b.count for b in result.group_b.distribution) == 45


def test_secondary_breakdown_uses_lowest_cardinality_dimension(sales_csv, sales_profile) -> None:
    result = generate_drill_down(_request(sales_csv), sales_profile)

    secondary = result.secondary_breakdown
    assert secondary.dimension_column == "region"
    assert [(b.category, b.average_metric) for b in secondary.breakdowns] == [
        ("East", 40.5),
        ("North", 38.5),
        ("South", 39.5),
    ]


def test_column_names_are_matched_case_insensitively(sales_csv, sales_profile) -> None:
    result = generate_drill_down(_request(sales_csv, metric="PRICE", outcome="Returned"), sales_profile)

    assert result.metric_column == "price"
    assert result.outcome_column == "returned"


def test_unknown_column_raises(sales_csv, sales_profile) -> None:
    with pytest.raises(ExecutionError):
        generate_drill_down(_request(sales_csv, metric="profit"), sales_profile)


def test_result_serialization(sales_csv, sales_profile) -> None:
    payload = generate_drill_down(_request(sales_csv), sales_profile).to_dict()

    assert set(payload["group_distributions"]) == {"group_a", "group_b"}
    assert payload["group_distributions"]["group_a"]["percentile_stats"] == {"p25": 22.0, "p50": 38.0, "p75": 54.0}
    assert payload["secondary_breakdown"]["dimension_column"] == "region"

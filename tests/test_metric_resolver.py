"""Tests for metric / dimension / time-column resolution."""

from __future__ import annotations

import pytest

from engine.data_parser import parse_file
from engine.data_profiler import profile_dataset
from engine.errors import (
    DimensionNotFoundError,
    NoNumericColumnsError,
    TimeColumnNotFoundError,
    UnsupportedQueryError,
)
from engine.metric_resolver import resolve_all, resolve_dimension, resolve_metric, resolve_time_column
from engine.models import AnalyticsIntent, ParsedData

SUM = AnalyticsIntent.AGGREGATE_SUM
AVG = AnalyticsIntent.AGGREGATE_AVG


def _profile(headers: tuple[str, ...], rows: list[tuple]):
    parsed = ParsedData(headers=headers, rows=tuple(dict(zip(headers, row)) for row in rows))
    return profile_dataset(parsed, "test")


def test_explicit_mention_selects_the_metric(sales_profile) -> None:
    resolution = resolve_all("What is the total revenue?", sales_profile, SUM)

    assert resolution.metric.column_name == "revenue"
    assert resolution.metric.column_profile == sales_profile.column("revenue")


def test_explicit_mention_ignores_type(sales_profile) -> None:
    """A named categorical column is still the metric; the guard rejects it later."""
    metric = resolve_metric("sum of category", sales_profile, SUM)

    assert metric.column_name == "category"


def test_earliest_mention_wins(sales_profile) -> None:
    metric = resolve_metric("average revenue and price", sales_profile, AVG)

    assert metric.column_name == "revenue"


def test_group_by_target_is_not_the_metric(sales_profile) -> None:
    resolution = resolve_all("total revenue by category", sales_profile, AnalyticsIntent.GROUP_BY)

    assert resolution.metric.column_name == "revenue"
    assert resolution.dimension.column_name == "category"


def test_group_by_resolves_dimension_from_by_phrase(sales_profile) -> None:
    resolution = resolve_all("average price by category", sales_profile, AnalyticsIntent.GROUP_BY)

    assert resolution.metric.column_name == "price"
    assert resolution.dimension.column_name == "category"


def test_exact_dimension_name_beats_a_substring_match() -> None:
    profile = _profile(("sales", "salesperson"), [("10", "Ann"), ("20", "Bob"), ("30", "Ann")])

    resolution = resolve_all("total sales by salesperson", profile, AnalyticsIntent.GROUP_BY)

    assert resolution.dimension.column_name == "salesperson"
    assert resolution.metric.column_name == "sales"


def test_dimension_falls_back_to_keywords(sales_profile) -> None:
    dimension = resolve_dimension("which region sells most", sales_profile)

    assert dimension.column_name == "region"


def test_synonyms_map_onto_metric_columns() -> None:
    profile = _profile(("region", "staff", "net_revenue"), [("north", "4", "100"), ("south", "6", "250")])

    metric = resolve_metric("what is the total income", profile, SUM)

    assert metric.column_name == "net_revenue"


def test_underscored_names_match_spaced_wording(flights_csv) -> None:
    profile = profile_dataset(parse_file(flights_csv), "flights")

    metric = resolve_metric("what is the average date of journey", profile, AVG)

    assert metric.column_name == "Date_of_Journey"


def test_falls_back_to_first_numeric_column() -> None:
    profile = _profile(("label", "score", "weight"), [("a", "1", "5"), ("b", "2", "6")])

    metric = resolve_metric("what is the total", profile, SUM)

    assert metric.column_name == "score"


def test_no_numeric_columns_raises() -> None:
    profile = _profile(("label",), [("a",), ("b",)])

    with pytest.raises(NoNumericColumnsError) as excinfo:
        resolve_metric("what is the total", profile, SUM)

    assert excinfo.value.code == "NO_NUMERIC_COLUMNS"


def test_count_accepts_non_numeric_columns() -> None:
    profile = _profile(("label",), [("a",), ("b",)])

    metric = resolve_metric("how many labels", profile, AnalyticsIntent.AGGREGATE_COUNT)

    assert metric.column_name == "label"


def test_min_max_accept_date_columns() -> None:
    profile = _profile(("shipped",), [("2024-01-01",), ("2024-02-01",)])

    metric = resolve_metric("earliest shipment", profile, AnalyticsIntent.AGGREGATE_MIN)

    assert metric.column_name == "shipped"


def test_group_by_without_dimension_raises(sales_profile) -> None:
    with pytest.raises(DimensionNotFoundError):
        resolve_all("total revenue by planet", sales_profile, AnalyticsIntent.GROUP_BY)


def test_time_series_without_date_column_raises(flights_csv) -> None:
    profile = profile_dataset(parse_file(flights_csv), "flights")

    with pytest.raises(TimeColumnNotFoundError):
        resolve_all("price over time", profile, AnalyticsIntent.TIME_SERIES)


def test_unsupported_intent_raises(sales_profile) -> None:
    with pytest.raises(UnsupportedQueryError):
        resolve_all("tell me a joke", sales_profile, AnalyticsIntent.UNSUPPORTED_QUERY)


def test_time_column_prefers_keyword_match() -> None:
    profile = _profile(
        ("signup_date", "login_time", "visits"),
        [("2024-01-01", "2024-03-01", "1"), ("2024-01-02", "2024-03-02", "2")],
    )

    assert resolve_time_column("visits over time", profile).column_name == "login_time"
    assert resolve_time_column("visits trend", profile).column_name == "signup_date"


def test_time_column_is_resolved_for_time_series(sales_profile) -> None:
    resolution = resolve_all("revenue over time", sales_profile, AnalyticsIntent.TIME_SERIES)

    assert resolution.metric.column_name == "revenue"
    assert resolution.time_column.column_name == "order_date"

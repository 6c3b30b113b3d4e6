"""Tests for cell token parsing."""

from __future__ import annotations

from datetime import datetime

import pandas as pd
import pytest

from engine.values import (
    NULL,
    BoolValue,
    DateValue,
    NumberValue,
    TextValue,
    is_boolean_token,
    is_null,
    numeric_series,
    parse_date,
    parse_number,
    to_value,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("42", 42.0),
        ("-3.5", -3.5),
        ("1,234.5", 1234.5),
        (".5", 0.5),
        ("1e3", 1000.0),
        (7, 7.0),
        ("abc", None),
        ("12abc", None),
        ("inf", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_number(raw, expected) -> None:
    assert parse_number(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-03-05", datetime(2024, 3, 5)),
        ("2024/03/05 14:30", datetime(2024, 3, 5, 14, 30)),
        ("02/13/2024", datetime(2024, 2, 13)),
        ("13/02/2024", datetime(2024, 2, 13)),
        ("2024-13-01", None),
        ("2023-02-29", None),
        ("March 5", None),
        ("5", None),
    ],
)
def test_parse_date(raw, expected) -> None:
    assert parse_date(raw) == expected


def test_null_and_boolean_tokens() -> None:
    assert is_null(None)
    assert is_null("   ")
    assert is_null(float("nan"))
    assert not is_null("0")
    assert is_boolean_token(" Yes ")
    assert is_boolean_token("0")
    assert not is_boolean_token("maybe")


def test_to_value_tags_each_kind() -> None:
    """A lone 1/0 is a number; only the word tokens are booleans at cell level."""
    assert to_value("") is NULL
    assert to_value("TRUE") == BoolValue(True, "TRUE")
    assert to_value("no") == BoolValue(False, "no")
    assert to_value("1") == NumberValue(1.0, "1")
    assert to_value("2024-01-31") == DateValue(datetime(2024, 1, 31), "2024-01-31")
    assert to_value(" hello ") == TextValue("hello")


def test_numeric_series_marks_unparseable_cells_as_nan() -> None:
    series = numeric_series(pd.Series(["1", "x", None, "2,000"], dtype=object))

    assert series.iloc[0] == 1.0
    assert pd.isna(series.iloc[1])
    assert pd.isna(series.iloc[2])
    assert series.iloc[3] == 2000.0

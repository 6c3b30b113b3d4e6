"""Tests for request sanitization and settings."""

from __future__ import annotations

import json
import math
from datetime import date, datetime

import numpy as np
import pandas as pd
import pytest

from config.settings import BaselineSettings, QualityThresholds
from engine.models import ResultType
from engine.validators import (
    MAX_QUESTION_LENGTH,
    sanitize_dict_for_json,
    sanitize_question,
    validate_file_extension,
)


@pytest.mark.parametrize("name", ["data.csv", "DATA.TSV", "book.xlsx", "legacy.xls"])
def test_supported_extensions(name: str) -> None:
    assert validate_file_extension(name) == (True, None)


def test_unsupported_extension_is_reported() -> None:
    ok, message = validate_file_extension("notes.json")

    assert ok is False
    assert message.startswith("Invalid file type: .json")


def test_missing_filename_is_reported() -> None:
    assert validate_file_extension(None) == (False, "No filename provided")


def test_question_sanitization() -> None:
    assert sanitize_question("  What is the <b>total</b> revenue?  ") == "What is the btotal/b revenue?"
    assert sanitize_question("hi") is None
    assert sanitize_question(None) is None
    assert len(sanitize_question("x" * 900)) == MAX_QUESTION_LENGTH


def test_payloads_become_json_safe() -> None:
    payload = {
        "count": np.int64(3),
        "ratio": np.float64(0.5),
        "missing": float("nan"),
        "flag": np.bool_(True),
        "kind": ResultType.TABLE,
        "when": pd.Timestamp("2024-01-02"),
        "day": date(2024, 1, 3),
        "pair": (1, math.inf),
        "array": np.array([1, 2]),
    }

    clean = sanitize_dict_for_json(payload)

    assert clean == {
        "count": 3,
        "ratio": 0.5,
        "missing": None,
        "flag": True,
        "kind": "table",
        "when": datetime(2024, 1, 2).isoformat(),
        "day": "2024-01-03",
        "pair": [1, None],
        "array": [1, 2],
    }
    json.dumps(clean)


def test_settings_defaults() -> None:
    assert QualityThresholds().min_row_count == 50
    assert QualityThresholds().null_ratio_threshold == 0.3
    assert BaselineSettings().max_categorical_cardinality == 20


def test_settings_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("ANALYST_MIN_ROW_COUNT", "10")
    monkeypatch.setenv("ANALYST_MAX_KEY_DIFFERENCES", "3")

    assert QualityThresholds.from_env().min_row_count == 10
    assert BaselineSettings.from_env().max_key_differences == 3


def test_invalid_environment_override_raises(monkeypatch) -> None:
    monkeypatch.setenv("ANALYST_NULL_RATIO_THRESHOLD", "lots")

    with pytest.raises(ValueError, match="ANALYST_NULL_RATIO_THRESHOLD"):
        QualityThresholds.from_env()

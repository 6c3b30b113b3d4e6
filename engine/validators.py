# validators.py — Request sanitization
# Question text limits, dataset file types, JSON-safe result payloads
"""
validators.py — Request Sanitization

- Question text sanitization before classification
- Dataset file extension checks before parsing
- Conversion of numpy / pandas scalars into JSON-safe Python values
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd


# =============================================================================
# CONSTANTS
# =============================================================================

ALLOWED_EXTENSIONS = (".csv", ".tsv", ".xlsx", ".xls")
MAX_QUESTION_LENGTH = 500
MIN_QUESTION_LENGTH = 3

UNSAFE_CHARACTERS = re.compile(r"[<>{}\[\]\\]")


# =============================================================================
# FILE VALIDATION
# =============================================================================

def validate_file_extension(filename: str | Path | None) -> tuple[bool, str | None]:
    """
    Validate that a dataset file has a supported extension.

    Returns:
        (is_valid, error_message)
    """
    if not filename:
        return False, "No filename provided"

    ext = Path(str(filename)).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        shown = ext or "(none)"
        return False, f"Invalid file type: {shown}. Allowed: {', '.join(ALLOWED_EXTENSIONS)}"

    return True, None


# =============================================================================
# QUESTION SANITIZATION
# =============================================================================

def sanitize_question(question: str | None) -> str | None:
    """
    Sanitize a user question.

    Returns:
        Cleaned question, or None if missing or shorter than the minimum
    """
    if not isinstance(question, str):
        return None

    question = question.strip()
    if len(question) < MIN_QUESTION_LENGTH:
        return None

    if len(question) > MAX_QUESTION_LENGTH:
        question = question[:MAX_QUESTION_LENGTH]

    question = UNSAFE_CHARACTERS.sub("", question).strip()
    return question or None


# =============================================================================
# JSON SANITIZATION
# =============================================================================

def sanitize_dict_for_json(obj: Any) -> Any:
    """
    Recursively sanitize a result payload for JSON serialization.
    Handles numpy scalars, NaN / Inf, enums, timestamps and tuples.
    """
    if obj is None:
        return None

    if isinstance(obj, dict):
        return {str(k): sanitize_dict_for_json(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [sanitize_dict_for_json(v) for v in obj]

    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, np.bool_):
        return bool(obj)

    if isinstance(obj, np.integer):
        return int(obj)

    if isinstance(obj, np.floating):
        obj = float(obj)

    if isinstance(obj, np.ndarray):
        return sanitize_dict_for_json(obj.tolist())

    if isinstance(obj, (pd.Timestamp, datetime, date)):
        return obj.isoformat()

    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj

    return obj

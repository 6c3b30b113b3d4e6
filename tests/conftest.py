"""Shared fixtures: small on-disk datasets written into tmp_path."""

from __future__ import annotations

import csv
from datetime import date, timedelta
from pathlib import Path

import pytest

from engine.data_parser import parse_file
from engine.data_profiler import profile_dataset

CATEGORIES = ["Books", "Electronics", "Garden", "Home", "Music", "Sports", "Toys", "Videos"]
REGIONS = ["North", "South", "East"]


def write_rows(path: Path, headers: list[str], rows: list[list[object]], delimiter: str = ",") -> Path:
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle, delimiter=delimiter)
        writer.writerow(headers)
        writer.writerows(rows)
    return path


def sales_rows(count: int = 60) -> list[list[object]]:
    """
    One order per day from 2024-01-01.

    price is 10 + i, revenue is twice the price, every fourth order is returned.
    """
    start = date(2024, 1, 1)
    rows = []
    for i in range(count):
        rows.append([
            i + 1,
            (start + timedelta(days=i)).isoformat(),
            CATEGORIES[i % len(CATEGORIES)],
            REGIONS[i % len(REGIONS)],
            10 + i,
            (10 + i) * 2,
            (i % 5) + 1,
            "yes" if i % 4 == 0 else "no",
        ])
    return rows


SALES_HEADERS = ["order_id", "order_date", "category", "region", "price", "revenue", "quantity", "returned"]


@pytest.fixture
def write_csv(tmp_path: Path):
    """Write raw text to a file under tmp_path and return its path."""
    def _write(text: str, name: str = "data.csv") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def sales_csv(tmp_path: Path) -> Path:
    return write_rows(tmp_path / "sales.csv", SALES_HEADERS, sales_rows())


@pytest.fixture
def sales_data(sales_csv: Path):
    return parse_file(sales_csv)


@pytest.fixture
def sales_profile(sales_data):
    return profile_dataset(sales_data, "sales-v1")


@pytest.fixture
def flights_csv(tmp_path: Path) -> Path:
    """Day-of-month stored as a plain integer next to a real numeric measure."""
    rows = [[day, 3000 + day * 10, "Delhi" if day % 2 else "Mumbai"] for day in range(1, 28)]
    return write_rows(tmp_path / "flights.csv", ["Date_of_Journey", "Price", "Source"], rows)


@pytest.fixture
def make_sales_csv(tmp_path: Path):
    """Sales dataset of any length."""
    def _make(count: int) -> Path:
        return write_rows(tmp_path / f"sales_{count}.csv", SALES_HEADERS, sales_rows(count))
    return _make

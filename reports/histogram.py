# histogram.py — Equal-width histograms & floor-index percentiles
# Shared by the baseline and drill-down templates
"""
histogram.py — Distribution Helpers
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from config.settings import HISTOGRAM_BUCKETS


@dataclass(frozen=True)
class DistributionBucket:
    bucket: str
    count: int
    percentage: float

    def to_dict(self) -> dict:
        return {"bucket": self.bucket, "count": self.count, "percentage": self.percentage}


@dataclass(frozen=True)
class PercentileStats:
    p25: float
    p50: float
    p75: float

    def to_dict(self) -> dict:
        return {"p25": self.p25, "p50": self.p50, "p75": self.p75}


def generate_histogram(values: Iterable[float], num_buckets: int = HISTOGRAM_BUCKETS) -> list[DistributionBucket]:
    """
    Equal-width histogram between min and max.

    Buckets are half-open ``[lo, hi)`` except the last, which is closed and
    labelled ``"<lo>+"``. A constant series yields a single bucket.
    """
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return []

    low, high = float(arr.min()), float(arr.max())
    total = arr.size

    if low == high:
        return [DistributionBucket(bucket=f"{low:.2f}", count=int(total), percentage=100.0)]

    size = (high - low) / num_buckets
    buckets = []
    for i in range(num_buckets):
        bucket_min = low + i * size
        last = i == num_buckets - 1
        bucket_max = high if last else low + (i + 1) * size

        if last:
            count = int(((arr >= bucket_min) & (arr <= bucket_max)).sum())
            label = f"{bucket_min:.2f}+"
        else:
            count = int(((arr >= bucket_min) & (arr < bucket_max)).sum())
            label = f"{bucket_min:.2f}-{bucket_max:.2f}"

        buckets.append(DistributionBucket(
            bucket=label,
            count=count,
            percentage=round(count / total * 100, 2),
        ))
    return buckets


def calculate_percentiles(values: Iterable[float]) -> PercentileStats:
    """p25 / p50 / p75 by floor index into the sorted values; zeros when empty."""
    ordered = sorted(values)
    if not ordered:
        return PercentileStats(p25=0.0, p50=0.0, p75=0.0)

    n = len(ordered)

    def at(q: float) -> float:
        return round(float(ordered[int(n * q)]), 2)

    return PercentileStats(p25=at(0.25), p50=at(0.5), p75=at(0.75))

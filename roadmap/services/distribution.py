"""
Statistics over day-count distributions (time to complete, backlog age).

All inputs are whole-day counts. Rounding is half-up (Decimal) so results
match what a reader computes by hand, not banker's rounding.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence

SECONDS_PER_DAY = 86400


# ---------------------------------------------------------------------------
# Range buckets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RangeBucket:
    key: str
    low: int
    high: Optional[int]     # inclusive; None = unbounded

    def contains(self, value: float) -> bool:
        return value >= self.low and (self.high is None or value <= self.high)


TIME_TO_COMPLETE_BUCKETS: tuple[RangeBucket, ...] = (
    RangeBucket("0-1", 0, 1),
    RangeBucket("2-7", 2, 7),
    RangeBucket("8-30", 8, 30),
    RangeBucket("31-90", 31, 90),
    RangeBucket("90+", 91, None),
)

AGE_BUCKETS: tuple[RangeBucket, ...] = (
    RangeBucket("0-7", 0, 7),
    RangeBucket("8-30", 8, 30),
    RangeBucket("31-90", 31, 90),
    RangeBucket("90+", 91, None),
)


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------

def round_half_up(value: float, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def elapsed_days(start: datetime, end: datetime) -> int:
    """Whole days from start to end (floor); negative when end precedes start."""
    return (end - start).days


def fractional_days(start: datetime, end: datetime) -> float:
    """Exact elapsed time in days (seconds / 86400); negative when end precedes start."""
    return (end - start).total_seconds() / SECONDS_PER_DAY


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def median(sorted_values: Sequence[float]) -> float:
    n = len(sorted_values)
    if n == 0:
        return 0.0
    mid = n // 2
    if n % 2 == 1:
        return float(sorted_values[mid])
    return (sorted_values[mid - 1] + sorted_values[mid]) / 2


def percentile(sorted_values: Sequence[float], q: float) -> float:
    """
    q-th quantile (0 <= q <= 1) with linear interpolation between the two
    nearest ranks; rank = q * (n - 1) on the ascending list.
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    rank = q * (n - 1)
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return float(sorted_values[lower])
    weight = rank - lower
    return sorted_values[lower] * (1 - weight) + sorted_values[upper] * weight


def histogram(values: Iterable[float], buckets: Sequence[RangeBucket]) -> list[dict]:
    """Count values per bucket. Every bucket is reported, empty ones as 0."""
    counts = [0] * len(buckets)
    for v in values:
        for i, b in enumerate(buckets):
            if b.contains(v):
                counts[i] += 1
                break
    return [{"bucket": b.key, "count": c} for b, c in zip(buckets, counts)]


# ---------------------------------------------------------------------------
# Time-to-complete summary
# ---------------------------------------------------------------------------

@dataclass
class TimeToCompleteStats:
    count: int
    mean_days: float
    median_days: float
    p90_days: float
    histogram: list[dict] = field(default_factory=list)


def summarize(days: Iterable[int]) -> TimeToCompleteStats:
    """
    count / mean / median / p90 / histogram for a list of day counts.
    An empty list gives zeros and an all-zero histogram rather than None.
    """
    ordered = sorted(days)
    return TimeToCompleteStats(
        count=len(ordered),
        mean_days=round_half_up(mean(ordered)),
        median_days=round_half_up(median(ordered)),
        p90_days=round_half_up(percentile(ordered, 0.9)),
        histogram=histogram(ordered, TIME_TO_COMPLETE_BUCKETS),
    )

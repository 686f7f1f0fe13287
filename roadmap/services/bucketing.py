"""
Bucketing engine: split an inclusive date range into day / week / month
buckets for time-series reports.

Guarantees for `build_buckets(start, end, g)` when start <= end:
  * ascending by start date, no gaps, no overlaps
  * first bucket starts at `start`, last bucket ends at `end`
    (week and month buckets are clipped to the requested range)
  * labels are unique:
        day    "2025-09-01"
        week   "2025-W36"   (ISO week-numbering year and week)
        month  "2025-09"

start > end yields an empty list; the reporting facade rejects that case
before it ever gets here.
"""
from __future__ import annotations

import enum
from bisect import bisect_right
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Sequence


class Granularity(str, enum.Enum):
    day = "day"
    week = "week"
    month = "month"


@dataclass(frozen=True)
class Bucket:
    label: str
    start: date
    end: date


def parse_granularity(value, default: Granularity) -> Granularity:
    """Return the granularity named by `value`, or `default` if it names none."""
    if isinstance(value, Granularity):
        return value
    if isinstance(value, str):
        try:
            return Granularity(value.strip().lower())
        except ValueError:
            pass
    return default


# ---------------------------------------------------------------------------
# Labels and natural period boundaries
# ---------------------------------------------------------------------------

def week_label(d: date) -> str:
    iso_year, iso_week, _ = d.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def month_label(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def _week_end(d: date) -> date:
    # ISO weeks run Monday (weekday 0) to Sunday (weekday 6).
    return d + timedelta(days=6 - d.weekday())


def _month_end(d: date) -> date:
    if d.month == 12:
        first_of_next = date(d.year + 1, 1, 1)
    else:
        first_of_next = date(d.year, d.month + 1, 1)
    return first_of_next - timedelta(days=1)


_PERIOD = {
    Granularity.day: (lambda d: d.isoformat(), lambda d: d),
    Granularity.week: (week_label, _week_end),
    Granularity.month: (month_label, _month_end),
}


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def build_buckets(start: date, end: date, granularity: Granularity) -> list[Bucket]:
    label_of, period_end = _PERIOD[Granularity(granularity)]
    buckets: list[Bucket] = []
    cursor = start
    while cursor <= end:
        bucket_end = min(period_end(cursor), end)
        buckets.append(Bucket(label=label_of(cursor), start=cursor, end=bucket_end))
        cursor = bucket_end + timedelta(days=1)
    return buckets


class BucketIndex:
    """
    Locate the bucket holding a date by binary search over bucket starts.

    Lets aggregators make a single pass over records instead of rescanning
    every record for every bucket.
    """

    def __init__(self, buckets: Sequence[Bucket]):
        self.buckets = list(buckets)
        self._starts = [b.start for b in self.buckets]

    def __len__(self) -> int:
        return len(self.buckets)

    def position(self, d: Optional[date]) -> Optional[int]:
        if d is None or not self.buckets:
            return None
        i = bisect_right(self._starts, d) - 1
        if i < 0 or d > self.buckets[i].end:
            return None
        return i

    def counts(self, days) -> list[int]:
        """Per-bucket tally of the given dates; dates outside the range are ignored."""
        tally = [0] * len(self.buckets)
        for d in days:
            i = self.position(d)
            if i is not None:
                tally[i] += 1
        return tally

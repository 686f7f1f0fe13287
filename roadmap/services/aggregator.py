"""
Aggregator: turns lists of goal / attendance records into report metrics.

Pure functions over already-fetched records: no I/O, no shared state.

Conventions
-----------
* `*_rate` fields are 0–1 fractions rounded to 4 places; a rate over an
  empty denominator is 0.0.
* `pct_complete` is the one percentage (0–100, 2 places).
* Average completion times (`avg_days_to_complete`, `avg_days`) use exact
  elapsed time in days; distributions use whole days. Negative durations
  (completed before created) are bad data and are left out of both.
* Goals without a target date are never counted as overdue or on time.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from roadmap.services.bucketing import Bucket, BucketIndex
from roadmap.services.distribution import (
    AGE_BUCKETS,
    elapsed_days,
    fractional_days,
    histogram,
    mean,
    round_half_up,
)
from roadmap.services.records import (
    AttendanceRecord,
    AttendanceStatus,
    DateRange,
    GoalRecord,
)


# ---------------------------------------------------------------------------
# Result types (plain dataclasses, serialized by the router)
# ---------------------------------------------------------------------------

@dataclass
class OverviewStats:
    total_goals: int
    completed_goals: int
    pct_complete: float
    avg_days_to_complete: float


@dataclass
class CompletionsPoint:
    label: str
    completions: int


@dataclass
class ThroughputPoint:
    label: str
    start: date
    end: date
    created: int
    completed: int
    completion_rate: float


@dataclass
class StudentCount:
    student_id: int
    student_name: Optional[str]
    open_count: int


@dataclass
class BacklogStats:
    as_of: date
    total_open: int
    overdue: int
    avg_days_open: float
    open_by_age: list[dict]
    top_students: list[StudentCount] = field(default_factory=list)


@dataclass
class OverdueStats:
    as_of: date
    open_overdue: int
    completed_count: int
    completed_on_time: int
    on_time_rate: float


@dataclass
class StudentCompletions:
    student_id: int
    student_name: Optional[str]
    completions: int
    avg_days: float


@dataclass
class StudentPoints:
    student_id: int
    student_name: Optional[str]
    completed_goals: int = 0
    completed_points: int = 0
    on_time_bonus: int = 0

    @property
    def total_points(self) -> int:
        return self.completed_points + self.on_time_bonus


@dataclass
class AttendanceCounts:
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0

    @property
    def total(self) -> int:
        return self.present + self.absent + self.late + self.excused

    @property
    def attendance_rate(self) -> float:
        return rate(self.present, self.total)

    def add(self, status: AttendanceStatus) -> None:
        setattr(self, status.value, getattr(self, status.value) + 1)


@dataclass
class AttendancePoint:
    label: str
    start: date
    end: date
    counts: AttendanceCounts


@dataclass
class AttendanceSummary:
    start: date
    end: date
    totals: AttendanceCounts
    series: list[AttendancePoint]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def rate(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return round_half_up(numerator / denominator, 4)


def completion_days(goal: GoalRecord) -> Optional[int]:
    """Whole days from creation to completion; None if not completed or negative."""
    if goal.completed_at is None:
        return None
    days = elapsed_days(goal.created_at, goal.completed_at)
    return days if days >= 0 else None


def completion_span(goal: GoalRecord) -> Optional[float]:
    """Exact days from creation to completion; None if not completed or negative."""
    if goal.completed_at is None:
        return None
    days = fractional_days(goal.created_at, goal.completed_at)
    return days if days >= 0 else None


def _completion_spans(goals: Iterable[GoalRecord]) -> list[float]:
    return [d for d in (completion_span(g) for g in goals) if d is not None]


# ---------------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------------

def overview(goals: Sequence[GoalRecord]) -> OverviewStats:
    total = len(goals)
    completed = sum(1 for g in goals if g.is_completed)
    pct = round_half_up(completed / total * 100, 2) if total else 0.0
    return OverviewStats(
        total_goals=total,
        completed_goals=completed,
        pct_complete=pct,
        avg_days_to_complete=round_half_up(mean(_completion_spans(goals))),
    )


# ---------------------------------------------------------------------------
# Bucketed series
# ---------------------------------------------------------------------------

def completions_series(
    completed: Iterable[GoalRecord], buckets: Sequence[Bucket]
) -> list[CompletionsPoint]:
    index = BucketIndex(buckets)
    counts = index.counts(g.completed_day for g in completed)
    return [CompletionsPoint(label=b.label, completions=c) for b, c in zip(buckets, counts)]


def throughput_series(
    created: Iterable[GoalRecord],
    completed: Iterable[GoalRecord],
    buckets: Sequence[Bucket],
) -> list[ThroughputPoint]:
    """
    Created and completed counts per bucket. Every bucket is emitted, empty
    ones with zeros, so charts get a continuous x-axis.
    """
    index = BucketIndex(buckets)
    created_counts = index.counts(g.created_day for g in created)
    completed_counts = index.counts(g.completed_day for g in completed)
    return [
        ThroughputPoint(
            label=b.label,
            start=b.start,
            end=b.end,
            created=c,
            completed=d,
            completion_rate=rate(d, c),
        )
        for b, c, d in zip(buckets, created_counts, completed_counts)
    ]


def attendance_summary(
    records: Iterable[AttendanceRecord], period: DateRange, buckets: Sequence[Bucket]
) -> AttendanceSummary:
    index = BucketIndex(buckets)
    per_bucket = [AttendanceCounts() for _ in buckets]
    totals = AttendanceCounts()
    for r in records:
        i = index.position(r.day)
        if i is None:
            continue
        per_bucket[i].add(r.status)
        totals.add(r.status)
    return AttendanceSummary(
        start=period.start,
        end=period.end,
        totals=totals,
        series=[
            AttendancePoint(label=b.label, start=b.start, end=b.end, counts=c)
            for b, c in zip(buckets, per_bucket)
        ],
    )


# ---------------------------------------------------------------------------
# Point-in-time backlog
# ---------------------------------------------------------------------------

def rank_students(counts: Mapping[int, int], top_n: int) -> list[tuple[int, int]]:
    """(student_id, count) pairs by count desc, ties by student_id asc."""
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:top_n]


def backlog(
    open_goals: Iterable[GoalRecord],
    as_of: date,
    top_n: int,
    names: Optional[Mapping[int, str]] = None,
) -> BacklogStats:
    names = names or {}
    still_open = [
        g for g in open_goals if not g.is_completed and g.created_day <= as_of
    ]
    ages = [(as_of - g.created_day).days for g in still_open]
    overdue_count = sum(
        1 for g in still_open if g.target_date is not None and g.target_date < as_of
    )
    per_student = Counter(g.student_id for g in still_open)
    top = [
        StudentCount(student_id=sid, student_name=names.get(sid), open_count=n)
        for sid, n in rank_students(per_student, top_n)
    ]
    return BacklogStats(
        as_of=as_of,
        total_open=len(still_open),
        overdue=overdue_count,
        avg_days_open=round_half_up(mean(ages)),
        open_by_age=histogram(ages, AGE_BUCKETS),
        top_students=top,
    )


# ---------------------------------------------------------------------------
# Overdue / on-time
# ---------------------------------------------------------------------------

def is_on_time(goal: GoalRecord) -> bool:
    """
    Completed on or before the target calendar day.

    The comparison is by date, so a goal finished at any time on its target
    day counts as on time. Comparing the raw timestamp with the target date
    (read as midnight) would mark such a goal late. Goals without a target
    date are never on time.
    """
    return (
        goal.completed_at is not None
        and goal.target_date is not None
        and goal.completed_day <= goal.target_date
    )


def overdue(
    open_goals: Iterable[GoalRecord],
    completed_in_range: Iterable[GoalRecord],
    as_of: date,
) -> OverdueStats:
    """
    `open_overdue`: open goals whose target date is before `as_of`.
    On-time figures cover completed goals that have a target date; see
    `is_on_time` for the calendar-day comparison.
    """
    open_overdue = sum(
        1
        for g in open_goals
        if not g.is_completed and g.target_date is not None and g.target_date < as_of
    )
    with_target = [
        g for g in completed_in_range
        if g.completed_at is not None and g.target_date is not None
    ]
    on_time = sum(1 for g in with_target if is_on_time(g))
    return OverdueStats(
        as_of=as_of,
        open_overdue=open_overdue,
        completed_count=len(with_target),
        completed_on_time=on_time,
        on_time_rate=rate(on_time, len(with_target)),
    )


# ---------------------------------------------------------------------------
# Per-student completions
# ---------------------------------------------------------------------------

def by_student(
    completed: Iterable[GoalRecord],
    names: Mapping[int, str],
    limit: int,
    offset: int,
) -> list[StudentCompletions]:
    grouped: dict[int, list[GoalRecord]] = defaultdict(list)
    for g in completed:
        if g.completed_at is not None:
            grouped[g.student_id].append(g)

    rows = [
        StudentCompletions(
            student_id=sid,
            student_name=names.get(sid),
            completions=len(goals),
            avg_days=round_half_up(mean(_completion_spans(goals))),
        )
        for sid, goals in grouped.items()
    ]
    rows.sort(key=lambda r: (-r.completions, r.student_id))
    return rows[offset:offset + limit]


# ---------------------------------------------------------------------------
# Points leaderboard
# ---------------------------------------------------------------------------

POINTS_PER_COMPLETION = 2
ON_TIME_BONUS = 3


def points_leaderboard(
    completed: Iterable[GoalRecord], names: Mapping[int, str]
) -> list[StudentPoints]:
    """
    2 points per completed goal plus 3 for each on-time completion, per
    student. Ordered by total desc, then name asc (unnamed students last),
    then student_id.
    """
    rows: dict[int, StudentPoints] = {}
    for g in completed:
        if not g.is_completed:
            continue
        row = rows.get(g.student_id)
        if row is None:
            row = rows[g.student_id] = StudentPoints(
                student_id=g.student_id, student_name=names.get(g.student_id)
            )
        row.completed_goals += 1
        row.completed_points += POINTS_PER_COMPLETION
        if is_on_time(g):
            row.on_time_bonus += ON_TIME_BONUS

    return sorted(
        rows.values(),
        key=lambda r: (
            -r.total_points,
            r.student_name is None,
            r.student_name or "",
            r.student_id,
        ),
    )

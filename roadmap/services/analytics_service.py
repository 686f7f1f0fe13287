"""
Analytics reporting facade.

One method per report. Each method takes its parameters in raw query-string
form, normalizes them, fetches records from the injected `RecordSource`,
and hands them to the aggregator / statistics functions.

Parameter rules
---------------
* start_date / end_date   missing or unparseable → [today - 90d, today]
                          (each side defaulted independently)
* start_date > end_date   → InvalidDateRangeError (the only rejected input)
* group_by                not day|week|month → the report's default
* limit / offset / top_n  coerced and clamped, never rejected
* as_of                   missing or unparseable → today

Public API
----------
AnalyticsService(source, clock=_today, config=settings)
    .get_overview(start_date, end_date)                 -> OverviewStats
    .get_completions(start_date, end_date, group_by)    -> list[CompletionsPoint]
    .get_by_student(start_date, end_date, limit, offset)-> list[StudentCompletions]
    .get_throughput(start_date, end_date, group_by)     -> list[ThroughputPoint]
    .get_backlog(as_of, top_n)                          -> BacklogStats
    .get_overdue(start_date, end_date, as_of)           -> OverdueStats
    .get_time_to_complete(start_date, end_date)         -> TimeToCompleteStats
    .get_attendance(start_date, end_date, group_by)     -> AttendanceSummary
    .get_points_leaderboard()                           -> list[StudentPoints]
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Optional

from roadmap.core.config import Settings, settings
from roadmap.core.errors import InvalidDateRangeError
from roadmap.core.logging import LogTimer, get_logger
from roadmap.services import aggregator
from roadmap.services.aggregator import (
    AttendanceSummary,
    BacklogStats,
    CompletionsPoint,
    OverdueStats,
    OverviewStats,
    StudentCompletions,
    StudentPoints,
    ThroughputPoint,
)
from roadmap.services.bucketing import Granularity, build_buckets, parse_granularity
from roadmap.services.distribution import TimeToCompleteStats, summarize
from roadmap.services.records import DateRange, RecordSource

logger = get_logger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}(?:[T ].*)?$")


# ---------------------------------------------------------------------------
# Parameter normalization
# ---------------------------------------------------------------------------

def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def parse_date(value: Any) -> Optional[date]:
    """Parse a YYYY-MM-DD value; anything unusable is treated as absent (None)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not _ISO_DATE.match(text):
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def coerce_int(value: Any, default: int) -> int:
    """int(value) where possible (floats truncated), else `default`."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return default
    if not math.isfinite(number):
        return default
    return int(number)


def clamp(value: int, low: int, high: Optional[int] = None) -> int:
    value = max(value, low)
    if high is not None:
        value = min(value, high)
    return value


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------

class AnalyticsService:
    def __init__(
        self,
        source: RecordSource,
        clock: Callable[[], date] = _today,
        config: Settings = settings,
    ):
        self.source = source
        self.clock = clock
        self.config = config

    # --- normalization -----------------------------------------------------

    def resolve_range(self, start_date: Any = None, end_date: Any = None) -> DateRange:
        today = self.clock()
        start = parse_date(start_date)
        end = parse_date(end_date)
        if start_date is not None and start is None:
            logger.debug("Ignoring unparseable start_date %r", start_date)
        if end_date is not None and end is None:
            logger.debug("Ignoring unparseable end_date %r", end_date)

        if end is None:
            end = today
        if start is None:
            start = today - timedelta(days=self.config.ANALYTICS_DEFAULT_WINDOW_DAYS)
        if start > end:
            raise InvalidDateRangeError(start=start, end=end)
        return DateRange(start=start, end=end)

    def resolve_as_of(self, as_of: Any = None) -> date:
        return parse_date(as_of) or self.clock()

    def resolve_page(self, limit: Any = None, offset: Any = None) -> tuple[int, int]:
        limit_value = clamp(
            coerce_int(limit, self.config.ANALYTICS_DEFAULT_LIMIT),
            1,
            self.config.ANALYTICS_MAX_LIMIT,
        )
        offset_value = clamp(coerce_int(offset, 0), 0)
        return limit_value, offset_value

    def resolve_top_n(self, top_n: Any = None) -> int:
        value = coerce_int(top_n, self.config.BACKLOG_DEFAULT_TOP_N)
        if value < 1:
            return self.config.BACKLOG_DEFAULT_TOP_N
        return min(value, self.config.BACKLOG_MAX_TOP_N)

    # --- reports -----------------------------------------------------------

    def get_overview(self, start_date: Any = None, end_date: Any = None) -> OverviewStats:
        period = self.resolve_range(start_date, end_date)
        with LogTimer(logger, "overview_report"):
            goals = self.source.goals_created_between(period.start, period.end)
            return aggregator.overview(goals)

    def get_completions(
        self, start_date: Any = None, end_date: Any = None, group_by: Any = None
    ) -> list[CompletionsPoint]:
        period = self.resolve_range(start_date, end_date)
        granularity = parse_granularity(group_by, Granularity.week)
        with LogTimer(logger, "completions_report"):
            completed = self.source.goals_completed_between(period.start, period.end)
            buckets = build_buckets(period.start, period.end, granularity)
            return aggregator.completions_series(completed, buckets)

    def get_by_student(
        self,
        start_date: Any = None,
        end_date: Any = None,
        limit: Any = None,
        offset: Any = None,
    ) -> list[StudentCompletions]:
        period = self.resolve_range(start_date, end_date)
        limit_value, offset_value = self.resolve_page(limit, offset)
        with LogTimer(logger, "by_student_report"):
            completed = self.source.goals_completed_between(period.start, period.end)
            names = self.source.student_names({g.student_id for g in completed})
            return aggregator.by_student(completed, names, limit_value, offset_value)

    def get_throughput(
        self, start_date: Any = None, end_date: Any = None, group_by: Any = None
    ) -> list[ThroughputPoint]:
        period = self.resolve_range(start_date, end_date)
        granularity = parse_granularity(group_by, Granularity.month)
        with LogTimer(logger, "throughput_report"):
            created = self.source.goals_created_between(period.start, period.end)
            completed = self.source.goals_completed_between(period.start, period.end)
            buckets = build_buckets(period.start, period.end, granularity)
            return aggregator.throughput_series(created, completed, buckets)

    def get_backlog(self, as_of: Any = None, top_n: Any = None) -> BacklogStats:
        as_of_date = self.resolve_as_of(as_of)
        top = self.resolve_top_n(top_n)
        with LogTimer(logger, "backlog_report"):
            open_goals = self.source.open_goals(created_on_or_before=as_of_date)
            names = self.source.student_names({g.student_id for g in open_goals})
            return aggregator.backlog(open_goals, as_of_date, top, names)

    def get_overdue(
        self, start_date: Any = None, end_date: Any = None, as_of: Any = None
    ) -> OverdueStats:
        period = self.resolve_range(start_date, end_date)
        as_of_date = self.resolve_as_of(as_of)
        with LogTimer(logger, "overdue_report"):
            open_goals = self.source.open_goals()
            completed = self.source.goals_completed_between(period.start, period.end)
            return aggregator.overdue(open_goals, completed, as_of_date)

    def get_time_to_complete(
        self, start_date: Any = None, end_date: Any = None
    ) -> TimeToCompleteStats:
        period = self.resolve_range(start_date, end_date)
        with LogTimer(logger, "time_to_complete_report"):
            completed = self.source.goals_completed_between(period.start, period.end)
            days = [
                d for d in (aggregator.completion_days(g) for g in completed)
                if d is not None
            ]
            return summarize(days)

    def get_attendance(
        self, start_date: Any = None, end_date: Any = None, group_by: Any = None
    ) -> AttendanceSummary:
        period = self.resolve_range(start_date, end_date)
        granularity = parse_granularity(group_by, Granularity.week)
        with LogTimer(logger, "attendance_report"):
            records = self.source.attendance_between(period.start, period.end)
            buckets = build_buckets(period.start, period.end, granularity)
            return aggregator.attendance_summary(records, period, buckets)

    def get_points_leaderboard(self) -> list[StudentPoints]:
        """All-time points per student over every completed goal."""
        with LogTimer(logger, "points_leaderboard_report"):
            completed = self.source.completed_goals()
            names = self.source.student_names({g.student_id for g in completed})
            return aggregator.points_leaderboard(completed, names)

"""
Analytics router: administrative reporting over goals and attendance.

GET /api/analytics/overview         : KPI totals for goals created in range
GET /api/analytics/completions      : completions per day/week/month
GET /api/analytics/by-student       : completions and avg days per student
GET /api/analytics/throughput       : created vs completed per bucket
GET /api/analytics/backlog          : open goals as of a date
GET /api/analytics/overdue          : overdue and on-time completion stats
GET /api/analytics/time-to-complete : distribution of days to complete
GET /api/analytics/attendance       : attendance marks per bucket
GET /api/analytics/points-leaderboard : all-time points per student

Query parameters are declared as plain strings: malformed dates,
group_by values and page sizes are normalized by the service instead of
being rejected with 422.
"""
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from roadmap.db.base import get_db
from roadmap.schemas.analytics import (
    AttendanceCountsResponse,
    AttendancePointResponse,
    AttendanceResponse,
    BacklogResponse,
    CompletionsPointResponse,
    HistogramBucketResponse,
    OverdueResponse,
    OverviewResponse,
    StudentCompletionsResponse,
    StudentPointsResponse,
    ThroughputPointResponse,
    TimeToCompleteResponse,
    TopStudentResponse,
)
from roadmap.schemas.common import ErrorResponse
from roadmap.services.aggregator import (
    AttendanceCounts,
    AttendanceSummary,
    BacklogStats,
    OverdueStats,
    ThroughputPoint,
)
from roadmap.services.analytics_service import AnalyticsService
from roadmap.services.sql_source import SqlRecordSource

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

_RANGE_ERRORS = {
    400: {"model": ErrorResponse, "description": "start_date is after end_date."},
    500: {"model": ErrorResponse, "description": "Record source failure."},
}

StartDate = Annotated[Optional[str], Query(
    description="ISO date (YYYY-MM-DD). Missing or invalid → today minus 90 days.",
    examples=["2025-08-01"],
)]
EndDate = Annotated[Optional[str], Query(
    description="ISO date (YYYY-MM-DD). Missing or invalid → today.",
    examples=["2025-09-30"],
)]
AsOf = Annotated[Optional[str], Query(
    description="Reference date (YYYY-MM-DD). Missing or invalid → today.",
    examples=["2025-09-25"],
)]


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(SqlRecordSource(db))


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _throughput_to_response(p: ThroughputPoint) -> ThroughputPointResponse:
    return ThroughputPointResponse(
        label=p.label,
        start=str(p.start),
        end=str(p.end),
        created=p.created,
        completed=p.completed,
        completion_rate=p.completion_rate,
    )


def _backlog_to_response(b: BacklogStats) -> BacklogResponse:
    return BacklogResponse(
        as_of=str(b.as_of),
        total_open=b.total_open,
        overdue=b.overdue,
        avg_days_open=b.avg_days_open,
        open_by_age=[HistogramBucketResponse(**row) for row in b.open_by_age],
        top_students=[TopStudentResponse.model_validate(s) for s in b.top_students],
    )


def _overdue_to_response(o: OverdueStats) -> OverdueResponse:
    return OverdueResponse(
        as_of=str(o.as_of),
        open_overdue=o.open_overdue,
        completed_count=o.completed_count,
        completed_on_time=o.completed_on_time,
        on_time_rate=o.on_time_rate,
    )


def _counts_fields(c: AttendanceCounts) -> dict:
    return {
        "present": c.present,
        "absent": c.absent,
        "late": c.late,
        "excused": c.excused,
        "total": c.total,
        "attendance_rate": c.attendance_rate,
    }


def _attendance_to_response(s: AttendanceSummary) -> AttendanceResponse:
    return AttendanceResponse(
        start=str(s.start),
        end=str(s.end),
        totals=AttendanceCountsResponse(**_counts_fields(s.totals)),
        series=[
            AttendancePointResponse(
                label=p.label, start=str(p.start), end=str(p.end), **_counts_fields(p.counts)
            )
            for p in s.series
        ],
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/overview",
    response_model=OverviewResponse,
    summary="Goal KPIs for the date range",
    responses=_RANGE_ERRORS,
)
def overview(
    start_date: StartDate = None,
    end_date: EndDate = None,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Totals over goals **created** in the range: count, completed, % complete, avg days."""
    return OverviewResponse.model_validate(service.get_overview(start_date, end_date))


@router.get(
    "/completions",
    response_model=list[CompletionsPointResponse],
    summary="Completions per period",
    responses=_RANGE_ERRORS,
)
def completions(
    start_date: StartDate = None,
    end_date: EndDate = None,
    group_by: Optional[str] = Query(
        default=None,
        description='"day" | "week" | "month". Anything else → "week".',
        examples=["week"],
    ),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Number of goals completed in each bucket. Every bucket in the range is
    returned, including empty ones.

    Labels: `2025-09-01` (day), `2025-W36` (ISO week), `2025-09` (month).
    """
    points = service.get_completions(start_date, end_date, group_by)
    return [CompletionsPointResponse.model_validate(p) for p in points]


@router.get(
    "/by-student",
    response_model=list[StudentCompletionsResponse],
    summary="Completions per student",
    responses=_RANGE_ERRORS,
)
def by_student(
    start_date: StartDate = None,
    end_date: EndDate = None,
    limit: Optional[str] = Query(
        default=None, description="Page size, clamped to 1–1000. Default 50."
    ),
    offset: Optional[str] = Query(
        default=None, description="Skip N rows, negative values become 0."
    ),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Students ranked by completions in the range (ties by student id)."""
    rows = service.get_by_student(start_date, end_date, limit, offset)
    return [StudentCompletionsResponse.model_validate(r) for r in rows]


@router.get(
    "/throughput",
    response_model=list[ThroughputPointResponse],
    summary="Created vs completed per period",
    responses=_RANGE_ERRORS,
)
def throughput(
    start_date: StartDate = None,
    end_date: EndDate = None,
    group_by: Optional[str] = Query(
        default=None,
        description='"day" | "week" | "month". Anything else → "month".',
        examples=["month"],
    ),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Zero-filled time series of goals created and completed per bucket, with
    `completion_rate = completed / created` (0 when nothing was created).
    Bucket boundaries are clipped to the requested range.
    """
    points = service.get_throughput(start_date, end_date, group_by)
    return [_throughput_to_response(p) for p in points]


@router.get(
    "/backlog",
    response_model=BacklogResponse,
    summary="Open goals as of a date",
    responses={500: _RANGE_ERRORS[500]},
)
def backlog(
    as_of: AsOf = None,
    top_n: Optional[str] = Query(
        default=None, description="Students to list, 1–100. Default 10."
    ),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Goals still open and created on or before `as_of`: total, overdue,
    average age, age histogram and the students with the most open goals.
    """
    return _backlog_to_response(service.get_backlog(as_of, top_n))


@router.get(
    "/overdue",
    response_model=OverdueResponse,
    summary="Overdue and on-time completion stats",
    responses=_RANGE_ERRORS,
)
def overdue(
    start_date: StartDate = None,
    end_date: EndDate = None,
    as_of: AsOf = None,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    `open_overdue` counts open goals past their target date as of `as_of`.
    The on-time figures cover goals completed within the range that have a
    target date; goals without one are left out.
    """
    return _overdue_to_response(service.get_overdue(start_date, end_date, as_of))


@router.get(
    "/time-to-complete",
    response_model=TimeToCompleteResponse,
    summary="Days-to-complete distribution",
    responses=_RANGE_ERRORS,
)
def time_to_complete(
    start_date: StartDate = None,
    end_date: EndDate = None,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Mean, median, p90 and histogram of whole days for goals completed in range."""
    return TimeToCompleteResponse.model_validate(
        service.get_time_to_complete(start_date, end_date)
    )


@router.get(
    "/attendance",
    response_model=AttendanceResponse,
    summary="Attendance marks per period",
    responses=_RANGE_ERRORS,
)
def attendance(
    start_date: StartDate = None,
    end_date: EndDate = None,
    group_by: Optional[str] = Query(
        default=None,
        description='"day" | "week" | "month". Anything else → "week".',
    ),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Present / absent / late / excused counts per bucket and overall."""
    return _attendance_to_response(service.get_attendance(start_date, end_date, group_by))


@router.get(
    "/points-leaderboard",
    response_model=list[StudentPointsResponse],
    summary="Points per student",
    responses={500: _RANGE_ERRORS[500]},
)
def points_leaderboard(service: AnalyticsService = Depends(get_analytics_service)):
    """
    All-time points over completed goals: 2 per completion plus a 3 point
    bonus when completed by the target date. Ranked by total, then name.
    """
    rows = service.get_points_leaderboard()
    return [StudentPointsResponse.model_validate(r) for r in rows]

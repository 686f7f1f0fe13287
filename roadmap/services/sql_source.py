"""
SQLAlchemy-backed record source.

Translates the date predicates of `RecordSource` into indexed timestamp
filters and converts ORM rows into `GoalRecord` / `AttendanceRecord`.
Day bounds are timezone-aware UTC midnights, independent of the database
session's TimeZone.
Database errors and malformed rows surface as `UpstreamFailureError`;
nothing is retried or swallowed here.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from roadmap.core.errors import UpstreamFailureError
from roadmap.core.logging import get_logger
from roadmap.models.attendance import Attendance
from roadmap.models.goal import Goal
from roadmap.models.student import Student
from roadmap.services.records import AttendanceRecord, GoalRecord

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def _next_day_start(d: date) -> datetime:
    """Exclusive upper bound for "timestamp falls on or before d"."""
    return _day_start(d + timedelta(days=1))


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _goal_record(row: Goal) -> GoalRecord:
    return GoalRecord(
        id=row.id,
        student_id=row.student_id,
        created_at=_naive_utc(row.created_at),
        completed_at=_naive_utc(row.completed_at),
        target_date=row.target_date,
        is_completed=bool(row.is_completed),
    )


def _attendance_record(row: Attendance) -> AttendanceRecord:
    return AttendanceRecord(
        id=row.id,
        student_id=row.student_id,
        day=row.day,
        status=row.status,
    )


# ---------------------------------------------------------------------------
# Source
# ---------------------------------------------------------------------------

class SqlRecordSource:
    def __init__(self, db: Session):
        self.db = db

    def _fetch(self, operation: str, stmt, convert):
        try:
            rows = self.db.scalars(stmt).all()
            return [convert(row) for row in rows]
        except SQLAlchemyError as exc:
            logger.error("Query failed during %s", operation, exc_info=exc,
                         extra={"operation": operation})
            raise UpstreamFailureError(operation, reason=exc.__class__.__name__) from exc
        except ValueError as exc:
            logger.error("Malformed row during %s: %s", operation, exc,
                         extra={"operation": operation})
            raise UpstreamFailureError(operation, reason=str(exc)) from exc

    def goals_created_between(self, start: date, end: date) -> list[GoalRecord]:
        stmt = (
            select(Goal)
            .where(Goal.created_at >= _day_start(start))
            .where(Goal.created_at < _next_day_start(end))
            .order_by(Goal.created_at, Goal.id)
        )
        return self._fetch("goals_created_between", stmt, _goal_record)

    def goals_completed_between(self, start: date, end: date) -> list[GoalRecord]:
        stmt = (
            select(Goal)
            .where(Goal.completed_at.is_not(None))
            .where(Goal.completed_at >= _day_start(start))
            .where(Goal.completed_at < _next_day_start(end))
            .order_by(Goal.completed_at, Goal.id)
        )
        return self._fetch("goals_completed_between", stmt, _goal_record)

    def open_goals(self, created_on_or_before: Optional[date] = None) -> list[GoalRecord]:
        stmt = select(Goal).where(Goal.is_completed == False)  # noqa: E712
        if created_on_or_before is not None:
            stmt = stmt.where(Goal.created_at < _next_day_start(created_on_or_before))
        stmt = stmt.order_by(Goal.created_at, Goal.id)
        return self._fetch("open_goals", stmt, _goal_record)

    def completed_goals(self) -> list[GoalRecord]:
        stmt = (
            select(Goal)
            .where(Goal.is_completed == True)  # noqa: E712
            .order_by(Goal.student_id, Goal.id)
        )
        return self._fetch("completed_goals", stmt, _goal_record)

    def student_names(self, student_ids: Iterable[int]) -> dict[int, str]:
        ids = sorted(set(student_ids))
        if not ids:
            return {}
        try:
            rows = self.db.execute(
                select(Student.id, Student.name).where(Student.id.in_(ids))
            ).all()
        except SQLAlchemyError as exc:
            logger.error("Query failed during student_names", exc_info=exc,
                         extra={"operation": "student_names"})
            raise UpstreamFailureError("student_names", reason=exc.__class__.__name__) from exc
        return {row.id: row.name for row in rows}

    def attendance_between(self, start: date, end: date) -> list[AttendanceRecord]:
        stmt = (
            select(Attendance)
            .where(Attendance.day >= start)
            .where(Attendance.day <= end)
            .order_by(Attendance.day, Attendance.id)
        )
        return self._fetch("attendance_between", stmt, _attendance_record)

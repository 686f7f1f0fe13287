"""
Record types consumed by the analytics core, and the record-source protocol.

The core never touches the ORM. Rows are converted into these frozen
dataclasses at the data-access boundary (see `sql_source.py`), where field
presence and types are checked once, so the aggregation code can trust them.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Protocol


class AttendanceStatus(str, enum.Enum):
    present = "present"
    absent = "absent"
    late = "late"
    excused = "excused"


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @property
    def days(self) -> int:
        """Inclusive length in days (0 when start > end)."""
        return max((self.end - self.start).days + 1, 0)


@dataclass(frozen=True)
class GoalRecord:
    id: int
    student_id: int
    created_at: datetime
    completed_at: Optional[datetime] = None
    target_date: Optional[date] = None
    is_completed: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.created_at, datetime):
            raise ValueError(f"goal {self.id}: created_at must be a datetime")
        if self.completed_at is not None and not isinstance(self.completed_at, datetime):
            raise ValueError(f"goal {self.id}: completed_at must be a datetime or None")
        # datetime is a subclass of date; a target date carries no time.
        if self.target_date is not None and (
            isinstance(self.target_date, datetime) or not isinstance(self.target_date, date)
        ):
            raise ValueError(f"goal {self.id}: target_date must be a date or None")
        if not isinstance(self.is_completed, bool):
            raise ValueError(f"goal {self.id}: is_completed must be a bool")

    @property
    def created_day(self) -> date:
        return self.created_at.date()

    @property
    def completed_day(self) -> Optional[date]:
        return self.completed_at.date() if self.completed_at is not None else None


@dataclass(frozen=True)
class AttendanceRecord:
    id: int
    student_id: int
    day: date
    status: AttendanceStatus

    def __post_init__(self) -> None:
        if isinstance(self.day, datetime) or not isinstance(self.day, date):
            raise ValueError(f"attendance {self.id}: day must be a date")
        # Accept the raw string value and normalize it to the enum.
        object.__setattr__(self, "status", AttendanceStatus(self.status))


class RecordSource(Protocol):
    """
    Read-only query capability the reporting facade depends on.

    All date bounds are inclusive calendar dates; timestamps are compared
    by their calendar date.
    """

    def goals_created_between(self, start: date, end: date) -> list[GoalRecord]:
        ...

    def goals_completed_between(self, start: date, end: date) -> list[GoalRecord]:
        ...

    def open_goals(self, created_on_or_before: Optional[date] = None) -> list[GoalRecord]:
        ...

    def completed_goals(self) -> list[GoalRecord]:
        ...

    def student_names(self, student_ids: Iterable[int]) -> dict[int, str]:
        ...

    def attendance_between(self, start: date, end: date) -> list[AttendanceRecord]:
        ...

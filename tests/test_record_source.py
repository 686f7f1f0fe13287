"""
Tests for the record types and the SQLAlchemy record source, run against a
fresh in-memory SQLite database per test.
"""
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from roadmap.core.errors import UpstreamFailureError
from roadmap.models import Attendance, Goal, Student
from roadmap.services.records import AttendanceRecord, AttendanceStatus, DateRange, GoalRecord
from roadmap.services.sql_source import SqlRecordSource, _day_start, _naive_utc, _next_day_start


def _seed_students(session):
    session.add_all([Student(id=1, name="Ana"), Student(id=2, name="Ben")])
    session.flush()


def _add_goal(session, created_at, completed_at=None, target_date=None, student_id=1):
    goal = Goal(
        student_id=student_id,
        title="Read chapter",
        created_at=created_at,
        completed_at=completed_at,
        target_date=target_date,
        is_completed=completed_at is not None,
    )
    session.add(goal)
    session.flush()
    return goal


# ---------------------------------------------------------------------------
# Record types
# ---------------------------------------------------------------------------

class TestGoalRecord:
    def test_days(self):
        g = GoalRecord(
            id=1, student_id=1,
            created_at=datetime(2025, 9, 1, 22, 0),
            completed_at=datetime(2025, 9, 3, 1, 0),
            is_completed=True,
        )
        assert g.created_day == date(2025, 9, 1)
        assert g.completed_day == date(2025, 9, 3)

    def test_open_goal_has_no_completed_day(self):
        g = GoalRecord(id=1, student_id=1, created_at=datetime(2025, 9, 1))
        assert g.completed_day is None

    @pytest.mark.parametrize("fields", [
        {"created_at": None},
        {"created_at": date(2025, 9, 1)},
        {"created_at": datetime(2025, 9, 1), "completed_at": "2025-09-02"},
        {"created_at": datetime(2025, 9, 1), "target_date": datetime(2025, 9, 5)},
        {"created_at": datetime(2025, 9, 1), "is_completed": 1},
    ])
    def test_malformed_fields_rejected(self, fields):
        with pytest.raises(ValueError):
            GoalRecord(id=1, student_id=1, **fields)


class TestAttendanceRecord:
    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            AttendanceRecord(id=1, student_id=1, day=date(2025, 9, 1), status="sick")

    def test_day_must_be_a_date(self):
        with pytest.raises(ValueError):
            AttendanceRecord(id=1, student_id=1, day="2025-09-01", status="present")


def test_date_range_days():
    assert DateRange(date(2025, 9, 1), date(2025, 9, 30)).days == 30
    assert DateRange(date(2025, 9, 2), date(2025, 9, 1)).days == 0


def test_naive_utc_normalizes_aware_timestamps():
    aware = datetime(2025, 9, 1, 2, 0, tzinfo=timezone(timedelta(hours=5)))
    assert _naive_utc(aware) == datetime(2025, 8, 31, 21, 0)
    assert _naive_utc(datetime(2025, 9, 1)) == datetime(2025, 9, 1)
    assert _naive_utc(None) is None


def test_day_bounds_are_utc_midnights():
    start = _day_start(date(2025, 9, 1))
    assert start == datetime(2025, 9, 1, tzinfo=timezone.utc)
    assert start.utcoffset() == timedelta(0)
    assert _next_day_start(date(2025, 9, 30)) == datetime(2025, 10, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# SqlRecordSource
# ---------------------------------------------------------------------------

class TestSqlRecordSource:
    def test_goals_created_between_is_inclusive_by_calendar_day(self, sql_session):
        _seed_students(sql_session)
        _add_goal(sql_session, datetime(2025, 8, 31, 23, 59))
        _add_goal(sql_session, datetime(2025, 9, 1, 0, 0))
        _add_goal(sql_session, datetime(2025, 9, 30, 23, 59, 59))
        _add_goal(sql_session, datetime(2025, 10, 1, 0, 0))

        rows = SqlRecordSource(sql_session).goals_created_between(date(2025, 9, 1), date(2025, 9, 30))

        assert [g.created_at for g in rows] == [
            datetime(2025, 9, 1, 0, 0),
            datetime(2025, 9, 30, 23, 59, 59),
        ]
        assert all(isinstance(g, GoalRecord) for g in rows)

    def test_goals_completed_between_skips_open_goals(self, sql_session):
        _seed_students(sql_session)
        _add_goal(sql_session, datetime(2025, 9, 1))
        done = _add_goal(
            sql_session, datetime(2025, 8, 1), datetime(2025, 9, 15, 12), target_date=date(2025, 9, 20)
        )
        _add_goal(sql_session, datetime(2025, 8, 1), datetime(2025, 10, 2))

        rows = SqlRecordSource(sql_session).goals_completed_between(date(2025, 9, 1), date(2025, 9, 30))

        assert [g.id for g in rows] == [done.id]
        assert rows[0].is_completed is True
        assert rows[0].target_date == date(2025, 9, 20)
        assert rows[0].completed_day == date(2025, 9, 15)

    def test_open_goals_with_and_without_bound(self, sql_session):
        _seed_students(sql_session)
        _add_goal(sql_session, datetime(2025, 9, 1))
        _add_goal(sql_session, datetime(2025, 9, 10, 18))
        _add_goal(sql_session, datetime(2025, 9, 20))
        _add_goal(sql_session, datetime(2025, 9, 1), datetime(2025, 9, 2))

        source = SqlRecordSource(sql_session)
        assert len(source.open_goals()) == 3
        bounded = source.open_goals(created_on_or_before=date(2025, 9, 10))
        assert [g.created_day for g in bounded] == [date(2025, 9, 1), date(2025, 9, 10)]
        assert all(not g.is_completed for g in bounded)

    def test_student_names(self, sql_session):
        _seed_students(sql_session)
        source = SqlRecordSource(sql_session)
        assert source.student_names([2, 1, 2, 99]) == {1: "Ana", 2: "Ben"}
        assert source.student_names([]) == {}

    def test_attendance_between(self, sql_session):
        _seed_students(sql_session)
        sql_session.add_all([
            Attendance(student_id=1, day=date(2025, 8, 31), status=AttendanceStatus.present),
            Attendance(student_id=1, day=date(2025, 9, 1), status=AttendanceStatus.late),
            Attendance(student_id=2, day=date(2025, 9, 1), status=AttendanceStatus.absent),
            Attendance(student_id=2, day=date(2025, 9, 2), status=AttendanceStatus.excused),
        ])
        sql_session.flush()

        rows = SqlRecordSource(sql_session).attendance_between(date(2025, 9, 1), date(2025, 9, 2))

        assert [(r.student_id, r.day, r.status) for r in rows] == [
            (1, date(2025, 9, 1), AttendanceStatus.late),
            (2, date(2025, 9, 1), AttendanceStatus.absent),
            (2, date(2025, 9, 2), AttendanceStatus.excused),
        ]

    def test_completed_goals_across_all_time(self, sql_session):
        _seed_students(sql_session)
        late = _add_goal(sql_session, datetime(2024, 1, 1), datetime(2024, 3, 1), student_id=2)
        _add_goal(sql_session, datetime(2025, 9, 1))
        early = _add_goal(
            sql_session, datetime(2020, 5, 1), datetime(2020, 5, 2), target_date=date(2020, 5, 2)
        )

        rows = SqlRecordSource(sql_session).completed_goals()

        assert [g.id for g in rows] == [early.id, late.id]
        assert all(g.is_completed for g in rows)
        assert rows[0].target_date == date(2020, 5, 2)

    def test_database_error_becomes_upstream_failure(self, sql_session):
        sql_session.execute(text("DROP TABLE goals"))
        with pytest.raises(UpstreamFailureError) as exc_info:
            SqlRecordSource(sql_session).goals_created_between(date(2025, 9, 1), date(2025, 9, 30))
        assert exc_info.value.details["operation"] == "goals_created_between"
        assert exc_info.value.code == "UPSTREAM_FAILURE"

"""
Shared pytest fixtures.

Uses SQLite so no Postgres is required for tests:
  * `client` / `db`      file-backed database shared by the HTTP tests
  * `sql_session`        fresh in-memory database per test (record source tests)
  * `memory_source`      in-memory RecordSource fake, filled by each test
  * `fake_client`        TestClient whose analytics service reads `memory_source`
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_roadmap.db")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from roadmap.db.base import Base, get_db
from roadmap.main import app
from roadmap.routers.analytics import get_analytics_service
from roadmap.services.analytics_service import AnalyticsService
import roadmap.models  # noqa: F401

SQLITE_URL = "sqlite:///./test_roadmap.db"

# Fixed "today" for tests that go through the in-memory source.
FAKE_TODAY = date(2025, 9, 30)

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class InMemoryRecordSource:
    """RecordSource over plain lists; applies the same date predicates as the SQL source."""

    def __init__(self, goals=None, attendance=None, names=None):
        self.goals = list(goals or [])
        self.attendance = list(attendance or [])
        self.names = dict(names or {})
        self.calls = []

    def goals_created_between(self, start, end):
        self.calls.append("goals_created_between")
        return [g for g in self.goals if start <= g.created_day <= end]

    def goals_completed_between(self, start, end):
        self.calls.append("goals_completed_between")
        return [
            g for g in self.goals
            if g.completed_at is not None and start <= g.completed_day <= end
        ]

    def open_goals(self, created_on_or_before=None):
        self.calls.append("open_goals")
        return [
            g for g in self.goals
            if not g.is_completed
            and (created_on_or_before is None or g.created_day <= created_on_or_before)
        ]

    def completed_goals(self):
        self.calls.append("completed_goals")
        return [g for g in self.goals if g.is_completed]

    def student_names(self, student_ids):
        self.calls.append("student_names")
        return {sid: self.names[sid] for sid in student_ids if sid in self.names}

    def attendance_between(self, start, end):
        self.calls.append("attendance_between")
        return [a for a in self.attendance if start <= a.day <= end]


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def sql_session():
    mem_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=mem_engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=mem_engine)()
    try:
        yield session
    finally:
        session.close()
        mem_engine.dispose()


@pytest.fixture()
def memory_source():
    return InMemoryRecordSource()


@pytest.fixture()
def fake_client(memory_source):
    app.dependency_overrides[get_analytics_service] = lambda: AnalyticsService(
        memory_source, clock=lambda: FAKE_TODAY
    )
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

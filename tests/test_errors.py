"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
from datetime import date

import pytest
from fastapi import APIRouter
from fastapi.testclient import TestClient

from roadmap.core.errors import (
    HTTP_STATUS_BY_KIND,
    AnalyticsError,
    ErrorKind,
    InvalidDateRangeError,
    UpstreamFailureError,
)
from roadmap.main import app


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_invalid_date_range_error(self):
        err = InvalidDateRangeError(start=date(2025, 9, 10), end=date(2025, 9, 1))
        assert err.kind == ErrorKind.INVALID_DATE_RANGE
        assert err.code == "INVALID_DATE_RANGE"
        assert "2025-09-10" in err.message
        assert "2025-09-01" in err.message
        d = err.to_dict()
        assert d["code"] == "INVALID_DATE_RANGE"
        assert d["details"] == {"start_date": "2025-09-10", "end_date": "2025-09-01"}

    def test_upstream_failure_error(self):
        err = UpstreamFailureError("open_goals", reason="OperationalError")
        assert err.kind == ErrorKind.UPSTREAM_FAILURE
        assert err.code == "UPSTREAM_FAILURE"
        assert err.details == {"operation": "open_goals", "reason": "OperationalError"}

    def test_upstream_failure_without_reason(self):
        err = UpstreamFailureError("student_names")
        assert err.details == {"operation": "student_names"}

    def test_errors_carry_no_http_status(self):
        err = InvalidDateRangeError(start=date(2025, 9, 2), end=date(2025, 9, 1))
        assert not hasattr(err, "http_status")
        assert isinstance(err, AnalyticsError)

    def test_to_dict_without_details(self):
        d = AnalyticsError("boom").to_dict()
        assert d == {"code": "UPSTREAM_FAILURE", "message": "boom"}

    def test_every_kind_has_a_status(self):
        assert HTTP_STATUS_BY_KIND == {
            ErrorKind.INVALID_DATE_RANGE: 400,
            ErrorKind.UPSTREAM_FAILURE: 500,
        }


# ---------------------------------------------------------------------------
# Integration tests on HTTP error responses
# ---------------------------------------------------------------------------

_extra = APIRouter(prefix="/_extra")


@_extra.get("/boom")
def _boom():
    raise RuntimeError("unexpected")


@_extra.get("/typed")
def _typed(n: int):
    return {"n": n}


@pytest.fixture(scope="module")
def extra_client():
    app.include_router(_extra)
    yield TestClient(app, raise_server_exceptions=False)
    app.router.routes[:] = [
        r for r in app.router.routes if not getattr(r, "path", "").startswith("/_extra")
    ]


class TestHttpErrors:
    def test_invalid_date_range_returns_400_envelope(self, fake_client):
        r = fake_client.get(
            "/api/analytics/time-to-complete",
            params={"start_date": "2025-09-30", "end_date": "2025-01-01"},
        )
        assert r.status_code == 400
        assert set(r.json()) == {"code", "message", "details"}

    def test_unhandled_exception_returns_500_envelope(self, extra_client):
        r = extra_client.get("/_extra/boom")
        assert r.status_code == 500
        assert r.json() == {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        }

    def test_validation_error_returns_422_envelope(self, extra_client):
        r = extra_client.get("/_extra/typed", params={"n": "many"})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        fields = [e["field"] for e in body["details"]["errors"]]
        assert any("n" in f for f in fields)

    def test_unknown_route_is_404(self, fake_client):
        r = fake_client.get("/api/analytics/nope")
        assert r.status_code == 404

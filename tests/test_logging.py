"""
Tests for the logging helpers.
"""
import json
import logging
import sys

import pytest

from roadmap.core.logging import ContextLogger, JSONFormatter, LogTimer, get_logger, setup_logging


def _record(msg="hello", exc_info=None, **extra):
    record = logging.LogRecord(
        name="roadmap.test", level=logging.INFO, pathname=__file__, lineno=10,
        msg=msg, args=(), exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        payload = json.loads(JSONFormatter().format(_record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "roadmap.test"
        assert payload["message"] == "hello"
        assert "timestamp" in payload

    def test_context_attributes_are_copied(self):
        payload = json.loads(JSONFormatter().format(
            _record(operation="backlog_report", duration_ms=12.5, unrelated="x")
        ))
        assert payload["operation"] == "backlog_report"
        assert payload["duration_ms"] == 12.5
        assert "unrelated" not in payload

    def test_exception_block(self):
        try:
            raise ValueError("bad row")
        except ValueError:
            record = _record(exc_info=sys.exc_info())
        payload = json.loads(JSONFormatter().format(record))
        assert payload["exception"]["type"] == "ValueError"
        assert payload["exception"]["message"] == "bad row"


class TestLoggers:
    def test_get_logger_plain_and_with_context(self):
        assert isinstance(get_logger("roadmap.x"), logging.Logger)
        adapter = get_logger("roadmap.x", {"report": "overview"})
        assert isinstance(adapter, ContextLogger)
        _, kwargs = adapter.process("msg", {"extra": {"operation": "op"}})
        assert kwargs["extra"] == {"report": "overview", "operation": "op"}

    def test_setup_logging_replaces_root_handlers(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("debug", json_format=True)
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestLogTimer:
    def test_logs_success(self, caplog):
        logger = logging.getLogger("roadmap.timer")
        with caplog.at_level(logging.INFO, logger="roadmap.timer"):
            with LogTimer(logger, "overview_report") as timer:
                pass
        assert timer.duration_ms is not None
        assert caplog.records[-1].operation == "overview_report"
        assert "completed" in caplog.records[-1].getMessage()

    def test_logs_failure_and_reraises(self, caplog):
        logger = logging.getLogger("roadmap.timer")
        with caplog.at_level(logging.INFO, logger="roadmap.timer"):
            with pytest.raises(RuntimeError):
                with LogTimer(logger, "overdue_report"):
                    raise RuntimeError("db gone")
        assert caplog.records[-1].levelno == logging.WARNING
        assert "db gone" in caplog.records[-1].getMessage()

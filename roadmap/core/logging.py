"""
Logging setup for the Road Map API.

Console output only (gunicorn / container runtimes capture stdout).
Production uses one JSON object per line; development keeps the classic
`asctime - name - level - message` layout.

Usage:
    logger = get_logger(__name__)
    with LogTimer(logger, "throughput_report"):
        ...
"""
from __future__ import annotations

import json
import logging
import sys
import time
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

# Attributes copied from `extra=` into the JSON payload when present.
_CONTEXT_ATTRS = (
    "request_id",
    "endpoint",
    "method",
    "status_code",
    "duration_ms",
    "operation",
    "report",
    "error_code",
)


class JSONFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }
        for attr in _CONTEXT_ATTRS:
            if hasattr(record, attr):
                payload[attr] = getattr(record, attr)
        return json.dumps(payload, default=str)


class ContextLogger(logging.LoggerAdapter):
    """Adapter that merges a fixed context dict into every record's `extra`."""

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(level: str = "INFO", json_format: bool = False) -> logging.Logger:
    """Configure the root logger with a single stdout handler."""
    root = logging.getLogger()
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(numeric_level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    root.addHandler(handler)
    return root


def get_logger(name: str, context: Optional[dict[str, Any]] = None):
    logger = logging.getLogger(name)
    if context:
        return ContextLogger(logger, context)
    return logger


class LogTimer:
    """Context manager that logs how long a block took (and whether it failed)."""

    def __init__(self, logger, operation: str):
        self.logger = logger
        self.operation = operation
        self._start: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self) -> "LogTimer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration_ms = (time.perf_counter() - (self._start or 0.0)) * 1000
        extra = {"operation": self.operation, "duration_ms": round(self.duration_ms, 1)}
        if exc_type is not None:
            self.logger.warning(
                "%s failed after %.1fms: %s", self.operation, self.duration_ms, exc_val,
                extra=extra,
            )
        else:
            self.logger.info(
                "%s completed in %.1fms", self.operation, self.duration_ms, extra=extra
            )
        # Never swallow the exception.
        return False

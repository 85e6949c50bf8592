"""Structured JSON logging for the job engine.

Every line carries the logger name, level and a UTC timestamp. The request
trace id bound with :func:`bind_trace_id` is attached when present, and any
``extra`` fields passed to the logging call are copied in after the job
fields (``job_id``, ``mode``, ``job_status``) so transitions read the same
way in every log line.
"""
from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Tuple

_TRACE_ID = contextvars.ContextVar("trace_id", default=None)
_CONFIGURED = False

# Attributes every LogRecord has; anything else on a record came from ``extra``.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}
_JOB_FIELDS = ("job_id", "mode", "job_status")


def _record_extras(record: logging.LogRecord) -> Iterator[Tuple[str, Any]]:
    for key, value in vars(record).items():
        if key in _STANDARD_ATTRS or key.startswith("_"):
            continue
        yield key, value


class JsonFormatter(logging.Formatter):
    """One JSON object per record, job fields first."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        extras = dict(_record_extras(record))
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        trace_id = extras.pop("trace_id", None) or _TRACE_ID.get()
        if trace_id:
            entry["trace_id"] = trace_id
        for name in _JOB_FIELDS:
            if name in extras:
                entry[name] = extras.pop(name)
        for key, value in extras.items():
            entry.setdefault(key, value)
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def bind_trace_id(trace_id: str) -> None:
    _TRACE_ID.set(trace_id)


def clear_trace_id() -> None:
    _TRACE_ID.set(None)


def current_trace_id() -> str | None:
    return _TRACE_ID.get()


def log_transition(logger: logging.Logger, *, job_id: str, mode: str, status: str, **details: Any) -> None:
    logger.info(
        "job_transition",
        extra={"job_id": job_id, "mode": mode, "job_status": status, "details": details or None},
    )

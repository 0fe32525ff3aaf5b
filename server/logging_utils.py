# logging_utils.py
# Central structured logging for the flight tracker (Loki-friendly JSON lines)

import json
import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from contextvars import ContextVar

# Per-request correlation id (attached via middleware in api.py)
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
# Segment being worked on by a tracker task
_segment_id: ContextVar[Optional[str]] = ContextVar("segment_id", default=None)

SERVICE_NAME = os.getenv("SERVICE_NAME", "flighttracker")
ENV = os.getenv("APP_ENV", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Optional log file for Promtail/Loki; stdout only when unset
LOG_FILE = os.getenv("LOG_FILE")

# Built-in LogRecord fields that must never be overwritten
_RESERVED_LOG_FIELDS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}


class LokiJSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Each line carries ts/level/logger/service/env/message, the request id or
    segment id when one is bound, and every structured field passed through
    `log_event`.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "service": SERVICE_NAME,
            "env": ENV,
            "message": record.getMessage(),
        }

        rid = _request_id.get()
        if rid:
            payload["request_id"] = rid
        sid = _segment_id.get()
        if sid:
            payload["segment_id"] = sid

        for key, value in record.__dict__.items():
            if key.startswith("_") or key in payload or key in _RESERVED_LOG_FIELDS:
                continue
            payload[key] = value

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging() -> None:
    """
    Configure root logging once for the whole process.
    Output -> JSON to stdout, and to LOG_FILE when it is set.
    """
    root = logging.getLogger()

    if getattr(root, "_flighttracker_configured", False):
        return

    root.setLevel(LOG_LEVEL)
    formatter = LokiJSONFormatter()

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if LOG_FILE:
        try:
            log_dir = os.path.dirname(LOG_FILE)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(LOG_FILE)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as e:
            # Keep stdout logging only
            root.error(f"Failed to set up file logging: {e}")

    root._flighttracker_configured = True  # type: ignore[attr-defined]


def new_request_id() -> str:
    rid = uuid.uuid4().hex
    _request_id.set(rid)
    return rid


def set_segment_id(segment_id: Optional[str]) -> None:
    _segment_id.set(segment_id)


def log_event(
    logger: logging.Logger,
    event: str,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """
    Structured logging helper.

    Field names that collide with LogRecord built-ins are prefixed, e.g.
    filename -> field_filename.
    """
    safe_fields: Dict[str, Any] = {}

    for key, value in fields.items():
        if key in _RESERVED_LOG_FIELDS:
            safe_fields[f"field_{key}"] = value
        else:
            safe_fields[key] = value

    logger.log(level, event, extra={"event": event, **safe_fields})

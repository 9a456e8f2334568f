"""
Logging setup for Aiproval.

Every record leaving the root handler carries the request id, organization
and user of the request that produced it, so a single approval decision
can be followed across services. Production emits one JSON object per
line; development and tests get a short colored line.

LOG_LEVEL overrides the default level (INFO in production, DEBUG otherwise).
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Record attributes worth shipping; most arrive through ``extra={...}``
CONTEXT_FIELDS = (
    "request_id",
    "org_id",
    "user_id",
    "project_id",
    "mockup_id",
    "share_link_id",
    "event_type",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
)

# Shown inline by the readable formatter, in this order
_INLINE_FIELDS = ("request_id", "org_id", "mockup_id", "share_link_id")

_NOISY_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine", "openai", "httpx")


class RequestContextFilter(logging.Filter):
    """Stamp request_id / org_id / user_id from ``flask.g`` when not given explicitly."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        defaults = {
            "request_id": g.get("request_id"),
            "org_id": g.get("jwt_org_id"),
            "user_id": g.get("jwt_user_id"),
        }
        for key, value in defaults.items():
            if value is not None and getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


def _context(record: logging.LogRecord, fields) -> dict:
    return {key: getattr(record, key) for key in fields if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "at": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(_context(record, CONTEXT_FIELDS))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``12:04:31 INFO  aiproval.services.share_service: msg  (request_id=ab12 org_id=3)``"""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<7}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"
        when = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{when} {level} {record.name}: {record.getMessage()}"

        context = _context(record, _INLINE_FIELDS)
        if context:
            line += "  (" + " ".join(f"{k}={v}" for k, v in context.items()) + ")"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" [{duration:.0f}ms]"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install the single root handler for ``app``; safe to call once per app created."""
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if production else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    stream = sys.stderr
    if production:
        formatter = JSONFormatter()
    else:
        formatter = ReadableFormatter(use_color=stream.isatty())

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    # The test suite builds apps repeatedly; keep exactly one handler.
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging ready (level=%s, %s)", level_name,
                        "json" if production else "readable")

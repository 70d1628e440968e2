"""
Structured JSON logging for the attendance backend.

Every log line is one JSON object on stdout with a channel (http, db,
weeks, auth), the request id of the HTTP request that produced it, a
business context (student_id, week, actor) and free-form extra metadata.
"""

import logging
import json
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

from attendance.config import LOG_LEVEL

# Request id of the request currently being handled. Set by the
# middleware in main.py and read by the formatter for every entry.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

CHANNELS = ["http", "db", "weeks", "auth"]


class StructuredJsonFormatter(logging.Formatter):
    """
    Render a LogRecord as a single JSON object.

    Keys: timestamp (UTC, millisecond precision), level, message, channel,
    context (always includes request_id) and extra.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", record.name.split(".")[-1] if "." in record.name else "app"),
            "context": {
                "request_id": request_id_var.get(""),
                **(getattr(record, "context", {}) or {})
            },
            "extra": getattr(record, "extra_data", {}) or {}
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging():
    """
    Install the JSON formatter on the root logger and set the level of
    every channel logger from LOG_LEVEL.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    level = getattr(logging, LOG_LEVEL, logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logging.getLogger(f"attendance.{channel}").setLevel(level)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Return the logger for a channel (http, db, weeks, auth)."""
    return logging.getLogger(f"attendance.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None,
                     exc_info: bool = False):
    """
    Emit a structured log entry.

    Args:
        logger: Channel logger from get_logger()
        level: Level name (DEBUG, INFO, WARNING, ERROR)
        message: Human-readable message
        context: Business context (student_id, week, actor)
        extra_data: Additional metadata (duration_ms, attempt, ip)
        exc_info: Attach the active exception traceback
    """
    logger.log(
        getattr(logging, level.upper(), logging.INFO),
        message,
        exc_info=exc_info,
        extra={"context": context or {}, "extra_data": extra_data or {}, "channel": logger.name.split(".")[-1]}
    )


def generate_request_id() -> str:
    """Generate a new UUID for request tracking."""
    return str(uuid.uuid4())

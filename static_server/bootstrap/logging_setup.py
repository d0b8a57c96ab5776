"""Diagnostic logging configuration for the static server.

Access lines (the per-request console and ``server.log`` output) are handled
separately by :mod:`static_server.access`; this module only wires up the
``static_server`` logger hierarchy used for operational events, which is
always written as one JSON object per line.
"""

import json
import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from static_server.domain.correlation_id import CorrelationLoggerAdapter

LOGGER_NAME = "static_server"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DIAGNOSTIC_FILE_MAX_BYTES = 10 * 1024 * 1024
DIAGNOSTIC_FILE_BACKUPS = 5
REDACTED = "[REDACTED]"

SENSITIVE_PATTERNS = [
    re.compile(r"(?i)(authorization|token|key|signature|password|secret)"),
    re.compile(r"\b[A-Fa-f0-9]{32,}\b"),
    re.compile(r"(?i)rediss?://[^@\s]*:[^@\s]+@"),
]

# Record attributes copied into the JSON document, grouped by who sets them.
DIAGNOSTIC_FIELDS = frozenset(
    {
        # transport and routing
        "client", "route", "method", "status_code", "path", "limit",
        # counter
        "page",
        # access log rotation
        "rotated_to", "rotation_index",
        # failures
        "error_type", "error",
        # startup, shutdown and configuration
        "host", "port", "directory", "log_directory", "log_destination",
        "log_level", "socket_timeout", "shutdown_grace_seconds",
        "grace_seconds", "remaining_workers", "signal",
    }
)

STREAM_DESTINATIONS = {
    "stdout": lambda: sys.stdout,
    "stderr": lambda: sys.stderr,
}


def redact_sensitive(value: str) -> str:
    """Replace the whole value when any part of it looks like a credential."""
    if value and any(pattern.search(value) for pattern in SENSITIVE_PATTERNS):
        return REDACTED
    return value


class CorrelationIdFilter(logging.Filter):  # pylint: disable=too-few-public-methods
    """Give records logged outside an adapter a ``-`` correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True


class JsonFormatter(logging.Formatter):
    """Render diagnostic records as sorted-key JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        document: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "component": getattr(record, "component", "unknown"),
            "correlation_id": getattr(record, "correlation_id", "-"),
            "message": record.getMessage(),
        }
        event = getattr(record, "event", None)
        if event is not None:
            document["event"] = event

        attributes = vars(record)
        for field in DIAGNOSTIC_FIELDS.intersection(attributes):
            value = attributes[field]
            document[field] = redact_sensitive(value) if isinstance(value, str) else value

        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)
        return json.dumps(document, sort_keys=True, default=str)


def _resolve_level(level_name: str) -> int:
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def _open_destination(destination: str) -> logging.Handler:
    """A stream handler for stdout/stderr, otherwise a size-rotated file."""
    stream_factory = STREAM_DESTINATIONS.get(destination.lower())
    if stream_factory is not None:
        return logging.StreamHandler(stream_factory())

    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=DIAGNOSTIC_FILE_MAX_BYTES,
        backupCount=DIAGNOSTIC_FILE_BACKUPS,
        encoding="utf-8",
    )


def configure_logging(
    level: str = "INFO", destination: str = "stderr"
) -> CorrelationLoggerAdapter:
    """Point the ``static_server`` logger at ``destination`` and return an adapter.

    Calling it again replaces the previous handler.
    """
    logger = logging.getLogger(LOGGER_NAME)
    numeric_level = _resolve_level(level)
    logger.setLevel(numeric_level)
    logger.propagate = False

    for previous in list(logger.handlers):
        logger.removeHandler(previous)
        previous.close()

    handler = _open_destination(destination)
    handler.setLevel(numeric_level)
    handler.setFormatter(JsonFormatter(datefmt=DATE_FORMAT))
    handler.addFilter(CorrelationIdFilter())
    logger.addHandler(handler)

    adapter = CorrelationLoggerAdapter(logger, {})
    adapter.info(
        "Logging configured",
        extra={
            "event": "logging_configured",
            "log_destination": destination,
            "log_level": logging.getLevelName(numeric_level),
        },
    )
    return adapter

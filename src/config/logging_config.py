"""
Logging setup for the platform servers.

Two output formats share the same fields:
- JSON lines (``APP_LOG_JSON=true``) for log aggregation
- a colored single line for local development

Both attach the request id and the authenticated user id from the context
variables below, plus any ``extra={...}`` fields passed by the caller, e.g.
the auth error handler's ``error_code``, ``status_code``, ``path`` and
``method``.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Set per request by the app middleware and the authentication dependency
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Correlation ids and caller-supplied extra fields of a record."""
    context: Dict[str, Any] = {}

    request_id = request_id_var.get()
    if request_id:
        context["request_id"] = request_id

    user_id = user_id_var.get()
    if user_id:
        context["user_id"] = user_id

    for name, value in record.__dict__.items():
        if name not in _RECORD_ATTRIBUTES and not name.startswith("_"):
            context[name] = value

    return context


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_context(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored level, logger name, message, then ``key=value`` context."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S.%f')[:-3]
        level = f"{color}{record.levelname:8s}{self.RESET}"
        line = f"{timestamp} {level} [{record.name}] {record.getMessage()}"

        context = record_context(record)
        if context:
            line += " | " + " ".join(f"{key}={value}" for key, value in context.items())

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Replace the root handlers with one stdout handler in the chosen format."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else ReadableFormatter())
    root_logger.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

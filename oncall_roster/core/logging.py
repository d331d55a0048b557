# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Structured JSON logging: one JSON object per line on stdout.

The current request id lives in a context variable set by the request-id
middleware, so every record logged while serving a request carries it
without threading it through ``extra``.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from oncall_roster.core.config import settings

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# ``extra=`` keys copied onto the JSON line when present.
CONTEXT_FIELDS: tuple[str, ...] = (
    "request_id",
    "roster_id",
    "tenant",
    "week_start",
    "override_id",
    "task",
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": settings.SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = request_id_var.get()
        if request_id is not None:
            entry["request_id"] = request_id
        entry.update(
            (key, str(getattr(record, key))) for key in CONTEXT_FIELDS if hasattr(record, key)
        )
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["error"] = str(exc)
            entry["error_type"] = type(exc).__name__
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(JSONFormatter())


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger writing JSON lines to stdout; configured once per name."""
    logger = logging.getLogger(name or settings.SERVICE_NAME)
    if _handler not in logger.handlers:
        logger.addHandler(_handler)
        logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
        logger.propagate = False
    return logger

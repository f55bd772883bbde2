"""
storefront/core/logging.py

Purpose: Logging configuration

- JSON logs in production, coloured single-line logs in development
- Per-request context (request id, customer email, order number, payment
  intent) stamped onto every record emitted while it is active
- Context lives in a ContextVar, so concurrent requests never see each
  other's fields
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from storefront.core.config import settings


CONTEXT_FIELDS = ("request_id", "email", "order_number", "payment_intent")

_log_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar("log_context", default={})

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_RESET = "\033[0m"

_NOISY_LOGGERS = ("httpx", "motor", "pymongo", "stripe", "uvicorn.access")


def _context_of(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) is not None
    }


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line for log shippers.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            **_context_of(record),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        color = _LEVEL_COLORS.get(record.levelname, _RESET)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{clock} {record.levelname:<8}{_RESET} {record.name}: {record.getMessage()}"

        context = _context_of(record)
        if context:
            line += " (" + " ".join(f"{key}={value}" for key, value in context.items()) + ")"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


class ContextFilter(logging.Filter):
    """Copies the active LogContext fields onto records; explicit `extra` wins."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def setup_logging() -> logging.Logger:
    """
    Configures the root logger once at import of the application.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if settings.is_production else DevelopmentFormatter())
    handler.addFilter(ContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("storefront")
    logger.info(f"Logging configured (environment={settings.ENVIRONMENT}, level={settings.LOG_LEVEL})")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Logger under the `storefront` namespace; accepts `__name__` of any module.
    """
    if name == "storefront" or name.startswith("storefront."):
        return logging.getLogger(name)
    return logging.getLogger(f"storefront.{name}")


class LogContext:
    """
    Adds fields to every log record emitted inside the block.

    Usage:
        with LogContext(email="a@b.com", order_number="ORD-1"):
            logger.info("Listing orders")
    """

    def __init__(self, **fields):
        self.fields = fields
        self._token = None

    def __enter__(self):
        self._token = _log_context.set({**_log_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)

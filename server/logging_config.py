"""
Logging setup for the Big Two server.

Production writes one JSON object per line; development writes coloured,
human-readable lines. Either way every record is tagged with the connection
and username of the WebSocket message being handled, taken from context
variables that main.py sets per message or from `extra` passed through a
ContextLogger.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

connection_id_var: ContextVar[Optional[str]] = ContextVar("connection_id", default=None)
username_var: ContextVar[Optional[str]] = ContextVar("username", default=None)

# Libraries that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "uvicorn.error", "websockets", "asyncio")


def record_context(record: logging.LogRecord) -> dict[str, str]:
    """Connection and username for a record, context vars first."""
    context = {}
    connection_id = connection_id_var.get() or getattr(record, "connection_id", None)
    if connection_id:
        context["connection_id"] = connection_id
    username = username_var.get() or getattr(record, "username", None)
    if username:
        context["username"] = username
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.levelno >= logging.ERROR:
            log_data["source"] = f"{record.pathname}:{record.lineno}"
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Coloured single-line records with a short connection id."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        context = record_context(record)
        tags = []
        if "connection_id" in context:
            tags.append(f"conn={context['connection_id'][:8]}")
        if "username" in context:
            tags.append(f"user={context['username']}")
        suffix = f" [{', '.join(tags)}]" if tags else ""

        output = f"{timestamp} {color}{record.levelname:8}{reset} {record.name}{suffix} - {record.getMessage()}"
        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)
        return output


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """
    Install the root handler.

    Args:
        level: Log level name; unknown names fall back to INFO.
        environment: "production" selects JSON output.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if environment == "production" else DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level}, environment={environment}")


class ContextLogger(logging.LoggerAdapter):
    """
    Logger that stamps connection_id/username onto records explicitly.

    Used where no message is being handled, so the context vars are unset
    (connect and disconnect in main.py).
    """

    def __init__(self, logger: logging.Logger, extra: Optional[dict] = None):
        super().__init__(logger, extra or {})

    def with_context(self, **kwargs) -> "ContextLogger":
        return ContextLogger(self.logger, {**self.extra, **kwargs})

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    return ContextLogger(logging.getLogger(name))

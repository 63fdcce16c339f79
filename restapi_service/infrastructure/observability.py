"""Structured Logging — JSON and colored console formatters for the service logger.

Invariants:
    - All records go through the "restapi_service" package logger (module loggers
      are its children via logging.getLogger(__name__))
    - setup_logging() is idempotent: one handler per package logger, ever
    - Extra fields (request_id, method, path, status_code, error_code) surfaced when present
    - Logging is observational only — never raises into request handling

Design Decisions:
    - Handler on the package logger, not on root: a library must not reconfigure
      the host application's logging tree
    - Console colors keyed on status code (2xx green, else red) and REQUEST lines
      yellow, same palette as the verbose console output of earlier releases
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum

PACKAGE_LOGGER = "restapi_service"

EXTRA_FIELDS = (
    "request_id", "method", "path", "status_code",
    "error_code", "route_index", "protocol", "port",
)


class ConsoleColor(str, Enum):
    """ANSI color codes for the text formatter."""
    GREEN = "\x1b[32m"
    RED = "\x1b[31m"
    YELLOW = "\x1b[33m"
    RESET = "\x1b[0m"


def color_for(record: logging.LogRecord) -> ConsoleColor | None:
    status_code = record.__dict__.get("status_code")
    if status_code is not None:
        return ConsoleColor.GREEN if status_code < 300 else ConsoleColor.RED
    if record.levelno >= logging.ERROR:
        return ConsoleColor.RED
    if record.__dict__.get("method") is not None:
        return ConsoleColor.YELLOW
    return None


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable, colored by outcome."""

    def __init__(self, use_color: bool = True):
        super().__init__("%(asctime)s %(levelname)s %(name)s — %(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = color_for(record) if self.use_color else None
        if color is None:
            return line
        return f"{color.value}{line}{ConsoleColor.RESET.value}"


def setup_logging(
    level: str = "INFO", fmt: str = "text", logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """Attach one stream handler to the package logger."""
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if any(getattr(h, "_restapi_service", False) for h in logger.handlers):
        return logger

    handler = logging.StreamHandler()
    handler._restapi_service = True
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())
    logger.addHandler(handler)
    return logger

"""
ucp_core/logs.py — Structured JSON logging for UCP tools.

Library modules only call logging.getLogger(__name__); handlers are
installed by the application (the CLI, or a host service) through
setup_logging().
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Iterable, TextIO

VALID_LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

DEFAULT_LOGGERS = ("ucp_core", "ucp_authorizer")

# LogRecord attributes that are not user-supplied `extra` fields
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        }
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    logger_names: Iterable[str] = DEFAULT_LOGGERS,
    stream: TextIO | None = None,
) -> list[logging.Logger]:
    """Install a JSON stream handler on the UCP loggers.

    Raises:
        ValueError: If level is not a valid log level
    """
    level_upper = level.upper()
    if level_upper not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of {sorted(VALID_LOG_LEVELS)}")
    numeric_level = getattr(logging, level_upper)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter())

    loggers = []
    for name in logger_names:
        logger = logging.getLogger(name)
        logger.setLevel(numeric_level)
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.propagate = False
        loggers.append(logger)
    return loggers

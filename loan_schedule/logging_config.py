"""Logging configuration for the loan schedule.

Module loggers are children of ``loan_schedule`` (and ``loan_schedule_web``
for the web layer). :func:`setup_logging` attaches one console handler to
those parents, either with a plain text format or with structured JSON
records.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Iterable

LOGGER_NAMES = ("loan_schedule", "loan_schedule_web")
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "loan_id": getattr(record, "loan_id", None),
            "action": getattr(record, "action", None),
        }
        log_entry = {k: v for k, v in log_entry.items() if v is not None}
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", fmt: str = "text", logger_names: Iterable[str] = LOGGER_NAMES) -> None:
    """Configure the package loggers.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fmt: ``"text"`` or ``"json"``
        logger_names: Parent loggers to configure
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")
    if fmt not in ("text", "json"):
        raise ValueError(f"Log format must be 'text' or 'json'; got {fmt}")

    for name in logger_names:
        logger = logging.getLogger(name)
        # Remove existing handlers to avoid duplicates
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(numeric_level)
        logger.propagate = False

"""
Logging setup for the store CLI and desktop window.

Console output is colored on a TTY; the optional log file rotates and can
be written as one JSON object per line.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(filename)s:%(lineno)d] %(message)s"

# Chatty third-party loggers held at WARNING
QUIET_LOGGERS = ("urllib3", "requests", "asyncio")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including any LogContext data."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra_data"):
            entry["data"] = record.extra_data
        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        plain = record.levelname
        record.levelname = f"{self.COLORS.get(record.levelno, '')}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # The file handler formats the same record
            record.levelname = plain


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    formatter_cls = ColoredFormatter if sys.stderr.isatty() else logging.Formatter
    handler.setFormatter(formatter_cls(CONSOLE_FORMAT))
    return handler


def _file_handler(log_file: Path, json_logs: bool) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(JSONFormatter() if json_logs else logging.Formatter(FILE_FORMAT))
    return handler


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    json_logs: bool = False,
):
    """
    Replace the root handlers with a console handler and an optional file.

    Args:
        level: Root and console level
        log_file: Rotating log file (5MB, 3 backups), or None
        json_logs: Write the file as JSON lines
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    root.addHandler(_console_handler(level))
    if log_file:
        root.addHandler(_file_handler(log_file, json_logs))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """
    Attach key-value context to every record created inside the block.

    Example:
        with LogContext(command="enable", app_id="weather_bot"):
            logger.info("Enabling app")
    """

    def __init__(self, **context):
        self.context = context
        self._previous = None

    def __enter__(self):
        self._previous = previous = logging.getLogRecordFactory()
        context = self.context

        def factory(*args, **kwargs):
            record = previous(*args, **kwargs)
            record.extra_data = context
            return record

        logging.setLogRecordFactory(factory)
        return self

    def __exit__(self, *exc):
        logging.setLogRecordFactory(self._previous)

"""
Logging Configuration — Root logger setup for the CLI.

Two output styles:

- ``text``: one short line per record, colored on a terminal, with the
  repo a record belongs to shown in parentheses
- ``json``: one JSON object per record, for CI log collectors

``LOG_LEVEL`` and ``LOG_FORMAT`` choose the defaults; ``--verbose`` forces
DEBUG. Records go to stderr; stdout carries the run summary only.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

# Attributes stages attach through ``extra={...}``
CONTEXT_FIELDS = ("run_id", "repo", "stage", "task_href")

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"

NOISY_LOGGERS = ("httpx", "httpcore")


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)}


class JSONFormatter(logging.Formatter):
    """``{"ts", "level", "logger", "message"}`` plus any context fields present."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class HumanFormatter(logging.Formatter):
    """
    ``HH:MM:SS LEVEL   [module         ] (repo) message``

    The level is colored only when stderr is a terminal.
    """

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:7}"
        if sys.stderr.isatty():
            level = f"{LEVEL_COLORS.get(record.levelname, '')}{level}{RESET}"

        module = record.name.rsplit(".", 1)[-1][:15]
        message = record.getMessage()
        repo = getattr(record, "repo", None)
        if repo:
            message = f"({repo}) {message}"

        line = f"{datetime.now():%H:%M:%S} {level} [{module:15}] {message}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: Optional[str] = None,
    format_type: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Replace the root logger's handlers with one stream handler.

    Args:
        level: DEBUG, INFO, WARNING or ERROR; falls back to LOG_LEVEL, then INFO
        format_type: ``json`` or ``text``; falls back to LOG_FORMAT, then text
        stream: Where records go (stderr by default)
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    log_format = (format_type or os.environ.get("LOG_FORMAT", "text")).lower()
    numeric_level = getattr(logging, log_level, logging.INFO)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if log_format == "json" else HumanFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging configured: level={log_level}, format={log_format}")

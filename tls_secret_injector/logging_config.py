"""
Logging Configuration — Structured logging setup.

Provides consistent logging across all modules with:
- JSON output for log shippers
- Human-readable output for terminals
- Level names in the logrus spelling operators already use

## Levels

trace, debug, info, warning (or warn), error, fatal, panic.
``trace`` maps to a level below DEBUG; ``fatal`` and ``panic`` map to
CRITICAL.

## Usage

    from tls_secret_injector.logging_config import setup_logging

    setup_logging("info", "json")  # Call once at startup
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LEVELS: Dict[str, int] = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}

FORMATS = ("text", "json")

# Extra record attributes copied into JSON output
_EXTRA_FIELDS = ("namespace", "name", "kind", "controller", "request_id")


def resolve_level(name: str) -> int:
    """Map a level name to its numeric value. Raises ValueError if unknown."""
    try:
        return LEVELS[name.strip().lower()]
    except KeyError:
        raise ValueError(
            f"not a valid log level: {name!r} (expected one of {', '.join(LEVELS)})"
        ) from None


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Output format:
    {"ts": "...", "level": "...", "logger": "...", "message": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        for attr in _EXTRA_FIELDS:
            if hasattr(record, attr):
                log_entry[attr] = getattr(record, attr)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class HumanFormatter(logging.Formatter):
    """
    Human-readable log formatter.

    Output format:
    12:34:56 INFO    [replication    ] Message
    """

    COLORS = {
        "TRACE": "\033[37m",    # White
        "DEBUG": "\033[36m",    # Cyan
        "INFO": "\033[32m",     # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",    # Red
        "CRITICAL": "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = False):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.now().strftime("%H:%M:%S")

        level = record.levelname
        if self.color:
            color = self.COLORS.get(level, "")
            level = f"{color}{level:8}{self.RESET}"
        else:
            level = f"{level:8}"

        module = record.name.split(".")[-1][:15]
        msg = record.getMessage()
        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"

        return f"{time_str} {level} [{module:15}] {msg}"


def setup_logging(level: str = "warning", format_type: str = "text") -> None:
    """
    Configure logging for the application.

    Args:
        level: Level name, see LEVELS
        format_type: Output format (json, text)

    Raises:
        ValueError: level or format_type is not recognized
    """
    numeric_level = resolve_level(level)
    log_format = format_type.strip().lower()
    if log_format not in FORMATS:
        raise ValueError(f"not a valid log format: {format_type!r} (expected text or json)")

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = HumanFormatter(color=sys.stdout.isatty())

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(numeric_level)
    root.addHandler(handler)

    # Suppress noisy loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(max(numeric_level, logging.WARNING))

    logging.getLogger(__name__).debug(
        f"Logging configured: level={level}, format={log_format}"
    )

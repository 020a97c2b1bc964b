# src/logging/logger.py — v2
"""Logger factory with JSON and text formatters.

Both formatters stamp each record with the scan context active when it was
emitted: the document being scanned, the scan id shared by every fetch of
one pass, and the URL of the fetch task doing the logging.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from shalens.logging.context import LogContext, get_context
from shalens.logging.handlers import create_console_handler, create_rotating_handler

_NOISY_LIBRARIES = ("httpx", "httpcore")


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; scan context keys sit at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            **get_context().as_dict(),
            "message": record.getMessage(),
        }
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Terminal format: ``time [LEVEL] logger [doc#scan] (url) - message``."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            _timestamp(record).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
        ]
        scope = _scope(get_context())
        if scope:
            parts.append(scope)
        parts.append(f"- {record.getMessage()}")
        line = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _scope(ctx: LogContext) -> str:
    """``[foo.rb#1a2b3c4d] (https://...)``, dropping whatever is unset."""
    pieces = []
    if ctx.document or ctx.scan_id:
        label = ctx.document or ""
        if ctx.scan_id:
            label += f"#{ctx.scan_id}"
        pieces.append(f"[{label}]")
    if ctx.url:
        pieces.append(f"({ctx.url})")
    return " ".join(pieces)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Configuration is applied by setup_logging()."""
    return logging.getLogger(f"shalens.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """Configure the ``shalens`` logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ("json" or "text").
        log_file: Path to log file (None = stderr only).
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    root_logger = logging.getLogger("shalens")
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    formatter = JsonFormatter() if log_format == "json" else TextFormatter()
    handlers: list[logging.Handler] = [create_console_handler()]
    if log_file:
        handlers.append(
            create_rotating_handler(log_file, rotation=rotation, retention=retention)
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # Quiet per-request logs from the HTTP stack
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

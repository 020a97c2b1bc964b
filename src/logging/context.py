# src/logging/context.py — v1
"""Contextual logging support: attach document, scan_id and url to log records.

Context variables are copied into every asyncio task at creation, so each
fetch task logs its own URL while sharing the scan's document and scan_id.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_document: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "document", default=None
)
_scan_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "scan_id", default=None
)
_url: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "url", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    document: str | None = None
    scan_id: str | None = None
    url: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        document=_document.get(),
        scan_id=_scan_id.get(),
        url=_url.get(),
    )


def set_scan_context(scan_id: str, document: str | None = None) -> None:
    """Set scan-level context (called once per scan pass)."""
    _scan_id.set(scan_id)
    _document.set(document)


def set_fetch_context(url: str) -> None:
    """Set fetch-level context (called inside each fetch task)."""
    _url.set(url)


def clear_context() -> None:
    """Reset all context variables."""
    _document.set(None)
    _scan_id.set(None)
    _url.set(None)

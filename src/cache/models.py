# src/cache/models.py — v2
"""Cache domain model: CacheEntry."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CacheEntry(BaseModel):
    """Last computed digest for one URL.

    The URL is matched exactly (case-sensitive, no normalization).
    """

    model_config = ConfigDict(frozen=True)

    url: str
    digest: str
    computed_at: datetime

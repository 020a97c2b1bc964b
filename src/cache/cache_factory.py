# src/cache/cache_factory.py — v3
"""Factory for checksum cache instantiation."""

from __future__ import annotations

from shalens.cache.checksum_cache import ChecksumCache
from shalens.config.settings import Settings


def create_checksum_cache(settings: Settings | None = None) -> ChecksumCache:
    """Instantiate a fresh cache for one host session.

    Args:
        settings: Application settings. Defaults to no TTL.

    Returns:
        Empty ChecksumCache, with a TTL when ``cache_ttl_seconds`` is set.
    """
    ttl = None if settings is None else settings.cache_ttl_seconds
    return ChecksumCache(ttl_seconds=ttl)

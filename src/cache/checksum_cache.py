# src/cache/checksum_cache.py — v1
"""In-memory URL -> digest store shared by every scan.

One instance lives for the host session and is passed to the components
that need it. Every successful ``set`` notifies registered listeners so
views derived from the cache can refresh without re-scanning.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

from shalens.cache.models import CacheEntry

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChecksumCache:
    """Thread-safe map from URL to the last successfully computed digest.

    Entries are never evicted unless ``ttl_seconds`` is given, in which case
    an entry older than the TTL reads as absent. Expired entries stay in the
    map until overwritten.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._listeners: list[ChangeListener] = []
        self._lock = threading.Lock()
        self._ttl = timedelta(seconds=ttl_seconds) if ttl_seconds else None
        self._clock = clock

    def get(self, url: str) -> str | None:
        """Return the cached digest for ``url``, or None."""
        entry = self.entry(url)
        return entry.digest if entry is not None else None

    def has(self, url: str) -> bool:
        return self.entry(url) is not None

    def entry(self, url: str) -> CacheEntry | None:
        """Return the full entry (digest + timestamp) for ``url``, or None."""
        with self._lock:
            entry = self._entries.get(url)
        if entry is None or self._is_expired(entry):
            return None
        return entry

    def set(self, url: str, digest: str) -> CacheEntry:
        """Store ``digest`` for ``url`` (last write wins) and notify listeners."""
        entry = CacheEntry(url=url, digest=digest, computed_at=self._clock())
        with self._lock:
            self._entries[url] = entry
            listeners = list(self._listeners)
        logger.debug("Cached %s -> %s", url, digest)
        self._notify(listeners)
        return entry

    def entries(self) -> list[CacheEntry]:
        """Snapshot of all live entries."""
        with self._lock:
            entries = list(self._entries.values())
        return [e for e in entries if not self._is_expired(e)]

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a no-argument change listener.

        Returns:
            A callable that removes the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.has(url)

    def __len__(self) -> int:
        return len(self.entries())

    def _is_expired(self, entry: CacheEntry) -> bool:
        if self._ttl is None:
            return False
        return self._clock() - entry.computed_at > self._ttl

    @staticmethod
    def _notify(listeners: list[ChangeListener]) -> None:
        # Listeners run outside the lock; a failing one must not stop the rest.
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Checksum cache listener %r failed", listener)

# src/checksum/hasher.py — v1
"""Streaming sha256 of remote resources over httpx.

The body is fed into the hash chunk by chunk and never held in memory.
Cancellation is cooperative: the token is checked before the request and
on every chunk, and a cancelled transfer is closed immediately. No retries.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Callable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536


class HashComputeError(Exception):
    """Base class for failures computing the digest of one URL."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)


class FetchError(HashComputeError):
    """The server answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(url, f"Failed to fetch {url}: status {status_code}")


class TransportError(HashComputeError):
    """DNS, TLS, connection or mid-stream network failure."""

    def __init__(self, url: str, cause: Exception) -> None:
        self.cause = cause
        detail = str(cause) or type(cause).__name__
        super().__init__(url, f"Failed to fetch {url}: {detail}")


class Cancelled(HashComputeError):
    """The transfer was aborted because its cancellation token fired."""

    def __init__(self, url: str) -> None:
        super().__init__(url, f"Fetch of {url} cancelled")


class CancellationToken:
    """One-shot cancellation flag shared by every fetch of a batch.

    Callbacks registered with ``add_callback`` run once, on the first
    ``cancel()``; a callback added after cancellation runs immediately.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancellation. Returns a function that unregisters it."""
        if self._cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove


class HashComputer:
    """Computes lowercase hex sha256 digests of URLs.

    Args:
        client: Shared async client. When omitted one is created and owned
            by this instance (closed by ``aclose``).
        chunk_size: Bytes per body chunk; also the cancellation granularity.
        timeout_s: Optional timeout for the owned client. None disables it.
        follow_redirects: Follow redirects on the owned client.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout_s: float | None = None,
        follow_redirects: bool = True,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s),
            follow_redirects=follow_redirects,
        )
        self._chunk_size = chunk_size

    async def compute(
        self, url: str, cancel_token: CancellationToken | None = None
    ) -> str:
        """Download ``url`` and return its sha256 hex digest.

        Raises:
            FetchError: Non-2xx response status.
            TransportError: Network failure before or during the transfer.
            Cancelled: ``cancel_token`` fired before or during the transfer.
        """
        if cancel_token is not None and cancel_token.is_cancelled:
            raise Cancelled(url)

        digest = hashlib.sha256()
        size = 0
        try:
            async with self._client.stream("GET", url) as response:
                if not response.is_success:
                    # Leaving the block releases the connection unread.
                    raise FetchError(url, response.status_code)
                async for chunk in response.aiter_bytes(self._chunk_size):
                    if cancel_token is not None and cancel_token.is_cancelled:
                        raise Cancelled(url)
                    digest.update(chunk)
                    size += len(chunk)
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise TransportError(url, exc) from exc

        hexdigest = digest.hexdigest()
        logger.debug("Hashed %s (%d bytes): %s", url, size, hexdigest)
        return hexdigest

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HashComputer:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

# src/checksum/orchestrator.py — v2
"""Full-document checksum scan.

Workflow per scan:
    1. Extract URL declarations.
    2. Fetch every distinct URL missing from the cache, concurrently, once.
    3. Wait for the whole batch; each success is cached, each failure is
       recorded and the rest carry on.
    4. Re-associate digests with URLs and diff them against the cache.

Fetches already in flight are shared between overlapping scans, and
concurrent scans of identical text share a single pass. Cancellation stays
per scan: a shared fetch is aborted only once every scan waiting on it has
cancelled, and a joined pass that lost URLs to another scan's cancellation
is run again under the joiner's own token.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
import uuid
from typing import Callable

from shalens.cache.checksum_cache import ChecksumCache
from shalens.checksum.associator import Associator
from shalens.checksum.findings import build_findings
from shalens.checksum.hasher import (
    CancellationToken,
    Cancelled,
    FetchError,
    HashComputeError,
    HashComputer,
)
from shalens.checksum.models import FetchFailure, Finding, ScanReport
from shalens.checksum.text_index import LineIndex
from shalens.logging.context import set_fetch_context, set_scan_context

logger = logging.getLogger(__name__)


def document_key(text: str) -> str:
    """SHA-256 of the text; identifies concurrent scans of the same content."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _cancelled(token: CancellationToken | None) -> bool:
    return token is not None and token.is_cancelled


class _SharedFetch:
    """One in-flight fetch and the scans waiting on it.

    The hasher gets ``token``, which fires once every attached scan has
    cancelled. A scan without a token never cancels.
    """

    def __init__(self) -> None:
        self.token = CancellationToken()
        self.task: asyncio.Task[str] | None = None
        self._live = 0
        self._unregister: list[Callable[[], None]] = []

    def attach(self, cancel_token: CancellationToken | None) -> None:
        self._live += 1
        if cancel_token is not None:
            self._unregister.append(cancel_token.add_callback(self._detach))

    def release(self) -> None:
        for unregister in self._unregister:
            unregister()
        self._unregister.clear()

    def _detach(self) -> None:
        self._live -= 1
        if self._live == 0:
            self.token.cancel()


class ScanOrchestrator:
    """Drives scans against one shared cache and hash computer."""

    def __init__(
        self,
        cache: ChecksumCache,
        hasher: HashComputer,
        associator: Associator | None = None,
    ) -> None:
        self._cache = cache
        self._hasher = hasher
        self._associator = associator or Associator()
        self._inflight: dict[str, _SharedFetch] = {}
        self._active_scans: dict[str, asyncio.Task[ScanReport]] = {}

    @property
    def associator(self) -> Associator:
        return self._associator

    async def scan(
        self,
        text: str,
        silent: bool = False,
        cancel_token: CancellationToken | None = None,
        document: str | None = None,
    ) -> list[Finding]:
        """Scan ``text`` and return its findings."""
        report = await self.run(text, silent=silent, cancel_token=cancel_token, document=document)
        return report.findings

    async def run(
        self,
        text: str,
        silent: bool = False,
        cancel_token: CancellationToken | None = None,
        document: str | None = None,
    ) -> ScanReport:
        """Scan ``text`` and return the full report.

        A scan already running for identical text is joined instead of
        started again. When that pass comes back with cancelled URLs while
        the joiner's own token is still live, the joiner scans again itself.
        Cancelling the awaiting coroutine never cancels a pass others share.
        """
        key = document_key(text)
        active = self._active_scans.get(key)
        if active is not None:
            logger.debug("Joining scan already in progress for %s", document or key[:12])
            report = await asyncio.shield(active)
            if not report.cancelled or _cancelled(cancel_token):
                return report
            logger.debug("Joined scan was cancelled, rescanning %s", document or key[:12])
            return await self._run(text, silent, cancel_token, document)

        task = asyncio.create_task(self._run(text, silent, cancel_token, document))
        self._active_scans[key] = task
        task.add_done_callback(lambda t: self._forget_scan(key, t))
        return await asyncio.shield(task)

    async def _run(
        self,
        text: str,
        silent: bool,
        cancel_token: CancellationToken | None,
        document: str | None,
    ) -> ScanReport:
        set_scan_context(uuid.uuid4().hex[:8], document)
        t0 = time.perf_counter()
        report = ScanReport(silent=silent)
        index = LineIndex(text)

        # --- Step 1-3: fetch what the cache lacks ---
        urls = list(dict.fromkeys(d.value for d in self._associator.extract_urls(text, index)))
        pending = [u for u in urls if not self._cache.has(u)]
        report.reused = [u for u in urls if u not in pending]

        if pending:
            tasks = [asyncio.shield(self._fetch_task(url, cancel_token)) for url in pending]
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for url, result in zip(pending, results):
                self._record(report, url, result)

        # --- Step 4: diff ---
        association = self._associator.associate(
            self._associator.extract_declarations(text, index)
        )
        report.findings = build_findings(text, association, self._cache, index)
        report.duration_seconds = round(time.perf_counter() - t0, 3)

        self._log_summary(report, len(pending))
        return report

    def _forget_scan(self, key: str, task: asyncio.Task[ScanReport]) -> None:
        if self._active_scans.get(key) is task:
            del self._active_scans[key]

    def _fetch_task(
        self, url: str, cancel_token: CancellationToken | None
    ) -> asyncio.Task[str]:
        shared = self._inflight.get(url)
        # A fetch whose waiters all cancelled is on its way out; start afresh.
        if shared is not None and not shared.token.is_cancelled:
            logger.debug("Reusing in-flight fetch for %s", url)
            shared.attach(cancel_token)
            return shared.task

        shared = _SharedFetch()
        shared.attach(cancel_token)
        shared.task = asyncio.create_task(self._fetch(url, shared.token))
        self._inflight[url] = shared
        shared.task.add_done_callback(lambda _t: self._forget_fetch(url, shared))
        return shared.task

    def _forget_fetch(self, url: str, shared: _SharedFetch) -> None:
        shared.release()
        if self._inflight.get(url) is shared:
            del self._inflight[url]

    async def _fetch(self, url: str, cancel_token: CancellationToken) -> str:
        set_fetch_context(url)
        digest = await self._hasher.compute(url, cancel_token)
        self._cache.set(url, digest)
        return digest

    @staticmethod
    def _record(report: ScanReport, url: str, result: object) -> None:
        if isinstance(result, (Cancelled, asyncio.CancelledError)):
            logger.debug("Fetch cancelled: %s", url)
            report.cancelled.append(url)
        elif isinstance(result, HashComputeError):
            logger.warning("%s", result)
            report.failures.append(
                FetchFailure(
                    url=url,
                    message=str(result),
                    status_code=result.status_code if isinstance(result, FetchError) else None,
                )
            )
        elif isinstance(result, BaseException):
            raise result
        else:
            report.fetched.append(url)

    @staticmethod
    def _log_summary(report: ScanReport, scheduled: int) -> None:
        level = logging.DEBUG if report.silent else logging.INFO
        if scheduled:
            logger.log(
                level,
                "Checked %d URL(s): %d fetched, %d failed, %d cancelled, %d finding(s)",
                scheduled, len(report.fetched), len(report.failures),
                len(report.cancelled), len(report.findings),
            )
        else:
            logger.log(
                level, "All URLs already cached, %d finding(s)", len(report.findings)
            )

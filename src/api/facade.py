# src/api/facade.py — v2
"""Public API facade: build the engine once, then check and fix texts.

Usage:
    from shalens.api.facade import check_text, create_engine
    async with create_engine() as engine:
        report = await check_text(text, engine)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from shalens.batch.models import FileReport
from shalens.cache.cache_factory import create_checksum_cache
from shalens.checksum.associator import Associator
from shalens.checksum.hasher import CancellationToken, HashComputer
from shalens.checksum.models import ScanReport, TextEdit
from shalens.checksum.orchestrator import ScanOrchestrator
from shalens.checksum.updater import UpdateApplier, apply_edits
from shalens.config.settings import Settings

if TYPE_CHECKING:
    import httpx

    from shalens.cache.checksum_cache import ChecksumCache

logger = logging.getLogger(__name__)


class ChecksumEngine:
    """Owns the session cache and the components wired around it."""

    def __init__(
        self,
        settings: Settings,
        cache: ChecksumCache,
        hasher: HashComputer,
        orchestrator: ScanOrchestrator,
        updater: UpdateApplier,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.hasher = hasher
        self.orchestrator = orchestrator
        self.updater = updater

    async def aclose(self) -> None:
        await self.hasher.aclose()

    async def __aenter__(self) -> ChecksumEngine:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def create_engine(
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    cache: ChecksumCache | None = None,
) -> ChecksumEngine:
    """Wire cache, hash computer, orchestrator and updater together.

    Args:
        settings: Global settings. Loaded from .env if None.
        client: HTTP client to share. The engine creates and owns one if None.
        cache: Existing session cache. A fresh one is created if None.

    Returns:
        Ready-to-use ChecksumEngine.
    """
    settings = settings or Settings()
    cache = cache if cache is not None else create_checksum_cache(settings)
    hasher = HashComputer(
        client=client,
        chunk_size=settings.fetch_chunk_size,
        timeout_s=settings.http_timeout_s,
        follow_redirects=settings.follow_redirects,
    )
    associator = Associator(
        window=settings.lookback_window, strict=settings.strict_digests
    )
    return ChecksumEngine(
        settings=settings,
        cache=cache,
        hasher=hasher,
        orchestrator=ScanOrchestrator(cache, hasher, associator),
        updater=UpdateApplier(cache, hasher),
    )


async def check_text(
    text: str,
    engine: ChecksumEngine,
    silent: bool = False,
    document: str | None = None,
    cancel_token: CancellationToken | None = None,
) -> ScanReport:
    """Run one scan pass over ``text``."""
    return await engine.orchestrator.run(
        text, silent=silent, cancel_token=cancel_token, document=document
    )


async def fix_text(
    text: str,
    engine: ChecksumEngine,
    report: ScanReport | None = None,
) -> tuple[str, list[TextEdit]]:
    """Apply every finding of ``report`` (scanning first if None).

    Returns:
        The updated text and the edits that produced it.
    """
    if report is None:
        report = await check_text(text, engine, silent=True)
    edits = [await engine.updater.edit_for(finding) for finding in report.findings]
    if not edits:
        return text, []
    return apply_edits(text, edits), edits


async def check_file(
    path: Path,
    engine: ChecksumEngine,
    fix: bool = False,
    silent: bool = False,
) -> FileReport:
    """Scan one file, optionally writing fixes back to it."""
    with path.open(encoding="utf-8", newline="") as fh:
        text = fh.read()
    report = await check_text(text, engine, silent=silent, document=path.name)
    result = FileReport(file_path=str(path), report=report)

    if fix and report.findings:
        new_text, edits = await fix_text(text, engine, report)
        with path.open("w", encoding="utf-8", newline="") as fh:
            fh.write(new_text)
        result.fixed = len(edits)
        logger.info("Updated %d checksum(s) in %s", len(edits), path)

    return result

# src/batch/scanner.py — v3
"""Batch scanner: find definition files under a directory and check them.

All files are checked concurrently against the engine's single cache, so a
URL shared by several files is downloaded once.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

from shalens.batch.models import BatchResult, DefinitionFile, FileReport
from shalens.checksum.hasher import HashComputeError

if TYPE_CHECKING:
    from shalens.api.facade import ChecksumEngine

logger = logging.getLogger(__name__)

DEFAULT_GLOBS: tuple[str, ...] = ("*.rb",)


class BatchScanner:
    """Discover definition files and run checksum scans over them.

    Workflow:
        1. List all files whose name matches one of the globs
        2. Scan every file concurrently with the shared engine
        3. Optionally write fixes back
        4. Return BatchResult with per-file reports and totals
    """

    def __init__(self, engine: ChecksumEngine) -> None:
        self._engine = engine

    def discover(
        self,
        scan_root: Path,
        recursive: bool = True,
        globs: list[str] | None = None,
    ) -> list[DefinitionFile]:
        """List definition files under ``scan_root``.

        Args:
            scan_root: Root directory to scan.
            recursive: If True, scan subdirectories recursively.
            globs: Filename patterns. Defaults to the engine settings.

        Returns:
            Matching files sorted by path.
        """
        if not scan_root.is_dir():
            msg = f"Scan root is not a directory: {scan_root}"
            raise ValueError(msg)

        patterns = globs or self._engine.settings.definition_globs_list or list(DEFAULT_GLOBS)
        pattern_fn = scan_root.rglob if recursive else scan_root.glob

        found: list[DefinitionFile] = []
        for path in sorted(pattern_fn("*")):
            if not path.is_file():
                continue
            if not any(fnmatch.fnmatch(path.name, p) for p in patterns):
                continue
            found.append(
                DefinitionFile(
                    file_path=str(path.resolve()),
                    filename=path.name,
                    size_bytes=path.stat().st_size,
                )
            )

        logger.info(
            "Scanned %s: found %d definition files (recursive=%s)",
            scan_root, len(found), recursive,
        )
        return found

    async def check_paths(
        self,
        paths: list[Path],
        fix: bool = False,
        silent: bool = True,
    ) -> list[FileReport]:
        """Check explicit files concurrently. A file that cannot be read is reported, not raised."""
        return list(
            await asyncio.gather(*(self._check_one(p, fix, silent) for p in paths))
        )

    async def scan_and_check(
        self,
        scan_root: Path,
        recursive: bool = True,
        fix: bool = False,
        globs: list[str] | None = None,
    ) -> BatchResult:
        """Full batch pass: discover -> check -> summarize."""
        t0 = time.perf_counter()
        files = self.discover(scan_root, recursive, globs)
        reports = await self.check_paths([Path(f.file_path) for f in files], fix=fix)
        return summarize(str(scan_root), reports, time.perf_counter() - t0)

    async def _check_one(self, path: Path, fix: bool, silent: bool) -> FileReport:
        from shalens.api.facade import check_file

        try:
            return await check_file(path, self._engine, fix=fix, silent=silent)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to check %s: %s", path, exc)
            return FileReport(file_path=str(path), error=str(exc))
        except HashComputeError as exc:
            # Fixing re-resolves digests, which refetches any that expired.
            logger.error("Failed to fix %s: %s", path, exc)
            return FileReport(file_path=str(path), error=str(exc))


def summarize(scan_root: str, reports: list[FileReport], duration: float) -> BatchResult:
    """Aggregate per-file reports into a BatchResult."""
    result = BatchResult(
        scan_root=scan_root,
        total_files_found=len(reports),
        files=reports,
        duration_seconds=round(duration, 2),
    )
    for file_report in reports:
        if file_report.error is not None:
            result.errors += 1
            continue
        if file_report.report is not None:
            result.findings += len(file_report.report.findings)
            result.fetch_failures += len(file_report.report.failures)
        result.fixed += file_report.fixed
    return result

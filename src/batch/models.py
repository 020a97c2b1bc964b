# src/batch/models.py — v2
"""Batch checking models: DefinitionFile, FileReport, BatchResult."""

from __future__ import annotations

from pydantic import BaseModel, Field

from shalens.checksum.models import ScanReport


class DefinitionFile(BaseModel):
    """A package definition file discovered under a scan root."""

    file_path: str
    filename: str
    size_bytes: int


class FileReport(BaseModel):
    """Outcome of checking one file."""

    file_path: str
    report: ScanReport | None = None
    fixed: int = 0
    error: str | None = None

    @property
    def remaining(self) -> int:
        """Findings still present in the file after any fixes."""
        if self.report is None:
            return 0
        return len(self.report.findings) - self.fixed


class BatchResult(BaseModel):
    """Summary of a batch check run."""

    scan_root: str
    total_files_found: int
    files: list[FileReport] = Field(default_factory=list)
    findings: int = 0
    fixed: int = 0
    fetch_failures: int = 0
    errors: int = 0
    duration_seconds: float = 0.0

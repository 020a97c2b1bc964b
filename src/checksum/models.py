# src/checksum/models.py — v1
"""Checksum engine models: declarations, associations, findings, scan reports.

Everything here is scan-scoped: built fresh on each pass and never stored.
Offsets are character offsets into the scanned text; lines and columns are
0-based.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field

DIGEST_HEX_LENGTH = 64
_HEX_DIGEST_RE = re.compile(rf"^[0-9a-fA-F]{{{DIGEST_HEX_LENGTH}}}$")


# === TEXT LOCATIONS ===


class TextRange(BaseModel):
    """Half-open character range ``[start, end)``."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


class InsertionPoint(BaseModel):
    """Where a new digest line goes: the start of the line after a URL."""

    offset: int
    line: int
    indent: str = ""
    needs_newline: bool = False


# === DECLARATIONS ===


class Declaration(BaseModel):
    """A keyword + quoted value occurrence (``url "..."`` or ``sha256 "..."``)."""

    kind: Literal["url", "digest"]
    value: str
    location: TextRange
    span: TextRange
    line: int
    column: int

    @property
    def is_well_formed(self) -> bool:
        """True for a 64-character hex digest; URLs are always well formed."""
        if self.kind == "url":
            return True
        return bool(_HEX_DIGEST_RE.match(self.value))


class Association(BaseModel):
    """A digest declaration paired with the nearest preceding URL line."""

    url: Declaration
    digest: Declaration


class AssociationResult(BaseModel):
    """Output of one association pass."""

    pairs: list[Association] = Field(default_factory=list)
    unpaired_urls: list[Declaration] = Field(default_factory=list)
    orphan_digests: list[Declaration] = Field(default_factory=list)


# === FINDINGS ===


class Finding(BaseModel):
    """A declared digest that disagrees with the cache, or a missing one."""

    kind: Literal["mismatch", "missing_digest"]
    url: str
    declared_digest: str | None = None
    expected_digest: str
    digest_range: TextRange | None = None
    insertion_point: InsertionPoint | None = None
    line: int
    column: int

    @property
    def message(self) -> str:
        if self.kind == "mismatch":
            return f"Checksum mismatch for {self.url}"
        return f"Missing checksum for {self.url}"


class TextEdit(BaseModel):
    """Replace ``text[start:end]`` with ``new_text`` (insert when start == end)."""

    start: int
    end: int
    new_text: str


# === SCAN REPORT ===


class FetchFailure(BaseModel):
    """A URL whose digest could not be computed during a scan."""

    url: str
    message: str
    status_code: int | None = None


class ScanReport(BaseModel):
    """Everything one scan pass produced."""

    findings: list[Finding] = Field(default_factory=list)
    fetched: list[str] = Field(default_factory=list)
    reused: list[str] = Field(default_factory=list)
    failures: list[FetchFailure] = Field(default_factory=list)
    cancelled: list[str] = Field(default_factory=list)
    silent: bool = False
    duration_seconds: float = 0.0

    @property
    def mismatches(self) -> list[Finding]:
        return [f for f in self.findings if f.kind == "mismatch"]

    @property
    def missing(self) -> list[Finding]:
        return [f for f in self.findings if f.kind == "missing_digest"]

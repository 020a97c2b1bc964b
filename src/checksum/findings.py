# src/checksum/findings.py — v1
"""Diff declared digests against the cache."""

from __future__ import annotations

from shalens.cache.checksum_cache import ChecksumCache
from shalens.checksum.models import (
    AssociationResult,
    Declaration,
    Finding,
    InsertionPoint,
)
from shalens.checksum.text_index import LineIndex


def build_findings(
    text: str,
    association: AssociationResult,
    cache: ChecksumCache,
    index: LineIndex | None = None,
) -> list[Finding]:
    """Return MISMATCH findings for paired digests, then MISSING_DIGEST ones.

    URLs without a cached digest produce nothing: there is no ground truth
    to compare against.
    """
    index = index or LineIndex(text)
    findings: list[Finding] = []

    for pair in association.pairs:
        expected = cache.get(pair.url.value)
        if expected is None or expected == pair.digest.value:
            continue
        line, column = index.position_of(pair.digest.location.start)
        findings.append(
            Finding(
                kind="mismatch",
                url=pair.url.value,
                declared_digest=pair.digest.value,
                expected_digest=expected,
                digest_range=pair.digest.location,
                line=line,
                column=column,
            )
        )

    for url_decl in association.unpaired_urls:
        expected = cache.get(url_decl.value)
        if expected is None:
            continue
        findings.append(
            Finding(
                kind="missing_digest",
                url=url_decl.value,
                expected_digest=expected,
                insertion_point=insertion_point_after(url_decl, index, len(text)),
                line=url_decl.line,
                column=url_decl.column,
            )
        )

    return findings


def insertion_point_after(
    url_decl: Declaration, index: LineIndex, text_length: int
) -> InsertionPoint:
    """Start of the line after the URL declaration, keeping its indentation."""
    end_line = index.line_of(url_decl.span.end)
    line_end = index.line_end(end_line)
    indent = index.indent_of(url_decl.line)
    if line_end >= text_length:
        return InsertionPoint(
            offset=text_length, line=end_line + 1, indent=indent, needs_newline=True
        )
    return InsertionPoint(offset=line_end + 1, line=end_line + 1, indent=indent)

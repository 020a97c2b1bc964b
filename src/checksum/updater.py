# src/checksum/updater.py — v2
"""Resolve the digest for one URL and describe the text change that applies it.

The caller owns the text: this module only produces ``TextEdit`` values
(and a helper to apply them to a string).
"""

from __future__ import annotations

import logging

from shalens.cache.checksum_cache import ChecksumCache
from shalens.checksum.associator import DIGEST_PATTERN, STRICT_DIGEST_PATTERN, URL_PATTERN
from shalens.checksum.findings import insertion_point_after
from shalens.checksum.hasher import CancellationToken, HashComputer
from shalens.checksum.models import Declaration, Finding, TextEdit, TextRange
from shalens.checksum.text_index import LineIndex

logger = logging.getLogger(__name__)


class TargetNotFoundError(LookupError):
    """No URL or digest declaration near the requested position."""


class UpdateApplier:
    """Cache-first digest resolution."""

    def __init__(self, cache: ChecksumCache, hasher: HashComputer) -> None:
        self._cache = cache
        self._hasher = hasher

    async def resolve(
        self, url: str, cancel_token: CancellationToken | None = None
    ) -> str:
        """Return the digest for ``url``, fetching it only when not cached.

        Raises:
            HashComputeError: Propagated unchanged from the fetch.
        """
        cached = self._cache.get(url)
        if cached is not None:
            logger.debug("Resolved %s from cache", url)
            return cached

        logger.info("Downloading %s to compute its checksum", url)
        digest = await self._hasher.compute(url, cancel_token)
        self._cache.set(url, digest)
        return digest

    async def edit_for(
        self, finding: Finding, cancel_token: CancellationToken | None = None
    ) -> TextEdit:
        """Resolve the finding's URL and build the edit that fixes it."""
        digest = await self.resolve(finding.url, cancel_token)
        return build_edit(finding, digest)


def build_edit(finding: Finding, digest: str) -> TextEdit:
    """Replace the declared digest, or insert a new ``sha256`` line."""
    if finding.digest_range is not None:
        return TextEdit(
            start=finding.digest_range.start,
            end=finding.digest_range.end,
            new_text=digest,
        )
    point = finding.insertion_point
    if point is None:
        raise ValueError(f"Finding for {finding.url} has no range or insertion point")
    new_text = f'{point.indent}sha256 "{digest}"\n'
    if point.needs_newline:
        new_text = "\n" + new_text
    return TextEdit(start=point.offset, end=point.offset, new_text=new_text)


def apply_edits(text: str, edits: list[TextEdit]) -> str:
    """Apply non-overlapping edits, last position first so offsets stay valid."""
    ordered = sorted(edits, key=lambda e: (e.start, e.end), reverse=True)
    for previous, edit in zip(ordered, ordered[1:]):
        if edit.end > previous.start:
            raise ValueError(f"Overlapping edits at offsets {edit.start} and {previous.start}")
    for edit in ordered:
        text = text[: edit.start] + edit.new_text + text[edit.end :]
    return text


def locate_target(
    text: str, offset: int, insert: bool = False, strict: bool = False
) -> Finding:
    """Work out what to update from a cursor position.

    Replace mode needs a ``sha256`` declaration on the cursor's line; the URL
    is the nearest one at or above it, with no line limit. Insert mode takes
    the nearest URL at or above the cursor and targets the line after it.
    The returned Finding has an empty ``expected_digest``: pass it to
    ``UpdateApplier.edit_for`` to fill in the real digest.
    With ``strict`` only a 64-hex-character value counts as a digest on the
    cursor line, matching the engine's strict association mode.

    Raises:
        TargetNotFoundError: Nothing to update near ``offset``.
    """
    index = LineIndex(text)
    line = index.line_of(max(0, min(offset, len(text))))

    if insert:
        url_decl = _url_at_or_above(index, line)
        if url_decl is None:
            raise TargetNotFoundError("Could not find a URL to fetch above the cursor")
        return Finding(
            kind="missing_digest",
            url=url_decl.value,
            expected_digest="",
            insertion_point=insertion_point_after(url_decl, index, len(text)),
            line=url_decl.line,
            column=url_decl.column,
        )

    line_start = index.line_start(line)
    pattern = STRICT_DIGEST_PATTERN if strict else DIGEST_PATTERN
    match = pattern.search(index.line_text(line))
    if match is None:
        raise TargetNotFoundError("Could not find sha256 to update on the cursor line")
    url_decl = _url_at_or_above(index, line)
    if url_decl is None:
        raise TargetNotFoundError("Could not find a URL to fetch above the sha256")
    return Finding(
        kind="mismatch",
        url=url_decl.value,
        declared_digest=match.group(1),
        expected_digest="",
        digest_range=TextRange(
            start=line_start + match.start(1), end=line_start + match.end(1)
        ),
        line=line,
        column=match.start(1),
    )


def _url_at_or_above(index: LineIndex, line: int) -> Declaration | None:
    for current in range(line, -1, -1):
        start = index.line_start(current)
        match = URL_PATTERN.search(index.line_text(current))
        if match is None:
            continue
        span = TextRange(start=start + match.start(), end=start + match.end())
        return Declaration(
            kind="url",
            value=match.group(1),
            location=TextRange(start=start + match.start(1), end=start + match.end(1)),
            span=span,
            line=current,
            column=match.start(),
        )
    return None

# src/checksum/associator.py — v1
"""Pattern-based discovery of URL and digest declarations, and their pairing.

This is a lightweight heuristic, not a parser for the host language:

1. ``url "..."`` and ``sha256 "..."`` occurrences are found with regexes
   (single or double quotes; a URL value must be non-empty, a digest value
   may be empty so placeholders still get reported).
2. Each digest is paired with the first URL declaration found scanning
   backward line by line from the digest's own line, at most ``window``
   lines up. Closest line wins, not closest character offset.
3. Digests with no URL in reach are dropped silently. URLs whose value was
   never claimed by any digest are reported as unpaired.
"""

from __future__ import annotations

import logging
import re

from shalens.checksum.models import (
    DIGEST_HEX_LENGTH,
    Association,
    AssociationResult,
    Declaration,
    TextRange,
)
from shalens.checksum.text_index import LineIndex

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_WINDOW = 10

URL_PATTERN = re.compile(r"""url\s+['"]([^'"]+)['"]""")
DIGEST_PATTERN = re.compile(r"""sha256\s+['"]([^'"]*)['"]""")
STRICT_DIGEST_PATTERN = re.compile(
    rf"""sha256\s+['"]([0-9a-fA-F]{{{DIGEST_HEX_LENGTH}}})['"]"""
)


class Associator:
    """Finds declarations in text and pairs digests with their URLs.

    Args:
        window: Number of lines above a digest searched for its URL.
        strict: Only accept 64-hex-character digest values.
    """

    def __init__(self, window: int = DEFAULT_LOOKBACK_WINDOW, strict: bool = False) -> None:
        if window < 0:
            raise ValueError("window must be >= 0")
        self._window = window
        self._digest_pattern = STRICT_DIGEST_PATTERN if strict else DIGEST_PATTERN

    @property
    def window(self) -> int:
        return self._window

    def extract_declarations(
        self, text: str, index: LineIndex | None = None
    ) -> list[Declaration]:
        """Return all URL and digest declarations ordered by position."""
        index = index or LineIndex(text)
        declarations = [
            *self._extract(text, URL_PATTERN, "url", index),
            *self._extract(text, self._digest_pattern, "digest", index),
        ]
        declarations.sort(key=lambda d: d.span.start)
        return declarations

    def extract_urls(self, text: str, index: LineIndex | None = None) -> list[Declaration]:
        return self._extract(text, URL_PATTERN, "url", index or LineIndex(text))

    def associate(self, declarations: list[Declaration]) -> AssociationResult:
        """Pair each digest with the nearest URL line above it.

        Only the first URL on a line counts for that line.
        """
        url_by_line: dict[int, Declaration] = {}
        for decl in declarations:
            if decl.kind == "url" and decl.line not in url_by_line:
                url_by_line[decl.line] = decl

        result = AssociationResult()
        claimed: set[str] = set()

        for decl in declarations:
            if decl.kind != "digest":
                continue
            url_decl = self._nearest_url(decl.line, url_by_line)
            if url_decl is None:
                result.orphan_digests.append(decl)
                continue
            claimed.add(url_decl.value)
            result.pairs.append(Association(url=url_decl, digest=decl))

        result.unpaired_urls = [
            d for d in declarations if d.kind == "url" and d.value not in claimed
        ]

        if result.orphan_digests:
            logger.debug(
                "%d digest declaration(s) without a URL within %d lines",
                len(result.orphan_digests), self._window,
            )
        return result

    def analyze(self, text: str) -> AssociationResult:
        """Shortcut for ``associate(extract_declarations(text))``."""
        return self.associate(self.extract_declarations(text))

    def _nearest_url(
        self, digest_line: int, url_by_line: dict[int, Declaration]
    ) -> Declaration | None:
        for line in range(digest_line, max(0, digest_line - self._window) - 1, -1):
            found = url_by_line.get(line)
            if found is not None:
                return found
        return None

    @staticmethod
    def _extract(
        text: str, pattern: re.Pattern[str], kind: str, index: LineIndex
    ) -> list[Declaration]:
        found: list[Declaration] = []
        for match in pattern.finditer(text):
            line, column = index.position_of(match.start())
            found.append(
                Declaration(
                    kind=kind,
                    value=match.group(1),
                    location=TextRange(start=match.start(1), end=match.end(1)),
                    span=TextRange(start=match.start(), end=match.end()),
                    line=line,
                    column=column,
                )
            )
        return found

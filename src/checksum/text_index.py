# src/checksum/text_index.py — v1
"""Offset <-> line/column conversion for a fixed text."""

from __future__ import annotations

import bisect


class LineIndex:
    """Precomputed line starts of ``text``; lines split on ``\\n``."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._starts = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._starts.append(i + 1)

    @property
    def line_count(self) -> int:
        return len(self._starts)

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self._starts, offset) - 1

    def position_of(self, offset: int) -> tuple[int, int]:
        """Return ``(line, column)`` for a character offset."""
        line = self.line_of(offset)
        return line, offset - self._starts[line]

    def line_start(self, line: int) -> int:
        return self._starts[line]

    def line_end(self, line: int) -> int:
        """Offset of the line's ``\\n`` (or end of text for the last line)."""
        if line + 1 < len(self._starts):
            return self._starts[line + 1] - 1
        return len(self._text)

    def line_text(self, line: int) -> str:
        return self._text[self.line_start(line) : self.line_end(line)]

    def indent_of(self, line: int) -> str:
        text = self.line_text(line)
        return text[: len(text) - len(text.lstrip(" \t"))]

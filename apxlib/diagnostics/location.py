"""Source span tracking for ApX diagnostics and syntax nodes."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceSpan:
    """A region of ApX source text.

    ``line``/``column`` are 1-indexed; ``start``/``end`` are 0-indexed
    character offsets with ``end`` exclusive.
    """

    file: str
    line: int
    column: int
    start: int = 0
    end: int = 0
    end_line: int | None = None
    end_column: int | None = None

    def cover(self, other: SourceSpan) -> SourceSpan:
        """Return the smallest span running from this span to *other*."""
        first, last = (self, other) if self.start <= other.start else (other, self)
        if first.end > last.end:
            last = first
        return SourceSpan(
            file=self.file,
            line=first.line,
            column=first.column,
            start=first.start,
            end=last.end,
            end_line=last.end_line,
            end_column=last.end_column,
        )

    def contains(self, other: SourceSpan) -> bool:
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"

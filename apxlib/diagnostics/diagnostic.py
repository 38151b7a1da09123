"""Diagnostic message representation for ApX."""

from __future__ import annotations

from dataclasses import dataclass

from apxlib.diagnostics.location import SourceSpan
from apxlib.diagnostics.severity import DiagnosticCategory, DiagnosticSeverity


@dataclass(frozen=True)
class Diagnostic:
    """A single diagnostic message."""

    severity: DiagnosticSeverity
    message: str
    location: SourceSpan | None = None
    notes: tuple[str, ...] = ()
    category: DiagnosticCategory = DiagnosticCategory.GENERAL

    def __str__(self) -> str:
        loc = f"{self.location}: " if self.location else ""
        return f"{loc}{self.severity}: {self.message}"

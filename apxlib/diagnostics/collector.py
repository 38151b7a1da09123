"""Diagnostic collector for accumulating messages during lexing, parsing and resolution."""

from __future__ import annotations

from apxlib.diagnostics.diagnostic import Diagnostic
from apxlib.diagnostics.location import SourceSpan
from apxlib.diagnostics.severity import DiagnosticCategory, DiagnosticSeverity


class DiagnosticCollector:
    """Accumulates diagnostics in the order they are reported."""

    def __init__(self) -> None:
        self._diagnostics: list[Diagnostic] = []

    def error(
        self,
        message: str,
        location: SourceSpan | None = None,
        *,
        notes: tuple[str, ...] = (),
        category: DiagnosticCategory = DiagnosticCategory.GENERAL,
    ) -> None:
        """Record an error diagnostic."""
        self._diagnostics.append(
            Diagnostic(DiagnosticSeverity.ERROR, message, location, notes, category)
        )

    def warning(
        self,
        message: str,
        location: SourceSpan | None = None,
        *,
        notes: tuple[str, ...] = (),
        category: DiagnosticCategory = DiagnosticCategory.GENERAL,
    ) -> None:
        """Record a warning diagnostic."""
        self._diagnostics.append(
            Diagnostic(DiagnosticSeverity.WARNING, message, location, notes, category)
        )

    def info(
        self,
        message: str,
        location: SourceSpan | None = None,
        *,
        notes: tuple[str, ...] = (),
        category: DiagnosticCategory = DiagnosticCategory.GENERAL,
    ) -> None:
        """Record an informational diagnostic."""
        self._diagnostics.append(
            Diagnostic(DiagnosticSeverity.INFO, message, location, notes, category)
        )

    def has_errors(self) -> bool:
        """Return True if any error diagnostics have been recorded."""
        return any(d.severity == DiagnosticSeverity.ERROR for d in self._diagnostics)

    def get_all(self) -> list[Diagnostic]:
        """Return a copy of all collected diagnostics."""
        return list(self._diagnostics)

    def errors(self) -> list[Diagnostic]:
        return [d for d in self._diagnostics if d.severity == DiagnosticSeverity.ERROR]

    def warnings(self) -> list[Diagnostic]:
        return [d for d in self._diagnostics if d.severity == DiagnosticSeverity.WARNING]

    def by_category(self, category: DiagnosticCategory) -> list[Diagnostic]:
        """Return the diagnostics reported under *category*."""
        return [d for d in self._diagnostics if d.category == category]

    def mark(self) -> int:
        """Return a checkpoint that :meth:`rollback` can restore."""
        return len(self._diagnostics)

    def rollback(self, mark: int) -> None:
        """Discard every diagnostic recorded after *mark*."""
        del self._diagnostics[mark:]

    def format_all(self) -> str:
        """Format all diagnostics as a newline-separated string."""
        return "\n".join(str(d) for d in self._diagnostics)

    def __len__(self) -> int:
        return len(self._diagnostics)

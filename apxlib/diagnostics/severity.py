"""Diagnostic severity levels and categories for ApX."""

from __future__ import annotations

from enum import Enum


class DiagnosticSeverity(Enum):
    """Severity level of a diagnostic message."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    def __str__(self) -> str:
        return self.value


class DiagnosticCategory(Enum):
    """Which phase produced a diagnostic."""

    LEXICAL = "lexical"
    SYNTAX = "syntax"
    AMBIGUITY = "ambiguity"
    UNRESOLVED_REFERENCE = "unresolved-reference"
    GENERAL = "general"

    def __str__(self) -> str:
        return self.value

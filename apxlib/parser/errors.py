"""Error types for the ApX lexer, parser and resolver."""

from __future__ import annotations

from apxlib.diagnostics.location import SourceSpan
from apxlib.diagnostics.severity import DiagnosticCategory


class ApxError(Exception):
    """Base class for errors that carry a source span."""

    category = DiagnosticCategory.GENERAL

    def __init__(self, message: str, span: SourceSpan | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.span = span


class LexError(ApxError):
    """Invalid character or unterminated string/comment.

    Never raised out of the lexer: it is reported as a diagnostic and an
    INVALID token takes the place of the offending text.
    """

    category = DiagnosticCategory.LEXICAL


class ParseError(ApxError):
    """Raised during parsing when the expected token is not found.

    Caught at statement boundaries, where the parser resynchronizes.
    """

    category = DiagnosticCategory.SYNTAX


class AmbiguityError(ParseError):
    """A ``{`` could be read neither as a record nor as a closure."""

    category = DiagnosticCategory.AMBIGUITY


class UnresolvedReferenceWarning(UserWarning):
    """A name with no visible definition. Reported as a diagnostic, never raised."""

    category = DiagnosticCategory.UNRESOLVED_REFERENCE

    def __init__(self, name: str, span: SourceSpan | None = None) -> None:
        super().__init__(f"Unresolved reference to '{name}'")
        self.name = name
        self.span = span

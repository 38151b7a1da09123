"""apxlib -- lexer, parser and name resolver for the ApX shell language.

Typical use::

    from apxlib import parse, resolve

    program, diag = parse(source, "script.apx")
    table = resolve(program, diag)
"""

from apxlib.diagnostics import (
    Diagnostic,
    DiagnosticCategory,
    DiagnosticCollector,
    DiagnosticSeverity,
    SourceSpan,
)
from apxlib.parser import (
    AmbiguityError,
    ApxError,
    LexError,
    ParseError,
    Program,
    Token,
    TokenKind,
    UnresolvedReferenceWarning,
    parse,
    parse_expression,
    parse_pattern,
    parse_statement,
    tokenize,
)
from apxlib.resolver import BindingTable, resolve

__version__ = "0.1.0"

__all__ = [
    "AmbiguityError",
    "ApxError",
    "BindingTable",
    "Diagnostic",
    "DiagnosticCategory",
    "DiagnosticCollector",
    "DiagnosticSeverity",
    "LexError",
    "ParseError",
    "Program",
    "SourceSpan",
    "Token",
    "TokenKind",
    "UnresolvedReferenceWarning",
    "parse",
    "parse_expression",
    "parse_pattern",
    "parse_statement",
    "resolve",
    "tokenize",
]

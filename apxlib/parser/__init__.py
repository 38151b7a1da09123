"""ApX parser subpackage (Layer 2 -- depends on diagnostics and core)."""

from apxlib.parser.ast_nodes import Program
from apxlib.parser.errors import (
    AmbiguityError,
    ApxError,
    LexError,
    ParseError,
    UnresolvedReferenceWarning,
)
from apxlib.parser.lexer import Lexer, tokenize
from apxlib.parser.parser import Parser, parse, parse_expression, parse_pattern, parse_statement
from apxlib.parser.tokens import Token, TokenKind

__all__ = [
    "AmbiguityError",
    "ApxError",
    "LexError",
    "Lexer",
    "ParseError",
    "Parser",
    "Program",
    "Token",
    "TokenKind",
    "UnresolvedReferenceWarning",
    "parse",
    "parse_expression",
    "parse_pattern",
    "parse_statement",
    "tokenize",
]

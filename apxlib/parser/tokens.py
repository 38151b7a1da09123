"""Token definitions for the ApX lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from apxlib.diagnostics.location import SourceSpan


class TokenKind(Enum):
    """All token types recognized by the ApX lexer."""

    # === Keywords ===
    LET = auto()
    CONST = auto()
    SET = auto()
    IF = auto()
    ELIF = auto()
    ELSE = auto()
    FOR = auto()
    IN = auto()
    WHILE = auto()
    LOOP = auto()
    MATCH = auto()
    TRY = auto()
    CATCH = auto()
    FN = auto()
    MACRO = auto()
    ALIAS = auto()
    OBJ = auto()
    ENUM = auto()
    TEST = auto()
    USE = auto()
    FROM = auto()
    IMPORT = auto()
    SOURCE = auto()
    AS = auto()
    RETURN = auto()
    BREAK = auto()
    CONTINUE = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()
    NOT = auto()
    AND = auto()
    OR = auto()

    # Pipes
    PIPE = auto()  # |
    PIPE_APPEND = auto()  # |>
    PIPE_NULL = auto()  # |?
    PIPE_ERROR = auto()  # |!

    # Operators
    PLUS = auto()  # +
    CONCAT = auto()  # ++
    MINUS = auto()  # -
    STAR = auto()  # *
    SLASH = auto()  # /
    PERCENT = auto()  # %
    EQ = auto()  # ==
    NEQ = auto()  # !=
    LT = auto()  # <
    GT = auto()  # >
    LTE = auto()  # <=
    GTE = auto()  # >=
    MATCH_OP = auto()  # =~
    NOT_MATCH = auto()  # !~
    AND_AND = auto()  # &&
    OR_OR = auto()  # ||
    BANG = auto()  # !
    NULL_COALESCE = auto()  # ??
    QUESTION = auto()  # ?

    # Assignment
    ASSIGN = auto()  # =
    PLUS_ASSIGN = auto()  # +=
    MINUS_ASSIGN = auto()  # -=
    STAR_ASSIGN = auto()  # *=
    SLASH_ASSIGN = auto()  # /=
    PERCENT_ASSIGN = auto()  # %=

    # Delimiters
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]
    LBRACE = auto()  # {
    RBRACE = auto()  # }
    DOLLAR_LPAREN = auto()  # $(
    PROC_IN = auto()  # <(
    PROC_OUT = auto()  # >(
    COLON = auto()  # :
    DOUBLE_COLON = auto()  # ::
    COMMA = auto()  # ,
    DOT = auto()  # .
    DOTDOT = auto()  # ..
    DOTDOT_EQ = auto()  # ..=
    ELLIPSIS = auto()  # ...
    ARROW = auto()  # ->
    FAT_ARROW = auto()  # =>
    AT = auto()  # @

    # Literals
    INT_LIT = auto()
    FLOAT_LIT = auto()
    HEX_LIT = auto()
    BINARY_LIT = auto()
    OCTAL_LIT = auto()
    STRING_LIT = auto()  # "..."
    SINGLE_STRING_LIT = auto()  # '...'
    TRIPLE_STRING_LIT = auto()  # """..."""
    RAW_STRING_LIT = auto()  # r"..."
    BACKTICK_STRING_LIT = auto()  # `...`
    IDENT = auto()

    # Variables
    VARIABLE = auto()  # $name
    ENV_VARIABLE = auto()  # $env.NAME
    SPECIAL_VARIABLE = auto()  # $it, $_, $err

    # Shell words
    SHORT_FLAG = auto()  # -x, -la
    LONG_FLAG = auto()  # --name
    PATH = auto()  # /tmp, ./src, ~/x, *.txt, dir/sub

    # Terminators
    NEWLINE = auto()
    SEMICOLON = auto()

    # Special
    INVALID = auto()
    EOF = auto()


# Keyword string -> TokenKind mapping.
# Identifiers are checked against this table during lexing.
KEYWORDS: dict[str, TokenKind] = {
    "let": TokenKind.LET,
    "const": TokenKind.CONST,
    "set": TokenKind.SET,
    "if": TokenKind.IF,
    "elif": TokenKind.ELIF,
    "else": TokenKind.ELSE,
    "for": TokenKind.FOR,
    "in": TokenKind.IN,
    "while": TokenKind.WHILE,
    "loop": TokenKind.LOOP,
    "match": TokenKind.MATCH,
    "try": TokenKind.TRY,
    "catch": TokenKind.CATCH,
    "fn": TokenKind.FN,
    "macro": TokenKind.MACRO,
    "alias": TokenKind.ALIAS,
    "obj": TokenKind.OBJ,
    "enum": TokenKind.ENUM,
    "test": TokenKind.TEST,
    "use": TokenKind.USE,
    "from": TokenKind.FROM,
    "import": TokenKind.IMPORT,
    "source": TokenKind.SOURCE,
    "as": TokenKind.AS,
    "return": TokenKind.RETURN,
    "break": TokenKind.BREAK,
    "continue": TokenKind.CONTINUE,
    "true": TokenKind.TRUE,
    "false": TokenKind.FALSE,
    "null": TokenKind.NULL,
    "not": TokenKind.NOT,
    "and": TokenKind.AND,
    "or": TokenKind.OR,
}

SPECIAL_VARIABLES: frozenset[str] = frozenset({"it", "_", "err"})

STRING_KINDS: dict[TokenKind, str] = {
    TokenKind.STRING_LIT: "double",
    TokenKind.SINGLE_STRING_LIT: "single",
    TokenKind.TRIPLE_STRING_LIT: "triple",
    TokenKind.RAW_STRING_LIT: "raw",
    TokenKind.BACKTICK_STRING_LIT: "backtick",
}

INTEGER_KINDS: dict[TokenKind, int] = {
    TokenKind.INT_LIT: 10,
    TokenKind.HEX_LIT: 16,
    TokenKind.BINARY_LIT: 2,
    TokenKind.OCTAL_LIT: 8,
}

PIPE_KINDS: frozenset[TokenKind] = frozenset(
    {TokenKind.PIPE, TokenKind.PIPE_APPEND, TokenKind.PIPE_NULL, TokenKind.PIPE_ERROR}
)

TERMINATOR_KINDS: frozenset[TokenKind] = frozenset(
    {TokenKind.NEWLINE, TokenKind.SEMICOLON, TokenKind.EOF}
)


@dataclass(frozen=True)
class Token:
    """A single token produced by the ApX lexer.

    ``value`` holds the decoded payload for string literals (quotes removed,
    escapes processed where the form allows) and the bare name for variables
    and flags; it is None for every other kind.
    """

    kind: TokenKind
    lexeme: str
    span: SourceSpan
    value: str | None = None

    @property
    def start(self) -> int:
        return self.span.start

    @property
    def end(self) -> int:
        return self.span.end

    @property
    def line(self) -> int:
        return self.span.line

# Keywords that can only open a statement, never continue an expression.
STATEMENT_KEYWORD_KINDS: frozenset[TokenKind] = frozenset(
    {
        TokenKind.LET,
        TokenKind.CONST,
        TokenKind.IF,
        TokenKind.FOR,
        TokenKind.WHILE,
        TokenKind.LOOP,
        TokenKind.MATCH,
        TokenKind.TRY,
        TokenKind.FN,
        TokenKind.MACRO,
        TokenKind.ALIAS,
        TokenKind.OBJ,
        TokenKind.ENUM,
        TokenKind.TEST,
        TokenKind.USE,
        TokenKind.FROM,
        TokenKind.SOURCE,
        TokenKind.RETURN,
        TokenKind.BREAK,
        TokenKind.CONTINUE,
    }
)

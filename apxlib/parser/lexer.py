"""Lexer (tokenizer) for ApX source code."""

from __future__ import annotations

import logging

from apxlib.diagnostics.collector import DiagnosticCollector
from apxlib.diagnostics.location import SourceSpan
from apxlib.parser.errors import LexError
from apxlib.parser.tokens import (
    KEYWORDS,
    SPECIAL_VARIABLES,
    STATEMENT_KEYWORD_KINDS,
    Token,
    TokenKind,
)

logger = logging.getLogger(__name__)

# Characters that may precede a flag or path word.
_WORD_BOUNDARY = frozenset(" \t\r\n;(|[{,=")

# Characters allowed inside a path word after its first character.
_PATH_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_./*~-"
)

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "0": "\0", '"': '"', "'": "'", "\\": "\\"}


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_ident_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == "_")


def _is_ident_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


class Lexer:
    """Tokenize ApX source into a flat token stream.

    The lexer never raises.  Unknown characters, a lone ``$`` and unterminated
    strings or block comments become INVALID tokens with a lexical diagnostic,
    and scanning resumes after them.  The returned list always ends with EOF.
    """

    # Single-character tokens that need no lookahead.
    _SINGLE_CHAR: dict[str, TokenKind] = {
        "(": TokenKind.LPAREN,
        ")": TokenKind.RPAREN,
        "[": TokenKind.LBRACKET,
        "]": TokenKind.RBRACKET,
        "{": TokenKind.LBRACE,
        "}": TokenKind.RBRACE,
        ",": TokenKind.COMMA,
        ";": TokenKind.SEMICOLON,
        "@": TokenKind.AT,
    }

    # Multi-character operators, longest first within each leading character.
    _OPERATORS: dict[str, tuple[tuple[str, TokenKind], ...]] = {
        "|": (
            ("|>", TokenKind.PIPE_APPEND),
            ("|?", TokenKind.PIPE_NULL),
            ("|!", TokenKind.PIPE_ERROR),
            ("||", TokenKind.OR_OR),
            ("|", TokenKind.PIPE),
        ),
        "&": (("&&", TokenKind.AND_AND),),
        "?": (("??", TokenKind.NULL_COALESCE), ("?", TokenKind.QUESTION)),
        "=": (
            ("==", TokenKind.EQ),
            ("=>", TokenKind.FAT_ARROW),
            ("=~", TokenKind.MATCH_OP),
            ("=", TokenKind.ASSIGN),
        ),
        "!": (("!=", TokenKind.NEQ), ("!~", TokenKind.NOT_MATCH), ("!", TokenKind.BANG)),
        "+": (("++", TokenKind.CONCAT), ("+=", TokenKind.PLUS_ASSIGN), ("+", TokenKind.PLUS)),
        "-": (("-=", TokenKind.MINUS_ASSIGN), ("->", TokenKind.ARROW), ("-", TokenKind.MINUS)),
        "*": (("*=", TokenKind.STAR_ASSIGN), ("*", TokenKind.STAR)),
        "/": (("/=", TokenKind.SLASH_ASSIGN), ("/", TokenKind.SLASH)),
        "%": (("%=", TokenKind.PERCENT_ASSIGN), ("%", TokenKind.PERCENT)),
        "<": (("<(", TokenKind.PROC_IN), ("<=", TokenKind.LTE), ("<", TokenKind.LT)),
        ">": ((">(", TokenKind.PROC_OUT), (">=", TokenKind.GTE), (">", TokenKind.GT)),
        ".": (
            ("...", TokenKind.ELLIPSIS),
            ("..=", TokenKind.DOTDOT_EQ),
            ("..", TokenKind.DOTDOT),
            (".", TokenKind.DOT),
        ),
        ":": (("::", TokenKind.DOUBLE_COLON), (":", TokenKind.COLON)),
    }

    _OPENERS = frozenset(
        {
            TokenKind.LPAREN,
            TokenKind.LBRACKET,
            TokenKind.LBRACE,
            TokenKind.DOLLAR_LPAREN,
            TokenKind.PROC_IN,
            TokenKind.PROC_OUT,
        }
    )
    _CLOSERS = frozenset({TokenKind.RPAREN, TokenKind.RBRACKET, TokenKind.RBRACE})

    def __init__(
        self,
        source: str,
        filename: str = "<string>",
        diagnostics: DiagnosticCollector | None = None,
    ) -> None:
        self._source = source
        self._filename = filename
        self._diag = diagnostics if diagnostics is not None else DiagnosticCollector()
        self._pos = 0
        self._line = 1
        self._col = 1
        # Open brackets, innermost last.  Decides whether a newline is trivia.
        self._brackets: list[TokenKind] = []

    @property
    def diagnostics(self) -> DiagnosticCollector:
        return self._diag

    # ------------------------------------------------------------------
    # Helper methods
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> str:
        """Return character at current position + offset, or '' at EOF."""
        idx = self._pos + offset
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def _advance(self) -> str:
        """Consume and return the current character, updating line/col."""
        ch = self._source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _advance_to(self, index: int) -> None:
        while self._pos < index:
            self._advance()

    def _at_end(self) -> bool:
        return self._pos >= len(self._source)

    def _at_word_start(self) -> bool:
        return self._pos == 0 or self._source[self._pos - 1] in _WORD_BOUNDARY

    def _make(
        self,
        kind: TokenKind,
        begin: int,
        line: int,
        col: int,
        value: str | None = None,
    ) -> Token:
        """Build a token for source[begin:pos] starting at (line, col)."""
        span = SourceSpan(
            file=self._filename,
            line=line,
            column=col,
            start=begin,
            end=self._pos,
            end_line=self._line,
            end_column=self._col,
        )
        return Token(kind, self._source[begin : self._pos], span, value)

    def _invalid(self, message: str, begin: int, line: int, col: int) -> Token:
        token = self._make(TokenKind.INVALID, begin, line, col)
        error = LexError(message, token.span)
        self._diag.error(error.message, error.span, category=error.category)
        return token

    # ------------------------------------------------------------------
    # Scanning helpers
    # ------------------------------------------------------------------

    def _skip_line_comment(self) -> None:
        """Skip from '#' to end of line (the newline itself is NOT consumed)."""
        while not self._at_end() and self._peek() != "\n":
            self._advance()

    def _scan_block_comment(self) -> Token | None:
        """Skip a ``### ... ###`` comment; INVALID to EOF if it never closes."""
        begin, line, col = self._pos, self._line, self._col
        close = self._source.find("###", begin + 3)
        if close < 0:
            self._advance_to(len(self._source))
            return self._invalid("Unterminated block comment", begin, line, col)
        self._advance_to(close + 3)
        return None

    def _find_closing(self, quote: str, start: int, escapes: bool) -> int:
        """Index of the quote closing a string whose body starts at *start*, or -1."""
        i = start
        n = len(self._source)
        while i < n:
            ch = self._source[i]
            if escapes and ch == "\\":
                i += 2
                continue
            if ch == quote:
                return i
            i += 1
        return -1

    def _unterminated_string(self, begin: int, line: int, col: int) -> Token:
        line_end = self._source.find("\n", begin)
        self._advance_to(len(self._source) if line_end < 0 else line_end)
        return self._invalid("Unterminated string literal", begin, line, col)

    @staticmethod
    def _decode(body: str) -> str:
        chars: list[str] = []
        i = 0
        while i < len(body):
            ch = body[i]
            if ch == "\\" and i + 1 < len(body):
                esc = body[i + 1]
                chars.append(_ESCAPES.get(esc, "\\" + esc))
                i += 2
                continue
            chars.append(ch)
            i += 1
        return "".join(chars)

    def _scan_string(self) -> Token:
        """Scan any string form starting at the current position."""
        begin, line, col = self._pos, self._line, self._col
        src = self._source

        if src.startswith('"""', begin):
            close = src.find('"""', begin + 3)
            if close < 0:
                return self._unterminated_string(begin, line, col)
            self._advance_to(close + 3)
            return self._make(TokenKind.TRIPLE_STRING_LIT, begin, line, col, src[begin + 3 : close])

        if src.startswith('r"', begin):
            close = src.find('"', begin + 2)
            if close < 0:
                return self._unterminated_string(begin, line, col)
            self._advance_to(close + 1)
            return self._make(TokenKind.RAW_STRING_LIT, begin, line, col, src[begin + 2 : close])

        quote = src[begin]
        if quote == "`":
            close = src.find("`", begin + 1)
            if close < 0:
                return self._unterminated_string(begin, line, col)
            self._advance_to(close + 1)
            return self._make(
                TokenKind.BACKTICK_STRING_LIT, begin, line, col, src[begin + 1 : close]
            )

        close = self._find_closing(quote, begin + 1, escapes=True)
        if close < 0:
            return self._unterminated_string(begin, line, col)
        self._advance_to(close + 1)
        kind = TokenKind.STRING_LIT if quote == '"' else TokenKind.SINGLE_STRING_LIT
        return self._make(kind, begin, line, col, self._decode(src[begin + 1 : close]))

    def _scan_digits(self, allowed: str) -> int:
        count = 0
        while not self._at_end() and self._peek() in allowed:
            self._advance()
            count += 1
        return count

    def _scan_number(self) -> Token:
        """Scan an integer (any radix) or float literal."""
        begin, line, col = self._pos, self._line, self._col

        if self._peek() == "0" and self._peek(1) in ("x", "b", "o"):
            radix_char = self._peek(1)
            allowed, kind = {
                "x": ("0123456789abcdefABCDEF_", TokenKind.HEX_LIT),
                "b": ("01_", TokenKind.BINARY_LIT),
                "o": ("01234567_", TokenKind.OCTAL_LIT),
            }[radix_char]
            if self._peek(2) in allowed and self._peek(2) != "":
                self._advance()
                self._advance()
                self._scan_digits(allowed)
                return self._make(kind, begin, line, col)

        self._scan_digits("0123456789")
        is_float = False

        # digit+ '.' digit+ is a float; '..' stays a range operator.
        if self._peek() == "." and _is_digit(self._peek(1)):
            self._advance()
            self._scan_digits("0123456789")
            is_float = True

        if self._peek() in ("e", "E"):
            offset = 2 if self._peek(1) in ("+", "-") else 1
            if _is_digit(self._peek(offset)):
                for _ in range(offset):
                    self._advance()
                self._scan_digits("0123456789")
                is_float = True

        kind = TokenKind.FLOAT_LIT if is_float else TokenKind.INT_LIT
        return self._make(kind, begin, line, col)

    def _scan_path_tail(self) -> None:
        while not self._at_end() and self._peek() in _PATH_CHARS:
            self._advance()

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier, keyword, or an identifier-led path like ``dir/sub``."""
        begin, line, col = self._pos, self._line, self._col
        self._advance()
        while not self._at_end():
            ch = self._peek()
            if _is_ident_char(ch) or (ch == "-" and _is_ident_char(self._peek(1))):
                self._advance()
            else:
                break
        lexeme = self._source[begin : self._pos]
        if lexeme not in KEYWORDS and self._peek() == "/" and self._starts_path_segment(1):
            self._scan_path_tail()
            return self._make(TokenKind.PATH, begin, line, col)
        return self._make(KEYWORDS.get(lexeme, TokenKind.IDENT), begin, line, col)

    def _starts_path_segment(self, offset: int) -> bool:
        ch = self._peek(offset)
        return _is_ident_start(ch) or _is_digit(ch) or ch in (".", "*", "~")

    def _path_start_length(self) -> int:
        """Length of the path prefix at the current position, or 0 if none."""
        ch = self._peek()
        nxt = self._peek(1)
        if ch == "/" and (_is_ident_start(nxt) or nxt in (".", "*", "~")):
            return 1
        if ch == "." and nxt == "/":
            return 2
        if ch == "." and nxt == "." and self._peek(2) == "/":
            return 3
        if ch == "~":
            return 1
        # A digit after '*' is multiplication, not a glob.
        if ch == "*" and (_is_ident_start(nxt) or nxt in (".", "/", "*")):
            return 1
        return 0

    def _scan_path(self, prefix: int) -> Token:
        begin, line, col = self._pos, self._line, self._col
        for _ in range(prefix):
            self._advance()
        self._scan_path_tail()
        return self._make(TokenKind.PATH, begin, line, col)

    def _scan_flag(self) -> Token | None:
        """Scan ``-x`` or ``--name`` at word start; None if this dash is not a flag."""
        begin, line, col = self._pos, self._line, self._col
        if self._peek(1) == "-" and self._peek(2).isascii() and self._peek(2).isalpha():
            self._advance()
            self._advance()
            while not self._at_end() and (
                _is_ident_char(self._peek()) or self._peek() == "-"
            ):
                self._advance()
            return self._make(TokenKind.LONG_FLAG, begin, line, col, self._source[begin + 2 : self._pos])
        if self._peek(1).isascii() and self._peek(1).isalpha():
            self._advance()
            while not self._at_end() and self._peek().isascii() and self._peek().isalpha():
                self._advance()
            return self._make(TokenKind.SHORT_FLAG, begin, line, col, self._source[begin + 1 : self._pos])
        return None

    def _scan_dollar(self) -> Token:
        """Scan ``$name``, ``$env.NAME``, ``$it``/``$_``/``$err`` or ``$(``."""
        begin, line, col = self._pos, self._line, self._col
        self._advance()  # consume '$'
        if self._peek() == "(":
            self._advance()
            return self._make(TokenKind.DOLLAR_LPAREN, begin, line, col)
        if not _is_ident_start(self._peek()):
            return self._invalid("Expected a variable name after '$'", begin, line, col)

        name_start = self._pos
        while not self._at_end() and _is_ident_char(self._peek()):
            self._advance()
        name = self._source[name_start : self._pos]

        if name in SPECIAL_VARIABLES:
            return self._make(TokenKind.SPECIAL_VARIABLE, begin, line, col, name)
        if name == "env" and self._peek() == "." and _is_ident_start(self._peek(1)):
            self._advance()  # consume '.'
            env_start = self._pos
            while not self._at_end() and _is_ident_char(self._peek()):
                self._advance()
            return self._make(
                TokenKind.ENV_VARIABLE, begin, line, col, self._source[env_start : self._pos]
            )
        return self._make(TokenKind.VARIABLE, begin, line, col, name)

    def _scan_operator(self) -> Token | None:
        ch = self._peek()
        if ch in self._SINGLE_CHAR:
            begin, line, col = self._pos, self._line, self._col
            self._advance()
            return self._make(self._SINGLE_CHAR[ch], begin, line, col)
        for text, kind in self._OPERATORS.get(ch, ()):
            if self._source.startswith(text, self._pos):
                begin, line, col = self._pos, self._line, self._col
                self._advance_to(self._pos + len(text))
                return self._make(kind, begin, line, col)
        return None

    def _next_token(self) -> Token:
        """Scan one significant token at the current position."""
        ch = self._peek()

        if ch in ('"', "'", "`") or (ch == "r" and self._peek(1) == '"'):
            return self._scan_string()
        if _is_digit(ch):
            return self._scan_number()
        if ch == "$":
            return self._scan_dollar()

        if self._at_word_start():
            if ch == "-":
                flag = self._scan_flag()
                if flag is not None:
                    return flag
            prefix = self._path_start_length()
            if prefix:
                return self._scan_path(prefix)

        if _is_ident_start(ch):
            return self._scan_identifier_or_keyword()

        token = self._scan_operator()
        if token is not None:
            return token

        begin, line, col = self._pos, self._line, self._col
        self._advance()
        return self._invalid(f"Unexpected character: {ch!r}", begin, line, col)

    def _track_brackets(self, kind: TokenKind) -> None:
        if kind in self._OPENERS:
            self._brackets.append(kind)
        elif kind in self._CLOSERS and self._brackets:
            self._brackets.pop()

    def _newline_is_trivia(self) -> bool:
        return bool(self._brackets) and self._brackets[-1] != TokenKind.LBRACE

    def _next_line_opens_statement(self) -> bool:
        """True if the next non-blank line starts with a statement keyword."""
        i = self._pos
        while i < len(self._source) and self._source[i] in " \t\r\n":
            i += 1
        j = i
        while j < len(self._source) and _is_ident_char(self._source[j]):
            j += 1
        return KEYWORDS.get(self._source[i:j]) in STATEMENT_KEYWORD_KINDS

    def _abandon_open_groups(self, line: int) -> None:
        """Drop unclosed parens and brackets back to the innermost brace."""
        while self._brackets and self._brackets[-1] != TokenKind.LBRACE:
            self._brackets.pop()
        logger.debug("Unclosed group before line %d, newline kept", line + 1)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def tokenize(self) -> list[Token]:
        """Tokenize the entire source. Returns list ending with an EOF token."""
        tokens: list[Token] = []
        # Collapse consecutive newlines and suppress leading ones.
        last_was_newline = True

        while not self._at_end():
            ch = self._peek()

            # --- Whitespace (non-newline) ---
            if ch in (" ", "\t", "\r"):
                self._advance()
                continue

            # --- Comments ---
            if ch == "#":
                if self._source.startswith("###", self._pos):
                    invalid = self._scan_block_comment()
                    if invalid is not None:
                        tokens.append(invalid)
                        last_was_newline = False
                else:
                    self._skip_line_comment()
                continue

            # --- Newlines ---
            if ch == "\n":
                begin, line, col = self._pos, self._line, self._col
                self._advance()
                # A statement keyword cannot continue a bracketed expression.
                if self._newline_is_trivia() and self._next_line_opens_statement():
                    self._abandon_open_groups(line)
                if not last_was_newline and not self._newline_is_trivia():
                    tokens.append(self._make(TokenKind.NEWLINE, begin, line, col))
                    last_was_newline = True
                continue

            last_was_newline = False
            token = self._next_token()
            self._track_brackets(token.kind)
            tokens.append(token)

        tokens.append(self._make(TokenKind.EOF, self._pos, self._line, self._col))
        logger.debug("Lexed %s: %d tokens", self._filename, len(tokens))
        return tokens


def tokenize(
    source: str,
    filename: str = "<string>",
    diagnostics: DiagnosticCollector | None = None,
) -> list[Token]:
    """Tokenize *source*; lexical problems go to *diagnostics*."""
    return Lexer(source, filename, diagnostics).tokenize()

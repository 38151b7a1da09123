"""Token-stream plumbing shared by the ApX expression, pattern and statement parsers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from apxlib.core.expressions import IntLiteral, Node
from apxlib.diagnostics.collector import DiagnosticCollector
from apxlib.diagnostics.location import SourceSpan
from apxlib.parser.ast_nodes import ErrorNode
from apxlib.parser.errors import ParseError
from apxlib.parser.tokens import INTEGER_KINDS, TERMINATOR_KINDS, Token, TokenKind

logger = logging.getLogger(__name__)

OPENING_KINDS: frozenset[TokenKind] = frozenset(
    {
        TokenKind.LPAREN,
        TokenKind.LBRACKET,
        TokenKind.LBRACE,
        TokenKind.DOLLAR_LPAREN,
        TokenKind.PROC_IN,
        TokenKind.PROC_OUT,
    }
)
CLOSING_KINDS: frozenset[TokenKind] = frozenset(
    {TokenKind.RPAREN, TokenKind.RBRACKET, TokenKind.RBRACE}
)
_SEPARATOR_KINDS = frozenset({TokenKind.NEWLINE, TokenKind.SEMICOLON})


def describe_token(tok: Token) -> str:
    if tok.kind == TokenKind.EOF:
        return "end of input"
    if tok.kind == TokenKind.NEWLINE:
        return "newline"
    return repr(tok.lexeme)


class ParserBase(ABC):
    """Cursor over a token list plus error reporting and recovery.

    Two flags shape how expressions are read:

    * ``_no_brace`` is set in control-flow headers, where ``{`` starts the
      body and so can never be an argument or a value.
    * ``_arg_mode`` is set while reading command arguments, where bare
      identifiers are words rather than commands.

    ``_recover`` is cleared for fail-fast parsing and for speculative
    parses, making every syntax error propagate instead of being skipped.
    """

    def __init__(
        self,
        tokens: list[Token],
        diagnostics: DiagnosticCollector | None = None,
        *,
        start: int = 0,
        recover: bool = True,
    ) -> None:
        if not tokens or tokens[-1].kind != TokenKind.EOF:
            tokens = list(tokens)
            end = tokens[-1].span if tokens else SourceSpan("<string>", 1, 1)
            eof_span = SourceSpan(
                end.file,
                end.end_line or end.line,
                end.end_column or end.column,
                end.end,
                end.end,
                end.end_line,
                end.end_column,
            )
            tokens.append(Token(TokenKind.EOF, "", eof_span))
        self._tokens = tokens
        self._diag = diagnostics if diagnostics is not None else DiagnosticCollector()
        self._pos = min(start, len(tokens) - 1)
        self._recover = recover
        self._no_brace = False
        self._arg_mode = False

    @property
    def position(self) -> int:
        """Index of the next unconsumed token."""
        return self._pos

    @property
    def diagnostics(self) -> DiagnosticCollector:
        return self._diag

    # ------------------------------------------------------------------
    # Token stream helpers
    # ------------------------------------------------------------------

    def _peek(self) -> Token:
        """Return the current token without consuming it."""
        return self._tokens[self._pos]

    def _peek_ahead(self, offset: int = 1) -> Token:
        """Peek at a token ahead of current position."""
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        return self._tokens[-1]  # EOF

    def _token_at(self, index: int) -> Token:
        if index < len(self._tokens):
            return self._tokens[index]
        return self._tokens[-1]

    def _previous(self) -> Token:
        """Return the most recently consumed token."""
        return self._tokens[max(self._pos - 1, 0)]

    def _at_end(self) -> bool:
        return self._peek().kind == TokenKind.EOF

    def _advance(self) -> Token:
        """Consume and return the current token."""
        tok = self._tokens[self._pos]
        if tok.kind != TokenKind.EOF:
            self._pos += 1
        return tok

    def _check(self, *kinds: TokenKind) -> bool:
        """Return True if the current token is any of *kinds*."""
        return self._peek().kind in kinds

    def _match(self, *kinds: TokenKind) -> Token | None:
        """If current token matches any of *kinds*, consume and return it."""
        if self._peek().kind in kinds:
            return self._advance()
        return None

    def _expect(self, kind: TokenKind, message: str) -> Token:
        """Consume a token of *kind* or raise a syntax error."""
        if self._check(kind):
            return self._advance()
        raise self._error(message)

    def _skip_newlines(self) -> None:
        """Skip any NEWLINE tokens."""
        while self._check(TokenKind.NEWLINE):
            self._advance()

    def _skip_terminators(self) -> None:
        while self._check(TokenKind.NEWLINE, TokenKind.SEMICOLON):
            self._advance()

    def _peek_past_newlines(self) -> TokenKind:
        """Look ahead past newlines to see what the next non-newline token is."""
        i = self._pos
        while i < len(self._tokens) and self._tokens[i].kind == TokenKind.NEWLINE:
            i += 1
        if i < len(self._tokens):
            return self._tokens[i].kind
        return TokenKind.EOF

    def _significant_index(self, index: int) -> int:
        """First index at or after *index* that is not a NEWLINE."""
        while self._token_at(index).kind == TokenKind.NEWLINE:
            index += 1
        return index

    @staticmethod
    def _adjacent(left: Token, right: Token) -> bool:
        """True if no whitespace separates *left* and *right*."""
        return left.end == right.start

    def _span_from(self, start: Token | SourceSpan) -> SourceSpan:
        """Span from *start* through the last consumed token."""
        first = start.span if isinstance(start, Token) else start
        return first.cover(self._previous().span)

    def _int_literal(self, tok: Token, *, negate: bool = False) -> IntLiteral:
        """Decode an integer token of any radix; ``_`` separators are dropped."""
        radix = INTEGER_KINDS[tok.kind]
        digits = tok.lexeme if radix == 10 else tok.lexeme[2:]
        try:
            value = int(digits.replace("_", ""), radix)
        except ValueError:
            raise self._error("Invalid integer literal", tok) from None
        return IntLiteral(value=-value if negate else value, radix=radix, span=tok.span)

    # ------------------------------------------------------------------
    # Parse modes
    # ------------------------------------------------------------------

    @contextmanager
    def _mode(
        self,
        *,
        no_brace: bool | None = None,
        arg_mode: bool | None = None,
        recover: bool | None = None,
    ) -> Iterator[None]:
        saved = (self._no_brace, self._arg_mode, self._recover)
        if no_brace is not None:
            self._no_brace = no_brace
        if arg_mode is not None:
            self._arg_mode = arg_mode
        if recover is not None:
            self._recover = recover
        try:
            yield
        finally:
            self._no_brace, self._arg_mode, self._recover = saved

    def _nested(self):
        """Mode for bracketed sub-expressions: plain values, braces allowed."""
        return self._mode(no_brace=False, arg_mode=False)

    # ------------------------------------------------------------------
    # Errors and recovery
    # ------------------------------------------------------------------

    def _error(
        self,
        message: str,
        token: Token | None = None,
        *,
        error_type: type[ParseError] = ParseError,
    ) -> ParseError:
        """Report a syntax error and return the exception for the caller to raise.

        When the offending token is a terminator or EOF the error is placed on
        the last significant token before it, so ``let x =`` at the end of a
        line points at the ``=``.  INVALID tokens were already reported by the
        lexer and are not reported again.
        """
        tok = token if token is not None else self._peek()
        span = tok.span
        if token is None and tok.kind in TERMINATOR_KINDS and self._pos > 0:
            i = self._pos - 1
            while i > 0 and self._tokens[i].kind == TokenKind.NEWLINE:
                i -= 1
            span = self._tokens[i].span
        text = f"{message}, got {describe_token(tok)}"
        error = error_type(text, span)
        if tok.kind != TokenKind.INVALID:
            self._diag.error(text, span, category=error.category)
        return error

    @staticmethod
    def _track_group(groups: list[TokenKind], kind: TokenKind) -> None:
        """Update the stack of open groups for one token.

        A NEWLINE is only produced inside parentheses or brackets when the
        lexer gave up on them, so it closes every group back to the
        innermost brace.
        """
        if kind in OPENING_KINDS:
            groups.append(kind)
        elif kind == TokenKind.RBRACE:
            while groups and groups.pop() != TokenKind.LBRACE:
                pass
        elif kind in CLOSING_KINDS or kind == TokenKind.NEWLINE:
            while groups and groups[-1] != TokenKind.LBRACE:
                groups.pop()
                if kind != TokenKind.NEWLINE:
                    break

    def _synchronize(self, start_pos: int) -> None:
        """Skip to the next terminator outside every group the statement opened.

        Groups opened between *start_pos* and the error are counted first, so
        the ``}`` of a record or ``match`` the statement began is consumed
        with it.  An unmatched ``}`` stops the skip without being consumed so
        the enclosing block can close, and at least one token past
        *start_pos* is always consumed.
        """
        groups: list[TokenKind] = []
        resumed = False
        for tok in self._tokens[start_pos : self._pos]:
            had_groups = bool(groups)
            self._track_group(groups, tok.kind)
            resumed = tok.kind == TokenKind.NEWLINE and had_groups and not groups
        if resumed:
            return
        while not self._at_end():
            kind = self._peek().kind
            if self._pos > start_pos:
                if kind == TokenKind.RBRACE and TokenKind.LBRACE not in groups:
                    # Closes a block opened before this statement.
                    return
                if kind == TokenKind.NEWLINE:
                    self._track_group(groups, kind)
                if not groups and kind in _SEPARATOR_KINDS:
                    return
            self._track_group(groups, kind)
            self._advance()

    def _source_text(self, first: int, last: int) -> str:
        """Approximate source text of tokens[first..last], spacing preserved."""
        parts: list[str] = []
        prev_end: int | None = None
        for tok in self._tokens[first : last + 1]:
            if tok.kind == TokenKind.EOF:
                break
            if prev_end is not None and tok.start > prev_end:
                parts.append(" ")
            parts.append(tok.lexeme)
            prev_end = tok.end
        return "".join(parts)

    def _recover_statement(self, start_pos: int, error: ParseError) -> ErrorNode:
        """Skip past a failed statement and return an ErrorNode covering it."""
        self._synchronize(start_pos)
        last = max(self._pos - 1, start_pos)
        while last > start_pos and self._tokens[last].kind == TokenKind.NEWLINE:
            last -= 1
        first_tok = self._tokens[start_pos]
        span = first_tok.span.cover(self._tokens[last].span)
        logger.debug(
            "Recovered from syntax error at %s, skipped %d token(s)",
            span,
            self._pos - start_pos,
        )
        return ErrorNode(
            message=error.message,
            text=self._source_text(start_pos, last),
            span=span,
        )

    # ------------------------------------------------------------------
    # Statement lists
    # ------------------------------------------------------------------

    @abstractmethod
    def parse_statement(self) -> Node:
        """Parse one statement; block bodies call back into this."""

    def _parse_statement_list(self, *, in_block: bool) -> list[Node]:
        """Parse terminator-separated statements up to ``}`` (in a block) or EOF.

        With recovery enabled each failing statement becomes an ErrorNode.
        Without it, the error propagates from blocks; at the top level the
        statements parsed so far are returned.
        """
        statements: list[Node] = []
        while True:
            self._skip_terminators()
            if self._at_end() or (in_block and self._check(TokenKind.RBRACE)):
                break
            start_pos = self._pos
            try:
                statements.append(self.parse_statement())
                if not (
                    self._check(*TERMINATOR_KINDS)
                    or (in_block and self._check(TokenKind.RBRACE))
                ):
                    start_pos = self._pos
                    raise self._error("Expected newline or ';' after statement")
            except ParseError as e:
                if not self._recover:
                    if in_block:
                        raise
                    break
                statements.append(self._recover_statement(start_pos, e))
        return statements

"""Pattern parsing for ``match`` arms."""

from __future__ import annotations

from apxlib.core.expressions import (
    BoolLiteral,
    FloatLiteral,
    Identifier,
    IntLiteral,
    NullLiteral,
    PatternNode,
    StringLiteral,
    Variable,
)
from apxlib.parser.ast_nodes import (
    BindingPattern,
    ListPattern,
    LiteralPattern,
    PatternField,
    RecordPattern,
    RestPattern,
    TypedRecordPattern,
    WildcardPattern,
)
from apxlib.parser.base import ParserBase
from apxlib.parser.expressions import NAME_KINDS
from apxlib.parser.tokens import INTEGER_KINDS, STRING_KINDS, Token, TokenKind

_NUMBER_KINDS = frozenset(INTEGER_KINDS) | {TokenKind.FLOAT_LIT}


class PatternParser(ParserBase):
    """Pattern grammar. Mixed into :class:`apxlib.parser.parser.Parser`."""

    def parse_pattern(self) -> PatternNode:
        """Parse one pattern.

        Forms: literals (numbers may be negated), ``_``, ``name``/``$name``
        bindings, ``{ field, field: $b, field: _ }`` records,
        ``TypeName { ... }`` typed records and ``[a, $b, _, ...rest]`` lists.
        """
        tok = self._peek()
        kind = tok.kind

        if kind == TokenKind.MINUS and self._peek_ahead().kind in _NUMBER_KINDS:
            self._advance()
            number = self._advance()
            return LiteralPattern(
                value=self._number(number, negate=True, start=tok),
                span=self._span_from(tok),
            )

        if kind in _NUMBER_KINDS:
            self._advance()
            return LiteralPattern(value=self._number(tok), span=tok.span)

        if kind in STRING_KINDS:
            self._advance()
            value = StringLiteral(value=tok.value or "", style=STRING_KINDS[kind], span=tok.span)
            return LiteralPattern(value=value, span=tok.span)

        if kind in (TokenKind.TRUE, TokenKind.FALSE):
            self._advance()
            value = BoolLiteral(value=kind == TokenKind.TRUE, span=tok.span)
            return LiteralPattern(value=value, span=tok.span)

        if kind == TokenKind.NULL:
            self._advance()
            return LiteralPattern(value=NullLiteral(span=tok.span), span=tok.span)

        if kind == TokenKind.IDENT:
            if tok.lexeme == "_":
                self._advance()
                return WildcardPattern(span=tok.span)
            if self._peek_ahead().kind == TokenKind.LBRACE:
                self._advance()
                record = self._parse_record_pattern()
                return TypedRecordPattern(
                    type_name=Identifier(name=tok.lexeme, span=tok.span),
                    record=record,
                    span=self._span_from(tok),
                )
            self._advance()
            return BindingPattern(name=tok.lexeme, sigil=False, span=tok.span)

        if kind == TokenKind.VARIABLE:
            self._advance()
            return BindingPattern(name=tok.value or "", sigil=True, span=tok.span)

        if kind == TokenKind.LBRACE:
            return self._parse_record_pattern()

        if kind == TokenKind.LBRACKET:
            return self._parse_list_pattern()

        raise self._error("Expected pattern")

    def _number(
        self, tok: Token, *, negate: bool = False, start: Token | None = None
    ) -> IntLiteral | FloatLiteral:
        span = tok.span if start is None else start.span.cover(tok.span)
        if tok.kind == TokenKind.FLOAT_LIT:
            value = float(tok.lexeme)
            return FloatLiteral(value=-value if negate else value, span=span)
        literal = self._int_literal(tok, negate=negate)
        return IntLiteral(value=literal.value, radix=literal.radix, span=span)

    def _parse_record_pattern(self) -> RecordPattern:
        start = self._expect(TokenKind.LBRACE, "Expected '{' to open record pattern")
        fields: list[PatternField] = []
        self._skip_newlines()
        while not self._check(TokenKind.RBRACE):
            fields.append(self._parse_pattern_field())
            self._skip_newlines()
            if not self._match(TokenKind.COMMA):
                break
            self._skip_newlines()
        self._expect(TokenKind.RBRACE, "Expected ',' or '}' in record pattern")
        return RecordPattern(fields=tuple(fields), span=self._span_from(start))

    def _parse_pattern_field(self) -> PatternField:
        tok = self._peek()
        if tok.kind not in NAME_KINDS:
            raise self._error("Expected field name in record pattern")
        self._advance()
        name = Identifier(name=tok.lexeme, span=tok.span)

        binding: Variable | WildcardPattern | None = None
        if self._match(TokenKind.COLON):
            target = self._peek()
            if target.kind == TokenKind.VARIABLE:
                self._advance()
                binding = Variable(name=target.value or "", span=target.span)
            elif target.kind == TokenKind.IDENT and target.lexeme == "_":
                self._advance()
                binding = WildcardPattern(span=target.span)
            else:
                raise self._error("Expected '$name' or '_' after ':' in record pattern")
        return PatternField(name=name, binding=binding, span=self._span_from(tok))

    def _parse_list_pattern(self) -> ListPattern:
        start = self._expect(TokenKind.LBRACKET, "Expected '['")
        elements: list[PatternNode] = []
        seen_rest = False
        while not self._check(TokenKind.RBRACKET):
            if self._check(TokenKind.ELLIPSIS):
                rest_tok = self._peek()
                rest = self._parse_rest_pattern()
                if seen_rest:
                    raise self._error("Only one rest element is allowed in a list pattern", rest_tok)
                seen_rest = True
                elements.append(rest)
            else:
                elements.append(self.parse_pattern())
            if not self._match(TokenKind.COMMA):
                break
        self._expect(TokenKind.RBRACKET, "Expected ',' or ']' in list pattern")
        return ListPattern(elements=tuple(elements), span=self._span_from(start))

    def _parse_rest_pattern(self) -> RestPattern:
        start = self._advance()  # '...'
        tok = self._peek()
        if tok.kind == TokenKind.IDENT:
            self._advance()
            return RestPattern(name=tok.lexeme, sigil=False, span=self._span_from(start))
        if tok.kind == TokenKind.VARIABLE:
            self._advance()
            return RestPattern(name=tok.value or "", sigil=True, span=self._span_from(start))
        raise self._error("Expected name after '...'")

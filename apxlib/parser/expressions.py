"""Expression parsing for ApX: operators, pipelines, commands and literals.

Binary operators use precedence climbing over ``_BINARY_PRECEDENCE``.
Pipelines sit below every binary operator and are kept flat.  An
identifier in value position is a call when ``(`` touches it, an object
construction when it is capitalised and a record follows, and a command
otherwise.
"""

from __future__ import annotations

import logging

from apxlib.core.builtins import is_builtin_command
from apxlib.core.expressions import (
    BinaryOp,
    Block,
    BoolLiteral,
    BraceExpansion,
    Call,
    Closure,
    CommandExpression,
    CommandName,
    CommandStage,
    CommandSubstitution,
    EnvVariable,
    ExprNode,
    FieldAccess,
    Flag,
    FloatLiteral,
    Identifier,
    Lambda,
    ListLiteral,
    MethodCall,
    NullLiteral,
    ObjectConstruction,
    Parameter,
    ParenExpr,
    PathArgument,
    Pipeline,
    ProcessSubstitution,
    RangeExpr,
    RecordField,
    RecordLiteral,
    SetLiteral,
    SpecialVariable,
    StringLiteral,
    TupleLiteral,
    TypeHint,
    UnaryOp,
    Variable,
)
from apxlib.core.types import TypeName
from apxlib.parser.base import CLOSING_KINDS, OPENING_KINDS, ParserBase
from apxlib.parser.errors import AmbiguityError, ParseError
from apxlib.parser.tokens import (
    INTEGER_KINDS,
    KEYWORDS,
    PIPE_KINDS,
    STRING_KINDS,
    TokenKind,
)

logger = logging.getLogger(__name__)

_BINARY_PRECEDENCE: dict[TokenKind, int] = {
    TokenKind.NULL_COALESCE: 1,
    TokenKind.OR: 2,
    TokenKind.OR_OR: 2,
    TokenKind.AND: 3,
    TokenKind.AND_AND: 3,
    TokenKind.EQ: 4,
    TokenKind.NEQ: 4,
    TokenKind.LT: 4,
    TokenKind.GT: 4,
    TokenKind.LTE: 4,
    TokenKind.GTE: 4,
    TokenKind.MATCH_OP: 4,
    TokenKind.NOT_MATCH: 4,
    TokenKind.PLUS: 5,
    TokenKind.MINUS: 5,
    TokenKind.CONCAT: 5,
    TokenKind.STAR: 6,
    TokenKind.SLASH: 6,
    TokenKind.PERCENT: 6,
}

# Command arguments absorb comparison and tighter operators only.
_COMPARISON_PRECEDENCE = 4

_UNARY_OPERATORS: dict[TokenKind, str] = {
    TokenKind.NOT: "not",
    TokenKind.BANG: "!",
    TokenKind.MINUS: "-",
}

_NUMBER_KINDS = frozenset(INTEGER_KINDS) | {TokenKind.FLOAT_LIT}

# Tokens usable as a field, record key or pattern field name.
NAME_KINDS = frozenset({TokenKind.IDENT, *KEYWORDS.values()})

# Keywords read as bare words in argument position: ``echo test``, ``grep match x``.
_WORD_KEYWORD_KINDS = frozenset(KEYWORDS.values()) - {
    TokenKind.NOT,
    TokenKind.AND,
    TokenKind.OR,
    TokenKind.TRUE,
    TokenKind.FALSE,
    TokenKind.NULL,
}

_ARGUMENT_START_KINDS = frozenset(
    {
        *_NUMBER_KINDS,
        *STRING_KINDS,
        TokenKind.TRUE,
        TokenKind.FALSE,
        TokenKind.NULL,
        TokenKind.VARIABLE,
        TokenKind.ENV_VARIABLE,
        TokenKind.SPECIAL_VARIABLE,
        TokenKind.IDENT,
        TokenKind.LBRACKET,
        TokenKind.LPAREN,
        TokenKind.DOLLAR_LPAREN,
        TokenKind.PROC_IN,
        TokenKind.PROC_OUT,
        TokenKind.LONG_FLAG,
        TokenKind.SHORT_FLAG,
        TokenKind.PATH,
        TokenKind.DOT,
        TokenKind.DOTDOT,
        TokenKind.STAR,
        TokenKind.SLASH,
        TokenKind.MINUS,
        TokenKind.BANG,
        TokenKind.NOT,
        *_WORD_KEYWORD_KINDS,
    }
)

# Tokens that glue onto a preceding bare word or path (``file.txt``).
_WORD_PART_KINDS = frozenset({TokenKind.IDENT, TokenKind.INT_LIT, *KEYWORDS.values()})


class ExpressionParser(ParserBase):
    """Expression grammar. Mixed into :class:`apxlib.parser.parser.Parser`."""

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def parse_expression(self) -> ExprNode:
        """Parse a full expression, pipelines included."""
        return self._parse_pipeline()

    def _parse_pipeline(self) -> ExprNode:
        first = self._parse_binary(0)
        if not self._check(*PIPE_KINDS):
            return first
        stages: list[ExprNode] = [first]
        operators: list[str] = []
        while self._check(*PIPE_KINDS):
            op = self._advance()
            self._skip_newlines()
            operators.append(op.lexeme)
            stages.append(self._parse_binary(0))
        return Pipeline(
            stages=tuple(stages),
            operators=tuple(operators),
            span=stages[0].span.cover(stages[-1].span),
        )

    def _parse_binary(self, min_precedence: int) -> ExprNode:
        """Left-associative binary operators at or above *min_precedence*."""
        left = self._parse_unary()
        while True:
            tok = self._peek()
            precedence = _BINARY_PRECEDENCE.get(tok.kind)
            if precedence is None or precedence < min_precedence:
                break
            if self._arg_mode and tok.kind == TokenKind.MINUS and self._starts_negative_argument():
                break
            self._advance()
            self._skip_newlines()
            right = self._parse_binary(precedence + 1)
            left = BinaryOp(
                op=tok.lexeme, left=left, right=right, span=left.span.cover(right.span)
            )
        return left

    def _starts_negative_argument(self) -> bool:
        """``-`` spaced from the previous token but glued to the next: ``echo 1 -1``."""
        minus = self._peek()
        return not self._adjacent(self._previous(), minus) and self._adjacent(
            minus, self._peek_ahead()
        )

    def _parse_unary(self) -> ExprNode:
        """Prefix ``not``, ``!`` and ``-``."""
        tok = self._peek()
        op = _UNARY_OPERATORS.get(tok.kind)
        if op is not None:
            self._advance()
            operand = self._parse_unary()
            return UnaryOp(op=op, operand=operand, span=tok.span.cover(operand.span))
        return self._parse_postfix()

    def _parse_postfix(self) -> ExprNode:
        """Field access and method calls glued to a primary: ``$it.name``, ``$s.len()``."""
        expr = self._parse_primary()
        while self._check(TokenKind.DOT):
            dot = self._peek()
            name_tok = self._peek_ahead()
            if not (
                self._adjacent(self._previous(), dot)
                and self._adjacent(dot, name_tok)
                and (name_tok.kind in NAME_KINDS or name_tok.kind == TokenKind.INT_LIT)
            ):
                break
            self._advance()
            self._advance()
            name = Identifier(name=name_tok.lexeme, span=name_tok.span)
            if self._check(TokenKind.LPAREN) and self._adjacent(name_tok, self._peek()):
                args = self._parse_call_arguments()
                expr = MethodCall(
                    target=expr, method=name, args=args, span=self._span_from(expr.span)
                )
            else:
                expr = FieldAccess(target=expr, field=name, span=self._span_from(expr.span))
        return expr

    # ------------------------------------------------------------------
    # Primary expressions
    # ------------------------------------------------------------------

    def _parse_primary(self) -> ExprNode:
        tok = self._peek()
        kind = tok.kind

        if kind in INTEGER_KINDS:
            self._advance()
            return self._maybe_range(self._int_literal(tok))

        if kind == TokenKind.FLOAT_LIT:
            self._advance()
            return FloatLiteral(value=float(tok.lexeme), span=tok.span)

        if kind in STRING_KINDS:
            self._advance()
            return StringLiteral(value=tok.value or "", style=STRING_KINDS[kind], span=tok.span)

        if kind in (TokenKind.TRUE, TokenKind.FALSE):
            self._advance()
            return BoolLiteral(value=kind == TokenKind.TRUE, span=tok.span)

        if kind == TokenKind.NULL:
            self._advance()
            return NullLiteral(span=tok.span)

        if kind == TokenKind.VARIABLE:
            self._advance()
            return self._maybe_range(Variable(name=tok.value or "", span=tok.span))

        if kind == TokenKind.ENV_VARIABLE:
            self._advance()
            return EnvVariable(name=tok.value or "", span=tok.span)

        if kind == TokenKind.SPECIAL_VARIABLE:
            self._advance()
            return SpecialVariable(name=tok.value or "", span=tok.span)

        if kind == TokenKind.PATH:
            self._advance()
            return PathArgument(path=tok.lexeme, span=tok.span)

        if kind == TokenKind.LBRACKET:
            return self._parse_list()

        if kind == TokenKind.LPAREN:
            return self._parse_paren_or_tuple()

        if kind == TokenKind.DOLLAR_LPAREN:
            self._advance()
            with self._nested():
                expr = self.parse_expression()
            self._expect(TokenKind.RPAREN, "Expected ')' to close command substitution")
            return CommandSubstitution(expr=expr, span=self._span_from(tok))

        if kind in (TokenKind.PROC_IN, TokenKind.PROC_OUT):
            self._advance()
            with self._nested():
                expr = self.parse_expression()
            self._expect(TokenKind.RPAREN, "Expected ')' to close process substitution")
            direction = "in" if kind == TokenKind.PROC_IN else "out"
            return ProcessSubstitution(direction=direction, expr=expr, span=self._span_from(tok))

        if kind == TokenKind.LBRACE and not self._no_brace:
            return self._parse_brace_value()

        if kind in (TokenKind.PIPE, TokenKind.OR_OR):
            return self._parse_lambda()

        if kind == TokenKind.SET and self._peek_ahead().kind == TokenKind.LBRACKET:
            self._advance()
            elements = self._parse_bracketed_elements()
            return SetLiteral(elements=elements, span=self._span_from(tok))

        if kind in _WORD_KEYWORD_KINDS and self._arg_mode:
            return self._parse_word()

        if kind == TokenKind.IDENT:
            if self._arg_mode:
                return self._parse_word()
            return self._parse_identifier_expression()

        raise self._error("Expected expression")

    def _maybe_range(self, start: ExprNode) -> ExprNode:
        """``start..end`` or ``start..=end`` with integer or variable bounds."""
        if not self._check(TokenKind.DOTDOT, TokenKind.DOTDOT_EQ):
            return start
        op = self._advance()
        tok = self._peek()
        end: ExprNode
        if tok.kind in INTEGER_KINDS:
            self._advance()
            end = self._int_literal(tok)
        elif tok.kind == TokenKind.VARIABLE:
            self._advance()
            end = Variable(name=tok.value or "", span=tok.span)
        else:
            raise self._error(f"Expected integer or variable after '{op.lexeme}'")
        return RangeExpr(
            start=start,
            end=end,
            inclusive=op.kind == TokenKind.DOTDOT_EQ,
            span=start.span.cover(end.span),
        )

    def _parse_comma_list(self, closing: TokenKind, what: str) -> tuple[ExprNode, ...]:
        """Comma-separated expressions up to *closing*; trailing comma allowed."""
        elements: list[ExprNode] = []
        with self._nested():
            while not self._check(closing):
                elements.append(self.parse_expression())
                if not self._match(TokenKind.COMMA):
                    break
        self._expect(closing, f"Expected ',' or '{_CLOSING_TEXT[closing]}' in {what}")
        return tuple(elements)

    def _parse_bracketed_elements(self) -> tuple[ExprNode, ...]:
        self._expect(TokenKind.LBRACKET, "Expected '['")
        return self._parse_comma_list(TokenKind.RBRACKET, "list")

    def _parse_list(self) -> ListLiteral:
        start = self._peek()
        elements = self._parse_bracketed_elements()
        return ListLiteral(elements=elements, span=self._span_from(start))

    def _parse_paren_or_tuple(self) -> ExprNode:
        """``(expr)``, ``(a, b, ...)`` or ``()``."""
        start = self._advance()
        if self._match(TokenKind.RPAREN):
            return TupleLiteral(elements=(), span=self._span_from(start))
        with self._nested():
            first = self.parse_expression()
            if not self._check(TokenKind.COMMA):
                self._expect(TokenKind.RPAREN, "Expected ')' after expression")
                return ParenExpr(expr=first, span=self._span_from(start))
            self._advance()
            rest = self._parse_comma_list(TokenKind.RPAREN, "tuple")
        return TupleLiteral(elements=(first, *rest), span=self._span_from(start))

    def _parse_call_arguments(self) -> tuple[ExprNode, ...]:
        self._expect(TokenKind.LPAREN, "Expected '('")
        return self._parse_comma_list(TokenKind.RPAREN, "argument list")

    # ------------------------------------------------------------------
    # Identifiers in value position: calls, objects, commands
    # ------------------------------------------------------------------

    def _parse_identifier_expression(self) -> ExprNode:
        tok = self._peek()
        nxt = self._peek_ahead()

        if tok.lexeme == "tuple" and nxt.kind == TokenKind.LBRACKET:
            self._advance()
            elements = self._parse_bracketed_elements()
            return TupleLiteral(elements=elements, span=self._span_from(tok))

        if nxt.kind == TokenKind.LPAREN and self._adjacent(tok, nxt):
            self._advance()
            callee = Identifier(name=tok.lexeme, span=tok.span)
            args = self._parse_call_arguments()
            return Call(callee=callee, args=args, span=self._span_from(tok))

        if (
            tok.lexeme[0].isupper()
            and nxt.kind == TokenKind.LBRACE
            and not self._no_brace
            and self._record_shaped(self._pos + 1)
        ):
            self._advance()
            type_name = Identifier(name=tok.lexeme, span=tok.span)
            record = self._parse_record()
            return ObjectConstruction(type_name=type_name, record=record, span=self._span_from(tok))

        return self._parse_command_expression()

    def _parse_word(self) -> ExprNode:
        """Bare-word argument.  Dotted parts glued together merge: ``file.txt``."""
        start = self._advance()
        parts = [start.lexeme]
        while self._check(TokenKind.DOT):
            dot = self._peek()
            part = self._peek_ahead()
            if not (
                self._adjacent(self._previous(), dot)
                and self._adjacent(dot, part)
                and part.kind in _WORD_PART_KINDS
            ):
                break
            self._advance()
            self._advance()
            parts.extend((".", part.lexeme))

        if len(parts) == 1 and self._check(TokenKind.LPAREN) and self._adjacent(start, self._peek()):
            callee = Identifier(name=start.lexeme, span=start.span)
            args = self._parse_call_arguments()
            return Call(callee=callee, args=args, span=self._span_from(start))
        return Identifier(name="".join(parts), span=self._span_from(start))

    def _parse_command_name(self) -> CommandName:
        tok = self._expect(TokenKind.IDENT, "Expected command name")
        dot = self._peek()
        member = self._peek_ahead()
        if (
            dot.kind == TokenKind.DOT
            and member.kind == TokenKind.IDENT
            and self._adjacent(tok, dot)
            and self._adjacent(dot, member)
        ):
            self._advance()
            self._advance()
            return CommandName(
                name=member.lexeme, namespace=tok.lexeme, span=self._span_from(tok)
            )
        return CommandName(
            name=tok.lexeme, builtin=is_builtin_command(tok.lexeme), span=tok.span
        )

    def _parse_command_expression(self) -> CommandExpression:
        """``name args (| name args)*`` with pipe continuations folded in."""
        stages = [self._parse_command_stage()]
        operators: list[str] = []
        while self._check(*PIPE_KINDS) and self._pipe_continues_command():
            op = self._advance()
            self._skip_newlines()
            operators.append(op.lexeme)
            stages.append(self._parse_command_stage())
        return CommandExpression(
            stages=tuple(stages),
            operators=tuple(operators),
            span=stages[0].span.cover(stages[-1].span),
        )

    def _pipe_continues_command(self) -> bool:
        index = self._significant_index(self._pos + 1)
        name = self._token_at(index)
        if name.kind != TokenKind.IDENT:
            return False
        after = self._token_at(index + 1)
        if after.kind == TokenKind.LPAREN and self._adjacent(name, after):
            return False
        return not (name.lexeme == "tuple" and after.kind == TokenKind.LBRACKET)

    def _parse_command_stage(self) -> CommandStage:
        name = self._parse_command_name()
        args: list[ExprNode] = []
        with self._mode(arg_mode=True):
            while self._starts_argument():
                args.append(self._parse_argument())
        return CommandStage(name=name, args=tuple(args), span=self._span_from(name.span))

    def _starts_argument(self) -> bool:
        tok = self._peek()
        if tok.kind in _ARGUMENT_START_KINDS:
            return True
        if tok.kind == TokenKind.LBRACE:
            return not self._no_brace
        if tok.kind in (TokenKind.PIPE, TokenKind.OR_OR):
            return self._lambda_ahead(self._pos)
        return False

    def _lambda_ahead(self, index: int) -> bool:
        """True if ``|params| ->`` or ``|params| {`` starts at *index*."""
        tok = self._token_at(index)
        if tok.kind == TokenKind.OR_OR:
            return self._token_at(index + 1).kind in (TokenKind.ARROW, TokenKind.LBRACE)
        if tok.kind != TokenKind.PIPE:
            return False
        i = index + 1
        while True:
            if self._token_at(i).kind not in (TokenKind.VARIABLE, TokenKind.IDENT):
                return False
            i += 1
            if self._token_at(i).kind == TokenKind.COLON:
                i += 2
                if self._token_at(i).kind == TokenKind.QUESTION:
                    i += 1
            kind = self._token_at(i).kind
            if kind == TokenKind.COMMA:
                i += 1
                continue
            if kind != TokenKind.PIPE:
                return False
            return self._token_at(i + 1).kind in (TokenKind.ARROW, TokenKind.LBRACE)

    def _parse_argument(self) -> ExprNode:
        tok = self._peek()
        if tok.kind == TokenKind.LONG_FLAG:
            return self._parse_long_flag()
        if tok.kind == TokenKind.SHORT_FLAG:
            self._advance()
            return Flag(name=tok.value or "", long=False, span=tok.span)
        if tok.kind in (TokenKind.DOT, TokenKind.DOTDOT, TokenKind.STAR, TokenKind.SLASH):
            return self._parse_path_word()
        return self._parse_binary(_COMPARISON_PRECEDENCE)

    def _parse_path_word(self) -> PathArgument:
        """``.``, ``..``, ``/``, ``*`` and whatever is glued to them (``.hidden``)."""
        start = self._advance()
        parts = [start.lexeme]
        while (
            self._check(TokenKind.DOT, TokenKind.DOTDOT, TokenKind.STAR, *_WORD_PART_KINDS)
            and self._adjacent(self._previous(), self._peek())
        ):
            parts.append(self._advance().lexeme)
        return PathArgument(path="".join(parts), span=self._span_from(start))

    def _parse_long_flag(self) -> Flag:
        """``--name``, ``--name=value`` or ``--name value`` (number, string or word)."""
        tok = self._advance()
        value: ExprNode | None = None
        nxt = self._peek()
        if nxt.kind == TokenKind.ASSIGN and self._adjacent(tok, nxt):
            self._advance()
            value = self._parse_unary()
        elif (
            nxt.kind in _NUMBER_KINDS
            or nxt.kind in STRING_KINDS
            or nxt.kind == TokenKind.IDENT
            or nxt.kind in _WORD_KEYWORD_KINDS
        ):
            value = self._parse_postfix()
        return Flag(name=tok.value or "", long=True, value=value, span=self._span_from(tok))

    # ------------------------------------------------------------------
    # Braces: records, closures, brace expansion
    # ------------------------------------------------------------------

    def _record_shaped(self, index: int) -> bool:
        """``{}`` or ``{ key:`` at *index*."""
        if self._token_at(index).kind != TokenKind.LBRACE:
            return False
        first_index = self._significant_index(index + 1)
        first = self._token_at(first_index)
        if first.kind == TokenKind.RBRACE:
            return True
        if first.kind == TokenKind.IDENT or first.kind in STRING_KINDS:
            return self._token_at(first_index + 1).kind == TokenKind.COLON
        return False

    def _classify_brace(self, index: int) -> str:
        """Scan the braces at *index*: ``expansion``, ``colon`` or ``other``."""
        depth = 0
        has_colon = has_comma = has_terminator = False
        body: list[TokenKind] = []
        i = index + 1
        while True:
            kind = self._token_at(i).kind
            if kind == TokenKind.EOF or (depth == 0 and kind == TokenKind.RBRACE):
                break
            if depth == 0:
                body.append(kind)
                if kind == TokenKind.COLON:
                    has_colon = True
                elif kind == TokenKind.COMMA:
                    has_comma = True
                elif kind in (TokenKind.NEWLINE, TokenKind.SEMICOLON):
                    has_terminator = True
            if kind in OPENING_KINDS:
                depth += 1
            elif kind in CLOSING_KINDS:
                depth -= 1
            i += 1

        if has_colon:
            return "colon"
        int_range = (
            len(body) == 3
            and body[0] in INTEGER_KINDS
            and body[1] == TokenKind.DOTDOT
            and body[2] in INTEGER_KINDS
        )
        if not has_terminator and (has_comma or int_range):
            return "expansion"
        return "other"

    def _parse_brace_value(self) -> ExprNode:
        """Decide what a ``{`` in value position is, then parse it."""
        start = self._peek()
        first_index = self._significant_index(self._pos + 1)
        first = self._token_at(first_index)

        if first.kind == TokenKind.RBRACE or self._record_shaped(self._pos):
            return self._parse_record()
        if first.kind in (TokenKind.PIPE, TokenKind.OR_OR):
            return self._parse_closure()

        shape = self._classify_brace(self._pos)
        if shape == "expansion":
            return self._parse_brace_expansion()
        if shape == "other":
            return self._parse_closure()

        saved_pos = self._pos
        mark = self._diag.mark()
        try:
            with self._mode(recover=False):
                return self._parse_record()
        except ParseError:
            self._pos = saved_pos
            self._diag.rollback(mark)
        logger.debug("Record parse failed at %s, retrying as closure", start.span)
        try:
            with self._mode(recover=False):
                return self._parse_closure()
        except ParseError:
            self._pos = saved_pos
            self._diag.rollback(mark)
        raise self._error(
            "Ambiguous '{': cannot parse as a record or a closure",
            start,
            error_type=AmbiguityError,
        )

    def _parse_record(self) -> RecordLiteral:
        start = self._expect(TokenKind.LBRACE, "Expected '{'")
        fields: list[RecordField] = []
        with self._nested():
            self._skip_newlines()
            while not self._check(TokenKind.RBRACE):
                fields.append(self._parse_record_field())
                separated = self._check(TokenKind.NEWLINE)
                self._skip_newlines()
                if self._match(TokenKind.COMMA):
                    self._skip_newlines()
                elif not separated and not self._check(TokenKind.RBRACE):
                    raise self._error("Expected ',' or '}' in record")
            self._expect(TokenKind.RBRACE, "Expected '}' to close record")
        return RecordLiteral(fields=tuple(fields), span=self._span_from(start))

    def _parse_record_field(self) -> RecordField:
        tok = self._peek()
        key: Identifier | StringLiteral
        if tok.kind in STRING_KINDS:
            self._advance()
            key = StringLiteral(value=tok.value or "", style=STRING_KINDS[tok.kind], span=tok.span)
        elif tok.kind in NAME_KINDS:
            self._advance()
            key = Identifier(name=tok.lexeme, span=tok.span)
        else:
            raise self._error("Expected record key")
        self._expect(TokenKind.COLON, "Expected ':' after record key")
        self._skip_newlines()
        value = self.parse_expression()
        return RecordField(key=key, value=value, span=self._span_from(tok))

    def _parse_brace_expansion(self) -> BraceExpansion:
        start = self._expect(TokenKind.LBRACE, "Expected '{'")
        items: list[ExprNode] = []
        with self._mode(no_brace=False, arg_mode=True):
            while True:
                items.append(self._parse_argument())
                if not self._match(TokenKind.COMMA):
                    break
        self._expect(TokenKind.RBRACE, "Expected '}' to close brace expansion")
        return BraceExpansion(items=tuple(items), span=self._span_from(start))

    def _parse_closure(self) -> Closure:
        """``{ |params| statements }`` or ``{ statements }``."""
        start = self._expect(TokenKind.LBRACE, "Expected '{'")
        params: tuple[Parameter, ...] = ()
        explicit = False
        if self._check(TokenKind.PIPE):
            self._advance()
            params = self._parse_parameters(TokenKind.PIPE, allow_defaults=False)
            explicit = True
        elif self._match(TokenKind.OR_OR):
            explicit = True
        with self._nested():
            statements = self._parse_statement_list(in_block=True)
        self._expect(TokenKind.RBRACE, "Expected '}' to close closure")
        span = self._span_from(start)
        return Closure(
            params=params,
            body=Block(statements=tuple(statements), span=span),
            explicit_params=explicit,
            span=span,
        )

    def _parse_block(self) -> Block:
        """``{ statements }`` as the body of a statement or definition."""
        start = self._expect(TokenKind.LBRACE, "Expected '{'")
        with self._nested():
            statements = self._parse_statement_list(in_block=True)
        self._expect(TokenKind.RBRACE, "Expected '}' to close block")
        return Block(statements=tuple(statements), span=self._span_from(start))

    # ------------------------------------------------------------------
    # Lambdas, parameters and type hints
    # ------------------------------------------------------------------

    def _parse_lambda(self) -> Lambda:
        """``|params| -> type { block }``; ``||`` for no parameters."""
        start = self._advance()
        params: tuple[Parameter, ...] = ()
        if start.kind == TokenKind.PIPE:
            params = self._parse_parameters(TokenKind.PIPE, allow_defaults=False)
        return_type = None
        if self._match(TokenKind.ARROW):
            return_type = self._parse_type_hint()
        body = self._parse_block()
        return Lambda(params=params, return_type=return_type, body=body, span=self._span_from(start))

    def _parse_parameters(self, closing: TokenKind, *, allow_defaults: bool) -> tuple[Parameter, ...]:
        """Parameters up to and including *closing*; the opener is already consumed."""
        params: list[Parameter] = []
        while not self._check(closing):
            params.append(self._parse_parameter(allow_defaults))
            if not self._match(TokenKind.COMMA):
                break
        self._expect(closing, f"Expected ',' or '{_CLOSING_TEXT[closing]}' in parameter list")
        return tuple(params)

    def _parse_parameter(self, allow_default: bool) -> Parameter:
        tok = self._peek()
        if tok.kind == TokenKind.VARIABLE:
            name, sigil = tok.value or "", True
        elif tok.kind == TokenKind.IDENT:
            name, sigil = tok.lexeme, False
        else:
            raise self._error("Expected parameter name")
        self._advance()

        type_hint = None
        if self._match(TokenKind.COLON):
            type_hint = self._parse_type_hint()

        default = None
        if allow_default and self._match(TokenKind.ASSIGN):
            with self._nested():
                default = self.parse_expression()

        return Parameter(
            name=name, sigil=sigil, type_hint=type_hint, default=default, span=self._span_from(tok)
        )

    def _parse_type_hint(self) -> TypeHint:
        """A name from the TypeName vocabulary, optionally followed by ``?``."""
        tok = self._peek()
        if tok.kind not in NAME_KINDS:
            raise self._error("Expected type name")
        if TypeName.from_name(tok.lexeme) is None:
            raise self._error("Unknown type name")
        self._advance()
        optional = self._match(TokenKind.QUESTION) is not None
        return TypeHint(name=tok.lexeme, optional=optional, span=self._span_from(tok))


_CLOSING_TEXT: dict[TokenKind, str] = {
    TokenKind.RPAREN: ")",
    TokenKind.RBRACKET: "]",
    TokenKind.RBRACE: "}",
    TokenKind.PIPE: "|",
}

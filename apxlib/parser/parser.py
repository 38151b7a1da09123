"""Recursive-descent parser for ApX source code.

Handles:
- ``let|const|set NAME = value`` and ``$var = value`` / ``$var += value``
- ``if``/``elif``/``else``, ``for ... in``, ``while``, ``loop``, ``match``,
  ``try``/``catch``
- ``fn``, ``macro``, ``alias``, ``obj``, ``enum`` and ``test`` definitions,
  each optionally preceded by decorators (``@name``, ``@name(args)``,
  ``@name "arg"``, ``@name 42``)
- ``use``, ``from ... import``, ``source``
- ``return``, ``break``, ``continue``
- Expression statements (see :mod:`apxlib.parser.expressions`)

Syntax errors are recorded in the diagnostic collector; the failing
statement is replaced by an :class:`ErrorNode` and parsing resumes at the
next terminator.
"""

from __future__ import annotations

import logging

from apxlib.core.expressions import (
    Block,
    ExprNode,
    Identifier,
    Node,
    PatternNode,
    StringLiteral,
    Variable,
)
from apxlib.diagnostics.collector import DiagnosticCollector
from apxlib.diagnostics.location import SourceSpan
from apxlib.parser.ast_nodes import (
    AliasDefinition,
    BreakStatement,
    ContinueStatement,
    Decorator,
    ElifClause,
    EnumDefinition,
    ForStatement,
    FromImport,
    FunctionDefinition,
    IfStatement,
    ImportItem,
    LetStatement,
    LoopStatement,
    MacroDefinition,
    MatchArm,
    MatchStatement,
    ModulePath,
    ObjectDefinition,
    ObjectField,
    Parameter,
    Program,
    ReturnStatement,
    SourceStatement,
    TestDefinition,
    TryStatement,
    UseStatement,
    VariableAssignment,
    WhileStatement,
)
from apxlib.parser.errors import ParseError
from apxlib.parser.expressions import ExpressionParser
from apxlib.parser.lexer import Lexer
from apxlib.parser.patterns import PatternParser
from apxlib.parser.tokens import (
    INTEGER_KINDS,
    STRING_KINDS,
    TERMINATOR_KINDS,
    Token,
    TokenKind,
)

logger = logging.getLogger(__name__)

_ASSIGNMENT_OPS: frozenset[TokenKind] = frozenset(
    {
        TokenKind.ASSIGN,
        TokenKind.PLUS_ASSIGN,
        TokenKind.MINUS_ASSIGN,
        TokenKind.STAR_ASSIGN,
        TokenKind.SLASH_ASSIGN,
        TokenKind.PERCENT_ASSIGN,
    }
)

_DEFINITION_KINDS: frozenset[TokenKind] = frozenset(
    {
        TokenKind.FN,
        TokenKind.MACRO,
        TokenKind.ALIAS,
        TokenKind.OBJ,
        TokenKind.ENUM,
        TokenKind.TEST,
    }
)


class Parser(ExpressionParser, PatternParser):
    """Recursive-descent parser for ApX programs."""

    def __init__(
        self,
        tokens: list[Token],
        diagnostics: DiagnosticCollector | None = None,
        *,
        start: int = 0,
        fail_fast: bool = False,
    ) -> None:
        super().__init__(tokens, diagnostics, start=start, recover=not fail_fast)

    # ------------------------------------------------------------------
    # Top-level program parsing
    # ------------------------------------------------------------------

    def parse_program(self, filename: str | None = None) -> Program:
        """Parse a complete ApX program.

        The program span always covers the whole input, from offset 0 to
        the EOF token.
        """
        eof = self._tokens[-1]
        file = filename if filename is not None else eof.span.file
        statements = self._parse_statement_list(in_block=False)
        span = SourceSpan(
            file=file,
            line=1,
            column=1,
            start=0,
            end=eof.end,
            end_line=eof.span.end_line,
            end_column=eof.span.end_column,
        )
        return Program(statements=tuple(statements), file=file, span=span)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def parse_statement(self) -> Node:
        """Parse one statement after any leading terminators.

        Raises:
            ParseError: On a syntax error.
        """
        self._skip_terminators()
        tok = self._peek()
        kind = tok.kind

        if kind == TokenKind.AT:
            return self._parse_decorated_definition()
        if kind in _DEFINITION_KINDS:
            return self._parse_definition(())
        if kind in (TokenKind.LET, TokenKind.CONST):
            return self._parse_let()
        if kind == TokenKind.SET and self._peek_ahead().kind == TokenKind.IDENT:
            return self._parse_let()
        if kind == TokenKind.IF:
            return self._parse_if()
        if kind == TokenKind.FOR:
            return self._parse_for()
        if kind == TokenKind.WHILE:
            return self._parse_while()
        if kind == TokenKind.LOOP:
            return self._parse_loop()
        if kind == TokenKind.MATCH:
            return self._parse_match()
        if kind == TokenKind.TRY:
            return self._parse_try()
        if kind == TokenKind.USE:
            return self._parse_use()
        if kind == TokenKind.FROM:
            return self._parse_from_import()
        if kind == TokenKind.SOURCE:
            return self._parse_source()
        if kind == TokenKind.RETURN:
            return self._parse_return()
        if kind == TokenKind.BREAK:
            self._advance()
            return BreakStatement(span=tok.span)
        if kind == TokenKind.CONTINUE:
            self._advance()
            return ContinueStatement(span=tok.span)
        if kind == TokenKind.VARIABLE and self._peek_ahead().kind in _ASSIGNMENT_OPS:
            return self._parse_variable_assignment()
        return self.parse_expression()

    def _parse_assignment_value(self) -> Node:
        """Right-hand side of ``=``: an expression or a nested assignment."""
        if self._check(TokenKind.VARIABLE) and self._peek_ahead().kind in _ASSIGNMENT_OPS:
            return self._parse_variable_assignment()
        return self.parse_expression()

    def _parse_let(self) -> LetStatement:
        """Parse ``let|const|set NAME = value``."""
        keyword = self._advance()
        name_tok = self._expect(TokenKind.IDENT, f"Expected name after '{keyword.lexeme}'")
        self._expect(TokenKind.ASSIGN, "Expected '=' after name")
        value = self._parse_assignment_value()
        return LetStatement(
            keyword=keyword.lexeme,
            name=Identifier(name=name_tok.lexeme, span=name_tok.span),
            value=value,
            span=self._span_from(keyword),
        )

    def _parse_variable_assignment(self) -> VariableAssignment:
        """Parse ``$var = value`` or ``$var op= value``; right-associative."""
        var_tok = self._advance()
        op = self._advance()
        value = self._parse_assignment_value()
        return VariableAssignment(
            target=Variable(name=var_tok.value or "", span=var_tok.span),
            op=op.lexeme,
            value=value,
            span=self._span_from(var_tok),
        )

    def _parse_condition(self) -> ExprNode:
        """Expression in a control-flow header, where ``{`` opens the body."""
        with self._mode(no_brace=True, arg_mode=False):
            return self.parse_expression()

    # ------------------------------------------------------------------
    # Control flow
    # ------------------------------------------------------------------

    def _parse_if(self) -> IfStatement:
        if_tok = self._advance()
        condition = self._parse_condition()
        body = self._parse_block()

        elifs: list[ElifClause] = []
        while self._peek_past_newlines() == TokenKind.ELIF:
            self._skip_newlines()
            elif_tok = self._advance()
            elif_condition = self._parse_condition()
            elif_body = self._parse_block()
            elifs.append(
                ElifClause(condition=elif_condition, body=elif_body, span=self._span_from(elif_tok))
            )

        else_body: Block | None = None
        if self._peek_past_newlines() == TokenKind.ELSE:
            self._skip_newlines()
            self._advance()
            else_body = self._parse_block()

        return IfStatement(
            condition=condition,
            body=body,
            elifs=tuple(elifs),
            else_body=else_body,
            span=self._span_from(if_tok),
        )

    def _parse_for(self) -> ForStatement:
        """Parse ``for $x in iterable { }`` (or ``for x in ...``)."""
        for_tok = self._advance()
        var_tok = self._peek()
        variable: Variable | Identifier
        if var_tok.kind == TokenKind.VARIABLE:
            variable = Variable(name=var_tok.value or "", span=var_tok.span)
        elif var_tok.kind == TokenKind.IDENT:
            variable = Identifier(name=var_tok.lexeme, span=var_tok.span)
        else:
            raise self._error("Expected loop variable after 'for'")
        self._advance()
        self._expect(TokenKind.IN, "Expected 'in' after loop variable")
        iterable = self._parse_condition()
        body = self._parse_block()
        return ForStatement(
            variable=variable, iterable=iterable, body=body, span=self._span_from(for_tok)
        )

    def _parse_while(self) -> WhileStatement:
        while_tok = self._advance()
        condition = self._parse_condition()
        body = self._parse_block()
        return WhileStatement(condition=condition, body=body, span=self._span_from(while_tok))

    def _parse_loop(self) -> LoopStatement:
        loop_tok = self._advance()
        body = self._parse_block()
        return LoopStatement(body=body, span=self._span_from(loop_tok))

    def _parse_match(self) -> MatchStatement:
        """Parse ``match subject { pattern (if guard)? => body, ... }``."""
        match_tok = self._advance()
        subject = self._parse_condition()
        self._expect(TokenKind.LBRACE, "Expected '{' after match subject")
        arms: list[MatchArm] = []
        with self._nested():
            while True:
                self._skip_terminators()
                if self._check(TokenKind.RBRACE):
                    break
                arms.append(self._parse_match_arm())
                if not self._match(TokenKind.COMMA) and not self._check(
                    TokenKind.NEWLINE, TokenKind.SEMICOLON, TokenKind.RBRACE
                ):
                    raise self._error("Expected ',' or newline between match arms")
        self._expect(TokenKind.RBRACE, "Expected '}' to close match")
        return MatchStatement(subject=subject, arms=tuple(arms), span=self._span_from(match_tok))

    def _parse_match_arm(self) -> MatchArm:
        start = self._peek()
        pattern: PatternNode = self.parse_pattern()
        guard: ExprNode | None = None
        if self._match(TokenKind.IF):
            guard = self.parse_expression()
        self._expect(TokenKind.FAT_ARROW, "Expected '=>' after match pattern")
        self._skip_newlines()
        body: Node
        if self._check(TokenKind.LBRACE) and not self._record_shaped(self._pos):
            body = self._parse_block()
        else:
            body = self.parse_expression()
        return MatchArm(pattern=pattern, guard=guard, body=body, span=self._span_from(start))

    def _parse_try(self) -> TryStatement:
        """Parse ``try { } catch name? { }``; ``catch`` may start a new line."""
        try_tok = self._advance()
        body = self._parse_block()
        if self._peek_past_newlines() == TokenKind.CATCH:
            self._skip_newlines()
        self._expect(TokenKind.CATCH, "Expected 'catch' after try block")
        error_name: Identifier | None = None
        name_tok = self._peek()
        if name_tok.kind == TokenKind.IDENT:
            self._advance()
            error_name = Identifier(name=name_tok.lexeme, span=name_tok.span)
        elif name_tok.kind in (TokenKind.VARIABLE, TokenKind.SPECIAL_VARIABLE):
            self._advance()
            error_name = Identifier(name=name_tok.value or "", span=name_tok.span)
        handler = self._parse_block()
        return TryStatement(
            body=body, error_name=error_name, handler=handler, span=self._span_from(try_tok)
        )

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def _parse_decorators(self) -> list[Decorator]:
        """Parse ``@name``, ``@name(args)``, ``@name "arg"`` or ``@name 42``, one or more."""
        decorators: list[Decorator] = []
        while self._check(TokenKind.AT):
            at_tok = self._advance()
            name_tok = self._expect(TokenKind.IDENT, "Expected decorator name after '@'")
            args: tuple[ExprNode, ...] = ()
            nxt = self._peek()
            if nxt.kind == TokenKind.LPAREN and self._adjacent(name_tok, nxt):
                args = self._parse_call_arguments()
            elif nxt.kind in STRING_KINDS or nxt.kind in INTEGER_KINDS or nxt.kind == TokenKind.FLOAT_LIT:
                args = (self._parse_primary(),)
            decorators.append(
                Decorator(name=name_tok.lexeme, args=args, span=self._span_from(at_tok))
            )
            self._skip_newlines()
        return decorators

    def _parse_decorated_definition(self) -> Node:
        decorators = self._parse_decorators()
        if not self._check(*_DEFINITION_KINDS):
            raise self._error("Expected a definition after decorators")
        return self._parse_definition(tuple(decorators))

    def _parse_definition(self, decorators: tuple[Decorator, ...]) -> Node:
        kind = self._peek().kind
        if kind == TokenKind.FN:
            return self._parse_function(decorators)
        if kind == TokenKind.MACRO:
            return self._parse_macro(decorators)
        if kind == TokenKind.ALIAS:
            return self._parse_alias(decorators)
        if kind == TokenKind.OBJ:
            return self._parse_object(decorators)
        if kind == TokenKind.ENUM:
            return self._parse_enum(decorators)
        return self._parse_test(decorators)

    def _definition_start(self, decorators: tuple[Decorator, ...], keyword: Token) -> Token | SourceSpan:
        return decorators[0].span if decorators else keyword

    def _parse_name(self, what: str) -> Identifier:
        tok = self._expect(TokenKind.IDENT, f"Expected {what} name")
        return Identifier(name=tok.lexeme, span=tok.span)

    def _parse_function(self, decorators: tuple[Decorator, ...] = ()) -> FunctionDefinition:
        """Parse ``fn NAME(params) -> type { body }``."""
        fn_tok = self._advance()
        name = self._parse_name("function")
        self._expect(TokenKind.LPAREN, "Expected '(' after function name")
        params = self._parse_parameters(TokenKind.RPAREN, allow_defaults=True)
        return_type = None
        if self._match(TokenKind.ARROW):
            return_type = self._parse_type_hint()
        body = self._parse_block()
        return FunctionDefinition(
            name=name,
            params=params,
            return_type=return_type,
            body=body,
            decorators=decorators,
            span=self._span_from(self._definition_start(decorators, fn_tok)),
        )

    def _parse_macro(self, decorators: tuple[Decorator, ...]) -> MacroDefinition:
        """Parse ``macro NAME(params) { }`` or shell-style ``macro NAME $a $b { }``."""
        macro_tok = self._advance()
        name = self._parse_name("macro")
        shell_style = not self._check(TokenKind.LPAREN)
        params: tuple[Parameter, ...]
        if shell_style:
            shell_params: list[Parameter] = []
            while self._check(TokenKind.VARIABLE):
                tok = self._advance()
                shell_params.append(Parameter(name=tok.value or "", sigil=True, span=tok.span))
            params = tuple(shell_params)
        else:
            self._advance()
            params = self._parse_parameters(TokenKind.RPAREN, allow_defaults=True)
        body = self._parse_block()
        return MacroDefinition(
            name=name,
            params=params,
            body=body,
            shell_style=shell_style,
            decorators=decorators,
            span=self._span_from(self._definition_start(decorators, macro_tok)),
        )

    def _parse_alias(self, decorators: tuple[Decorator, ...]) -> AliasDefinition:
        alias_tok = self._advance()
        name = self._parse_name("alias")
        self._expect(TokenKind.ASSIGN, "Expected '=' after alias name")
        value = self.parse_expression()
        return AliasDefinition(
            name=name,
            value=value,
            decorators=decorators,
            span=self._span_from(self._definition_start(decorators, alias_tok)),
        )

    def _parse_member_separator(self, what: str) -> None:
        """Consume a member separator: ``,`` and/or newlines, or nothing before ``}``."""
        separated = self._check(TokenKind.NEWLINE)
        self._skip_newlines()
        if self._match(TokenKind.COMMA):
            self._skip_newlines()
        elif not separated and not self._check(TokenKind.RBRACE):
            raise self._error(f"Expected ',' or newline between {what}")

    def _parse_object(self, decorators: tuple[Decorator, ...]) -> ObjectDefinition:
        """Parse ``obj NAME { field, fn method(params) { }, ... }``."""
        obj_tok = self._advance()
        name = self._parse_name("object")
        self._expect(TokenKind.LBRACE, "Expected '{' after object name")
        members: list[ObjectField | FunctionDefinition] = []
        with self._nested():
            self._skip_newlines()
            while not self._check(TokenKind.RBRACE):
                if self._check(TokenKind.FN):
                    members.append(self._parse_function())
                elif self._check(TokenKind.IDENT):
                    field_tok = self._advance()
                    members.append(
                        ObjectField(
                            name=Identifier(name=field_tok.lexeme, span=field_tok.span),
                            span=field_tok.span,
                        )
                    )
                else:
                    raise self._error("Expected field name or method in object")
                self._parse_member_separator("object members")
        self._expect(TokenKind.RBRACE, "Expected '}' to close object")
        return ObjectDefinition(
            name=name,
            members=tuple(members),
            decorators=decorators,
            span=self._span_from(self._definition_start(decorators, obj_tok)),
        )

    def _parse_enum(self, decorators: tuple[Decorator, ...]) -> EnumDefinition:
        """Parse ``enum NAME { variant, ... }``."""
        enum_tok = self._advance()
        name = self._parse_name("enum")
        self._expect(TokenKind.LBRACE, "Expected '{' after enum name")
        variants: list[Identifier] = []
        self._skip_newlines()
        while not self._check(TokenKind.RBRACE):
            variants.append(self._parse_name("variant"))
            self._parse_member_separator("enum variants")
        self._expect(TokenKind.RBRACE, "Expected '}' to close enum")
        return EnumDefinition(
            name=name,
            variants=tuple(variants),
            decorators=decorators,
            span=self._span_from(self._definition_start(decorators, enum_tok)),
        )

    def _parse_test(self, decorators: tuple[Decorator, ...]) -> TestDefinition:
        """Parse ``test "name" { }``."""
        test_tok = self._advance()
        name_tok = self._peek()
        if name_tok.kind not in STRING_KINDS:
            raise self._error("Expected test name string after 'test'")
        self._advance()
        body = self._parse_block()
        return TestDefinition(
            name=StringLiteral(
                value=name_tok.value or "", style=STRING_KINDS[name_tok.kind], span=name_tok.span
            ),
            body=body,
            decorators=decorators,
            span=self._span_from(self._definition_start(decorators, test_tok)),
        )

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    def _parse_module_ref(self) -> ModulePath | StringLiteral:
        """``a::b::c`` or a string path."""
        tok = self._peek()
        if tok.kind in STRING_KINDS:
            self._advance()
            return StringLiteral(value=tok.value or "", style=STRING_KINDS[tok.kind], span=tok.span)
        first = self._expect(TokenKind.IDENT, "Expected module path")
        segments = [first.lexeme]
        while self._match(TokenKind.DOUBLE_COLON):
            segments.append(self._expect(TokenKind.IDENT, "Expected name after '::'").lexeme)
        return ModulePath(segments=tuple(segments), span=self._span_from(first))

    def _parse_use(self) -> UseStatement:
        use_tok = self._advance()
        module = self._parse_module_ref()
        return UseStatement(module=module, span=self._span_from(use_tok))

    def _parse_from_import(self) -> FromImport:
        """Parse ``from MODULE import a, b as c`` or ``from MODULE import *``."""
        from_tok = self._advance()
        module = self._parse_module_ref()
        self._expect(TokenKind.IMPORT, "Expected 'import' after module")
        if self._match(TokenKind.STAR):
            return FromImport(module=module, wildcard=True, span=self._span_from(from_tok))
        items: list[ImportItem] = []
        while True:
            name = self._parse_name("imported")
            alias = self._parse_name("alias") if self._match(TokenKind.AS) else None
            items.append(ImportItem(name=name, alias=alias, span=self._span_from(name.span)))
            if not self._match(TokenKind.COMMA):
                break
        return FromImport(module=module, items=tuple(items), span=self._span_from(from_tok))

    def _parse_source(self) -> SourceStatement:
        """Parse ``source "file" (as name)?``."""
        source_tok = self._advance()
        path_tok = self._peek()
        if path_tok.kind not in STRING_KINDS:
            raise self._error("Expected file path string after 'source'")
        self._advance()
        path = StringLiteral(
            value=path_tok.value or "", style=STRING_KINDS[path_tok.kind], span=path_tok.span
        )
        alias = self._parse_name("namespace") if self._match(TokenKind.AS) else None
        return SourceStatement(path=path, alias=alias, span=self._span_from(source_tok))

    def _parse_return(self) -> ReturnStatement:
        return_tok = self._advance()
        value = None
        if not self._check(*TERMINATOR_KINDS, TokenKind.RBRACE):
            value = self._parse_assignment_value()
        return ReturnStatement(value=value, span=self._span_from(return_tok))


# ------------------------------------------------------------------
# Convenience functions
# ------------------------------------------------------------------


def parse(
    source: str,
    filename: str = "<string>",
    *,
    fail_fast: bool = False,
) -> tuple[Program, DiagnosticCollector]:
    """Parse ApX source code.

    Args:
        source: Program text.
        filename: Name used in spans and diagnostics.
        fail_fast: Stop at the first syntax error and return the statements
            parsed before it, instead of recovering.

    Returns:
        A ``(program, diagnostics)`` tuple.  Lexical and syntax problems are
        reported in the collector; the program is always returned.
    """
    diag = DiagnosticCollector()
    tokens = Lexer(source, filename, diag).tokenize()
    parser = Parser(tokens, diag, fail_fast=fail_fast)
    program = parser.parse_program(filename)
    logger.debug(
        "Parsed %s: %d statement(s), %d diagnostic(s)",
        filename,
        len(program.statements),
        len(diag),
    )
    return program, diag


def parse_expression(
    tokens: list[Token],
    pos: int = 0,
    diagnostics: DiagnosticCollector | None = None,
) -> tuple[ExprNode, int]:
    """Parse one expression starting at *pos*; returns it with the next position.

    Raises:
        ParseError: If no expression can start at *pos*.
    """
    parser = Parser(tokens, diagnostics, start=pos)
    node = parser.parse_expression()
    return node, parser.position


def parse_statement(
    tokens: list[Token],
    pos: int = 0,
    diagnostics: DiagnosticCollector | None = None,
) -> tuple[Node, int]:
    """Parse one statement starting at *pos*; returns it with the next position.

    Raises:
        ParseError: If the statement is malformed.
    """
    parser = Parser(tokens, diagnostics, start=pos)
    node = parser.parse_statement()
    return node, parser.position


def parse_pattern(
    tokens: list[Token],
    pos: int = 0,
    diagnostics: DiagnosticCollector | None = None,
) -> tuple[PatternNode, int]:
    """Parse one match pattern starting at *pos*; returns it with the next position.

    Raises:
        ParseError: If no pattern starts at *pos*.
    """
    parser = Parser(tokens, diagnostics, start=pos)
    node = parser.parse_pattern()
    return node, parser.position


__all__ = [
    "ParseError",
    "Parser",
    "parse",
    "parse_expression",
    "parse_pattern",
    "parse_statement",
]

"""Tests for ApX statement parsing and error recovery.

Covers:
- let/const/set and variable assignment
- if/elif/else, for, while, loop, match, try/catch
- fn, macro, alias, obj, enum and test definitions with decorators
- use, from ... import, source, return/break/continue
- Statement separation, error recovery and fail-fast mode
"""

from __future__ import annotations

import pytest

from apxlib.core.expressions import (
    Block,
    CommandExpression,
    Identifier,
    IntLiteral,
    RangeExpr,
    RecordLiteral,
    StringLiteral,
    Variable,
)
from apxlib.diagnostics.severity import DiagnosticCategory
from apxlib.parser import Parser, parse, parse_statement, tokenize
from apxlib.parser.ast_nodes import (
    AliasDefinition,
    BindingPattern,
    BreakStatement,
    ContinueStatement,
    EnumDefinition,
    ErrorNode,
    ForStatement,
    FromImport,
    FunctionDefinition,
    IfStatement,
    LetStatement,
    LiteralPattern,
    LoopStatement,
    MacroDefinition,
    MatchStatement,
    ModulePath,
    ObjectDefinition,
    ObjectField,
    Program,
    ReturnStatement,
    SourceStatement,
    TestDefinition,
    TryStatement,
    TypedRecordPattern,
    UseStatement,
    VariableAssignment,
    WhileStatement,
    WildcardPattern,
)
from apxlib.parser.base import ParserBase
from apxlib.parser.tokens import TokenKind

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_ok(source: str) -> Program:
    """Parse source and assert no errors."""
    program, diag = parse(source, "<test>")
    assert not diag.has_errors(), diag.format_all()
    return program


def single(source: str):
    program = parse_ok(source)
    assert len(program.statements) == 1, program.statements
    return program.statements[0]


# ---------------------------------------------------------------------------
# Bindings and assignment
# ---------------------------------------------------------------------------


class TestLet:
    def test_let(self) -> None:
        stmt = single("let x = 42")
        assert isinstance(stmt, LetStatement)
        assert stmt.keyword == "let"
        assert stmt.name.name == "x"
        assert isinstance(stmt.value, IntLiteral) and stmt.value.value == 42

    def test_const_and_set(self) -> None:
        assert single("const N = 3").keyword == "const"
        assert single("set n = 3").keyword == "set"

    def test_value_may_be_assignment(self) -> None:
        stmt = single("let a = $b = 1")
        assert isinstance(stmt.value, VariableAssignment)
        assert stmt.value.target.name == "b"

    def test_command_value(self) -> None:
        stmt = single("let files = ls -la")
        assert isinstance(stmt.value, CommandExpression)


class TestVariableAssignment:
    def test_plain(self) -> None:
        stmt = single("$x = 1")
        assert isinstance(stmt, VariableAssignment)
        assert (stmt.target.name, stmt.op) == ("x", "=")

    def test_compound(self) -> None:
        assert single("$x += 1").op == "+="
        assert single("$x %= 2").op == "%="

    def test_right_associative(self) -> None:
        stmt = single("$x = $y = 1")
        assert isinstance(stmt.value, VariableAssignment)
        assert stmt.value.target.name == "y"
        assert isinstance(stmt.value.value, IntLiteral)


# ---------------------------------------------------------------------------
# Control flow
# ---------------------------------------------------------------------------


class TestIf:
    def test_if_elif_else_on_separate_lines(self) -> None:
        source = "if $a {\n  echo a\n}\nelif $b {\n  echo b\n}\nelse {\n  echo c\n}"
        stmt = single(source)
        assert isinstance(stmt, IfStatement)
        assert isinstance(stmt.condition, Variable)
        assert len(stmt.elifs) == 1
        assert isinstance(stmt.else_body, Block)
        assert len(stmt.else_body.statements) == 1

    def test_command_condition_stops_at_brace(self) -> None:
        stmt = single("if exists foo { echo yes }")
        assert isinstance(stmt.condition, CommandExpression)
        assert len(stmt.condition.stages[0].args) == 1
        assert len(stmt.body.statements) == 1

    def test_no_else(self) -> None:
        stmt = single("if $a { }")
        assert stmt.elifs == () and stmt.else_body is None


class TestLoops:
    def test_for_range(self) -> None:
        stmt = single("for $x in 1..=5 { $x }")
        assert isinstance(stmt, ForStatement)
        assert isinstance(stmt.variable, Variable) and stmt.variable.name == "x"
        assert isinstance(stmt.iterable, RangeExpr)
        assert stmt.iterable.inclusive
        assert (stmt.iterable.start.value, stmt.iterable.end.value) == (1, 5)

    def test_for_bare_variable(self) -> None:
        stmt = single("for f in $files { echo $f }")
        assert isinstance(stmt.variable, Identifier)

    def test_for_command_iterable(self) -> None:
        stmt = single("for f in ls *.txt { echo $f }")
        assert isinstance(stmt.iterable, CommandExpression)

    def test_while_with_continue(self) -> None:
        stmt = single("while $i < 10 {\n  $i += 1\n  continue\n}")
        assert isinstance(stmt, WhileStatement)
        assert isinstance(stmt.body.statements[-1], ContinueStatement)

    def test_loop_with_break(self) -> None:
        stmt = single("loop { break }")
        assert isinstance(stmt, LoopStatement)
        assert isinstance(stmt.body.statements[0], BreakStatement)


class TestMatch:
    def test_typed_record_and_wildcard(self) -> None:
        stmt = single('match $v { Dog { name } => $name, _ => "unknown" }')
        assert isinstance(stmt, MatchStatement)
        first, second = stmt.arms
        assert isinstance(first.pattern, TypedRecordPattern)
        assert first.pattern.type_name.name == "Dog"
        assert first.pattern.record.fields[0].bound_name == "name"
        assert isinstance(second.pattern, WildcardPattern)

    def test_newline_separated_arms_with_guard_and_block(self) -> None:
        source = 'match $n {\n  0 => "zero"\n  $x if $x > 0 => "pos"\n  _ => { echo neg }\n}'
        stmt = single(source)
        assert len(stmt.arms) == 3
        assert isinstance(stmt.arms[0].pattern, LiteralPattern)
        assert isinstance(stmt.arms[1].pattern, BindingPattern)
        assert stmt.arms[1].guard is not None
        assert isinstance(stmt.arms[2].body, Block)

    def test_record_arm_body(self) -> None:
        stmt = single("match $x { _ => { a: 1 } }")
        assert isinstance(stmt.arms[0].body, RecordLiteral)

    def test_empty_match(self) -> None:
        assert single("match $x { }").arms == ()

    def test_arms_need_separator(self) -> None:
        _, diag = parse("match $x { 1 => a 2 => b }", "<test>")
        assert diag.has_errors()


class TestTry:
    def test_catch_on_next_line(self) -> None:
        stmt = single("try {\n  rm x\n}\ncatch e {\n  echo $e\n}")
        assert isinstance(stmt, TryStatement)
        assert stmt.error_name.name == "e"

    def test_catch_with_sigil(self) -> None:
        assert single("try { a } catch $e { b }").error_name.name == "e"
        assert single("try { a } catch $err { b }").error_name.name == "err"

    def test_catch_without_name(self) -> None:
        assert single("try { a } catch { b }").error_name is None

    def test_missing_catch(self) -> None:
        _, diag = parse("try { a }", "<test>")
        assert "Expected 'catch' after try block" in diag.format_all()


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


class TestFunctions:
    def test_full_signature(self) -> None:
        stmt = single('fn greet($name: string = "world") -> string { return "hi" }')
        assert isinstance(stmt, FunctionDefinition)
        (param,) = stmt.params
        assert (param.name, param.sigil) == ("name", True)
        assert param.type_hint.name == "string"
        assert isinstance(param.default, StringLiteral)
        assert stmt.return_type.name == "string"
        assert isinstance(stmt.body.statements[0], ReturnStatement)

    def test_bare_parameters(self) -> None:
        stmt = single("fn add(a, b) { $a + $b }")
        assert [(p.name, p.sigil) for p in stmt.params] == [("a", False), ("b", False)]

    def test_bare_return(self) -> None:
        stmt = single("fn f() { return }")
        assert stmt.body.statements[0].value is None


class TestMacros:
    def test_shell_style(self) -> None:
        stmt = single("macro deploy $env $target { echo $env }")
        assert isinstance(stmt, MacroDefinition)
        assert stmt.shell_style
        assert [p.name for p in stmt.params] == ["env", "target"]

    def test_parenthesised(self) -> None:
        stmt = single("macro wrap(a, b = 1) { echo $a }")
        assert not stmt.shell_style
        assert stmt.params[1].default.value == 1


class TestOtherDefinitions:
    def test_alias(self) -> None:
        stmt = single("alias ll = ls -la")
        assert isinstance(stmt, AliasDefinition)
        assert stmt.name.name == "ll"
        assert isinstance(stmt.value, CommandExpression)

    def test_object(self) -> None:
        stmt = single("obj Point {\n  x, y\n  fn norm() { $x }\n}")
        assert isinstance(stmt, ObjectDefinition)
        assert [type(m) for m in stmt.members] == [ObjectField, ObjectField, FunctionDefinition]
        assert [f.name.name for f in stmt.fields] == ["x", "y"]
        assert [m.name.name for m in stmt.methods] == ["norm"]

    def test_enum(self) -> None:
        stmt = single("enum Color { Red, Green, Blue }")
        assert isinstance(stmt, EnumDefinition)
        assert [v.name for v in stmt.variants] == ["Red", "Green", "Blue"]

    def test_enum_newline_separated(self) -> None:
        assert len(single("enum Color {\n  Red\n  Green\n}").variants) == 2

    def test_test_block(self) -> None:
        stmt = single('test "adds" { assert true }')
        assert isinstance(stmt, TestDefinition)
        assert stmt.name.value == "adds"


class TestDecorators:
    def test_stacked_on_separate_lines(self) -> None:
        stmt = single('@deprecated\n@since("1.0")\nfn old() { }')
        assert isinstance(stmt, FunctionDefinition)
        assert [d.name for d in stmt.decorators] == ["deprecated", "since"]
        assert stmt.decorators[1].args[0].value == "1.0"
        assert stmt.span.column == 1 and stmt.span.line == 1

    def test_inline_with_literal_argument(self) -> None:
        stmt = single('@timeout 30 test "slow" { }')
        assert isinstance(stmt, TestDefinition)
        assert stmt.decorators[0].args[0].value == 30

    def test_on_alias(self) -> None:
        assert single("@cached alias x = y").decorators[0].name == "cached"

    def test_requires_definition(self) -> None:
        _, diag = parse("@foo\nlet x = 1", "<test>")
        assert "Expected a definition after decorators" in diag.format_all()


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


class TestModules:
    def test_use_path(self) -> None:
        stmt = single("use std::fs")
        assert isinstance(stmt, UseStatement)
        assert isinstance(stmt.module, ModulePath)
        assert stmt.module.segments == ("std", "fs")

    def test_use_string(self) -> None:
        assert isinstance(single('use "lib/util.apx"').module, StringLiteral)

    def test_from_import_items(self) -> None:
        stmt = single("from std::fs import read, write as w")
        assert isinstance(stmt, FromImport)
        assert [i.local_name for i in stmt.items] == ["read", "w"]
        assert not stmt.wildcard

    def test_from_import_wildcard(self) -> None:
        stmt = single('from "helpers.apx" import *')
        assert stmt.wildcard and stmt.items == ()

    def test_source_with_alias(self) -> None:
        stmt = single('source "env.apx" as env')
        assert isinstance(stmt, SourceStatement)
        assert stmt.path.value == "env.apx"
        assert stmt.alias.name == "env"


# ---------------------------------------------------------------------------
# Separation and recovery
# ---------------------------------------------------------------------------


class TestSeparation:
    def test_semicolons(self) -> None:
        assert len(parse_ok("a; b; c").statements) == 3

    def test_blank_lines_and_comments(self) -> None:
        assert len(parse_ok("\n\na\n# note\n\nb\n").statements) == 2

    def test_trailing_junk(self) -> None:
        program, diag = parse("let x = 1 2", "<test>")
        assert isinstance(program.statements[0], LetStatement)
        assert isinstance(program.statements[1], ErrorNode)
        assert "Expected newline or ';' after statement" in diag.errors()[0].message


class TestRecovery:
    def test_missing_value_reports_at_equals(self) -> None:
        program, diag = parse("let x = \nlet y = 2", "<test>")
        errors = diag.errors()
        assert len(errors) == 1
        assert errors[0].category == DiagnosticCategory.SYNTAX
        assert (errors[0].location.line, errors[0].location.column) == (1, 7)
        assert isinstance(program.statements[0], ErrorNode)
        assert isinstance(program.statements[1], LetStatement)
        assert program.statements[1].name.name == "y"

    def test_recovery_inside_function_body(self) -> None:
        program, diag = parse("fn f() {\n  let = 1\n  echo ok\n}", "<test>")
        assert len(diag.errors()) == 1
        body = program.statements[0].body.statements
        assert isinstance(body[0], ErrorNode)
        assert isinstance(body[1], CommandExpression)

    def test_unmatched_brace_stops_skip(self) -> None:
        program, diag = parse("if $a { let = }\necho done", "<test>")
        assert len(diag.errors()) == 1
        assert isinstance(program.statements[0], IfStatement)
        assert isinstance(program.statements[1], CommandExpression)

    def test_brackets_balanced_while_skipping(self) -> None:
        program, diag = parse("let = [1,\n2]\necho ok", "<test>")
        assert len(diag.errors()) == 1
        assert isinstance(program.statements[-1], CommandExpression)

    @pytest.mark.parametrize(
        "source",
        [
            "let r = {a: 1 2}\necho ok\n",
            "obj P { 1 }\necho ok",
            "match $v { 1 2 }\necho ok",
            "match $v {\n  1 => echo a\n  2 2\n}\necho ok",
        ],
        ids=["record", "object", "match", "match_multiline"],
    )
    def test_error_inside_opened_brace_reported_once(self, source: str) -> None:
        program, diag = parse(source, "<test>")
        assert len(diag.errors()) == 1
        assert [type(s) for s in program.statements] == [ErrorNode, CommandExpression]

    def test_closing_brace_kept_in_error_text(self) -> None:
        program, _ = parse("let r = {a: 1 2}\necho ok", "<test>")
        assert program.statements[0].text == "let r = {a: 1 2}"

    def test_unclosed_paren_keeps_following_statements(self) -> None:
        program, diag = parse("echo (1 + 2\nlet y = 3\nfn f() { }\n", "<test>")
        errors = diag.errors()
        assert len(errors) == 1
        assert "Expected ')' after expression, got newline" in errors[0].message
        assert (errors[0].location.line, errors[0].location.column) == (1, 11)
        assert [type(s) for s in program.statements] == [
            ErrorNode,
            LetStatement,
            FunctionDefinition,
        ]
        assert program.statements[0].text == "echo (1 + 2"

    def test_unclosed_bracket_in_block_keeps_following_statements(self) -> None:
        program, diag = parse("fn f() {\n  let xs = [1, 2\n  let y = 3\n}\necho ok", "<test>")
        assert len(diag.errors()) == 1
        body = program.statements[0].body.statements
        assert [type(s) for s in body] == [ErrorNode, LetStatement]
        assert isinstance(program.statements[1], CommandExpression)

    def test_error_node_keeps_text(self) -> None:
        program, _ = parse("let = 5", "<test>")
        node = program.statements[0]
        assert isinstance(node, ErrorNode)
        assert node.text == "let = 5"
        assert "Expected name after 'let'" in node.message

    def test_lex_errors_not_reported_twice(self) -> None:
        _, diag = parse("let x = ^", "<test>")
        assert len(diag.errors()) == 1
        assert diag.errors()[0].category == DiagnosticCategory.LEXICAL

    def test_fail_fast(self) -> None:
        program, diag = parse("echo a\nlet = 1\necho b", "<test>", fail_fast=True)
        assert len(program.statements) == 1
        assert len(diag.errors()) == 1


class TestParseStatementFunction:
    def test_skips_leading_terminators(self) -> None:
        tokens = tokenize("; let x = 1; echo")
        node, pos = parse_statement(tokens)
        assert isinstance(node, LetStatement)
        assert tokens[pos].kind == TokenKind.SEMICOLON

    def test_parser_method_skips_leading_terminators(self) -> None:
        tokens = tokenize(";\necho hi")
        parser = Parser(tokens)
        stmt = parser.parse_statement()
        assert isinstance(stmt, CommandExpression)
        assert stmt.stages[0].name.name == "echo"
        assert tokens[parser.position].kind == TokenKind.EOF

    def test_statement_hook_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            ParserBase(tokenize("echo hi"))

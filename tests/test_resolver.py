"""Tests for name resolution and the binding table."""

from __future__ import annotations

from apxlib.core.expressions import Call, CommandExpression, Identifier, Variable
from apxlib.diagnostics import DiagnosticCategory, DiagnosticCollector
from apxlib.parser import parse
from apxlib.parser.ast_nodes import (
    FunctionDefinition,
    LetStatement,
    PatternField,
    Program,
    UseStatement,
    VariableAssignment,
)
from apxlib.resolver import (
    BindingKind,
    BindingTable,
    ReferenceRole,
    Resolver,
    ScopeKind,
    resolve,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def resolve_source(source: str) -> tuple[Program, BindingTable, DiagnosticCollector]:
    program, diag = parse(source, "<test>")
    assert not diag.has_errors(), diag.format_all()
    table = resolve(program, diag)
    return program, table, diag


def warning_messages(diag: DiagnosticCollector) -> list[str]:
    return [d.message for d in diag.warnings()]


def binding_for(table: BindingTable, node):
    reference = table.lookup(node.span)
    assert reference is not None, f"no reference at {node.span}"
    assert reference.binding is not None, f"{reference.name} is unresolved"
    return table.bindings[reference.binding]


# ---------------------------------------------------------------------------
# Functions and calls
# ---------------------------------------------------------------------------


class TestFunctions:
    def test_call_resolves_to_definition(self) -> None:
        program, table, diag = resolve_source("fn add($a, $b) { $a + $b }\nadd(1, 2)")
        fn, call = program.statements
        assert isinstance(call, Call)
        assert table.definition_of(call.callee) is fn
        assert len(diag) == 0

    def test_parameters_bound_in_body(self) -> None:
        program, table, _ = resolve_source("fn add($a, $b) { $a + $b }")
        body = program.statements[0].body.statements[0]
        binding = binding_for(table, body.left)
        assert binding.kind == BindingKind.PARAMETER
        assert binding.name == "a"

    def test_recursion(self) -> None:
        program, table, diag = resolve_source("fn fact($n) { fact($n - 1) }")
        fn = program.statements[0]
        inner = fn.body.statements[0]
        assert table.definition_of(inner.callee) is fn
        assert len(diag) == 0

    def test_no_hoisting(self) -> None:
        _, table, diag = resolve_source("greet()\nfn greet() { }")
        assert [r.name for r in table.unresolved()] == ["greet"]
        assert warning_messages(diag) == ["Unresolved reference to 'greet'"]

    def test_defaults_resolve_in_outer_scope(self) -> None:
        program, table, diag = resolve_source("let d = 1\nfn f($a = $d, $b = $a) { }")
        fn = program.statements[1]
        assert table.definition_of(fn.params[0].default) is program.statements[0]
        assert table.definition_of(fn.params[1].default) is None
        assert warning_messages(diag) == ["Unresolved reference to 'a'"]

    def test_function_scope_parent(self) -> None:
        _, table, _ = resolve_source("fn f() { }")
        module, function = table.scopes
        assert module.kind == ScopeKind.MODULE and module.parent is None
        assert function.kind == ScopeKind.FUNCTION and function.parent == module.index

    def test_shell_style_macro_parameters(self) -> None:
        program, table, diag = resolve_source("macro deploy $host $target { echo $target }")
        echo = program.statements[0].body.statements[0]
        target = echo.stages[0].args[0]
        assert binding_for(table, target).kind == BindingKind.PARAMETER
        assert table.scopes[1].kind == ScopeKind.MACRO
        assert len(diag) == 0


# ---------------------------------------------------------------------------
# Variables and scoping
# ---------------------------------------------------------------------------


class TestVariables:
    def test_let_value_refers_to_outer_binding(self) -> None:
        program, table, _ = resolve_source("let x = 1\nlet x = $x + 1")
        first, second = program.statements
        assert table.definition_of(second.value.left) is first
        assert len(table.bindings_named("x")) == 2

    def test_self_reference_is_unresolved(self) -> None:
        _, table, diag = resolve_source("let x = $x")
        assert [r.name for r in table.unresolved()] == ["x"]
        assert len(diag.warnings()) == 1

    def test_block_shadowing(self) -> None:
        program, table, _ = resolve_source("let x = 1; { let x = 2; $x }\n$x")
        outer, block, after = program.statements
        inner_let, inner_ref = block.body.statements
        assert table.definition_of(inner_ref) is inner_let
        assert table.definition_of(after) is outer
        assert [s.kind for s in table.scopes] == [ScopeKind.MODULE, ScopeKind.CLOSURE]

    def test_assignment_binds_when_unbound(self) -> None:
        program, table, diag = resolve_source("$y = 1\n$y = 2\necho $y")
        first = program.statements[0]
        (binding,) = table.bindings_named("y")
        assert binding.node is first
        assert isinstance(first, VariableAssignment)
        assert len(table.references_to(0)) == 2
        assert len(diag.warnings()) == 0

    def test_compound_assignment_is_a_reference(self) -> None:
        program, table, _ = resolve_source("let n = 0\n$n += 1")
        assignment = program.statements[1]
        assert table.definition_of(assignment.target) is program.statements[0]
        assert len(table.bindings_named("n")) == 1

    def test_compound_assignment_unbound_warns(self) -> None:
        _, table, diag = resolve_source("$n += 1")
        assert table.bindings == []
        assert warning_messages(diag) == ["Unresolved reference to 'n'"]

    def test_references_to(self) -> None:
        _, table, _ = resolve_source("let a = 1\necho $a $a")
        (binding,) = table.bindings_named("a")
        index = table.bindings.index(binding)
        refs = table.references_to(index)
        assert len(refs) == 2
        assert all(r.role == ReferenceRole.VARIABLE for r in refs)

    def test_assignment_value_resolved_first(self) -> None:
        program, table, diag = resolve_source("let a = 1\nlet b = $c = $a")
        assert table.definition_of(program.statements[1].value.value) is program.statements[0]
        assert len(diag.warnings()) == 0


class TestScopes:
    def test_for_body_scope(self) -> None:
        program, table, diag = resolve_source("for $x in 1..=5 { $x }")
        loop = program.statements[0]
        body_ref = loop.body.statements[0]
        binding = binding_for(table, body_ref)
        assert binding.node is loop.variable
        scope = table.scopes[binding.scope]
        assert scope.kind == ScopeKind.FOR_BODY
        assert scope.parent == 0
        assert len(diag) == 0

    def test_loop_variable_not_visible_after_loop(self) -> None:
        _, table, diag = resolve_source("for x in $xs { }\necho $x")
        assert {r.name for r in table.unresolved()} >= {"xs", "x"}
        assert len(diag.warnings()) == 2

    def test_if_body_shares_enclosing_scope(self) -> None:
        _, table, diag = resolve_source("if true { let z = 1 }\necho $z")
        assert [s.kind for s in table.scopes] == [ScopeKind.MODULE]
        assert len(diag.warnings()) == 0

    def test_test_body_scope(self) -> None:
        _, table, diag = resolve_source('test "t" { let x = 1 }\necho $x')
        assert ScopeKind.TEST in [s.kind for s in table.scopes]
        assert warning_messages(diag) == ["Unresolved reference to 'x'"]

    def test_module_scope_covers_program(self) -> None:
        program, table, _ = resolve_source("let a = 1\n")
        assert table.scopes[0].span == program.span


class TestClosuresAndLambdas:
    def test_closure_parameter_used_as_command(self) -> None:
        program, table, diag = resolve_source("{ |x| x }")
        closure = program.statements[0]
        command = closure.body.statements[0]
        assert isinstance(command, CommandExpression)
        reference = table.lookup(command.stages[0].name.span)
        assert reference.role == ReferenceRole.COMMAND
        assert table.bindings[reference.binding].kind == BindingKind.PARAMETER
        assert len(diag) == 0

    def test_lambda_parameter(self) -> None:
        program, table, _ = resolve_source("let f = |x| { $x }")
        lam = program.statements[0].value
        assert binding_for(table, lam.body.statements[0]).kind == BindingKind.PARAMETER
        assert table.scopes[1].kind == ScopeKind.LAMBDA


# ---------------------------------------------------------------------------
# Match and try
# ---------------------------------------------------------------------------


class TestMatch:
    def test_record_pattern_binding(self) -> None:
        program, table, diag = resolve_source('match $v { Dog { name } => $name, _ => "unknown" }')
        arm = program.statements[0].arms[0]
        assert isinstance(table.definition_of(arm.body), PatternField)
        assert not diag.has_errors()
        messages = warning_messages(diag)
        assert "Unresolved reference to 'v'" in messages
        assert "Unresolved reference to 'Dog'" in messages
        assert [s.kind for s in table.scopes].count(ScopeKind.MATCH_ARM) == 2

    def test_type_resolves_to_object(self) -> None:
        program, table, diag = resolve_source(
            "obj Dog { name }\nmatch $v { Dog { name } => $name }"
        )
        arm = program.statements[1].arms[0]
        assert table.definition_of(arm.pattern.type_name) is program.statements[0]
        assert warning_messages(diag) == ["Unresolved reference to 'v'"]

    def test_guard_sees_pattern_bindings(self) -> None:
        program, table, _ = resolve_source("let n = 1\nmatch $n { $x if $x > 0 => $x }")
        arm = program.statements[1].arms[0]
        assert table.definition_of(arm.guard.left) is arm.pattern

    def test_arm_bindings_do_not_leak(self) -> None:
        _, table, _ = resolve_source("let n = 1\nmatch $n { [a, ...rest] => $rest }\necho $a")
        assert [r.name for r in table.unresolved() if r.role == ReferenceRole.VARIABLE] == ["a"]


class TestTry:
    def test_catch_name(self) -> None:
        program, table, diag = resolve_source("try { fail } catch e { echo $e }\necho $e")
        stmt = program.statements[0]
        echo = stmt.handler.statements[0]
        binding = binding_for(table, echo.stages[0].args[0])
        assert isinstance(binding.node, Identifier)
        assert table.scopes[binding.scope].kind == ScopeKind.CATCH
        assert warning_messages(diag) == ["Unresolved reference to 'e'"]

    def test_try_body_shares_enclosing_scope(self) -> None:
        _, _, diag = resolve_source("try { let t = 1 } catch { }\necho $t")
        assert len(diag.warnings()) == 0


# ---------------------------------------------------------------------------
# Commands, imports and definitions
# ---------------------------------------------------------------------------


class TestCommands:
    def test_unresolved_commands_are_silent(self) -> None:
        _, table, diag = resolve_source("git status")
        assert len(diag) == 0
        (reference,) = table.unresolved()
        assert (reference.name, reference.role) == ("git", ReferenceRole.COMMAND)

    def test_alias_resolves_command(self) -> None:
        program, table, _ = resolve_source("alias ll = ls -la\nll /tmp")
        command = program.statements[1]
        assert table.definition_of(command.stages[0].name) is program.statements[0]

    def test_namespace_is_referenced(self) -> None:
        program, table, _ = resolve_source("use tools::git\ngit.status")
        binding = binding_for(table, program.statements[1].stages[0].name)
        assert binding.kind == BindingKind.IMPORT
        assert isinstance(binding.node, UseStatement)

    def test_function_called_as_command(self) -> None:
        program, table, _ = resolve_source("fn greet($who) { echo $who }\ngreet world")
        command = program.statements[1]
        assert isinstance(table.definition_of(command.stages[0].name), FunctionDefinition)


class TestImports:
    def test_import_forms(self) -> None:
        source = 'use std::fs\nfrom lib import helper as h\nsource "env.apx" as cfg\nh()\necho $fs $cfg'
        _, table, diag = resolve_source(source)
        assert len(diag) == 0
        for name in ("fs", "h", "cfg"):
            (binding,) = table.bindings_named(name)
            assert binding.kind == BindingKind.IMPORT
        assert table.bindings_named("helper") == []

    def test_string_use_binds_nothing(self) -> None:
        _, table, _ = resolve_source('use "lib/util.apx"')
        assert table.bindings == []


class TestDefinitions:
    def test_object_construction_resolves_type(self) -> None:
        program, table, diag = resolve_source("obj Point { x, y }\nlet p = Point { x: 1, y: 2 }")
        construction = program.statements[1].value
        assert table.definition_of(construction.type_name) is program.statements[0]
        assert len(diag) == 0

    def test_method_scope_nested_in_object(self) -> None:
        _, table, _ = resolve_source("obj Point {\n  x\n  fn norm() { 1 }\n}")
        kinds = [s.kind for s in table.scopes]
        assert kinds == [ScopeKind.MODULE, ScopeKind.OBJECT, ScopeKind.FUNCTION]
        assert table.scopes[2].parent == 1
        assert table.bindings_named("norm")[0].scope == 1

    def test_enum_binding(self) -> None:
        _, table, _ = resolve_source("enum Color { Red, Green }")
        (binding,) = table.bindings_named("Color")
        assert binding.kind == BindingKind.ENUM
        assert table.bindings_named("Red") == []


# ---------------------------------------------------------------------------
# Non-references and diagnostics
# ---------------------------------------------------------------------------


class TestNonReferences:
    def test_env_and_special_variables(self) -> None:
        _, table, diag = resolve_source("echo $env.HOME $it")
        assert [r.role for r in table.references.values()] == [ReferenceRole.COMMAND]
        assert len(diag) == 0

    def test_record_keys_and_fields(self) -> None:
        _, table, _ = resolve_source("let r = { a: $b }\necho $r.name\nlet n = $r.len()")
        names = sorted(r.name for r in table.references.values())
        assert names == ["b", "echo", "r", "r"]

    def test_error_nodes_are_skipped(self) -> None:
        program, diag = parse("let = $q\necho $w", "<test>")
        table = resolve(program, diag)
        assert [r.name for r in table.references.values() if r.role == ReferenceRole.VARIABLE] == ["w"]


class TestDiagnostics:
    def test_warning_category_and_location(self) -> None:
        program, table, diag = resolve_source("echo $missing")
        (warning,) = diag.warnings()
        assert warning.category == DiagnosticCategory.UNRESOLVED_REFERENCE
        var = program.statements[0].stages[0].args[0]
        assert isinstance(var, Variable)
        assert warning.location == var.span
        assert not diag.has_errors()

    def test_resolver_owns_collector_by_default(self) -> None:
        program, _ = parse("echo $missing", "<test>")
        resolver = Resolver()
        table = resolver.resolve(program)
        assert len(resolver.diagnostics.warnings()) == 1
        assert table.definition_of(program.statements[0]) is None

    def test_definition_of_unreferenced_node(self) -> None:
        program, table, _ = resolve_source("let a = 1")
        assert isinstance(program.statements[0], LetStatement)
        assert table.definition_of(program.statements[0]) is None

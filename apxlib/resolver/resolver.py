"""Name resolution for parsed ApX programs.

Walks a :class:`~apxlib.parser.ast_nodes.Program` in source order, opening
a scope for each construct that introduces one, and links every variable,
call, command and type reference to the binding it denotes.

Rules, in brief:

- A name is visible from its definition onward; nothing is hoisted.
- ``let`` resolves its value before binding the name, so
  ``let x = $x`` refers to an outer ``x``.
- ``fn``/``macro`` names are bound before their bodies, so recursion works.
- ``$x = v`` binds ``x`` in the current scope when no ``x`` is visible.
- ``if``/``while``/``loop``/``try`` bodies share the enclosing scope.
- Environment variables, special variables, field names and method names
  are never references.

Unresolved variable, call and type references produce a warning.
Unresolved commands are silent since most of them are external programs.
"""

from __future__ import annotations

import logging

from apxlib.core.expressions import (
    Block,
    Call,
    Closure,
    CommandName,
    FieldAccess,
    Lambda,
    MethodCall,
    Node,
    ObjectConstruction,
    Parameter,
    PatternNode,
    RecordField,
    Variable,
)
from apxlib.diagnostics.collector import DiagnosticCollector
from apxlib.diagnostics.location import SourceSpan
from apxlib.parser.ast_nodes import (
    AliasDefinition,
    BindingPattern,
    EnumDefinition,
    ForStatement,
    FromImport,
    FunctionDefinition,
    LetStatement,
    ListPattern,
    MacroDefinition,
    MatchStatement,
    ModulePath,
    ObjectDefinition,
    Program,
    RecordPattern,
    RestPattern,
    SourceStatement,
    TestDefinition,
    TryStatement,
    TypedRecordPattern,
    UseStatement,
    VariableAssignment,
)
from apxlib.parser.errors import UnresolvedReferenceWarning
from apxlib.resolver.scope import ScopeKind, ScopeStack
from apxlib.resolver.table import Binding, BindingKind, BindingTable, Reference, ReferenceRole

logger = logging.getLogger(__name__)

_WARN_ROLES = frozenset({ReferenceRole.VARIABLE, ReferenceRole.CALL, ReferenceRole.TYPE})


class Resolver:
    """Single-pass, pre-order resolver producing a :class:`BindingTable`."""

    def __init__(self, diagnostics: DiagnosticCollector | None = None) -> None:
        self._diag = diagnostics if diagnostics is not None else DiagnosticCollector()
        self._table = BindingTable()
        self._scopes = ScopeStack()

    @property
    def diagnostics(self) -> DiagnosticCollector:
        return self._diag

    def resolve(self, program: Program) -> BindingTable:
        with self._scopes.scope(ScopeKind.MODULE, program.span):
            self._visit_all(program.statements)
        self._table.scopes = list(self._scopes.infos)
        logger.debug(
            "Resolved %s: %d bindings, %d scopes, %d references (%d unresolved)",
            program.file,
            len(self._table.bindings),
            len(self._table.scopes),
            len(self._table.references),
            len(self._table.unresolved()),
        )
        return self._table

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _define(self, name: str, kind: BindingKind, node: Node) -> int:
        scope = self._scopes.current
        index = self._table.add_binding(Binding(name=name, kind=kind, node=node, scope=scope.index))
        scope.define(name, index)
        return index

    def _reference(
        self, name: str, span: SourceSpan | None, node: Node, role: ReferenceRole
    ) -> Reference | None:
        if span is None:
            return None
        binding = self._scopes.current.lookup(name)
        reference = Reference(name=name, span=span, node=node, role=role, binding=binding)
        self._table.add_reference(reference)
        if binding is None and role in _WARN_ROLES:
            warning = UnresolvedReferenceWarning(name, span)
            self._diag.warning(str(warning), span, category=warning.category)
        return reference

    def _visit(self, node: Node | None) -> None:
        if node is None:
            return
        visitor = getattr(self, f"_visit_{type(node).__name__}", None)
        if visitor is not None:
            visitor(node)
            return
        for child in node.children():
            self._visit(child)

    def _visit_all(self, nodes: tuple[Node, ...]) -> None:
        for node in nodes:
            self._visit(node)

    def _bind_parameters(self, params: tuple[Parameter, ...]) -> None:
        for param in params:
            self._define(param.name, BindingKind.PARAMETER, param)

    def _visit_defaults(self, params: tuple[Parameter, ...]) -> None:
        # Defaults are evaluated where the callable is defined.
        for param in params:
            self._visit(param.default)

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def _visit_Variable(self, node: Variable) -> None:
        self._reference(node.name, node.span, node, ReferenceRole.VARIABLE)

    def _visit_Call(self, node: Call) -> None:
        self._reference(node.callee.name, node.callee.span, node.callee, ReferenceRole.CALL)
        self._visit_all(node.args)

    def _visit_CommandName(self, node: CommandName) -> None:
        # For ``ns.name`` the namespace is what must be in scope.
        name = node.namespace if node.namespace is not None else node.name
        self._reference(name, node.span, node, ReferenceRole.COMMAND)

    def _visit_ObjectConstruction(self, node: ObjectConstruction) -> None:
        self._reference(node.type_name.name, node.type_name.span, node.type_name, ReferenceRole.TYPE)
        self._visit(node.record)

    def _visit_RecordField(self, node: RecordField) -> None:
        self._visit(node.value)

    def _visit_FieldAccess(self, node: FieldAccess) -> None:
        self._visit(node.target)

    def _visit_MethodCall(self, node: MethodCall) -> None:
        self._visit(node.target)
        self._visit_all(node.args)

    def _visit_Identifier(self, node: Node) -> None:
        # Bare words are literal text, not references.
        pass

    def _visit_EnvVariable(self, node: Node) -> None:
        pass

    def _visit_SpecialVariable(self, node: Node) -> None:
        pass

    def _visit_TypeHint(self, node: Node) -> None:
        pass

    def _visit_ErrorNode(self, node: Node) -> None:
        pass

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------

    def _visit_LetStatement(self, node: LetStatement) -> None:
        self._visit(node.value)
        self._define(node.name.name, BindingKind.VARIABLE, node)

    def _visit_VariableAssignment(self, node: VariableAssignment) -> None:
        self._visit(node.value)
        target = node.target
        if node.op == "=" and self._scopes.current.lookup(target.name) is None:
            self._define(target.name, BindingKind.VARIABLE, node)
            return
        self._visit_Variable(target)

    def _visit_FunctionDefinition(self, node: FunctionDefinition) -> None:
        self._visit_all(node.decorators)
        self._define(node.name.name, BindingKind.FUNCTION, node)
        self._visit_defaults(node.params)
        with self._scopes.scope(ScopeKind.FUNCTION, node.span):
            self._bind_parameters(node.params)
            self._visit_all(node.body.statements)

    def _visit_MacroDefinition(self, node: MacroDefinition) -> None:
        self._visit_all(node.decorators)
        self._define(node.name.name, BindingKind.MACRO, node)
        self._visit_defaults(node.params)
        with self._scopes.scope(ScopeKind.MACRO, node.span):
            self._bind_parameters(node.params)
            self._visit_all(node.body.statements)

    def _visit_AliasDefinition(self, node: AliasDefinition) -> None:
        self._visit_all(node.decorators)
        # ``alias ls = ls -la`` refers to the command being aliased.
        self._visit(node.value)
        self._define(node.name.name, BindingKind.ALIAS, node)

    def _visit_ObjectDefinition(self, node: ObjectDefinition) -> None:
        self._visit_all(node.decorators)
        self._define(node.name.name, BindingKind.OBJECT, node)
        with self._scopes.scope(ScopeKind.OBJECT, node.span):
            for method in node.methods:
                self._visit_FunctionDefinition(method)

    def _visit_EnumDefinition(self, node: EnumDefinition) -> None:
        self._visit_all(node.decorators)
        self._define(node.name.name, BindingKind.ENUM, node)

    def _visit_TestDefinition(self, node: TestDefinition) -> None:
        self._visit_all(node.decorators)
        with self._scopes.scope(ScopeKind.TEST, node.span):
            self._visit_all(node.body.statements)

    def _visit_UseStatement(self, node: UseStatement) -> None:
        if isinstance(node.module, ModulePath) and node.module.segments:
            self._define(node.module.segments[-1], BindingKind.IMPORT, node)

    def _visit_FromImport(self, node: FromImport) -> None:
        for item in node.items:
            self._define(item.local_name, BindingKind.IMPORT, item)

    def _visit_SourceStatement(self, node: SourceStatement) -> None:
        if node.alias is not None:
            self._define(node.alias.name, BindingKind.IMPORT, node)

    # ------------------------------------------------------------------
    # Scoped constructs
    # ------------------------------------------------------------------

    def _visit_ForStatement(self, node: ForStatement) -> None:
        self._visit(node.iterable)
        with self._scopes.scope(ScopeKind.FOR_BODY, node.body.span):
            self._define(node.variable.name, BindingKind.VARIABLE, node.variable)
            self._visit_all(node.body.statements)

    def _visit_MatchStatement(self, node: MatchStatement) -> None:
        self._visit(node.subject)
        for arm in node.arms:
            with self._scopes.scope(ScopeKind.MATCH_ARM, arm.span):
                self._bind_pattern(arm.pattern)
                self._visit(arm.guard)
                if isinstance(arm.body, Block):
                    self._visit_all(arm.body.statements)
                else:
                    self._visit(arm.body)

    def _bind_pattern(self, pattern: PatternNode) -> None:
        if isinstance(pattern, (BindingPattern, RestPattern)):
            self._define(pattern.name, BindingKind.VARIABLE, pattern)
        elif isinstance(pattern, TypedRecordPattern):
            type_name = pattern.type_name
            self._reference(type_name.name, type_name.span, type_name, ReferenceRole.TYPE)
            self._bind_pattern(pattern.record)
        elif isinstance(pattern, RecordPattern):
            for field in pattern.fields:
                bound = field.bound_name
                if bound is not None:
                    self._define(bound, BindingKind.VARIABLE, field)
        elif isinstance(pattern, ListPattern):
            for element in pattern.elements:
                self._bind_pattern(element)

    def _visit_TryStatement(self, node: TryStatement) -> None:
        self._visit_all(node.body.statements)
        with self._scopes.scope(ScopeKind.CATCH, node.handler.span):
            if node.error_name is not None:
                self._define(node.error_name.name, BindingKind.VARIABLE, node.error_name)
            self._visit_all(node.handler.statements)

    def _visit_Closure(self, node: Closure) -> None:
        with self._scopes.scope(ScopeKind.CLOSURE, node.span):
            self._bind_parameters(node.params)
            self._visit_all(node.body.statements)

    def _visit_Lambda(self, node: Lambda) -> None:
        self._visit_defaults(node.params)
        with self._scopes.scope(ScopeKind.LAMBDA, node.span):
            self._bind_parameters(node.params)
            self._visit_all(node.body.statements)


def resolve(program: Program, diagnostics: DiagnosticCollector | None = None) -> BindingTable:
    """Resolve names in *program*, reporting warnings into *diagnostics*."""
    return Resolver(diagnostics).resolve(program)

"""AST node types for the ApX parser.

Expression nodes are defined in ``apxlib.core.expressions`` and re-exported
here for convenience.  This module adds statement-, pattern- and
program-level nodes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

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
    IntLiteral,
    Lambda,
    ListLiteral,
    MethodCall,
    Node,
    NullLiteral,
    ObjectConstruction,
    Parameter,
    ParenExpr,
    PathArgument,
    PatternNode,
    Pipeline,
    ProcessSubstitution,
    RangeExpr,
    RecordField,
    RecordLiteral,
    SetLiteral,
    SpecialVariable,
    StmtNode,
    StringLiteral,
    TupleLiteral,
    TypeHint,
    UnaryOp,
    Variable,
)
from apxlib.diagnostics.location import SourceSpan

# Re-export expression nodes so consumers can import everything from
# ``apxlib.parser.ast_nodes``.
__all__ = [
    # Bases
    "Node",
    "ExprNode",
    "StmtNode",
    "PatternNode",
    # Expression nodes (re-exported from core)
    "IntLiteral",
    "FloatLiteral",
    "StringLiteral",
    "BoolLiteral",
    "NullLiteral",
    "Identifier",
    "Variable",
    "EnvVariable",
    "SpecialVariable",
    "BinaryOp",
    "UnaryOp",
    "ParenExpr",
    "FieldAccess",
    "MethodCall",
    "Call",
    "Pipeline",
    "CommandName",
    "CommandStage",
    "CommandExpression",
    "Flag",
    "PathArgument",
    "ListLiteral",
    "RecordField",
    "RecordLiteral",
    "TupleLiteral",
    "SetLiteral",
    "RangeExpr",
    "BraceExpansion",
    "ObjectConstruction",
    "CommandSubstitution",
    "ProcessSubstitution",
    "TypeHint",
    "Parameter",
    "Block",
    "Closure",
    "Lambda",
    # Decorator
    "Decorator",
    # Statement nodes
    "LetStatement",
    "VariableAssignment",
    "ElifClause",
    "IfStatement",
    "ForStatement",
    "WhileStatement",
    "LoopStatement",
    "MatchArm",
    "MatchStatement",
    "TryStatement",
    "FunctionDefinition",
    "MacroDefinition",
    "AliasDefinition",
    "ObjectField",
    "ObjectDefinition",
    "EnumDefinition",
    "TestDefinition",
    "ModulePath",
    "UseStatement",
    "ImportItem",
    "FromImport",
    "SourceStatement",
    "ReturnStatement",
    "BreakStatement",
    "ContinueStatement",
    "ErrorNode",
    "Statement",
    # Pattern nodes
    "LiteralPattern",
    "WildcardPattern",
    "BindingPattern",
    "PatternField",
    "RecordPattern",
    "TypedRecordPattern",
    "RestPattern",
    "ListPattern",
    # Program node
    "Program",
]


# ---------------------------------------------------------------------------
# Decorator node
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Decorator(Node):
    """``@name``, ``@name(args)``, ``@name "arg"`` or ``@name 42``."""

    name: str
    args: tuple[ExprNode, ...] = ()
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LetStatement(StmtNode):
    """``let|const|set NAME = value``."""

    keyword: str
    name: Identifier
    value: Node
    span: SourceSpan | None = None


@dataclass(frozen=True)
class VariableAssignment(StmtNode):
    """``$var = value`` or ``$var += value``; value may be another assignment."""

    target: Variable
    op: str
    value: Node
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Control flow
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ElifClause(Node):
    condition: ExprNode
    body: Block
    span: SourceSpan | None = None


@dataclass(frozen=True)
class IfStatement(StmtNode):
    condition: ExprNode
    body: Block
    elifs: tuple[ElifClause, ...] = ()
    else_body: Block | None = None
    span: SourceSpan | None = None


@dataclass(frozen=True)
class ForStatement(StmtNode):
    """``for $x in iterable { body }``; ``variable`` is a Variable or Identifier."""

    variable: Variable | Identifier
    iterable: ExprNode
    body: Block
    span: SourceSpan | None = None


@dataclass(frozen=True)
class WhileStatement(StmtNode):
    condition: ExprNode
    body: Block
    span: SourceSpan | None = None


@dataclass(frozen=True)
class LoopStatement(StmtNode):
    body: Block
    span: SourceSpan | None = None


@dataclass(frozen=True)
class MatchArm(Node):
    """``pattern (if guard)? => body``; body is a Block or an expression."""

    pattern: PatternNode
    guard: ExprNode | None
    body: Node
    span: SourceSpan | None = None


@dataclass(frozen=True)
class MatchStatement(StmtNode):
    subject: ExprNode
    arms: tuple[MatchArm, ...] = ()
    span: SourceSpan | None = None


@dataclass(frozen=True)
class TryStatement(StmtNode):
    """``try { } catch name? { }``."""

    body: Block
    error_name: Identifier | None
    handler: Block
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FunctionDefinition(StmtNode):
    """``fn NAME(params) -> type { body }``."""

    name: Identifier
    params: tuple[Parameter, ...]
    return_type: TypeHint | None
    body: Block
    decorators: tuple[Decorator, ...] = ()
    span: SourceSpan | None = None

    def children(self):
        # Decorators precede the name in source.
        yield from self.decorators
        yield self.name
        yield from self.params
        if self.return_type is not None:
            yield self.return_type
        yield self.body


@dataclass(frozen=True)
class MacroDefinition(StmtNode):
    """``macro NAME(params) { }`` or shell-style ``macro NAME $a $b { }``."""

    name: Identifier
    params: tuple[Parameter, ...]
    body: Block
    shell_style: bool = False
    decorators: tuple[Decorator, ...] = ()
    span: SourceSpan | None = None

    def children(self):
        yield from self.decorators
        yield self.name
        yield from self.params
        yield self.body


@dataclass(frozen=True)
class AliasDefinition(StmtNode):
    """``alias NAME = expression``."""

    name: Identifier
    value: ExprNode
    decorators: tuple[Decorator, ...] = ()
    span: SourceSpan | None = None

    def children(self):
        yield from self.decorators
        yield self.name
        yield self.value


@dataclass(frozen=True)
class ObjectField(Node):
    name: Identifier
    span: SourceSpan | None = None


@dataclass(frozen=True)
class ObjectDefinition(StmtNode):
    """``obj NAME { field, fn method() { } }``."""

    name: Identifier
    members: tuple[ObjectField | FunctionDefinition, ...] = ()
    decorators: tuple[Decorator, ...] = ()
    span: SourceSpan | None = None

    def children(self):
        yield from self.decorators
        yield self.name
        yield from self.members

    @property
    def fields(self) -> tuple[ObjectField, ...]:
        return tuple(m for m in self.members if isinstance(m, ObjectField))

    @property
    def methods(self) -> tuple[FunctionDefinition, ...]:
        return tuple(m for m in self.members if isinstance(m, FunctionDefinition))


@dataclass(frozen=True)
class EnumDefinition(StmtNode):
    """``enum NAME { variant, ... }``."""

    name: Identifier
    variants: tuple[Identifier, ...] = ()
    decorators: tuple[Decorator, ...] = ()
    span: SourceSpan | None = None

    def children(self):
        yield from self.decorators
        yield self.name
        yield from self.variants


@dataclass(frozen=True)
class TestDefinition(StmtNode):
    """``test "name" { }``."""

    name: StringLiteral
    body: Block
    decorators: tuple[Decorator, ...] = ()
    span: SourceSpan | None = None

    # Keep pytest from collecting this class when imported into test modules.
    __test__ = False

    def children(self):
        yield from self.decorators
        yield self.name
        yield self.body


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModulePath(Node):
    """``a::b::c``."""

    segments: tuple[str, ...]
    span: SourceSpan | None = None

    def __str__(self) -> str:
        return "::".join(self.segments)


@dataclass(frozen=True)
class UseStatement(StmtNode):
    """``use a::b`` or ``use "file"``."""

    module: ModulePath | StringLiteral
    span: SourceSpan | None = None


@dataclass(frozen=True)
class ImportItem(Node):
    """``name`` or ``name as alias``."""

    name: Identifier
    alias: Identifier | None = None
    span: SourceSpan | None = None

    @property
    def local_name(self) -> str:
        return (self.alias or self.name).name


@dataclass(frozen=True)
class FromImport(StmtNode):
    """``from MODULE import items`` or ``from MODULE import *``."""

    module: ModulePath | StringLiteral
    items: tuple[ImportItem, ...] = ()
    wildcard: bool = False
    span: SourceSpan | None = None


@dataclass(frozen=True)
class SourceStatement(StmtNode):
    """``source "file" (as name)?``. Loading the file is the caller's business."""

    path: StringLiteral
    alias: Identifier | None = None
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Jumps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReturnStatement(StmtNode):
    value: Node | None = None
    span: SourceSpan | None = None


@dataclass(frozen=True)
class BreakStatement(StmtNode):
    span: SourceSpan | None = None


@dataclass(frozen=True)
class ContinueStatement(StmtNode):
    span: SourceSpan | None = None


@dataclass(frozen=True)
class ErrorNode(StmtNode):
    """Tokens skipped while recovering from a syntax error."""

    message: str
    text: str = ""
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LiteralPattern(PatternNode):
    """Matches by equality with a number, string, boolean or null literal."""

    value: ExprNode
    span: SourceSpan | None = None


@dataclass(frozen=True)
class WildcardPattern(PatternNode):
    span: SourceSpan | None = None


@dataclass(frozen=True)
class BindingPattern(PatternNode):
    """``name`` or ``$name``: binds the matched value."""

    name: str
    sigil: bool = False
    span: SourceSpan | None = None


@dataclass(frozen=True)
class PatternField(PatternNode):
    """``field`` (binds ``field``), ``field: $b`` (binds ``b``) or ``field: _``."""

    name: Identifier
    binding: Variable | WildcardPattern | None = None
    span: SourceSpan | None = None

    @property
    def bound_name(self) -> str | None:
        if self.binding is None:
            return self.name.name
        if isinstance(self.binding, Variable):
            return self.binding.name
        return None


@dataclass(frozen=True)
class RecordPattern(PatternNode):
    fields: tuple[PatternField, ...] = ()
    span: SourceSpan | None = None


@dataclass(frozen=True)
class TypedRecordPattern(PatternNode):
    """``TypeName { fields }``."""

    type_name: Identifier
    record: RecordPattern
    span: SourceSpan | None = None


@dataclass(frozen=True)
class RestPattern(PatternNode):
    """``...rest`` inside a list pattern."""

    name: str
    sigil: bool = False
    span: SourceSpan | None = None


@dataclass(frozen=True)
class ListPattern(PatternNode):
    elements: tuple[PatternNode, ...] = ()
    span: SourceSpan | None = None

    @property
    def rest(self) -> RestPattern | None:
        for element in self.elements:
            if isinstance(element, RestPattern):
                return element
        return None


# Union of all statement types the parser can produce.  Expressions are also
# valid statements and appear in statement lists directly.
Statement = Union[
    LetStatement,
    VariableAssignment,
    IfStatement,
    ForStatement,
    WhileStatement,
    LoopStatement,
    MatchStatement,
    TryStatement,
    FunctionDefinition,
    MacroDefinition,
    AliasDefinition,
    ObjectDefinition,
    EnumDefinition,
    TestDefinition,
    UseStatement,
    FromImport,
    SourceStatement,
    ReturnStatement,
    BreakStatement,
    ContinueStatement,
    ErrorNode,
    ExprNode,
]


# ---------------------------------------------------------------------------
# Program node
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Program(Node):
    """Top-level module: the statement list of one source file."""

    statements: tuple[Node, ...] = ()
    file: str = "<string>"
    span: SourceSpan | None = None

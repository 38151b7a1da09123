"""Syntax node base classes and expression nodes for ApX."""

from __future__ import annotations

import re
from abc import ABC
from collections.abc import Iterator
from dataclasses import dataclass, fields
from functools import lru_cache

from apxlib.diagnostics.location import SourceSpan


@lru_cache(maxsize=None)
def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class Node(ABC):
    """Base type for every syntax node. All concrete subclasses are frozen dataclasses."""

    @property
    def kind(self) -> str:
        """Display kind used by highlighters, e.g. ``function_definition``."""
        return _snake_case(type(self).__name__)

    def children(self) -> Iterator[Node]:
        """Yield owned child nodes in source order."""
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if isinstance(value, Node):
                yield value
            elif isinstance(value, tuple):
                for item in value:
                    if isinstance(item, Node):
                        yield item

    def walk(self) -> Iterator[Node]:
        """Yield this node and all descendants, pre-order."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(list(node.children())))


class ExprNode(Node):
    """Base type for expression nodes."""


class StmtNode(Node):
    """Base type for statement nodes."""


class PatternNode(Node):
    """Base type for ``match`` arm patterns."""


# ---------------------------------------------------------------------------
# Literals
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IntLiteral(ExprNode):
    """Integer literal: 42, 0xFF, 0b1010, 0o755."""

    value: int
    radix: int = 10
    span: SourceSpan | None = None


@dataclass(frozen=True)
class FloatLiteral(ExprNode):
    """Float literal: 1.5, 2.5e-3, 1e6."""

    value: float
    span: SourceSpan | None = None


@dataclass(frozen=True)
class StringLiteral(ExprNode):
    """String literal. ``style`` is double, single, triple, raw or backtick."""

    value: str
    style: str = "double"
    span: SourceSpan | None = None


@dataclass(frozen=True)
class BoolLiteral(ExprNode):
    value: bool
    span: SourceSpan | None = None


@dataclass(frozen=True)
class NullLiteral(ExprNode):
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Identifier(ExprNode):
    """Bare name: definition names, bare-word arguments, field names."""

    name: str
    span: SourceSpan | None = None


@dataclass(frozen=True)
class Variable(ExprNode):
    """``$name`` reference. ``name`` excludes the sigil."""

    name: str
    span: SourceSpan | None = None


@dataclass(frozen=True)
class EnvVariable(ExprNode):
    """``$env.NAME``."""

    name: str
    span: SourceSpan | None = None


@dataclass(frozen=True)
class SpecialVariable(ExprNode):
    """``$it``, ``$_`` or ``$err``."""

    name: str
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Operators and access
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BinaryOp(ExprNode):
    """Binary operation: left op right."""

    op: str
    left: ExprNode
    right: ExprNode
    span: SourceSpan | None = None


@dataclass(frozen=True)
class UnaryOp(ExprNode):
    """Prefix ``not``, ``!`` or ``-``."""

    op: str
    operand: ExprNode
    span: SourceSpan | None = None


@dataclass(frozen=True)
class ParenExpr(ExprNode):
    expr: ExprNode
    span: SourceSpan | None = None


@dataclass(frozen=True)
class FieldAccess(ExprNode):
    """``target.field``. Only the target is a reference."""

    target: ExprNode
    field: Identifier
    span: SourceSpan | None = None


@dataclass(frozen=True)
class MethodCall(ExprNode):
    """``target.method(args)``."""

    target: ExprNode
    method: Identifier
    args: tuple[ExprNode, ...] = ()
    span: SourceSpan | None = None


@dataclass(frozen=True)
class Call(ExprNode):
    """Function call written as ``name(args)`` with no space before ``(``."""

    callee: Identifier
    args: tuple[ExprNode, ...] = ()
    span: SourceSpan | None = None


@dataclass(frozen=True)
class Pipeline(ExprNode):
    """``stage op stage op stage``; ``operators[i]`` joins stages i and i+1."""

    stages: tuple[ExprNode, ...]
    operators: tuple[str, ...]
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommandName(ExprNode):
    """Command name, optionally namespaced (``git.status``)."""

    name: str
    namespace: str | None = None
    builtin: bool = False
    span: SourceSpan | None = None

    @property
    def kind(self) -> str:
        return "builtin_command" if self.builtin else "command_name"

    @property
    def full_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name


@dataclass(frozen=True)
class Flag(ExprNode):
    """``-x``, ``--name``, ``--name=value`` or ``--name value``."""

    name: str
    long: bool = False
    value: ExprNode | None = None
    span: SourceSpan | None = None


@dataclass(frozen=True)
class PathArgument(ExprNode):
    """Path or glob word: ``/tmp``, ``./src``, ``..``, ``*.txt``."""

    path: str
    span: SourceSpan | None = None


@dataclass(frozen=True)
class CommandStage(ExprNode):
    name: CommandName
    args: tuple[ExprNode, ...] = ()
    span: SourceSpan | None = None


@dataclass(frozen=True)
class CommandExpression(ExprNode):
    """``name args | name args ...`` with every stage kept separately."""

    stages: tuple[CommandStage, ...]
    operators: tuple[str, ...] = ()
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ListLiteral(ExprNode):
    elements: tuple[ExprNode, ...] = ()
    span: SourceSpan | None = None


@dataclass(frozen=True)
class RecordField(ExprNode):
    key: Identifier | StringLiteral
    value: ExprNode
    span: SourceSpan | None = None


@dataclass(frozen=True)
class RecordLiteral(ExprNode):
    fields: tuple[RecordField, ...] = ()
    span: SourceSpan | None = None


@dataclass(frozen=True)
class TupleLiteral(ExprNode):
    elements: tuple[ExprNode, ...] = ()
    span: SourceSpan | None = None


@dataclass(frozen=True)
class SetLiteral(ExprNode):
    elements: tuple[ExprNode, ...] = ()
    span: SourceSpan | None = None


@dataclass(frozen=True)
class RangeExpr(ExprNode):
    """``start..end`` (exclusive) or ``start..=end`` (inclusive)."""

    start: ExprNode
    end: ExprNode
    inclusive: bool = False
    span: SourceSpan | None = None


@dataclass(frozen=True)
class BraceExpansion(ExprNode):
    """``{a,b,c}``; the ``{1..5}`` form holds a single RangeExpr item."""

    items: tuple[ExprNode, ...]
    span: SourceSpan | None = None


@dataclass(frozen=True)
class ObjectConstruction(ExprNode):
    """``Dog { name: "Rex" }``."""

    type_name: Identifier
    record: RecordLiteral
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Substitutions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommandSubstitution(ExprNode):
    """``$( expr )``."""

    expr: ExprNode
    span: SourceSpan | None = None


@dataclass(frozen=True)
class ProcessSubstitution(ExprNode):
    """``<( expr )`` (direction ``in``) or ``>( expr )`` (direction ``out``)."""

    direction: str
    expr: ExprNode
    span: SourceSpan | None = None


# ---------------------------------------------------------------------------
# Callables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeHint(Node):
    """``int`` or ``int?``."""

    name: str
    optional: bool = False
    span: SourceSpan | None = None


@dataclass(frozen=True)
class Parameter(Node):
    """Parameter of a function, macro, closure or lambda."""

    name: str
    sigil: bool = True
    type_hint: TypeHint | None = None
    default: ExprNode | None = None
    span: SourceSpan | None = None


@dataclass(frozen=True)
class Block(Node):
    """``{ statements }`` used as a body."""

    statements: tuple[Node, ...] = ()
    span: SourceSpan | None = None


@dataclass(frozen=True)
class Closure(ExprNode):
    """``{ |params| statements }`` or ``{ statements }`` used as a value."""

    params: tuple[Parameter, ...]
    body: Block
    explicit_params: bool = False
    span: SourceSpan | None = None


@dataclass(frozen=True)
class Lambda(ExprNode):
    """``|params| -> type { block }``."""

    params: tuple[Parameter, ...]
    return_type: TypeHint | None
    body: Block
    span: SourceSpan | None = None

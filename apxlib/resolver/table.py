"""The binding table produced by name resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from apxlib.core.expressions import Node
from apxlib.diagnostics.location import SourceSpan
from apxlib.resolver.scope import ScopeInfo


class BindingKind(Enum):
    VARIABLE = "variable"
    PARAMETER = "parameter"
    FUNCTION = "function"
    MACRO = "macro"
    ALIAS = "alias"
    ENUM = "enum"
    OBJECT = "object"
    IMPORT = "import"


class ReferenceRole(Enum):
    """How a name is used at a reference site."""

    VARIABLE = "variable"
    CALL = "call"
    COMMAND = "command"
    TYPE = "type"


@dataclass(frozen=True)
class Binding:
    """A defined name.  ``node`` is the defining node, ``scope`` its scope index."""

    name: str
    kind: BindingKind
    node: Node
    scope: int


@dataclass(frozen=True)
class Reference:
    """A use of a name.  ``binding`` indexes ``BindingTable.bindings``, or is None."""

    name: str
    span: SourceSpan
    node: Node
    role: ReferenceRole
    binding: int | None = None

    @property
    def resolved(self) -> bool:
        return self.binding is not None


@dataclass
class BindingTable:
    """Flat result of resolution: bindings, scopes and references by span.

    Edges from references to definitions are indices into ``bindings``.
    """

    bindings: list[Binding] = field(default_factory=list)
    scopes: list[ScopeInfo] = field(default_factory=list)
    references: dict[SourceSpan, Reference] = field(default_factory=dict)

    def add_binding(self, binding: Binding) -> int:
        self.bindings.append(binding)
        return len(self.bindings) - 1

    def add_reference(self, reference: Reference) -> None:
        self.references[reference.span] = reference

    def lookup(self, span: SourceSpan) -> Reference | None:
        """Reference recorded at *span*, if any."""
        return self.references.get(span)

    def definition_of(self, node: Node) -> Node | None:
        """Defining node for the reference *node*, or None if unresolved."""
        if node.span is None:  # type: ignore[attr-defined]
            return None
        reference = self.references.get(node.span)  # type: ignore[attr-defined]
        if reference is None or reference.binding is None:
            return None
        return self.bindings[reference.binding].node

    def unresolved(self) -> list[Reference]:
        return [r for r in self.references.values() if r.binding is None]

    def references_to(self, binding: int) -> list[Reference]:
        """All references resolved to the binding at index *binding*."""
        return [r for r in self.references.values() if r.binding == binding]

    def bindings_named(self, name: str) -> list[Binding]:
        return [b for b in self.bindings if b.name == name]

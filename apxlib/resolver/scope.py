"""Lexical scopes used while resolving names."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from apxlib.diagnostics.location import SourceSpan


class ScopeKind(Enum):
    """Constructs that open a new scope."""

    MODULE = "module"
    FUNCTION = "function"
    MACRO = "macro"
    CLOSURE = "closure"
    LAMBDA = "lambda"
    FOR_BODY = "for_body"
    MATCH_ARM = "match_arm"
    CATCH = "catch"
    TEST = "test"
    OBJECT = "object"


@dataclass(frozen=True)
class ScopeInfo:
    """Record of one scope, kept in the binding table after resolution."""

    index: int
    kind: ScopeKind
    parent: int | None
    span: SourceSpan | None = None


@dataclass
class Scope:
    """A live scope: names bound here, plus a lookup-only parent link."""

    index: int
    kind: ScopeKind
    parent: Scope | None = None
    names: dict[str, int] = field(default_factory=dict)

    def define(self, name: str, binding: int) -> None:
        # Redefinition in the same scope shadows the earlier binding.
        self.names[name] = binding

    def lookup(self, name: str) -> int | None:
        """Binding index for *name*, searching innermost to outermost."""
        scope: Scope | None = self
        while scope is not None:
            if name in scope.names:
                return scope.names[name]
            scope = scope.parent
        return None


class ScopeStack:
    """Push and pop scopes, recording a :class:`ScopeInfo` for each."""

    def __init__(self) -> None:
        self._current: Scope | None = None
        self.infos: list[ScopeInfo] = []

    @property
    def current(self) -> Scope:
        if self._current is None:
            raise RuntimeError("No scope is open")
        return self._current

    @contextmanager
    def scope(self, kind: ScopeKind, span: SourceSpan | None = None) -> Iterator[Scope]:
        parent = self._current
        new = Scope(index=len(self.infos), kind=kind, parent=parent)
        self.infos.append(
            ScopeInfo(
                index=new.index,
                kind=kind,
                parent=parent.index if parent is not None else None,
                span=span,
            )
        )
        self._current = new
        try:
            yield new
        finally:
            self._current = parent

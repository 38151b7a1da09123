"""ApX name resolution (Layer 3 -- depends on parser, core and diagnostics)."""

from apxlib.resolver.resolver import Resolver, resolve
from apxlib.resolver.scope import ScopeInfo, ScopeKind
from apxlib.resolver.table import Binding, BindingKind, BindingTable, Reference, ReferenceRole

__all__ = [
    "Binding",
    "BindingKind",
    "BindingTable",
    "Reference",
    "ReferenceRole",
    "Resolver",
    "ScopeInfo",
    "ScopeKind",
    "resolve",
]

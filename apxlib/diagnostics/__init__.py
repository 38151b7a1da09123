"""ApX diagnostics subpackage (Layer 0 -- zero internal dependencies)."""

from apxlib.diagnostics.collector import DiagnosticCollector
from apxlib.diagnostics.diagnostic import Diagnostic
from apxlib.diagnostics.location import SourceSpan
from apxlib.diagnostics.severity import DiagnosticCategory, DiagnosticSeverity

__all__ = [
    "SourceSpan",
    "DiagnosticSeverity",
    "DiagnosticCategory",
    "Diagnostic",
    "DiagnosticCollector",
]

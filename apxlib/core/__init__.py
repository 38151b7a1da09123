"""ApX core subpackage (Layer 1 -- depends only on diagnostics)."""

from apxlib.core.builtins import (
    RegistryError,
    builtin_category,
    builtin_commands,
    is_builtin_command,
    load_registry,
    reload_builtins,
)
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
from apxlib.core.types import TypeName

__all__ = [
    "RegistryError",
    "builtin_category",
    "builtin_commands",
    "is_builtin_command",
    "load_registry",
    "reload_builtins",
    "TypeName",
    "Node",
    "ExprNode",
    "StmtNode",
    "PatternNode",
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
]

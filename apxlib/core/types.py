"""ApX type-hint vocabulary."""

from __future__ import annotations

from enum import Enum


class TypeName(Enum):
    """Names accepted in ``: type`` and ``-> type`` hints."""

    INT = "int"
    FLOAT = "float"
    NUMBER = "number"
    STRING = "string"
    BOOL = "bool"
    LIST = "list"
    RECORD = "record"
    TUPLE = "tuple"
    SET = "set"
    CLOSURE = "closure"
    PATH = "path"
    DURATION = "duration"
    FILESIZE = "filesize"
    TASK = "task"
    ENUM = "enum"
    ANY = "any"
    NULL = "null"

    @classmethod
    def from_name(cls, name: str) -> TypeName | None:
        """Look up a type by its source-level name."""
        for member in cls:
            if member.value == name:
                return member
        return None

"""
Parameter type descriptors.

These describe what a handler expects for each argument. The schema
generator turns them into JSON schema properties, and argument coercion
uses the same descriptors to convert decoded values.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ParameterKind(str, Enum):
    """Concrete value kinds a handler parameter can declare."""

    INTEGER = "integer"
    FLOAT = "float"
    NUMBER = "number"  # int or float, whichever the model sent
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    ENUM = "enum"
    ANY = "any"

    @property
    def is_numeric(self) -> bool:
        return self in (ParameterKind.INTEGER, ParameterKind.FLOAT, ParameterKind.NUMBER)


@dataclass(frozen=True)
class ParamType:
    """A parameter kind, plus element type for arrays or choices for enums."""

    kind: ParameterKind
    items: Optional["ParamType"] = None
    choices: tuple[str, ...] = ()

    @classmethod
    def array_of(cls, items: "ParamType") -> "ParamType":
        return cls(ParameterKind.ARRAY, items=items)

    @classmethod
    def enum_of(cls, *choices: str) -> "ParamType":
        return cls(ParameterKind.ENUM, choices=tuple(str(c) for c in choices))

    def describe(self) -> str:
        """Human-readable kind name used in error messages."""
        if self.kind == ParameterKind.ARRAY and self.items is not None:
            return f"array of {self.items.describe()}"
        if self.kind == ParameterKind.ENUM and self.choices:
            return f"one of {list(self.choices)}"
        return self.kind.value


# Shorthands for the common scalar kinds
INTEGER = ParamType(ParameterKind.INTEGER)
FLOAT = ParamType(ParameterKind.FLOAT)
NUMBER = ParamType(ParameterKind.NUMBER)
STRING = ParamType(ParameterKind.STRING)
BOOLEAN = ParamType(ParameterKind.BOOLEAN)
ANY = ParamType(ParameterKind.ANY)


@dataclass(frozen=True)
class ParameterSpec:
    """One declared handler parameter."""

    name: str
    type: ParamType
    description: Optional[str] = None
    format: Optional[str] = None
    minimum: Optional[float] = None

"""
Function Registry - maps tool names to handlers and declared schemas.

Each agent owns its own registry. Registration and lookup may happen
from different threads; entries are immutable and swapped in under a
lock, so readers never see a half-built entry.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from ..exceptions import ValidationError
from ..models.parameters import ParameterSpec

logger = logging.getLogger(__name__)

Handler = Callable[[Mapping[str, Any]], Any]


@dataclass(frozen=True)
class RegisteredFunction:
    """A callable tool and everything needed to describe it to the model.

    ``schema`` is an explicit JSON schema for the parameters. When it is
    None the schema is generated at request-build time from ``parameters``,
    or a default one is synthesized.
    """

    name: str
    handler: Handler
    schema: Optional[dict] = None
    parameters: Optional[tuple[ParameterSpec, ...]] = None
    description: Optional[str] = None


def _validate_schema(name: str, schema: Mapping) -> None:
    properties = schema.get("properties", {})
    if not isinstance(properties, Mapping):
        raise ValidationError(f"Schema for '{name}': properties must be a mapping")
    bad = [prop for prop, info in properties.items() if not isinstance(info, Mapping)]
    if bad:
        raise ValidationError(
            f"Schema for '{name}': properties {bad} must be mappings"
        )
    required = schema.get("required", [])
    if not isinstance(required, (list, tuple)):
        raise ValidationError(f"Schema for '{name}': required must be a list")
    missing = [r for r in required if r not in properties]
    if missing:
        raise ValidationError(
            f"Schema for '{name}': required parameters {missing} are not in properties"
        )


class FunctionRegistry:
    """Thread-safe registry of callable tools, keyed by name."""

    def __init__(self) -> None:
        self._functions: dict[str, RegisteredFunction] = {}
        self._lock = threading.Lock()

    def register(
        self,
        name: str,
        handler: Handler,
        schema: Optional[Mapping] = None,
        description: Optional[str] = None,
        parameters: Optional[Sequence[ParameterSpec]] = None,
    ) -> RegisteredFunction:
        """Register a tool, replacing any existing entry with the same name.

        Raises:
            ValidationError: If the name is blank, the handler is not callable,
                or the schema lists required parameters it does not define.
        """
        if name is None or not str(name).strip():
            raise ValidationError("Function name cannot be null or blank")
        if handler is None or not callable(handler):
            raise ValidationError(f"Handler for '{name}' must be callable")
        if schema is not None:
            _validate_schema(name, schema)

        entry = RegisteredFunction(
            name=name,
            handler=handler,
            schema=dict(schema) if schema is not None else None,
            parameters=tuple(parameters) if parameters is not None else None,
            description=description,
        )
        return self.add(entry)

    def add(self, entry: RegisteredFunction) -> RegisteredFunction:
        """Store a prebuilt entry (from an adapter) under its own name."""
        if not entry.name or not entry.name.strip():
            raise ValidationError("Function name cannot be null or blank")
        with self._lock:
            replaced = entry.name in self._functions
            self._functions[entry.name] = entry
        logger.debug(
            "%s function '%s'", "Replaced" if replaced else "Registered", entry.name
        )
        return entry

    def lookup(self, name: str) -> Optional[RegisteredFunction]:
        """Get a function by name, or None if it is not registered."""
        with self._lock:
            return self._functions.get(name)

    def all_functions(self) -> list[RegisteredFunction]:
        """Snapshot of all entries in registration order."""
        with self._lock:
            return list(self._functions.values())

    def names(self) -> list[str]:
        with self._lock:
            return list(self._functions)

    def remove(self, name: str) -> bool:
        """Remove a function. Returns True if it existed."""
        with self._lock:
            return self._functions.pop(name, None) is not None

    def clear(self) -> None:
        """Remove all registered functions (mainly for testing)."""
        with self._lock:
            self._functions.clear()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._functions

    def __len__(self) -> int:
        with self._lock:
            return len(self._functions)

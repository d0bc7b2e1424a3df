"""
Function registry and adapters that populate it.
"""

from .registry import FunctionRegistry, RegisteredFunction
from .introspection import (
    function_from_callable,
    parameters_from_callable,
    register_methods,
)

__all__ = [
    "FunctionRegistry",
    "RegisteredFunction",
    "function_from_callable",
    "parameters_from_callable",
    "register_methods",
]

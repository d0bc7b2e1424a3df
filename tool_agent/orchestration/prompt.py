"""
System prompt generation.

The system message is rebuilt from the registry on every request, so the
parameter guidance always matches the schemas the agent enforces.
"""

from typing import Iterable

from ..tools.registry import RegisteredFunction
from .tool_defs import resolve_schema

SYSTEM_PROMPT_HEADER = (
    "You are a helpful assistant that can use provided functions. "
    "Please follow these guidelines when using functions:"
)

GENERAL_GUIDELINES = [
    "1. Always provide ALL required arguments according to the function schema",
    "2. Use the correct data types for arguments:",
    "   - For numbers: Use numeric values without quotes",
    "   - For strings: Use quoted text",
    "   - For arrays: Use JSON array format",
    "   - For booleans: Use true or false",
]

ERROR_HANDLING_GUIDELINES = [
    "4. Error handling:",
    "   - If a function call is malformed or fails, you will receive an error "
    "message as the function result instead of a value",
    "   - Never send empty argument objects for functions that require arguments",
    "   - For questions that don't require function calls, answer directly and concisely",
]


def _parameter_lines(schema: dict) -> list[str]:
    lines = []
    required = set(schema.get("required", []))
    for name, info in schema.get("properties", {}).items():
        param_type = info.get("type", "any")
        if param_type == "array" and isinstance(info.get("items"), dict):
            param_type = f"array of {info['items'].get('type', 'any')}"
        line = f"     * {name} ({param_type}): {info.get('description', '')}".rstrip()
        if "enum" in info:
            line += f" [allowed: {', '.join(str(v) for v in info['enum'])}]"
        if name not in required:
            line += " (optional)"
        lines.append(line)
    return lines


def build_system_prompt(functions: Iterable[RegisteredFunction]) -> str:
    """
    Build the system instruction for the current set of functions.

    Sections come in a fixed order: general argument guidelines,
    per-function parameters, then error-handling expectations.

    Args:
        functions: Registry entries, usually ``registry.all_functions()``.

    Returns:
        The system prompt text.
    """
    lines = [SYSTEM_PROMPT_HEADER, ""]
    lines.extend(GENERAL_GUIDELINES)
    lines.append("")
    lines.append("3. Function-specific guidelines:")
    for entry in functions:
        schema = resolve_schema(entry)
        lines.append(f"   - {entry.name}:")
        params = _parameter_lines(schema)
        lines.extend(params if params else ["     * (no arguments): send {}"])
    lines.append("")
    lines.extend(ERROR_HANDLING_GUIDELINES)
    return "\n".join(lines)

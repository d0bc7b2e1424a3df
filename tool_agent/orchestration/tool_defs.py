"""
Tool definitions for the orchestration loop.

Generates JSON parameter schemas from declared parameters, resolves the
effective schema of each registry entry, and converts registry entries
into OpenAI-style function-calling tool definitions.
"""

import logging
from typing import Iterable, Mapping, Optional, Sequence

from ..models.parameters import (
    ANY,
    ParameterKind,
    ParameterSpec,
    ParamType,
)
from ..tools.registry import RegisteredFunction

logger = logging.getLogger(__name__)

# Parameter name used by the synthesized default schema.
DEFAULT_PARAMETER_NAME = "arg0"

_JSON_TYPES: dict[ParameterKind, str] = {
    ParameterKind.INTEGER: "number",
    ParameterKind.FLOAT: "number",
    ParameterKind.NUMBER: "number",
    ParameterKind.STRING: "string",
    ParameterKind.BOOLEAN: "boolean",
    ParameterKind.ARRAY: "array",
    ParameterKind.ENUM: "string",
    ParameterKind.ANY: "string",
}

_DESCRIPTION_PREFIXES: dict[ParameterKind, str] = {
    ParameterKind.INTEGER: "Integer parameter",
    ParameterKind.FLOAT: "Decimal number parameter",
    ParameterKind.NUMBER: "Number parameter",
    ParameterKind.STRING: "Text parameter",
    ParameterKind.BOOLEAN: "Boolean parameter",
    ParameterKind.ARRAY: "Array parameter",
    ParameterKind.ENUM: "Choice parameter",
    ParameterKind.ANY: "Parameter",
}


def json_type(param_type: ParamType) -> str:
    """JSON schema type name for a parameter type."""
    return _JSON_TYPES[param_type.kind]


def _type_schema(param_type: ParamType) -> dict:
    schema: dict = {"type": json_type(param_type)}
    if param_type.kind == ParameterKind.ARRAY:
        schema["items"] = _type_schema(param_type.items or ANY)
    elif param_type.kind == ParameterKind.ENUM:
        schema["enum"] = list(param_type.choices)
    return schema


def _property_schema(spec: ParameterSpec, function_name: str) -> dict:
    type_schema = _type_schema(spec.type)
    prop: dict = {
        "type": type_schema.pop("type"),
        "description": spec.description
        or f"{_DESCRIPTION_PREFIXES[spec.type.kind]} {spec.name} for {function_name}",
    }
    prop.update(type_schema)
    if spec.format:
        prop["format"] = spec.format
    if spec.minimum is not None:
        prop["minimum"] = spec.minimum
    return prop


def generate_schema(
    parameters: Sequence[ParameterSpec], function_name: str = "function"
) -> dict:
    """
    Build a JSON schema object for an ordered parameter list.

    Every parameter is required and no additional properties are allowed.

    Args:
        parameters: Declared parameters, in call order.
        function_name: Used in generated descriptions.

    Returns:
        Schema dict with ``type``, ``properties``, ``required`` and
        ``additionalProperties``.
    """
    properties: dict = {}
    required: list[str] = []
    for spec in parameters:
        properties[spec.name] = _property_schema(spec, function_name)
        required.append(spec.name)

    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def default_schema(function_name: str) -> dict:
    """Schema used for functions registered with neither schema nor parameters."""
    return {
        "type": "object",
        "properties": {
            DEFAULT_PARAMETER_NAME: {
                "type": "number",
                "description": f"First parameter for {function_name}",
            }
        },
        "required": [DEFAULT_PARAMETER_NAME],
        "additionalProperties": False,
    }


def resolve_schema(entry: RegisteredFunction) -> dict:
    """
    Effective parameter schema of a registry entry.

    Pure function of the entry: nothing is cached, so re-registering a
    function with an explicit schema takes effect on the next request.
    """
    if entry.schema is not None:
        schema = dict(entry.schema)
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        schema.setdefault("required", [])
        return schema
    if entry.parameters is not None:
        return generate_schema(entry.parameters, entry.name)
    return default_schema(entry.name)


def describe_function(entry: RegisteredFunction) -> str:
    """Tool description sent to the model."""
    return entry.description or f"Execute {entry.name}"


def _param_type_from_property(prop: Mapping) -> ParamType:
    json_kind = prop.get("type")
    if "enum" in prop and json_kind in (None, "string"):
        return ParamType.enum_of(*prop["enum"])
    if json_kind == "integer":
        return ParamType(ParameterKind.INTEGER)
    if json_kind == "number":
        return ParamType(ParameterKind.NUMBER)
    if json_kind == "string":
        return ParamType(ParameterKind.STRING)
    if json_kind == "boolean":
        return ParamType(ParameterKind.BOOLEAN)
    if json_kind == "array":
        items = prop.get("items")
        return ParamType.array_of(
            _param_type_from_property(items) if isinstance(items, Mapping) else ANY
        )
    return ANY


def parameter_types(entry: RegisteredFunction) -> dict[str, ParamType]:
    """
    Parameter kinds used to coerce decoded arguments for an entry.

    Declared parameters win; otherwise kinds are read back from the
    effective schema so decoding always agrees with what the model saw.
    """
    if entry.parameters is not None:
        return {spec.name: spec.type for spec in entry.parameters}
    properties = resolve_schema(entry).get("properties", {})
    return {
        name: _param_type_from_property(prop if isinstance(prop, Mapping) else {})
        for name, prop in properties.items()
    }


def build_tool_definition(entry: RegisteredFunction) -> dict:
    """OpenAI function-calling definition for one registry entry.

    The schema goes under ``parameters`` as the OpenAI API expects, rather
    than being merged into the function object itself.
    """
    return {
        "type": "function",
        "function": {
            "name": entry.name,
            "description": describe_function(entry),
            "parameters": resolve_schema(entry),
        },
    }


def build_tool_definitions(
    functions: Iterable[RegisteredFunction],
    exclude_tools: Optional[set[str]] = None,
) -> list[dict]:
    """
    Build OpenAI function-calling tool definitions from registry entries.

    Args:
        functions: Registry entries, usually ``registry.all_functions()``.
        exclude_tools: Tool names to leave out.

    Returns:
        List of OpenAI-format tool definitions, in registration order.
    """
    exclude = exclude_tools or set()
    tools: list[dict] = []
    for entry in functions:
        if entry.name in exclude:
            logger.debug("Excluding tool '%s'", entry.name)
            continue
        tools.append(build_tool_definition(entry))
    return tools

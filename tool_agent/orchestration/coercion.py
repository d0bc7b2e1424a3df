"""
Argument decoding and type coercion for tool calls.

Decoded JSON arguments form a closed set of value shapes (null, boolean,
integer, float, string, array, object). ``coerce`` switches exhaustively
over that set to produce the kind a handler declared, and fails with a
TypeConversionError naming both sides when no rule applies.
"""

import json
import logging
from typing import Any, Mapping, Optional, Sequence, Union

from ..exceptions import ArgumentDecodingError, TypeConversionError
from ..models.parameters import ParameterKind, ParamType

logger = logging.getLogger(__name__)

TRUTHY_STRINGS = frozenset({"true", "1", "yes"})


def value_kind(value: Any) -> str:
    """Name the JSON value shape of a decoded argument."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _fail(value: Any, target: ParamType, reason: Optional[str] = None) -> TypeConversionError:
    message = f"Cannot convert {value_kind(value)} {value!r} to {target.describe()}"
    if reason:
        message = f"{message}: {reason}"
    return TypeConversionError(message, value=value, target=target.describe())


def _convert_number(value: Union[int, float], target: ParamType) -> Union[int, float]:
    try:
        if target.kind == ParameterKind.INTEGER:
            return value if isinstance(value, int) else int(value)
        if target.kind == ParameterKind.FLOAT:
            return float(value)
    except (OverflowError, ValueError) as e:
        raise _fail(value, target, str(e)) from e
    return value


def _parse_number(text: str, target: ParamType) -> Union[int, float]:
    stripped = text.strip()
    try:
        if target.kind == ParameterKind.FLOAT:
            return float(stripped)
        try:
            return int(stripped)
        except ValueError:
            parsed = float(stripped)
    except ValueError as e:
        raise _fail(text, target, "not a number") from e
    return _convert_number(parsed, target) if target.kind == ParameterKind.INTEGER else parsed


def coerce(value: Any, target: Union[ParamType, ParameterKind]) -> Any:
    """
    Convert a decoded argument to the declared parameter type.

    Args:
        value: Value decoded from the tool-call arguments.
        target: Declared type (or bare kind) of the parameter.

    Returns:
        The converted value. Values that already match pass through.

    Raises:
        TypeConversionError: If the value cannot represent the target type.
    """
    if isinstance(target, ParameterKind):
        target = ParamType(target)
    kind = target.kind

    if kind == ParameterKind.ANY:
        return value
    if value is None:
        raise _fail(value, target)

    if kind.is_numeric:
        if isinstance(value, bool):
            raise _fail(value, target)
        if isinstance(value, (int, float)):
            return _convert_number(value, target)
        if isinstance(value, str):
            return _parse_number(value, target)
        raise _fail(value, target)

    if kind == ParameterKind.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in TRUTHY_STRINGS
        if isinstance(value, (int, float)):
            return value != 0
        raise _fail(value, target)

    if kind == ParameterKind.STRING:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        raise _fail(value, target)

    if kind == ParameterKind.ENUM:
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            text = str(value)
            if text in target.choices:
                return text
        raise _fail(value, target)

    if kind == ParameterKind.ARRAY:
        if isinstance(value, (list, tuple)):
            item_type = target.items or ParamType(ParameterKind.ANY)
            return [coerce(element, item_type) for element in value]
        raise _fail(value, target)

    raise _fail(value, target)


def decode_arguments(
    raw_arguments: Optional[str],
    function_name: Optional[str] = None,
    tool_call_id: Optional[str] = None,
) -> dict:
    """
    Decode tool-call argument text into a parameter mapping.

    Blank text decodes to an empty mapping.

    Raises:
        ArgumentDecodingError: If the text is not a JSON object.
    """
    if raw_arguments is None or not raw_arguments.strip():
        return {}
    try:
        decoded = json.loads(raw_arguments)
    except json.JSONDecodeError as e:
        raise ArgumentDecodingError(
            f"Invalid JSON arguments for {function_name}: {e.msg} (at position {e.pos})",
            function_name=function_name,
            tool_call_id=tool_call_id,
        ) from e
    if not isinstance(decoded, dict):
        raise ArgumentDecodingError(
            f"Arguments for {function_name} must be a JSON object, got {value_kind(decoded)}",
            function_name=function_name,
            tool_call_id=tool_call_id,
        )
    return decoded


def bind_arguments(
    arguments: Mapping[str, Any],
    types: Mapping[str, ParamType],
    required: Sequence[str] = (),
    allow_additional: bool = False,
    function_name: Optional[str] = None,
    tool_call_id: Optional[str] = None,
) -> dict:
    """
    Validate decoded arguments against a schema and coerce each one.

    Args:
        arguments: Decoded argument mapping.
        types: Declared type per parameter name.
        required: Names that must be present.
        allow_additional: Whether undeclared keys are passed through.

    Returns:
        New mapping with coerced values.

    Raises:
        ArgumentDecodingError: On missing required or undeclared arguments.
        TypeConversionError: If a value does not match its declared type.
    """
    missing = [name for name in required if name not in arguments]
    if missing:
        raise ArgumentDecodingError(
            f"Missing required arguments for {function_name}: {', '.join(missing)}",
            function_name=function_name,
            tool_call_id=tool_call_id,
        )

    unexpected = [name for name in arguments if name not in types]
    if unexpected and not allow_additional:
        raise ArgumentDecodingError(
            f"Unexpected arguments for {function_name}: {', '.join(unexpected)}",
            function_name=function_name,
            tool_call_id=tool_call_id,
        )

    bound: dict = {}
    for name, value in arguments.items():
        if name not in types:
            bound[name] = value
            continue
        try:
            bound[name] = coerce(value, types[name])
        except TypeConversionError as e:
            raise TypeConversionError(
                f"Argument '{name}' of {function_name}: {e}",
                value=e.value,
                target=e.target,
                function_name=function_name,
                tool_call_id=tool_call_id,
            ) from e
    return bound

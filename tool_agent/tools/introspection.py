"""
Build registry entries from plain Python callables.

Reads a callable's signature and type hints to produce ParameterSpecs,
and wraps the callable in a handler that takes the decoded argument
mapping. The core never calls this module; it only produces
RegisteredFunction values for a FunctionRegistry.
"""

import enum
import inspect
import logging
import typing
from collections.abc import Sequence as SequenceABC
from typing import Any, Callable, Literal, Mapping, Optional, Union

from ..models.parameters import (
    ANY,
    BOOLEAN,
    FLOAT,
    INTEGER,
    STRING,
    ParameterSpec,
    ParamType,
)
from .registry import FunctionRegistry, RegisteredFunction

logger = logging.getLogger(__name__)

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset, SequenceABC)


def _unwrap_optional(annotation: Any) -> Any:
    if typing.get_origin(annotation) is Union:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def param_type_from_annotation(annotation: Any) -> ParamType:
    """Map a Python type annotation to a ParamType. Unknown types become strings."""
    if annotation is inspect.Parameter.empty:
        return STRING
    annotation = _unwrap_optional(annotation)

    if annotation is bool:
        return BOOLEAN
    if annotation is int:
        return INTEGER
    if annotation is float:
        return FLOAT
    if annotation is str:
        return STRING
    if annotation is Any:
        return ANY
    if inspect.isclass(annotation) and issubclass(annotation, enum.Enum):
        return ParamType.enum_of(*(member.value for member in annotation))

    origin = typing.get_origin(annotation)
    if origin is Literal:
        return ParamType.enum_of(*typing.get_args(annotation))
    if annotation in _SEQUENCE_ORIGINS:
        return ParamType.array_of(ANY)
    if origin in _SEQUENCE_ORIGINS:
        args = [a for a in typing.get_args(annotation) if a is not Ellipsis]
        return ParamType.array_of(param_type_from_annotation(args[0]) if args else ANY)

    return STRING


def _resolved_hints(func: Callable) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except (NameError, TypeError) as e:
        logger.debug("Could not resolve type hints for %r: %s", func, e)
        return {}


def _signature_parameters(func: Callable) -> list[inspect.Parameter]:
    params = list(inspect.signature(func).parameters.values())
    for param in params:
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            raise ValueError(
                f"{getattr(func, '__name__', func)!r} takes *args/**kwargs, "
                "which cannot be described by a schema"
            )
    return params


def parameters_from_callable(
    func: Callable, positional_names: bool = False
) -> list[ParameterSpec]:
    """
    Describe a callable's parameters.

    Args:
        func: Function or bound method.
        positional_names: Name parameters ``arg0``, ``arg1``, ... instead of
            their source names.

    Raises:
        ValueError: If the callable takes ``*args`` or ``**kwargs``.
    """
    hints = _resolved_hints(func)
    specs = []
    for index, param in enumerate(_signature_parameters(func)):
        annotation = hints.get(param.name, param.annotation)
        specs.append(
            ParameterSpec(
                name=f"arg{index}" if positional_names else param.name,
                type=param_type_from_annotation(annotation),
            )
        )
    return specs


def _value_converter(annotation: Any) -> Optional[Callable[[Any], Any]]:
    annotation = _unwrap_optional(annotation)
    # Choices travel as strings; map them back to the member or literal value
    if inspect.isclass(annotation) and issubclass(annotation, enum.Enum):
        members = {str(member.value): member for member in annotation}
        return lambda value: members.get(str(value), value)
    if typing.get_origin(annotation) is Literal:
        literals = {str(v): v for v in typing.get_args(annotation)}
        return lambda value: literals.get(str(value), value)
    if typing.get_origin(annotation) is tuple or annotation is tuple:
        return tuple
    return None


def function_from_callable(
    func: Callable,
    name: Optional[str] = None,
    positional_names: bool = False,
    description: Optional[str] = None,
) -> RegisteredFunction:
    """
    Wrap a callable as a RegisteredFunction.

    The generated handler reads arguments with the same naming scheme the
    parameter specs use, so schema and decoding always agree.
    """
    specs = parameters_from_callable(func, positional_names)
    hints = _resolved_hints(func)
    params = _signature_parameters(func)
    converters = [_value_converter(hints.get(p.name, p.annotation)) for p in params]

    def handler(arguments: Mapping[str, Any]) -> Any:
        values = []
        for spec, convert in zip(specs, converters):
            value = arguments[spec.name]
            values.append(convert(value) if convert is not None else value)
        return func(*values)

    doc = inspect.getdoc(func)
    return RegisteredFunction(
        name=name or func.__name__,
        handler=handler,
        parameters=tuple(specs),
        description=description or (doc.splitlines()[0] if doc else None),
    )


def register_methods(
    registry: FunctionRegistry,
    instance: object,
    positional_names: bool = False,
) -> list[str]:
    """
    Register every public bound method of an object.

    Methods whose signature cannot be described (``*args``/``**kwargs``)
    are skipped.

    Returns:
        Names of the registered functions.
    """
    registered = []
    for method_name, method in inspect.getmembers(instance, predicate=inspect.ismethod):
        if method_name.startswith("_"):
            continue
        try:
            entry = function_from_callable(method, positional_names=positional_names)
        except ValueError as e:
            logger.debug("Skipping method '%s': %s", method_name, e)
            continue
        registry.add(entry)
        registered.append(entry.name)
    logger.debug(
        "Registered %d method(s) from %s", len(registered), type(instance).__name__
    )
    return registered

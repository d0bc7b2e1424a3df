"""
Tool-calling orchestration.

Schema generation, argument coercion, conversation history, system
prompt generation and the request/response loop that ties them together.
"""

from .coercion import bind_arguments, coerce, decode_arguments
from .history import ConversationHistory
from .loop import ConversationLoop, ToolCallOutcome, TurnResult, stringify_result
from .prompt import build_system_prompt
from .tool_defs import (
    build_tool_definitions,
    default_schema,
    generate_schema,
    parameter_types,
    resolve_schema,
)

__all__ = [
    "bind_arguments",
    "coerce",
    "decode_arguments",
    "ConversationHistory",
    "ConversationLoop",
    "ToolCallOutcome",
    "TurnResult",
    "stringify_result",
    "build_system_prompt",
    "build_tool_definitions",
    "default_schema",
    "generate_schema",
    "parameter_types",
    "resolve_schema",
]

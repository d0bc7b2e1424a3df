"""
tool-agent - chat-completion agent with local function calling

This package provides:
- A function registry with JSON schema generation
- Argument decoding and type coercion for tool calls
- Conversation history and the request/response tool-calling loop
- Transports for OpenAI-compatible endpoints
- Interactive CLI for testing
"""

from .agent import ToolAgent
from .exceptions import (
    AgentError,
    ArgumentDecodingError,
    FunctionNotFoundError,
    HandlerExecutionError,
    MaxRoundsExceededError,
    ResponseFormatError,
    ToolCallError,
    TransportFailure,
    TypeConversionError,
    ValidationError,
)
from .orchestration import ConversationHistory, ConversationLoop, TurnResult
from .tools import FunctionRegistry, RegisteredFunction

__all__ = [
    "ToolAgent",
    "ConversationHistory",
    "ConversationLoop",
    "TurnResult",
    "FunctionRegistry",
    "RegisteredFunction",
    "AgentError",
    "ArgumentDecodingError",
    "FunctionNotFoundError",
    "HandlerExecutionError",
    "MaxRoundsExceededError",
    "ResponseFormatError",
    "ToolCallError",
    "TransportFailure",
    "TypeConversionError",
    "ValidationError",
]

__version__ = "0.1.0"

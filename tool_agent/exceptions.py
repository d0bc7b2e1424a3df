"""
Exception hierarchy for tool-agent.

All agent errors inherit from AgentError. Tool-level failures inherit
from ToolCallError so callers can tell which tool call broke a turn.
"""

from typing import Any, Optional


class AgentError(Exception):
    """Base exception for all agent errors."""


class ValidationError(AgentError):
    """Invalid constructor or registration arguments.

    Named after the error category it reports; import it qualified if
    pydantic's ValidationError is also in scope.
    """


class TransportFailure(AgentError):
    """The chat-completion endpoint could not be reached or returned non-2xx."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class ResponseFormatError(AgentError):
    """A successful response body was not a chat-completion document."""


class ToolCallError(AgentError):
    """Base for failures while executing a single tool call."""

    def __init__(
        self,
        message: str,
        function_name: Optional[str] = None,
        tool_call_id: Optional[str] = None,
    ) -> None:
        self.function_name = function_name
        self.tool_call_id = tool_call_id
        super().__init__(message)


class FunctionNotFoundError(ToolCallError):
    """The model named a function that is not registered."""

    def __init__(self, function_name: str, tool_call_id: Optional[str] = None) -> None:
        super().__init__(
            f"Function not found: {function_name}",
            function_name=function_name,
            tool_call_id=tool_call_id,
        )


class ArgumentDecodingError(ToolCallError):
    """Tool-call argument text was not a well-formed argument object."""


class TypeConversionError(ToolCallError):
    """An argument value could not be converted to the declared kind.

    Attributes:
        value: The offending value.
        target: Name of the kind it could not be converted to.
    """

    def __init__(
        self,
        message: str,
        value: Any = None,
        target: Optional[str] = None,
        function_name: Optional[str] = None,
        tool_call_id: Optional[str] = None,
    ) -> None:
        self.value = value
        self.target = target
        super().__init__(message, function_name=function_name, tool_call_id=tool_call_id)


class HandlerExecutionError(ToolCallError):
    """A registered handler raised while executing."""


class MaxRoundsExceededError(AgentError):
    """The model kept requesting tools past the per-turn round limit."""

    def __init__(self, max_rounds: int) -> None:
        self.max_rounds = max_rounds
        super().__init__(
            f"Model still requesting tool calls after {max_rounds} rounds"
        )

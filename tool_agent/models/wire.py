"""
Pydantic schemas for the inbound chat-completion document.

Only the fields the orchestrator consumes are modelled; everything else in
the provider's response is ignored.
"""

import json
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .messages import ToolCallRequest


class FunctionCall(BaseModel):
    """Function name and JSON-encoded arguments of a tool call."""

    name: str = Field(..., description="Name of the function to call")
    arguments: str = Field(default="", description="JSON-encoded argument object")

    @field_validator("arguments", mode="before")
    @classmethod
    def encode_arguments(cls, v: Any) -> str:
        """Some endpoints send arguments as an object instead of a string."""
        if v is None:
            return ""
        if isinstance(v, str):
            return v
        return json.dumps(v)


class ToolCall(BaseModel):
    """A single tool call in an assistant message."""

    id: str = Field(..., min_length=1)
    type: str = "function"
    function: FunctionCall

    def to_request(self) -> ToolCallRequest:
        return ToolCallRequest(
            id=self.id,
            function_name=self.function.name,
            raw_arguments=self.function.arguments,
        )


class ResponseMessage(BaseModel):
    """The assistant message of a completion choice."""

    role: str = "assistant"
    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None

    def tool_call_requests(self) -> tuple[ToolCallRequest, ...]:
        return tuple(tc.to_request() for tc in self.tool_calls or [])


class Choice(BaseModel):
    """One completion choice."""

    index: int = 0
    message: ResponseMessage
    finish_reason: Optional[str] = None


class Usage(BaseModel):
    """Token accounting reported by the endpoint."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """Response body of ``POST /chat/completions``."""

    id: Optional[str] = None
    model: Optional[str] = None
    choices: list[Choice] = Field(..., min_length=1)
    usage: Optional[Usage] = None

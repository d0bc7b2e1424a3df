"""
Conversation message models.

Messages are immutable once created; history only ever appends them.
``to_dict`` produces the OpenAI chat-completion wire shape.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Author of a conversation message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool call issued by the model. Arguments stay raw text until decoded."""

    id: str
    function_name: str
    raw_arguments: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.function_name,
                "arguments": self.raw_arguments,
            },
        }


@dataclass(frozen=True)
class Message:
    """A single entry in the conversation."""

    role: Role
    content: Optional[str] = None
    tool_calls: tuple[ToolCallRequest, ...] = ()
    tool_call_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.role == Role.TOOL and not self.tool_call_id:
            raise ValueError("Tool messages must reference a tool_call_id")
        if self.tool_calls and self.role != Role.ASSISTANT:
            raise ValueError("Only assistant messages can carry tool calls")

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_dict(self) -> dict:
        """Serialize into a chat-completion ``messages`` entry."""
        data: dict = {"role": self.role.value, "content": self.content}
        if self.role == Role.TOOL:
            data["tool_call_id"] = self.tool_call_id
        elif self.tool_calls:
            data["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        return data

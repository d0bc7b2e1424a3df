"""
Pytest configuration and fixtures for tool-agent tests.
"""

import copy
import json
from typing import Optional, Union

import pytest

from tool_agent.orchestration import ConversationHistory, ConversationLoop
from tool_agent.tools import FunctionRegistry
from tool_agent.transport import TransportResponse

ToolCallSpec = tuple[str, str, Union[dict, str]]


def completion_body(
    content: Optional[str] = None,
    tool_calls: Optional[list[ToolCallSpec]] = None,
) -> str:
    """Build a chat-completion response body.

    ``tool_calls`` entries are ``(id, function_name, arguments)``; dict
    arguments are JSON-encoded the way real endpoints send them.
    """
    message: dict = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = [
            {
                "id": call_id,
                "type": "function",
                "function": {
                    "name": name,
                    "arguments": args if isinstance(args, str) else json.dumps(args),
                },
            }
            for call_id, name, args in tool_calls
        ]
    return json.dumps(
        {
            "id": "chatcmpl-test",
            "model": "test-model",
            "choices": [{"index": 0, "message": message, "finish_reason": "stop"}],
        }
    )


class ScriptedTransport:
    """Transport stub that replays queued responses and records payloads."""

    def __init__(self) -> None:
        self.responses: list[TransportResponse] = []
        self.payloads: list[dict] = []
        self.closed = False

    def reply(
        self,
        content: Optional[str] = None,
        tool_calls: Optional[list[ToolCallSpec]] = None,
    ) -> "ScriptedTransport":
        self.responses.append(
            TransportResponse(status_code=200, body=completion_body(content, tool_calls))
        )
        return self

    def fail(self, status_code: int = 500, body: str = "Internal Server Error") -> "ScriptedTransport":
        self.responses.append(TransportResponse(status_code=status_code, body=body))
        return self

    def raw(self, body: str, status_code: int = 200) -> "ScriptedTransport":
        self.responses.append(TransportResponse(status_code=status_code, body=body))
        return self

    def send(self, payload: dict) -> TransportResponse:
        self.payloads.append(copy.deepcopy(payload))
        if not self.responses:
            raise AssertionError("ScriptedTransport has no more queued responses")
        return self.responses.pop(0)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def transport():
    """A scripted transport with no queued responses."""
    return ScriptedTransport()


@pytest.fixture
def registry():
    return FunctionRegistry()


@pytest.fixture
def history():
    return ConversationHistory()


@pytest.fixture
def loop(transport, registry, history):
    """A ConversationLoop wired to the scripted transport."""
    return ConversationLoop(
        transport=transport,
        model="test-model",
        registry=registry,
        history=history,
        max_rounds=5,
    )

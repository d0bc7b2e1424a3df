"""
Conversation history.

An ordered, append-only log of messages replayed on every request.
Entries are immutable; ``clear`` is the only way to remove them.
"""

import logging
from typing import Iterable, Iterator, Optional

from ..models.messages import Message, Role, ToolCallRequest

logger = logging.getLogger(__name__)


class ConversationHistory:
    """Append-only message log for one conversation."""

    def __init__(self) -> None:
        self._messages: list[Message] = []

    @property
    def messages(self) -> tuple[Message, ...]:
        """Read-only view of the messages, oldest first."""
        return tuple(self._messages)

    def add_user_message(self, content: str) -> Message:
        return self._append(Message(role=Role.USER, content=content))

    def add_assistant_message(
        self,
        content: Optional[str],
        tool_calls: Optional[Iterable[ToolCallRequest]] = None,
    ) -> Message:
        return self._append(
            Message(
                role=Role.ASSISTANT,
                content=content,
                tool_calls=tuple(tool_calls or ()),
            )
        )

    def add_tool_response(self, tool_call_id: str, content: str) -> Message:
        return self._append(
            Message(role=Role.TOOL, content=content, tool_call_id=tool_call_id)
        )

    def clear(self) -> None:
        logger.debug("Clearing %d history messages", len(self._messages))
        self._messages.clear()

    def find_last_tool_calls(self, start: int = 0) -> Optional[Message]:
        """
        Most recent message that carries tool calls.

        Args:
            start: Do not look at messages before this index.

        Returns:
            The message, or None if there is none at or after ``start``.
        """
        for message in reversed(self._messages[start:]):
            if message.has_tool_calls:
                return message
        return None

    def to_payload(self) -> list[dict]:
        """Messages in chat-completion wire format."""
        return [m.to_dict() for m in self._messages]

    def _append(self, message: Message) -> Message:
        self._messages.append(message)
        return message

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

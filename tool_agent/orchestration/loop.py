"""
Core request/response loop for tool-calling conversations.

Each turn appends the user message to history, then repeats rounds of:

    1. Build the payload: model, fresh system prompt, full history, tools
    2. Send it through the transport; non-2xx is a transport failure
    3. Parse the assistant message
    4. No tool calls: record it and return its content
    5. Tool calls: record the assistant message, then execute each call in
       the order received, recording one tool response per call

The first tool-level failure is recorded in history, the rest of its
batch is marked as skipped, and the error propagates to the caller.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import (
    FunctionNotFoundError,
    HandlerExecutionError,
    MaxRoundsExceededError,
    ResponseFormatError,
    ToolCallError,
    TransportFailure,
)
from ..models.messages import ToolCallRequest
from ..models.wire import ChatCompletionResponse, ResponseMessage
from ..tools.registry import FunctionRegistry
from ..transport import Transport, TransportResponse
from .coercion import bind_arguments, decode_arguments
from .history import ConversationHistory
from .prompt import build_system_prompt
from .tool_defs import build_tool_definitions, parameter_types, resolve_schema

logger = logging.getLogger(__name__)

# Default bound on request/response rounds per turn.
DEFAULT_MAX_ROUNDS = 10

# Handler error text kept in history is cut to this many characters.
MAX_ERROR_CHARS = 500

SKIPPED_TOOL_CALL_MESSAGE = (
    "Error: not executed because an earlier tool call in this batch failed"
)


def _truncate(text: str, limit: int = MAX_ERROR_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def stringify_result(result: Any) -> str:
    """Render a handler's return value as tool-response text."""
    if isinstance(result, str):
        return result
    if result is None:
        return "null"
    if isinstance(result, bool):
        return "true" if result else "false"
    if isinstance(result, (dict, list, tuple)):
        return json.dumps(result, default=str)
    return str(result)


@dataclass
class ToolCallOutcome:
    """What happened to one tool call."""

    round_number: int
    tool_call_id: str
    function_name: str
    result: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class TurnResult:
    """Result of a complete turn."""

    answer: str
    rounds: int
    tool_calls: list[ToolCallOutcome] = field(default_factory=list)

    @property
    def tools_used(self) -> list[str]:
        """Unique function names called during the turn, in first-call order."""
        seen: list[str] = []
        for outcome in self.tool_calls:
            if outcome.function_name not in seen:
                seen.append(outcome.function_name)
        return seen


class ConversationLoop:
    """
    Drives one conversation against a chat-completion endpoint.

    The registry and history are owned by the caller (usually a
    ToolAgent) and may be shared with it; the loop itself keeps no
    state between turns.
    """

    def __init__(
        self,
        transport: Transport,
        model: str,
        registry: Optional[FunctionRegistry] = None,
        history: Optional[ConversationHistory] = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
    ):
        self.transport = transport
        self.model = model
        self.registry = registry if registry is not None else FunctionRegistry()
        self.history = history if history is not None else ConversationHistory()
        self.max_rounds = max_rounds

    def run(self, user_text: str) -> TurnResult:
        """
        Run a full turn for a user message.

        Args:
            user_text: The user's message.

        Returns:
            TurnResult whose ``answer`` is the final assistant text
            (empty string when the model sent no content).

        Raises:
            TransportFailure: Endpoint unreachable or non-2xx status.
            ResponseFormatError: Endpoint answered with an unusable body.
            ToolCallError: A tool call could not be executed.
            MaxRoundsExceededError: Still calling tools after max_rounds.
        """
        turn_start = len(self.history)
        self.history.add_user_message(user_text)
        outcomes: list[ToolCallOutcome] = []
        logger.info("Starting turn (history=%d messages)", turn_start + 1)

        for round_num in range(1, self.max_rounds + 1):
            payload = self.build_payload()
            logger.debug(
                "Round %d: sending %d messages to %s, tools: %s",
                round_num,
                len(payload["messages"]),
                payload["model"],
                [t["function"]["name"] for t in payload.get("tools", [])],
            )
            response = self._send(payload, turn_start)
            message = self._parse_response(response, turn_start)
            tool_calls = message.tool_call_requests()

            if not tool_calls:
                self.history.add_assistant_message(message.content)
                result = TurnResult(
                    answer=message.content or "",
                    rounds=round_num,
                    tool_calls=outcomes,
                )
                logger.info(
                    "Turn completed in %d round(s), tools used: %s",
                    round_num,
                    result.tools_used or "none",
                )
                return result

            # Anchor the tool-call IDs before any tool response references them
            self.history.add_assistant_message(message.content, tool_calls)
            self._execute_batch(tool_calls, round_num, outcomes)

        logger.warning("Max rounds (%d) reached without a final answer", self.max_rounds)
        raise MaxRoundsExceededError(self.max_rounds)

    def build_payload(self) -> dict:
        """Build the outbound request from current registry and history."""
        functions = self.registry.all_functions()
        messages = [{"role": "system", "content": build_system_prompt(functions)}]
        messages.extend(self.history.to_payload())

        payload: dict = {"model": self.model, "messages": messages}
        if functions:
            payload["tools"] = build_tool_definitions(functions)
        return payload

    def _send(self, payload: dict, turn_start: int) -> TransportResponse:
        try:
            response = self.transport.send(payload)
        except TransportFailure as e:
            self._close_dangling_tool_calls(turn_start, f"Error: {e}")
            raise

        logger.debug("Response status: %d", response.status_code)
        if not response.ok:
            logger.error(
                "API request failed with status %d: %s",
                response.status_code,
                _truncate(response.body),
            )
            self._close_dangling_tool_calls(turn_start, f"Error: {response.body}")
            raise TransportFailure(
                f"API request failed with status code: {response.status_code}, "
                f"body: {response.body}",
                status_code=response.status_code,
                body=response.body,
            )
        return response

    def _parse_response(
        self, response: TransportResponse, turn_start: int
    ) -> ResponseMessage:
        try:
            completion = ChatCompletionResponse.model_validate_json(response.body)
        except PydanticValidationError as e:
            logger.error("Unparseable completion body: %s", _truncate(response.body))
            self._close_dangling_tool_calls(
                turn_start, "Error: endpoint returned an unparseable response"
            )
            raise ResponseFormatError(
                f"Response is not a chat completion: {e.error_count()} error(s)"
            ) from e
        return completion.choices[0].message

    def _close_dangling_tool_calls(self, turn_start: int, content: str) -> None:
        """Record an error response for each call of the turn's last tool batch."""
        last = self.history.find_last_tool_calls(start=turn_start)
        if last is None:
            return
        logger.warning(
            "Recording failure for %d tool call(s) of the last batch",
            len(last.tool_calls),
        )
        for call in last.tool_calls:
            self.history.add_tool_response(call.id, content)

    def _execute_batch(
        self,
        tool_calls: Sequence[ToolCallRequest],
        round_num: int,
        outcomes: list[ToolCallOutcome],
    ) -> None:
        """Execute calls strictly in order; stop at the first failure."""
        for index, call in enumerate(tool_calls):
            logger.debug(
                "Round %d: function call %s with arguments: %s",
                round_num,
                call.function_name,
                call.raw_arguments,
            )
            try:
                result = self.execute_tool_call(call)
            except ToolCallError as e:
                error_text = f"Error: {e}"
                self.history.add_tool_response(call.id, error_text)
                outcomes.append(
                    ToolCallOutcome(
                        round_number=round_num,
                        tool_call_id=call.id,
                        function_name=call.function_name,
                        error=error_text,
                    )
                )
                for skipped in tool_calls[index + 1:]:
                    self.history.add_tool_response(skipped.id, SKIPPED_TOOL_CALL_MESSAGE)
                raise

            self.history.add_tool_response(call.id, result)
            outcomes.append(
                ToolCallOutcome(
                    round_number=round_num,
                    tool_call_id=call.id,
                    function_name=call.function_name,
                    result=result,
                )
            )
            logger.debug("Tool '%s' returned: %s", call.function_name, _truncate(result))

    def execute_tool_call(self, call: ToolCallRequest) -> str:
        """
        Resolve, decode, coerce and invoke a single tool call.

        Returns:
            The stringified handler result.

        Raises:
            FunctionNotFoundError: Unknown function name.
            ArgumentDecodingError: Malformed, missing or undeclared arguments.
            TypeConversionError: An argument has the wrong type.
            HandlerExecutionError: The handler raised.
        """
        name = call.function_name
        entry = self.registry.lookup(name)
        if entry is None:
            logger.warning("Unknown function: %s", name)
            raise FunctionNotFoundError(name, tool_call_id=call.id)

        schema = resolve_schema(entry)
        arguments = decode_arguments(call.raw_arguments, name, call.id)
        bound = bind_arguments(
            arguments,
            parameter_types(entry),
            required=schema.get("required", []),
            allow_additional=schema.get("additionalProperties", True) is not False,
            function_name=name,
            tool_call_id=call.id,
        )

        try:
            result = entry.handler(bound)
        except Exception as e:
            logger.error("Function '%s' execution failed: %s", name, e)
            raise HandlerExecutionError(
                f"Error calling method: {name} - {_truncate(str(e))}",
                function_name=name,
                tool_call_id=call.id,
            ) from e
        return stringify_result(result)

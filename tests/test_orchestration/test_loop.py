"""Tests for the orchestration loop."""

import json
from unittest.mock import MagicMock

import pytest

from tool_agent.exceptions import (
    ArgumentDecodingError,
    FunctionNotFoundError,
    HandlerExecutionError,
    MaxRoundsExceededError,
    ResponseFormatError,
    TransportFailure,
    TypeConversionError,
)
from tool_agent.models.messages import Role
from tool_agent.models.parameters import INTEGER, NUMBER, ParameterSpec
from tool_agent.orchestration.loop import (
    SKIPPED_TOOL_CALL_MESSAGE,
    ConversationLoop,
    TurnResult,
    ToolCallOutcome,
    stringify_result,
)
from tool_agent.transport import TransportResponse

ADD_PARAMETERS = [ParameterSpec("arg0", NUMBER), ParameterSpec("arg1", NUMBER)]


def _add(args):
    return args["arg0"] + args["arg1"]


class TestDirectAnswers:
    """Turns that need no tool calls."""

    def test_direct_answer(self, loop, transport, history):
        """A reply without tool calls ends the turn."""
        transport.reply("4")

        result = loop.run("What is 2+2?")

        assert result.answer == "4"
        assert result.rounds == 1
        assert result.tool_calls == []
        assert [m.role for m in history.messages] == [Role.USER, Role.ASSISTANT]
        assert history.messages[1].content == "4"

    def test_missing_content_is_empty_answer(self, loop, transport, history):
        transport.reply(None)

        result = loop.run("hello")

        assert result.answer == ""
        assert history.messages[-1].content is None

    def test_history_grows_across_turns(self, loop, transport, history):
        transport.reply("first").reply("second")

        loop.run("one")
        loop.run("two")

        assert [m.content for m in history.messages] == ["one", "first", "two", "second"]
        # The second request replays the first exchange
        replayed = transport.payloads[1]["messages"]
        assert [m["content"] for m in replayed[1:]] == ["one", "first", "two"]


class TestToolCalls:
    """Turns with one or more tool-call rounds."""

    def test_single_tool_call(self, loop, transport, registry, history):
        """add(5, 3) is executed and its result fed back."""
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply(tool_calls=[("call_1", "add", {"arg0": 5, "arg1": 3})]).reply("8")

        result = loop.run("What is 5 + 3?")

        assert result.answer == "8"
        assert result.rounds == 2
        messages = history.messages
        assert [m.role for m in messages] == [
            Role.USER,
            Role.ASSISTANT,
            Role.TOOL,
            Role.ASSISTANT,
        ]
        assert messages[1].tool_calls[0].id == "call_1"
        assert messages[2].tool_call_id == "call_1"
        assert messages[2].content == "8"
        assert messages[3].content == "8"

    def test_default_schema_function(self, loop, transport, registry, history):
        """Functions registered without schema take a numeric arg0."""
        registry.register("square", lambda args: args["arg0"] ** 2)
        transport.reply(tool_calls=[("call_1", "square", {"arg0": 4})]).reply("16")

        loop.run("Square 4")

        assert history.messages[2].content == "16"

    def test_string_arguments_are_coerced(self, loop, transport, registry, history):
        """Numeric strings are converted to the declared kind."""
        registry.register(
            "inc", lambda args: args["n"] + 1, parameters=[ParameterSpec("n", INTEGER)]
        )
        transport.reply(tool_calls=[("call_1", "inc", {"n": "41"})]).reply("42")

        loop.run("increment 41")

        assert history.messages[2].content == "42"

    def test_calls_execute_in_order(self, loop, transport, registry, history):
        """A batch runs in the order received, one tool response per call."""
        calls = []

        def recorder(label):
            def handler(args):
                calls.append(label)
                return label

            return handler

        for label in ("A", "B", "C"):
            registry.register(label, recorder(label), parameters=[])
        transport.reply(
            tool_calls=[("id_a", "A", {}), ("id_b", "B", {}), ("id_c", "C", {})]
        ).reply("done")

        result = loop.run("run all three")

        assert calls == ["A", "B", "C"]
        tool_messages = [m for m in history.messages if m.role == Role.TOOL]
        assert [m.tool_call_id for m in tool_messages] == ["id_a", "id_b", "id_c"]
        assert [m.content for m in tool_messages] == ["A", "B", "C"]
        assert result.tools_used == ["A", "B", "C"]

    def test_multiple_rounds(self, loop, transport, registry):
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply(tool_calls=[("c1", "add", {"arg0": 1, "arg1": 2})])
        transport.reply(tool_calls=[("c2", "add", {"arg0": 3, "arg1": 4})])
        transport.reply("3 and 7")

        result = loop.run("two sums")

        assert result.rounds == 3
        assert [o.round_number for o in result.tool_calls] == [1, 2]
        assert [o.result for o in result.tool_calls] == ["3", "7"]
        assert result.tools_used == ["add"]

    def test_assistant_text_alongside_tool_calls_is_kept(self, loop, transport, registry, history):
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply("Let me add those", [("c1", "add", {"arg0": 1, "arg1": 1})]).reply("2")

        loop.run("1+1")

        assert history.messages[1].content == "Let me add those"
        assert history.messages[1].has_tool_calls


class TestToolFailures:
    """A failing tool call is recorded and then raised."""

    def test_unknown_function(self, loop, transport, history):
        transport.reply(tool_calls=[("call_1", "unknown_fn", {})])

        with pytest.raises(FunctionNotFoundError) as exc_info:
            loop.run("call something")

        assert exc_info.value.function_name == "unknown_fn"
        assert exc_info.value.tool_call_id == "call_1"
        last = history.messages[-1]
        assert last.role == Role.TOOL
        assert last.tool_call_id == "call_1"
        assert "unknown_fn" in last.content

    def test_handler_error_skips_rest_of_batch(self, loop, transport, registry, history):
        """Calls after the failing one get a skipped response."""
        executed = []

        def boom(args):
            raise RuntimeError("kaput")

        registry.register("boom", boom, parameters=[])
        registry.register("after", lambda args: executed.append("after"), parameters=[])
        transport.reply(tool_calls=[("c1", "boom", {}), ("c2", "after", {})])

        with pytest.raises(HandlerExecutionError) as exc_info:
            loop.run("go")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "Error calling method: boom" in str(exc_info.value)
        assert executed == []
        tool_messages = [m for m in history.messages if m.role == Role.TOOL]
        assert [m.tool_call_id for m in tool_messages] == ["c1", "c2"]
        assert "kaput" in tool_messages[0].content
        assert tool_messages[0].content.startswith("Error: ")
        assert tool_messages[1].content == SKIPPED_TOOL_CALL_MESSAGE

    def test_earlier_results_in_batch_are_kept(self, loop, transport, registry, history):
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply(
            tool_calls=[("c1", "add", {"arg0": 1, "arg1": 2}), ("c2", "missing", {})]
        )

        with pytest.raises(FunctionNotFoundError):
            loop.run("go")

        tool_messages = [m for m in history.messages if m.role == Role.TOOL]
        assert tool_messages[0].content == "3"
        assert "missing" in tool_messages[1].content

    def test_malformed_arguments(self, loop, transport, registry, history):
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply(tool_calls=[("c1", "add", "{arg0: 5")])

        with pytest.raises(ArgumentDecodingError):
            loop.run("go")

        assert history.messages[-1].content.startswith("Error: ")

    def test_missing_required_argument(self, loop, transport, registry):
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply(tool_calls=[("c1", "add", {"arg0": 5})])

        with pytest.raises(ArgumentDecodingError, match="arg1"):
            loop.run("go")

    def test_empty_arguments_for_required_parameter(self, loop, transport, registry):
        registry.register("square", lambda args: args["arg0"] ** 2)
        transport.reply(tool_calls=[("c1", "square", "")])

        with pytest.raises(ArgumentDecodingError):
            loop.run("go")

    def test_type_conversion_failure(self, loop, transport, registry, history):
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply(tool_calls=[("c1", "add", {"arg0": "abc", "arg1": 3})])

        with pytest.raises(TypeConversionError) as exc_info:
            loop.run("go")

        assert exc_info.value.function_name == "add"
        assert "abc" in history.messages[-1].content


class TestTransportFailures:
    """Non-2xx statuses and unreachable endpoints."""

    def test_non_2xx_raises(self, loop, transport, history):
        transport.fail(401, '{"error": "bad key"}')

        with pytest.raises(TransportFailure) as exc_info:
            loop.run("hi")

        err = exc_info.value
        assert err.status_code == 401
        assert "bad key" in err.body
        assert "401" in str(err)
        # Only the user message was recorded
        assert len(history) == 1

    def test_failure_mid_tool_call_closes_dangling_ids(self, loop, transport, registry, history):
        """Every ID of the last tool-call message gets an error response."""
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply(
            tool_calls=[
                ("c1", "add", {"arg0": 1, "arg1": 2}),
                ("c2", "add", {"arg0": 3, "arg1": 4}),
            ]
        ).fail(500)

        with pytest.raises(TransportFailure) as exc_info:
            loop.run("go")

        assert exc_info.value.status_code == 500
        trailing = history.messages[-2:]
        assert [m.role for m in trailing] == [Role.TOOL, Role.TOOL]
        assert [m.tool_call_id for m in trailing] == ["c1", "c2"]
        assert all(m.content.startswith("Error: ") for m in trailing)

    def test_failure_does_not_touch_previous_turns(self, loop, transport, registry, history):
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply(tool_calls=[("c1", "add", {"arg0": 1, "arg1": 2})]).reply("3")
        loop.run("first")
        before = len(history)

        transport.fail(503)
        with pytest.raises(TransportFailure):
            loop.run("second")

        assert len(history) == before + 1
        assert history.messages[-1].role == Role.USER

    def test_connection_error_closes_dangling_ids(self, registry, history):
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        tool_call_body = json.dumps(
            {
                "choices": [
                    {
                        "message": {
                            "role": "assistant",
                            "content": None,
                            "tool_calls": [
                                {
                                    "id": "c1",
                                    "type": "function",
                                    "function": {
                                        "name": "add",
                                        "arguments": '{"arg0": 1, "arg1": 2}',
                                    },
                                }
                            ],
                        }
                    }
                ]
            }
        )
        transport = MagicMock()
        transport.send.side_effect = [
            TransportResponse(status_code=200, body=tool_call_body),
            TransportFailure("Connection refused"),
        ]
        loop = ConversationLoop(transport, "test-model", registry=registry, history=history)

        with pytest.raises(TransportFailure):
            loop.run("go")

        assert history.messages[-1].tool_call_id == "c1"
        assert "Connection refused" in history.messages[-1].content


class TestResponseFormat:
    """Bodies that are not chat completions."""

    @pytest.mark.parametrize(
        "body",
        ["not json", "{}", '{"choices": []}', '{"choices": [{"index": 0}]}'],
    )
    def test_unusable_body(self, loop, transport, body):
        transport.raw(body)

        with pytest.raises(ResponseFormatError):
            loop.run("hi")

    def test_empty_tool_call_id(self, loop, transport, registry, history):
        """A tool call without an id is a format error, not a history crash."""
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply(tool_calls=[("", "add", {"arg0": 1, "arg1": 2})])

        with pytest.raises(ResponseFormatError):
            loop.run("go")

        assert [m.role for m in history.messages] == [Role.USER]

    def test_object_arguments_accepted(self, loop, transport, registry, history):
        """Arguments sent as a JSON object instead of a string still work."""
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        body = (
            '{"choices": [{"message": {"role": "assistant", "content": null, '
            '"tool_calls": [{"id": "c1", "type": "function", "function": '
            '{"name": "add", "arguments": {"arg0": 2, "arg1": 2}}}]}}]}'
        )
        transport.raw(body).reply("4")

        assert loop.run("2+2").answer == "4"
        assert history.messages[2].content == "4"


class TestRoundLimit:
    def test_max_rounds_exceeded(self, loop, transport, registry):
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        for i in range(5):
            transport.reply(tool_calls=[(f"c{i}", "add", {"arg0": i, "arg1": 1})])

        with pytest.raises(MaxRoundsExceededError) as exc_info:
            loop.run("keep going")

        assert exc_info.value.max_rounds == 5
        assert len(transport.payloads) == 5


class TestPayload:
    """Contents of the outbound request."""

    def test_system_prompt_first(self, loop, transport, registry):
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply("ok")

        loop.run("hi")

        payload = transport.payloads[0]
        assert payload["model"] == "test-model"
        assert payload["messages"][0]["role"] == "system"
        assert "   - add:" in payload["messages"][0]["content"]
        assert payload["messages"][1] == {"role": "user", "content": "hi"}
        assert [t["function"]["name"] for t in payload["tools"]] == ["add"]

    def test_tools_omitted_when_registry_empty(self, loop, transport):
        transport.reply("ok")

        loop.run("hi")

        assert "tools" not in transport.payloads[0]

    def test_tool_exchange_replayed(self, loop, transport, registry):
        """The follow-up request carries tool_calls and tool_call_id."""
        registry.register("add", _add, parameters=ADD_PARAMETERS)
        transport.reply(tool_calls=[("call_1", "add", {"arg0": 5, "arg1": 3})]).reply("8")

        loop.run("5+3")

        messages = transport.payloads[1]["messages"]
        assistant, tool = messages[2], messages[3]
        assert assistant["role"] == "assistant"
        assert assistant["tool_calls"][0]["id"] == "call_1"
        assert assistant["tool_calls"][0]["function"]["name"] == "add"
        assert tool == {"role": "tool", "content": "8", "tool_call_id": "call_1"}

    def test_prompt_follows_registry_changes(self, loop, transport, registry):
        transport.reply("one").reply("two")
        loop.run("first")

        registry.register("multiply", lambda args: args["arg0"] * 2)
        loop.run("second")

        assert "multiply" not in transport.payloads[0]["messages"][0]["content"]
        assert "multiply" in transport.payloads[1]["messages"][0]["content"]


class TestStringifyResult:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("text", "text"),
            (8, "8"),
            (2.5, "2.5"),
            (None, "null"),
            (True, "true"),
            (False, "false"),
            ([1, 2], "[1, 2]"),
            ({"a": 1}, '{"a": 1}'),
        ],
    )
    def test_stringify(self, value, expected):
        assert stringify_result(value) == expected


class TestTurnResult:
    def test_tools_used_unique_in_order(self):
        result = TurnResult(
            answer="x",
            rounds=2,
            tool_calls=[
                ToolCallOutcome(1, "c1", "add", result="1"),
                ToolCallOutcome(1, "c2", "square", result="4"),
                ToolCallOutcome(2, "c3", "add", error="Error: boom"),
            ],
        )
        assert result.tools_used == ["add", "square"]
        assert not result.tool_calls[2].success

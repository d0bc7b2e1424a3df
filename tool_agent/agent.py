"""
Tool-calling agent.

Public entry point: holds one function registry, one conversation
history, the model name and the credential, and runs turns through a
ConversationLoop. Agents share no state with each other.
"""

import asyncio
import logging
from typing import Any, Mapping, Optional, Sequence

from .config import config
from .exceptions import ValidationError
from .models import AppConfig, Message, ParameterSpec
from .orchestration import ConversationHistory, ConversationLoop, TurnResult
from .orchestration.loop import DEFAULT_MAX_ROUNDS
from .tools import FunctionRegistry, RegisteredFunction, register_methods
from .tools.registry import Handler
from .transport import Transport, build_transport

logger = logging.getLogger(__name__)


class ToolAgent:
    """
    Chat agent that lets the model call locally registered functions.

    Example:
        agent = ToolAgent(api_key, "gpt-4o")
        agent.register_function("add", lambda args: args["a"] + args["b"], schema)
        answer = agent.send_message("What is 5 + 3?")
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str],
        transport: Optional[Transport] = None,
        base_url: Optional[str] = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        transport_type: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the agent.

        Args:
            api_key: Credential for the endpoint; must not be blank.
            model: Model identifier; must not be blank.
            transport: Transport to use. Built from the remaining arguments
                (and environment settings) when omitted.
            base_url: Endpoint base URL for a built transport.
            max_rounds: Maximum request/response rounds per turn.
            transport_type: ``"http"`` or ``"openai"`` for a built transport.
            timeout: Request timeout in seconds for a built transport.

        Raises:
            ValidationError: If api_key or model is blank, or max_rounds < 1.
        """
        if api_key is None or not api_key.strip():
            raise ValidationError("API key cannot be null or empty")
        if model is None or not model.strip():
            raise ValidationError("Model name cannot be null or empty")
        if max_rounds < 1:
            raise ValidationError("max_rounds must be at least 1")

        self.model = model
        self.registry = FunctionRegistry()
        self.history = ConversationHistory()
        self.transport = transport or build_transport(
            transport_type or config.transport.type,
            api_key=api_key,
            base_url=base_url or config.agent.base_url,
            timeout=timeout if timeout is not None else config.transport.timeout,
        )
        self._loop = ConversationLoop(
            transport=self.transport,
            model=model,
            registry=self.registry,
            history=self.history,
            max_rounds=max_rounds,
        )
        self.last_result: Optional[TurnResult] = None

    @classmethod
    def from_config(
        cls, app_config: AppConfig, transport: Optional[Transport] = None
    ) -> "ToolAgent":
        """Create an agent from a loaded YAML configuration."""
        return cls(
            api_key=app_config.agent.api_key,
            model=app_config.agent.model,
            transport=transport,
            base_url=app_config.agent.base_url,
            max_rounds=app_config.agent.max_rounds,
            transport_type=app_config.transport.type.value,
            timeout=app_config.transport.timeout,
        )

    @classmethod
    def from_env(cls, transport: Optional[Transport] = None) -> "ToolAgent":
        """Create an agent from environment settings (OPENAI_API_KEY, AGENT_*)."""
        return cls(
            api_key=config.agent.api_key,
            model=config.agent.model,
            transport=transport,
            base_url=config.agent.base_url,
            max_rounds=config.agent.max_rounds,
            transport_type=config.transport.type,
            timeout=config.transport.timeout,
        )

    @property
    def max_rounds(self) -> int:
        return self._loop.max_rounds

    def send_message(
        self, message: str, context: Optional[Mapping[str, Any]] = None
    ) -> str:
        """
        Send a user message and return the model's final answer.

        Args:
            message: The user's message.
            context: Accepted for forward compatibility; not used.

        Raises:
            AgentError: Any transport, response or tool-call failure. History
                keeps everything recorded up to the failure.
        """
        if context:
            logger.debug("Ignoring message context keys: %s", sorted(context))
        self.last_result = self._loop.run(message)
        return self.last_result.answer

    async def asend_message(
        self, message: str, context: Optional[Mapping[str, Any]] = None
    ) -> str:
        """Async variant of send_message; the turn runs in a worker thread."""
        return await asyncio.to_thread(self.send_message, message, context)

    def register_function(
        self,
        name: str,
        handler: Handler,
        schema: Optional[Mapping] = None,
        description: Optional[str] = None,
        parameters: Optional[Sequence[ParameterSpec]] = None,
    ) -> RegisteredFunction:
        """
        Register (or replace) a tool.

        Args:
            name: Tool name the model will call.
            handler: Callable taking the argument mapping.
            schema: Explicit JSON schema for the arguments.
            description: Tool description for the model.
            parameters: Declared parameters; used to generate the schema
                when none is given, and to coerce arguments.
        """
        return self.registry.register(
            name, handler, schema=schema, description=description, parameters=parameters
        )

    def register_methods(self, instance: object, positional_names: bool = False) -> list[str]:
        """Register every public method of an object as a tool."""
        return register_methods(self.registry, instance, positional_names)

    def clear_conversation_history(self) -> None:
        self.history.clear()

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.history.messages

    def close(self) -> None:
        """Close the underlying transport."""
        self.transport.close()

    def __enter__(self) -> "ToolAgent":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

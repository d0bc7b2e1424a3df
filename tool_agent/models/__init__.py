"""
Data models for tool-agent.
"""

from .config import (
    TransportType,
    AgentConfig,
    TransportConfig,
    LoggingConfig,
    AppConfig,
)
from .messages import Role, Message, ToolCallRequest
from .parameters import ParameterKind, ParamType, ParameterSpec

__all__ = [
    # Config models
    "TransportType",
    "AgentConfig",
    "TransportConfig",
    "LoggingConfig",
    "AppConfig",
    # Conversation models
    "Role",
    "Message",
    "ToolCallRequest",
    # Parameter models
    "ParameterKind",
    "ParamType",
    "ParameterSpec",
]

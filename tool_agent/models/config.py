"""
Configuration models for tool-agent.

Defines dataclasses for the YAML configuration file.
"""

from dataclasses import dataclass, field
from enum import Enum


class TransportType(str, Enum):
    """Supported transport implementations."""

    HTTP = "http"
    OPENAI = "openai"


@dataclass
class AgentConfig:
    """Configuration for the agent and its model endpoint."""
    model: str = "gpt-4o"
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    max_rounds: int = 10


@dataclass
class TransportConfig:
    """Configuration for the HTTP transport."""
    type: TransportType = TransportType.HTTP
    timeout: float = 60.0


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"


@dataclass
class AppConfig:
    """
    Unified application configuration container.

    Holds all configuration sections loaded from config/config.yaml.
    """
    version: str = "1.0"
    agent: AgentConfig = field(default_factory=AgentConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def log_level(self) -> str:
        """Shortcut for logging.level."""
        return self.logging.level

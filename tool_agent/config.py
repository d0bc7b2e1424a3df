"""
Configuration management for tool-agent.

Loads configuration from environment variables with sensible defaults
for local development. A ``.env`` file in the working directory is read
first.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class AgentSettings:
    """Settings for the agent and the model endpoint."""
    api_key: str = os.getenv("OPENAI_API_KEY", "")
    model: str = os.getenv("AGENT_MODEL", "gpt-4o")
    base_url: str = os.getenv("AGENT_BASE_URL", "https://api.openai.com/v1")
    max_rounds: int = int(os.getenv("AGENT_MAX_ROUNDS", "10"))


@dataclass
class TransportSettings:
    """Settings for the transport used to reach the endpoint."""
    type: str = os.getenv("AGENT_TRANSPORT", "http")
    timeout: float = float(os.getenv("AGENT_REQUEST_TIMEOUT", "60"))


@dataclass
class Config:
    """Main configuration container."""
    agent: AgentSettings
    transport: TransportSettings
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def get_config() -> Config:
    """Get the application configuration."""
    return Config(
        agent=AgentSettings(),
        transport=TransportSettings(),
    )


# Global config instance
config = get_config()

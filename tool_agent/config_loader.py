"""
YAML configuration for tool-agent.

The file has three optional sections (``agent``, ``transport`` and
``logging``). String values may reference the environment as ``${VAR}``
or ``${VAR:-fallback}``; references are expanded before parsing.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .models import (
    AgentConfig,
    AppConfig,
    LoggingConfig,
    TransportConfig,
    TransportType,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "config.yaml"

# ${NAME} or ${NAME:-fallback}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

_cached: Optional[AppConfig] = None


def resolve_env_vars(value: str) -> str:
    """Expand ``${VAR}`` / ``${VAR:-fallback}`` references in one string.

    Unset variables without a fallback expand to an empty string.
    """
    return ENV_VAR_PATTERN.sub(
        lambda m: os.environ.get(m.group(1), m.group(2) or ""), value
    )


def _expand(node: Any) -> Any:
    if isinstance(node, str):
        return resolve_env_vars(node)
    if isinstance(node, list):
        return list(map(_expand, node))
    if isinstance(node, dict):
        return {key: _expand(val) for key, val in node.items()}
    return node


def _section(raw: dict, name: str) -> dict:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return section


def _agent_section(data: dict) -> AgentConfig:
    defaults = AgentConfig()
    return AgentConfig(
        model=str(data.get("model", defaults.model)),
        base_url=str(data.get("base_url", defaults.base_url)),
        api_key=str(data.get("api_key") or ""),
        max_rounds=int(data.get("max_rounds", defaults.max_rounds)),
    )


def _transport_section(data: dict) -> TransportConfig:
    name = data.get("type", TransportType.HTTP.value)
    if name not in {t.value for t in TransportType}:
        raise ValueError(f"Unknown transport type: {name}")
    return TransportConfig(
        type=TransportType(name),
        timeout=float(data.get("timeout", TransportConfig().timeout)),
    )


def validate_app_config(config: AppConfig) -> list[str]:
    """
    Check a loaded configuration for values the agent cannot use.

    Returns:
        Problems found, one message each; empty when the config is usable.
    """
    problems = []
    if not config.agent.model.strip():
        problems.append("agent.model must not be blank")
    if config.agent.max_rounds <= 0:
        problems.append("agent.max_rounds must be positive")
    if config.transport.timeout <= 0:
        problems.append("transport.timeout must be positive")
    if not config.agent.api_key:
        problems.append("agent.api_key is empty")
    return problems


def load_app_config(
    path: Optional[Union[str, Path]] = None, reload: bool = False
) -> AppConfig:
    """
    Read the YAML configuration, expanding environment references.

    The parsed result is cached for the process; pass ``reload=True`` to
    read the file again.

    Args:
        path: File to read. Defaults to ``$AGENT_CONFIG_PATH`` or
            ``config/config.yaml``.
        reload: Ignore the cached configuration.

    Raises:
        FileNotFoundError: The file does not exist.
        ValueError: The file is empty or a section is malformed.
    """
    global _cached

    if _cached is not None and not reload:
        return _cached

    config_path = Path(path or os.environ.get("AGENT_CONFIG_PATH", DEFAULT_CONFIG_PATH))
    if not config_path.is_file():
        raise FileNotFoundError(
            f"No configuration at {config_path}; copy "
            "config/config.yaml.template there or set AGENT_CONFIG_PATH"
        )

    logger.info("Reading configuration from %s", config_path)
    raw = yaml.safe_load(config_path.read_text())
    if raw is None:
        raise ValueError(f"Configuration file {config_path} is empty")
    raw = _expand(raw)

    loaded = AppConfig(
        version=str(raw.get("version", "1.0")),
        agent=_agent_section(_section(raw, "agent")),
        transport=_transport_section(_section(raw, "transport")),
        logging=LoggingConfig(
            level=str(_section(raw, "logging").get("level", "INFO")).upper()
        ),
    )
    for problem in validate_app_config(loaded):
        logger.warning("Configuration problem: %s", problem)

    logger.debug(
        "Loaded config v%s (model=%s, transport=%s)",
        loaded.version,
        loaded.agent.model,
        loaded.transport.type.value,
    )
    _cached = loaded
    return loaded


def reset_config_cache() -> None:
    """Forget the cached configuration."""
    global _cached
    _cached = None

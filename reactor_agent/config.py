"""
Configuration for the reactor agent.

This module defines configuration settings for a ReAct agent, including
model settings, loop limits, memory and tool execution parameters.
"""

import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

from dotenv import load_dotenv

ENV_PREFIX = "REACTOR_"

SUPPORTED_PROVIDERS = ("openai", "azure", "gemini")


@dataclass
class AgentConfig:
    """Configuration settings for a ReAct agent."""

    # Model configuration
    model_name: str = "gpt-4o"
    llm_provider: str = "openai"  # "openai", "azure" or "gemini"
    temperature: float = 0.7
    max_tokens: int = 1000
    model_timeout: Optional[float] = None

    # Agent behavior configuration
    agent_name: str = "assistant"
    sys_prompt: str = "You are a helpful assistant."
    max_iters: int = 10
    parallel_tool_calls: bool = False
    long_term_memory_mode: str = "both"
    verbose: bool = False

    # Memory configuration
    max_history: int = 1000  # Number of messages kept in conversational memory
    auto_truncate: bool = True
    long_term_memory_enabled: bool = False
    long_term_memory_path: Optional[str] = None

    # Tool configuration
    tool_execution_timeout: float = 30.0
    tool_enable_async: bool = True

    # Additional custom parameters
    custom_parameters: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.llm_provider not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported llm_provider: {self.llm_provider}. "
                             f"Expected one of: {', '.join(SUPPORTED_PROVIDERS)}")
        if self.max_iters <= 0:
            raise ValueError(f"max_iters must be positive, got {self.max_iters}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'AgentConfig':
        """Create configuration from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config_dict.items() if k in known})

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'AgentConfig':
        """
        Create configuration from environment variables.

        A ``.env`` file is loaded first (``env_file`` when given); variables
        already set in the environment take precedence. Every field can be
        set through ``REACTOR_<FIELD NAME IN UPPER CASE>``.

        Args:
            env_file: Path of the .env file to load

        Returns:
            The configuration
        """
        load_dotenv(dotenv_path=env_file)

        values: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name == "custom_parameters":
                continue
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, raw, getattr(cls, f.name, None))
        return cls(**values)


def _coerce(name: str, raw: str, default: Any) -> Any:
    """Convert an environment string to the type of the field's default."""
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    try:
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float) or name == "model_timeout":
            return float(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}")
    return raw

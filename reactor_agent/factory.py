"""
Build a ready-to-use ReAct agent from an :class:`AgentConfig`.
"""

import logging
from typing import Optional

from .agent import ReActAgent
from .config import AgentConfig
from .event_queue import EventQueue
from .formatter import OpenAIFormatter
from .memory import DictLongTermMemory, InMemoryMemory
from .model import ChatModelBase, GeminiChatModel, OpenAIChatModel
from .tools import Toolkit
from .utils import setup_logger


def build_model(config: AgentConfig) -> ChatModelBase:
    """
    Create the chat model for the configured provider.

    Raises:
        ValueError: If the provider is unknown or its credentials are missing
    """
    if config.llm_provider in ("openai", "azure"):
        return OpenAIChatModel(
            config.model_name,
            provider=config.llm_provider,
            formatter=OpenAIFormatter(model_name=config.model_name),
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )
    if config.llm_provider == "gemini":
        return GeminiChatModel(
            config.model_name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )
    raise ValueError(f"Unsupported llm_provider: {config.llm_provider}")


def build_agent(config: AgentConfig, model: Optional[ChatModelBase] = None) -> ReActAgent:
    """
    Wire a ReAct agent from configuration.

    Args:
        config: Agent configuration
        model: Use this model instead of building one from the config

    Returns:
        The agent, with its toolkit and memories sharing one event queue
    """
    event_queue = EventQueue()
    toolkit = Toolkit(
        execution_timeout=config.tool_execution_timeout,
        enable_async=config.tool_enable_async,
        event_queue=event_queue,
    )
    memory = InMemoryMemory(max_messages=config.max_history, auto_truncate=config.auto_truncate)
    long_term_memory = None
    if config.long_term_memory_enabled:
        long_term_memory = DictLongTermMemory(storage_path=config.long_term_memory_path)

    model = model or build_model(config)
    formatter = model.formatter if isinstance(model, OpenAIChatModel) else None

    agent = ReActAgent(
        name=config.agent_name,
        sys_prompt=config.sys_prompt,
        model=model,
        formatter=formatter,
        toolkit=toolkit,
        memory=memory,
        long_term_memory=long_term_memory,
        long_term_memory_mode=config.long_term_memory_mode,
        parallel_tool_calls=config.parallel_tool_calls,
        max_iters=config.max_iters,
        model_timeout=config.model_timeout,
        event_queue=event_queue,
    )

    # Components reset their logger level on construction
    level = logging.DEBUG if config.verbose else logging.INFO
    for name in ('reactor.agent', 'reactor.toolkit', 'reactor.memory', 'reactor.hooks'):
        setup_logger(name, level)
    return agent

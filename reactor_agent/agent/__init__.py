"""
Agents for the reactor agent framework.

This module provides the agent base class and the ReAct agent.
"""

from .base import AgentBase, INTERRUPT_MESSAGE
from .react_agent import (
    ReActAgent,
    AgentState,
    FINISH_FUNCTION_NAME,
    MAX_ITERS_MESSAGE,
    LONG_TERM_MEMORY_MODES
)

__all__ = [
    'AgentBase',
    'ReActAgent',
    'AgentState',
    'INTERRUPT_MESSAGE',
    'FINISH_FUNCTION_NAME',
    'MAX_ITERS_MESSAGE',
    'LONG_TERM_MEMORY_MODES'
]

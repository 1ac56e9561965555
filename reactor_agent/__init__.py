"""
Reactor Agent - a reasoning-acting (ReAct) agent core.

This package provides the pieces of an interruptible, instrumentable
agent loop that can:
- Converse through messages made of typed content blocks
- Keep a bounded, thread-safe conversational memory
- Call tools with timeouts, sequentially or in parallel
- Run hooks around replying, printing and observing
"""

from .agent import AgentBase, AgentState, ReActAgent
from .config import AgentConfig
from .event_queue import Event, EventQueue, EventType
from .factory import build_agent
from .hooks import HookRegistry, HookType
from .memory import DictLongTermMemory, InMemoryMemory, LongTermMemoryBase, MemoryBase
from .message import Msg
from .model import ChatModelBase, ChatResponse, ChatUsage
from .tools import Toolkit, ToolFunction, ToolResponse

__version__ = "0.1.0"

__all__ = [
    "AgentBase",
    "AgentState",
    "ReActAgent",
    "AgentConfig",
    "Event",
    "EventQueue",
    "EventType",
    "build_agent",
    "HookRegistry",
    "HookType",
    "MemoryBase",
    "InMemoryMemory",
    "LongTermMemoryBase",
    "DictLongTermMemory",
    "Msg",
    "ChatModelBase",
    "ChatResponse",
    "ChatUsage",
    "Toolkit",
    "ToolFunction",
    "ToolResponse",
]

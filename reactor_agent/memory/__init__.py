"""
Memory module for the reactor agent.

This module provides short-term conversational memory and long-term
keyed memory.
"""

from .base import MemoryBase, MemorySnapshot
from .in_memory import InMemoryMemory
from .long_term import LongTermMemoryBase, DictLongTermMemory

__all__ = [
    # Short-term memory
    'MemoryBase',
    'MemorySnapshot',
    'InMemoryMemory',

    # Long-term memory
    'LongTermMemoryBase',
    'DictLongTermMemory'
]

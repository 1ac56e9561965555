"""
Tool management interfaces for the reactor agent.

This module provides the toolkit that registers and executes the tools a
model can call, and the types tools exchange with it.
"""

from .response import ToolResponse, ToolFunction
from .toolkit import Toolkit
from .builtin import echo, get_current_time

__all__ = [
    'ToolResponse',
    'ToolFunction',
    'Toolkit',
    'echo',
    'get_current_time'
]

"""
Chat model interfaces for the reactor agent.

This module provides the model base class, the response types, and
reference backends for OpenAI/Azure OpenAI and Google Gemini.
"""

from .base import ChatModelBase, TOOL_CHOICE_MODES
from .response import ChatResponse, ChatUsage
from .openai_model import OpenAIChatModel
from .gemini_model import GeminiChatModel

__all__ = [
    # Interfaces
    'ChatModelBase',
    'TOOL_CHOICE_MODES',
    'ChatResponse',
    'ChatUsage',

    # Backends
    'OpenAIChatModel',
    'GeminiChatModel'
]

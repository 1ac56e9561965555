"""
Message formatters for the reactor agent.
"""

from .base import FormatterBase
from .openai_formatter import OpenAIFormatter

__all__ = [
    'FormatterBase',
    'OpenAIFormatter'
]

"""
Base interface for chat models.

The agent talks to a model only through :meth:`ChatModelBase.call`, which
takes the conversation as :class:`~reactor_agent.message.Msg` objects plus
the function-calling schemas of the available tools, and returns a
:class:`~reactor_agent.model.response.ChatResponse`.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..message import Msg
from .response import ChatResponse

TOOL_CHOICE_MODES = ("auto", "none", "any", "required")


class ChatModelBase(ABC):
    """Abstract base class for chat model implementations."""

    def __init__(self, model_name: str, stream: bool = False):
        """
        Initialize the model.

        Args:
            model_name: The model identifier sent to the backend
            stream: Whether the backend should stream its response
        """
        self._model_name = model_name
        self.stream = stream

    @property
    def model_name(self) -> str:
        """Return the specific model name/identifier being used by this instance."""
        return self._model_name

    @abstractmethod
    async def call(
        self,
        messages: List[Msg],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
        **kwargs: Any
    ) -> ChatResponse:
        """
        Generate a response for the conversation.

        Args:
            messages: The conversation, oldest first, system prompt included
            tools: Function-calling schemas of the tools the model may call
            tool_choice: "auto", "none", "any", "required" or a tool name
            **kwargs: Backend-specific generation parameters

        Returns:
            The model's response

        Raises:
            Exception: If the backend call fails
        """

    def validate_tool_choice(self, tool_choice: Optional[str],
                             tools: Optional[List[Dict[str, Any]]]) -> None:
        """
        Check that ``tool_choice`` is a known mode or the name of a provided tool.

        Raises:
            ValueError: If the choice is neither
        """
        if tool_choice is None:
            return
        if not isinstance(tool_choice, str):
            raise ValueError(f"tool_choice must be str, got {type(tool_choice).__name__}")
        if tool_choice in TOOL_CHOICE_MODES:
            return

        available = [
            tool["function"]["name"]
            for tool in tools or []
            if isinstance(tool.get("function"), dict) and "name" in tool["function"]
        ]
        if tool_choice not in available:
            options = ", ".join(list(TOOL_CHOICE_MODES) + available)
            raise ValueError(f"Invalid tool_choice '{tool_choice}'. Available options: {options}")

    def estimate_tokens(self, text: str) -> int:
        """Rough token estimate (1 token per 4 characters)."""
        return len(text) // 4

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model_name={self.model_name!r}, stream={self.stream})"

"""
Base interface for message formatters.

A formatter turns the agent's :class:`~reactor_agent.message.Msg` history
into the payload a particular model API expects, and turns that API's raw
response back into a ``Msg``.
"""

from abc import ABC, abstractmethod
from typing import Any, List

from ..message import Msg
from ..utils import setup_logger

MULTIMODAL_BLOCK_TYPES = ("image", "audio", "video")
TOOL_BLOCK_TYPES = ("tool_use", "tool_result")


class FormatterBase(ABC):
    """Abstract base class for formatters."""

    supports_streaming: bool = False
    supports_tool_calls: bool = False
    supports_multimodal: bool = False

    def __init__(self, max_tokens: int = -1):
        """
        Initialize the formatter.

        Args:
            max_tokens: Token budget for the formatted history, -1 for unlimited
        """
        self.max_tokens = max_tokens
        self.logger = setup_logger('reactor.formatter')

    @abstractmethod
    def format(self, messages: List[Msg], **kwargs: Any) -> Any:
        """
        Convert messages into the backend's request format.

        Args:
            messages: The conversation to format
            **kwargs: Backend-specific options

        Returns:
            The formatted payload
        """

    @abstractmethod
    def parse_response(self, payload: Any) -> Msg:
        """
        Convert a raw backend response into a message.

        Raises:
            ValueError: If the payload cannot be parsed
        """

    def validate_messages(self, messages: List[Msg]) -> None:
        """
        Check every message against the formatter's capabilities.

        Raises:
            ValueError: If the list is empty or a message carries content the
                formatter cannot represent
        """
        if not messages:
            raise ValueError("Messages cannot be empty")
        for msg in messages:
            self.validate_message(msg)

    def validate_message(self, msg: Msg) -> None:
        if msg is None:
            raise ValueError("Message cannot be None")
        if msg.content is None:
            raise ValueError("Message content cannot be None")
        if not self.supports_multimodal:
            if any(msg.has_content_blocks(t) for t in MULTIMODAL_BLOCK_TYPES):
                raise ValueError(f"{type(self).__name__} does not support multimodal content")
        if not self.supports_tool_calls:
            if any(msg.has_content_blocks(t) for t in TOOL_BLOCK_TYPES):
                raise ValueError(f"{type(self).__name__} does not support tool calls")

    def count_tokens(self, text: str) -> int:
        """Rough token count of a piece of text (1 token per 4 characters)."""
        return len(text) // 4

    def estimate_token_count(self, messages: List[Msg]) -> int:
        """Estimated tokens for a history, with 10 tokens of overhead per message."""
        total = 0
        for msg in messages:
            text = msg.get_text_content()
            if text:
                total += self.count_tokens(text)
            total += 10
        return total

    def truncate_messages(self, messages: List[Msg]) -> List[Msg]:
        """
        Drop the oldest non-system messages until the history fits ``max_tokens``.

        System messages are never dropped; when only system messages remain
        the history is returned even if it is still over budget. A message
        carrying tool calls is dropped together with the tool-result
        messages answering it.
        """
        if self.max_tokens <= 0:
            return list(messages)

        truncated = list(messages)
        while self.estimate_token_count(truncated) > self.max_tokens and len(truncated) > 1:
            index = next((i for i, msg in enumerate(truncated) if msg.role != "system"), None)
            if index is None:
                break
            dropped = truncated.pop(index)
            self.logger.debug(f"Truncated message {dropped.id} to fit {self.max_tokens} tokens")

            call_ids = {block.id for block in dropped.get_content_blocks("tool_use")}
            if call_ids:
                truncated = [msg for msg in truncated if not self._answers_only(msg, call_ids)]
        return truncated

    @staticmethod
    def _answers_only(msg: Msg, call_ids: set) -> bool:
        """Whether every block of ``msg`` is a tool result for one of ``call_ids``."""
        blocks = msg.get_content_blocks()
        return bool(blocks) and all(
            block.type == "tool_result" and block.id in call_ids for block in blocks)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(max_tokens={self.max_tokens}, "
                f"supports_streaming={self.supports_streaming}, "
                f"supports_tool_calls={self.supports_tool_calls}, "
                f"supports_multimodal={self.supports_multimodal})")

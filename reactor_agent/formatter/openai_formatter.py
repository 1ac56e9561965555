"""
Formatter for the OpenAI chat completions API (and Azure OpenAI).
"""

import json
import re
from typing import Any, Dict, List, Optional

import tiktoken

from ..message import (
    Base64Source,
    ImageBlock,
    Msg,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from .base import FormatterBase

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


class OpenAIFormatter(FormatterBase):
    """
    Converts messages to and from OpenAI chat payloads.

    Tool-use blocks become ``tool_calls`` with JSON-encoded arguments, each
    tool-result block becomes a ``role="tool"`` message, images become
    ``image_url`` parts and thinking blocks are sent as prefixed text.
    """

    supports_streaming = True
    supports_tool_calls = True
    supports_multimodal = True

    def __init__(self, max_tokens: int = 4096, model_name: Optional[str] = None):
        """
        Initialize the formatter.

        Args:
            max_tokens: Token budget for the formatted history, -1 for unlimited
            model_name: Model whose tokenizer is used for counting; the
                character approximation is used when omitted
        """
        super().__init__(max_tokens=max_tokens)
        self.model_name = model_name
        self._tokenizer = None
        if model_name:
            self._initialize_tokenizer(model_name)

    def _initialize_tokenizer(self, model_name: str) -> None:
        """Initialize the tokenizer for token counting."""
        try:
            self._tokenizer = tiktoken.encoding_for_model(model_name)
            self.logger.info(f"Initialized tokenizer for model: {model_name}")
        except Exception as e:
            self.logger.warning(f"Failed to initialize tokenizer for {model_name}: {e}. "
                                f"Token estimation might be inaccurate.")
            self._tokenizer = None

    def count_tokens(self, text: str) -> int:
        """Count tokens with the model's tokenizer, falling back to approximation."""
        if self._tokenizer:
            try:
                return len(self._tokenizer.encode(text))
            except Exception as e:
                self.logger.warning(f"Tokenizer encoding failed: {e}. Falling back to approximation.")
        return super().count_tokens(text)

    def format(self, messages: List[Msg], **kwargs: Any) -> List[Dict[str, Any]]:
        """
        Convert messages into the ``messages`` list of a chat completion request.

        Raises:
            ValueError: If the messages fail validation
        """
        self.validate_messages(messages)
        formatted = []
        for msg in self.truncate_messages(messages):
            formatted.extend(self._convert_message(msg))
        return formatted

    def build_request(self, messages: List[Msg], **kwargs: Any) -> Dict[str, Any]:
        """Return a full request body: the formatted messages plus every non-None parameter."""
        request = {"messages": self.format(messages)}
        request.update({key: value for key, value in kwargs.items() if value is not None})
        return request

    def _convert_message(self, msg: Msg) -> List[Dict[str, Any]]:
        """Convert one message; tool results expand into one message per result."""
        if isinstance(msg.content, str):
            return [self._with_name({"role": msg.role, "content": msg.content}, msg)]

        parts = []
        tool_calls = []
        tool_messages = []
        for block in msg.get_content_blocks():
            if isinstance(block, ToolUseBlock):
                tool_calls.append({
                    "id": block.id,
                    "type": "function",
                    "function": {
                        "name": block.name,
                        "arguments": json.dumps(block.input, ensure_ascii=False),
                    },
                })
            elif isinstance(block, ToolResultBlock):
                tool_messages.append({
                    "role": "tool",
                    "tool_call_id": block.id,
                    "content": block.output_text(),
                })
            else:
                part = self._convert_block(block)
                if part is not None:
                    parts.append(part)

        converted = []
        if parts or tool_calls or not tool_messages:
            openai_msg = {"role": msg.role, "content": self._collapse(parts)}
            if tool_calls:
                openai_msg["role"] = "assistant"
                openai_msg["tool_calls"] = tool_calls
            converted.append(self._with_name(openai_msg, msg))
        converted.extend(tool_messages)
        return converted

    def _convert_block(self, block: Any) -> Optional[Dict[str, Any]]:
        if isinstance(block, TextBlock):
            return {"type": "text", "text": block.text}
        if isinstance(block, ThinkingBlock):
            return {"type": "text", "text": f"(thinking) {block.thinking}"}
        if isinstance(block, ImageBlock):
            source = block.source
            if isinstance(source, Base64Source):
                url = f"data:{source.media_type};base64,{source.data}"
            else:
                url = source.url
            return {"type": "image_url", "image_url": {"url": url}}
        self.logger.debug(f"Skipping unsupported {block.type} block")
        return None

    @staticmethod
    def _collapse(parts: List[Dict[str, Any]]) -> Any:
        """Plain text when every part is text, a parts list otherwise, None when empty."""
        if not parts:
            return None
        if all(part["type"] == "text" for part in parts):
            return "".join(part["text"] for part in parts)
        return parts

    @staticmethod
    def _with_name(openai_msg: Dict[str, Any], msg: Msg) -> Dict[str, Any]:
        if msg.name and msg.role != "system":
            openai_msg["name"] = _INVALID_NAME_CHARS.sub("_", msg.name)[:64]
        return openai_msg

    def parse_response(self, payload: Any) -> Msg:
        """
        Parse a chat completion (object or ``model_dump()`` dict) into an assistant message.

        Raises:
            ValueError: If the payload has no choices or no message
        """
        if payload is None:
            raise ValueError("Response cannot be None")
        if hasattr(payload, "model_dump"):
            payload = payload.model_dump()
        if not isinstance(payload, dict):
            raise ValueError(f"Invalid response format: {type(payload).__name__}")

        choices = payload.get("choices") or []
        if not choices:
            raise ValueError("No choices in OpenAI response")
        message = choices[0].get("message")
        if not message:
            raise ValueError("No message in OpenAI choice")

        blocks = []
        reasoning = message.get("reasoning_content")
        if reasoning:
            blocks.append(ThinkingBlock(thinking=reasoning))
        content = message.get("content")
        if isinstance(content, str) and content:
            blocks.append(TextBlock(text=content))
        for call in message.get("tool_calls") or []:
            function = call.get("function") or {}
            blocks.append(ToolUseBlock(
                id=call.get("id", ""),
                name=function.get("name", ""),
                input=self._parse_arguments(function.get("arguments")),
            ))

        return Msg(
            name=message.get("name") or "assistant",
            content=blocks,
            role="assistant",
            metadata={
                "finish_reason": choices[0].get("finish_reason"),
                "model": payload.get("model"),
            },
            invocation_id=payload.get("id"),
        )

    def _parse_arguments(self, arguments: Any) -> Dict[str, Any]:
        if isinstance(arguments, dict):
            return arguments
        if not arguments:
            return {}
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError as e:
            self.logger.warning(f"Could not decode tool arguments: {e}")
            return {}
        return parsed if isinstance(parsed, dict) else {"value": parsed}

"""
Response types returned by chat models.
"""

import uuid
from typing import Any, Dict, List, Optional

from ..message import ContentBlock, block_from_dict
from ..utils import current_timestamp


class ChatUsage:
    """Token usage and latency of one model call."""

    def __init__(self, input_tokens: int = 0, output_tokens: int = 0, time: float = 0.0):
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.time = time
        self.type = "chat"

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: Optional['ChatUsage']) -> 'ChatUsage':
        if other is None:
            return ChatUsage(self.input_tokens, self.output_tokens, self.time)
        if not isinstance(other, ChatUsage):
            return NotImplemented
        return ChatUsage(
            self.input_tokens + other.input_tokens,
            self.output_tokens + other.output_tokens,
            self.time + other.time,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "time": self.time,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChatUsage':
        return cls(
            input_tokens=int(data.get("input_tokens") or 0),
            output_tokens=int(data.get("output_tokens") or 0),
            time=float(data.get("time") or 0.0),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChatUsage):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (f"ChatUsage(input_tokens={self.input_tokens}, "
                f"output_tokens={self.output_tokens}, time={self.time:.3f})")


class ChatResponse:
    """
    The content blocks produced by one model call.

    Attributes:
        content: Ordered text, thinking and tool-use blocks
        id: Response id
        created_at: Creation time
        usage: Token usage, when the backend reports it
        metadata: Backend-specific extras (finish reason, raw model name, ...)
    """

    def __init__(self, content: Optional[List[Any]] = None, id: Optional[str] = None,
                 created_at: Optional[str] = None, usage: Optional[ChatUsage] = None,
                 metadata: Optional[Dict[str, Any]] = None):
        self.content: List[ContentBlock] = [block_from_dict(b) for b in (content or [])]
        self.id = id or str(uuid.uuid4())
        self.created_at = created_at or current_timestamp()
        self.type = "chat"
        self.usage = usage
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": [block.to_dict() for block in self.content],
            "id": self.id,
            "created_at": self.created_at,
            "type": self.type,
            "usage": self.usage.to_dict() if self.usage else None,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChatResponse':
        usage = data.get("usage")
        return cls(
            content=data.get("content"),
            id=data.get("id"),
            created_at=data.get("created_at"),
            usage=ChatUsage.from_dict(usage) if usage else None,
            metadata=data.get("metadata"),
        )

    def __repr__(self) -> str:
        return f"ChatResponse(id={self.id!r}, blocks={len(self.content)}, created_at={self.created_at!r})"

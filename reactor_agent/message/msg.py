"""
The message type exchanged between agents, users, models and memories.
"""

import uuid
from typing import Any, Dict, List, Optional, Union

from ..utils import current_timestamp
from .blocks import ContentBlock, TextBlock, block_from_dict

VALID_ROLES = ("user", "assistant", "system")


def _validate_role(role: str) -> str:
    if role not in VALID_ROLES:
        raise ValueError(f"Role must be one of: {', '.join(VALID_ROLES)} (got {role!r})")
    return role


class Msg:
    """
    A single unit of conversation.

    Content is either a plain string or an ordered list of content blocks.
    Two messages are equal when they share the same ``id``.
    """

    def __init__(
        self,
        name: str,
        content: Union[str, List[Any], None],
        role: str,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[str] = None,
        invocation_id: Optional[str] = None,
    ):
        """
        Initialize a message.

        Args:
            name: Name of the sender
            content: Text, or a list of content blocks (typed or mapping form)
            role: One of "user", "assistant" or "system"
            metadata: Additional information about the message
            timestamp: Creation time, defaults to now
            invocation_id: Id of the model invocation that produced the message

        Raises:
            ValueError: If the role is not one of the accepted values
        """
        self._role = _validate_role(role)
        self.id = str(uuid.uuid4())
        self.name = name
        self.content = content
        self.metadata = metadata
        self.timestamp = timestamp or current_timestamp()
        self.invocation_id = invocation_id

    @property
    def role(self) -> str:
        return self._role

    @role.setter
    def role(self, value: str) -> None:
        self._role = _validate_role(value)

    @property
    def content(self) -> Union[str, List[ContentBlock], None]:
        return self._content

    @content.setter
    def content(self, value: Union[str, List[Any], None]) -> None:
        if isinstance(value, (list, tuple)):
            value = [block_from_dict(block) for block in value]
        self._content = value

    def get_text_content(self) -> Optional[str]:
        """Return the message text, or None if it carries no text."""
        if isinstance(self._content, str):
            return self._content
        if isinstance(self._content, list):
            texts = [b.text for b in self._content if isinstance(b, TextBlock) and b.text]
            return "".join(texts) if texts else None
        return None

    def get_content_blocks(self, block_type: Optional[str] = None) -> List[ContentBlock]:
        """Return the content blocks, optionally restricted to one type."""
        if isinstance(self._content, str):
            if block_type in (None, "text"):
                return [TextBlock(text=self._content)]
            return []
        if not isinstance(self._content, list):
            return []
        return [b for b in self._content if block_type is None or b.type == block_type]

    def has_content_blocks(self, block_type: Optional[str] = None) -> bool:
        return len(self.get_content_blocks(block_type)) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert the message to a flat dictionary."""
        content = self._content
        if isinstance(content, list):
            content = [block.to_dict() for block in content]
        data = {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "content": content,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }
        if self.invocation_id is not None:
            data["invocation_id"] = self.invocation_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Msg':
        """Create a message from a dictionary, keeping its id when present."""
        msg = cls(
            name=data.get("name"),
            content=data.get("content"),
            role=data.get("role"),
            metadata=data.get("metadata"),
            timestamp=data.get("timestamp"),
            invocation_id=data.get("invocation_id", data.get("invocationId")),
        )
        if data.get("id"):
            msg.id = data["id"]
        return msg

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Msg):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return (f"Msg(id={self.id!r}, name={self.name!r}, role={self.role!r}, "
                f"timestamp={self.timestamp!r})")

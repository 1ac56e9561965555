"""
Core memory abstractions for the reactor agent.

This module provides the base class for short-term conversational memory:
an ordered log of messages with query helpers built on a handful of
primitive operations that concrete stores implement.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..message import Msg
from ..module import StateModule
from ..utils import current_timestamp


class MemorySnapshot:
    """A point-in-time copy of a memory's messages and statistics."""

    def __init__(self, messages: List[Msg], metadata: Dict[str, Any]):
        self._messages = list(messages)
        self._metadata = dict(metadata)
        self.timestamp = current_timestamp()

    @property
    def messages(self) -> List[Msg]:
        return list(self._messages)

    @property
    def metadata(self) -> Dict[str, Any]:
        return dict(self._metadata)


class MemoryBase(StateModule, ABC):
    """Abstract base class for agent memory implementations."""

    @abstractmethod
    def add(self, messages: Any) -> None:
        """
        Add one message, or a list of messages, to memory.

        Args:
            messages: A Msg, a list of Msg, or None (ignored)
        """

    @abstractmethod
    def get_messages(self, filters: Optional[Dict[str, Any]] = None) -> List[Msg]:
        """
        Return a copy of the stored messages, optionally filtered.

        Args:
            filters: Optional mapping of filter criteria

        Returns:
            List of messages in insertion order
        """

    @abstractmethod
    def get_recent_messages(self, count: int) -> List[Msg]:
        """Return the last ``count`` messages."""

    @abstractmethod
    def get_messages_by_role(self, role: str) -> List[Msg]:
        """Return messages with the given role."""

    @abstractmethod
    def size(self) -> int:
        """Return the number of stored messages."""

    @abstractmethod
    def clear(self) -> None:
        """Clear all messages from memory."""

    @abstractmethod
    def remove_message(self, message_id: str) -> bool:
        """Remove a message by id; True if something was removed."""

    @abstractmethod
    def remove_messages_older_than(self, timestamp: str) -> int:
        """Remove messages created before ``timestamp``; return how many."""

    def is_empty(self) -> bool:
        return self.size() == 0

    def get_first_message(self) -> Optional[Msg]:
        messages = self.get_messages()
        return messages[0] if messages else None

    def get_last_message(self) -> Optional[Msg]:
        messages = self.get_messages()
        return messages[-1] if messages else None

    def search_messages(self, text: str, case_sensitive: bool = False) -> List[Msg]:
        """Return messages whose text contains ``text``."""
        needle = text if case_sensitive else text.lower()
        results = []
        for msg in self.get_messages():
            content = msg.get_text_content()
            if content is None:
                continue
            if not case_sensitive:
                content = content.lower()
            if needle in content:
                results.append(msg)
        return results

    def estimate_token_count(self) -> int:
        """Rough token estimate: 1 token per 4 characters plus 10 per message."""
        total = 0
        for msg in self.get_messages():
            text = msg.get_text_content()
            if text:
                total += len(text) // 4
            total += 10
        return total

    def get_memory_stats(self) -> Dict[str, Any]:
        messages = self.get_messages()
        role_counts: Dict[str, int] = {}
        for msg in messages:
            role_counts[msg.role] = role_counts.get(msg.role, 0) + 1
        return {
            "total_messages": len(messages),
            "estimated_tokens": self.estimate_token_count(),
            "role_counts": role_counts,
            "is_empty": not messages,
            "memory_type": type(self).__name__,
        }

    def export_memory(self) -> Dict[str, Any]:
        """Export messages and statistics as plain data."""
        return {
            "messages": [msg.to_dict() for msg in self.get_messages()],
            "metadata": self.get_memory_stats(),
            "export_timestamp": datetime.now().isoformat(),
        }

    def import_memory(self, data: Dict[str, Any]) -> None:
        """Replace the stored messages with those in an export."""
        if "messages" not in data:
            return
        self.clear()
        self.add([Msg.from_dict(item) for item in data["messages"]])

    def create_snapshot(self) -> MemorySnapshot:
        return MemorySnapshot(self.get_messages(), self.get_memory_stats())

    def restore_from_snapshot(self, snapshot: MemorySnapshot) -> None:
        self.clear()
        self.add(snapshot.messages)

    def state_dict(self) -> Dict[str, Any]:
        return {"messages": [msg.to_dict() for msg in self.get_messages()]}

    def load_state_dict(self, state: Dict[str, Any]) -> None:
        self.import_memory(state)

    def reset(self) -> None:
        self.clear()

    def __len__(self) -> int:
        return self.size()

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(message_count={self.size()}, "
                f"estimated_tokens={self.estimate_token_count()})")

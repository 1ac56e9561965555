"""
In-process conversational memory for the reactor agent.

This module provides :class:`InMemoryMemory`, a bounded FIFO log of
messages. Reads take a shared lock and return copies, writes take the
lock exclusively, so the store can be shared between an agent's reply task
and observers running on other threads.
"""

from typing import Any, Callable, Dict, List, Optional

from ..message import Msg
from ..utils import ReadWriteLock, parse_timestamp, setup_logger
from .base import MemoryBase


class InMemoryMemory(MemoryBase):
    """
    Memory for the running conversation.

    This memory has limited capacity and follows a FIFO (First In, First Out)
    approach when ``auto_truncate`` is enabled. With ``auto_truncate``
    disabled, messages past capacity are still accepted and the caller is
    expected to call :meth:`truncate_to_recent`.
    """

    def __init__(self, max_messages: int = 1000, auto_truncate: bool = True):
        """
        Initialize the memory.

        Args:
            max_messages: Maximum number of messages to keep
            auto_truncate: Whether to evict the oldest messages past capacity
        """
        self.max_messages = max_messages
        self.auto_truncate = auto_truncate
        self._messages: List[Msg] = []
        self._lock = ReadWriteLock()
        self.logger = setup_logger('reactor.memory')
        self.logger.debug(f"Initialized InMemoryMemory with max_messages={max_messages}, "
                          f"auto_truncate={auto_truncate}")

    def add(self, messages: Any) -> None:
        """Add a message, or a list of messages, removing the oldest past capacity."""
        if messages is None:
            self.logger.warning("Attempted to add None to memory")
            return
        if isinstance(messages, Msg):
            messages = [messages]
        for msg in messages:
            if not isinstance(msg, Msg):
                raise TypeError(f"Memory only stores Msg objects, got {type(msg).__name__}")

        with self._lock.write_locked():
            for msg in messages:
                self._messages.append(msg)
                self.logger.debug(f"Added message to memory: {msg.id}")
            if self.auto_truncate:
                self._evict_overflow()

    def _evict_overflow(self) -> int:
        """Drop the oldest messages past capacity. Caller holds the write lock."""
        overflow = len(self._messages) - max(self.max_messages, 0)
        if overflow <= 0:
            return 0
        removed = self._messages[:overflow]
        del self._messages[:overflow]
        for msg in removed:
            self.logger.debug(f"Auto-truncated old message: {msg.id}")
        return overflow

    def get_messages(self, filters: Optional[Dict[str, Any]] = None) -> List[Msg]:
        """
        Return a copy of the stored messages.

        Supported filter keys are ``role``, ``name``, ``contains_text``,
        ``after_timestamp`` and ``before_timestamp``. Unknown keys are
        ignored.
        """
        with self._lock.read_locked():
            if not filters:
                return list(self._messages)
            return [msg for msg in self._messages if self._matches(msg, filters)]

    def filter_messages(
        self,
        role: Optional[str] = None,
        name: Optional[str] = None,
        contains_text: Optional[str] = None,
        before: Optional[str] = None,
        after: Optional[str] = None,
    ) -> List[Msg]:
        """Keyword form of :meth:`get_messages` filtering."""
        filters = {}
        if role is not None:
            filters["role"] = role
        if name is not None:
            filters["name"] = name
        if contains_text is not None:
            filters["contains_text"] = contains_text
        if before is not None:
            filters["before_timestamp"] = before
        if after is not None:
            filters["after_timestamp"] = after
        return self.get_messages(filters)

    def get_recent_messages(self, count: int) -> List[Msg]:
        """Return the last ``count`` messages; all when count exceeds the size."""
        if count <= 0:
            return []
        with self._lock.read_locked():
            return list(self._messages[-count:])

    def get_messages_by_role(self, role: str) -> List[Msg]:
        if role is None:
            return []
        return self._select(lambda msg: msg.role == role)

    def get_messages_by_sender(self, name: str) -> List[Msg]:
        if name is None:
            return []
        return self._select(lambda msg: msg.name == name)

    def get_messages_in_time_range(self, start: str, end: str) -> List[Msg]:
        """Return messages with start <= timestamp <= end."""
        start_dt = parse_timestamp(start)
        end_dt = parse_timestamp(end)
        if start_dt is None or end_dt is None:
            self.logger.warning(f"Invalid time range: {start} - {end}")
            return []

        def in_range(msg: Msg) -> bool:
            ts = parse_timestamp(msg.timestamp)
            return ts is not None and start_dt <= ts <= end_dt

        return self._select(in_range)

    def size(self) -> int:
        with self._lock.read_locked():
            return len(self._messages)

    def clear(self) -> None:
        with self._lock.write_locked():
            count = len(self._messages)
            self._messages.clear()
        self.logger.info(f"Cleared {count} messages from memory")

    def remove_message(self, message_id: str) -> bool:
        if message_id is None:
            return False
        with self._lock.write_locked():
            before = len(self._messages)
            self._messages = [msg for msg in self._messages if msg.id != message_id]
            removed = len(self._messages) != before
        if removed:
            self.logger.debug(f"Removed message from memory: {message_id}")
        return removed

    def remove_messages_older_than(self, timestamp: str) -> int:
        if timestamp is None:
            return 0
        with self._lock.write_locked():
            before = len(self._messages)
            self._messages = [msg for msg in self._messages
                              if not self._is_older_than(msg.timestamp, timestamp)]
            removed = before - len(self._messages)
        if removed:
            self.logger.info(f"Removed {removed} messages older than {timestamp}")
        return removed

    def truncate_to_recent(self, keep_count: int) -> int:
        """Keep only the last ``keep_count`` messages; return how many were removed."""
        if keep_count < 0:
            return 0
        with self._lock.write_locked():
            removed = len(self._messages) - keep_count
            if removed <= 0:
                return 0
            del self._messages[:removed]
        self.logger.info(f"Truncated memory: kept {keep_count} recent messages, removed {removed}")
        return removed

    def set_max_messages(self, max_messages: int) -> None:
        """Change the capacity, truncating immediately when auto-truncate is on."""
        with self._lock.write_locked():
            self.max_messages = max_messages
            if self.auto_truncate:
                self._evict_overflow()

    def state_dict(self) -> Dict[str, Any]:
        state = super().state_dict()
        state["max_messages"] = self.max_messages
        state["auto_truncate"] = self.auto_truncate
        return state

    def load_state_dict(self, state: Dict[str, Any]) -> None:
        with self._lock.write_locked():
            self.max_messages = state.get("max_messages", self.max_messages)
            self.auto_truncate = state.get("auto_truncate", self.auto_truncate)
        super().load_state_dict(state)

    def _select(self, predicate: Callable[[Msg], bool]) -> List[Msg]:
        with self._lock.read_locked():
            return [msg for msg in self._messages if predicate(msg)]

    def _matches(self, msg: Msg, filters: Dict[str, Any]) -> bool:
        for key, value in filters.items():
            if key == "role" and msg.role != value:
                return False
            elif key == "name" and msg.name != value:
                return False
            elif key == "contains_text":
                text = msg.get_text_content()
                if text is None or str(value) not in text:
                    return False
            elif key == "after_timestamp" and not self._is_newer_or_equal(msg.timestamp, value):
                return False
            elif key == "before_timestamp" and not self._is_older_than(msg.timestamp, value):
                return False
        return True

    def _is_older_than(self, timestamp: str, reference: str) -> bool:
        left, right = parse_timestamp(timestamp), parse_timestamp(reference)
        if left is None or right is None:
            self._log_bad_timestamp(timestamp, reference)
            return False
        return left < right

    def _is_newer_or_equal(self, timestamp: str, reference: str) -> bool:
        left, right = parse_timestamp(timestamp), parse_timestamp(reference)
        if left is None or right is None:
            self._log_bad_timestamp(timestamp, reference)
            return False
        return left >= right

    def _log_bad_timestamp(self, timestamp: Any, reference: Any) -> None:
        self.logger.warning(f"Error comparing timestamps: {timestamp} vs {reference}")

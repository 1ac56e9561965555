"""
Long-term memory for the reactor agent.

Long-term memory is a keyed store that outlives a single conversation. The
agent only relies on :class:`LongTermMemoryBase`; :class:`DictLongTermMemory`
is a small reference implementation backed by a dictionary with optional
JSON-file persistence.
"""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..module import StateModule
from ..utils import current_timestamp, setup_logger


class LongTermMemoryBase(StateModule, ABC):
    """Abstract base class for long-term memory backends."""

    @abstractmethod
    def store(self, key: str, value: Any, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def retrieve(self, key: str) -> Any:
        """Return the value stored under ``key`` or None."""

    @abstractmethod
    def retrieve_with_metadata(self, key: str) -> Optional[Dict[str, Any]]:
        """Return ``{"key", "value", "metadata", "timestamp"}`` or None."""

    @abstractmethod
    def search(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Return up to ``limit`` records relevant to ``query``."""

    @abstractmethod
    def search_by_criteria(self, criteria: Dict[str, Any], limit: int = 10) -> List[Dict[str, Any]]:
        """Return records whose metadata matches every criterion."""

    @abstractmethod
    def update(self, key: str, value: Any, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """Update an existing record; False when the key is unknown."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a record; False when the key is unknown."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Whether ``key`` is stored."""

    @abstractmethod
    def get_all_keys(self) -> List[str]:
        """All stored keys."""

    @abstractmethod
    def clear_all(self) -> None:
        """Remove every record."""

    def get_item_count(self) -> int:
        return len(self.get_all_keys())

    def create_backup(self) -> Dict[str, Any]:
        return {
            "items": [self.retrieve_with_metadata(key) for key in self.get_all_keys()],
            "backup_timestamp": datetime.now().isoformat(),
        }

    def restore_from_backup(self, backup: Dict[str, Any]) -> bool:
        items = backup.get("items")
        if items is None:
            return False
        self.clear_all()
        for item in items:
            self.store(item["key"], item.get("value"), item.get("metadata"))
        return True

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "total_items": self.get_item_count(),
            "memory_type": type(self).__name__,
        }

    def state_dict(self) -> Dict[str, Any]:
        return self.create_backup()

    def load_state_dict(self, state: Dict[str, Any]) -> None:
        self.restore_from_backup(state)


class DictLongTermMemory(LongTermMemoryBase):
    """
    Persistent memory for storing important information over time.

    This memory has unlimited capacity and, when a storage path is given,
    persists between sessions as a JSON file.
    """

    def __init__(self, storage_path: Optional[str] = None):
        """
        Initialize long-term memory.

        Args:
            storage_path: Path to the file for persisting memory (optional)
        """
        self.storage_path = storage_path
        self.entries: Dict[str, Dict[str, Any]] = {}
        self.logger = setup_logger('reactor.memory.long_term')

        # Load from storage if path is provided
        if storage_path:
            try:
                self._load_from_storage()
            except FileNotFoundError:
                # File doesn't exist yet, will be created on first save
                pass

    def store(self, key: str, value: Any, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.entries[key] = {
            "key": key,
            "value": value,
            "metadata": dict(metadata or {}),
            "timestamp": current_timestamp(),
        }
        self._save_to_storage()

    def retrieve(self, key: str) -> Any:
        entry = self.entries.get(key)
        return entry["value"] if entry else None

    def retrieve_with_metadata(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self.entries.get(key)
        return dict(entry) if entry else None

    def search(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Case-insensitive substring search over keys and values, newest first."""
        if not query:
            return []
        needle = query.lower()
        results = []
        for entry in reversed(list(self.entries.values())):
            haystack = f"{entry['key']} {entry['value']}".lower()
            if needle in haystack or any(word in haystack for word in needle.split()):
                results.append(dict(entry))
            if len(results) >= limit:
                break
        return results

    def search_by_criteria(self, criteria: Dict[str, Any], limit: int = 10) -> List[Dict[str, Any]]:
        results = []
        for entry in self.entries.values():
            metadata = entry["metadata"]
            if all(metadata.get(k) == v for k, v in criteria.items()):
                results.append(dict(entry))
            if len(results) >= limit:
                break
        return results

    def update(self, key: str, value: Any, metadata: Optional[Dict[str, Any]] = None) -> bool:
        if key not in self.entries:
            return False
        if metadata is None:
            metadata = self.entries[key]["metadata"]
        self.store(key, value, metadata)
        return True

    def delete(self, key: str) -> bool:
        if self.entries.pop(key, None) is None:
            return False
        self._save_to_storage()
        return True

    def exists(self, key: str) -> bool:
        return key in self.entries

    def get_all_keys(self) -> List[str]:
        return list(self.entries.keys())

    def clear_all(self) -> None:
        self.entries.clear()

        # Persist empty state to storage if path is provided
        self._save_to_storage()

    def _save_to_storage(self) -> None:
        """Save memory entries to persistent storage."""
        if not self.storage_path:
            return

        directory = os.path.dirname(self.storage_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.storage_path, 'w', encoding='utf-8') as f:
            json.dump(self.entries, f, indent=2, default=str)

    def _load_from_storage(self) -> None:
        """Load memory entries from persistent storage."""
        with open(self.storage_path, 'r', encoding='utf-8') as f:
            self.entries = json.load(f)
        self.logger.info(f"Loaded {len(self.entries)} long-term memory entries from {self.storage_path}")

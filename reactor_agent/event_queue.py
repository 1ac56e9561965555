"""
Event queue for the reactor agent.

This module provides a bounded, thread-safe log of what happened while an
agent was working: model calls, tool inputs and outputs, hook failures,
interrupts and final responses.
"""

import json
import threading
import time
import uuid
from collections import deque
from enum import Enum
from typing import Any, Dict, List, Optional

from .utils import setup_logger

logger = setup_logger('reactor.events')


class EventType(Enum):
    """Types of events that can be stored in the event queue."""
    MODEL_CALL = "model_call"
    REASONING = "reasoning"
    TOOL_INPUT = "tool_input"
    TOOL_OUTPUT = "tool_output"
    TOOL_ERROR = "tool_error"
    HOOK_ERROR = "hook_error"
    INTERRUPT = "interrupt"
    FINAL_RESPONSE = "final_response"


class Event:
    """Event class representing an occurrence in the agent's processing."""

    def __init__(self,
                 event_type: EventType,
                 data: Dict[str, Any],
                 metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize an event.

        Args:
            event_type: Type of the event
            data: Main event data
            metadata: Additional metadata for the event
        """
        self.id = str(uuid.uuid4())
        self.event_type = event_type
        self.timestamp = time.time()
        self.data = data
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert the event to a dictionary representation."""
        return {
            "id": self.id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata
        }

    def to_json(self) -> str:
        """Convert the event to a JSON string."""
        return json.dumps(self.to_dict(), default=str)


class EventQueue:
    """ A bounded queue of agent events; the oldest events are dropped first. """

    def __init__(self, max_size: int = 1000):
        self._events = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def add(self, event_type: EventType, data: Dict[str, Any],
            metadata: Optional[Dict[str, Any]] = None) -> str:
        event = Event(event_type=event_type, data=data, metadata=metadata)
        with self._lock:
            self._events.append(event)
        logger.debug(f"Event {event.event_type.value}: {event.id}")
        return event.id

    def add_model_call(self, model_name: str, iteration: int,
                       metadata: Optional[Dict[str, Any]] = None) -> str:
        return self.add(EventType.MODEL_CALL,
                        {"model_name": model_name, "iteration": iteration},
                        metadata)

    def add_reasoning(self, text: Optional[str], tool_calls: List[str],
                      metadata: Optional[Dict[str, Any]] = None) -> str:
        return self.add(EventType.REASONING,
                        {"text": text, "tool_calls": tool_calls},
                        metadata)

    def add_tool_input(self, tool_name: str, tool_args: Dict[str, Any],
                       metadata: Optional[Dict[str, Any]] = None) -> str:
        return self.add(EventType.TOOL_INPUT,
                        {"tool_name": tool_name, "tool_args": tool_args},
                        metadata)

    def add_tool_output(self, tool_name: str, success: bool, data: Any = None,
                        error: Optional[str] = None,
                        metadata: Optional[Dict[str, Any]] = None) -> str:
        event_type = EventType.TOOL_OUTPUT if success else EventType.TOOL_ERROR
        return self.add(event_type,
                        {"tool_name": tool_name, "success": success, "data": data, "error": error},
                        metadata)

    def add_hook_error(self, hook_type: str, hook_name: str, error: str,
                       metadata: Optional[Dict[str, Any]] = None) -> str:
        return self.add(EventType.HOOK_ERROR,
                        {"hook_type": hook_type, "hook_name": hook_name, "error": error},
                        metadata)

    def add_interrupt(self, agent_name: str,
                      metadata: Optional[Dict[str, Any]] = None) -> str:
        return self.add(EventType.INTERRUPT, {"agent_name": agent_name}, metadata)

    def add_final_response(self, solution: Optional[str],
                           metadata: Optional[Dict[str, Any]] = None) -> str:
        return self.add(EventType.FINAL_RESPONSE, {"solution": solution}, metadata)

    def get_events(self, limit: Optional[int] = None,
                   event_type: Optional[EventType] = None) -> List[Event]:
        with self._lock:
            events = list(self._events)

        # Apply event type filter
        if event_type:
            events = [e for e in events if e.event_type == event_type]

        # Apply limit
        if limit and limit > 0:
            return events[-limit:]  # Return the most recent events

        return events

    def get_events_as_dicts(self, limit: Optional[int] = None,
                            event_type: Optional[EventType] = None) -> List[Dict[str, Any]]:
        """ Get events from the queue as dictionaries with optional filtering."""
        return [event.to_dict() for event in self.get_events(limit, event_type)]

    def get_latest_event(self, event_type: Optional[EventType] = None) -> Optional[Event]:
        """ Get the most recent event of the specified type. """
        events = self.get_events(limit=1, event_type=event_type)
        return events[0] if events else None

    def clear(self) -> None:
        """Clear all events from the queue."""
        with self._lock:
            self._events.clear()

    def size(self) -> int:
        """Get the current size of the queue."""
        with self._lock:
            return len(self._events)

"""
Utility functions and classes for the reactor agent.

This module provides common utilities used across the agent system.
"""

# Import logging and text utilities
from .log_utils import (
    setup_logger,
    truncate_text
)

# Import timestamp helpers
from .time_utils import (
    TIMESTAMP_FORMAT,
    current_timestamp,
    parse_timestamp
)

# Import concurrency primitives
from .concurrency import ReadWriteLock

__all__ = [
    # Logging and text utilities
    'setup_logger',
    'truncate_text',

    # Timestamp helpers
    'TIMESTAMP_FORMAT',
    'current_timestamp',
    'parse_timestamp',

    # Concurrency
    'ReadWriteLock'
]

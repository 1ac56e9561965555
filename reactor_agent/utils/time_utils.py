"""Timestamp helpers shared by messages, tool responses and memories."""

from datetime import datetime
from typing import Optional

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def current_timestamp() -> str:
    """Return the local time as ``YYYY-mm-dd HH:MM:SS.mmm``."""
    return datetime.now().strftime(TIMESTAMP_FORMAT)[:-3]


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp produced by :func:`current_timestamp`.

    Returns None when the value is missing or malformed.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return None

"""
Tools registered on every toolkit at construction.
"""

from ..utils import current_timestamp
from .response import ToolFunction, ToolResponse


def echo(message: str = "") -> ToolResponse:
    """Return the message unchanged."""
    return ToolResponse.success(message)


def get_current_time() -> ToolResponse:
    """Return the current local time."""
    return ToolResponse.success(current_timestamp())


BUILTIN_TOOLS = [
    ToolFunction.build(
        "echo",
        echo,
        description="Echo back the provided message",
        parameters={
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "The message to echo back"}
            },
            "required": ["message"],
        },
    ),
    ToolFunction.build(
        "get_current_time",
        get_current_time,
        description="Get the current date and time",
        parameters={"type": "object", "properties": {}},
    ),
]

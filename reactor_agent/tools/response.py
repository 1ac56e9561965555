"""
Tool result and tool registration types.

This module provides :class:`ToolResponse`, the value every tool
invocation resolves to, and :class:`ToolFunction`, the registration
record kept by the toolkit.
"""

from typing import Any, Callable, Dict, Optional

from ..utils import current_timestamp


class ToolResponse:
    """Result of a tool execution."""

    def __init__(self, content: Any = None, is_final: bool = True,
                 metadata: Optional[Dict[str, Any]] = None,
                 timestamp: Optional[str] = None):
        """
        Initialize a tool response.

        Args:
            content: Result payload, text or a list of content blocks
            is_final: False for intermediate chunks of a streaming tool
            metadata: Additional information about the execution
            timestamp: Creation time, defaults to now
        """
        self.content = content
        self.is_final = is_final
        self.metadata = metadata or {}
        self.timestamp = timestamp or current_timestamp()

    @classmethod
    def success(cls, content: Any, metadata: Optional[Dict[str, Any]] = None) -> 'ToolResponse':
        """Create a successful, final tool response."""
        return cls(content=content, metadata=metadata)

    @classmethod
    def error(cls, message: str) -> 'ToolResponse':
        """Create an error tool response."""
        return cls(content=f"Error: {message}",
                   metadata={"error": True, "error_message": message})

    @classmethod
    def streaming(cls, content: Any, metadata: Optional[Dict[str, Any]] = None) -> 'ToolResponse':
        """Create an intermediate (non-final) tool response."""
        return cls(content=content, is_final=False, metadata=metadata)

    @property
    def is_error(self) -> bool:
        return bool(self.metadata.get("error", False))

    def to_dict(self) -> Dict[str, Any]:
        """Convert the tool response to a dictionary."""
        content = self.content
        if isinstance(content, list):
            content = [b.to_dict() if hasattr(b, "to_dict") else b for b in content]
        return {
            "content": content,
            "is_final": self.is_final,
            "timestamp": self.timestamp,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ToolResponse':
        return cls(
            content=data.get("content"),
            is_final=data.get("is_final", True),
            metadata=data.get("metadata"),
            timestamp=data.get("timestamp"),
        )

    def __bool__(self) -> bool:
        """True if the tool execution was successful."""
        return not self.is_error

    def __repr__(self) -> str:
        return f"ToolResponse(is_final={self.is_final}, is_error={self.is_error})"


class ToolFunction:
    """A registered tool: its name, description, parameter schema and callable."""

    def __init__(self, name: str, func: Callable[..., Any], description: str = "",
                 parameters: Optional[Dict[str, Any]] = None):
        self.name = name
        self.func = func
        self.description = description
        self.parameters = parameters or {"type": "object", "properties": {}}

    @classmethod
    def build(cls, name: str, func: Callable[..., Any], description: str = "",
              parameters: Optional[Dict[str, Any]] = None) -> 'ToolFunction':
        """
        Build a tool registration from explicit parts.

        Args:
            name: Unique tool name
            func: Callable receiving the tool input as keyword arguments
            description: What the tool does, shown to the model
            parameters: JSON-schema object describing the input

        Returns:
            The tool registration

        Raises:
            ValueError: If the name is empty or func is not callable
        """
        if not name:
            raise ValueError("Tool name must not be empty")
        if not callable(func):
            raise ValueError(f"Tool '{name}' must be callable")
        return cls(name=name, func=func, description=description, parameters=parameters)

    @property
    def schema(self) -> Dict[str, Any]:
        """The function-calling schema for this tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def __str__(self) -> str:
        return f"{self.name}: {self.description}"

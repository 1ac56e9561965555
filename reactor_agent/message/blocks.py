"""
Content block types for agent messages.

A message's content is either plain text or an ordered list of content
blocks. Every block carries a ``type`` discriminator; the set of known
types is closed, and blocks with an unknown type are kept as
:class:`UnknownBlock` so that they survive a round trip untouched.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Union


@dataclass
class Base64Source:
    """Inline media payload."""
    media_type: str
    data: str
    type: ClassVar[str] = "base64"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "media_type": self.media_type, "data": self.data}


@dataclass
class URLSource:
    """Media referenced by URL."""
    url: str
    type: ClassVar[str] = "url"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "url": self.url}


MediaSource = Union[Base64Source, URLSource]


def source_from_dict(data: Any) -> MediaSource:
    """Parse a media source mapping into its typed variant."""
    if isinstance(data, (Base64Source, URLSource)):
        return data
    if not isinstance(data, dict):
        raise ValueError(f"Media source must be a mapping, got {type(data).__name__}")
    source_type = data.get("type")
    if source_type == "base64":
        return Base64Source(media_type=data.get("media_type", ""), data=data.get("data", ""))
    if source_type == "url":
        return URLSource(url=data.get("url", ""))
    raise ValueError(f"Unknown media source type: {source_type}")


@dataclass
class TextBlock:
    text: str
    type: ClassVar[str] = "text"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass
class ThinkingBlock:
    thinking: str
    type: ClassVar[str] = "thinking"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "thinking": self.thinking}


@dataclass
class _MediaBlock:
    source: MediaSource

    def __post_init__(self):
        self.source = source_from_dict(self.source)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "source": self.source.to_dict()}


@dataclass
class ImageBlock(_MediaBlock):
    type: ClassVar[str] = "image"


@dataclass
class AudioBlock(_MediaBlock):
    type: ClassVar[str] = "audio"


@dataclass
class VideoBlock(_MediaBlock):
    type: ClassVar[str] = "video"


@dataclass
class ToolUseBlock:
    """A model's request to invoke a tool."""
    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)
    type: ClassVar[str] = "tool_use"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "id": self.id, "name": self.name, "input": self.input}


@dataclass
class ToolResultBlock:
    """The outcome of a tool invocation, correlated by call id."""
    id: str
    output: Union[str, List["ContentBlock"]]
    name: Optional[str] = None
    type: ClassVar[str] = "tool_result"

    def __post_init__(self):
        if isinstance(self.output, list):
            self.output = [block_from_dict(b) for b in self.output]

    def to_dict(self) -> Dict[str, Any]:
        output = self.output
        if isinstance(output, list):
            output = [b.to_dict() for b in output]
        data = {"type": self.type, "id": self.id, "output": output}
        if self.name is not None:
            data["name"] = self.name
        return data

    def output_text(self) -> str:
        """Flatten the output to text."""
        if isinstance(self.output, list):
            return "".join(b.text for b in self.output if isinstance(b, TextBlock))
        return "" if self.output is None else str(self.output)


@dataclass
class UnknownBlock:
    """A block whose type is not part of the closed set, kept verbatim."""
    raw: Dict[str, Any]

    @property
    def type(self) -> str:
        return self.raw.get("type", "")

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


ContentBlock = Union[
    TextBlock, ThinkingBlock, ImageBlock, AudioBlock, VideoBlock,
    ToolUseBlock, ToolResultBlock, UnknownBlock,
]

BLOCK_TYPES = {
    "text": TextBlock,
    "thinking": ThinkingBlock,
    "image": ImageBlock,
    "audio": AudioBlock,
    "video": VideoBlock,
    "tool_use": ToolUseBlock,
    "tool_result": ToolResultBlock,
}


def block_from_dict(data: Any) -> ContentBlock:
    """
    Build a typed content block from its mapping form.

    Already-typed blocks are returned unchanged. Mappings without a
    ``type`` key are rejected; mappings with an unrecognised type are
    wrapped in :class:`UnknownBlock`.
    """
    if isinstance(data, (TextBlock, ThinkingBlock, _MediaBlock, ToolUseBlock,
                         ToolResultBlock, UnknownBlock)):
        return data
    if not isinstance(data, dict):
        raise ValueError(f"Content block must be a mapping, got {type(data).__name__}")
    if "type" not in data:
        raise ValueError("Content block is missing its 'type' field")

    block_type = data["type"]
    if block_type == "text":
        return TextBlock(text=data.get("text", ""))
    if block_type == "thinking":
        return ThinkingBlock(thinking=data.get("thinking", ""))
    if block_type in ("image", "audio", "video"):
        return BLOCK_TYPES[block_type](source=data.get("source"))
    if block_type == "tool_use":
        return ToolUseBlock(id=data.get("id", ""), name=data.get("name", ""),
                            input=data.get("input") or {})
    if block_type == "tool_result":
        return ToolResultBlock(id=data.get("id", ""), output=data.get("output", ""),
                               name=data.get("name"))
    return UnknownBlock(raw=dict(data))

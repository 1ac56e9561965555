"""
Message and content block types for the reactor agent.
"""

from .blocks import (
    Base64Source,
    URLSource,
    TextBlock,
    ThinkingBlock,
    ImageBlock,
    AudioBlock,
    VideoBlock,
    ToolUseBlock,
    ToolResultBlock,
    UnknownBlock,
    ContentBlock,
    block_from_dict,
)
from .msg import Msg, VALID_ROLES

__all__ = [
    'Msg',
    'VALID_ROLES',
    'Base64Source',
    'URLSource',
    'TextBlock',
    'ThinkingBlock',
    'ImageBlock',
    'AudioBlock',
    'VideoBlock',
    'ToolUseBlock',
    'ToolResultBlock',
    'UnknownBlock',
    'ContentBlock',
    'block_from_dict',
]

"""Pytest configuration and shared fixtures."""

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

# Ensure the repository root is on the import path (for running without installing)
ROOT_PATH = Path(__file__).resolve().parent.parent
if str(ROOT_PATH) not in sys.path:
    sys.path.insert(0, str(ROOT_PATH))

from reactor_agent.message import Msg, TextBlock, ToolUseBlock  # noqa: E402
from reactor_agent.model import ChatModelBase, ChatResponse, ChatUsage  # noqa: E402

Step = Union[ChatResponse, Exception, Callable[[List[Msg]], Any]]


class ScriptedModel(ChatModelBase):
    """A chat model that replays a fixed list of responses.

    Each step is a ChatResponse, an exception to raise, or a callable
    receiving the history (sync or async) and returning a ChatResponse.
    When the script runs out, the last step is repeated.
    """

    def __init__(self, steps: List[Step], delay: float = 0.0):
        super().__init__("scripted-model")
        self.steps = list(steps)
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def call(self, messages, tools=None, tool_choice=None, **kwargs):
        self.validate_tool_choice(tool_choice, tools)
        self.calls.append({"messages": list(messages), "tools": tools, "tool_choice": tool_choice})
        if self.delay:
            await asyncio.sleep(self.delay)
        index = min(len(self.calls), len(self.steps)) - 1
        step = self.steps[index]
        if isinstance(step, Exception):
            raise step
        if callable(step):
            result = step(messages)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        return step


def text_response(text: str) -> ChatResponse:
    return ChatResponse(content=[TextBlock(text=text)], usage=ChatUsage(10, 5, 0.01))


def tool_response(*calls: ToolUseBlock, text: Optional[str] = None) -> ChatResponse:
    content = [TextBlock(text=text)] if text else []
    return ChatResponse(content=content + list(calls))


@pytest.fixture
def scripted_model():
    """Factory for ScriptedModel instances."""
    return ScriptedModel


@pytest.fixture
def user_msg():
    return Msg("user", "hello", "user")


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    for var in ["OPENAI_API_KEY", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_ENDPOINT",
                "GOOGLE_LLM_API_KEY"]:
        monkeypatch.delenv(var, raising=False)
    yield

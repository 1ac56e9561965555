from types import SimpleNamespace

import pytest

from reactor_agent.formatter import OpenAIFormatter
from reactor_agent.message import Msg, TextBlock, ToolUseBlock
from reactor_agent.model import ChatResponse, ChatUsage, GeminiChatModel, OpenAIChatModel

from tests.conftest import ScriptedModel

TOOLS = [{"type": "function", "function": {"name": "lookup", "parameters": {}}}]


class FakeCompletions:
    def __init__(self, payload):
        self.payload = payload
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        return self.payload


def fake_openai_client(payload):
    completions = FakeCompletions(payload)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_chat_usage_arithmetic_and_serialization():
    total = ChatUsage(10, 5, 0.5) + ChatUsage(1, 2, 0.25)
    assert (total.input_tokens, total.output_tokens, total.time) == (11, 7, 0.75)
    assert total.total_tokens == 18
    assert (total + None) == total
    assert ChatUsage.from_dict(total.to_dict()) == total
    assert total.to_dict()["type"] == "chat"


def test_chat_response_defaults_and_block_parsing():
    response = ChatResponse(content=[{"type": "text", "text": "hi"},
                                     {"type": "tool_use", "id": "1", "name": "lookup", "input": {}}])
    assert response.id
    assert response.created_at
    assert response.type == "chat"
    assert isinstance(response.content[0], TextBlock)
    assert isinstance(response.content[1], ToolUseBlock)

    restored = ChatResponse.from_dict(response.to_dict())
    assert restored.id == response.id
    assert restored.usage is None
    assert [b.type for b in restored.content] == ["text", "tool_use"]


@pytest.mark.parametrize("choice", [None, "auto", "none", "any", "required", "lookup"])
def test_valid_tool_choices(choice):
    ScriptedModel([]).validate_tool_choice(choice, TOOLS)


def test_invalid_tool_choice_lists_options():
    model = ScriptedModel([])
    with pytest.raises(ValueError, match="Available options: auto, none, any, required, lookup"):
        model.validate_tool_choice("teleport", TOOLS)
    with pytest.raises(ValueError, match="tool_choice must be str"):
        model.validate_tool_choice(42, TOOLS)


def test_openai_model_requires_api_key(clean_env):
    with pytest.raises(ValueError, match="OpenAI API key is required"):
        OpenAIChatModel("gpt-4o", formatter=OpenAIFormatter(max_tokens=-1))


def test_azure_model_requires_endpoint(clean_env, monkeypatch):
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "secret")
    with pytest.raises(ValueError, match="endpoint is required"):
        OpenAIChatModel("gpt-4o", provider="azure", formatter=OpenAIFormatter(max_tokens=-1))


def test_unsupported_provider():
    with pytest.raises(ValueError):
        OpenAIChatModel("gpt-4o", provider="anthropic", client=object())


@pytest.mark.asyncio
async def test_openai_model_call_round_trip():
    payload = {
        "id": "chatcmpl-42",
        "model": "gpt-4o",
        "choices": [{
            "finish_reason": "tool_calls",
            "message": {
                "role": "assistant",
                "content": None,
                "tool_calls": [{"id": "call_1", "type": "function",
                                "function": {"name": "lookup", "arguments": "{\"q\": 1}"}}],
            },
        }],
        "usage": {"prompt_tokens": 12, "completion_tokens": 3},
    }
    client, completions = fake_openai_client(payload)
    model = OpenAIChatModel("gpt-4o", formatter=OpenAIFormatter(max_tokens=-1),
                            temperature=0.1, client=client)

    response = await model.call([Msg("u", "hi", "user")], tools=TOOLS, tool_choice="any")

    request = completions.requests[0]
    assert request["model"] == "gpt-4o"
    assert request["temperature"] == 0.1
    assert request["tools"] == TOOLS
    assert request["tool_choice"] == "required"
    assert request["messages"] == [{"role": "user", "content": "hi", "name": "u"}]

    assert response.id == "chatcmpl-42"
    assert response.content == [ToolUseBlock(id="call_1", name="lookup", input={"q": 1})]
    assert response.usage.input_tokens == 12
    assert response.usage.output_tokens == 3
    assert response.metadata["finish_reason"] == "tool_calls"


@pytest.mark.asyncio
async def test_openai_model_named_tool_choice_and_no_tools():
    payload = {"id": "c", "choices": [{"finish_reason": "stop",
                                       "message": {"role": "assistant", "content": "ok"}}]}
    client, completions = fake_openai_client(payload)
    model = OpenAIChatModel("gpt-4o", formatter=OpenAIFormatter(max_tokens=-1), client=client)

    await model.call([Msg("u", "hi", "user")], tools=TOOLS, tool_choice="lookup")
    assert completions.requests[0]["tool_choice"] == {"type": "function", "function": {"name": "lookup"}}

    response = await model.call([Msg("u", "hi", "user")])
    assert "tools" not in completions.requests[1]
    assert "tool_choice" not in completions.requests[1]
    assert response.usage is None
    assert response.content == [TextBlock(text="ok")]


class FakeGeminiModel:
    def __init__(self, text):
        self.text = text
        self.requests = []

    async def generate_content_async(self, contents, generation_config):
        self.requests.append(contents)
        part = SimpleNamespace(text=self.text)
        candidate = SimpleNamespace(content=SimpleNamespace(parts=[part]),
                                    finish_reason=SimpleNamespace(name="STOP"))
        usage = SimpleNamespace(prompt_token_count=7, candidates_token_count=2)
        return SimpleNamespace(candidates=[candidate], usage_metadata=usage, prompt_feedback=None)


def test_gemini_requires_api_key(clean_env):
    with pytest.raises(ValueError, match="GOOGLE_LLM_API_KEY"):
        GeminiChatModel("gemini-pro")


def test_gemini_history_formatting():
    model = GeminiChatModel("gemini-pro", model=FakeGeminiModel("unused"))
    history = model.format_history([
        Msg("system", "Be nice.", "system"),
        Msg("user", "hi", "user"),
        Msg("bot", [ToolUseBlock(id="1", name="lookup", input={"q": "x"})], "assistant"),
    ])
    assert history[0] == {"role": "user", "parts": ["Be nice.\nhi"]}
    assert history[1]["role"] == "model"
    assert "lookup" in history[1]["parts"][0]

    assert model.format_history([]) == [{"role": "user", "parts": ["Hello."]}]


@pytest.mark.asyncio
async def test_gemini_call():
    fake = FakeGeminiModel("Bonjour")
    model = GeminiChatModel("gemini-pro", temperature=0.3, model=fake)

    response = await model.call([Msg("user", "hi", "user")])

    assert response.content == [TextBlock(text="Bonjour")]
    assert response.usage.input_tokens == 7
    assert response.usage.output_tokens == 2
    assert response.metadata["finish_reason"] == "STOP"
    assert fake.requests[0] == [{"role": "user", "parts": ["hi"]}]

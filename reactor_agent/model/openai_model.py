import os
import time
from typing import Any, Dict, List, Optional

from openai import AsyncAzureOpenAI, AsyncOpenAI

from ..formatter import OpenAIFormatter
from ..message import Msg
from ..utils import setup_logger
from .base import ChatModelBase
from .response import ChatResponse, ChatUsage


class OpenAIChatModel(ChatModelBase):
    """Concrete implementation for OpenAI and Azure OpenAI chat completions."""

    def __init__(
        self,
        model_name: str,
        provider: str = "openai",
        formatter: Optional[OpenAIFormatter] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
        **generate_kwargs: Any
    ):
        """
        Initialize the client.

        Args:
            model_name: Model name, or the deployment name for Azure
            provider: "openai" or "azure"
            formatter: Formatter for requests and responses
            temperature: Sampling temperature
            max_tokens: Maximum number of tokens to generate
            api_key: API key, read from the environment when omitted
            client: A pre-built async client (skips credential lookup)
            **generate_kwargs: Extra parameters sent with every request
        """
        if provider not in ("openai", "azure"):
            raise ValueError(f"Unsupported provider for OpenAIChatModel: {provider}")
        self.provider = provider
        self.logger = setup_logger(f'reactor.model.{provider}')
        self.formatter = formatter or OpenAIFormatter(model_name=model_name)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.generate_kwargs = generate_kwargs

        if provider == "azure":
            model_name = os.getenv("AZURE_OPENAI_DEPLOYMENT_NAME", model_name)
        super().__init__(model_name)

        self.client = client if client is not None else self._initialize_client(api_key)

    def _initialize_client(self, api_key: Optional[str]) -> Any:
        """Initialize the async client with configuration settings."""
        if self.provider == "openai":
            api_key = api_key or os.getenv("OPENAI_API_KEY", "")
            if not api_key:
                self.logger.error("OpenAI API key not found in environment variables")
                raise ValueError("OpenAI API key is required")
            client = AsyncOpenAI(api_key=api_key, base_url=os.getenv("OPENAI_BASE_URL") or None)
            self.logger.info(f"Initialized OpenAI client for model: {self.model_name}")
            return client

        api_key = api_key or os.getenv("AZURE_OPENAI_API_KEY", "")
        endpoint = os.getenv("AZURE_OPENAI_ENDPOINT", "")
        api_version = os.getenv("OPENAI_API_VERSION", "2024-02-15-preview")

        if not api_key:
            self.logger.error("Azure OpenAI API key not found in environment variables")
            raise ValueError("Azure OpenAI API key is required")

        if not endpoint:
            self.logger.error("Azure OpenAI endpoint not found in environment variables")
            raise ValueError("Azure OpenAI endpoint is required")

        client = AsyncAzureOpenAI(
            api_key=api_key,
            api_version=api_version,
            azure_endpoint=endpoint
        )
        self.logger.info(f"Initialized Azure OpenAI client with endpoint: {endpoint} "
                         f"for deployment: {self.model_name}")
        return client

    async def call(
        self,
        messages: List[Msg],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
        **kwargs: Any
    ) -> ChatResponse:
        """Generate a chat completion."""
        self.validate_tool_choice(tool_choice, tools)

        params = dict(self.generate_kwargs)
        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.max_tokens is not None:
            params["max_tokens"] = self.max_tokens
        params.update(kwargs)
        if tools:
            params["tools"] = tools
            if tool_choice:
                params["tool_choice"] = self._format_tool_choice(tool_choice)

        request = self.formatter.build_request(messages, **params)
        self.logger.debug(f"Sending completion request to {self.provider} model: {self.model_name}")

        start = time.monotonic()
        try:
            completion = await self.client.chat.completions.create(model=self.model_name, **request)
        except Exception as e:
            self.logger.error(f"{self.provider} chat completion failed: {e}")
            raise
        elapsed = time.monotonic() - start

        payload = completion.model_dump() if hasattr(completion, "model_dump") else completion
        msg = self.formatter.parse_response(payload)

        usage = None
        raw_usage = payload.get("usage")
        if raw_usage:
            usage = ChatUsage(
                input_tokens=raw_usage.get("prompt_tokens") or 0,
                output_tokens=raw_usage.get("completion_tokens") or 0,
                time=elapsed,
            )

        return ChatResponse(
            content=msg.get_content_blocks(),
            id=payload.get("id"),
            usage=usage,
            metadata=msg.metadata,
        )

    @staticmethod
    def _format_tool_choice(tool_choice: str) -> Any:
        if tool_choice == "any":
            return "required"
        if tool_choice in ("auto", "none", "required"):
            return tool_choice
        return {"type": "function", "function": {"name": tool_choice}}

    def estimate_tokens(self, text: str) -> int:
        """Estimate tokens using the formatter's tokenizer."""
        return self.formatter.count_tokens(text)

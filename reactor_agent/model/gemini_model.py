import os
import time
from typing import Any, Dict, List, Optional

import google.generativeai as genai
from google.generativeai.types import GenerationConfig

from ..message import Msg, TextBlock
from ..utils import setup_logger
from .base import ChatModelBase
from .response import ChatResponse, ChatUsage

# Environment variables expected:
# GOOGLE_LLM_API_KEY: Your Google API key for Gemini.
# GEMINI_MODEL_NAME: The Gemini model to use when none is passed (e.g., "gemini-pro").


class GeminiChatModel(ChatModelBase):
    """
    Chat model implementation for Google Gemini models.

    The history is sent as text only: tool-use and tool-result blocks are
    rendered as text, and the model never returns tool calls, so the agent
    finishes as soon as Gemini answers with text.
    """

    def __init__(self, model_name: Optional[str] = None, temperature: Optional[float] = None,
                 max_tokens: Optional[int] = None, api_key: Optional[str] = None,
                 model: Optional[Any] = None):
        self.logger = setup_logger('reactor.model.gemini')
        super().__init__(model_name or os.getenv("GEMINI_MODEL_NAME", "gemini-pro"))
        self.temperature = temperature
        self.max_tokens = max_tokens

        if model is not None:
            self.model = model
            return

        api_key = api_key or os.getenv("GOOGLE_LLM_API_KEY")
        if not api_key:
            raise ValueError("GOOGLE_LLM_API_KEY environment variable not set.")

        try:
            genai.configure(api_key=api_key)
            self.model = genai.GenerativeModel(self.model_name)
        except Exception as e:
            self.logger.error(f"Failed to configure Gemini SDK or get model: {e}", exc_info=True)
            raise ValueError("Gemini model initialization failed.") from e
        self.logger.info(f"Initialized GeminiChatModel with model: {self.model_name}")

    async def call(
        self,
        messages: List[Msg],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
        **kwargs: Any
    ) -> ChatResponse:
        """Generate a chat completion using the Gemini model."""
        self.validate_tool_choice(tool_choice, tools)

        generation_config_args = {}
        temperature = kwargs.get("temperature", self.temperature)
        if temperature is not None:
            generation_config_args["temperature"] = temperature
        max_tokens = kwargs.get("max_tokens", self.max_tokens)
        if max_tokens is not None:
            generation_config_args["max_output_tokens"] = max_tokens

        contents = self.format_history(messages)
        self.logger.debug(f"Initiating Gemini chat completion with {len(contents)} turns.")

        start = time.monotonic()
        response = await self.model.generate_content_async(
            contents=contents,
            generation_config=GenerationConfig(**generation_config_args)
        )
        elapsed = time.monotonic() - start

        generated_text = self._extract_text(response)
        self.logger.info(f"Gemini chat completion successful. Response length: {len(generated_text)}")

        usage = None
        usage_metadata = getattr(response, "usage_metadata", None)
        if usage_metadata is not None:
            usage = ChatUsage(
                input_tokens=getattr(usage_metadata, "prompt_token_count", 0) or 0,
                output_tokens=getattr(usage_metadata, "candidates_token_count", 0) or 0,
                time=elapsed,
            )

        candidates = getattr(response, "candidates", None)
        finish_reason = getattr(candidates[0].finish_reason, "name", None) if candidates else None
        return ChatResponse(
            content=[TextBlock(text=generated_text)] if generated_text else [],
            usage=usage,
            metadata={"model": self.model_name, "finish_reason": finish_reason},
        )

    def format_history(self, messages: List[Msg]) -> List[Dict[str, Any]]:
        """
        Convert messages to Gemini ``contents``.

        System prompts are prepended to the first user turn; assistant
        messages use Gemini's "model" role.
        """
        history = []
        system_prompt = ""
        for msg in messages:
            text = self._render_text(msg)
            if not text:
                continue
            if msg.role == "system":
                system_prompt += text + "\n"
            elif msg.role == "user":
                history.append({"role": "user", "parts": [text]})
            else:
                history.append({"role": "model", "parts": [text]})

        if system_prompt and history and history[0]["role"] == "user":
            history[0]["parts"][0] = system_prompt + history[0]["parts"][0]
        elif system_prompt:
            history.insert(0, {"role": "user", "parts": [system_prompt]})

        if not history:
            self.logger.warning("Message history was empty. Using default 'Hello.'")
            history = [{"role": "user", "parts": ["Hello."]}]
        return history

    @staticmethod
    def _render_text(msg: Msg) -> str:
        if isinstance(msg.content, str):
            return msg.content
        lines = []
        for block in msg.get_content_blocks():
            if block.type == "text":
                lines.append(block.text)
            elif block.type == "tool_use":
                lines.append(f"[tool call {block.name}({block.input})]")
            elif block.type == "tool_result":
                lines.append(f"[tool result {block.name or block.id}: {block.output_text()}]")
        return "\n".join(lines)

    def _extract_text(self, response: Any) -> str:
        candidates = getattr(response, "candidates", None)
        if candidates and candidates[0].content.parts:
            return "".join(part.text for part in candidates[0].content.parts)

        # Safety filters or an empty response
        if getattr(response, "prompt_feedback", None):
            self.logger.warning(f"Gemini prompt feedback: {response.prompt_feedback}")
        if candidates:
            self.logger.warning(f"Gemini finish reason: {candidates[0].finish_reason}")
        return ""

"""Google Gemini LLM provider."""

import asyncio
from typing import Any

from google import genai
from google.genai import types

from animation_engine.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from animation_engine.config import settings
from animation_engine.logging import get_logger

logger = get_logger(__name__)


class GeminiProvider(LLMProvider):
    """Google Gemini API provider.

    Uses the google-genai SDK (Client-based API). The SDK is synchronous, so
    calls run in the default executor to keep the event loop free.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        """Initialize Gemini provider.

        Args:
            api_key: Google API key (uses GOOGLE_API_KEY from settings if not provided)
            model: Model name (uses GEMINI_MODEL from settings if not provided)
        """
        self.api_key = api_key or settings.google_api_key
        self.model: str = model or settings.gemini_model
        self._client: genai.Client | None = None

        if not self.api_key:
            logger.warning("gemini_api_key_not_configured")

    @property
    def client(self) -> genai.Client:
        """Get or create the Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise ValueError("Google API key not configured")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def name(self) -> str:
        return f"gemini:{self.model}"

    def _get_generation_config(
        self,
        temperature: float,
        max_tokens: int,
        system_instruction: str | None,
    ) -> types.GenerateContentConfig:
        config_dict: dict[str, Any] = {
            "temperature": temperature,
            "max_output_tokens": max_tokens,
        }
        if system_instruction:
            config_dict["system_instruction"] = system_instruction
        return types.GenerateContentConfig(**config_dict)

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        """Generate completion using Gemini API."""
        if not self.api_key:
            raise ValueError("Google API key not configured")

        contents: list[types.Content] = []
        system_prompt: str | None = None

        for msg in messages:
            if msg.role == "system":
                system_prompt = msg.content
            elif msg.role == "user":
                contents.append(types.Content(role="user", parts=[types.Part(text=msg.content)]))
            elif msg.role == "assistant":
                contents.append(types.Content(role="model", parts=[types.Part(text=msg.content)]))

        logger.debug(
            "gemini_request",
            model=self.model,
            message_count=len(contents),
        )

        loop = asyncio.get_running_loop()
        config = self._get_generation_config(temperature, max_tokens, system_prompt)

        response = await loop.run_in_executor(
            None,
            lambda: self.client.models.generate_content(
                model=self.model,
                contents=contents,  # type: ignore[arg-type]
                config=config,
            ),
        )

        usage = {}
        if getattr(response, "usage_metadata", None):
            usage = {
                "prompt_tokens": getattr(response.usage_metadata, "prompt_token_count", 0) or 0,
                "completion_tokens": getattr(response.usage_metadata, "candidates_token_count", 0)
                or 0,
                "total_tokens": getattr(response.usage_metadata, "total_token_count", 0) or 0,
            }

        finish_reason = None
        if response.candidates:
            reason = response.candidates[0].finish_reason
            finish_reason = str(reason) if reason is not None else None

        logger.info(
            "gemini_response",
            model=self.model,
            tokens_used=usage.get("total_tokens", 0),
            finish_reason=finish_reason,
        )

        return LLMResponse(
            content=(response.text or "").strip(),
            model=self.model,
            usage=usage,
            finish_reason=finish_reason,
        )

    async def health_check(self) -> bool:
        """Check if Gemini API is accessible."""
        if not self.api_key:
            return False

        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: self.client.models.get(model=self.model),
            )
            return True
        except Exception as e:
            logger.error("gemini_health_check_failed", error=str(e))
            return False

"""OpenAI-compatible chat completion providers (OpenAI and Groq)."""

from typing import Any

import httpx

from animation_engine.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from animation_engine.config import settings
from animation_engine.logging import get_logger

logger = get_logger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI API provider for GPT models."""

    provider_label = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 120.0,
    ) -> None:
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_model
        self.base_url = base_url
        self.timeout = timeout

        if not self.api_key:
            logger.warning(f"{self.provider_label}_api_key_not_configured")

    @property
    def name(self) -> str:
        return f"{self.provider_label}:{self.model}"

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        """Generate completion using the chat completions endpoint."""
        if not self.api_key:
            raise ValueError(f"{self.provider_label} API key not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        logger.debug(
            f"{self.provider_label}_request",
            model=self.model,
            message_count=len(messages),
        )

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers=headers,
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

        choice = data["choices"][0]
        usage = data.get("usage", {})

        logger.info(
            f"{self.provider_label}_response",
            model=self.model,
            tokens_used=usage.get("total_tokens", 0),
            finish_reason=choice.get("finish_reason"),
        )

        return LLMResponse(
            content=(choice["message"].get("content") or "").strip(),
            model=data.get("model", self.model),
            usage={
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
            },
            raw_response=data,
            finish_reason=choice.get("finish_reason"),
        )

    async def health_check(self) -> bool:
        """Check if the API is accessible."""
        if not self.api_key:
            return False

        try:
            headers = {"Authorization": f"Bearer {self.api_key}"}
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(
                    f"{self.base_url}/models",
                    headers=headers,
                )
                return response.status_code == 200
        except Exception as e:
            logger.error(f"{self.provider_label}_health_check_failed", error=str(e))
            return False


class GroqProvider(OpenAIProvider):
    """Groq provider; Groq serves Llama models behind an OpenAI-compatible API."""

    provider_label = "groq"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = "https://api.groq.com/openai/v1",
        timeout: float = 120.0,
    ) -> None:
        super().__init__(
            api_key=api_key or settings.groq_api_key,
            model=model or settings.groq_model,
            base_url=base_url,
            timeout=timeout,
        )

"""LLM provider adapters."""

from animation_engine.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from animation_engine.adapters.llm.gemini import GeminiProvider
from animation_engine.adapters.llm.openai import GroqProvider, OpenAIProvider
from animation_engine.adapters.llm.stub import StubLLMProvider

__all__ = [
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "GeminiProvider",
    "GroqProvider",
    "OpenAIProvider",
    "StubLLMProvider",
]

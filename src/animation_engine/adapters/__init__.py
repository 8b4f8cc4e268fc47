"""Adapters for external services."""

from animation_engine.adapters.llm.base import LLMProvider
from animation_engine.adapters.renderer.base import RendererProvider

__all__ = [
    "LLMProvider",
    "RendererProvider",
]

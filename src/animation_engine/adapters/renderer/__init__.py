"""Animation rendering adapters."""

from animation_engine.adapters.renderer.base import (
    ProgressCallback,
    RendererProvider,
    RenderRequest,
    RenderResult,
)
from animation_engine.adapters.renderer.manim import ManimRenderer
from animation_engine.adapters.renderer.stub import StubRendererProvider

__all__ = [
    "ProgressCallback",
    "RendererProvider",
    "RenderRequest",
    "RenderResult",
    "ManimRenderer",
    "StubRendererProvider",
]

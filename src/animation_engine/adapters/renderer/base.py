"""Base interface for animation rendering providers."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Receives render progress as an integer percentage
ProgressCallback = Callable[[int], None]


@dataclass
class RenderRequest:
    """Request to render generated Manim code into a video."""

    code: str
    output_name: str
    output_format: str = "mp4"
    quality: str = "medium"


@dataclass
class RenderResult:
    """Result from rendering."""

    success: bool
    output_path: Path | None = None
    file_size_bytes: int | None = None
    scene_name: str | None = None
    error_message: str | None = None
    metadata: dict[str, Any] | None = None


class RendererProvider(ABC):
    """Abstract base class for animation rendering providers.

    Implementations:
    - ManimRenderer: Runs the Manim CLI in a subprocess
    - StubRendererProvider: Writes a placeholder file for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def render(
        self,
        request: RenderRequest,
        on_progress: ProgressCallback | None = None,
    ) -> RenderResult:
        """Render the request's code to a video file.

        Args:
            request: Code and output naming
            on_progress: Called with non-decreasing percentages while rendering

        Returns:
            RenderResult with output path or error information
        """
        ...

    async def health_check(self) -> bool:
        """Check if the renderer is available and healthy.

        Returns:
            True if renderer is operational, False otherwise
        """
        return True

"""Stub renderer provider for testing."""

import asyncio
from pathlib import Path

from animation_engine.adapters.renderer.base import (
    ProgressCallback,
    RendererProvider,
    RenderRequest,
    RenderResult,
)
from animation_engine.config import settings
from animation_engine.logging import get_logger
from animation_engine.utils.code import extract_scene_class

logger = get_logger(__name__)


class StubRendererProvider(RendererProvider):
    """Stub provider that simulates rendering without Manim installed."""

    def __init__(self, output_dir: Path | None = None, step_delay: float = 0.0) -> None:
        self.output_dir = output_dir or settings.video_output_dir
        self.step_delay = step_delay

    @property
    def name(self) -> str:
        return "stub"

    async def render(
        self,
        request: RenderRequest,
        on_progress: ProgressCallback | None = None,
    ) -> RenderResult:
        """Report progress in steps and write a placeholder video."""
        scene_name = extract_scene_class(request.code)
        if scene_name is None:
            return RenderResult(
                success=False,
                error_message="No Scene class found in the generated code",
            )

        logger.info("stub_render_started", output_name=request.output_name, scene=scene_name)

        for progress in (0, 25, 50, 75):
            if on_progress:
                on_progress(progress)
            await asyncio.sleep(self.step_delay)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"{request.output_name}.{request.output_format}"
        output_path.write_bytes(b"STUB_RENDERED_" + scene_name.encode())

        if on_progress:
            on_progress(100)

        file_size = output_path.stat().st_size
        logger.info(
            "stub_render_completed",
            output_path=str(output_path),
            file_size=file_size,
        )

        return RenderResult(
            success=True,
            output_path=output_path,
            file_size_bytes=file_size,
            scene_name=scene_name,
            metadata={"provider": self.name},
        )

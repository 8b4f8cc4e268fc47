"""Manim renderer.

Writes generated code to a scratch directory, runs ``python -m manim`` on it
and moves the resulting MP4 into the video output directory. Manim prints
tqdm progress bars while rendering; the percentages are parsed from its
output and forwarded to the progress callback.
"""

import asyncio
import re
import shutil
import sys
import tempfile
from collections import deque
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

QUALITY_FLAGS = {
    "low": "-ql",
    "medium": "-qm",
    "high": "-qh",
}

_PROGRESS_PATTERN = re.compile(r"(\d{1,3})%")
_LINE_SPLIT = re.compile(r"[\r\n]+")


def parse_progress(line: str) -> int | None:
    """Extract the last percentage printed on a line of Manim output."""
    matches = _PROGRESS_PATTERN.findall(line)
    if not matches:
        return None
    value = int(matches[-1])
    return value if 0 <= value <= 100 else None


class ProgressTracker:
    """Turns raw percentages into a non-decreasing series.

    Manim restarts its progress bar for every animation in a scene, so the
    raw numbers go up and down. Reports stay below 100 until the render has
    actually finished.
    """

    def __init__(self, on_progress: ProgressCallback | None) -> None:
        self.on_progress = on_progress
        self.current = -1

    def report(self, value: int) -> None:
        value = min(value, 99)
        if value <= self.current:
            return
        self.current = value
        if self.on_progress:
            self.on_progress(value)

    def finish(self) -> None:
        self.current = 100
        if self.on_progress:
            self.on_progress(100)


class ManimRenderer(RendererProvider):
    """Renders Manim scenes with the Manim community CLI."""

    def __init__(
        self,
        output_dir: Path | None = None,
        scripts_dir: Path | None = None,
        python_executable: str | None = None,
        timeout_seconds: int | None = None,
    ) -> None:
        self.output_dir = output_dir or settings.video_output_dir
        self.scripts_dir = scripts_dir or settings.manim_scripts_dir
        self.python_executable = python_executable or settings.manim_executable or sys.executable
        self.timeout_seconds = timeout_seconds or settings.render_timeout_seconds

    @property
    def name(self) -> str:
        return "manim"

    def build_command(self, script_path: Path, scene_name: str, request: RenderRequest) -> list[str]:
        return [
            self.python_executable,
            "-m",
            "manim",
            QUALITY_FLAGS.get(request.quality, "-qm"),
            str(script_path),
            scene_name,
            "-o",
            request.output_name,
            "--format",
            request.output_format,
            "--media_dir",
            str(script_path.parent / "media"),
        ]

    async def render(
        self,
        request: RenderRequest,
        on_progress: ProgressCallback | None = None,
    ) -> RenderResult:
        """Render the scene found in ``request.code``."""
        scene_name = extract_scene_class(request.code)
        if scene_name is None:
            return RenderResult(
                success=False,
                error_message="No Scene class found in the generated code",
            )

        self.scripts_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        work_dir = Path(tempfile.mkdtemp(prefix=f"{request.output_name}_", dir=self.scripts_dir))
        script_path = work_dir / "scene.py"
        script_path.write_text(request.code, encoding="utf-8")

        cmd = self.build_command(script_path, scene_name, request)
        tracker = ProgressTracker(on_progress)
        tail: deque[str] = deque(maxlen=20)

        logger.info(
            "manim_render_started",
            output_name=request.output_name,
            scene=scene_name,
            quality=request.quality,
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=str(work_dir),
            )

            try:
                returncode = await asyncio.wait_for(
                    self._consume_output(process, tracker, tail),
                    timeout=self.timeout_seconds,
                )
            except TimeoutError:
                process.kill()
                await process.wait()
                logger.error(
                    "manim_render_timeout",
                    output_name=request.output_name,
                    timeout_seconds=self.timeout_seconds,
                )
                return RenderResult(
                    success=False,
                    scene_name=scene_name,
                    error_message=f"Manim render timed out after {self.timeout_seconds}s",
                )

            if returncode != 0:
                output = "\n".join(tail)
                logger.error(
                    "manim_render_failed",
                    output_name=request.output_name,
                    returncode=returncode,
                )
                return RenderResult(
                    success=False,
                    scene_name=scene_name,
                    error_message=f"Manim exited with code {returncode}: {output[-1000:]}",
                )

            rendered = self._find_output_file(work_dir, request)
            if rendered is None:
                return RenderResult(
                    success=False,
                    scene_name=scene_name,
                    error_message="Output file not found after render",
                )

            final_path = self.output_dir / f"{request.output_name}.{request.output_format}"
            shutil.move(str(rendered), str(final_path))
            tracker.finish()

            file_size = final_path.stat().st_size
            logger.info(
                "manim_render_completed",
                output_path=str(final_path),
                file_size=file_size,
            )
            return RenderResult(
                success=True,
                output_path=final_path,
                file_size_bytes=file_size,
                scene_name=scene_name,
                metadata={"provider": self.name, "quality": request.quality},
            )
        except FileNotFoundError as e:
            return RenderResult(
                success=False,
                scene_name=scene_name,
                error_message=f"Could not start Manim: {e}",
            )
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

    async def _consume_output(
        self,
        process: asyncio.subprocess.Process,
        tracker: ProgressTracker,
        tail: deque[str],
    ) -> int:
        """Read merged stdout/stderr until exit, feeding progress to the tracker."""
        assert process.stdout is not None
        buffer = ""
        while True:
            chunk = await process.stdout.read(4096)
            if not chunk:
                break
            buffer += chunk.decode("utf-8", errors="replace")
            # tqdm redraws with carriage returns, so split on those too
            *lines, buffer = _LINE_SPLIT.split(buffer)
            for line in lines:
                self._handle_line(line, tracker, tail)
        if buffer:
            self._handle_line(buffer, tracker, tail)
        return await process.wait()

    @staticmethod
    def _handle_line(line: str, tracker: ProgressTracker, tail: deque[str]) -> None:
        line = line.strip()
        if not line:
            return
        tail.append(line)
        progress = parse_progress(line)
        if progress is not None:
            tracker.report(progress)

    @staticmethod
    def _find_output_file(work_dir: Path, request: RenderRequest) -> Path | None:
        media_dir = work_dir / "media"
        if not media_dir.exists():
            return None
        expected = f"{request.output_name}.{request.output_format}"
        candidates = sorted(media_dir.rglob(f"*.{request.output_format}"))
        for candidate in candidates:
            if candidate.name == expected:
                return candidate
        # Partial movie files live under partial_movie_files/; skip them
        finals = [c for c in candidates if "partial_movie_files" not in c.parts]
        return finals[0] if finals else None

    async def health_check(self) -> bool:
        """Check that Manim can be imported by the configured interpreter."""
        try:
            process = await asyncio.create_subprocess_exec(
                self.python_executable,
                "-m",
                "manim",
                "--version",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            return await asyncio.wait_for(process.wait(), timeout=30) == 0
        except (OSError, TimeoutError) as e:
            logger.error("manim_health_check_failed", error=str(e))
            return False

"""Tests for the Manim subprocess renderer."""

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from animation_engine.adapters.renderer import RenderRequest
from animation_engine.adapters.renderer.manim import (
    ManimRenderer,
    ProgressTracker,
    parse_progress,
)

SCENE_CODE = "from manim import *\n\nclass Spiral(Scene):\n    def construct(self):\n        pass\n"


class FakeStream:
    def __init__(self, chunks: list[bytes], hang: bool = False) -> None:
        self.chunks = list(chunks)
        self.hang = hang

    async def read(self, n: int = -1) -> bytes:
        if self.chunks:
            return self.chunks.pop(0)
        if self.hang:
            await asyncio.sleep(3600)
        return b""


class FakeProcess:
    def __init__(self, chunks: list[bytes], returncode: int = 0, hang: bool = False) -> None:
        self.stdout = FakeStream(chunks, hang=hang)
        self.returncode = returncode
        self.killed = False

    async def wait(self) -> int:
        return self.returncode

    def kill(self) -> None:
        self.killed = True


def fake_manim(process: FakeProcess, write_output: bool = True):
    """Stand-in for create_subprocess_exec that writes Manim's output layout."""
    calls: list[list[str]] = []

    async def create(*cmd: str, **kwargs):
        calls.append(list(cmd))
        if write_output:
            media_dir = Path(cmd[cmd.index("--media_dir") + 1])
            name = cmd[cmd.index("-o") + 1]
            out = media_dir / "videos" / "scene" / "720p30"
            (out / "partial_movie_files").mkdir(parents=True)
            (out / "partial_movie_files" / "part_0.mp4").write_bytes(b"partial")
            (out / f"{name}.mp4").write_bytes(b"rendered video")
        return process

    return create, calls


class TestProgressParsing:
    """Turning Manim output into progress reports."""

    def test_parse_progress(self) -> None:
        assert parse_progress("Animation 0: Create(Circle):  45%|####5     | 27/60") == 45
        assert parse_progress("File ready at /tmp/out.mp4") is None
        assert parse_progress("  100%|##########|") == 100

    def test_tracker_is_monotonic_and_capped(self) -> None:
        reports: list[int] = []
        tracker = ProgressTracker(reports.append)

        for value in (0, 30, 10, 100, 60):
            tracker.report(value)
        tracker.finish()

        assert reports == [0, 30, 99, 100]


class TestManimRenderer:
    """Rendering through a mocked subprocess."""

    def _renderer(self, tmp_path: Path, timeout: float = 30) -> ManimRenderer:
        return ManimRenderer(
            output_dir=tmp_path / "videos",
            scripts_dir=tmp_path / "scripts",
            python_executable="python3",
            timeout_seconds=timeout,
        )

    def test_build_command(self, tmp_path) -> None:
        renderer = self._renderer(tmp_path)
        request = RenderRequest(code=SCENE_CODE, output_name="animation_7", quality="high")

        cmd = renderer.build_command(Path("/work/scene.py"), "Spiral", request)

        assert cmd[:5] == ["python3", "-m", "manim", "-qh", "/work/scene.py"]
        assert cmd[5] == "Spiral"
        assert cmd[cmd.index("-o") + 1] == "animation_7"
        assert cmd[cmd.index("--format") + 1] == "mp4"

    @pytest.mark.asyncio
    async def test_successful_render(self, tmp_path) -> None:
        renderer = self._renderer(tmp_path)
        process = FakeProcess([b"Animation 0: 20%|##\r", b"Animation 0: 80%|########\r\n", b"Done\n"])
        create, calls = fake_manim(process)
        progress: list[int] = []

        with patch("asyncio.create_subprocess_exec", side_effect=create):
            result = await renderer.render(
                RenderRequest(code=SCENE_CODE, output_name="animation_7"), on_progress=progress.append
            )

        assert result.success is True
        assert result.output_path == tmp_path / "videos" / "animation_7.mp4"
        assert result.output_path.read_bytes() == b"rendered video"
        assert result.scene_name == "Spiral"
        assert progress == [20, 80, 100]
        assert calls[0][5] == "Spiral"
        # Scratch directory is removed after rendering
        assert list((tmp_path / "scripts").iterdir()) == []

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, tmp_path) -> None:
        renderer = self._renderer(tmp_path)
        process = FakeProcess([b"NameError: name 'Circl' is not defined\n"], returncode=1)
        create, _ = fake_manim(process, write_output=False)

        with patch("asyncio.create_subprocess_exec", side_effect=create):
            result = await renderer.render(RenderRequest(code=SCENE_CODE, output_name="animation_8"))

        assert result.success is False
        assert "exited with code 1" in result.error_message
        assert "NameError" in result.error_message

    @pytest.mark.asyncio
    async def test_missing_output_file(self, tmp_path) -> None:
        renderer = self._renderer(tmp_path)
        create, _ = fake_manim(FakeProcess([b"ok\n"]), write_output=False)

        with patch("asyncio.create_subprocess_exec", side_effect=create):
            result = await renderer.render(RenderRequest(code=SCENE_CODE, output_name="animation_9"))

        assert result.success is False
        assert result.error_message == "Output file not found after render"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, tmp_path) -> None:
        renderer = self._renderer(tmp_path, timeout=0.05)
        process = FakeProcess([b"Animation 0: 5%\r"], hang=True)
        create, _ = fake_manim(process, write_output=False)

        with patch("asyncio.create_subprocess_exec", side_effect=create):
            result = await renderer.render(RenderRequest(code=SCENE_CODE, output_name="animation_10"))

        assert result.success is False
        assert "timed out" in result.error_message
        assert process.killed is True

    @pytest.mark.asyncio
    async def test_no_scene_class(self, tmp_path) -> None:
        renderer = self._renderer(tmp_path)

        with patch("asyncio.create_subprocess_exec") as mock_exec:
            result = await renderer.render(RenderRequest(code="x = 1", output_name="animation_11"))

        assert result.success is False
        assert "No Scene class" in result.error_message
        mock_exec.assert_not_called()

    @pytest.mark.asyncio
    async def test_manim_not_installed(self, tmp_path) -> None:
        renderer = self._renderer(tmp_path)

        with patch("asyncio.create_subprocess_exec", side_effect=FileNotFoundError("python3")):
            result = await renderer.render(RenderRequest(code=SCENE_CODE, output_name="animation_12"))

        assert result.success is False
        assert "Could not start Manim" in result.error_message

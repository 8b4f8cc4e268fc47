"""Tests for the animation generation pipeline."""

from uuid import uuid4

import pytest
from conftest import FakeBackends, create_animation, drain

from animation_engine.db import repository
from animation_engine.db.session import get_session_context
from animation_engine.domain.enums import AIModel, AnimationStatus
from animation_engine.exceptions import BackendError, RenderError
from animation_engine.services.backends import GenerationBackends
from animation_engine.services.orchestrator import AnimationPipeline


def _load(animation_id):
    with get_session_context() as session:
        animation = repository.get_animation(session, animation_id)
        tasks = repository.get_tasks(session, animation_id)
        return animation, tasks


class TestSuccessfulRun:
    """All three stages succeed."""

    @pytest.mark.asyncio
    async def test_completes_animation_and_tasks(self, user_id, channel, fake_backends) -> None:
        animation_id = create_animation(user_id)
        pipeline = AnimationPipeline(fake_backends, channel)

        status = await pipeline.run(animation_id, AIModel.OPENAI)

        assert status == AnimationStatus.COMPLETED
        animation, tasks = _load(animation_id)
        assert animation.status == "completed"
        assert animation.video_url == "video_123"
        assert animation.script == fake_backends.script
        assert animation.manim_code == fake_backends.code
        assert [t.status for t in tasks] == ["completed"] * 3
        assert all(t.started_at is not None and t.completed_at is not None for t in tasks)
        assert tasks[-1].progress == 100
        assert tasks[-1].metadata_ == {"provider": "fake"}

    @pytest.mark.asyncio
    async def test_stages_run_in_order(self, user_id, channel, fake_backends) -> None:
        animation_id = create_animation(user_id)
        await AnimationPipeline(fake_backends, channel).run(animation_id, AIModel.OPENAI)

        assert [name for name, _ in fake_backends.calls] == [
            "generate_script",
            "generate_code",
            "render_video",
        ]
        _, code_args = fake_backends.calls[1]
        assert code_args[1] == fake_backends.script
        assert code_args[2] == 30
        _, render_args = fake_backends.calls[2]
        assert render_args == (fake_backends.code, f"animation_{animation_id}")

    @pytest.mark.asyncio
    async def test_event_sequence(self, user_id, channel, fake_backends) -> None:
        subscription = channel.subscribe()
        animation_id = create_animation(user_id)

        await AnimationPipeline(fake_backends, channel).run(animation_id, AIModel.OPENAI)

        messages = drain(subscription)
        summary = [
            (m["type"], m.get("taskType"), m.get("status", m.get("progress"))) for m in messages
        ]
        assert summary == [
            ("task_update", "script_generation", "processing"),
            ("task_update", "script_generation", "completed"),
            ("task_update", "code_generation", "processing"),
            ("task_update", "code_generation", "completed"),
            ("task_update", "rendering", "processing"),
            ("task_progress", "rendering", 10),
            ("task_progress", "rendering", 50),
            ("task_progress", "rendering", 90),
            ("task_update", "rendering", "completed"),
            ("animation_update", None, "completed"),
        ]
        assert all(m["animationId"] == str(animation_id) for m in messages)
        assert messages[8]["videoUrl"] == "video_123"
        assert "error" not in messages[-1]

    @pytest.mark.asyncio
    async def test_progress_is_clamped(self, user_id, channel) -> None:
        subscription = channel.subscribe()
        animation_id = create_animation(user_id)
        backends = FakeBackends(progress=(-5, 140))

        await AnimationPipeline(backends, channel).run(animation_id, AIModel.OPENAI)

        progress = [m["progress"] for m in drain(subscription) if m["type"] == "task_progress"]
        assert progress == [0, 100]

    @pytest.mark.asyncio
    async def test_stub_backends_end_to_end(self, user_id, channel) -> None:
        animation_id = create_animation(user_id)
        pipeline = AnimationPipeline(GenerationBackends(), channel)

        status = await pipeline.run(animation_id, AIModel.GEMINI)

        assert status == AnimationStatus.COMPLETED
        animation, _ = _load(animation_id)
        assert animation.video_url.endswith(f"/animation_{animation_id}.mp4")
        assert "class GeneratedScene(Scene)" in animation.manim_code
        assert not animation.manim_code.startswith("```")


class TestFailedRun:
    """A stage fails and the run stops."""

    @pytest.mark.asyncio
    async def test_code_generation_failure(self, user_id, channel) -> None:
        subscription = channel.subscribe()
        animation_id = create_animation(user_id)
        backends = FakeBackends(failures={"generate_code": BackendError("rate limited")})

        status = await AnimationPipeline(backends, channel).run(animation_id, AIModel.GROQ)

        assert status == AnimationStatus.FAILED
        animation, tasks = _load(animation_id)
        assert animation.status == "failed"
        assert animation.script is not None
        assert animation.manim_code is None
        assert animation.video_url is None
        assert [t.status for t in tasks] == ["completed", "failed", "pending"]
        assert tasks[1].error == "rate limited"
        assert tasks[1].completed_at is not None
        assert tasks[2].started_at is None

        messages = drain(subscription)
        assert messages[-2]["status"] == "failed"
        assert messages[-2]["error"] == "rate limited"
        assert messages[-1] == {
            "type": "animation_update",
            "animationId": str(animation_id),
            "status": "failed",
            "error": "rate limited",
        }
        assert "render_video" not in [name for name, _ in backends.calls]

    @pytest.mark.asyncio
    async def test_render_failure_keeps_last_progress(self, user_id, channel) -> None:
        animation_id = create_animation(user_id)
        backends = FakeBackends(
            progress=(20, 40),
            failures={"render_video": RenderError("No Scene class found in the generated code")},
        )

        status = await AnimationPipeline(backends, channel).run(animation_id, AIModel.OPENAI)

        assert status == AnimationStatus.FAILED
        animation, tasks = _load(animation_id)
        assert animation.video_url is None
        assert animation.manim_code is not None
        assert tasks[2].status == "failed"
        assert tasks[2].progress == 40
        assert tasks[2].error == "No Scene class found in the generated code"

    @pytest.mark.asyncio
    async def test_missing_script_fails_code_stage(self, user_id, channel) -> None:
        animation_id = create_animation(user_id)
        backends = FakeBackends(script="")

        status = await AnimationPipeline(backends, channel).run(animation_id, AIModel.OPENAI)

        assert status == AnimationStatus.FAILED
        _, tasks = _load(animation_id)
        assert [t.status for t in tasks] == ["completed", "failed", "pending"]
        assert "no script" in tasks[1].error
        assert [name for name, _ in backends.calls] == ["generate_script"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_recorded(self, user_id, channel) -> None:
        animation_id = create_animation(user_id)
        backends = FakeBackends(failures={"generate_script": RuntimeError("boom")})

        status = await AnimationPipeline(backends, channel).run(animation_id, AIModel.OPENAI)

        assert status == AnimationStatus.FAILED
        _, tasks = _load(animation_id)
        assert tasks[0].status == "failed"
        assert tasks[0].error == "boom"

    @pytest.mark.asyncio
    async def test_missing_animation_does_not_raise(self, channel, fake_backends) -> None:
        subscription = channel.subscribe()

        status = await AnimationPipeline(fake_backends, channel).run(uuid4(), AIModel.OPENAI)

        assert status is None
        assert fake_backends.calls == []
        assert drain(subscription) == []

    @pytest.mark.asyncio
    async def test_unknown_model_does_not_raise(self, user_id, channel, fake_backends) -> None:
        animation_id = create_animation(user_id)
        subscription = channel.subscribe()

        status = await AnimationPipeline(fake_backends, channel).run(animation_id, "bogus")

        assert status is None
        assert fake_backends.calls == []
        assert drain(subscription) == []
        animation, tasks = _load(animation_id)
        assert animation.status == "pending"
        assert [t.status for t in tasks] == ["pending"] * 3

    @pytest.mark.asyncio
    async def test_second_run_without_reset_is_skipped(
        self, user_id, channel, fake_backends
    ) -> None:
        animation_id = create_animation(user_id)
        pipeline = AnimationPipeline(fake_backends, channel)
        await pipeline.run(animation_id, AIModel.OPENAI)
        subscription = channel.subscribe()

        # Tasks are completed; nothing is rerun and nothing is touched
        status = await pipeline.run(animation_id, AIModel.OPENAI)

        assert status is None
        assert len(fake_backends.calls) == 3
        assert drain(subscription) == []
        animation, tasks = _load(animation_id)
        assert animation.status == "completed"
        assert animation.video_url == "video_123"
        assert [(t.status, t.error) for t in tasks] == [("completed", None)] * 3

    @pytest.mark.asyncio
    async def test_run_reset_midway_leaves_records_to_new_run(self, user_id, channel) -> None:
        animation_id = create_animation(user_id)

        class ResettingBackends(FakeBackends):
            async def generate_code(self, prompt, script, duration_seconds, config):
                with get_session_context() as session:
                    animation = repository.get_animation(session, animation_id)
                    repository.set_animation_status(session, animation, AnimationStatus.PENDING)
                    repository.reset_tasks(session, animation_id)
                return await super().generate_code(prompt, script, duration_seconds, config)

        status = await AnimationPipeline(ResettingBackends(), channel).run(
            animation_id, AIModel.OPENAI
        )

        assert status is None
        animation, tasks = _load(animation_id)
        assert animation.status == "pending"
        assert animation.manim_code is None
        assert [t.status for t in tasks] == ["pending"] * 3

    @pytest.mark.asyncio
    async def test_crash_after_stage_is_recorded_on_its_task(self, user_id, channel) -> None:
        animation_id = create_animation(user_id)

        class BrokenMetadataBackends(FakeBackends):
            @property
            def renderer_name(self) -> str:
                raise RuntimeError("renderer name unavailable")

        status = await AnimationPipeline(BrokenMetadataBackends(), channel).run(
            animation_id, AIModel.OPENAI
        )

        assert status == AnimationStatus.FAILED
        animation, tasks = _load(animation_id)
        assert animation.status == "failed"
        assert [t.status for t in tasks] == ["completed", "completed", "failed"]
        assert tasks[2].error == "renderer name unavailable"

"""Tests for animation creation, entitlement and regeneration."""

from uuid import uuid4

import pytest
from conftest import create_animation

from animation_engine.db import repository
from animation_engine.db.models import AnimationModel
from animation_engine.db.session import get_session_context
from animation_engine.domain.enums import AIModel, AnimationStatus
from animation_engine.exceptions import (
    AccessDeniedError,
    EntitlementError,
    NotFoundError,
    ValidationError,
)
from animation_engine.services import animations as animation_service
from animation_engine.services.orchestrator import AnimationPipeline
from animation_engine.services.users import create_user


def _set_remaining(user_id, remaining: int) -> None:
    with get_session_context() as session:
        repository.get_user(session, user_id).generations_remaining = remaining


def _remaining(user_id) -> int:
    with get_session_context() as session:
        return repository.get_user(session, user_id).generations_remaining


class TestBuildRequest:
    """Input validation."""

    def test_defaults(self) -> None:
        request = animation_service.build_request("Show how a sine wave is drawn")

        assert request.ai_model == AIModel.OPENAI
        assert request.duration == 30
        assert request.title.startswith("Animation ")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"prompt": "too short"},
            {"prompt": "Show how a sine wave is drawn", "title": "ab"},
            {"prompt": "Show how a sine wave is drawn", "duration": 4},
            {"prompt": "Show how a sine wave is drawn", "duration": 61},
            {"prompt": "Show how a sine wave is drawn", "ai_model": "claude"},
        ],
    )
    def test_rejects_invalid_input(self, kwargs) -> None:
        with pytest.raises(ValidationError):
            animation_service.build_request(**kwargs)


class TestCreateAnimation:
    """Creating a project."""

    def test_creates_pending_animation_with_ordered_tasks(self, user_id) -> None:
        animation_id = create_animation(user_id, ai_model="gemini", duration=12)

        with get_session_context() as session:
            animation = repository.get_animation(session, animation_id)
            tasks = repository.get_tasks(session, animation_id)

            assert animation.status == "pending"
            assert animation.ai_model == "gemini"
            assert animation.duration == 12
            assert animation.script is None
            assert [t.task_type for t in tasks] == [
                "script_generation",
                "code_generation",
                "rendering",
            ]
            assert all(t.status == "pending" and t.error is None for t in tasks)

    def test_consumes_one_generation(self, user_id) -> None:
        create_animation(user_id)
        assert _remaining(user_id) == 9

    def test_rejected_without_generations(self, user_id) -> None:
        _set_remaining(user_id, 0)
        request = animation_service.build_request("Show how a sine wave is drawn")

        with get_session_context() as session:
            with pytest.raises(EntitlementError, match="generation limit"):
                animation_service.create_animation_project(session, user_id, request)

        with get_session_context() as session:
            assert session.query(AnimationModel).count() == 0
        assert _remaining(user_id) == 0

    def test_unknown_user(self) -> None:
        request = animation_service.build_request("Show how a sine wave is drawn")
        with get_session_context() as session:
            with pytest.raises(NotFoundError):
                animation_service.create_animation_project(session, uuid4(), request)


class TestRegenerate:
    """Resetting an animation for a new run."""

    @pytest.mark.asyncio
    async def test_resets_completed_animation(self, user_id, channel, fake_backends) -> None:
        animation_id = create_animation(user_id)
        await AnimationPipeline(fake_backends, channel).run(animation_id, AIModel.OPENAI)

        with get_session_context() as session:
            animation_service.regenerate_animation(
                session, animation_id, user_id, prompt="Show the area of a circle growing"
            )

        with get_session_context() as session:
            animation = repository.get_animation(session, animation_id)
            tasks = repository.get_tasks(session, animation_id)

            assert animation.status == "pending"
            assert animation.prompt == "Show the area of a circle growing"
            assert animation.video_url == "video_123"
            assert animation.script == fake_backends.script
            assert len(tasks) == 3
            for task in tasks:
                assert task.status == "pending"
                assert task.error is None
                assert task.progress is None
                assert task.started_at is None
                assert task.completed_at is None
        assert _remaining(user_id) == 8

    @pytest.mark.asyncio
    async def test_rerun_after_reset_completes(self, user_id, channel, fake_backends) -> None:
        animation_id = create_animation(user_id)
        pipeline = AnimationPipeline(fake_backends, channel)
        await pipeline.run(animation_id, AIModel.OPENAI)

        with get_session_context() as session:
            animation_service.regenerate_animation(session, animation_id, user_id)
        fake_backends.video_ref = "video_456"

        status = await pipeline.run(animation_id, AIModel.OPENAI)

        assert status == AnimationStatus.COMPLETED
        with get_session_context() as session:
            assert repository.get_animation(session, animation_id).video_url == "video_456"

    def test_keeps_prompt_when_none_given(self, user_id) -> None:
        animation_id = create_animation(user_id, prompt="Visualize the Fourier series")

        with get_session_context() as session:
            animation = animation_service.regenerate_animation(session, animation_id, user_id)
            assert animation.prompt == "Visualize the Fourier series"

    def test_requires_ownership(self, user_id) -> None:
        animation_id = create_animation(user_id)
        with get_session_context() as session:
            other = create_user(session, "grace", "grace@example.com", "hopper-1906").id

        with get_session_context() as session:
            with pytest.raises(AccessDeniedError):
                animation_service.regenerate_animation(session, animation_id, other)

    def test_rejected_without_generations(self, user_id) -> None:
        animation_id = create_animation(user_id)
        _set_remaining(user_id, 0)

        with get_session_context() as session:
            with pytest.raises(EntitlementError):
                animation_service.regenerate_animation(
                    session, animation_id, user_id, prompt="A brand new prompt here"
                )

        with get_session_context() as session:
            assert repository.get_animation(session, animation_id).prompt != (
                "A brand new prompt here"
            )

    def test_rejects_short_prompt(self, user_id) -> None:
        animation_id = create_animation(user_id)
        with get_session_context() as session:
            with pytest.raises(ValidationError):
                animation_service.regenerate_animation(session, animation_id, user_id, prompt="short")

    def test_unknown_animation(self, user_id) -> None:
        with get_session_context() as session:
            with pytest.raises(NotFoundError):
                animation_service.regenerate_animation(session, uuid4(), user_id)

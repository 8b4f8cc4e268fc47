"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Generator
from typing import Any
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

# Set test environment before importing app modules
_storage_dir = tempfile.mkdtemp(prefix="animation_engine_tests_")
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_BROKER_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_RESULT_BACKEND"] = "redis://localhost:6379/1"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LLM_PROVIDER"] = "stub"
os.environ["RENDERER_PROVIDER"] = "stub"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["VIDEO_OUTPUT_DIR"] = os.path.join(_storage_dir, "videos")
os.environ["MANIM_SCRIPTS_DIR"] = os.path.join(_storage_dir, "scripts")
os.environ["ENCRYPTION_MASTER_KEY"] = "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY="
for _key in ("OPENAI_API_KEY", "GOOGLE_API_KEY", "GROQ_API_KEY"):
    os.environ.pop(_key, None)


@pytest.fixture(autouse=True)
def db_tables() -> Generator[None, None, None]:
    """Create all tables before each test and drop them afterwards."""
    from animation_engine.db.models import Base
    from animation_engine.db.session import engine

    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="session")
def test_client() -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    from animation_engine.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def user_id() -> UUID:
    """A registered user with the default quota."""
    from animation_engine.db.session import get_session_context
    from animation_engine.services.users import create_user

    with get_session_context() as session:
        user = create_user(session, "ada", "ada@example.com", "correct-horse")
        return user.id


@pytest.fixture
def channel():
    """A notification channel with room for every event a test produces."""
    from animation_engine.services.notifications import NotificationChannel

    return NotificationChannel(queue_size=1000)


def create_animation(user_id: UUID, prompt: str = "Visualize the Pythagorean theorem", **kwargs: Any):
    """Create an animation project and return its id."""
    from animation_engine.db.session import get_session_context
    from animation_engine.services.animations import build_request, create_animation_project

    request = build_request(prompt=prompt, **kwargs)
    with get_session_context() as session:
        return create_animation_project(session, user_id, request).id


def drain(subscription) -> list[dict[str, Any]]:
    """Collect every message currently queued on a subscription."""
    messages = []
    while not subscription.queue.empty():
        messages.append(subscription.queue.get_nowait())
    return messages


class FakeBackends:
    """Scriptable generation backends for pipeline tests."""

    renderer_name = "fake"

    def __init__(
        self,
        script: str = "Scene 1: draw a right triangle",
        code: str = "class Pythagoras(Scene):\n    def construct(self):\n        pass\n",
        video_ref: str = "video_123",
        progress: tuple[int, ...] = (10, 50, 90),
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self.script = script
        self.code = code
        self.video_ref = video_ref
        self.progress = progress
        self.failures = failures or {}
        self.calls: list[tuple[str, tuple]] = []

    def _maybe_fail(self, name: str) -> None:
        if name in self.failures:
            raise self.failures[name]

    async def generate_script(self, prompt, config):
        self.calls.append(("generate_script", (prompt, config)))
        self._maybe_fail("generate_script")
        return self.script

    async def generate_code(self, prompt, script, duration_seconds, config):
        self.calls.append(("generate_code", (prompt, script, duration_seconds, config)))
        self._maybe_fail("generate_code")
        return self.code

    async def render_video(self, code, on_progress, output_name):
        self.calls.append(("render_video", (code, output_name)))
        for value in self.progress:
            on_progress(value)
        self._maybe_fail("render_video")
        return self.video_ref


@pytest.fixture
def fake_backends() -> FakeBackends:
    return FakeBackends()

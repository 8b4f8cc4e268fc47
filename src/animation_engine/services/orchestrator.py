"""Animation generation pipeline.

Drives one animation through script generation, code generation and
rendering, in that order. Each stage owns a GenerationTask row whose status
follows pending -> processing -> completed | failed, and every transition is
announced on the notification channel. The first failing stage aborts the
run; later stages stay pending.

``AnimationPipeline.run`` is the only entry point and never raises: callers
schedule it and forget about it.
"""

from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from animation_engine.db import repository
from animation_engine.db.session import get_session_context
from animation_engine.domain.enums import AIModel, AnimationStatus, TaskStatus, TaskType
from animation_engine.domain.events import (
    AnimationUpdateEvent,
    TaskProgressEvent,
    TaskUpdateEvent,
)
from animation_engine.domain.models import AnimationSnapshot, GenerationConfig
from animation_engine.exceptions import BackendError, InvalidTransitionError, NotFoundError
from animation_engine.logging import get_logger
from animation_engine.services.backends import GenerationBackends
from animation_engine.services.notifications import NotificationChannel
from animation_engine.services.users import resolve_generation_config

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]


class StageFailedError(Exception):
    """Raised inside a run when a stage has been recorded as failed."""

    def __init__(self, task_type: TaskType, error: str) -> None:
        super().__init__(error)
        self.task_type = task_type
        self.error = error


@dataclass
class _RunContext:
    animation_id: UUID
    ai_model: AIModel
    config: GenerationConfig | None = None
    last_progress: int | None = None
    current_stage: TaskType | None = None


class AnimationPipeline:
    """Runs the three generation stages for an animation."""

    def __init__(
        self,
        backends: GenerationBackends,
        channel: NotificationChannel,
        session_factory: SessionFactory = get_session_context,
    ) -> None:
        self.backends = backends
        self.channel = channel
        self.session_factory = session_factory

    async def run(self, animation_id: UUID, ai_model: AIModel) -> AnimationStatus | None:
        """Run every stage and record the outcome.

        Returns the final animation status, or None if the run did not start
        (unknown animation or model, stages not all pending) or was
        superseded by a regeneration. All errors are absorbed and logged.
        """
        log = logger.bind(animation_id=str(animation_id), ai_model=str(ai_model))

        try:
            ctx = _RunContext(animation_id=animation_id, ai_model=AIModel(ai_model))
        except ValueError as e:
            log.error("pipeline_rejected", error=str(e))
            return None

        try:
            with self.session_factory() as session:
                animation = repository.get_animation(session, animation_id)
                statuses = [t.status for t in repository.get_tasks(session, animation_id)]
                if len(statuses) != len(TaskType.ordered()) or any(
                    s != str(TaskStatus.PENDING) for s in statuses
                ):
                    log.warning("pipeline_not_started", task_statuses=statuses)
                    return None
                repository.set_animation_status(session, animation, AnimationStatus.PROCESSING)

            log.info("pipeline_started")
            for task_type in TaskType.ordered():
                await self._run_stage(ctx, task_type)

        except NotFoundError as e:
            log.error("pipeline_aborted", error=str(e))
            return None
        except InvalidTransitionError as e:
            # The tasks were reset under this run; the newer run owns them now
            log.warning("pipeline_superseded", error=str(e))
            return None
        except StageFailedError as e:
            log.warning("pipeline_failed", task_type=str(e.task_type), error=e.error)
            return self._finish(ctx, AnimationStatus.FAILED, e.error)
        except Exception as e:
            log.exception("pipeline_crashed", error=str(e))
            error = str(e) or e.__class__.__name__
            try:
                self._fail_current_stage(ctx, error)
                return self._finish(ctx, AnimationStatus.FAILED, error)
            except Exception:
                log.exception("pipeline_failure_not_recorded")
                return AnimationStatus.FAILED

        log.info("pipeline_completed")
        return self._finish(ctx, AnimationStatus.COMPLETED)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    async def _run_stage(self, ctx: _RunContext, task_type: TaskType) -> None:
        """Run one stage: mark processing, invoke its backend, record the outcome.

        Raises:
            StageFailedError: After the failure has been persisted and published.
        """
        ctx.current_stage = task_type
        with self.session_factory() as session:
            task = repository.get_task(session, ctx.animation_id, task_type)
            repository.set_task_status(session, task, TaskStatus.PROCESSING)
            task_id = task.id
            snapshot = repository.to_snapshot(repository.get_animation(session, ctx.animation_id))

        self._publish_task_update(ctx, task_id, task_type, TaskStatus.PROCESSING)
        logger.info(
            "stage_started",
            animation_id=str(ctx.animation_id),
            task_type=str(task_type),
        )

        try:
            output = await self._invoke(ctx, task_type, task_id, snapshot)
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.warning(
                "stage_failed",
                animation_id=str(ctx.animation_id),
                task_type=str(task_type),
                error=error,
                error_type=e.__class__.__name__,
            )
            with self.session_factory() as session:
                task = repository.get_task(session, ctx.animation_id, task_type)
                if task_type == TaskType.RENDERING and ctx.last_progress is not None:
                    task.progress = ctx.last_progress
                repository.set_task_status(session, task, TaskStatus.FAILED, error=error)
            self._publish_task_update(ctx, task_id, task_type, TaskStatus.FAILED, error=error)
            raise StageFailedError(task_type, error) from e

        with self.session_factory() as session:
            animation = repository.get_animation(session, ctx.animation_id)
            task = repository.get_task(session, ctx.animation_id, task_type)
            if task_type == TaskType.SCRIPT_GENERATION:
                animation.script = output
            elif task_type == TaskType.CODE_GENERATION:
                animation.manim_code = output
            else:
                animation.video_url = output
                task.progress = 100
            task.metadata_ = self._stage_metadata(ctx, task_type)
            repository.set_task_status(session, task, TaskStatus.COMPLETED)

        self._publish_task_update(
            ctx,
            task_id,
            task_type,
            TaskStatus.COMPLETED,
            video_url=output if task_type == TaskType.RENDERING else None,
        )
        logger.info(
            "stage_completed",
            animation_id=str(ctx.animation_id),
            task_type=str(task_type),
        )

    async def _invoke(
        self,
        ctx: _RunContext,
        task_type: TaskType,
        task_id: UUID,
        snapshot: AnimationSnapshot,
    ) -> str:
        """Call the backend for a stage and return its output."""
        if task_type == TaskType.SCRIPT_GENERATION:
            config = self._resolve_config(ctx, snapshot)
            return await self.backends.generate_script(snapshot.prompt, config)

        if task_type == TaskType.CODE_GENERATION:
            if not snapshot.script:
                raise BackendError("Cannot generate code: the animation has no script")
            config = self._resolve_config(ctx, snapshot)
            return await self.backends.generate_code(
                snapshot.prompt, snapshot.script, snapshot.duration, config
            )

        if not snapshot.code:
            raise BackendError("Cannot render: the animation has no code")

        def on_progress(progress: int) -> None:
            self._publish_progress(ctx, task_id, progress)

        return await self.backends.render_video(
            snapshot.code, on_progress, output_name=f"animation_{ctx.animation_id}"
        )

    def _resolve_config(self, ctx: _RunContext, snapshot: AnimationSnapshot) -> GenerationConfig:
        """Resolve credentials once per run."""
        if ctx.config is None:
            with self.session_factory() as session:
                ctx.config = resolve_generation_config(session, snapshot.owner_id, ctx.ai_model)
        return ctx.config

    def _stage_metadata(self, ctx: _RunContext, task_type: TaskType) -> dict[str, Any]:
        if task_type == TaskType.RENDERING:
            return {"provider": self.backends.renderer_name}
        return {"ai_model": str(ctx.ai_model)}

    # -------------------------------------------------------------------------
    # Outcome and notifications
    # -------------------------------------------------------------------------

    def _fail_current_stage(self, ctx: _RunContext, error: str) -> None:
        """Record a crash on the stage that was running, if it got that far."""
        if ctx.current_stage is None:
            return
        with self.session_factory() as session:
            task = repository.get_task(session, ctx.animation_id, ctx.current_stage)
            if task.status != str(TaskStatus.PROCESSING):
                return
            repository.set_task_status(session, task, TaskStatus.FAILED, error=error)
            task_id = task.id
        self._publish_task_update(ctx, task_id, ctx.current_stage, TaskStatus.FAILED, error=error)

    def _finish(
        self, ctx: _RunContext, status: AnimationStatus, error: str | None = None
    ) -> AnimationStatus:
        with self.session_factory() as session:
            animation = repository.get_animation(session, ctx.animation_id)
            repository.set_animation_status(session, animation, status)

        self.channel.publish(
            AnimationUpdateEvent(animation_id=ctx.animation_id, status=status, error=error)
        )
        return status

    def _publish_task_update(
        self,
        ctx: _RunContext,
        task_id: UUID,
        task_type: TaskType,
        status: TaskStatus,
        error: str | None = None,
        video_url: str | None = None,
    ) -> None:
        self.channel.publish(
            TaskUpdateEvent(
                animation_id=ctx.animation_id,
                task_id=task_id,
                task_type=task_type,
                status=status,
                error=error,
                video_url=video_url,
            )
        )

    def _publish_progress(self, ctx: _RunContext, task_id: UUID, progress: int) -> None:
        progress = max(0, min(100, int(progress)))
        ctx.last_progress = progress
        try:
            self.channel.publish(
                TaskProgressEvent(animation_id=ctx.animation_id, task_id=task_id, progress=progress)
            )
        except Exception as e:
            # Progress is best-effort; a bad report must not fail the render
            logger.debug("progress_publish_failed", error=str(e))

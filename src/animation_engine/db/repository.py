"""Record store operations for users, animations and generation tasks.

Functions take an open session and leave committing to the caller
(``get_session_context`` commits on exit).
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from animation_engine.db.models import AnimationModel, GenerationTaskModel, UserModel
from animation_engine.domain.enums import (
    TASK_TRANSITIONS,
    AIModel,
    AnimationStatus,
    TaskStatus,
    TaskType,
)
from animation_engine.domain.models import AnimationRequest, AnimationSnapshot
from animation_engine.exceptions import AccessDeniedError, InvalidTransitionError, NotFoundError


# =============================================================================
# Users
# =============================================================================


def get_user(session: Session, user_id: UUID) -> UserModel:
    user = session.get(UserModel, user_id)
    if user is None:
        raise NotFoundError(f"User not found: {user_id}")
    return user


def get_user_by_username(session: Session, username: str) -> UserModel | None:
    return session.execute(
        select(UserModel).where(UserModel.username == username)
    ).scalar_one_or_none()


def get_user_by_email(session: Session, email: str) -> UserModel | None:
    return session.execute(select(UserModel).where(UserModel.email == email)).scalar_one_or_none()


def decrement_generations(session: Session, user: UserModel) -> UserModel:
    """Consume one generation; the counter never drops below zero."""
    if user.generations_remaining > 0:
        user.generations_remaining -= 1
        session.flush()
    return user


# =============================================================================
# Animations
# =============================================================================


def create_animation(session: Session, user_id: UUID, request: AnimationRequest) -> AnimationModel:
    """Create an animation together with its three pending stage tasks."""
    animation = AnimationModel(
        user_id=user_id,
        prompt=request.prompt,
        title=request.title,
        ai_model=str(request.ai_model),
        duration=request.duration,
        status=str(AnimationStatus.PENDING),
    )
    session.add(animation)
    session.flush()

    for task_type in TaskType.ordered():
        session.add(
            GenerationTaskModel(
                animation_id=animation.id,
                task_type=str(task_type),
                status=str(TaskStatus.PENDING),
            )
        )
    session.flush()
    return animation


def get_animation(session: Session, animation_id: UUID) -> AnimationModel:
    animation = session.get(AnimationModel, animation_id)
    if animation is None:
        raise NotFoundError(f"Animation not found: {animation_id}")
    return animation


def get_owned_animation(session: Session, animation_id: UUID, user_id: UUID) -> AnimationModel:
    """Load an animation, requiring that ``user_id`` owns it."""
    animation = get_animation(session, animation_id)
    if animation.user_id != user_id:
        raise AccessDeniedError("You don't have access to this animation")
    return animation


def list_user_animations(
    session: Session, user_id: UUID, limit: int = 100, offset: int = 0
) -> list[AnimationModel]:
    """List a user's animations, newest first."""
    query = (
        select(AnimationModel)
        .where(AnimationModel.user_id == user_id)
        .order_by(AnimationModel.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(session.execute(query).scalars().all())


def set_animation_status(
    session: Session, animation: AnimationModel, status: AnimationStatus
) -> AnimationModel:
    animation.status = str(status)
    session.flush()
    return animation


def to_snapshot(animation: AnimationModel) -> AnimationSnapshot:
    return AnimationSnapshot(
        id=animation.id,
        owner_id=animation.user_id,
        prompt=animation.prompt,
        ai_model=AIModel(animation.ai_model),
        duration=animation.duration,
        status=AnimationStatus(animation.status),
        script=animation.script,
        code=animation.manim_code,
        video_url=animation.video_url,
    )


# =============================================================================
# Generation tasks
# =============================================================================


def get_tasks(session: Session, animation_id: UUID) -> list[GenerationTaskModel]:
    """All stage tasks of an animation in pipeline order."""
    tasks = (
        session.execute(
            select(GenerationTaskModel).where(GenerationTaskModel.animation_id == animation_id)
        )
        .scalars()
        .all()
    )
    return sorted(tasks, key=lambda t: TaskType(t.task_type).position)


def get_task(session: Session, animation_id: UUID, task_type: TaskType) -> GenerationTaskModel:
    task = session.execute(
        select(GenerationTaskModel).where(
            GenerationTaskModel.animation_id == animation_id,
            GenerationTaskModel.task_type == str(task_type),
        )
    ).scalar_one_or_none()
    if task is None:
        raise NotFoundError(f"{task_type} task not found for animation {animation_id}")
    return task


def set_task_status(
    session: Session,
    task: GenerationTaskModel,
    status: TaskStatus,
    error: str | None = None,
) -> GenerationTaskModel:
    """Move a task along its lifecycle, stamping start/completion times.

    Raises:
        InvalidTransitionError: If the lifecycle does not allow the change.
    """
    current = TaskStatus(task.status)
    if status not in TASK_TRANSITIONS[current]:
        raise InvalidTransitionError(current, status)

    now = datetime.now(UTC)
    task.status = str(status)
    if status == TaskStatus.PROCESSING:
        task.started_at = now
    elif status.is_terminal:
        task.completed_at = now
    if error is not None:
        task.error = error
    session.flush()
    return task


def reset_tasks(session: Session, animation_id: UUID) -> list[GenerationTaskModel]:
    """Return every stage task of an animation to pending for a new run."""
    tasks = get_tasks(session, animation_id)
    for task in tasks:
        task.status = str(TaskStatus.PENDING)
        task.error = None
        task.progress = None
        task.started_at = None
        task.completed_at = None
    session.flush()
    return tasks


def list_processing_tasks(
    session: Session, started_before: datetime | None = None
) -> list[GenerationTaskModel]:
    """Tasks stuck in processing, optionally only those started before a cutoff."""
    query = select(GenerationTaskModel).where(
        GenerationTaskModel.status == str(TaskStatus.PROCESSING)
    )
    if started_before is not None:
        query = query.where(GenerationTaskModel.started_at < started_before)
    return list(session.execute(query).scalars().all())

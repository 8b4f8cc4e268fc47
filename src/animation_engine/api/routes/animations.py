"""Animation endpoints.

Creating or regenerating an animation validates input, checks the user's
remaining generations, writes the records, and schedules the pipeline as a
background task. The response is returned before any stage runs; progress
arrives over the WebSocket and through later fetches.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, status
from pydantic import BaseModel, Field

from animation_engine.api.deps import CurrentUserDep, PipelineDep, SessionDep
from animation_engine.db import repository
from animation_engine.db.models import AnimationModel, GenerationTaskModel
from animation_engine.domain.enums import AIModel
from animation_engine.exceptions import (
    AccessDeniedError,
    EntitlementError,
    NotFoundError,
    ValidationError,
)
from animation_engine.logging import get_logger
from animation_engine.services import animations as animation_service

router = APIRouter(prefix="/animations", tags=["Animations"])
logger = get_logger(__name__)


class CreateAnimationRequest(BaseModel):
    """Request to create an animation."""

    prompt: str = Field(..., min_length=10, max_length=5000)
    title: str | None = Field(None, min_length=3, max_length=255)
    ai_model: AIModel = Field(default=AIModel.OPENAI)
    duration: int = Field(default=30, ge=5, le=60, description="Target length in seconds")


class RegenerateAnimationRequest(BaseModel):
    """Request to regenerate an animation, optionally with a new prompt."""

    prompt: str | None = Field(None, min_length=10, max_length=5000)


class TaskResponse(BaseModel):
    """Generation task response model."""

    id: str
    task_type: str
    status: str
    error: str | None
    progress: int | None
    metadata: dict[str, Any] | None
    created_at: datetime | None
    started_at: datetime | None
    completed_at: datetime | None


class AnimationResponse(BaseModel):
    """Animation response model."""

    id: str
    user_id: str
    prompt: str
    title: str
    ai_model: str
    duration: int
    status: str
    script: str | None
    manim_code: str | None
    video_url: str | None
    created_at: datetime | None
    updated_at: datetime | None
    tasks: list[TaskResponse] | None = None


def _task_to_response(task: GenerationTaskModel) -> TaskResponse:
    return TaskResponse(
        id=str(task.id),
        task_type=task.task_type,
        status=task.status,
        error=task.error,
        progress=task.progress,
        metadata=task.metadata_,
        created_at=task.created_at,
        started_at=task.started_at,
        completed_at=task.completed_at,
    )


def _model_to_response(
    animation: AnimationModel, tasks: list[GenerationTaskModel] | None = None
) -> AnimationResponse:
    return AnimationResponse(
        id=str(animation.id),
        user_id=str(animation.user_id),
        prompt=animation.prompt,
        title=animation.title,
        ai_model=animation.ai_model,
        duration=animation.duration,
        status=animation.status,
        script=animation.script,
        manim_code=animation.manim_code,
        video_url=animation.video_url,
        created_at=animation.created_at,
        updated_at=animation.updated_at,
        tasks=[_task_to_response(t) for t in tasks] if tasks is not None else None,
    )


@router.post(
    "",
    response_model=AnimationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create animation",
    description="Create an animation and start generating it in the background.",
)
async def create_animation(
    request: CreateAnimationRequest,
    user: CurrentUserDep,
    session: SessionDep,
    pipeline: PipelineDep,
    background_tasks: BackgroundTasks,
) -> AnimationResponse:
    try:
        animation_request = animation_service.build_request(
            prompt=request.prompt,
            ai_model=request.ai_model,
            duration=request.duration,
            title=request.title,
        )
        animation = animation_service.create_animation_project(session, user.id, animation_request)
        session.commit()
    except ValidationError as e:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except EntitlementError as e:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    background_tasks.add_task(pipeline.run, animation.id, animation_request.ai_model)

    return _model_to_response(animation, repository.get_tasks(session, animation.id))


@router.get(
    "",
    response_model=list[AnimationResponse],
    summary="List animations",
    description="List the current user's animations, newest first.",
)
async def list_animations(
    user: CurrentUserDep,
    session: SessionDep,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> list[AnimationResponse]:
    animations = repository.list_user_animations(session, user.id, limit=limit, offset=offset)
    return [_model_to_response(a) for a in animations]


@router.get(
    "/{animation_id}",
    response_model=AnimationResponse,
    summary="Get animation",
    description="Get an animation with its generation tasks in stage order.",
)
async def get_animation(
    animation_id: UUID, user: CurrentUserDep, session: SessionDep
) -> AnimationResponse:
    try:
        animation = repository.get_owned_animation(session, animation_id, user.id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Animation not found")
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    return _model_to_response(animation, repository.get_tasks(session, animation.id))


@router.post(
    "/{animation_id}/regenerate",
    response_model=AnimationResponse,
    summary="Regenerate animation",
    description="Reset all stages and run the pipeline again, optionally with a new prompt.",
)
async def regenerate_animation(
    animation_id: UUID,
    user: CurrentUserDep,
    session: SessionDep,
    pipeline: PipelineDep,
    background_tasks: BackgroundTasks,
    request: RegenerateAnimationRequest | None = None,
) -> AnimationResponse:
    try:
        animation = animation_service.regenerate_animation(
            session,
            animation_id,
            user.id,
            prompt=request.prompt if request else None,
        )
        session.commit()
    except NotFoundError:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Animation not found")
    except (AccessDeniedError, EntitlementError) as e:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValidationError as e:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    background_tasks.add_task(pipeline.run, animation.id, AIModel(animation.ai_model))

    return _model_to_response(animation, repository.get_tasks(session, animation.id))

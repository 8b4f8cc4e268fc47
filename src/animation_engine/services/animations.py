"""Animation project creation and regeneration.

Both operations check the user's remaining generations, mutate records and
consume one generation. Scheduling the pipeline run is left to the caller.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from animation_engine.db import repository
from animation_engine.db.models import AnimationModel, UserModel
from animation_engine.domain.enums import AIModel, AnimationStatus
from animation_engine.domain.models import AnimationRequest
from animation_engine.exceptions import EntitlementError, ValidationError
from animation_engine.logging import get_logger

logger = get_logger(__name__)

MIN_PROMPT_LENGTH = 10
MIN_TITLE_LENGTH = 3
MIN_DURATION = 5
MAX_DURATION = 60

ENTITLEMENT_MESSAGE = "You have reached your animation generation limit"


def default_title() -> str:
    return f"Animation {datetime.now(UTC).strftime('%Y-%m-%d %H:%M:%S')}"


def build_request(
    prompt: str,
    ai_model: AIModel | str = AIModel.OPENAI,
    duration: int = 30,
    title: str | None = None,
) -> AnimationRequest:
    """Validate raw input into an AnimationRequest.

    Raises:
        ValidationError: If any field is out of range.
    """
    prompt = prompt.strip()
    if len(prompt) < MIN_PROMPT_LENGTH:
        raise ValidationError(f"Prompt must be at least {MIN_PROMPT_LENGTH} characters")

    if title is None or not title.strip():
        title = default_title()
    elif len(title.strip()) < MIN_TITLE_LENGTH:
        raise ValidationError(f"Title must be at least {MIN_TITLE_LENGTH} characters")

    try:
        model = AIModel(ai_model)
    except ValueError as e:
        raise ValidationError(f"Unknown AI model: {ai_model}") from e

    if not MIN_DURATION <= duration <= MAX_DURATION:
        raise ValidationError(
            f"Duration must be between {MIN_DURATION} and {MAX_DURATION} seconds"
        )

    return AnimationRequest(prompt=prompt, title=title.strip(), ai_model=model, duration=duration)


def check_entitlement(user: UserModel) -> None:
    """Raises EntitlementError when the user has no generations left."""
    if user.generations_remaining <= 0:
        raise EntitlementError(ENTITLEMENT_MESSAGE)


def create_animation_project(
    session: Session, user_id: UUID, request: AnimationRequest
) -> AnimationModel:
    """Create an animation with its three pending tasks and consume a generation.

    Raises:
        NotFoundError: If the user does not exist.
        EntitlementError: If the user has no generations left. Nothing is written.
    """
    user = repository.get_user(session, user_id)
    check_entitlement(user)

    animation = repository.create_animation(session, user.id, request)
    repository.decrement_generations(session, user)

    logger.info(
        "animation_created",
        animation_id=str(animation.id),
        user_id=str(user.id),
        ai_model=str(request.ai_model),
        duration=request.duration,
        generations_remaining=user.generations_remaining,
    )
    return animation


def regenerate_animation(
    session: Session,
    animation_id: UUID,
    user_id: UUID,
    prompt: str | None = None,
) -> AnimationModel:
    """Reset an animation and its tasks for a new run.

    Previous script, code and video reference are kept until the new run
    overwrites them.

    Raises:
        NotFoundError: If the animation does not exist.
        AccessDeniedError: If ``user_id`` does not own it.
        ValidationError: If the new prompt is too short.
        EntitlementError: If the user has no generations left.
    """
    animation = repository.get_owned_animation(session, animation_id, user_id)
    user = repository.get_user(session, user_id)

    if prompt is not None:
        prompt = prompt.strip()
        if len(prompt) < MIN_PROMPT_LENGTH:
            raise ValidationError(f"Prompt must be at least {MIN_PROMPT_LENGTH} characters")

    check_entitlement(user)

    if animation.status == str(AnimationStatus.PROCESSING):
        # Runs are not cancellable; the old run keeps writing to the same rows
        logger.warning("animation_regenerated_while_processing", animation_id=str(animation.id))

    if prompt:
        animation.prompt = prompt
    repository.set_animation_status(session, animation, AnimationStatus.PENDING)
    repository.reset_tasks(session, animation.id)
    repository.decrement_generations(session, user)

    logger.info(
        "animation_regenerated",
        animation_id=str(animation.id),
        prompt_changed=bool(prompt),
        generations_remaining=user.generations_remaining,
    )
    return animation

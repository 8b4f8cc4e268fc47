"""Per-user generation settings endpoints.

Stored API keys are write-only: responses carry a mask for keys that are set.
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from animation_engine.api.deps import CurrentUserDep, SessionDep
from animation_engine.domain.enums import AIModel
from animation_engine.exceptions import EncryptionError
from animation_engine.logging import get_logger
from animation_engine.services import users as user_service
from animation_engine.services.users import MaskedUserSettings

router = APIRouter(prefix="/settings", tags=["Settings"])
logger = get_logger(__name__)


class UpdateSettingsRequest(BaseModel):
    """Request to update settings.

    Omitted keys are left unchanged; an empty string removes a stored key.
    """

    default_ai_model: AIModel | None = None
    openai_api_key: str | None = Field(None, max_length=512)
    google_api_key: str | None = Field(None, max_length=512)
    groq_api_key: str | None = Field(None, max_length=512)


class SettingsResponse(BaseModel):
    """Settings response model with masked keys."""

    user_id: str
    default_ai_model: AIModel
    openai_api_key: str | None
    google_api_key: str | None
    groq_api_key: str | None


def _to_response(view: MaskedUserSettings) -> SettingsResponse:
    return SettingsResponse(
        user_id=str(view.user_id),
        default_ai_model=view.default_ai_model,
        openai_api_key=view.openai_api_key,
        google_api_key=view.google_api_key,
        groq_api_key=view.groq_api_key,
    )


@router.get(
    "",
    response_model=SettingsResponse,
    summary="Get settings",
    description="Get the current user's default model and which API keys are stored.",
)
async def get_settings(user: CurrentUserDep, session: SessionDep) -> SettingsResponse:
    return _to_response(user_service.get_user_settings(session, user.id))


@router.post(
    "",
    response_model=SettingsResponse,
    summary="Update settings",
    description="Update the default model and store or remove API keys.",
)
async def update_settings(
    request: UpdateSettingsRequest, user: CurrentUserDep, session: SessionDep
) -> SettingsResponse:
    try:
        view = user_service.update_user_settings(
            session,
            user.id,
            default_ai_model=request.default_ai_model,
            api_keys={
                AIModel.OPENAI: request.openai_api_key,
                AIModel.GEMINI: request.google_api_key,
                AIModel.GROQ: request.groq_api_key,
            },
        )
        session.commit()
    except EncryptionError as e:
        session.rollback()
        logger.error("settings_encryption_failed", user_id=str(user.id), error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store API key",
        )

    return _to_response(view)

"""User registration and profile endpoints."""

from datetime import datetime

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, EmailStr, Field

from animation_engine.api.deps import CurrentUserDep, SessionDep
from animation_engine.db.models import UserModel
from animation_engine.exceptions import ValidationError
from animation_engine.logging import get_logger
from animation_engine.services import users as user_service

router = APIRouter(prefix="/users", tags=["Users"])
logger = get_logger(__name__)


class CreateUserRequest(BaseModel):
    """Request to register a user."""

    username: str = Field(..., min_length=3, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=255)


class LoginRequest(BaseModel):
    """Username and password check."""

    username: str
    password: str


class UserResponse(BaseModel):
    """User response model; never includes the password hash."""

    id: str
    username: str
    email: str
    generations_remaining: int
    created_at: datetime | None


def _model_to_response(user: UserModel) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        username=user.username,
        email=user.email,
        generations_remaining=user.generations_remaining,
        created_at=user.created_at,
    )


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register user",
    description="Create a user with the default generation quota.",
)
async def create_user(request: CreateUserRequest, session: SessionDep) -> UserResponse:
    try:
        user = user_service.create_user(
            session, request.username, str(request.email), request.password
        )
        session.commit()
        session.refresh(user)
    except ValidationError as e:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return _model_to_response(user)


@router.post(
    "/login",
    response_model=UserResponse,
    summary="Log in",
    description="Check credentials and return the user whose id the session provider sends as X-User-Id.",
)
async def login(request: LoginRequest, session: SessionDep) -> UserResponse:
    user = user_service.authenticate_user(session, request.username, request.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password"
        )
    return _model_to_response(user)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
    description="Profile of the authenticated user, including remaining generations.",
)
async def get_me(user: CurrentUserDep) -> UserResponse:
    return _model_to_response(user)

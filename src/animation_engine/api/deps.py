"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, WebSocket, status
from sqlalchemy.orm import Session

from animation_engine.db.models import UserModel
from animation_engine.db.session import get_session
from animation_engine.services.notifications import NotificationChannel
from animation_engine.services.orchestrator import AnimationPipeline

# Database session dependency
SessionDep = Annotated[Session, Depends(get_session)]


def get_current_user(
    session: SessionDep,
    x_user_id: Annotated[str | None, Header()] = None,
) -> UserModel:
    """Resolve the caller from the X-User-Id header set by the session provider."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user = session.get(UserModel, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


CurrentUserDep = Annotated[UserModel, Depends(get_current_user)]


def get_channel(request: Request) -> NotificationChannel:
    """Get the process-wide notification channel."""
    return request.app.state.channel


def get_ws_channel(websocket: WebSocket) -> NotificationChannel:
    return websocket.app.state.channel


def get_pipeline(request: Request) -> AnimationPipeline:
    """Get the pipeline that runs scheduled generations."""
    return request.app.state.pipeline


ChannelDep = Annotated[NotificationChannel, Depends(get_channel)]
WebSocketChannelDep = Annotated[NotificationChannel, Depends(get_ws_channel)]
PipelineDep = Annotated[AnimationPipeline, Depends(get_pipeline)]

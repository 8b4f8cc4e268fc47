"""Database layer."""

from animation_engine.db.models import (
    AnimationModel,
    Base,
    GenerationTaskModel,
    UserModel,
    UserSettingsModel,
)
from animation_engine.db.session import get_session, get_session_context, init_db

__all__ = [
    "Base",
    "get_session",
    "get_session_context",
    "init_db",
    # Models
    "AnimationModel",
    "GenerationTaskModel",
    "UserModel",
    "UserSettingsModel",
]

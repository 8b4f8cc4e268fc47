"""API route modules."""

from animation_engine.api.routes import (
    animations,
    health,
    user_settings,
    users,
    videos,
    ws,
)

__all__ = ["animations", "health", "user_settings", "users", "videos", "ws"]

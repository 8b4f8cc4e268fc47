"""Domain models and business logic."""

from animation_engine.domain.enums import (
    TASK_TRANSITIONS,
    AIModel,
    AnimationStatus,
    EventType,
    TaskStatus,
    TaskType,
)
from animation_engine.domain.events import (
    AnimationUpdateEvent,
    NotificationEvent,
    TaskProgressEvent,
    TaskUpdateEvent,
)
from animation_engine.domain.models import (
    AnimationRequest,
    AnimationSnapshot,
    BackendCredentials,
    GenerationConfig,
)

__all__ = [
    "AIModel",
    "AnimationRequest",
    "AnimationSnapshot",
    "AnimationStatus",
    "AnimationUpdateEvent",
    "BackendCredentials",
    "EventType",
    "GenerationConfig",
    "NotificationEvent",
    "TASK_TRANSITIONS",
    "TaskProgressEvent",
    "TaskStatus",
    "TaskType",
    "TaskUpdateEvent",
]

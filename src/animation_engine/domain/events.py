"""Notification events pushed to connected clients.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from animation_engine.domain.enums import AnimationStatus, EventType, TaskStatus, TaskType


class NotificationEvent(BaseModel):
    """Base class for all notification events."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: EventType
    animation_id: UUID

    def to_message(self) -> dict[str, Any]:
        """Serialize to the JSON wire format, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TaskUpdateEvent(NotificationEvent):
    """A pipeline stage changed status."""

    type: Literal[EventType.TASK_UPDATE] = EventType.TASK_UPDATE
    task_id: UUID
    task_type: TaskType
    status: TaskStatus
    error: str | None = None
    video_url: str | None = None


class TaskProgressEvent(NotificationEvent):
    """Rendering progress report (best-effort, last value wins)."""

    type: Literal[EventType.TASK_PROGRESS] = EventType.TASK_PROGRESS
    task_id: UUID
    task_type: Literal[TaskType.RENDERING] = TaskType.RENDERING
    progress: int = Field(ge=0, le=100)


class AnimationUpdateEvent(NotificationEvent):
    """The animation reached a terminal status."""

    type: Literal[EventType.ANIMATION_UPDATE] = EventType.ANIMATION_UPDATE
    status: AnimationStatus
    error: str | None = None

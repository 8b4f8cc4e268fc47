"""Domain enumerations."""

from enum import StrEnum


class AnimationStatus(StrEnum):
    """Overall status of an animation's generation run."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskStatus(StrEnum):
    """Status of a single pipeline stage."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class TaskType(StrEnum):
    """Pipeline stages, declared in execution order."""

    SCRIPT_GENERATION = "script_generation"
    CODE_GENERATION = "code_generation"
    RENDERING = "rendering"

    @classmethod
    def ordered(cls) -> list["TaskType"]:
        """Stages in the order the pipeline runs them."""
        return list(cls)

    @property
    def position(self) -> int:
        return TaskType.ordered().index(self)


class AIModel(StrEnum):
    """Text generation backends a user can choose from."""

    OPENAI = "openai"
    GEMINI = "gemini"
    GROQ = "groq"


class EventType(StrEnum):
    """Notification message types."""

    TASK_UPDATE = "task_update"
    TASK_PROGRESS = "task_progress"
    ANIMATION_UPDATE = "animation_update"


# Allowed task status changes; any status may be reset to pending by a regeneration.
TASK_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.PROCESSING},
    TaskStatus.PROCESSING: {TaskStatus.COMPLETED, TaskStatus.FAILED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.FAILED: set(),
}

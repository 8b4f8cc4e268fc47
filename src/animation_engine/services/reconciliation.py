"""Reconciliation of tasks abandoned by a dead or stuck run.

Runs live in the API process, so a restart leaves their tasks in
``processing`` forever. These helpers fail such tasks (and their
animations) so clients see a final state and can regenerate.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from animation_engine.db import repository
from animation_engine.domain.enums import AnimationStatus, TaskStatus
from animation_engine.logging import get_logger

logger = get_logger(__name__)

RESTART_ERROR = "Interrupted by service restart"
TIMEOUT_ERROR = "Timed out"


@dataclass
class ReconcileResult:
    """Tasks and animations marked failed by a sweep."""

    task_ids: list[UUID] = field(default_factory=list)
    animation_ids: list[UUID] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.task_ids)


def fail_processing_tasks(
    session: Session,
    error: str,
    started_before: datetime | None = None,
) -> ReconcileResult:
    """Mark processing tasks failed, along with their animations."""
    result = ReconcileResult()

    for task in repository.list_processing_tasks(session, started_before=started_before):
        repository.set_task_status(session, task, TaskStatus.FAILED, error=error)
        result.task_ids.append(task.id)

        animation = repository.get_animation(session, task.animation_id)
        if animation.status != str(AnimationStatus.FAILED):
            repository.set_animation_status(session, animation, AnimationStatus.FAILED)
        if animation.id not in result.animation_ids:
            result.animation_ids.append(animation.id)

    if result.count:
        logger.warning(
            "stale_tasks_failed",
            error=error,
            task_count=result.count,
            animation_count=len(result.animation_ids),
        )
    return result


def reconcile_interrupted_tasks(session: Session) -> ReconcileResult:
    """Fail every processing task; used at startup before any run can exist."""
    return fail_processing_tasks(session, RESTART_ERROR)


def reconcile_stale_tasks(session: Session, timeout_seconds: int) -> ReconcileResult:
    """Fail tasks that have been processing for longer than ``timeout_seconds``."""
    cutoff = datetime.now(UTC) - timedelta(seconds=timeout_seconds)
    return fail_processing_tasks(session, TIMEOUT_ERROR, started_before=cutoff)

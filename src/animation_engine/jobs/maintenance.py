"""Periodic maintenance tasks."""

from typing import Any

from animation_engine.config import settings
from animation_engine.db.session import get_session_context
from animation_engine.logging import get_logger
from animation_engine.services.reconciliation import reconcile_stale_tasks
from animation_engine.worker import celery_app

logger = get_logger(__name__)


@celery_app.task(
    bind=True,
    name="maintenance.reconcile_stale_tasks",
    max_retries=2,
    default_retry_delay=60,
)
def reconcile_stale_tasks_task(self: Any, timeout_seconds: int | None = None) -> dict[str, Any]:
    """Fail generation tasks stuck in processing.

    Args:
        timeout_seconds: Age after which a processing task counts as stale
            (defaults to STALE_TASK_TIMEOUT_SECONDS)

    Returns:
        Dictionary with the failed task and animation IDs
    """
    task_id = self.request.id
    timeout = timeout_seconds or settings.stale_task_timeout_seconds
    logger.info("reconcile_stale_tasks_started", task_id=task_id, timeout_seconds=timeout)

    try:
        with get_session_context() as session:
            result = reconcile_stale_tasks(session, timeout)
    except Exception as e:
        logger.error("reconcile_stale_tasks_error", task_id=task_id, error=str(e))
        raise self.retry(exc=e)

    logger.info(
        "reconcile_stale_tasks_completed",
        task_id=task_id,
        failed_tasks=result.count,
    )
    return {
        "success": True,
        "failed_task_ids": [str(i) for i in result.task_ids],
        "failed_animation_ids": [str(i) for i in result.animation_ids],
    }

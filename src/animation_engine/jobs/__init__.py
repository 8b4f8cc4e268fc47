"""Celery job definitions."""

from animation_engine.jobs.maintenance import reconcile_stale_tasks_task

__all__ = [
    "reconcile_stale_tasks_task",
]

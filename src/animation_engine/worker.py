"""Celery worker configuration.

Generation runs happen inside the API process; the worker only runs
periodic maintenance.
"""

from celery import Celery

from animation_engine.config import settings
from animation_engine.logging import setup_logging

# Setup logging before anything else
setup_logging()

# Create Celery app
celery_app = Celery(
    "animation_engine",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,
    task_soft_time_limit=240,
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=1,
    # Result backend
    result_expires=86400,  # 24 hours
    task_routes={
        "maintenance.reconcile_stale_tasks": {"queue": "low"},
    },
    # Beat scheduler (for periodic tasks)
    beat_schedule={
        "reconcile-stale-tasks": {
            "task": "maintenance.reconcile_stale_tasks",
            "schedule": settings.reconcile_interval_seconds,
            "args": (),
            "options": {"queue": "low"},
        },
    },
)

# Auto-discover tasks
celery_app.autodiscover_tasks(["animation_engine.jobs"])

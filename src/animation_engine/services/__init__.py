"""Application services."""

from animation_engine.services.backends import GenerationBackends
from animation_engine.services.notifications import NotificationChannel, Subscription
from animation_engine.services.orchestrator import AnimationPipeline
from animation_engine.services.reconciliation import ReconcileResult

__all__ = [
    "AnimationPipeline",
    "GenerationBackends",
    "NotificationChannel",
    "ReconcileResult",
    "Subscription",
]

"""Health check endpoints."""

import redis
from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text

from animation_engine.api.deps import ChannelDep, PipelineDep
from animation_engine.config import settings
from animation_engine.logging import get_logger
from animation_engine.services.users import default_credentials

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    components: dict[str, bool] | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    database: bool
    redis: bool
    renderer: bool
    llm: dict[str, bool]
    subscribers: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Basic health check endpoint that verifies the API is running.",
)
async def health_check() -> HealthResponse:
    """Basic health check - is the API up?

    Reports which providers are real (not stubbed).
    """
    from animation_engine import __version__

    components = {
        "llm": settings.llm_provider,
        "renderer": settings.renderer_provider,
    }

    return HealthResponse(
        status="healthy",
        version=__version__,
        components={k: v != "stub" for k, v in components.items()},
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Verifies the database and the renderer; reports Redis and text backends.",
)
async def readiness_check(pipeline: PipelineDep, channel: ChannelDep) -> ReadinessResponse:
    """Readiness check including dependencies."""
    database_ok = False
    try:
        from animation_engine.db.session import engine

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            database_ok = True
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))

    # Redis only backs the maintenance worker; it does not gate readiness
    redis_ok = False
    try:
        r = redis.from_url(settings.redis_url)
        r.ping()
        redis_ok = True
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))

    renderer_ok = await pipeline.backends.renderer.health_check()
    # Reported per model; text backends are optional per user
    llm_ok = await pipeline.backends.check_llm_health(default_credentials())

    return ReadinessResponse(
        ready=database_ok and renderer_ok,
        database=database_ok,
        redis=redis_ok,
        renderer=renderer_ok,
        llm=llm_ok,
        subscribers=channel.subscriber_count,
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
    description="Simple liveness check for Kubernetes.",
)
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness check: is the process alive?"""
    return {"status": "alive"}

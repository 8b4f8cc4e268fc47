"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from animation_engine import __version__
from animation_engine.api.routes import animations, health, user_settings, users, videos, ws
from animation_engine.config import settings
from animation_engine.db.session import get_session_context, init_db
from animation_engine.logging import get_logger, setup_logging
from animation_engine.services.backends import GenerationBackends
from animation_engine.services.notifications import NotificationChannel
from animation_engine.services.orchestrator import AnimationPipeline
from animation_engine.services.reconciliation import reconcile_interrupted_tasks

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("application_starting", version=__version__)

    database_ok = False
    try:
        init_db(create_tables=settings.create_tables_on_startup)
        logger.info("database_connected")
        database_ok = True
    except Exception as e:
        logger.error("database_connection_failed", error=str(e))
        # Don't raise - let health checks report the issue

    if database_ok:
        # Runs from a previous process can never finish
        try:
            with get_session_context() as session:
                result = reconcile_interrupted_tasks(session)
            if result.count:
                logger.warning("interrupted_tasks_reconciled", task_count=result.count)
        except Exception as e:
            logger.error("interrupted_tasks_reconcile_failed", error=str(e))

    settings.video_output_dir.mkdir(parents=True, exist_ok=True)

    channel = NotificationChannel()
    app.state.channel = channel
    app.state.pipeline = AnimationPipeline(GenerationBackends(), channel)

    yield

    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="AI Animation Engine",
    description="Prompt-to-Manim mathematical animation generation service",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health.router)
app.include_router(ws.router)
app.include_router(users.router, prefix="/api/v1")
app.include_router(animations.router, prefix="/api/v1")
app.include_router(user_settings.router, prefix="/api/v1")
app.include_router(videos.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint redirect to docs."""
    return {
        "name": "AI Animation Engine",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "animation_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )

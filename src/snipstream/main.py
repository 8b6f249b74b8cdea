"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from snipstream.achievements.catalog import get_catalog
from snipstream.achievements.router import router as achievements_router
from snipstream.config import get_settings
from snipstream.database import close_db, init_db
from snipstream.health.router import router as health_router
from snipstream.middleware import setup_middleware
from snipstream.notifications.router import router as notifications_router
from snipstream.realtime.hub import NotificationHub
from snipstream.redis_client import close_redis, init_redis

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Fail fast on a broken catalog override
    catalog = get_catalog()
    logger.info("catalog_loaded", achievements=len(catalog))

    yield

    # Close live streams before the pools go away
    closed = app.state.hub.drain()
    logger.info("shutdown", sse_connections_closed=closed)

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Snipstream API",
        description="Notifications and achievement progress for the snippet-sharing platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.hub = NotificationHub(
        queue_size=settings.sse_queue_size,
        max_connections_per_user=settings.sse_max_connections_per_user,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(notifications_router)
    app.include_router(achievements_router)

    return app


app = create_app()

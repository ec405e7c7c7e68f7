"""
FastAPI application for the Vent Moderator service.

Serves the liveness endpoints used by the hosting platform and runs the
Telegram polling worker as a background task for the lifetime of the app.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from vent_moderator.bot.runner import PollingRunner, create_runner
from vent_moderator.config.settings import settings
from vent_moderator.core.errors import VentModeratorError
from vent_moderator.utils.db_health import check_db_connection
from vent_moderator.utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)

# Global polling runner and its background task
runner: Optional[PollingRunner] = None
polling_task: Optional[asyncio.Task] = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Builds the bot and starts polling on startup; cancels polling and closes
    the Telegram client on shutdown. A bot that cannot be built leaves the
    HTTP endpoints up and reports itself as disabled on /health.
    """
    global runner, polling_task

    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        runner = await create_runner()
    except VentModeratorError as e:
        logger.error(f"Bot not started: {e.message}")
        runner = None

    if runner:
        polling_task = asyncio.create_task(runner.run_forever())
        logger.info("Background polling task created")

    yield

    logger.info("Shutting down application")
    if polling_task:
        polling_task.cancel()
        try:
            await polling_task
        except asyncio.CancelledError:
            logger.info("Polling task cancelled successfully")
        polling_task = None
    if runner:
        await runner.client.close()
        runner = None


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Anonymous vent moderation bot: liveness and health endpoints.",
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_tags=[{"name": "health", "description": "Health check and monitoring"}],
    )

    @app.get("/", tags=["health"], response_class=PlainTextResponse, summary="Liveness")
    async def root() -> str:
        return "Vent bot is alive!"

    @app.get("/health", tags=["health"], summary="Health Check")
    async def health_check():
        """
        Health status of the service and its dependencies.

        Returns:
            dict: Overall status, database reachability and whether the
                polling worker is running.
        """
        db_ok = await check_db_connection()
        polling = polling_task is not None and not polling_task.done()
        return {
            "status": "healthy" if db_ok else "degraded",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "ok" if db_ok else "unreachable",
            "bot": "polling" if polling else "disabled",
        }

    return app


# Create the application instance
app = create_app()

"""Command-line interface for the Vent Moderator service."""

import asyncio
import logging
import sys

import typer
from typing_extensions import Annotated

from vent_moderator.config.settings import settings
from vent_moderator.core.errors import VentModeratorError
from vent_moderator.models import Base
from vent_moderator.utils.db_health import check_db_connection
from vent_moderator.utils.db_session import get_async_engine
from vent_moderator.utils.logging_utils import setup_logging

app = typer.Typer(help="Vent Moderator - anonymous vent bot with admin review")
logger = logging.getLogger(__name__)


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option("--host", help="Interface to bind")] = settings.API_HOST,
    port: Annotated[int, typer.Option("--port", "-p", help="Port to listen on")] = settings.API_PORT,
) -> None:
    """Run the HTTP health endpoints with the bot polling in the background."""
    import uvicorn

    uvicorn.run("vent_moderator.api.main:app", host=host, port=port, log_config=None)


@app.command("poll")
def poll() -> None:
    """Run the bot's polling loop without the HTTP server."""
    setup_logging()
    try:
        asyncio.run(_poll())
    except VentModeratorError as e:
        logger.error(f"Bot not started: {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")


async def _poll() -> None:
    from vent_moderator.bot.runner import create_runner

    runner = await create_runner()
    try:
        await runner.run_forever()
    finally:
        await runner.client.close()


@app.command("init-db")
def init_db() -> None:
    """Create any missing tables. Prefer `alembic upgrade head` for managed databases."""
    setup_logging()
    asyncio.run(_create_tables())
    logger.info("✓ Database tables are in place")


async def _create_tables() -> None:
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


@app.command("check-db")
def check_db() -> None:
    """Test the database connection."""
    setup_logging()
    if not asyncio.run(check_db_connection()):
        logger.error("Connection failed! Check the DB_* settings and connectivity.")
        sys.exit(1)
    logger.info("✓ Connected to the database successfully")


if __name__ == "__main__":
    app()

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from functools import lru_cache

from vent_moderator.config.settings import settings


def _connect_args(database_url: str) -> dict:
    # asyncpg bounds every statement; other drivers keep their own defaults
    if database_url.startswith("postgresql+asyncpg"):
        return {"command_timeout": settings.DB_COMMAND_TIMEOUT_SECONDS}
    return {}


@lru_cache
def get_async_engine() -> AsyncEngine:
    """Returns a cached instance of the async engine."""
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_pre_ping=True,
        pool_recycle=3600,
        connect_args=_connect_args(settings.DATABASE_URL),
    )


@lru_cache
def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Returns a cached instance of the async session factory."""
    return async_sessionmaker(
        bind=get_async_engine(),
        autoflush=False,
        expire_on_commit=False,
        class_=AsyncSession,
    )

"""Database connection and session management for the metadata store."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from report_collector.config import Settings, get_settings


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def build_engine(settings: Settings) -> AsyncEngine:
    """Create an async engine, with pooling for server databases."""
    engine_kwargs = {
        "echo": settings.debug,
        "future": True,
    }

    # SQLite ignores pool sizing
    if not settings.database_url.startswith("sqlite"):
        engine_kwargs.update(
            {
                "pool_size": settings.db_pool_size,
                "max_overflow": settings.db_max_overflow,
                "pool_timeout": settings.db_pool_timeout,
                "pool_recycle": settings.db_pool_recycle,
                "pool_pre_ping": settings.db_pool_pre_ping,
            }
        )

    return create_async_engine(settings.database_url, **engine_kwargs)


settings = get_settings()

engine = build_engine(settings)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db() -> None:
    """Create tables directly, for runs with SKIP_ALEMBIC_MIGRATIONS set.

    In production, use Alembic migrations instead (alembic upgrade head).
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connection."""
    await engine.dispose()


# Import all models to register them with Base.metadata
import report_collector.models  # noqa: F401, E402

"""ClaimGuard Database Configuration - Async SQLAlchemy."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from claimguard.core.config import Settings, settings
from claimguard.core.logging import get_logger

logger = get_logger("database")


def engine_options(config: Settings) -> dict[str, Any]:
    """Build create_async_engine() keyword arguments for the configured backend.

    SQLite pools reject the sizing arguments, so they are only passed for
    server databases.
    """
    options: dict[str, Any] = {
        "echo": config.debug and config.log_level.upper() == "DEBUG",
    }
    if not config.is_sqlite:
        options.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_timeout=config.db_pool_timeout,
            pool_recycle=config.db_pool_recycle,
            pool_pre_ping=True,
        )
    return options


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory handed to the claim token services."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = create_async_engine(settings.database_url, **engine_options(settings))

async_session_maker = create_session_factory(engine)

# Base class for models
Base = declarative_base()


async def check_db_connection(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> bool:
    """Check if database is reachable."""
    factory = session_factory or async_session_maker
    try:
        async with factory() as session:
            await session.execute(text("SELECT 1"))
            return True
    except (OSError, ConnectionError) as e:
        logger.debug(f"Database connection check failed: {e}")
        return False
    except Exception as e:
        logger.warning(f"Unexpected error checking database connection: {e}")
        return False

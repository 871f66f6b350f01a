"""Database connection and session management."""
import logging
from typing import Any

from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from karbarg.config import Settings, get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _engine_options(config: Settings) -> dict[str, Any]:
    """Engine keyword arguments for the configured backend.

    SQLite runs on a single-connection pool, so pool sizing and SSL only
    apply to server databases. Production keeps the pool small to stay
    inside managed-database connection caps.
    """
    options: dict[str, Any] = {
        "echo": config.environment == "development",
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }
    if make_url(config.database_url).drivername.startswith("sqlite"):
        return options

    pool_size = max(1, config.db_pool_size)
    max_overflow = max(0, config.db_max_overflow)
    if config.environment == "production":
        pool_size = min(pool_size, 2)
        max_overflow = min(max_overflow, 2)
    options.update(pool_size=pool_size, max_overflow=max_overflow)

    if config.environment == "production" or "amazonaws" in config.database_url:
        options["connect_args"] = {"ssl": "require"}
        logger.debug("SSL connection enabled (ssl=require)")
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """FastAPI dependency yielding one session per request."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

"""
Async database connection using asyncpg (NO ORM).

Services receive an ``asyncpg.Connection`` and run raw SQL. Ballot
submission and nomination review open their own transaction on that
connection; everything else runs in autocommit.
"""

from typing import AsyncGenerator

import asyncpg

from app.core.config import Settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)

# Global connection pool
_pool: asyncpg.Pool | None = None


async def init_db_pool(settings: Settings):
    """
    Initialize database connection pool on startup.

    Uses the restricted application role when ``DATABASE_URL_APP`` is set,
    the migration role otherwise.
    """
    global _pool
    _pool = await asyncpg.create_pool(
        dsn=settings.DATABASE_URL_APP or settings.DATABASE_URL,
        min_size=settings.DB_POOL_MIN_SIZE,
        max_size=settings.DB_POOL_MAX_SIZE,
        max_inactive_connection_lifetime=300,  # Close idle connections after 5 minutes
        timeout=30,
        command_timeout=settings.DB_COMMAND_TIMEOUT,
    )
    logger.info(
        f"Database pool initialized: {_pool.get_size()} / {_pool.get_max_size()} connections"
    )


async def close_db_pool():
    """Close database connection pool on shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool | None:
    return _pool


async def get_db() -> AsyncGenerator[asyncpg.Connection, None]:
    """
    FastAPI dependency for database connections.

    Usage in routes:
        @router.get("/zones")
        async def get_zones(conn: asyncpg.Connection = Depends(get_db)):
            return await list_zones(conn)
    """
    if not _pool:
        raise RuntimeError("Database pool not initialized. Call init_db_pool() first.")

    async with _pool.acquire() as connection:
        yield connection

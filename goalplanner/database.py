"""Connection pool behind the Postgres store. Opened by the app lifespan."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from .config import settings
from .errors import PersistenceError

logger = logging.getLogger(__name__)

pool: AsyncConnectionPool | None = None


async def init_db_pool() -> None:
    global pool

    if not settings.database_url:
        logger.warning("Postgres storage selected but DATABASE_URL is empty; store calls will fail")
        return

    # Autocommit; PostgresStore opens explicit transactions where a write spans statements.
    pool = AsyncConnectionPool(
        conninfo=settings.database_url,
        open=False,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        kwargs={"autocommit": True, "row_factory": dict_row},
    )
    await pool.open()
    logger.info("Opened Postgres pool (%s-%s connections)", settings.db_pool_min_size, settings.db_pool_max_size)


async def close_db_pool() -> None:
    global pool

    if pool is None:
        return

    await pool.close()
    pool = None
    logger.info("Closed Postgres pool")


@asynccontextmanager
async def get_db_connection() -> AsyncIterator[AsyncConnection]:
    """Borrow a pooled connection for one store call."""
    if pool is None:
        raise PersistenceError("DATABASE_URL is not configured")

    async with pool.connection() as connection:
        yield connection

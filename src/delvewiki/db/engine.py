"""Connections to the PostgreSQL database holding the ``wiki_page`` table.

One engine is kept per configured ``DATABASE__URL``. The first session on a
URL makes sure the page table exists, so ``SqlPageStore`` works without an
explicit ``init_db`` call.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from delvewiki.config import get_settings
from delvewiki.db.models import WikiPage

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy import Connection
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


@dataclass
class _Connection:
    engine: AsyncEngine
    sessions: async_sessionmaker[AsyncSession]
    tables_ready: bool = False


_connections: dict[str, _Connection] = {}


def get_database_url() -> str:
    """Return ``DATABASE__URL``, which must be set for the database backend.

    Raises:
        ValueError: If DATABASE__URL is not configured.
    """
    url = get_settings().database.url
    if not url:
        msg = (
            "DATABASE__URL is not configured; set it to a "
            "postgresql+asyncpg:// URL to use STORAGE__BACKEND=database"
        )
        raise ValueError(msg)
    return url


def _connection() -> _Connection:
    url = get_database_url()
    connection = _connections.get(url)
    if connection is None:
        engine = create_async_engine(
            url,
            echo=get_settings().dev.database_echo,
            pool_pre_ping=True,
        )
        connection = _Connection(
            engine=engine,
            sessions=async_sessionmaker(
                engine, class_=AsyncSession, expire_on_commit=False
            ),
        )
        _connections[url] = connection
    return connection


def _create_page_table(sync_conn: Connection) -> None:
    table = SQLModel.metadata.tables[WikiPage.__tablename__]
    if inspect(sync_conn).has_table(table.name):
        return
    table.create(sync_conn)
    logger.info("Created %s table", table.name)


async def init_db(*, create_tables: bool = True) -> None:
    """Connect to the configured database.

    Args:
        create_tables: Create the ``wiki_page`` table if it is missing.
    """
    connection = _connection()
    if create_tables and not connection.tables_ready:
        async with connection.engine.begin() as conn:
            await conn.run_sync(_create_page_table)
        connection.tables_ready = True


async def close_db() -> None:
    """Dispose every engine opened so far."""
    while _connections:
        _url, connection = _connections.popitem()
        await connection.engine.dispose()


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Open a session on the configured database.

    Commits when the block finishes. If the block or the commit fails, the
    error is logged, the transaction rolled back and the error re-raised.

    Raises:
        ValueError: If DATABASE__URL is not configured.
    """
    connection = _connection()
    if not connection.tables_ready:
        await init_db()

    async with connection.sessions() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            logger.exception("Page store session failed, rolling back")
            await session.rollback()
            raise

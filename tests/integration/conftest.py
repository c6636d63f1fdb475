"""Fixtures for tests against a real PostgreSQL database.

Set TEST_DATABASE_URL (e.g. in .env) to run them; otherwise they are skipped.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from sqlalchemy import delete

from delvewiki.config import get_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")


@pytest_asyncio.fixture
async def database(monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[None]:
    """Point the engine at the test database with an empty wiki_page table."""
    from delvewiki.db.engine import close_db, get_session, init_db
    from delvewiki.db.models import WikiPage

    assert TEST_DATABASE_URL is not None
    monkeypatch.setenv("DATABASE__URL", TEST_DATABASE_URL)
    monkeypatch.setenv("STORAGE__BACKEND", "database")
    get_settings.cache_clear()

    await init_db()
    async with get_session() as session:
        await session.execute(delete(WikiPage))
    try:
        yield
    finally:
        await close_db()

"""Page record storage backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from delvewiki.config import get_settings
from delvewiki.storage.files import FilePageStore
from delvewiki.storage.memory import InMemoryPageStore
from delvewiki.storage.protocol import PageStore
from delvewiki.storage.records import PageRecord, load_record
from delvewiki.storage.transactions import PageLocks, page_transaction

if TYPE_CHECKING:
    from delvewiki.config import Settings


def create_page_store(settings: Settings | None = None) -> PageStore:
    """Build the store selected by ``STORAGE__BACKEND``."""
    settings = settings or get_settings()
    backend = settings.storage.backend
    if backend == "memory":
        return InMemoryPageStore()
    if backend == "database":
        from delvewiki.db.pages import SqlPageStore

        return SqlPageStore()
    return FilePageStore(settings.storage.data_dir)


__all__ = [
    "FilePageStore",
    "InMemoryPageStore",
    "PageLocks",
    "PageRecord",
    "PageStore",
    "create_page_store",
    "load_record",
    "page_transaction",
]

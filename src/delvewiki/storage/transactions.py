"""Per-page read-modify-write transactions.

Every mutation of a page record follows the same cycle: load the whole
record, change it in memory, save it back. ``page_transaction`` runs that
cycle under an in-process lock keyed by ``PageKey`` (when
``CONCURRENCY__LOCK_WRITES`` is on) and always saves with the loaded revision
as an optimistic check, so a writer in another process cannot be silently
overwritten either.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager, nullcontext
from typing import TYPE_CHECKING

from delvewiki.config import get_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from delvewiki.pages.keys import PageKey
    from delvewiki.storage.protocol import PageStore
    from delvewiki.storage.records import PageRecord

logger = logging.getLogger(__name__)


class PageLocks:
    """One ``asyncio.Lock`` per page, kept only while someone holds or awaits it."""

    def __init__(self) -> None:
        self._locks: dict[PageKey, asyncio.Lock] = {}
        self._users: Counter[PageKey] = Counter()

    def lock_for(self, key: PageKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: PageKey) -> AsyncIterator[None]:
        """Hold the page's lock, dropping it once nobody else is waiting."""
        lock = self.lock_for(key)
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


@asynccontextmanager
async def page_transaction(
    store: PageStore,
    key: PageKey,
    locks: PageLocks | None = None,
) -> AsyncIterator[PageRecord]:
    """Load a page record, yield it for mutation, and save it if it changed.

    If the block raises, nothing is written. If the record is unchanged
    (a pure read), nothing is written either, so reading a page that does not
    exist never creates it.

    Usage:
        async with page_transaction(store, key, locks) as record:
            commit(record.history, new_content)

    Raises:
        StaleRecordError: Another writer saved the page in between.
    """
    use_lock = locks is not None and get_settings().concurrency.lock_writes
    guard = locks.hold(key) if use_lock and locks is not None else nullcontext()

    async with guard:
        record = await store.load(key)
        expected = record.revision
        before = record.to_data()

        yield record

        if record.to_data() == before:
            logger.debug("No changes to %s, skipping save", key)
            return
        await store.save(key, record, expected_revision=expected)

"""VersionStore: version history bound to a page store.

Each operation is one per-page transaction: load the record, apply the pure
function from ``history.versions``, save. The live page content is kept in
step with the pointer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from delvewiki.history import versions
from delvewiki.storage.transactions import PageLocks, page_transaction

if TYPE_CHECKING:
    from delvewiki.history.models import CreatedBy, PageVersion
    from delvewiki.pages.keys import PageKey
    from delvewiki.storage.protocol import PageStore
    from delvewiki.storage.records import PageRecord

logger = logging.getLogger(__name__)


def _migrate(key: PageKey, record: PageRecord) -> None:
    """Synthesise version 1 for a stored page that has no history yet."""
    if record.exists and versions.ensure_initialised(record.history, record.content):
        logger.info("Created initial version for %s from existing content", key)


class VersionStore:
    """Commit, revert and query page versions.

    Pages that have never been written have no versions: queries return
    empty results and the first commit becomes version 1. A page that was
    written before version tracking gets version 1 synthesised from its
    content on first use.
    """

    def __init__(self, store: PageStore, locks: PageLocks | None = None) -> None:
        self.store = store
        self.locks = locks if locks is not None else PageLocks()

    async def commit(
        self,
        key: PageKey,
        content: str,
        edit_prompt: str | None = None,
        created_by: CreatedBy = "edit",
    ) -> PageVersion:
        """Store ``content`` as a new version and make it the live content."""
        async with page_transaction(self.store, key, self.locks) as record:
            _migrate(key, record)
            version = versions.commit(record.history, content, edit_prompt, created_by)
            record.content = content
        logger.info(
            "Committed %s v%d (%s)", key, version.version, version.created_by
        )
        return version

    async def save_generated_page(
        self, key: PageKey, title: str, content: str
    ) -> PageVersion:
        """Store freshly generated content together with its display title."""
        async with page_transaction(self.store, key, self.locks) as record:
            _migrate(key, record)
            version = versions.commit(
                record.history, content, edit_prompt=None, created_by="generation"
            )
            record.content = content
            record.title = title
        logger.info("Saved generated page %s as v%d", key, version.version)
        return version

    async def revert(self, key: PageKey, target: int) -> PageVersion | None:
        """Point the page at ``target`` and restore its content.

        Returns:
            The restored version, or None if it does not exist. Nothing is
            written on a miss.
        """
        async with page_transaction(self.store, key, self.locks) as record:
            _migrate(key, record)
            restored = versions.revert(record.history, target)
            if restored is None:
                logger.info("Revert of %s to missing v%d ignored", key, target)
                return None
            record.content = restored.content
        logger.info("Reverted %s to v%d", key, target)
        return restored

    async def visible_history(self, key: PageKey) -> list[PageVersion]:
        """Versions shown by default, newest first."""
        async with page_transaction(self.store, key, self.locks) as record:
            _migrate(key, record)
            return versions.visible_history(record.history)

    async def full_history(self, key: PageKey) -> list[PageVersion]:
        """Every version, newest first."""
        async with page_transaction(self.store, key, self.locks) as record:
            _migrate(key, record)
            return versions.full_history(record.history)

    async def get_version(self, key: PageKey, version: int) -> PageVersion | None:
        """Any stored version by number, or None."""
        async with page_transaction(self.store, key, self.locks) as record:
            _migrate(key, record)
            return versions.get_version(record.history, version)

    async def current_version(self, key: PageKey) -> PageVersion | None:
        """The version the pointer refers to, or None for an unknown page."""
        async with page_transaction(self.store, key, self.locks) as record:
            _migrate(key, record)
            return versions.current_version(record.history)

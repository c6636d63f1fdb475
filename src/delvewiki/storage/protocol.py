"""Protocol defining the page store interface.

``InMemoryPageStore``, ``FilePageStore`` and ``SqlPageStore`` implement this
protocol, allowing them to be used interchangeably.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from delvewiki.pages.keys import PageKey
    from delvewiki.storage.records import PageRecord


class PageStore(Protocol):
    """Durable storage for page records."""

    async def load(self, key: PageKey) -> PageRecord:
        """Load a page's record.

        Returns:
            The stored record, or a blank record (``exists=False``,
            ``revision=0``) if the page has never been saved.

        Raises:
            CorruptHistoryError: The stored history breaks its invariants.
        """
        ...

    async def save(
        self, key: PageKey, record: PageRecord, expected_revision: int
    ) -> PageRecord:
        """Write a record if nobody else has written it since it was loaded.

        Args:
            key: The page.
            record: Record to persist.
            expected_revision: Revision the caller loaded.

        Returns:
            The saved record with its revision bumped and ``exists`` set.

        Raises:
            StaleRecordError: The stored revision is not ``expected_revision``.
        """
        ...

    async def delete(self, key: PageKey) -> bool:
        """Delete a page's record. Returns False if there was nothing to delete."""
        ...

    async def list_pages(self, project: str) -> list[PageKey]:
        """List the pages stored for a project, sorted by slug."""
        ...

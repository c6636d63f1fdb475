"""In-process page store.

Records are kept serialised so a caller mutating a loaded record never
changes what is stored until it saves, exactly as with the durable stores.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from delvewiki.errors import StaleRecordError
from delvewiki.storage.records import PageRecord, load_record

if TYPE_CHECKING:
    from delvewiki.pages.keys import PageKey

logger = logging.getLogger(__name__)


class InMemoryPageStore:
    """``PageStore`` backed by a dict. Used by tests and embedded callers."""

    def __init__(self) -> None:
        self._records: dict[PageKey, tuple[int, dict[str, Any]]] = {}

    async def load(self, key: PageKey) -> PageRecord:
        stored = self._records.get(key)
        if stored is None:
            return PageRecord()
        revision, data = stored
        return load_record(data, revision=revision)

    async def save(
        self, key: PageKey, record: PageRecord, expected_revision: int
    ) -> PageRecord:
        actual = self._records[key][0] if key in self._records else 0
        if actual != expected_revision:
            logger.warning(
                "Rejected stale write to %s (expected %d, found %d)",
                key,
                expected_revision,
                actual,
            )
            raise StaleRecordError(key, expected_revision, actual)

        revision = actual + 1
        self._records[key] = (revision, record.to_data())
        record.revision = revision
        record.exists = True
        return record

    async def delete(self, key: PageKey) -> bool:
        return self._records.pop(key, None) is not None

    async def list_pages(self, project: str) -> list[PageKey]:
        return sorted(key for key in self._records if key.project == project)

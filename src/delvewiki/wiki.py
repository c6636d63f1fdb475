"""Wiki facade wiring the page store, history and annotations together."""

from __future__ import annotations

from typing import TYPE_CHECKING

from delvewiki.annotations.service import AnnotationService
from delvewiki.config import get_settings
from delvewiki.history.store import VersionStore
from delvewiki.pages.keys import PageKey
from delvewiki.storage import create_page_store
from delvewiki.storage.transactions import PageLocks

if TYPE_CHECKING:
    from delvewiki.storage.protocol import PageStore


class Wiki:
    """One page store shared by ``versions`` and ``annotations``.

    Both services use the same ``PageLocks`` so history and comment writes
    to a page are serialised against each other.
    """

    def __init__(
        self, store: PageStore | None = None, locks: PageLocks | None = None
    ) -> None:
        self.store = store if store is not None else create_page_store()
        self.locks = locks if locks is not None else PageLocks()
        self.versions = VersionStore(self.store, self.locks)
        self.annotations = AnnotationService(self.store, self.locks)

    def key(self, slug: str, project: str | None = None) -> PageKey:
        """Build a key, defaulting to ``STORAGE__DEFAULT_PROJECT``."""
        return PageKey(
            slug=slug, project=project or get_settings().storage.default_project
        )

    async def read_page(self, key: PageKey) -> str | None:
        """Live content of a page, or None if it has never been written."""
        record = await self.store.load(key)
        return record.content if record.exists else None

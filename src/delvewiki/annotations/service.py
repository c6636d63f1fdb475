"""AnnotationService: comment threads bound to a page store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from delvewiki.annotations import threads
from delvewiki.annotations.highlights import (
    HighlightResult,
    inject_highlights,
    strip_highlights,
)
from delvewiki.storage.transactions import PageLocks, page_transaction

if TYPE_CHECKING:
    from delvewiki.annotations.anchors import TextAnchor
    from delvewiki.annotations.threads import (
        CommentThread,
        InlineComment,
        MessageRole,
    )
    from delvewiki.pages.keys import PageKey
    from delvewiki.storage.protocol import PageStore

logger = logging.getLogger(__name__)


class AnnotationService:
    """Create, reply to, resolve and render comment threads for pages."""

    def __init__(self, store: PageStore, locks: PageLocks | None = None) -> None:
        self.store = store
        self.locks = locks if locks is not None else PageLocks()

    async def add_page_comment(
        self, key: PageKey, content: str, ai_response: str | None = None
    ) -> CommentThread:
        async with page_transaction(self.store, key, self.locks) as record:
            thread = threads.add_page_comment(record, content, ai_response)
        logger.info("Added page comment %s to %s", thread.id, key)
        return thread

    async def add_inline_comment(
        self,
        key: PageKey,
        anchor: TextAnchor,
        content: str,
        ai_response: str | None = None,
    ) -> InlineComment:
        async with page_transaction(self.store, key, self.locks) as record:
            thread = threads.add_inline_comment(record, anchor, content, ai_response)
        logger.info("Added inline comment %s to %s", thread.id, key)
        return thread

    async def reply(
        self,
        key: PageKey,
        thread_id: str,
        content: str,
        role: MessageRole = "user",
    ) -> CommentThread | None:
        """Append a message; None if the thread does not exist."""
        async with page_transaction(self.store, key, self.locks) as record:
            return threads.reply(record, thread_id, content, role)

    async def set_resolved(
        self, key: PageKey, thread_id: str, resolved: bool = True
    ) -> bool:
        """Resolve or reopen a thread; False if the thread does not exist."""
        async with page_transaction(self.store, key, self.locks) as record:
            return threads.set_resolved(record, thread_id, resolved)

    async def page_comments(self, key: PageKey) -> list[CommentThread]:
        return (await self.store.load(key)).page_comments

    async def inline_comments(self, key: PageKey) -> list[InlineComment]:
        return (await self.store.load(key)).inline_comments

    async def render(self, key: PageKey, html: str) -> HighlightResult:
        """Highlight the page's inline comments in its rendered ``html``.

        Markers already present in ``html`` are removed first, so rendering
        the output of an earlier render does not duplicate them.
        """
        comments = await self.inline_comments(key)
        return inject_highlights(strip_highlights(html), comments)

    async def orphaned(self, key: PageKey, html: str) -> list[InlineComment]:
        """Inline comments whose anchors cannot be found in ``html``."""
        comments = await self.inline_comments(key)
        result = inject_highlights(strip_highlights(html), comments)
        wanted = set(result.orphaned_ids)
        return [comment for comment in comments if comment.id in wanted]

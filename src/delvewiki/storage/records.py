"""The persisted per-page record.

One ``PageRecord`` holds everything this package stores about a page: the
live content, the version history and the comment threads. Stores load and
save whole records; callers mutate them inside ``page_transaction``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from delvewiki.annotations.threads import CommentThread, InlineComment
from delvewiki.history.models import PageVersionHistory
from delvewiki.history.versions import validate_history

# Fields that are bookkeeping for the store rather than page data
_STORE_FIELDS = frozenset(("revision", "exists"))


class PageRecord(BaseModel):
    """Everything persisted for one page.

    Attributes:
        content: The page's live text.
        title: Display title with preserved capitalisation.
        history: Version history (empty until first commit or migration).
        page_comments: Page-level threads.
        inline_comments: Anchored threads.
        revision: Number of successful saves; the optimistic-concurrency
            token checked by ``PageStore.save``.
        exists: False for a blank record handed out for an unknown page.
    """

    content: str = ""
    title: str | None = None
    history: PageVersionHistory = Field(default_factory=PageVersionHistory)
    page_comments: list[CommentThread] = Field(default_factory=list)
    inline_comments: list[InlineComment] = Field(default_factory=list)
    revision: int = Field(default=0, ge=0)
    exists: bool = False

    def to_data(self, *, include_content: bool = True) -> dict[str, Any]:
        """Serialise page data for storage (without store bookkeeping)."""
        exclude = set(_STORE_FIELDS)
        if not include_content:
            exclude.add("content")
        return self.model_dump(mode="json", exclude=exclude)


def load_record(
    data: dict[str, Any],
    *,
    revision: int,
    content: str | None = None,
) -> PageRecord:
    """Build a record from stored data and check its history invariants.

    Args:
        data: Output of ``PageRecord.to_data``.
        revision: Revision the store holds for this record.
        content: Live content kept outside ``data`` (file and SQL stores).

    Raises:
        CorruptHistoryError: The stored history breaks its invariants.
    """
    fields = dict(data)
    if content is not None:
        fields["content"] = content
    record = PageRecord.model_validate({**fields, "revision": revision, "exists": True})
    validate_history(record.history)
    return record

"""Comment threads attached to a page.

Page-level threads discuss the page as a whole; inline threads carry a
``TextAnchor`` and are highlighted in the rendered page. Threads belong to
the page, outlive any single version, and are never deleted here. An
inline thread whose anchor no longer resolves is reported as orphaned at
render time instead.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from delvewiki.annotations.anchors import TextAnchor
from delvewiki.history.models import utcnow

if TYPE_CHECKING:
    from delvewiki.storage.records import PageRecord

MessageRole = Literal["user", "assistant"]


def new_id() -> str:
    """Return a short random identifier for threads and messages."""
    return uuid4().hex[:13]


class CommentMessage(BaseModel):
    """A single message in a thread."""

    id: str = Field(default_factory=new_id)
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class CommentThread(BaseModel):
    """A page-level discussion thread."""

    id: str = Field(default_factory=new_id)
    messages: list[CommentMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    resolved: bool = False


class InlineComment(CommentThread):
    """A thread anchored to a span of the page's rendered text."""

    anchor: TextAnchor


def _check_content(content: str) -> None:
    if not content.strip():
        msg = "Comment text must not be empty"
        raise ValueError(msg)


def _opening_messages(content: str, ai_response: str | None) -> list[CommentMessage]:
    _check_content(content)
    timestamp = utcnow()
    messages = [CommentMessage(role="user", content=content, timestamp=timestamp)]
    if ai_response:
        messages.append(
            CommentMessage(role="assistant", content=ai_response, timestamp=timestamp)
        )
    return messages


def add_page_comment(
    record: PageRecord, content: str, ai_response: str | None = None
) -> CommentThread:
    """Start a page-level thread, optionally with an assistant reply."""
    messages = _opening_messages(content, ai_response)
    thread = CommentThread(messages=messages, created_at=messages[0].timestamp)
    record.page_comments.append(thread)
    return thread


def add_inline_comment(
    record: PageRecord,
    anchor: TextAnchor,
    content: str,
    ai_response: str | None = None,
) -> InlineComment:
    """Start an anchored thread, optionally with an assistant reply."""
    messages = _opening_messages(content, ai_response)
    thread = InlineComment(
        anchor=anchor, messages=messages, created_at=messages[0].timestamp
    )
    record.inline_comments.append(thread)
    return thread


def find_thread(record: PageRecord, thread_id: str) -> CommentThread | None:
    """Find a page-level or inline thread by id."""
    for thread in (*record.page_comments, *record.inline_comments):
        if thread.id == thread_id:
            return thread
    return None


def reply(
    record: PageRecord,
    thread_id: str,
    content: str,
    role: MessageRole = "user",
) -> CommentThread | None:
    """Append a message to a thread.

    Returns:
        The updated thread, or None if no thread has that id.
    """
    _check_content(content)
    thread = find_thread(record, thread_id)
    if thread is None:
        return None
    thread.messages.append(CommentMessage(role=role, content=content))
    return thread


def set_resolved(record: PageRecord, thread_id: str, resolved: bool = True) -> bool:
    """Resolve or reopen a thread. Returns False if the id is unknown."""
    thread = find_thread(record, thread_id)
    if thread is None:
        return False
    thread.resolved = resolved
    return True

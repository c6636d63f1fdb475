"""Tests for comment thread operations on a page record."""

from __future__ import annotations

import pytest

from delvewiki.annotations.anchors import TextAnchor
from delvewiki.annotations.threads import (
    CommentThread,
    InlineComment,
    add_inline_comment,
    add_page_comment,
    find_thread,
    reply,
    set_resolved,
)
from delvewiki.storage.records import PageRecord, load_record


@pytest.fixture
def record() -> PageRecord:
    return PageRecord(content="Some page text.")


class TestAddComments:
    """Starting threads."""

    def test_page_comment_with_ai_response(self, record: PageRecord) -> None:
        thread = add_page_comment(record, "Is this right?", "Yes, mostly.")

        assert record.page_comments == [thread]
        assert [m.role for m in thread.messages] == ["user", "assistant"]
        assert thread.messages[1].content == "Yes, mostly."
        assert thread.resolved is False

    def test_page_comment_without_ai_response(self, record: PageRecord) -> None:
        thread = add_page_comment(record, "Note to self")
        assert [m.role for m in thread.messages] == ["user"]

    def test_inline_comment_keeps_anchor(self, record: PageRecord) -> None:
        anchor = TextAnchor(text="page", prefix="Some ", suffix=" text")
        thread = add_inline_comment(record, anchor, "Which page?")

        assert record.inline_comments == [thread]
        assert thread.anchor == anchor
        assert record.page_comments == []

    def test_ids_are_unique(self, record: PageRecord) -> None:
        ids = {add_page_comment(record, f"c{i}").id for i in range(20)}
        assert len(ids) == 20

    @pytest.mark.parametrize("content", ["", "   \n"])
    def test_empty_comment_rejected(self, record: PageRecord, content: str) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            add_page_comment(record, content)
        assert record.page_comments == []


class TestReplyAndResolve:
    """Mutating existing threads."""

    def test_reply_appends_message(self, record: PageRecord) -> None:
        thread = add_page_comment(record, "Question")

        updated = reply(record, thread.id, "Answer", role="assistant")

        assert updated is thread
        assert [m.content for m in thread.messages] == ["Question", "Answer"]

    def test_reply_finds_inline_threads(self, record: PageRecord) -> None:
        thread = add_inline_comment(record, TextAnchor(text="page"), "Hm")
        assert reply(record, thread.id, "More") is thread
        assert find_thread(record, thread.id) is thread

    def test_reply_to_unknown_thread(self, record: PageRecord) -> None:
        assert reply(record, "missing", "Hello?") is None

    def test_resolve_and_reopen(self, record: PageRecord) -> None:
        thread = add_inline_comment(record, TextAnchor(text="page"), "Fix")

        assert set_resolved(record, thread.id) is True
        assert thread.resolved is True
        assert set_resolved(record, thread.id, resolved=False) is True
        assert thread.resolved is False

    def test_resolve_unknown_thread(self, record: PageRecord) -> None:
        assert set_resolved(record, "missing") is False


class TestPersistence:
    """Threads survive serialisation through the page record."""

    def test_record_round_trip_keeps_thread_types(self, record: PageRecord) -> None:
        add_page_comment(record, "page level", "reply")
        add_inline_comment(record, TextAnchor(text="text", prefix="page "), "inline")

        loaded = load_record(record.to_data(), revision=3)

        assert isinstance(loaded.page_comments[0], CommentThread)
        assert isinstance(loaded.inline_comments[0], InlineComment)
        assert loaded.inline_comments[0].anchor.prefix == "page "
        assert loaded.revision == 3
        assert loaded.exists is True

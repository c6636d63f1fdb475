"""Tests for the Wiki facade, store selection and logging setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from delvewiki import setup_logging
from delvewiki.config import get_settings
from delvewiki.pages.keys import PageKey
from delvewiki.storage import FilePageStore, InMemoryPageStore, create_page_store
from delvewiki.wiki import Wiki

if TYPE_CHECKING:
    from pathlib import Path


class TestCreatePageStore:
    def test_memory_backend(self) -> None:
        assert isinstance(create_page_store(), InMemoryPageStore)

    def test_file_backend(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STORAGE__BACKEND", "file")
        monkeypatch.setenv("STORAGE__DATA_DIR", str(tmp_path))
        get_settings.cache_clear()

        store = create_page_store()

        assert isinstance(store, FilePageStore)
        assert store.data_dir == tmp_path.resolve()


class TestWiki:
    def test_key_uses_default_project(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STORAGE__DEFAULT_PROJECT", "physics")
        get_settings.cache_clear()
        wiki = Wiki()

        assert wiki.key("atoms") == PageKey("atoms", "physics")
        assert wiki.key("atoms", "chemistry") == PageKey("atoms", "chemistry")

    def test_services_share_store_and_locks(self) -> None:
        wiki = Wiki()
        assert wiki.versions.store is wiki.annotations.store is wiki.store
        assert wiki.versions.locks is wiki.annotations.locks is wiki.locks

    @pytest.mark.asyncio
    async def test_read_page(self, wiki: Wiki, page_key: PageKey) -> None:
        assert await wiki.read_page(page_key) is None
        await wiki.versions.commit(page_key, "live text", created_by="generation")
        assert await wiki.read_page(page_key) == "live text"

    @pytest.mark.asyncio
    async def test_history_and_comments_share_a_record(
        self, wiki: Wiki, page_key: PageKey
    ) -> None:
        await wiki.versions.commit(page_key, "text", created_by="generation")
        await wiki.annotations.add_page_comment(page_key, "note")
        await wiki.versions.commit(page_key, "more text", "extend")

        record = await wiki.store.load(page_key)
        assert len(record.history.versions) == 2
        assert len(record.page_comments) == 1


class TestSetupLogging:
    def test_writes_rotating_log_file(self, tmp_path: Path) -> None:
        root = logging.getLogger()
        before = list(root.handlers)
        level = root.level
        try:
            setup_logging(tmp_path / "logs")
            logging.getLogger("delvewiki.test").info("hello from the test")
            for handler in root.handlers:
                handler.flush()

            text = (tmp_path / "logs" / "delvewiki.log").read_text(encoding="utf-8")
            assert "hello from the test" in text
            assert "delvewiki.test" in text
        finally:
            for handler in root.handlers[:]:
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()
            root.setLevel(level)

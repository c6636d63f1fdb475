"""Shared pytest fixtures for delvewiki tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv

from delvewiki.config import get_settings
from delvewiki.pages.keys import PageKey
from delvewiki.storage.memory import InMemoryPageStore
from delvewiki.storage.transactions import PageLocks
from delvewiki.wiki import Wiki

if TYPE_CHECKING:
    from collections.abc import Generator

load_dotenv()


@pytest.fixture(autouse=True)
def _isolated_settings(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> Generator[None]:
    """Give every test default settings that never touch the working tree."""
    for name in (
        "STORAGE__BACKEND",
        "STORAGE__DATA_DIR",
        "STORAGE__DEFAULT_PROJECT",
        "ANNOTATIONS__CONTEXT_CHARS",
        "ANNOTATIONS__MARK_TAG",
        "ANNOTATIONS__MARK_CLASS",
        "ANNOTATIONS__RESOLVED_CLASS",
        "CONCURRENCY__LOCK_WRITES",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STORAGE__BACKEND", "memory")
    monkeypatch.setenv("APP__LOG_DIR", str(tmp_path_factory.mktemp("logs")))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def page_key() -> PageKey:
    return PageKey(slug="quantum-computing")


@pytest.fixture
def memory_store() -> InMemoryPageStore:
    return InMemoryPageStore()


@pytest.fixture
def wiki(memory_store: InMemoryPageStore) -> Wiki:
    """A wiki backed by an in-memory store."""
    return Wiki(store=memory_store, locks=PageLocks())

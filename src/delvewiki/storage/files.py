"""Filesystem page store.

Layout under the data directory::

    <data_dir>/<project>/<slug>.md    live page content
    <data_dir>/<project>/<slug>.json  history, comments, title, revision

A page that has a ``.md`` file but no ``.json`` predates version tracking;
it loads as an existing record with an empty history, and the first history
operation synthesises version 1 from its content.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from delvewiki.errors import PagePathError, StaleRecordError
from delvewiki.pages.keys import PageKey
from delvewiki.storage.records import PageRecord, load_record

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


def _atomic_write(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        Path(tmp_name).replace(path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class FilePageStore:
    """``PageStore`` keeping each page as a Markdown file plus a JSON sidecar."""

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir).resolve()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------
    def _contained(self, path: Path) -> Path:
        resolved = path.resolve()
        if not resolved.is_relative_to(self.data_dir):
            msg = f"Path {path} escapes data directory {self.data_dir}"
            raise PagePathError(msg)
        return resolved

    def project_dir(self, project: str) -> Path:
        return self._contained(self.data_dir / project)

    def page_path(self, key: PageKey) -> Path:
        return self._contained(self.project_dir(key.project) / f"{key.slug}.md")

    def data_path(self, key: PageKey) -> Path:
        return self._contained(self.project_dir(key.project) / f"{key.slug}.json")

    # ------------------------------------------------------------------
    # Sync implementations (run in a worker thread)
    # ------------------------------------------------------------------
    def _read_data(self, key: PageKey) -> dict[str, Any] | None:
        path = self.data_path(key)
        if not path.is_file():
            return None
        parsed = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(parsed, list):
            # Older sidecars held only a flat list of chat messages
            logger.info("Ignoring legacy list-format sidecar for %s", key)
            return {}
        return parsed

    def _stored_revision(self, key: PageKey) -> int:
        data = self._read_data(key)
        if data is None:
            return 0
        return int(data.get("revision", 0))

    def _load_sync(self, key: PageKey) -> PageRecord:
        page_path = self.page_path(key)
        content = (
            page_path.read_text(encoding="utf-8") if page_path.is_file() else None
        )
        data = self._read_data(key)

        if data is None and content is None:
            return PageRecord()

        data = dict(data or {})
        revision = int(data.pop("revision", 0))
        return load_record(data, revision=revision, content=content or "")

    def _save_sync(
        self, key: PageKey, record: PageRecord, expected_revision: int
    ) -> PageRecord:
        actual = self._stored_revision(key)
        if actual != expected_revision:
            logger.warning(
                "Rejected stale write to %s (expected %d, found %d)",
                key,
                expected_revision,
                actual,
            )
            raise StaleRecordError(key, expected_revision, actual)

        revision = actual + 1
        data = record.to_data(include_content=False)
        data["revision"] = revision

        _atomic_write(self.page_path(key), record.content)
        _atomic_write(self.data_path(key), json.dumps(data, indent=2))

        record.revision = revision
        record.exists = True
        return record

    def _delete_sync(self, key: PageKey) -> bool:
        removed = False
        for path in (self.page_path(key), self.data_path(key)):
            if path.is_file():
                path.unlink()
                removed = True
        return removed

    def _iter_slugs(self, project: str) -> Iterator[str]:
        directory = self.project_dir(project)
        if not directory.is_dir():
            return
        for path in directory.iterdir():
            if path.suffix in (".md", ".json") and not path.name.startswith("."):
                yield path.stem

    # ------------------------------------------------------------------
    # PageStore protocol
    # ------------------------------------------------------------------
    async def load(self, key: PageKey) -> PageRecord:
        return await asyncio.to_thread(self._load_sync, key)

    async def save(
        self, key: PageKey, record: PageRecord, expected_revision: int
    ) -> PageRecord:
        return await asyncio.to_thread(
            self._save_sync, key, record, expected_revision
        )

    async def delete(self, key: PageKey) -> bool:
        return await asyncio.to_thread(self._delete_sync, key)

    async def list_pages(self, project: str) -> list[PageKey]:
        slugs = await asyncio.to_thread(lambda: set(self._iter_slugs(project)))
        return [PageKey(slug=slug, project=project) for slug in sorted(slugs)]

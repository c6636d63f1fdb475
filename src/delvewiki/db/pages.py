"""Database-backed page store.

Provides ``SqlPageStore``, the ``PageStore`` implementation over the
``wiki_page`` table. Saves are conditional updates on ``revision`` so two
processes writing the same page cannot overwrite each other.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select

from delvewiki.db.engine import get_session
from delvewiki.db.models import WikiPage
from delvewiki.errors import StaleRecordError
from delvewiki.pages.keys import PageKey
from delvewiki.storage.records import PageRecord, load_record

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = logging.getLogger(__name__)


async def _get_row(session: AsyncSession, key: PageKey) -> WikiPage | None:
    result = await session.exec(
        select(WikiPage).where(
            WikiPage.project == key.project, WikiPage.slug == key.slug
        )
    )
    return result.first()


class SqlPageStore:
    """``PageStore`` over the ``wiki_page`` table."""

    async def load(self, key: PageKey) -> PageRecord:
        async with get_session() as session:
            row = await _get_row(session, key)
            if row is None:
                return PageRecord()
            return load_record(row.data, revision=row.revision, content=row.content)

    async def save(
        self, key: PageKey, record: PageRecord, expected_revision: int
    ) -> PageRecord:
        data = record.to_data(include_content=False)
        revision = expected_revision + 1

        try:
            async with get_session() as session:
                if expected_revision == 0:
                    session.add(
                        WikiPage(
                            project=key.project,
                            slug=key.slug,
                            content=record.content,
                            data=data,
                            revision=revision,
                        )
                    )
                    await session.flush()
                else:
                    result = await session.execute(
                        update(WikiPage)
                        .where(
                            col(WikiPage.project) == key.project,
                            col(WikiPage.slug) == key.slug,
                            col(WikiPage.revision) == expected_revision,
                        )
                        .values(
                            content=record.content,
                            data=data,
                            revision=revision,
                            updated_at=datetime.now(UTC),
                        )
                    )
                    if result.rowcount != 1:
                        row = await _get_row(session, key)
                        actual = row.revision if row is not None else 0
                        raise StaleRecordError(key, expected_revision, actual)
        except IntegrityError as exc:
            # Someone else created the page first
            logger.warning("Rejected stale create of %s", key)
            raise StaleRecordError(key, expected_revision, revision) from exc

        record.revision = revision
        record.exists = True
        return record

    async def delete(self, key: PageKey) -> bool:
        async with get_session() as session:
            row = await _get_row(session, key)
            if row is None:
                return False
            await session.delete(row)
            return True

    async def list_pages(self, project: str) -> list[PageKey]:
        async with get_session() as session:
            result = await session.exec(
                select(WikiPage.slug)
                .where(WikiPage.project == project)
                .order_by(col(WikiPage.slug))
            )
            return [PageKey(slug=slug, project=project) for slug in result.all()]

"""SQLModel database models for delvewiki."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def _timestamptz_column() -> Any:
    """Create a TIMESTAMP WITH TIME ZONE column for PostgreSQL."""
    return Column(DateTime(timezone=True), nullable=False)


class WikiPage(SQLModel, table=True):
    """Persisted page record.

    Attributes:
        id: Primary key UUID, auto-generated.
        project: Project the page belongs to.
        slug: Page slug, unique within the project.
        content: Live page content.
        data: Serialised history, comments and title
            (``PageRecord.to_data(include_content=False)``).
        revision: Optimistic-concurrency counter, bumped on every save.
        created_at: Timestamp when the page was first saved.
        updated_at: Timestamp of the last save.
    """

    __tablename__ = "wiki_page"
    __table_args__ = (
        UniqueConstraint("project", "slug", name="uq_wiki_page_project_slug"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project: str = Field(max_length=100, index=True)
    slug: str = Field(max_length=100)
    content: str = Field(default="", sa_column=Column(sa.Text(), nullable=False))
    data: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(sa.JSON(), nullable=False)
    )
    revision: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )
    updated_at: datetime = Field(
        default_factory=_utcnow, sa_column=_timestamptz_column()
    )

"""Version history data model.

A page keeps every snapshot it has ever had. Versions are full content
copies, numbered from 1 with no gaps, and are never deleted; reverting only
moves ``current_version`` and toggles ``superseded_at`` flags.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CreatedBy = Literal["generation", "edit", "revert"]


def utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class PageVersion(BaseModel):
    """One immutable content snapshot of a page.

    Attributes:
        version: 1-indexed, strictly increasing per page, never reused.
        content: Full text of the page at this version (not a diff).
        edit_prompt: Instruction that produced the version; None for the
            initial generation.
        timestamp: Creation time.
        created_by: What kind of action produced the version.
        reverted_from: Source version when the content was copied from an
            earlier version.
        superseded_at: Set when a later commit happened while the pointer
            was behind this version. Cleared again if it is restored.
    """

    model_config = ConfigDict(validate_assignment=True)

    version: int = Field(ge=1)
    content: str
    edit_prompt: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    created_by: CreatedBy
    reverted_from: int | None = Field(default=None, ge=1)
    superseded_at: datetime | None = None

    @property
    def is_superseded(self) -> bool:
        return self.superseded_at is not None


class PageVersionHistory(BaseModel):
    """All versions of one page plus the pointer to the live one.

    ``current_version`` is None only while ``versions`` is empty, i.e. before
    the page's first version has been committed or migrated.
    """

    versions: list[PageVersion] = Field(default_factory=list)
    current_version: int | None = None

    @property
    def latest_version(self) -> int:
        """Highest version number, 0 for an empty history."""
        return len(self.versions)

    @property
    def is_behind_tip(self) -> bool:
        """True when the pointer sits on an older version than the newest."""
        return (
            self.current_version is not None
            and self.current_version < self.latest_version
        )

"""Pure version-history operations.

These functions mutate a ``PageVersionHistory`` in place and never touch
storage. ``VersionStore`` in ``history.store`` wraps them in a per-page
read-modify-write transaction.
"""

# Pattern: Functional Core (pure functions over the page record)

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from delvewiki.errors import CorruptHistoryError
from delvewiki.history.models import CreatedBy, PageVersion, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from delvewiki.history.models import PageVersionHistory

logger = logging.getLogger(__name__)


def _check_version_number(version: int) -> None:
    if version < 1:
        msg = f"Version numbers start at 1, got {version}"
        raise ValueError(msg)


def validate_history(history: PageVersionHistory) -> None:
    """Check the persisted invariants of a history.

    Raises:
        CorruptHistoryError: Version numbers are not exactly ``1..n`` in
            order, or the pointer does not name a stored version.
    """
    for index, entry in enumerate(history.versions):
        if entry.version != index + 1:
            numbers = [v.version for v in history.versions]
            msg = f"Version numbers must be contiguous from 1, got {numbers}"
            logger.error(msg)
            raise CorruptHistoryError(msg)

    pointer = history.current_version
    if not history.versions:
        if pointer is not None:
            msg = f"Empty history has a current version pointer ({pointer})"
            logger.error(msg)
            raise CorruptHistoryError(msg)
        return

    if pointer is None or not 1 <= pointer <= len(history.versions):
        msg = (
            f"Current version pointer {pointer} does not refer to one of "
            f"{len(history.versions)} stored versions"
        )
        logger.error(msg)
        raise CorruptHistoryError(msg)


def ensure_initialised(
    history: PageVersionHistory,
    existing_content: str | None,
    *,
    now: datetime | None = None,
) -> bool:
    """Synthesise version 1 from content that predates version tracking.

    Idempotent: does nothing once the history has any version.

    Returns:
        True if version 1 was created by this call.
    """
    if history.versions:
        return False

    history.versions.append(
        PageVersion(
            version=1,
            content=existing_content or "",
            edit_prompt=None,
            timestamp=now or utcnow(),
            created_by="generation",
        )
    )
    history.current_version = 1
    return True


def commit(
    history: PageVersionHistory,
    content: str,
    edit_prompt: str | None = None,
    created_by: CreatedBy = "edit",
    *,
    reverted_from: int | None = None,
    now: datetime | None = None,
) -> PageVersion:
    """Append a new version and point the page at it.

    If the pointer is behind the newest version (the page was reverted), all
    versions above the pointer that are not yet superseded are stamped with
    this commit's timestamp. They stay stored and can still be restored
    with ``revert``.

    ``revert`` itself never calls this; it only moves the pointer.
    ``reverted_from`` is for callers that copy an old version forward as a
    new one (``created_by="revert"``), and is kept on stored histories that
    were written that way. The CLI shows it as ``(from vN)``.
    """
    timestamp = now or utcnow()
    pointer = history.current_version

    if pointer is not None:
        for entry in history.versions:
            if entry.version > pointer and entry.superseded_at is None:
                entry.superseded_at = timestamp

    new_version = PageVersion(
        version=len(history.versions) + 1,
        content=content,
        edit_prompt=edit_prompt,
        timestamp=timestamp,
        created_by=created_by,
        reverted_from=reverted_from,
    )
    history.versions.append(new_version)
    history.current_version = new_version.version
    return new_version


def get_version(history: PageVersionHistory, version: int) -> PageVersion | None:
    """Look up any stored version, superseded or ahead of the pointer."""
    _check_version_number(version)
    if version > len(history.versions):
        return None
    return history.versions[version - 1]


def revert(history: PageVersionHistory, target: int) -> PageVersion | None:
    """Move the pointer to ``target`` without creating a new version.

    Works on any stored version. Restoring a superseded version clears its
    ``superseded_at``; other versions keep their flags. Versions above the
    new pointer are only superseded by the next ``commit``.

    Returns:
        The restored version, or None if ``target`` does not exist (the
        history is left untouched).
    """
    restored = get_version(history, target)
    if restored is None:
        return None

    if restored.superseded_at is not None:
        restored.superseded_at = None
    history.current_version = target
    return restored


def current_version(history: PageVersionHistory) -> PageVersion | None:
    """Return the version the pointer refers to."""
    if history.current_version is None:
        return None
    return get_version(history, history.current_version)


def visible_history(history: PageVersionHistory) -> list[PageVersion]:
    """Versions up to the pointer that are not superseded, newest first."""
    pointer = history.current_version
    if pointer is None:
        return []
    return [
        entry
        for entry in reversed(history.versions)
        if entry.version <= pointer and entry.superseded_at is None
    ]


def full_history(history: PageVersionHistory) -> list[PageVersion]:
    """Every stored version regardless of pointer or supersession, newest first."""
    return list(reversed(history.versions))

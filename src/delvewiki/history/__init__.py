"""Page version history.

``history.versions`` holds the pure operations; ``history.store.VersionStore``
binds them to a page store.
"""

from delvewiki.history.models import CreatedBy, PageVersion, PageVersionHistory
from delvewiki.history.versions import (
    commit,
    current_version,
    ensure_initialised,
    full_history,
    get_version,
    revert,
    validate_history,
    visible_history,
)

__all__ = [
    "CreatedBy",
    "PageVersion",
    "PageVersionHistory",
    "commit",
    "current_version",
    "ensure_initialised",
    "full_history",
    "get_version",
    "revert",
    "validate_history",
    "visible_history",
]

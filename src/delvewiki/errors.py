"""Exception types for delvewiki.

Only contract violations and persistence problems are exceptions. A missing
version, a missing thread or an orphaned anchor is an ordinary result and is
returned as ``None`` or reported in ``orphaned_ids`` instead.
"""

from __future__ import annotations


class DelveWikiError(Exception):
    """Base class for delvewiki errors."""


class CorruptHistoryError(DelveWikiError):
    """Persisted version history violates its invariants.

    Raised for duplicate or non-contiguous version numbers, or a current
    pointer that does not refer to a stored version. Indicates a bug in
    whatever wrote the record.
    """


class StaleRecordError(DelveWikiError):
    """A page record changed between load and save.

    Attributes:
        key: The page whose write was rejected.
        expected: Revision the writer loaded.
        actual: Revision currently stored.
    """

    def __init__(self, key: object, expected: int, actual: int) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Page {key} was modified concurrently "
            f"(expected revision {expected}, found {actual})"
        )


class PagePathError(DelveWikiError):
    """A page path would escape the configured data directory."""

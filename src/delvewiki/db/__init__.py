"""Database module for delvewiki.

Provides async SQLModel operations with PostgreSQL.
"""

from __future__ import annotations

from delvewiki.db.engine import close_db, get_session, init_db
from delvewiki.db.models import WikiPage
from delvewiki.db.pages import SqlPageStore

__all__ = [
    "SqlPageStore",
    "WikiPage",
    "close_db",
    "get_session",
    "init_db",
]

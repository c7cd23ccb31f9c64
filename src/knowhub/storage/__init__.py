"""Storage layer for knowhub - SQLite database and repositories."""

from knowhub.storage.db import get_connection, init_db
from knowhub.storage.repos import WorkspaceRepo

__all__ = [
    "get_connection",
    "init_db",
    "WorkspaceRepo",
]

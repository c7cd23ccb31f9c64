"""SQLite database connection and initialization."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from knowhub.core.config import DATABASE_PATH

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS workspace_settings (
    vault TEXT NOT NULL,
    key TEXT NOT NULL,
    value_json TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (vault, key)
);
"""


def init_db(db_path: Path | str | None = None) -> None:
    """
    Initialize database schema.

    Args:
        db_path: Path to SQLite database (defaults to DATABASE_PATH)
    """
    path = Path(db_path) if db_path else DATABASE_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path)
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.executescript(SCHEMA)
        conn.commit()
        logger.debug("Database initialized at %s", path)
    finally:
        conn.close()


@contextmanager
def get_connection(
    db_path: Path | str | None = None,
) -> Generator[sqlite3.Connection, None, None]:
    """
    Get a database connection with row factory.

    Args:
        db_path: Path to SQLite database (defaults to DATABASE_PATH)

    Yields:
        SQLite connection with row factory enabled
    """
    path = Path(db_path) if db_path else DATABASE_PATH
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

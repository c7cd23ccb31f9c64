"""Workspace repository - persistence of the workspace settings blob."""

import json
import sqlite3
from datetime import datetime

from knowhub.core.types import PersistedWorkspace

# Keys of the settings blob, stored one row each
WORKSPACE_KEYS = ("expandedFolders", "pinnedTabs", "openTabs", "activeId")


class WorkspaceRepo:
    """Repository for per-vault workspace settings."""

    def __init__(self, conn: sqlite3.Connection):
        """
        Initialize workspace repository.

        Args:
            conn: SQLite connection with row_factory set
        """
        self.conn = conn

    def load(self, vault: str) -> PersistedWorkspace | None:
        """Get the saved workspace for a vault, or None if never saved."""
        rows = self.conn.execute(
            "SELECT key, value_json FROM workspace_settings WHERE vault = ?",
            (vault,),
        ).fetchall()
        if not rows:
            return None
        data = {row["key"]: json.loads(row["value_json"]) for row in rows}
        return PersistedWorkspace.model_validate(data)

    def save(self, vault: str, workspace: PersistedWorkspace) -> None:
        """Upsert every key of the workspace blob."""
        now = datetime.now().isoformat()
        data = workspace.model_dump(by_alias=True)
        self.conn.executemany(
            """
            INSERT INTO workspace_settings (vault, key, value_json, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(vault, key) DO UPDATE SET
                value_json = excluded.value_json,
                updated_at = excluded.updated_at
            """,
            [(vault, key, json.dumps(data[key]), now) for key in WORKSPACE_KEYS],
        )

    def delete(self, vault: str) -> None:
        """Forget the saved workspace for a vault."""
        self.conn.execute("DELETE FROM workspace_settings WHERE vault = ?", (vault,))

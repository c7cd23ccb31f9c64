"""Workspace - composition root wiring the vault core together.

One Workspace owns one VaultState and hands it by reference to every
collaborator, so several vaults can be open side by side and tests can build
isolated instances.
"""

import logging
from pathlib import Path
from typing import Any

from knowhub.core.config import AUTOSAVE_WORKSPACE, DATABASE_PATH
from knowhub.core.dragdrop import DragDropController
from knowhub.core.events import (
    ITEM_RENAME,
    VAULT_CHANGED,
    WORKSPACE_CHANGED,
    WORKSPACE_PERSISTED,
    EventBus,
)
from knowhub.core.items import ItemManager
from knowhub.core.moves import MoveCoordinator
from knowhub.core.state import VaultState
from knowhub.core.sync import WorkspaceSync
from knowhub.core.types import PersistedWorkspace, SyncReport, Tab, TreeNode
from knowhub.storage.db import get_connection, init_db
from knowhub.storage.repos import WorkspaceRepo
from knowhub.vault.local import LocalVaultStore
from knowhub.vault.protocol import VaultStore

logger = logging.getLogger(__name__)


class Workspace:
    """An open vault: state, store and the components operating on them."""

    def __init__(
        self,
        store: VaultStore,
        *,
        vault_key: str = "",
        db_path: Path | str | None = None,
        autosave: bool = AUTOSAVE_WORKSPACE,
        events: EventBus | None = None,
    ):
        """
        Initialize workspace.

        Args:
            store: Backing store for the vault
            vault_key: Key the workspace settings are saved under
            db_path: SQLite database for workspace settings (None disables
                persistence)
            autosave: Persist after every ``vault-changed`` and
                ``workspace-changed`` event
            events: Event bus (a private one is created if omitted)
        """
        self.events = events or EventBus()
        self.state = VaultState(self.events)
        self.store = store
        self.vault_key = vault_key
        self.db_path = Path(db_path) if db_path else None

        self.sync = WorkspaceSync(self.state, store)
        self.moves = MoveCoordinator(self.state, store, refresh=self.sync.refresh)
        self.dragdrop = DragDropController(self.state, self.moves)
        self.items = ItemManager(self.state, store, self.sync)

        self.events.on(ITEM_RENAME, self.moves.handle_item_rename)
        if autosave and self.db_path is not None:
            self.events.on(VAULT_CHANGED, self.persist)
            self.events.on(WORKSPACE_CHANGED, self.persist)

    async def load(self) -> SyncReport:
        """Restore saved workspace state, then pull the first listing."""
        saved = self._load_persisted()
        if saved is not None:
            self.state.restore(saved)
            logger.info("Restored workspace with %d tabs", len(saved.open_tabs))
        return await self.sync.refresh()

    def _load_persisted(self) -> PersistedWorkspace | None:
        if self.db_path is None:
            return None
        with get_connection(self.db_path) as conn:
            return WorkspaceRepo(conn).load(self.vault_key)

    def persist(self) -> None:
        """Write the workspace settings blob."""
        if self.db_path is None:
            return
        with get_connection(self.db_path) as conn:
            WorkspaceRepo(conn).save(self.vault_key, self.state.to_persisted())
        self.events.emit(WORKSPACE_PERSISTED)

    async def rename_item(self, item_id: str, item_type: str, new_title: str) -> Any:
        """Issue the ``item-rename`` command; returns the new id."""
        results = await self.events.dispatch(ITEM_RENAME, item_id, item_type, new_title)
        return results[0] if results else None

    # Query surface

    def get_tree(self) -> list[TreeNode]:
        return self.state.get_tree()

    def get_open_tabs(self) -> list[Tab]:
        return self.state.get_open_tabs()

    def is_expanded(self, item_id: str) -> bool:
        return self.state.is_expanded(item_id)

    def is_selected(self, item_id: str) -> bool:
        return self.state.is_selected(item_id)

    def is_pinned(self, item_id: str) -> bool:
        return self.state.is_pinned(item_id)

    def __repr__(self) -> str:
        return f"Workspace({self.store!r})"


def build_workspace(
    vault_path: Path | str,
    db_path: Path | str | None = None,
    *,
    autosave: bool = AUTOSAVE_WORKSPACE,
) -> Workspace:
    """
    Build a workspace over a vault directory on disk.

    Args:
        vault_path: Vault root directory
        db_path: Workspace settings database (defaults to DATABASE_PATH)
        autosave: Persist workspace state after every structural or view change

    Returns:
        Configured (not yet loaded) Workspace
    """
    store = LocalVaultStore(vault_path)
    db = Path(db_path) if db_path else DATABASE_PATH
    init_db(db)
    return Workspace(store, vault_key=str(store.root), db_path=db, autosave=autosave)

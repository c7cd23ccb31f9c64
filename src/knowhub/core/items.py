"""Create, open, close and delete lifecycle around the vault state."""

import logging
from collections.abc import Sequence

from knowhub.core.errors import NotFoundError, VaultError
from knowhub.core.paths import normalize
from knowhub.core.state import VaultState
from knowhub.core.sync import WorkspaceSync
from knowhub.core.types import BatchResult, ItemError, ItemRef, ItemType, NoteRecord, Tab
from knowhub.vault.protocol import VaultStore

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_NAME = "New Folder"


class ItemManager:
    """Item lifecycle operations that bracket the rename/move cascade."""

    def __init__(self, state: VaultState, store: VaultStore, sync: WorkspaceSync):
        self.state = state
        self.store = store
        self.sync = sync

    async def create_note(
        self, title: str = "", parent_path: str | None = None
    ) -> NoteRecord:
        """
        Create a note, open it and mark it as newly created.

        A newly created note that is closed before being renamed or saved is
        deleted again (see ``close_tab``).

        Args:
            title: Initial title (the store picks a default when empty)
            parent_path: Folder to create the note in, root when omitted

        Returns:
            The created record
        """
        parent = normalize(parent_path)
        record = await self.store.create_note(title, parent or None)
        self.state.mark_newly_created(record.id)
        if parent:
            self.state.expand(parent)
        logger.info("Created note %s", record.id)

        await self.sync.refresh()
        await self.open_note(record.id)
        return record

    async def create_folder(
        self, name: str = DEFAULT_FOLDER_NAME, parent_path: str | None = None
    ) -> str:
        """Create a folder and return its path."""
        parent = normalize(parent_path)
        result = await self.store.create_folder(name or DEFAULT_FOLDER_NAME, parent or None)
        path = normalize(result.path)
        self.state.mark_newly_created(path)
        if parent:
            self.state.expand(parent)
        logger.info("Created folder %s", path)

        await self.sync.refresh()
        return path

    async def open_note(self, note_id: str) -> Tab:
        """
        Open a note as the active tab and reveal it in the tree.

        An unknown id forces one refresh before giving up.

        Raises:
            NotFoundError: If the note is not in the vault after refreshing
        """
        record = self.state.get_note(note_id)
        if record is None:
            await self.sync.refresh()
            record = self.state.get_note(note_id)
            if record is None:
                raise NotFoundError(note_id)

        tab = self.state.open_tab(record)
        self.state.set_active(record.id)
        self.state.reveal(record.path)
        return tab

    def save_note(self, note_id: str) -> None:
        """Record that the user saved a note, confirming a new creation."""
        self.state.clear_newly_created(note_id)

    async def close_tab(self, tab_id: str, *, force: bool = False) -> bool:
        """
        Close a tab, activating its neighbour when it was active.

        Args:
            tab_id: Tab to close
            force: Close even if the tab is pinned

        Returns:
            True if the tab was closed
        """
        if self.state.is_pinned(tab_id) and not force:
            logger.debug("Pinned tab %s cannot be closed", tab_id)
            return False

        tabs = self.state.get_open_tabs()
        index = next((i for i, t in enumerate(tabs) if t.id == tab_id), None)
        if index is None:
            return False
        tab = tabs[index]
        was_active = self.state.active_id == tab_id

        if self.state.is_newly_created(tab_id):
            await self._discard_abandoned(tab)

        self.state.close_tab(tab_id)
        if was_active:
            remaining = self.state.get_open_tabs()
            if remaining:
                fallback = remaining[min(index, len(remaining) - 1)]
                self.state.set_active(fallback.id)
            else:
                self.state.set_active("")
        return True

    async def _discard_abandoned(self, tab: Tab) -> None:
        # Created but never renamed or saved: remove it from the vault
        try:
            await self.store.delete_note(tab.id, tab.path or None)
        except VaultError as exc:
            logger.warning("Could not discard abandoned note %s: %s", tab.id, exc)
            return
        self.state.forget_identity(tab.id, folder=False)
        await self.sync.refresh()

    async def delete_items(self, items: Sequence[ItemRef]) -> BatchResult:
        """
        Delete notes and folders one at a time.

        Each successful delete closes the tabs of the item and of everything
        below it. Failures are collected per item.
        """
        result = BatchResult()
        for item in items:
            folder = item.type == ItemType.FOLDER
            try:
                if folder:
                    await self.store.delete_folder(item.id)
                else:
                    await self.store.delete_note(item.id, item.path or None)
            except VaultError as exc:
                logger.warning("Delete of %s failed: %s", item.id, exc)
                result.errors.append(ItemError(item.id, exc.kind, str(exc)))
                continue
            closed = self.state.forget_identity(item.id, folder=folder)
            result.completed.append(item.id)
            logger.info("Deleted %s %s (%d tabs closed)", item.type, item.id, len(closed))

        if not self.state.active_id:
            remaining = self.state.get_open_tabs()
            if remaining:
                self.state.set_active(remaining[0].id)

        await self.sync.refresh()
        return result

"""Rename and move coordination.

Every operation follows the same shape: call the store, then (only on
success) cascade the identity change through VaultState, then refresh.
A failed store call leaves workspace state untouched.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from knowhub.core.errors import InvalidOperationError, NotFoundError, VaultError
from knowhub.core.paths import (
    basename,
    is_descendant_or_self,
    join,
    normalize,
    parent_of,
    sanitize_name,
)
from knowhub.core.state import VaultState
from knowhub.core.types import ItemType, NoteRecord
from knowhub.vault.protocol import VaultStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

RefreshCallback = Callable[[], Awaitable[object]]


class MoveCoordinator:
    """Orchestrates note/folder renames and moves against the store."""

    def __init__(
        self,
        state: VaultState,
        store: VaultStore,
        refresh: RefreshCallback | None = None,
    ):
        """
        Initialize move coordinator.

        Args:
            state: Vault state whose references get rewritten
            store: Backing store performing the actual rename/move
            refresh: Coroutine that re-pulls the listing (usually
                ``WorkspaceSync.refresh``)
        """
        self.state = state
        self.store = store
        self._refresh_callback = refresh

    async def refresh(self) -> None:
        if self._refresh_callback is not None:
            await self._refresh_callback()

    async def _run(
        self, operation: str, call: Callable[[], Awaitable[T]], *, refresh: bool
    ) -> T:
        """Call the store, retrying once after a forced refresh on NotFound."""
        try:
            try:
                return await call()
            except NotFoundError as exc:
                logger.warning("%s: %s; refreshing and retrying once", operation, exc)
                await self.refresh()
                return await call()
        except VaultError as exc:
            logger.warning("%s failed: %s", operation, exc)
            if refresh:
                await self._resync()
            raise

    async def _resync(self) -> None:
        # Re-derive view state from disk truth after a failed call
        try:
            await self.refresh()
        except VaultError:
            logger.exception("Refresh after failed operation also failed")

    async def rename_note(
        self,
        old_id: str,
        new_title: str,
        path: str | None = None,
        *,
        refresh: bool = True,
    ) -> NoteRecord | None:
        """
        Rename a note; its new id is derived from the sanitized title.

        Args:
            old_id: Current note id
            new_title: Title typed by the user
            path: Parent folder path (looked up from state when omitted)
            refresh: Re-pull the listing afterwards

        Returns:
            The renamed record, or the unchanged record for a no-op rename

        Raises:
            InvalidOperationError: If the sanitized title is empty
            ConflictError: If a note with that name already exists
        """
        old_id = normalize(old_id)
        name = sanitize_name(new_title)
        if not name:
            raise InvalidOperationError("Note title cannot be empty")

        existing = self.state.get_note(old_id)
        if path is not None:
            parent = normalize(path)
        elif existing is not None:
            parent = existing.path
        else:
            parent = parent_of(old_id)
        new_id = join(parent, name)

        if new_id == old_id:
            self.state.clear_newly_created(old_id)
            logger.debug("Rename of %s is a no-op", old_id)
            return existing

        record = await self._run(
            "rename_note",
            lambda: self.store.rename_note(old_id, new_id, parent or None),
            refresh=refresh,
        )
        self.state.rewrite_identity(old_id, record.id, folder=False, record=record)
        self.state.clear_newly_created(record.id)
        logger.info("Renamed note %s -> %s", old_id, record.id)

        if refresh:
            await self.refresh()
        return record

    async def rename_folder(
        self, old_path: str, new_name: str, *, refresh: bool = True
    ) -> str:
        """
        Rename a folder and cascade the new prefix to every descendant.

        Returns:
            The folder's new path
        """
        old_path = normalize(old_path)
        if not old_path:
            raise InvalidOperationError("The vault root cannot be renamed")
        name = sanitize_name(new_name)
        if not name:
            raise InvalidOperationError("Folder name cannot be empty")

        if join(parent_of(old_path), name) == old_path:
            self.state.clear_newly_created(old_path)
            return old_path

        result = await self._run(
            "rename_folder",
            lambda: self.store.rename_folder(old_path, name),
            refresh=refresh,
        )
        new_path = normalize(result.path)
        summary = self.state.rewrite_identity(old_path, new_path, folder=True)
        self.state.clear_newly_created(new_path)
        logger.info(
            "Renamed folder %s -> %s (%d tabs rewritten)",
            old_path,
            new_path,
            summary.tabs,
        )

        if refresh:
            await self.refresh()
        return new_path

    async def move_note(
        self,
        note_id: str,
        from_path: str | None,
        to_path: str | None,
        *,
        refresh: bool = True,
    ) -> NoteRecord:
        """
        Move a note into another folder (``''``/None is the vault root).

        Returns:
            The moved record (the existing one when already in place)
        """
        note_id = normalize(note_id)
        target = normalize(to_path)
        existing = self.state.get_note(note_id)
        if from_path is not None:
            source = normalize(from_path)
        elif existing is not None:
            source = existing.path
        else:
            source = parent_of(note_id)

        if existing is not None and source == target:
            return existing

        record = await self._run(
            "move_note",
            lambda: self.store.move_note(note_id, source or None, target or None),
            refresh=refresh,
        )
        self.state.rewrite_identity(note_id, record.id, folder=False, record=record)
        logger.info("Moved note %s -> %s", note_id, record.id)

        if refresh:
            await self.refresh()
        return record

    async def move_folder(
        self, from_path: str, to_path: str | None, *, refresh: bool = True
    ) -> str:
        """
        Move a folder under another folder.

        Raises:
            InvalidOperationError: If the target is the folder itself or one
                of its descendants. Checked before the store is called.

        Returns:
            The folder's new path
        """
        source = normalize(from_path)
        target = normalize(to_path)
        if not source:
            raise InvalidOperationError("The vault root cannot be moved")
        if is_descendant_or_self(target, source):
            raise InvalidOperationError(
                f"Cannot move folder '{source}' into itself or its descendants"
            )
        if parent_of(source) == target:
            return source

        new_path = join(target, basename(source))
        await self._run(
            "move_folder",
            lambda: self.store.move_folder(source, target),
            refresh=refresh,
        )
        summary = self.state.rewrite_identity(source, new_path, folder=True)
        logger.info(
            "Moved folder %s -> %s (%d tabs rewritten)", source, new_path, summary.tabs
        )

        if refresh:
            await self.refresh()
        return new_path

    async def handle_item_rename(
        self, item_id: str, item_type: str, new_title: str
    ) -> str | None:
        """Handler for the ``item-rename`` command; returns the new id."""
        if item_type == ItemType.FOLDER:
            return await self.rename_folder(item_id, new_title)
        record = await self.rename_note(item_id, new_title)
        return record.id if record else None

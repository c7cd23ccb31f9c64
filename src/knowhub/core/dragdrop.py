"""Multi-item drag and drop over the vault tree."""

import logging
from dataclasses import dataclass
from enum import StrEnum

from knowhub.core.errors import NotFoundError, VaultError
from knowhub.core.moves import MoveCoordinator
from knowhub.core.paths import is_descendant_or_self
from knowhub.core.state import VaultState
from knowhub.core.types import BatchResult, FolderRecord, ItemError, NoteRecord

logger = logging.getLogger(__name__)


class DragPhase(StrEnum):
    """Lifecycle of a single drag gesture."""

    IDLE = "idle"
    DRAGGING = "dragging"
    HOVERING = "hovering"
    DROPPED = "dropped"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class DropTarget:
    """Resolved destination folder for a drop (``''`` is the vault root)."""

    path: str
    over_id: str | None = None


class DragDropController:
    """Drag source/target logic built on MoveCoordinator."""

    def __init__(self, state: VaultState, coordinator: MoveCoordinator):
        self.state = state
        self.coordinator = coordinator
        self.phase = DragPhase.IDLE
        self.items: tuple[str, ...] = ()
        self.target: DropTarget | None = None

    @property
    def active(self) -> bool:
        return self.phase in (DragPhase.DRAGGING, DragPhase.HOVERING)

    def start(self, item_id: str) -> tuple[str, ...]:
        """
        Begin dragging ``item_id``.

        Dragging an item outside the current selection replaces the selection
        with just that item, so a drag always carries what is selected.

        Returns:
            Ids being dragged
        """
        if not self.state.is_selected(item_id):
            self.state.replace_selection([item_id])
        self.items = tuple(sorted(self.state.selected_ids))
        self.target = None
        self.phase = DragPhase.DRAGGING
        logger.debug("Drag started with %d items", len(self.items))
        return self.items

    def resolve_target(self, over_id: str | None) -> DropTarget | None:
        """Folder -> that folder; note -> its parent; empty space -> root."""
        if not over_id:
            return DropTarget("")
        record = self.state.get_record(over_id)
        if record is None:
            return None
        if record.is_folder:
            return DropTarget(record.id, over_id)
        return DropTarget(record.path, over_id)

    def hover(self, over_id: str | None) -> DropTarget | None:
        """Recompute the drop target for a pointer-over event."""
        if not self.active:
            return None
        self.target = self.resolve_target(over_id)
        self.phase = DragPhase.HOVERING if self.target else DragPhase.DRAGGING
        return self.target

    def cancel(self) -> None:
        self.phase = DragPhase.CANCELLED
        self.items = ()
        self.target = None

    def _batch(self) -> list[NoteRecord | FolderRecord | str]:
        """Current records for the selection; unknown ids are returned as-is."""
        ids = sorted(self.state.selected_ids) or list(self.items)
        resolved: list[NoteRecord | FolderRecord | str] = [
            self.state.get_record(i) or i for i in ids
        ]
        folders = [r.id for r in resolved if isinstance(r, FolderRecord)]

        def carried_by_folder(item: NoteRecord | FolderRecord | str) -> bool:
            # Items inside another dragged folder travel with it
            if isinstance(item, str):
                return False
            return any(
                f != item.id
                and (
                    is_descendant_or_self(item.id, f)
                    or is_descendant_or_self(item.path, f)
                )
                for f in folders
            )

        return [item for item in resolved if not carried_by_folder(item)]

    def can_drop(self, target: DropTarget | None = None) -> bool:
        """Whether at least one dragged item would actually move."""
        target = target or self.target
        if target is None:
            return False
        for item in self._batch():
            if isinstance(item, str) or item.path == target.path:
                continue
            if item.is_folder and is_descendant_or_self(target.path, item.id):
                continue
            return True
        return False

    async def drop_on(self, over_id: str | None) -> BatchResult:
        """Hover over ``over_id`` and drop there."""
        self.hover(over_id)
        return await self.drop()

    async def drop(self) -> BatchResult:
        """
        Move every selected item into the hovered target, one at a time.

        Failures are recorded per item and never roll back moves that already
        succeeded. A single refresh runs after the batch if anything moved.

        Returns:
            Aggregate result with one error entry per failed item
        """
        result = BatchResult()
        if self.phase != DragPhase.HOVERING or self.target is None:
            self.cancel()
            return result

        target = self.target.path
        for item in self._batch():
            if isinstance(item, str):
                error = NotFoundError(item)
                result.errors.append(ItemError(item, error.kind, str(error)))
                continue
            if item.path == target or (
                item.is_folder and is_descendant_or_self(target, item.id)
            ):
                result.skipped.append(item.id)
                continue
            try:
                if item.is_folder:
                    new_id = await self.coordinator.move_folder(
                        item.id, target, refresh=False
                    )
                else:
                    moved = await self.coordinator.move_note(
                        item.id, item.path, target, refresh=False
                    )
                    new_id = moved.id
            except VaultError as exc:
                logger.warning("Drop of %s into '%s' failed: %s", item.id, target, exc)
                result.errors.append(ItemError(item.id, exc.kind, str(exc)))
            else:
                result.completed.append(new_id)

        if result.completed:
            if target:
                self.state.expand(target)
            await self.coordinator.refresh()

        logger.info(
            "Dropped into '%s': %d moved, %d skipped, %d failed",
            target,
            len(result.completed),
            len(result.skipped),
            len(result.errors),
        )
        self.phase = DragPhase.DROPPED
        self.items = ()
        self.target = None
        return result

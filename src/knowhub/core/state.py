"""In-memory vault state: records, tree and workspace view state.

VaultState is the only owner of workspace state (open tabs, pinned tabs,
expanded folders, selection, active id and newly-created markers). Other
components mutate it exclusively through the methods below so that identity
cascades happen in one place.
"""

import logging
from collections.abc import Callable, Iterable, Sequence

from knowhub.core.events import VAULT_CHANGED, WORKSPACE_CHANGED, EventBus
from knowhub.core.paths import (
    ancestors,
    basename,
    is_descendant_or_self,
    normalize,
    parent_of,
)
from knowhub.core.paths import rewrite_prefix as _rewrite_prefix
from knowhub.core.tree import build_tree
from knowhub.core.types import (
    FolderRecord,
    NoteRecord,
    PersistedTab,
    PersistedWorkspace,
    RewriteSummary,
    Tab,
    TreeNode,
    WorkspaceSnapshot,
)

logger = logging.getLogger(__name__)

AnyRecord = NoteRecord | FolderRecord


class VaultState:
    """Single source of truth for one open vault."""

    def __init__(self, events: EventBus | None = None):
        """
        Initialize empty vault state.

        Args:
            events: Event bus shared with the rest of the workspace
        """
        self.events = events or EventBus()
        self._records: list[AnyRecord] = []
        self._by_id: dict[str, AnyRecord] = {}
        self._tree: list[TreeNode] = []

        self._open_tabs: list[Tab] = []
        self._pinned: set[str] = set()
        self._expanded: set[str] = set()
        self._selected: set[str] = set()
        self._active_id = ""
        self._newly_created: set[str] = set()

    # Records and tree

    def set_records(self, records: Sequence[AnyRecord]) -> None:
        """Replace the record list with a store-confirmed listing."""
        self._records = list(records)
        self._reindex()

    def _reindex(self) -> None:
        self._by_id = {}
        for record in self._records:
            self._by_id.setdefault(record.id, record)
        self._tree = build_tree(self._records)

    @property
    def records(self) -> tuple[AnyRecord, ...]:
        return tuple(self._records)

    @property
    def notes(self) -> list[NoteRecord]:
        return [r for r in self._records if isinstance(r, NoteRecord)]

    @property
    def folders(self) -> list[FolderRecord]:
        return [r for r in self._records if isinstance(r, FolderRecord)]

    def get_record(self, item_id: str) -> AnyRecord | None:
        """Look up a record by id (first seen wins on duplicate ids)."""
        return self._by_id.get(normalize(item_id))

    def get_note(self, item_id: str) -> NoteRecord | None:
        item_id = normalize(item_id)
        return next((n for n in self.notes if n.id == item_id), None)

    def get_folder(self, item_id: str) -> FolderRecord | None:
        item_id = normalize(item_id)
        return next((f for f in self.folders if f.id == item_id), None)

    def get_tree(self) -> list[TreeNode]:
        return self._tree

    # Tabs

    def get_open_tabs(self) -> list[Tab]:
        return list(self._open_tabs)

    def get_tab(self, item_id: str) -> Tab | None:
        return next((t for t in self._open_tabs if t.id == item_id), None)

    def open_tab(self, record: AnyRecord | Tab) -> Tab:
        """Append a tab for ``record``, or refresh the existing one in place."""
        tab = (
            record
            if isinstance(record, Tab)
            else Tab(id=record.id, path=record.path, title=record.title)
        )
        for index, existing in enumerate(self._open_tabs):
            if existing.id == tab.id:
                self._open_tabs[index] = tab
                break
        else:
            self._open_tabs.append(tab)
        self._sort_tabs()
        self._touched()
        return tab

    def update_tab(self, item_id: str, **changes: object) -> Tab | None:
        """Replace fields of an open tab without changing its position."""
        for index, existing in enumerate(self._open_tabs):
            if existing.id == item_id:
                updated = existing.model_copy(update=changes)
                self._open_tabs[index] = updated
                return updated
        return None

    def close_tab(self, item_id: str) -> Tab | None:
        """Remove a tab; returns the closed tab or None if it was not open."""
        closed = self.close_tabs([item_id])
        return closed[0] if closed else None

    def close_tabs(self, ids: Iterable[str]) -> list[Tab]:
        targets = set(ids)
        closed = [t for t in self._open_tabs if t.id in targets]
        self._open_tabs = [t for t in self._open_tabs if t.id not in targets]
        self._pinned -= targets
        if self._active_id in targets:
            self._active_id = ""
        if closed:
            self._touched()
        return closed

    def _touched(self) -> None:
        self.events.emit(WORKSPACE_CHANGED)

    def _sort_tabs(self) -> None:
        # Stable: pinned tabs first, otherwise insertion order
        self._open_tabs.sort(key=lambda t: 0 if t.id in self._pinned else 1)

    @property
    def active_id(self) -> str:
        return self._active_id

    def set_active(self, item_id: str) -> None:
        if item_id != self._active_id:
            self._active_id = item_id
            self._touched()

    def pin(self, item_id: str) -> None:
        if item_id not in self._pinned:
            self._pinned.add(item_id)
            self._sort_tabs()
            self._touched()

    def unpin(self, item_id: str) -> None:
        if item_id in self._pinned:
            self._pinned.discard(item_id)
            self._sort_tabs()
            self._touched()

    def toggle_pin(self, item_id: str) -> bool:
        """Flip the pinned flag; returns the new value."""
        if item_id in self._pinned:
            self.unpin(item_id)
            return False
        self.pin(item_id)
        return True

    def is_pinned(self, item_id: str) -> bool:
        return item_id in self._pinned

    @property
    def pinned_tabs(self) -> frozenset[str]:
        return frozenset(self._pinned)

    # Expanded folders

    def is_expanded(self, folder_id: str) -> bool:
        return normalize(folder_id) in self._expanded

    def expand(self, folder_id: str) -> None:
        folder_id = normalize(folder_id)
        if folder_id and folder_id not in self._expanded:
            self._expanded.add(folder_id)
            self._touched()

    def collapse(self, folder_id: str) -> None:
        folder_id = normalize(folder_id)
        if folder_id in self._expanded:
            self._expanded.discard(folder_id)
            self._touched()

    def toggle_expanded(self, folder_id: str) -> bool:
        if self.is_expanded(folder_id):
            self.collapse(folder_id)
            return False
        self.expand(folder_id)
        return True

    def reveal(self, path: str) -> bool:
        """Expand every ancestor folder of ``path``; True if anything changed."""
        missing = [p for p in ancestors(path) if p not in self._expanded]
        if missing:
            self._expanded.update(missing)
            self._touched()
        return bool(missing)

    def prune_expanded(self, valid_ids: set[str]) -> list[str]:
        """Drop expanded entries whose folder no longer exists."""
        stale = sorted(self._expanded - valid_ids)
        self._expanded -= set(stale)
        return stale

    @property
    def expanded_folders(self) -> frozenset[str]:
        return frozenset(self._expanded)

    # Selection

    def is_selected(self, item_id: str) -> bool:
        return item_id in self._selected

    def select(self, item_id: str, additive: bool = False) -> None:
        if not additive:
            self._selected.clear()
        self._selected.add(item_id)

    def toggle_selected(self, item_id: str) -> bool:
        if item_id in self._selected:
            self._selected.discard(item_id)
            return False
        self._selected.add(item_id)
        return True

    def replace_selection(self, ids: Iterable[str]) -> None:
        self._selected = set(ids)

    def deselect(self, ids: Iterable[str]) -> None:
        self._selected -= set(ids)

    def clear_selection(self) -> None:
        self._selected.clear()

    @property
    def selected_ids(self) -> frozenset[str]:
        return frozenset(self._selected)

    # Newly created markers

    def mark_newly_created(self, item_id: str) -> None:
        self._newly_created.add(item_id)

    def clear_newly_created(self, item_id: str) -> None:
        self._newly_created.discard(item_id)

    def is_newly_created(self, item_id: str) -> bool:
        return item_id in self._newly_created

    def prune_newly_created(self, valid_ids: set[str]) -> None:
        self._newly_created &= valid_ids

    @property
    def newly_created_ids(self) -> frozenset[str]:
        return frozenset(self._newly_created)

    # Identity cascades

    def _shared_id(self, item_id: str) -> bool:
        """True when a note and a folder both carry ``item_id``."""
        return (
            self.get_note(item_id) is not None
            and self.get_folder(item_id) is not None
        )

    def rewrite_identity(
        self,
        old_id: str,
        new_id: str,
        *,
        folder: bool,
        record: AnyRecord | None = None,
    ) -> RewriteSummary:
        """
        Rewrite every reference to ``old_id`` after a confirmed rename or move.

        For a folder the old id is treated as a path prefix, so every
        descendant note and folder is rewritten as well. Notes are matched by
        their parent path, so a note ``a`` (``a.md``) sitting next to folder
        ``a`` keeps its identity when the folder changes, and the other way
        round. All collections are computed first and swapped in together,
        so no caller can observe a half-applied cascade.

        Args:
            old_id: Identity before the change
            new_id: Identity reported by the store after the change
            folder: Whether the changed entity is a folder
            record: Fresh record for a renamed/moved note, if available

        Returns:
            Summary of what was rewritten
        """
        old_id = normalize(old_id)
        new_id = normalize(new_id)
        shared = self._shared_id(old_id)

        if folder:

            def remap_folder(value: str) -> str:
                return _rewrite_prefix(value, old_id, new_id)

            def remap_note(value: str) -> str:
                # A note id equal to the folder id belongs to a sibling file
                if value == old_id:
                    return value
                return _rewrite_prefix(value, old_id, new_id)

            def touches(tab: Tab) -> bool:
                return remap_note(tab.id) != tab.id or bool(
                    tab.path and is_descendant_or_self(tab.path, old_id)
                )

        else:

            def remap_folder(value: str) -> str:
                return value

            def remap_note(value: str) -> str:
                return new_id if value == old_id else value

            def touches(tab: Tab) -> bool:
                return tab.id == old_id

        def remap_mixed(value: str) -> str:
            # Selection and markers hold notes and folders alike; an id both
            # kinds share cannot be attributed and stays put
            if value == old_id:
                return value if shared else new_id
            return remap_note(value)

        tabs, tab_count = self._rewritten_tabs(
            touches, remap_folder if folder else remap_note, folder, record
        )
        pinned = {remap_note(i) for i in self._pinned}
        expanded = {remap_folder(i) for i in self._expanded}
        selected = {remap_mixed(i) for i in self._selected}
        newly_created = {remap_mixed(i) for i in self._newly_created}
        active_id = remap_note(self._active_id) if self._active_id else ""
        records = self._rewritten_records(old_id, new_id, folder, record)

        summary = RewriteSummary(
            old_id=old_id,
            new_id=new_id,
            tabs=tab_count,
            pinned=sum(1 for i in self._pinned if remap_note(i) != i),
            expanded=sum(1 for i in self._expanded if remap_folder(i) != i),
            selected=sum(1 for i in self._selected if remap_mixed(i) != i),
            active_changed=active_id != self._active_id,
        )

        self._open_tabs = tabs
        self._pinned = pinned
        self._expanded = expanded
        self._selected = selected
        self._newly_created = newly_created
        self._active_id = active_id
        self._records = records
        self._reindex()
        self._sort_tabs()

        logger.debug(
            "Rewrote %s -> %s (tabs=%d pinned=%d expanded=%d selected=%d)",
            old_id,
            new_id,
            summary.tabs,
            summary.pinned,
            summary.expanded,
            summary.selected,
        )
        return summary

    def _rewritten_tabs(
        self,
        touches: Callable[[Tab], bool],
        remap: Callable[[str], str],
        folder: bool,
        record: AnyRecord | None,
    ) -> tuple[list[Tab], int]:
        tabs: list[Tab] = []
        seen: set[str] = set()
        count = 0
        for tab in self._open_tabs:
            if touches(tab):
                count += 1
                if record is not None and not folder:
                    tab = Tab(id=record.id, path=record.path, title=record.title)
                else:
                    new_tab_id = remap(tab.id)
                    new_path = remap(tab.path) if folder else parent_of(new_tab_id)
                    tab = tab.model_copy(update={"id": new_tab_id, "path": new_path})
            if tab.id in seen:
                logger.warning("Dropping duplicate tab %s after rewrite", tab.id)
                continue
            seen.add(tab.id)
            tabs.append(tab)
        return tabs, count

    def _rewritten_records(
        self,
        old_id: str,
        new_id: str,
        folder: bool,
        record: AnyRecord | None,
    ) -> list[AnyRecord]:
        records: list[AnyRecord] = []
        for existing in self._records:
            if isinstance(existing, FolderRecord):
                if folder and is_descendant_or_self(existing.id, old_id):
                    renamed = existing.id == old_id
                    existing = existing.model_copy(
                        update={
                            "id": _rewrite_prefix(existing.id, old_id, new_id),
                            "path": (
                                parent_of(new_id)
                                if renamed
                                else _rewrite_prefix(existing.path, old_id, new_id)
                            ),
                            "title": basename(new_id) if renamed else existing.title,
                        }
                    )
            elif folder:
                if existing.path and is_descendant_or_self(existing.path, old_id):
                    existing = existing.model_copy(
                        update={
                            "id": _rewrite_prefix(existing.id, old_id, new_id),
                            "path": _rewrite_prefix(existing.path, old_id, new_id),
                        }
                    )
            elif existing.id == old_id:
                existing = record or existing.model_copy(
                    update={"id": new_id, "path": parent_of(new_id)}
                )
            records.append(existing)
        return records

    def forget_identity(self, item_id: str, *, folder: bool) -> list[Tab]:
        """
        Drop every reference to a deleted entity (and its descendants).

        A note and a folder sharing ``item_id`` are told apart the same way
        ``rewrite_identity`` does it: only the deleted kind is forgotten.

        Returns:
            Tabs that were closed
        """
        item_id = normalize(item_id)
        shared = self._shared_id(item_id)

        if folder:

            def folder_gone(value: str) -> bool:
                return is_descendant_or_self(value, item_id)

            def note_gone(value: str) -> bool:
                return value != item_id and is_descendant_or_self(value, item_id)

        else:

            def folder_gone(value: str) -> bool:
                return False

            def note_gone(value: str) -> bool:
                return value == item_id

        def mixed_gone(value: str) -> bool:
            if value == item_id:
                return not shared
            return note_gone(value)

        def record_gone(existing: AnyRecord) -> bool:
            if isinstance(existing, FolderRecord):
                return folder_gone(existing.id)
            if folder:
                return bool(existing.path) and folder_gone(existing.path)
            return existing.id == item_id

        closed = [
            t
            for t in self._open_tabs
            if note_gone(t.id) or (folder and t.path and folder_gone(t.path))
        ]
        closed_ids = {t.id for t in closed}
        self._open_tabs = [t for t in self._open_tabs if t.id not in closed_ids]
        self._pinned = {
            i for i in self._pinned if i not in closed_ids and not note_gone(i)
        }
        self._expanded = {i for i in self._expanded if not folder_gone(i)}
        self._selected = {i for i in self._selected if not mixed_gone(i)}
        self._newly_created = {i for i in self._newly_created if not mixed_gone(i)}
        if self._active_id in closed_ids or note_gone(self._active_id):
            self._active_id = ""
        self._records = [r for r in self._records if not record_gone(r)]
        self._reindex()
        logger.debug("Forgot %s (closed %d tabs)", item_id, len(closed))
        return closed

    # Snapshots and persistence

    def snapshot(self) -> WorkspaceSnapshot:
        return WorkspaceSnapshot(
            open_tabs=tuple(self._open_tabs),
            pinned_tabs=frozenset(self._pinned),
            expanded_folders=frozenset(self._expanded),
            selected_ids=frozenset(self._selected),
            active_id=self._active_id,
            newly_created_ids=frozenset(self._newly_created),
        )

    def to_persisted(self) -> PersistedWorkspace:
        return PersistedWorkspace(
            expanded_folders=sorted(self._expanded),
            pinned_tabs=sorted(self._pinned),
            open_tabs=[
                PersistedTab(id=t.id, path=t.path, title=t.title)
                for t in self._open_tabs
            ],
            active_id=self._active_id,
        )

    def restore(self, persisted: PersistedWorkspace) -> None:
        """Load workspace view state saved by a previous session."""
        self._open_tabs = []
        for saved in persisted.open_tabs:
            if any(t.id == saved.id for t in self._open_tabs):
                continue
            self._open_tabs.append(
                Tab(
                    id=saved.id,
                    path=normalize(saved.path),
                    title=saved.title or basename(saved.id),
                )
            )
        tab_ids = {t.id for t in self._open_tabs}
        self._pinned = {i for i in persisted.pinned_tabs if i in tab_ids}
        self._expanded = {normalize(i) for i in persisted.expanded_folders if i}
        self._active_id = persisted.active_id if persisted.active_id in tab_ids else ""
        self._selected.clear()
        self._newly_created.clear()
        self._sort_tabs()

    def notify_changed(self) -> None:
        """Fire ``vault-changed`` so listeners re-pull the tree."""
        self.events.emit(VAULT_CHANGED)

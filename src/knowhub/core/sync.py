"""Reconcile workspace view state against an authoritative store listing."""

import logging

from knowhub.core.state import VaultState
from knowhub.core.tree import collect_folder_ids
from knowhub.core.types import SyncReport
from knowhub.vault.protocol import VaultStore

logger = logging.getLogger(__name__)

# Tabs that are not backed by a note record.
VIRTUAL_TAB_IDS = frozenset({"settings", "graph"})
VIRTUAL_TAB_PREFIX = "preview-"


def is_virtual_tab(tab_id: str) -> bool:
    """True for application tabs (settings, graph, previews) with no record."""
    return tab_id in VIRTUAL_TAB_IDS or tab_id.startswith(VIRTUAL_TAB_PREFIX)


class WorkspaceSync:
    """Runs after every refresh from the store to keep view state coherent."""

    def __init__(self, state: VaultState, store: VaultStore):
        """
        Initialize workspace sync.

        Args:
            state: Vault state to reconcile
            store: Backing store providing the authoritative listing
        """
        self.state = state
        self.store = store

    async def refresh(self) -> SyncReport:
        """
        Pull a fresh listing, rebuild the tree and reconcile workspace state.

        Returns:
            What the reconcile pass changed
        """
        records = await self.store.list_records()
        self.state.set_records(records)
        report = self.reconcile()
        logger.debug(
            "Refreshed %d records (missing=%d pruned=%d)",
            len(records),
            len(report.missing_tabs),
            len(report.pruned_folders),
        )
        self.state.notify_changed()
        return report

    def reconcile(self) -> SyncReport:
        """Apply the current record list to tabs, expansion and selection."""
        state = self.state
        report = SyncReport()
        notes = {n.id: n for n in state.notes}
        record_ids = {r.id for r in state.records}

        for tab in state.get_open_tabs():
            if is_virtual_tab(tab.id):
                continue
            note = notes.get(tab.id)
            if note is None:
                if not tab.missing:
                    state.update_tab(tab.id, missing=True)
                    report.missing_tabs.append(tab.id)
                    logger.info("Tab %s is missing on disk", tab.id)
                continue
            if tab.missing:
                report.restored_tabs.append(tab.id)
            if tab.missing or tab.title != note.title or tab.path != note.path:
                state.update_tab(tab.id, title=note.title, path=note.path, missing=False)

        report.pruned_folders = state.prune_expanded(
            collect_folder_ids(state.get_tree())
        )

        gone = sorted(i for i in state.selected_ids if i not in record_ids)
        if gone:
            state.deselect(gone)
            report.deselected = gone

        state.prune_newly_created(record_ids)

        active = state.active_id
        if (
            active
            and active not in record_ids
            and state.get_tab(active) is None
            and not is_virtual_tab(active)
        ):
            state.set_active("")
            report.active_cleared = True

        return report

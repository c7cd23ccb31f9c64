"""Tests for knowhub.core.moves module."""

import asyncio

import pytest

from knowhub.core.errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    PermissionDeniedError,
)
from knowhub.core.tree import find_node
from knowhub.core.types import Tab
from knowhub.core.workspace import Workspace


async def _open(ws, *ids):
    for item_id in ids:
        await ws.items.open_note(item_id)


def _view(snapshot):
    """Snapshot minus newly-created markers."""
    return (
        snapshot.open_tabs,
        snapshot.pinned_tabs,
        snapshot.expanded_folders,
        snapshot.selected_ids,
        snapshot.active_id,
    )


class TestRenameFolder:
    """Tests for MoveCoordinator.rename_folder."""

    @pytest.mark.asyncio
    async def test_rename_rewrites_tree_and_tabs(self, make_store, make_note, make_folder):
        """Renaming 'a' to 'z' moves the nested note and its tab."""
        store = make_store([make_folder("a"), make_folder("a/b"), make_note("a/b/note1")])
        ws = Workspace(store, autosave=False)
        await ws.load()
        ws.state.open_tab(Tab(id="a/b/note1", path="a/b"))

        new_path = await ws.moves.rename_folder("a", "z")

        assert new_path == "z"
        assert find_node(ws.get_tree(), "z/b/note1") is not None
        assert find_node(ws.get_tree(), "a/b/note1") is None
        tab = ws.get_open_tabs()[0]
        assert (tab.id, tab.path) == ("z/b/note1", "z/b")

    @pytest.mark.asyncio
    async def test_rename_transfers_every_reference(self, workspace):
        """Pins, expansion, selection and active id follow the folder."""
        await workspace.load()
        await _open(workspace, "a/top", "a/b/note1")
        workspace.state.pin("a/top")
        workspace.state.replace_selection(["a/b"])

        await workspace.moves.rename_folder("a", "z")

        state = workspace.state
        assert [t.id for t in state.get_open_tabs()] == ["z/top", "z/b/note1"]
        assert state.pinned_tabs == {"z/top"}
        assert state.expanded_folders == {"z", "z/b"}
        assert state.selected_ids == {"z/b"}
        assert state.active_id == "z/b/note1"

    @pytest.mark.asyncio
    async def test_rename_root_rejected(self, workspace):
        """The vault root has no name to change."""
        with pytest.raises(InvalidOperationError):
            await workspace.moves.rename_folder("", "x")

    @pytest.mark.asyncio
    async def test_rename_to_same_name(self, workspace, store):
        """Renaming a folder to its current name skips the store."""
        await workspace.load()

        assert await workspace.moves.rename_folder("a/b", "b") == "a/b"
        assert store.store_calls("rename_folder") == []

    @pytest.mark.asyncio
    async def test_conflict_leaves_state_untouched(self, workspace, store):
        """A failed store call rewrites nothing and resyncs once."""
        await workspace.load()
        await _open(workspace, "a/top")
        before = workspace.state.snapshot()

        with pytest.raises(ConflictError):
            await workspace.moves.rename_folder("a", "docs")

        assert workspace.state.snapshot() == before
        assert len(store.store_calls("list_records")) == 2


class TestRenameNote:
    """Tests for MoveCoordinator.rename_note."""

    @pytest.mark.asyncio
    async def test_rename_note(self, workspace, store):
        """The new id is derived from the parent and the sanitized title."""
        await workspace.load()
        await _open(workspace, "a/top")

        record = await workspace.moves.rename_note("a/top", "Top: v2")

        assert record.id == "a/Top- v2"
        assert store.store_calls("rename_note") == ["a/top"]
        assert workspace.state.active_id == "a/Top- v2"
        assert workspace.get_open_tabs()[0].title == "Top- v2"

    @pytest.mark.asyncio
    async def test_empty_title_rejected(self, workspace, store):
        """A title that sanitizes to nothing never reaches the store."""
        await workspace.load()

        with pytest.raises(InvalidOperationError):
            await workspace.moves.rename_note("a/top", "   ")
        assert store.store_calls("rename_note") == []

    @pytest.mark.asyncio
    async def test_noop_rename_only_clears_marker(self, workspace, store):
        """Renaming to the current title changes nothing but the marker."""
        await workspace.load()
        await _open(workspace, "readme")
        workspace.state.mark_newly_created("readme")
        before = workspace.state.snapshot()

        record = await workspace.moves.rename_note("readme", "readme")

        after = workspace.state.snapshot()
        assert record.id == "readme"
        assert _view(after) == _view(before)
        assert after.newly_created_ids == frozenset()
        assert store.store_calls("rename_note") == []

    @pytest.mark.asyncio
    async def test_rename_clears_newly_created(self, workspace):
        """A real rename confirms a newly created note."""
        await workspace.load()
        workspace.state.mark_newly_created("readme")

        await workspace.moves.rename_note("readme", "intro")

        assert not workspace.state.is_newly_created("intro")
        assert not workspace.state.is_newly_created("readme")

    @pytest.mark.asyncio
    async def test_not_found_retries_once_after_refresh(self, workspace, store):
        """NotFound forces one refresh and one retry."""
        await workspace.load()
        store.fail("rename_note", "a/top", NotFoundError("a/top"))

        record = await workspace.moves.rename_note("a/top", "renamed")

        assert record.id == "a/renamed"
        assert store.store_calls("rename_note") == ["a/top", "a/top"]
        # load, forced refresh, final refresh
        assert len(store.store_calls("list_records")) == 3

    @pytest.mark.asyncio
    async def test_not_found_twice_propagates(self, workspace, store):
        """A second NotFound is surfaced and nothing is rewritten."""
        await workspace.load()
        await _open(workspace, "a/top")
        store.fail("rename_note", "a/top", NotFoundError("a/top"), times=2)

        with pytest.raises(NotFoundError):
            await workspace.moves.rename_note("a/top", "renamed")

        assert workspace.state.get_tab("a/top") is not None
        assert len(store.store_calls("rename_note")) == 2

    @pytest.mark.asyncio
    async def test_permission_denied_not_retried(self, workspace, store):
        """Locked files are reported without retrying."""
        await workspace.load()
        store.fail("rename_note", "readme", PermissionDeniedError("readme"))

        with pytest.raises(PermissionDeniedError):
            await workspace.moves.rename_note("readme", "intro")

        assert store.store_calls("rename_note") == ["readme"]
        assert workspace.state.get_note("readme") is not None

    @pytest.mark.asyncio
    async def test_conflict_surfaces_name(self, workspace, store, make_note):
        """The store's conflict is propagated with the offending name."""
        store.records.append(make_note("a/taken"))
        await workspace.load()

        with pytest.raises(ConflictError, match="taken"):
            await workspace.moves.rename_note("a/top", "taken")


class TestMoves:
    """Tests for move_note and move_folder."""

    @pytest.mark.asyncio
    async def test_move_note(self, workspace):
        """Moving a note rewrites its tab to the new folder."""
        await workspace.load()
        await _open(workspace, "readme")

        record = await workspace.moves.move_note("readme", "", "docs")

        assert record.id == "docs/readme"
        tab = workspace.get_open_tabs()[0]
        assert (tab.id, tab.path) == ("docs/readme", "docs")

    @pytest.mark.asyncio
    async def test_move_note_in_place_is_noop(self, workspace, store):
        """A note already in the target skips the store."""
        await workspace.load()

        record = await workspace.moves.move_note("a/top", None, "a")

        assert record.id == "a/top"
        assert store.store_calls("move_note") == []

    @pytest.mark.asyncio
    async def test_move_folder_to_root(self, workspace):
        """Moving a nested folder to the root shortens every descendant id."""
        await workspace.load()
        await _open(workspace, "a/b/note1")

        new_path = await workspace.moves.move_folder("a/b", "")

        assert new_path == "b"
        assert workspace.state.active_id == "b/note1"
        assert workspace.state.get_note("b/note1") is not None

    @pytest.mark.parametrize("target", ["a", "a/b", "a/b/c"])
    @pytest.mark.asyncio
    async def test_self_containment_guard(self, workspace, store, target):
        """Moving a folder into itself or below is rejected client-side."""
        await workspace.load()

        with pytest.raises(InvalidOperationError):
            await workspace.moves.move_folder("a", target)

        assert store.store_calls("move_folder") == []

    @pytest.mark.asyncio
    async def test_move_folder_into_prefix_sibling(self, workspace):
        """'docs' may move into 'docs-old' since it is not a descendant."""
        await workspace.load()

        assert await workspace.moves.move_folder("docs", "docs-old") == "docs-old/docs"

    @pytest.mark.asyncio
    async def test_move_folder_already_there(self, workspace, store):
        """A folder whose parent is the target does not move."""
        await workspace.load()

        assert await workspace.moves.move_folder("a/b", "a") == "a/b"
        assert store.store_calls("move_folder") == []


class TestConcurrency:
    """Cascades apply to the state current at completion time."""

    @pytest.mark.asyncio
    async def test_tab_opened_during_rename_is_rewritten(self, workspace, store):
        """A tab opened while the store call is in flight still follows."""
        await workspace.load()
        gate = store.hold("rename_folder")

        task = asyncio.create_task(workspace.moves.rename_folder("a", "z"))
        while not store.store_calls("rename_folder"):
            await asyncio.sleep(0)
        await _open(workspace, "a/top")
        gate.set()
        await task

        assert [t.id for t in workspace.get_open_tabs()] == ["z/top"]
        assert workspace.state.active_id == "z/top"
        assert workspace.is_expanded("z")


class TestItemRenameCommand:
    """Tests for the item-rename command handler."""

    @pytest.mark.asyncio
    async def test_rename_folder_command(self, workspace):
        """Folder renames go through rename_folder."""
        await workspace.load()

        assert await workspace.rename_item("docs", "folder", "manuals") == "manuals"
        assert workspace.state.get_note("manuals/guide") is not None

    @pytest.mark.asyncio
    async def test_rename_note_command(self, workspace):
        """Note renames go through rename_note."""
        await workspace.load()

        assert await workspace.rename_item("docs/guide", "note", "howto") == "docs/howto"

"""Shared test fixtures and configuration."""

from __future__ import annotations

import asyncio
import time

import pytest

from knowhub.core.errors import ConflictError, NotFoundError
from knowhub.core.paths import (
    basename,
    is_descendant_or_self,
    join,
    normalize,
    parent_of,
    rewrite_prefix,
    sanitize_name,
)
from knowhub.core.state import VaultState
from knowhub.core.types import FolderRecord, NoteRecord
from knowhub.core.workspace import Workspace
from knowhub.vault.protocol import CreatedFolder, RenamedFolder


def note(note_id: str, title: str | None = None, created_at: float = 0.0) -> NoteRecord:
    """Build a note record whose path is derived from its id."""
    return NoteRecord(
        id=note_id,
        title=title or basename(note_id),
        path=parent_of(note_id),
        updated_at=1.0,
        created_at=created_at,
    )


def folder(folder_id: str) -> FolderRecord:
    """Build a folder record whose path is derived from its id."""
    return FolderRecord(id=folder_id, title=basename(folder_id), path=parent_of(folder_id))


class FakeStore:
    """In-memory VaultStore with failure injection and call gates."""

    def __init__(self, records=()):
        self.records: list[NoteRecord | FolderRecord] = list(records)
        self.calls: list[tuple[str, str]] = []
        self._failures: dict[tuple[str, str], list[Exception]] = {}
        self._gates: dict[str, asyncio.Event] = {}

    def fail(self, method: str, item_id: str, error: Exception, times: int = 1) -> None:
        """Raise ``error`` on the next ``times`` calls of ``method`` for ``item_id``."""
        self._failures.setdefault((method, item_id), []).extend([error] * times)

    def hold(self, method: str) -> asyncio.Event:
        """Block ``method`` until the returned event is set."""
        gate = asyncio.Event()
        self._gates[method] = gate
        return gate

    def store_calls(self, method: str) -> list[str]:
        return [item for name, item in self.calls if name == method]

    async def _enter(self, method: str, item_id: str) -> None:
        self.calls.append((method, item_id))
        gate = self._gates.get(method)
        if gate is not None:
            await gate.wait()
        queue = self._failures.get((method, item_id))
        if queue:
            raise queue.pop(0)

    def _find(self, item_id: str, kind: type) -> NoteRecord | FolderRecord | None:
        return next(
            (r for r in self.records if r.id == item_id and isinstance(r, kind)), None
        )

    @staticmethod
    def _inside(record: NoteRecord | FolderRecord, path: str) -> bool:
        # Folders are matched by id, notes by their parent path
        if isinstance(record, FolderRecord):
            return is_descendant_or_self(record.id, path)
        return bool(record.path) and is_descendant_or_self(record.path, path)

    def _remap(self, old: str, new: str) -> None:
        updated = []
        for r in self.records:
            if self._inside(r, old):
                new_id = rewrite_prefix(r.id, old, new)
                r = r.model_copy(
                    update={
                        "id": new_id,
                        "path": parent_of(new_id),
                        "title": basename(new_id) if r.id == old else r.title,
                    }
                )
            updated.append(r)
        self.records = updated

    async def list_records(self):
        await self._enter("list_records", "")
        return list(self.records)

    async def create_note(self, title, parent_path=None):
        parent = normalize(parent_path)
        base = sanitize_name(title) or "Untitled"
        await self._enter("create_note", join(parent, base))
        name, counter = base, 1
        while self._find(join(parent, name), NoteRecord):
            name = f"{base} {counter}"
            counter += 1
        record = NoteRecord(
            id=join(parent, name),
            title=name,
            path=parent,
            updated_at=time.time(),
            created_at=time.time(),
        )
        self.records.append(record)
        return record

    async def create_folder(self, name, parent_path=None):
        parent = normalize(parent_path)
        await self._enter("create_folder", join(parent, name))
        safe, counter = name, 1
        while self._find(join(parent, safe), FolderRecord):
            safe = f"{name} {counter}"
            counter += 1
        self.records.append(folder(join(parent, safe)))
        return CreatedFolder(name=safe, path=join(parent, safe))

    async def rename_note(self, note_id, new_id, path=None):
        await self._enter("rename_note", note_id)
        existing = self._find(note_id, NoteRecord)
        if existing is None:
            raise NotFoundError(note_id)
        if self._find(new_id, NoteRecord):
            raise ConflictError(basename(new_id))
        record = existing.model_copy(
            update={"id": new_id, "title": basename(new_id), "path": parent_of(new_id)}
        )
        self.records = [record if r is existing else r for r in self.records]
        return record

    async def rename_folder(self, old_path, new_name):
        await self._enter("rename_folder", old_path)
        if self._find(old_path, FolderRecord) is None:
            raise NotFoundError(old_path)
        new_path = join(parent_of(old_path), new_name)
        if self._find(new_path, FolderRecord):
            raise ConflictError(new_name)
        self._remap(old_path, new_path)
        return RenamedFolder(path=new_path)

    async def move_note(self, note_id, from_path=None, to_path=None):
        await self._enter("move_note", note_id)
        existing = self._find(note_id, NoteRecord)
        if existing is None:
            raise NotFoundError(note_id)
        new_id = join(to_path, basename(note_id))
        if self._find(new_id, NoteRecord):
            raise ConflictError(basename(new_id))
        record = existing.model_copy(update={"id": new_id, "path": normalize(to_path)})
        self.records = [record if r is existing else r for r in self.records]
        return record

    async def move_folder(self, from_path, to_path):
        await self._enter("move_folder", from_path)
        if self._find(from_path, FolderRecord) is None:
            raise NotFoundError(from_path)
        new_path = join(to_path, basename(from_path))
        if self._find(new_path, FolderRecord):
            raise ConflictError(basename(from_path))
        self._remap(from_path, new_path)

    async def delete_note(self, note_id, path=None):
        await self._enter("delete_note", note_id)
        existing = self._find(note_id, NoteRecord)
        if existing is None:
            raise NotFoundError(note_id)
        self.records = [r for r in self.records if r is not existing]

    async def delete_folder(self, path):
        await self._enter("delete_folder", path)
        if self._find(path, FolderRecord) is None:
            raise NotFoundError(path)
        self.records = [r for r in self.records if not self._inside(r, path)]


@pytest.fixture
def sample_records():
    """Small vault: two folders deep, a sibling with a shared name prefix."""
    return [
        folder("a"),
        folder("a/b"),
        folder("docs"),
        folder("docs-old"),
        note("a/b/note1"),
        note("a/top"),
        note("docs/guide"),
        note("docs-old/legacy"),
        note("readme"),
    ]


@pytest.fixture
def make_note():
    """Builder for note records."""
    return note


@pytest.fixture
def make_folder():
    """Builder for folder records."""
    return folder


@pytest.fixture
def make_store():
    """Factory for FakeStore instances."""

    def _make_store(records=()):
        return FakeStore(records)

    return _make_store


@pytest.fixture
def store(sample_records):
    """FakeStore seeded with the sample vault."""
    return FakeStore(sample_records)


@pytest.fixture
def state(sample_records):
    """VaultState already holding the sample records."""
    vault_state = VaultState()
    vault_state.set_records(sample_records)
    return vault_state


@pytest.fixture
def workspace(store):
    """Workspace over the sample FakeStore, without persistence."""
    return Workspace(store, vault_key="test", autosave=False)

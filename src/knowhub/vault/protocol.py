"""Contract between the workspace core and the backing store."""

from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from knowhub.core.types import FolderRecord, NoteRecord


class CreatedFolder(BaseModel, frozen=True):
    """Result of creating a folder."""

    name: str
    path: str


class RenamedFolder(BaseModel, frozen=True):
    """Result of renaming a folder."""

    path: str


@runtime_checkable
class VaultStore(Protocol):
    """Async persistence primitives over a vault.

    Implementations own durability and atomicity of each call and raise
    ``knowhub.core.errors.VaultError`` subclasses on failure.
    """

    async def list_records(self) -> list[NoteRecord | FolderRecord]: ...

    async def create_note(
        self, title: str, parent_path: str | None = None
    ) -> NoteRecord: ...

    async def create_folder(
        self, name: str, parent_path: str | None = None
    ) -> CreatedFolder: ...

    async def rename_note(
        self, note_id: str, new_id: str, path: str | None = None
    ) -> NoteRecord: ...

    async def rename_folder(self, old_path: str, new_name: str) -> RenamedFolder: ...

    async def move_note(
        self, note_id: str, from_path: str | None = None, to_path: str | None = None
    ) -> NoteRecord: ...

    async def move_folder(self, from_path: str, to_path: str) -> None: ...

    async def delete_note(self, note_id: str, path: str | None = None) -> None: ...

    async def delete_folder(self, path: str) -> None: ...

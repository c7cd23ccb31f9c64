"""Filesystem-backed vault store.

Notes are files with the configured extension; a note's id is its path
relative to the vault root without the extension. Folders are directories
and their id is the relative directory path.
"""

import asyncio
import logging
import os
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from knowhub.core.errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    PermissionDeniedError,
)
from knowhub.core.paths import (
    basename,
    is_descendant_or_self,
    join,
    normalize,
    parent_of,
    sanitize_name,
)
from knowhub.core.types import FolderRecord, NoteRecord
from knowhub.core.vault import VaultConfig, VaultConfigLoader
from knowhub.vault.protocol import CreatedFolder, RenamedFolder

logger = logging.getLogger(__name__)

DEFAULT_NOTE_TITLE = "Untitled"


@contextmanager
def _translate_os_errors(item_id: str) -> Iterator[None]:
    """Map filesystem exceptions onto the vault error taxonomy."""
    try:
        yield
    except FileExistsError as e:
        raise ConflictError(basename(item_id)) from e
    except FileNotFoundError as e:
        raise NotFoundError(item_id) from e
    except PermissionError as e:
        raise PermissionDeniedError(item_id, f"'{item_id}' is locked or in use") from e


class LocalVaultStore:
    """VaultStore implementation over a directory on disk."""

    def __init__(self, root: Path | str, config: VaultConfig | None = None):
        """
        Initialize the store.

        Args:
            root: Vault root directory
            config: Vault configuration (read from vault-config.yaml if omitted)
        """
        self.root = Path(root).expanduser().resolve()
        self.config = config or VaultConfigLoader(self.root).load()
        self.extension = self.config.note_extension

    def __repr__(self) -> str:
        return f"LocalVaultStore({self.root})"

    # Path helpers

    def _resolve(self, relative: str) -> Path:
        relative = normalize(relative)
        full = (self.root / relative).resolve() if relative else self.root
        if full != self.root and self.root not in full.parents:
            raise InvalidOperationError(f"'{relative}' is outside the vault")
        return full

    def _note_file(self, note_id: str) -> Path:
        return self._resolve(normalize(note_id) + self.extension)

    def _relative(self, full: Path) -> str:
        return full.relative_to(self.root).as_posix()

    def _ignored(self, name: str) -> bool:
        return name in self.config.ignore

    def _note_record(self, file: Path) -> NoteRecord:
        stat = file.stat()
        relative = self._relative(file)
        note_id = relative[: -len(self.extension)]
        return NoteRecord(
            id=note_id,
            title=file.name[: -len(self.extension)],
            path=parent_of(note_id),
            updated_at=stat.st_mtime,
            created_at=getattr(stat, "st_birthtime", stat.st_ctime),
        )

    # Listing

    async def list_records(self) -> list[NoteRecord | FolderRecord]:
        return await asyncio.to_thread(self._list_records)

    def _list_records(self) -> list[NoteRecord | FolderRecord]:
        records: list[NoteRecord | FolderRecord] = []
        if not self.root.is_dir():
            raise NotFoundError(str(self.root), f"Vault root {self.root} does not exist")

        for current, dirs, files in os.walk(self.root):
            dirs[:] = sorted(d for d in dirs if not self._ignored(d))
            base = Path(current)
            for name in dirs:
                folder_id = self._relative(base / name)
                records.append(
                    FolderRecord(id=folder_id, title=name, path=parent_of(folder_id))
                )
            for name in sorted(files):
                if self._ignored(name) or not name.endswith(self.extension):
                    continue
                try:
                    records.append(self._note_record(base / name))
                except FileNotFoundError:
                    # Deleted between walk and stat
                    logger.debug("Skipping vanished file %s", name)
        return records

    # Creation

    async def create_note(
        self, title: str, parent_path: str | None = None
    ) -> NoteRecord:
        return await asyncio.to_thread(self._create_note, title, parent_path)

    def _create_note(self, title: str, parent_path: str | None) -> NoteRecord:
        base = sanitize_name(title) or DEFAULT_NOTE_TITLE
        parent = normalize(parent_path)
        with _translate_os_errors(join(parent, base)):
            self._resolve(parent).mkdir(parents=True, exist_ok=True)
            name, counter = base, 1
            while self._note_file(join(parent, name)).exists():
                name = f"{base} {counter}"
                counter += 1
            file = self._note_file(join(parent, name))
            with open(file, "x", encoding="utf-8") as f:
                f.write("\n")
            return self._note_record(file)

    async def create_folder(
        self, name: str, parent_path: str | None = None
    ) -> CreatedFolder:
        return await asyncio.to_thread(self._create_folder, name, parent_path)

    def _create_folder(self, name: str, parent_path: str | None) -> CreatedFolder:
        base = sanitize_name(name) or "New Folder"
        parent = normalize(parent_path)
        with _translate_os_errors(join(parent, base)):
            safe, counter = base, 1
            while self._resolve(join(parent, safe)).exists():
                safe = f"{base} {counter}"
                counter += 1
            self._resolve(join(parent, safe)).mkdir(parents=True)
        return CreatedFolder(name=safe, path=join(parent, safe))

    # Renames

    async def rename_note(
        self, note_id: str, new_id: str, path: str | None = None
    ) -> NoteRecord:
        return await asyncio.to_thread(self._rename_note, note_id, new_id)

    def _rename_note(self, note_id: str, new_id: str) -> NoteRecord:
        source = self._note_file(note_id)
        target = self._note_file(new_id)
        with _translate_os_errors(note_id):
            if not source.exists():
                raise NotFoundError(note_id)
            if target.exists() and not _same_file(source, target):
                raise ConflictError(basename(new_id))
            target.parent.mkdir(parents=True, exist_ok=True)
            source.rename(target)
            return self._note_record(target)

    async def rename_folder(self, old_path: str, new_name: str) -> RenamedFolder:
        return await asyncio.to_thread(self._rename_folder, old_path, new_name)

    def _rename_folder(self, old_path: str, new_name: str) -> RenamedFolder:
        old_path = normalize(old_path)
        new_path = join(parent_of(old_path), sanitize_name(new_name))
        source = self._resolve(old_path)
        target = self._resolve(new_path)
        with _translate_os_errors(old_path):
            if not source.is_dir():
                raise NotFoundError(old_path)
            if target.exists() and not _same_file(source, target):
                raise ConflictError(basename(new_path))
            source.rename(target)
        return RenamedFolder(path=new_path)

    # Moves

    async def move_note(
        self, note_id: str, from_path: str | None = None, to_path: str | None = None
    ) -> NoteRecord:
        return await asyncio.to_thread(self._move_note, note_id, to_path)

    def _move_note(self, note_id: str, to_path: str | None) -> NoteRecord:
        source = self._note_file(note_id)
        new_id = join(to_path, basename(note_id))
        target = self._note_file(new_id)
        with _translate_os_errors(note_id):
            if not source.exists():
                raise NotFoundError(note_id)
            if source == target:
                return self._note_record(source)
            if target.exists():
                raise ConflictError(basename(new_id))
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(source, target)
            return self._note_record(target)

    async def move_folder(self, from_path: str, to_path: str) -> None:
        await asyncio.to_thread(self._move_folder, from_path, to_path)

    def _move_folder(self, from_path: str, to_path: str) -> None:
        source_id = normalize(from_path)
        target_id = normalize(to_path)
        if is_descendant_or_self(target_id, source_id):
            raise InvalidOperationError(
                f"Cannot move folder '{source_id}' into itself or its descendants"
            )
        new_path = join(target_id, basename(source_id))
        source = self._resolve(source_id)
        target = self._resolve(new_path)
        with _translate_os_errors(source_id):
            if not source.is_dir():
                raise NotFoundError(source_id)
            if target.exists():
                raise ConflictError(basename(new_path))
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(source, target)

    # Deletion

    async def delete_note(self, note_id: str, path: str | None = None) -> None:
        await asyncio.to_thread(self._delete_note, note_id)

    def _delete_note(self, note_id: str) -> None:
        with _translate_os_errors(note_id):
            self._note_file(note_id).unlink()

    async def delete_folder(self, path: str) -> None:
        await asyncio.to_thread(self._delete_folder, path)

    def _delete_folder(self, path: str) -> None:
        path = normalize(path)
        if not path:
            raise InvalidOperationError("The vault root cannot be deleted")
        folder = self._resolve(path)
        with _translate_os_errors(path):
            if not folder.is_dir():
                raise NotFoundError(path)
            shutil.rmtree(folder)


def _same_file(a: Path, b: Path) -> bool:
    # Case-only renames on case-insensitive filesystems
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False

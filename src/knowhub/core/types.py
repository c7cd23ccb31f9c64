"""Shared types and data structures for knowhub."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from knowhub.core.paths import normalize


class ItemType(StrEnum):
    """Kind of vault entry."""

    NOTE = "note"
    FOLDER = "folder"


class _RecordBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str
    path: str = ""

    @field_validator("id", "path", mode="before")
    @classmethod
    def _normalize_path(cls, value: Any) -> str:
        if value is None:
            return ""
        return normalize(str(value))

    @property
    def is_folder(self) -> bool:
        return self.type == ItemType.FOLDER


class NoteRecord(_RecordBase):
    """A note as reported by the backing store."""

    type: Literal["note"] = "note"
    updated_at: float = Field(default=0.0, alias="updatedAt")
    created_at: float = Field(default=0.0, alias="createdAt")


class FolderRecord(_RecordBase):
    """A folder as reported by the backing store."""

    type: Literal["folder"] = "folder"


Record = Annotated[Union[NoteRecord, FolderRecord], Field(discriminator="type")]

_RECORD_LIST = TypeAdapter(list[Record])


def parse_records(raw: list[dict[str, Any]]) -> list[NoteRecord | FolderRecord]:
    """Validate raw store payloads into typed records.

    Entries without a ``type`` are treated as notes.
    """
    prepared = [item if "type" in item else {**item, "type": "note"} for item in raw]
    return _RECORD_LIST.validate_python(prepared)


@dataclass
class TreeNode:
    """A record plus its nested children (folders only carry children)."""

    record: NoteRecord | FolderRecord
    children: list[TreeNode] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def title(self) -> str:
        return self.record.title

    @property
    def path(self) -> str:
        return self.record.path

    @property
    def type(self) -> str:
        return self.record.type

    @property
    def is_folder(self) -> bool:
        return self.record.is_folder


class Tab(BaseModel, frozen=True):
    """An open editor tab."""

    id: str
    path: str = ""
    title: str = ""
    missing: bool = False
    """Set when the tab's note no longer exists on disk."""


class PersistedTab(BaseModel, frozen=True):
    """Tab entry as stored in the settings blob."""

    id: str
    path: str = ""
    title: str = ""


class PersistedWorkspace(BaseModel):
    """Opaque settings blob restored across application runs."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    expanded_folders: list[str] = Field(default_factory=list, alias="expandedFolders")
    pinned_tabs: list[str] = Field(default_factory=list, alias="pinnedTabs")
    open_tabs: list[PersistedTab] = Field(default_factory=list, alias="openTabs")
    active_id: str = Field(default="", alias="activeId")


@dataclass(frozen=True)
class WorkspaceSnapshot:
    """Immutable copy of every piece of workspace view state."""

    open_tabs: tuple[Tab, ...]
    pinned_tabs: frozenset[str]
    expanded_folders: frozenset[str]
    selected_ids: frozenset[str]
    active_id: str
    newly_created_ids: frozenset[str]


@dataclass(frozen=True)
class RewriteSummary:
    """What a single identity cascade touched."""

    old_id: str
    new_id: str
    tabs: int = 0
    pinned: int = 0
    expanded: int = 0
    selected: int = 0
    active_changed: bool = False

    @property
    def changed(self) -> bool:
        return bool(
            self.tabs
            or self.pinned
            or self.expanded
            or self.selected
            or self.active_changed
        )


@dataclass(frozen=True)
class ItemRef:
    """Reference to a vault entry passed to batch operations."""

    id: str
    type: ItemType
    path: str = ""


@dataclass(frozen=True)
class ItemError:
    """Failure attributed to a single item of a batch."""

    id: str
    kind: str
    message: str


@dataclass
class BatchResult:
    """Aggregate result of a sequential batch operation."""

    errors: list[ItemError] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to the ``{success, errors}`` shape reported to the UI."""
        return {
            "success": self.success,
            "errors": [f"{e.id}: {e.message}" for e in self.errors],
        }


@dataclass
class SyncReport:
    """Changes applied by a single reconcile pass."""

    missing_tabs: list[str] = field(default_factory=list)
    restored_tabs: list[str] = field(default_factory=list)
    pruned_folders: list[str] = field(default_factory=list)
    deselected: list[str] = field(default_factory=list)
    active_cleared: bool = False

    @property
    def changed(self) -> bool:
        return bool(
            self.missing_tabs
            or self.restored_tabs
            or self.pruned_folders
            or self.deselected
            or self.active_cleared
        )

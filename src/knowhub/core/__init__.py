"""knowhub core library - vault tree and workspace state."""

from typing import TYPE_CHECKING

from knowhub.core.errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    PermissionDeniedError,
    VaultError,
)
from knowhub.core.state import VaultState
from knowhub.core.tree import build_tree
from knowhub.core.types import (
    BatchResult,
    FolderRecord,
    ItemRef,
    ItemType,
    NoteRecord,
    Tab,
    TreeNode,
)

if TYPE_CHECKING:
    from knowhub.core.workspace import Workspace, build_workspace

__all__ = [
    # Core classes
    "VaultState",
    "Workspace",
    "build_tree",
    "build_workspace",
    # Types
    "BatchResult",
    "FolderRecord",
    "ItemRef",
    "ItemType",
    "NoteRecord",
    "Tab",
    "TreeNode",
    # Errors
    "ConflictError",
    "InvalidOperationError",
    "NotFoundError",
    "PermissionDeniedError",
    "VaultError",
]


def __getattr__(name: str):
    if name == "Workspace":
        from knowhub.core.workspace import Workspace

        return Workspace
    if name == "build_workspace":
        from knowhub.core.workspace import build_workspace

        return build_workspace
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

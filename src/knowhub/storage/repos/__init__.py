"""Repository classes for data access."""

from knowhub.storage.repos.workspace_repo import WorkspaceRepo

__all__ = [
    "WorkspaceRepo",
]

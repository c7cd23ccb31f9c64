"""Vault stores: the persistence contract and a filesystem implementation."""

from knowhub.vault.local import LocalVaultStore
from knowhub.vault.protocol import CreatedFolder, RenamedFolder, VaultStore

__all__ = [
    "CreatedFolder",
    "LocalVaultStore",
    "RenamedFolder",
    "VaultStore",
]

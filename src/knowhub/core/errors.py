"""Error taxonomy for vault operations.

Every failure the core surfaces to the application is a ``VaultError``.
Subclasses carry a short ``kind`` string that batch results use to
attribute a failure to a single item.
"""


class VaultError(Exception):
    """Base class for vault and workspace errors."""

    kind = "error"


class ConflictError(VaultError):
    """An item with the same name already exists at the destination."""

    kind = "conflict"

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(message or f"An item named '{name}' already exists")


class NotFoundError(VaultError):
    """The store no longer has the referenced record."""

    kind = "not_found"

    def __init__(self, item_id: str, message: str | None = None):
        self.item_id = item_id
        super().__init__(message or f"'{item_id}' was not found in the vault")


class PermissionDeniedError(VaultError):
    """The underlying file is locked or not writable."""

    kind = "permission_denied"

    def __init__(self, item_id: str, message: str | None = None):
        self.item_id = item_id
        super().__init__(message or f"Permission denied for '{item_id}'")


class InvalidOperationError(VaultError):
    """Rejected client-side before reaching the store."""

    kind = "invalid_operation"


class VaultConfigError(VaultError):
    """Raised when vault configuration is invalid."""

    kind = "config"

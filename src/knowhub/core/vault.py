"""Per-vault configuration loaded from vault-config.yaml."""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from knowhub.core.config import NOTE_EXTENSION
from knowhub.core.errors import VaultConfigError

logger = logging.getLogger(__name__)

DEFAULT_IGNORE = [".git", ".obsidian", ".knowhub", ".trash", "node_modules"]


class VaultConfig(BaseModel):
    """Typed configuration for a vault.

    Frozen to prevent accidental mutation. Extra fields are forbidden to
    catch typos in config.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    note_extension: str = NOTE_EXTENSION
    ignore: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE))

    @field_validator("note_extension")
    @classmethod
    def _dotted_extension(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("note_extension cannot be empty")
        return value if value.startswith(".") else f".{value}"


class VaultConfigLoader:
    """Loads vault-config.yaml from the vault root and caches the result.

    Example:
        loader = VaultConfigLoader("~/notes")
        config = loader.load()
    """

    CONFIG_FILENAME = "vault-config.yaml"

    def __init__(self, path: Path | str):
        """Initialize loader with the vault root directory."""
        self.root = Path(path).expanduser().resolve()
        self.config_file = self.root / self.CONFIG_FILENAME
        self._config: VaultConfig | None = None

    def load(self) -> VaultConfig:
        """Load configuration, falling back to defaults when absent.

        Raises:
            VaultConfigError: If the file is invalid YAML or fails validation.
        """
        if self._config is not None:
            return self._config

        if not self.config_file.exists():
            logger.debug("No config file at %s", self.config_file)
            self._config = VaultConfig()
            return self._config

        try:
            with open(self.config_file, encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error("Invalid YAML in %s: %s", self.config_file, e)
            raise VaultConfigError(f"Invalid YAML in {self.config_file}: {e}") from e

        if raw is None:
            self._config = VaultConfig()
            return self._config

        if not isinstance(raw, dict):
            raise VaultConfigError(
                f"{self.CONFIG_FILENAME} must be a mapping, got {type(raw).__name__}"
            )

        try:
            self._config = VaultConfig.model_validate(raw)
        except ValidationError as e:
            raise VaultConfigError(f"Invalid vault config: {e}") from e
        logger.info(
            "Vault config loaded: note_extension=%s ignore=%d",
            self._config.note_extension,
            len(self._config.ignore),
        )
        return self._config

    def reload(self) -> VaultConfig:
        """Force reload configuration from disk."""
        self._config = None
        return self.load()

    def __repr__(self) -> str:
        return f"VaultConfigLoader({self.root})"

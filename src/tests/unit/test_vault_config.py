"""Tests for knowhub.core.vault module."""

from pathlib import Path

import pytest

from knowhub.core.errors import VaultConfigError
from knowhub.core.vault import DEFAULT_IGNORE, VaultConfig, VaultConfigLoader


class TestVaultConfigLoader:
    """Tests for VaultConfigLoader.load()."""

    def test_defaults_when_no_config_file(self, tmp_path: Path):
        """Missing config file gives defaults."""
        config = VaultConfigLoader(tmp_path).load()

        assert config.note_extension == ".md"
        assert config.ignore == DEFAULT_IGNORE

    def test_defaults_when_config_is_empty(self, tmp_path: Path):
        """Empty config file gives defaults."""
        (tmp_path / "vault-config.yaml").write_text("")

        assert VaultConfigLoader(tmp_path).load() == VaultConfig()

    def test_load_simple_config(self, tmp_path: Path):
        """Keys from the YAML file are applied."""
        (tmp_path / "vault-config.yaml").write_text(
            "note_extension: txt\nignore:\n  - drafts\n"
        )

        config = VaultConfigLoader(tmp_path).load()

        assert config.note_extension == ".txt"
        assert config.ignore == ["drafts"]

    def test_raises_on_invalid_yaml(self, tmp_path: Path):
        """Broken YAML is a config error."""
        (tmp_path / "vault-config.yaml").write_text("ignore: [unclosed\n")

        with pytest.raises(VaultConfigError, match="Invalid YAML"):
            VaultConfigLoader(tmp_path).load()

    def test_raises_on_non_dict_yaml(self, tmp_path: Path):
        """A YAML list is rejected."""
        (tmp_path / "vault-config.yaml").write_text("- a\n- b\n")

        with pytest.raises(VaultConfigError, match="must be a mapping"):
            VaultConfigLoader(tmp_path).load()

    def test_raises_on_unknown_key(self, tmp_path: Path):
        """Typos in keys are caught."""
        (tmp_path / "vault-config.yaml").write_text("note_extention: .md\n")

        with pytest.raises(VaultConfigError):
            VaultConfigLoader(tmp_path).load()

    def test_caches_config(self, tmp_path: Path):
        """Repeated loads return the cached object."""
        loader = VaultConfigLoader(tmp_path)

        assert loader.load() is loader.load()

    def test_reload_clears_cache(self, tmp_path: Path):
        """reload() picks up changes on disk."""
        loader = VaultConfigLoader(tmp_path)
        loader.load()
        (tmp_path / "vault-config.yaml").write_text("note_extension: .txt\n")

        assert loader.reload().note_extension == ".txt"

    def test_repr(self, tmp_path: Path):
        """repr shows the resolved root."""
        assert repr(VaultConfigLoader(tmp_path)) == f"VaultConfigLoader({tmp_path.resolve()})"


class TestVaultConfig:
    """Tests for the VaultConfig model."""

    def test_empty_extension_rejected(self):
        """An empty extension is invalid."""
        with pytest.raises(ValueError):
            VaultConfig(note_extension="  ")

    def test_frozen(self):
        """Configs are immutable."""
        config = VaultConfig()

        with pytest.raises(ValueError):
            config.note_extension = ".txt"

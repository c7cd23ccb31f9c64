"""Configuration management for knowhub core."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def get_env(key: str, default: str | None = None) -> str | None:
    """Get environment variable with optional default."""
    return os.getenv(key, default)


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer for %s=%r, using %s", key, value, default)
        return default


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key, "").lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    return default


# knowhub data directory (XDG-style, defaults to ~/.knowhub)
KNOWHUB_DATA_DIR = Path(
    get_env("KNOWHUB_DATA_DIR", os.path.expanduser("~/.knowhub"))
    or os.path.expanduser("~/.knowhub")
)

# Database path for persisted workspace state
DATABASE_PATH = Path(
    get_env("KNOWHUB_DATABASE_PATH", str(KNOWHUB_DATA_DIR / "knowhub.db"))
    or KNOWHUB_DATA_DIR / "knowhub.db"
)

# Default vault opened by the CLI
VAULT_PATH = get_env("KNOWHUB_VAULT_PATH", os.getcwd()) or os.getcwd()

# Extension appended to note ids by the filesystem store
NOTE_EXTENSION = get_env("KNOWHUB_NOTE_EXTENSION", ".md") or ".md"

# Persist workspace state after every structural change
AUTOSAVE_WORKSPACE = get_env_bool("KNOWHUB_AUTOSAVE_WORKSPACE", True)

# Logging
LOG_LEVEL = get_env("LOG_LEVEL", "INFO") or "INFO"


def setup_logging() -> logging.Logger:
    """Configure and return logger."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    )
    return logging.getLogger(__name__)

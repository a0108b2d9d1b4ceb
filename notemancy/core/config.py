"""
Configuration for notemancy.
Environment variables are read once into a Settings value that is passed
explicitly to every component needing the storage root.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables
load_dotenv()

CONF_DIR_ENV = "NOTEMANCY_CONF_DIR"

CONFIG_FILENAME = "config.yaml"
DEFAULT_VAULT_FILENAME = "default_vault.txt"
STORE_SUFFIX = "_vectors"
STORE_EXTENSION = ".bin"
LOCK_EXTENSION = ".lock"

DEFAULT_EMBED_PROVIDER = "sentence-transformers"  # sentence-transformers|hash
DEFAULT_EMBED_MODEL = "all-MiniLM-L6-v2"
DEFAULT_EMBED_DIM = 384
DEFAULT_EMBED_WORKERS = 1
DEFAULT_PICKER = "textual"  # textual|command
DEFAULT_PICKER_CMD = "fzf"
DEFAULT_LOG_LEVEL = "WARNING"


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got '{value}'")


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, threaded explicitly through the pipeline."""

    conf_dir: Path
    embed_provider: str = DEFAULT_EMBED_PROVIDER
    embed_model: str = DEFAULT_EMBED_MODEL
    embed_dim: int = DEFAULT_EMBED_DIM
    embed_workers: int = DEFAULT_EMBED_WORKERS
    picker: str = DEFAULT_PICKER
    picker_cmd: str = DEFAULT_PICKER_CMD
    log_level: str = DEFAULT_LOG_LEVEL
    editor: str = "vi"

    @property
    def config_file(self) -> Path:
        return self.conf_dir / CONFIG_FILENAME

    @property
    def default_vault_file(self) -> Path:
        return self.conf_dir / DEFAULT_VAULT_FILENAME

    def store_name(self, vault: str) -> str:
        """Deterministic store name for a vault, e.g. 'work_vectors'."""
        return f"{vault}{STORE_SUFFIX}"

    def store_path(self, vault: str) -> Path:
        return self.conf_dir / f"{self.store_name(vault)}{STORE_EXTENSION}"

    def lock_path(self, vault: str) -> Path:
        return self.conf_dir / f"{self.store_name(vault)}{LOCK_EXTENSION}"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        environ: Mapping to read from, defaults to os.environ

    Returns:
        Settings value

    Raises:
        ConfigurationError: if NOTEMANCY_CONF_DIR is unset or a value is invalid
    """
    if environ is None:
        environ = os.environ

    conf_dir = environ.get(CONF_DIR_ENV, "").strip()
    if not conf_dir:
        raise ConfigurationError(f"Environment variable {CONF_DIR_ENV} is not set")

    embed_provider = environ.get("NOTEMANCY_EMBED_PROVIDER", DEFAULT_EMBED_PROVIDER).lower()
    if embed_provider not in ("sentence-transformers", "hash"):
        raise ConfigurationError(f"Invalid NOTEMANCY_EMBED_PROVIDER: {embed_provider}")

    picker = environ.get("NOTEMANCY_PICKER", DEFAULT_PICKER).lower()
    if picker not in ("textual", "command"):
        raise ConfigurationError(f"Invalid NOTEMANCY_PICKER: {picker}")

    embed_workers = _env_int(environ, "NOTEMANCY_EMBED_WORKERS", DEFAULT_EMBED_WORKERS)
    if embed_workers < 1:
        raise ConfigurationError("NOTEMANCY_EMBED_WORKERS must be >= 1")

    embed_dim = _env_int(environ, "NOTEMANCY_EMBED_DIM", DEFAULT_EMBED_DIM)
    if embed_dim < 1:
        raise ConfigurationError("NOTEMANCY_EMBED_DIM must be >= 1")

    return Settings(
        conf_dir=Path(conf_dir).expanduser(),
        embed_provider=embed_provider,
        embed_model=environ.get("NOTEMANCY_EMBED_MODEL", DEFAULT_EMBED_MODEL),
        embed_dim=embed_dim,
        embed_workers=embed_workers,
        picker=picker,
        picker_cmd=environ.get("NOTEMANCY_PICKER_CMD", DEFAULT_PICKER_CMD),
        log_level=environ.get("NOTEMANCY_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        editor=environ.get("EDITOR", "vi"),
    )


def ensure_conf_dir(settings: Settings) -> Path:
    """Ensure the storage root exists."""
    try:
        settings.conf_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot create configuration directory {settings.conf_dir}: {e}")
    return settings.conf_dir


def init_config(settings: Settings) -> Path:
    """Create the storage root and an empty config.yaml if missing. Returns the config path."""
    ensure_conf_dir(settings)
    if not settings.config_file.exists():
        settings.config_file.write_text("vaults: {}\n", encoding="utf-8")
    return settings.config_file


def load_vault_config(settings: Settings) -> dict:
    """Read the vaults mapping from config.yaml."""
    if not settings.config_file.exists():
        raise ConfigurationError(
            f"Configuration file not found at {settings.config_file}; run 'notemancy init'"
        )

    try:
        raw_config = yaml.safe_load(settings.config_file.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid {CONFIG_FILENAME}: {e}")

    vaults = raw_config.get("vaults") or {}
    if not isinstance(vaults, dict):
        raise ConfigurationError(f"'vaults' in {CONFIG_FILENAME} must be a mapping")
    return vaults


def get_default_vault(settings: Settings) -> str:
    """Return the configured default vault name."""
    path = settings.default_vault_file
    if path.exists():
        name = path.read_text(encoding="utf-8").strip()
        if name:
            return name
    raise ConfigurationError(
        "No default vault set; please set one using 'notemancy set <vault_name>'"
    )


def set_default_vault(settings: Settings, vault_name: str) -> None:
    """Persist vault_name as the default vault."""
    ensure_conf_dir(settings)
    settings.default_vault_file.write_text(vault_name, encoding="utf-8")

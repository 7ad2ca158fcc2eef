"""Unified configuration loaded from .sitevault.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from sitevault.content.assets import DEFAULT_PREFIX
from sitevault.content.drafts import STORE_FILENAME
from sitevault.content.session import DEFAULT_DEBOUNCE_SECONDS
from sitevault.integrations.storage import DEFAULT_BUCKET, DEFAULT_CONTENT_PATH, StorageConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".sitevault.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG = Path.home() / ".config" / "sitevault" / "config.toml"


class StorageSectionConfig(BaseModel):
    """[storage] section."""

    url: str = ""
    anon_key: str = ""
    bucket: str = DEFAULT_BUCKET
    content_path: str = DEFAULT_CONTENT_PATH


class DraftsSectionConfig(BaseModel):
    """[drafts] section."""

    path: str = STORE_FILENAME
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS


class AssetsSectionConfig(BaseModel):
    """[assets] section."""

    prefix: str = DEFAULT_PREFIX


class AuthSectionConfig(BaseModel):
    """[auth] section. A token here overrides the stored login session."""

    access_token: str = ""


class EditorSectionConfig(BaseModel):
    """[editor] section."""

    schema_file: str = ""


class VaultConfig(BaseModel):
    """Top-level configuration model."""

    storage: StorageSectionConfig = Field(default_factory=StorageSectionConfig)
    drafts: DraftsSectionConfig = Field(default_factory=DraftsSectionConfig)
    assets: AssetsSectionConfig = Field(default_factory=AssetsSectionConfig)
    auth: AuthSectionConfig = Field(default_factory=AuthSectionConfig)
    editor: EditorSectionConfig = Field(default_factory=EditorSectionConfig)

    def to_storage_config(self) -> StorageConfig:
        """Convert to StorageConfig for the storage client."""
        return StorageConfig(
            url=self.storage.url,
            anon_key=self.storage.anon_key,
            bucket=self.storage.bucket,
            content_path=self.storage.content_path,
        )


def load_config(path: str | Path | None = None) -> VaultConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .sitevault.toml in CWD
    3. ~/.config/sitevault/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged VaultConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG.exists():
            data = _load_toml(GLOBAL_CONFIG)
            logger.info("Loaded config from %s", GLOBAL_CONFIG)

    config = VaultConfig.model_validate(data) if data else VaultConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: VaultConfig, **cli_kwargs: object) -> VaultConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "storage_url": ("storage", "url"),
        "bucket": ("storage", "bucket"),
        "drafts_path": ("drafts", "path"),
        "debounce_seconds": ("drafts", "debounce_seconds"),
        "asset_prefix": ("assets", "prefix"),
        "schema_file": ("editor", "schema_file"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return VaultConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: VaultConfig) -> VaultConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "VITE_SUPABASE_URL": ("storage", "url"),
        "SUPABASE_URL": ("storage", "url"),
        "SUPABASE_ANON_KEY": ("storage", "anon_key"),
        "SITEVAULT_BUCKET": ("storage", "bucket"),
        "SITEVAULT_CONTENT_PATH": ("storage", "content_path"),
        "SITEVAULT_DRAFTS_PATH": ("drafts", "path"),
        "SITEVAULT_ASSET_PREFIX": ("assets", "prefix"),
        "SITEVAULT_ACCESS_TOKEN": ("auth", "access_token"),
        "SITEVAULT_SCHEMA_FILE": ("editor", "schema_file"),
    }

    # Later entries win, so SUPABASE_URL beats VITE_SUPABASE_URL.
    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    debounce_raw = os.environ.get("SITEVAULT_DEBOUNCE_SECONDS")
    if debounce_raw is not None:
        try:
            data["drafts"]["debounce_seconds"] = float(debounce_raw)
        except ValueError:
            logger.warning("Ignoring invalid SITEVAULT_DEBOUNCE_SECONDS=%r", debounce_raw)

    return VaultConfig.model_validate(data)

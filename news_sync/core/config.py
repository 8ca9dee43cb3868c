"""
Configuration management for news-sync.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Remote source settings (base URL, request timeout, optional demo feed)
    - Storage directory for the database, preferences and logs
    - Sync tuning (batch size, interval between passes in watch mode)

Configuration File Location:
    config.yaml in the current working directory, unless the
    NEWS_SYNC_CONFIG environment variable (or a .env file) points elsewhere.
    NEWS_SYNC_BASE_URL overrides remote.base_url.

Example config.yaml:
    remote:
      base_url: "https://example.com/api/"
      timeout: 30
      demo_file: null  # Optional: path to a demo JSON feed (no network)

    storage:
      directory: "~/.news-sync"

    sync:
      batch_size: 40
      interval: 900
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from news_sync.core.exceptions import ConfigError


# Default configuration file name (in current working directory)
CONFIG_FILENAME = "config.yaml"

CONFIG_PATH_ENV = "NEWS_SYNC_CONFIG"
BASE_URL_ENV = "NEWS_SYNC_BASE_URL"

DEFAULT_TIMEOUT = 30.0
DEFAULT_STORAGE_DIRECTORY = "~/.news-sync"
DEFAULT_BATCH_SIZE = 40
DEFAULT_INTERVAL = 900


@dataclass(frozen=True)
class RemoteConfig:
    """
    Remote source configuration.

    Attributes:
        base_url: Base URL of the news API. None only when demo_file is set.
        timeout: Total timeout in seconds for a single HTTP request.
        demo_file: Optional path to a demo JSON feed. When set, the demo
                   data source is used instead of the HTTP one.
    """
    base_url: str | None
    timeout: float
    demo_file: Path | None


@dataclass(frozen=True)
class StorageConfig:
    """
    Local storage configuration.

    Attributes:
        directory: Absolute path holding database.db, preferences.json and logs/.
                   Path expansion is performed (~ is expanded to home directory).
    """
    directory: Path

    @property
    def database_path(self) -> Path:
        return self.directory / "database.db"

    @property
    def preferences_path(self) -> Path:
        return self.directory / "preferences.json"


@dataclass(frozen=True)
class SyncConfig:
    """
    Sync behavior configuration.

    Attributes:
        batch_size: Number of ids fetched per batch request. Default: 40.
        interval: Seconds between passes in --watch mode. Default: 900.
    """
    batch_size: int
    interval: int


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable (frozen dataclass).

    Example:
        config = load_config()
        print(f"Storing data in: {config.storage.directory}")
        print(f"Batch size: {config.sync.batch_size}")
    """
    remote: RemoteConfig
    storage: StorageConfig
    sync: SyncConfig


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, NEWS_SYNC_CONFIG is consulted, then
                     config.yaml in the current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     is missing required fields, or contains invalid values.

    Behavior:
        1. Load .env (if present) into the environment
        2. Locate config file (explicit path, NEWS_SYNC_CONFIG, CWD/config.yaml)
        3. Read and parse YAML content
        4. Validate and extract each section, applying defaults
        5. Apply NEWS_SYNC_BASE_URL override
    """
    load_dotenv()

    if config_path is None:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        config_path = Path(env_path) if env_path else Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    _validate_config(raw_config)

    remote_config = _parse_remote_config(
        raw_config["remote"],
        base_dir=config_path.parent,
        base_url_override=os.environ.get(BASE_URL_ENV)
    )
    storage_config = _parse_storage_config(raw_config.get("storage"))
    sync_config = _parse_sync_config(raw_config.get("sync"))

    return Config(
        remote=remote_config,
        storage=storage_config,
        sync=sync_config
    )


def _validate_config(raw_config: dict[str, Any]) -> None:
    """Check required sections exist and every present section is a mapping."""
    if "remote" not in raw_config:
        raise ConfigError(
            "Missing required section: 'remote'",
            details={"missing_section": "remote"}
        )

    for section in ("remote", "storage", "sync"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )


def _parse_remote_config(
    remote_section: dict[str, Any] | None,
    base_dir: Path,
    base_url_override: str | None = None
) -> RemoteConfig:
    """
    Parse and validate the remote configuration section.

    A relative demo_file is resolved against the directory holding
    config.yaml, not the current working directory.

    Raises:
        ConfigError: If neither base_url nor demo_file is usable, if timeout
                     is not a positive number, or if demo_file does not exist.
    """
    remote_section = remote_section or {}

    base_url = base_url_override or remote_section.get("base_url")
    if base_url is not None:
        if not isinstance(base_url, str) or not base_url.strip():
            raise ConfigError(
                "'remote.base_url' must be a non-empty string",
                details={"field": "remote.base_url"}
            )
        base_url = base_url.strip()

    timeout = remote_section.get("timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(
            "'remote.timeout' must be a positive number",
            details={"field": "remote.timeout", "value": timeout}
        )

    demo_file = None
    raw_demo = remote_section.get("demo_file")
    if raw_demo is not None:
        if not isinstance(raw_demo, str) or not raw_demo.strip():
            raise ConfigError(
                "'remote.demo_file' must be a string path or null",
                details={"field": "remote.demo_file"}
            )
        demo_path = Path(raw_demo.strip()).expanduser()
        if not demo_path.is_absolute():
            demo_path = base_dir / demo_path
        demo_path = demo_path.resolve()
        if not demo_path.exists():
            raise ConfigError(
                f"Demo feed not found: {demo_path}",
                details={"field": "remote.demo_file", "path": str(demo_path)}
            )
        demo_file = demo_path

    if base_url is None and demo_file is None:
        raise ConfigError(
            "'remote.base_url' is required unless 'remote.demo_file' is set",
            details={"field": "remote.base_url"}
        )

    return RemoteConfig(base_url=base_url, timeout=float(timeout), demo_file=demo_file)


def _parse_storage_config(storage_section: dict[str, Any] | None) -> StorageConfig:
    """Parse the storage section. Expands ~; does NOT create the directory."""
    directory = DEFAULT_STORAGE_DIRECTORY

    if storage_section is not None and storage_section.get("directory") is not None:
        directory = storage_section["directory"]
        if not isinstance(directory, str) or not directory.strip():
            raise ConfigError(
                "'storage.directory' must be a non-empty string",
                details={"field": "storage.directory"}
            )

    return StorageConfig(directory=Path(directory.strip()).expanduser().resolve())


def _parse_sync_config(sync_section: dict[str, Any] | None) -> SyncConfig:
    """
    Parse and validate the sync section, applying defaults.

    Raises:
        ConfigError: If batch_size or interval is not a positive integer.
    """
    values = {"batch_size": DEFAULT_BATCH_SIZE, "interval": DEFAULT_INTERVAL}

    if sync_section is not None:
        for field_name in values:
            raw_value = sync_section.get(field_name)
            if raw_value is None:
                continue
            if isinstance(raw_value, bool) or not isinstance(raw_value, int) or raw_value < 1:
                raise ConfigError(
                    f"'sync.{field_name}' must be a positive integer",
                    details={"field": f"sync.{field_name}", "value": raw_value}
                )
            values[field_name] = raw_value

    return SyncConfig(**values)

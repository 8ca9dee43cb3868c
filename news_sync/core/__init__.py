"""
Core module for news-sync.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes and error kinds
    - config: Configuration loading and validation
    - database: Thread-safe SQLite store for topics and news resources
    - preferences: JSON store for watermarks and user preferences
    - models: Local data models
    - logger: Logging system with multiple outputs

Usage:
    from news_sync.core import (
        Config, load_config,
        Database, PreferencesStore,
        setup_logging, get_logger,
        NewsSyncError, ConfigError, StorageError
    )
"""

from news_sync.core.config import (
    Config,
    RemoteConfig,
    StorageConfig,
    SyncConfig,
    load_config,
)
from news_sync.core.database import Database
from news_sync.core.exceptions import (
    ConcurrentSyncInProgress,
    ConfigError,
    NewsSyncError,
    RemoteProtocolError,
    RemoteUnavailable,
    StorageError,
    SyncErrorKind,
)
from news_sync.core.logger import (
    get_logger,
    log_sync_failure,
    setup_logging,
    shutdown_logging,
)
from news_sync.core.models import NewsResource, Topic, TopicCrossReference, UserData
from news_sync.core.preferences import PreferencesStore

__all__ = [
    # Config
    "Config",
    "RemoteConfig",
    "StorageConfig",
    "SyncConfig",
    "load_config",
    # Storage
    "Database",
    "PreferencesStore",
    # Models
    "NewsResource",
    "Topic",
    "TopicCrossReference",
    "UserData",
    # Exceptions
    "NewsSyncError",
    "ConfigError",
    "StorageError",
    "RemoteUnavailable",
    "RemoteProtocolError",
    "ConcurrentSyncInProgress",
    "SyncErrorKind",
    # Logger
    "setup_logging",
    "get_logger",
    "log_sync_failure",
    "shutdown_logging",
]

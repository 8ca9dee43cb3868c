"""
news-sync: Offline-first news synchronization.

This package keeps a local SQLite copy of a remote news catalogue (topics
and news resources) up to date using version-based change lists, and
reports newly added stories in the topics the user follows.

Architecture:
    Each synced collection has a version watermark. One sync pass:

    1. Change list (network/): ask the server what changed after the watermark
    2. Deletes (core/database.py): remove deleted ids locally, right away
    3. Batches (sync/engine.py): fetch changed ids in chunks of 40 and
       write each chunk in one transaction, in dependency order
       (topic shells -> news resources -> topic cross references)
    4. Commit (sync/versions.py): advance the watermark, only after
       every chunk landed
    5. Notify (sync/worker.py): new stories in followed topics, never on
       the very first sync

Modules:
    core/            - Configuration, database, preferences, logging, exceptions
    network/         - Remote data sources (HTTP via aiohttp, demo JSON feed)
    sync/            - Sync engine, collections, chunking, watermarks, worker
    notifications.py - Notification sinks
    cli.py           - Command-line interface

Usage:
    Command Line:
        news-sync --sync
        news-sync --watch
        news-sync --list --topic 4

    Python API:
        from news_sync.core import load_config, Database, PreferencesStore, setup_logging
        from news_sync.network import HttpNetworkDataSource
        from news_sync.sync import (
            SyncEngine, SyncWorker, VersionStore,
            TopicCollection, NewsResourceCollection,
        )
        from news_sync.notifications import LogNotifier

        config = load_config()
        setup_logging(config.storage.directory)
        database = Database(config.storage.database_path)
        preferences = PreferencesStore(config.storage.preferences_path)

        async with HttpNetworkDataSource(config.remote.base_url) as network:
            engine = SyncEngine(VersionStore(preferences), [
                TopicCollection(network, database),
                NewsResourceCollection(network, database, preferences),
            ])
            results = await SyncWorker(engine, database, LogNotifier()).run_once()

Dependencies:
    - aiohttp: HTTP client for the remote API
    - click / rich-click: CLI framework and colors
    - tqdm: Progress bars and tqdm-safe console logging
    - pyyaml: Configuration file parsing
    - python-dotenv: .env support for configuration overrides
"""

__version__ = "0.1.0"
__author__ = "news-sync"
__license__ = "MIT"

# Convenience imports for common usage
from news_sync.core import (
    Config,
    ConfigError,
    Database,
    NewsSyncError,
    PreferencesStore,
    RemoteProtocolError,
    RemoteUnavailable,
    StorageError,
    get_logger,
    load_config,
    setup_logging,
)
from news_sync.network import DemoNetworkDataSource, HttpNetworkDataSource, NetworkDataSource
from news_sync.sync import SyncEngine, SyncResult, SyncWorker, VersionStore

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "Database",
    "PreferencesStore",
    "setup_logging",
    "get_logger",
    # Exceptions
    "NewsSyncError",
    "ConfigError",
    "StorageError",
    "RemoteUnavailable",
    "RemoteProtocolError",
    # Network
    "NetworkDataSource",
    "HttpNetworkDataSource",
    "DemoNetworkDataSource",
    # Sync
    "SyncEngine",
    "SyncResult",
    "SyncWorker",
    "VersionStore",
]

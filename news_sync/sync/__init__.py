"""
Sync module for news-sync.

    - engine: SyncEngine, one watermark-based pass per collection
    - collections: Topic and news resource strategies
    - chunking: Batch planning for remote fetches
    - versions: Version watermark storage
    - worker: Scheduled rounds and notification dispatch
    - models: ChangeList, ChangeListEntry, SyncResult
"""

from news_sync.sync.chunking import SYNC_BATCH_SIZE, plan_chunks
from news_sync.sync.collections import (
    NEWS_RESOURCES,
    TOPICS,
    NewsResourceCollection,
    SyncCollection,
    TopicCollection,
)
from news_sync.sync.engine import SyncEngine
from news_sync.sync.models import (
    NEVER_SYNCED,
    ChangeList,
    ChangeListEntry,
    SyncResult,
    partition_change_list,
)
from news_sync.sync.versions import VersionStore
from news_sync.sync.worker import SyncWorker, passes_succeeded

__all__ = [
    "SYNC_BATCH_SIZE",
    "plan_chunks",
    "TOPICS",
    "NEWS_RESOURCES",
    "SyncCollection",
    "TopicCollection",
    "NewsResourceCollection",
    "SyncEngine",
    "NEVER_SYNCED",
    "ChangeList",
    "ChangeListEntry",
    "SyncResult",
    "partition_change_list",
    "VersionStore",
    "SyncWorker",
    "passes_succeeded",
]

"""
Data models for a sync pass.

ChangeListEntry and ChangeList are transient, scoped to one pass.
SyncResult is what SyncEngine.run() hands back to its caller.
"""

from dataclasses import dataclass, field

from news_sync.core.exceptions import NewsSyncError, SyncErrorKind


# A watermark at or below this value means "never synced".
NEVER_SYNCED = 0


@dataclass(frozen=True)
class ChangeListEntry:
    """
    One change reported by the remote source.

    Attributes:
        id: Identifier of the changed entity.
        deleted: True if the entity was deleted remotely.
        version: Version at which the change happened.
    """
    id: str
    deleted: bool = False
    version: int = NEVER_SYNCED


@dataclass(frozen=True)
class ChangeList:
    """Ordered changes since a watermark plus the new high-water version."""
    entries: tuple[ChangeListEntry, ...]
    latest_version: int


def partition_change_list(entries: tuple[ChangeListEntry, ...] | list[ChangeListEntry]) -> tuple[set[str], list[str]]:
    """
    Split change-list entries into (deleted_ids, changed_ids).

    changed_ids keeps first-occurrence order and holds no duplicates.
    An id reported both as changed and deleted is only in deleted_ids.
    """
    deleted_ids = {entry.id for entry in entries if entry.deleted}
    changed_ids = list(dict.fromkeys(
        entry.id for entry in entries
        if not entry.deleted and entry.id not in deleted_ids
    ))
    return deleted_ids, changed_ids


@dataclass(frozen=True)
class SyncResult:
    """
    Outcome of one sync pass.

    Attributes:
        collection: Name of the synced collection.
        success: True if the watermark was committed.
        version: The committed watermark on success, None on failure.
        notify_ids: Newly added ids matching the interest filter. Always
                    empty on first sync and on failure.
        first_sync: True if the pass started from the never-synced state.
        deleted_count: Number of ids deleted locally.
        fetched_count: Number of payloads fetched and applied.
        error: The error that failed (or rejected) the pass.
    """
    collection: str
    success: bool
    version: int | None = None
    notify_ids: frozenset[str] = field(default_factory=frozenset)
    first_sync: bool = False
    deleted_count: int = 0
    fetched_count: int = 0
    error: NewsSyncError | None = None

    @property
    def error_kind(self) -> SyncErrorKind | None:
        return self.error.kind if self.error is not None else None

    @property
    def rejected(self) -> bool:
        """True if the pass never ran because another one was in progress."""
        return self.error_kind is SyncErrorKind.CONCURRENT_SYNC_IN_PROGRESS

"""
Offline-first incremental sync engine.

One pass for one collection:
    1. Read the version watermark
    2. Fetch the change list since that version
    3. Split into deleted and changed ids (delete wins on overlap)
    4. Delete stale ids locally, right away
    5. On first sync, mark all changed ids as already seen
    6. Plan fixed-size chunks of changed ids
    7. For each chunk, sequentially: batch fetch, then one atomic ordered write
    8. Commit the new version (the commit point)
    9. Report newly added ids matching the user's interests (never on first sync)

Guarantees:
    - Any failure before step 8 leaves the version untouched, so the next
      pass re-offers every id not yet committed. Chunks already written stay
      (writes are idempotent upserts), deletions stay (stale data is worse
      than missing data).
    - Passes for the same collection never interleave: a second run() while
      one is active is rejected with ConcurrentSyncInProgress.
    - Passes for different collections may run concurrently (sync_all()).
    - The engine never retries. Failures are returned in the SyncResult,
      including unexpected errors raised by a collaborator (reported as
      SyncErrorKind.UNKNOWN).

Blocking storage calls go through asyncio.to_thread(), so a pass suspends
at every I/O boundary. If the surrounding task is cancelled during a
storage write, run() waits for that write to finish in its thread before
CancelledError propagates, so the collection lock is held until the local
store is quiet again. The version is not advanced unless the cancellation
arrives while the version itself is being written.

Usage:
    engine = SyncEngine(VersionStore(preferences), [
        TopicCollection(network, database),
        NewsResourceCollection(network, database, preferences),
    ])
    result = await engine.run("news_resources")
    if result.success and result.notify_ids:
        ...
"""

import asyncio
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from news_sync.core.exceptions import (
    ConcurrentSyncInProgress,
    NewsSyncError,
    RemoteProtocolError,
)
from news_sync.core.logger import format_sync_summary, get_logger, log_sync_failure
from news_sync.sync.chunking import SYNC_BATCH_SIZE, plan_chunks
from news_sync.sync.collections import SyncCollection
from news_sync.sync.models import NEVER_SYNCED, SyncResult, partition_change_list
from news_sync.sync.versions import VersionStore

logger = get_logger(__name__)

T = TypeVar("T")


# Called after each committed chunk: (collection, chunks_done, chunks_total)
ChunkCallback = Callable[[str, int, int], None]


class SyncEngine:
    """
    Runs sync passes for a fixed set of collections.

    Attributes:
        chunk_size: Maximum number of ids per batch fetch.
    """

    def __init__(
        self,
        versions: VersionStore,
        collections: Iterable[SyncCollection],
        chunk_size: int = SYNC_BATCH_SIZE,
        on_chunk: ChunkCallback | None = None
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be a positive integer, got {chunk_size}")

        self._versions = versions
        self._collections: dict[str, SyncCollection] = {}
        for collection in collections:
            if collection.name in self._collections:
                raise ValueError(f"Duplicate collection: {collection.name}")
            self._collections[collection.name] = collection
        self._locks = {name: asyncio.Lock() for name in self._collections}
        self.chunk_size = chunk_size
        self.on_chunk = on_chunk

    @property
    def collection_names(self) -> list[str]:
        return list(self._collections)

    def is_syncing(self, collection: str | None = None) -> bool:
        """True if a pass for collection (or any collection) is running."""
        if collection is None:
            return any(lock.locked() for lock in self._locks.values())
        return self._locks[collection].locked()

    async def sync_all(self) -> dict[str, SyncResult]:
        """Run one pass per collection, concurrently. Results keyed by name."""
        names = self.collection_names
        results = await asyncio.gather(*(self.run(name) for name in names))
        return dict(zip(names, results))

    async def run(self, collection: str) -> SyncResult:
        """
        Run at most one pass for collection.

        Args:
            collection: Name of a registered collection.

        Returns:
            SyncResult. success is False when the pass failed or was rejected
            because another pass for the same collection is in progress.

        Raises:
            KeyError: If collection is not registered.
            asyncio.CancelledError: If the surrounding task is cancelled.
        """
        if collection not in self._collections:
            raise KeyError(f"Unknown collection: {collection}")

        lock = self._locks[collection]
        if lock.locked():
            logger.info(f"Sync already in progress for {collection}, skipping")
            return SyncResult(
                collection=collection,
                success=False,
                error=ConcurrentSyncInProgress(
                    f"Sync already in progress for {collection}",
                    details={"collection": collection}
                ),
            )

        async with lock:
            return await self._run_pass(self._collections[collection])

    async def _run_pass(self, collection: SyncCollection) -> SyncResult:
        name = collection.name
        current_version: int | None = None
        first_sync = False
        deleted_count = 0
        fetched_count = 0

        try:
            current_version = await asyncio.to_thread(self._versions.read, name)
            first_sync = current_version <= NEVER_SYNCED
            logger.info(
                f"Syncing {name} from "
                f"{'scratch (first sync)' if first_sync else f'version {current_version}'}"
            )

            change_list = await collection.fetch_change_list(current_version)
            deleted_ids, changed_ids = partition_change_list(change_list.entries)
            logger.debug(
                f"{name}: {len(change_list.entries)} changes, "
                f"{len(deleted_ids)} deleted, {len(changed_ids)} to fetch, "
                f"latest version {change_list.latest_version}"
            )

            if deleted_ids:
                deleted_count = await self._write(collection.delete, deleted_ids)
                logger.debug(f"{name}: removed {deleted_count} of {len(deleted_ids)} deleted ids")

            known_ids: set[str] = set()
            if changed_ids:
                if first_sync:
                    await self._write(collection.mark_seen, changed_ids)
                elif collection.notifies:
                    known_ids = await asyncio.to_thread(collection.known_ids, changed_ids)

            chunks = plan_chunks(changed_ids, self.chunk_size)
            for index, chunk in enumerate(chunks, start=1):
                payloads = await collection.fetch_batch(chunk)
                self._check_batch(name, chunk, payloads)
                await self._write(collection.apply_batch, payloads)
                fetched_count += len(payloads)
                logger.debug(f"{name}: chunk {index}/{len(chunks)} applied ({len(payloads)} items)")
                if self.on_chunk is not None:
                    self.on_chunk(name, index, len(chunks))

            notify_ids: set[str] = set()
            if not first_sync and collection.notifies and changed_ids:
                candidates = [i for i in changed_ids if i not in known_ids]
                if candidates:
                    notify_ids = await asyncio.to_thread(collection.interest_ids, candidates)

            new_version = max(current_version, change_list.latest_version)
            await self._write(self._versions.write, name, new_version)

        except asyncio.CancelledError:
            logger.warning(
                f"Sync of {name} cancelled after {fetched_count} items; "
                f"version stays at {current_version}"
            )
            raise

        except NewsSyncError as e:
            e.details.setdefault("collection", name)
            log_sync_failure(logger, name, e.kind.value, current_version, e.message)
            return SyncResult(
                collection=name,
                success=False,
                first_sync=first_sync,
                deleted_count=deleted_count,
                fetched_count=fetched_count,
                error=e,
            )

        except Exception as e:
            error = NewsSyncError(
                f"Unexpected {type(e).__name__} while syncing {name}: {e}",
                details={"collection": name, "original_error": repr(e)}
            )
            error.__cause__ = e
            log_sync_failure(
                logger, name, error.kind.value, current_version, error.message, exc_info=True
            )
            return SyncResult(
                collection=name,
                success=False,
                first_sync=first_sync,
                deleted_count=deleted_count,
                fetched_count=fetched_count,
                error=error,
            )

        logger.info(format_sync_summary(name, fetched_count, deleted_count, new_version))
        if notify_ids:
            logger.info(f"{name}: {len(notify_ids)} new items to notify about")

        return SyncResult(
            collection=name,
            success=True,
            version=new_version,
            notify_ids=frozenset(notify_ids),
            first_sync=first_sync,
            deleted_count=deleted_count,
            fetched_count=fetched_count,
        )

    @staticmethod
    async def _write(func: Callable[..., T], *args: Any) -> T:
        """
        Run a blocking storage write in a worker thread.

        The write is shielded: if the calling task is cancelled, this waits
        for the thread to finish before re-raising CancelledError, so the
        caller never observes a write still running after it returned.
        """
        write = asyncio.ensure_future(asyncio.to_thread(func, *args))
        try:
            return await asyncio.shield(write)
        except asyncio.CancelledError:
            await asyncio.wait([write])
            if not write.cancelled() and write.exception() is not None:
                logger.warning(f"Storage write failed after cancellation: {write.exception()}")
            raise

    @staticmethod
    def _check_batch(name: str, requested: list[str], payloads: list) -> None:
        """
        Validate a batch response against the requested ids.

        Raises:
            RemoteProtocolError: If the response holds ids that were not requested.
        """
        requested_set = set(requested)
        received = {payload.id for payload in payloads}

        unexpected = received - requested_set
        if unexpected:
            raise RemoteProtocolError(
                f"Batch response for {name} contains {len(unexpected)} unrequested ids",
                details={"collection": name, "unexpected_ids": sorted(unexpected)}
            )

        missing = requested_set - received
        if missing:
            logger.warning(
                f"{name}: remote returned no payload for {len(missing)} requested ids "
                f"({', '.join(sorted(missing)[:5])}{'...' if len(missing) > 5 else ''})"
            )

"""
Scheduled sync driver.

SyncWorker is the caller the engine leaves retry cadence to: it runs a
pass over every collection, turns notify ids into notifications, and
(in watch mode) repeats on a fixed interval. A failed pass is simply
retried on the next tick, which is safe because passes are idempotent up
to the last committed version.
"""

import asyncio
from collections.abc import Callable

from news_sync.core.database import Database
from news_sync.core.logger import get_logger
from news_sync.notifications import Notifier
from news_sync.sync.collections import NEWS_RESOURCES
from news_sync.sync.engine import SyncEngine
from news_sync.sync.models import SyncResult

logger = get_logger(__name__)


PassCallback = Callable[[dict[str, SyncResult]], None]


def passes_succeeded(results: dict[str, SyncResult]) -> bool:
    """True if every pass committed or was merely skipped as already running."""
    return all(result.success or result.rejected for result in results.values())


class SyncWorker:
    """Runs full sync rounds and dispatches notifications."""

    def __init__(self, engine: SyncEngine, database: Database, notifier: Notifier) -> None:
        self._engine = engine
        self._database = database
        self._notifier = notifier

    @property
    def is_syncing(self) -> bool:
        return self._engine.is_syncing()

    async def run_once(self, collections: list[str] | None = None) -> dict[str, SyncResult]:
        """
        Run one pass per collection (all of them by default) and post
        notifications for newly added news resources.
        """
        if collections is None:
            results = await self._engine.sync_all()
        else:
            outcomes = await asyncio.gather(*(self._engine.run(name) for name in collections))
            results = dict(zip(collections, outcomes))

        news_result = results.get(NEWS_RESOURCES)
        if news_result is not None and news_result.success and news_result.notify_ids:
            resources = await asyncio.to_thread(
                self._database.get_news_resources,
                filter_news_ids=news_result.notify_ids,
            )
            if resources:
                self._notifier.post_news_notifications(resources)

        if not passes_succeeded(results):
            failed = [name for name, r in results.items() if not (r.success or r.rejected)]
            logger.warning(f"Sync incomplete for {', '.join(failed)}; will retry on next run")

        return results

    async def watch(
        self,
        interval: float,
        max_passes: int | None = None,
        on_pass: PassCallback | None = None
    ) -> int:
        """
        Run a round every interval seconds.

        Args:
            interval: Seconds to wait between the end of one round and the next.
            max_passes: Stop after this many rounds (forever if None).
            on_pass: Called with each round's results.

        Returns:
            Number of rounds completed.
        """
        completed = 0
        while max_passes is None or completed < max_passes:
            results = await self.run_once()
            completed += 1
            if on_pass is not None:
                on_pass(results)
            if max_passes is not None and completed >= max_passes:
                break
            logger.debug(f"Next sync in {interval:.0f}s")
            await asyncio.sleep(interval)
        return completed

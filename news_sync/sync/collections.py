"""
Per-collection sync strategies.

SyncEngine drives the pass; a SyncCollection tells it, for one collection,
where the change list and payloads come from and how they are written.

Collections:
    TopicCollection ("topics"):
        Plain upsert of full topics. Never produces notifications.
    NewsResourceCollection ("news_resources"):
        Each batch is written as topic shells -> news resources -> topic
        cross references in one transaction. Marks everything as viewed on
        first sync and reports new resources in followed topics once the
        user has completed onboarding.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from news_sync.core.database import Database
from news_sync.core.logger import get_logger
from news_sync.core.preferences import PreferencesStore
from news_sync.sync.models import ChangeList

if TYPE_CHECKING:
    from news_sync.network.base import NetworkDataSource
    from news_sync.network.models import NetworkNewsResource, NetworkTopic

logger = get_logger(__name__)


TOPICS = "topics"
NEWS_RESOURCES = "news_resources"


class SyncCollection(ABC):
    """
    One synchronized entity collection.

    Storage methods are blocking; the engine runs them in a worker thread.
    All of them must be idempotent.

    Attributes:
        name: Collection key, also the VersionStore key.
        notifies: True if new items of this collection can trigger
                  user-facing notifications.
    """

    name: str
    notifies: bool = False

    @abstractmethod
    async def fetch_change_list(self, since: int) -> ChangeList:
        """Changes after version since."""

    @abstractmethod
    async def fetch_batch(self, ids: Sequence[str]) -> list[Any]:
        """Full payloads for ids. Each payload has an 'id' attribute."""

    @abstractmethod
    def delete(self, ids: set[str]) -> int:
        """Remove ids from the local store. Returns the number removed."""

    @abstractmethod
    def apply_batch(self, payloads: list[Any]) -> None:
        """Write one batch of payloads atomically, in dependency order."""

    def known_ids(self, ids: Sequence[str]) -> set[str]:
        """Ids among ids already present locally."""
        return set()

    def mark_seen(self, ids: Sequence[str]) -> None:
        """Record ids as already seen by the user (first sync only)."""

    def interest_ids(self, ids: Sequence[str]) -> set[str]:
        """Ids among ids the user wants to be notified about."""
        return set()


class TopicCollection(SyncCollection):
    """Topics: fetched in batches and upserted as-is."""

    name = TOPICS

    def __init__(self, network: "NetworkDataSource", database: Database) -> None:
        self._network = network
        self._database = database

    async def fetch_change_list(self, since: int) -> ChangeList:
        return await self._network.get_topic_change_list(after=since)

    async def fetch_batch(self, ids: Sequence[str]) -> list["NetworkTopic"]:
        return await self._network.get_topics(ids)

    def delete(self, ids: set[str]) -> int:
        return self._database.delete_topics(ids)

    def apply_batch(self, payloads: list["NetworkTopic"]) -> None:
        self._database.upsert_topics(topic.as_entity() for topic in payloads)

    def known_ids(self, ids: Sequence[str]) -> set[str]:
        return self._database.get_topic_ids(filter_ids=ids)


class NewsResourceCollection(SyncCollection):
    """News resources: batches reference topics, so writes are ordered."""

    name = NEWS_RESOURCES
    notifies = True

    def __init__(
        self,
        network: "NetworkDataSource",
        database: Database,
        preferences: PreferencesStore
    ) -> None:
        self._network = network
        self._database = database
        self._preferences = preferences

    async def fetch_change_list(self, since: int) -> ChangeList:
        return await self._network.get_news_resource_change_list(after=since)

    async def fetch_batch(self, ids: Sequence[str]) -> list["NetworkNewsResource"]:
        return await self._network.get_news_resources(ids)

    def delete(self, ids: set[str]) -> int:
        return self._database.delete_news_resources(ids)

    def apply_batch(self, payloads: list["NetworkNewsResource"]) -> None:
        topic_shells = list({
            shell.id: shell
            for resource in payloads
            for shell in resource.topic_entity_shells()
        }.values())
        cross_references = list(dict.fromkeys(
            ref for resource in payloads for ref in resource.topic_cross_references()
        ))
        self._database.apply_news_resource_batch(
            topic_shells=topic_shells,
            resources=[resource.as_entity() for resource in payloads],
            cross_references=cross_references,
        )

    def known_ids(self, ids: Sequence[str]) -> set[str]:
        return self._database.get_news_resource_ids(filter_news_ids=ids)

    def mark_seen(self, ids: Sequence[str]) -> None:
        self._preferences.set_news_resources_viewed(ids, True)

    def interest_ids(self, ids: Sequence[str]) -> set[str]:
        user_data = self._preferences.user_data()
        if not user_data.should_hide_onboarding or not user_data.followed_topics:
            return set()
        return self._database.get_news_resource_ids(
            filter_topic_ids=user_data.followed_topics,
            filter_news_ids=ids,
        )

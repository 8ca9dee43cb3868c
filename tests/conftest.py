"""Test configuration and fixtures"""

import asyncio
import tempfile
from collections.abc import Sequence
from pathlib import Path

import pytest

from news_sync.core.database import Database
from news_sync.core.exceptions import RemoteUnavailable
from news_sync.core.preferences import PreferencesStore
from news_sync.network.base import NetworkDataSource
from news_sync.network.models import NetworkNewsResource, NetworkTopic
from news_sync.sync.collections import NewsResourceCollection, TopicCollection
from news_sync.sync.engine import SyncEngine
from news_sync.sync.models import ChangeList, ChangeListEntry
from news_sync.sync.versions import VersionStore


class FakeNetworkDataSource(NetworkDataSource):
    """
    In-memory remote source.

    Change lists are whatever the test put into topic_changes / news_changes;
    batch fetches return the stored payloads for the requested ids that exist.
    Every call is recorded in calls as (method, argument).
    """

    def __init__(self) -> None:
        self.topics: dict[str, NetworkTopic] = {}
        self.news_resources: dict[str, NetworkNewsResource] = {}
        self.topic_changes: list[ChangeListEntry] = []
        self.news_changes: list[ChangeListEntry] = []
        self.latest_version_override: dict[str, int] = {}
        self.extra_news_payloads: list[NetworkNewsResource] = []
        self.calls: list[tuple[str, object]] = []
        self.failures: dict[tuple[str, int], Exception] = {}
        self.gate: asyncio.Event | None = None
        self.waiting_at_gate: asyncio.Event | None = None
        self.closed = False

    # Builders ---------------------------------------------------------------

    def add_topic(self, topic_id: str, version: int, name: str | None = None) -> None:
        self.topics[topic_id] = NetworkTopic(id=topic_id, name=name or f"Topic {topic_id}")
        self.topic_changes.append(ChangeListEntry(id=topic_id, version=version))

    def add_news_resource(
        self,
        news_id: str,
        version: int,
        topics: Sequence[str] = (),
        title: str | None = None,
        publish_date: str = "2024-01-01T00:00:00Z"
    ) -> None:
        self.news_resources[news_id] = NetworkNewsResource(
            id=news_id,
            title=title or f"News {news_id}",
            content="content",
            url=f"https://example.com/news/{news_id}",
            header_image_url=None,
            publish_date=publish_date,
            type="Article",
            topics=tuple(topics),
        )
        self.news_changes.append(ChangeListEntry(id=news_id, version=version))

    def delete_news_resource(self, news_id: str, version: int) -> None:
        self.news_resources.pop(news_id, None)
        self.news_changes.append(ChangeListEntry(id=news_id, deleted=True, version=version))

    def fail(self, method: str, call_number: int, error: Exception | None = None) -> None:
        """Make the call_number-th call (1-based) of method raise error."""
        self.failures[(method, call_number)] = error or RemoteUnavailable(f"{method} failed")

    def call_args(self, method: str) -> list[object]:
        return [arg for name, arg in self.calls if name == method]

    # NetworkDataSource ------------------------------------------------------

    async def _record(self, method: str, arg: object) -> None:
        self.calls.append((method, arg))
        error = self.failures.pop((method, len(self.call_args(method))), None)
        if error is not None:
            raise error
        await asyncio.sleep(0)

    def _change_list(self, key: str, changes: list[ChangeListEntry], after: int) -> ChangeList:
        entries = tuple(entry for entry in changes if entry.version > after)
        latest = max((entry.version for entry in entries), default=after)
        return ChangeList(entries=entries, latest_version=self.latest_version_override.get(key, latest))

    async def _wait_at_gate(self) -> None:
        if self.gate is None:
            return
        if self.waiting_at_gate is not None:
            self.waiting_at_gate.set()
        await self.gate.wait()

    async def get_topic_change_list(self, after: int) -> ChangeList:
        await self._record("get_topic_change_list", after)
        return self._change_list("topics", self.topic_changes, after)

    async def get_news_resource_change_list(self, after: int) -> ChangeList:
        await self._record("get_news_resource_change_list", after)
        await self._wait_at_gate()
        return self._change_list("news_resources", self.news_changes, after)

    async def get_topics(self, ids: Sequence[str]) -> list[NetworkTopic]:
        await self._record("get_topics", list(ids))
        return [self.topics[i] for i in ids if i in self.topics]

    async def get_news_resources(self, ids: Sequence[str]) -> list[NetworkNewsResource]:
        await self._record("get_news_resources", list(ids))
        found = [self.news_resources[i] for i in ids if i in self.news_resources]
        return found + self.extra_news_payloads

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def database(temp_dir):
    """Fresh SQLite database in the temporary directory"""
    db = Database(temp_dir / "database.db")
    yield db
    db.close()


@pytest.fixture
def preferences(temp_dir):
    """Fresh preferences store in the temporary directory"""
    return PreferencesStore(temp_dir / "preferences.json")


@pytest.fixture
def versions(preferences):
    return VersionStore(preferences)


@pytest.fixture
def network():
    return FakeNetworkDataSource()


@pytest.fixture
def engine(network, database, preferences, versions):
    """SyncEngine wired to the fake network and real local stores"""
    return SyncEngine(versions, [
        TopicCollection(network, database),
        NewsResourceCollection(network, database, preferences),
    ])


@pytest.fixture
def write_config(temp_dir):
    """Write a config.yaml into the temporary directory and return its path"""
    def _write(content: str, name: str = "config.yaml") -> Path:
        path = temp_dir / name
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def demo_feed(temp_dir):
    """Small demo feed file with two topics and three news resources"""
    path = temp_dir / "feed.json"
    path.write_text(
        """
        {
          "topics": [
            {"id": "1", "name": "Headlines"},
            {"id": "2", "name": "UI"}
          ],
          "news_resources": [
            {"id": "10", "title": "First", "publishDate": "2024-01-01T00:00:00Z", "topics": ["1"]},
            {"id": "11", "title": "Second", "publishDate": "2024-01-02T00:00:00Z", "topics": ["2"]},
            {"id": "12", "title": "Third", "publishDate": "2024-01-03T00:00:00Z", "topics": ["1", "2"]}
          ]
        }
        """,
        encoding="utf-8",
    )
    return path

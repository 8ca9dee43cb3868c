"""Tests for the demo JSON feed data source"""

import pytest

from news_sync.core.exceptions import RemoteProtocolError, RemoteUnavailable
from news_sync.network.demo import DemoNetworkDataSource
from news_sync.sync.collections import NEWS_RESOURCES, TOPICS, NewsResourceCollection, TopicCollection
from news_sync.sync.engine import SyncEngine


class TestDemoNetworkDataSource:
    """Test synthesized change lists and lookups"""

    @pytest.mark.asyncio
    async def test_change_list_from_scratch(self, demo_feed):
        source = DemoNetworkDataSource(demo_feed)

        change_list = await source.get_news_resource_change_list(after=0)

        assert [(e.id, e.version, e.deleted) for e in change_list.entries] == [
            ("10", 1, False), ("11", 2, False), ("12", 3, False),
        ]
        assert change_list.latest_version == 3

    @pytest.mark.asyncio
    async def test_change_list_after_version(self, demo_feed):
        source = DemoNetworkDataSource(demo_feed)

        partial = await source.get_news_resource_change_list(after=2)
        beyond = await source.get_topic_change_list(after=5)

        assert [e.id for e in partial.entries] == ["12"]
        assert partial.latest_version == 3
        assert beyond.entries == ()
        assert beyond.latest_version == 5

    @pytest.mark.asyncio
    async def test_batch_lookup(self, demo_feed):
        source = DemoNetworkDataSource(demo_feed)

        resources = await source.get_news_resources(["12", "10", "99"])
        topics = await source.get_topics(["2"])

        assert sorted(r.id for r in resources) == ["10", "12"]
        assert [t.name for t in topics] == ["UI"]

    @pytest.mark.asyncio
    async def test_missing_feed(self, temp_dir):
        source = DemoNetworkDataSource(temp_dir / "nope.json")

        with pytest.raises(RemoteUnavailable):
            await source.get_topic_change_list(after=0)

    @pytest.mark.asyncio
    async def test_invalid_feed(self, temp_dir):
        path = temp_dir / "feed.json"
        path.write_text("[1, 2", encoding="utf-8")

        with pytest.raises(RemoteProtocolError):
            await DemoNetworkDataSource(path).get_topic_change_list(after=0)

    @pytest.mark.asyncio
    async def test_full_sync_from_demo_feed(self, demo_feed, database, preferences, versions):
        source = DemoNetworkDataSource(demo_feed)
        engine = SyncEngine(versions, [
            TopicCollection(source, database),
            NewsResourceCollection(source, database, preferences),
        ])

        results = await engine.sync_all()
        again = await engine.run(NEWS_RESOURCES)

        assert results[TOPICS].version == 2
        assert results[NEWS_RESOURCES].version == 3
        assert again.success and again.fetched_count == 0
        assert database.get_stats() == {
            "topics": 2, "topic_shells": 0, "news_resources": 3, "topic_links": 4,
        }

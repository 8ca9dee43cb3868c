"""Tests for the SQLite database"""

import sqlite3

import pytest

from news_sync.core.database import Database
from news_sync.core.exceptions import StorageError
from news_sync.core.models import NewsResource, Topic, TopicCrossReference


def _news(news_id, publish_date="2024-01-01T00:00:00Z", title=None, topic_ids=()):
    return NewsResource(
        id=news_id,
        title=title or f"News {news_id}",
        content="content",
        url=f"https://example.com/{news_id}",
        header_image_url=None,
        publish_date=publish_date,
        type="Article",
        topic_ids=tuple(topic_ids),
    )


def _apply(database, *resources):
    """Write resources the way a sync batch does."""
    topic_ids = {t for r in resources for t in r.topic_ids}
    database.apply_news_resource_batch(
        topic_shells=[Topic.shell(t) for t in sorted(topic_ids)],
        resources=list(resources),
        cross_references=[
            TopicCrossReference(news_resource_id=r.id, topic_id=t)
            for r in resources for t in r.topic_ids
        ],
    )


class TestDatabaseSetup:
    """Test database creation"""

    def test_missing_parent_directory(self, temp_dir):
        with pytest.raises(StorageError):
            Database(temp_dir / "missing" / "database.db")

    def test_data_survives_reopen(self, temp_dir):
        path = temp_dir / "database.db"
        with Database(path) as db:
            db.upsert_topics([Topic(id="1", name="Headlines")])

        with Database(path) as db:
            assert db.get_topic_ids() == {"1"}

    def test_schema_version_mismatch(self, temp_dir):
        path = temp_dir / "database.db"
        Database(path).close()
        conn = sqlite3.connect(path)
        conn.execute("UPDATE schema_version SET version = 99")
        conn.commit()
        conn.close()

        with pytest.raises(StorageError):
            Database(path)


class TestTopics:
    """Test topic storage"""

    def test_upsert_replaces_shell(self, database):
        database.insert_or_ignore_topics([Topic.shell("1")])
        database.upsert_topics([Topic(id="1", name="Headlines", url="https://example.com")])

        topics = database.get_topics()
        assert topics == [Topic(id="1", name="Headlines", url="https://example.com")]

    def test_insert_or_ignore_keeps_existing(self, database):
        database.upsert_topics([Topic(id="1", name="Headlines")])
        database.insert_or_ignore_topics([Topic.shell("1"), Topic.shell("2")])

        assert [t.name for t in database.get_topics(["1", "2"])] == ["", "Headlines"]

    def test_get_topic_ids_filter(self, database):
        database.upsert_topics([Topic(id="1"), Topic(id="2")])

        assert database.get_topic_ids(filter_ids=["2", "3"]) == {"2"}
        assert database.get_topic_ids(filter_ids=[]) == set()

    def test_delete_topics_cascades_links(self, database):
        _apply(database, _news("a", topic_ids=["1", "2"]))

        deleted = database.delete_topics(["1", "missing"])

        assert deleted == 1
        assert database.get_news_resources()[0].topic_ids == ("2",)


class TestNewsResources:
    """Test news resource storage"""

    def test_batch_writes_shells_resources_and_links(self, database):
        _apply(database, _news("a", topic_ids=["1", "2"]), _news("b", topic_ids=["2"]))

        stats = database.get_stats()
        assert stats == {"topics": 2, "topic_shells": 2, "news_resources": 2, "topic_links": 3}

    def test_failed_link_step_rolls_back_whole_batch(self, database):
        """Test a failing cross reference insert leaves no shells or resources behind"""
        with pytest.raises(StorageError):
            database.apply_news_resource_batch(
                topic_shells=[Topic.shell("1")],
                resources=[_news("a", topic_ids=["1"])],
                cross_references=[
                    TopicCrossReference(news_resource_id="a", topic_id="1"),
                    TopicCrossReference(news_resource_id="a", topic_id="unknown"),
                ],
            )

        assert database.get_stats() == {"topics": 0, "topic_shells": 0, "news_resources": 0, "topic_links": 0}

        _apply(database, _news("a", topic_ids=["1"]))
        assert database.get_news_resource_ids() == {"a"}

    def test_replaying_batch_is_idempotent(self, database):
        batch = (_news("a", topic_ids=["1"]), _news("b", topic_ids=["1"]))
        _apply(database, *batch)
        _apply(database, *batch)

        assert database.get_stats()["news_resources"] == 2
        assert database.get_stats()["topic_links"] == 2

    def test_batch_does_not_overwrite_full_topic(self, database):
        database.upsert_topics([Topic(id="1", name="Headlines")])
        _apply(database, _news("a", topic_ids=["1"]))

        assert database.get_topics()[0].name == "Headlines"

    def test_upsert_keeps_topic_links(self, database):
        """Test updating a resource does not drop its junction rows"""
        _apply(database, _news("a", topic_ids=["1"]))
        database.upsert_news_resources([_news("a", title="Updated")])

        resources = database.get_news_resources()
        assert resources[0].title == "Updated"
        assert resources[0].topic_ids == ("1",)

    def test_delete_cascades_links(self, database):
        _apply(database, _news("a", topic_ids=["1"]), _news("b", topic_ids=["1"]))

        assert database.delete_news_resources(["a", "zzz"]) == 1
        assert database.get_news_resource_ids() == {"b"}
        assert database.get_stats()["topic_links"] == 1

    def test_delete_nothing(self, database):
        assert database.delete_news_resources([]) == 0

    def test_newest_first_with_topic_ids(self, database):
        _apply(
            database,
            _news("old", publish_date="2023-01-01T00:00:00Z", topic_ids=["2", "1"]),
            _news("new", publish_date="2024-06-01T00:00:00Z", topic_ids=["3"]),
        )

        resources = database.get_news_resources()

        assert [r.id for r in resources] == ["new", "old"]
        assert resources[1].topic_ids == ("1", "2")

    def test_filters(self, database):
        _apply(
            database,
            _news("a", topic_ids=["1"]),
            _news("b", topic_ids=["2"]),
            _news("c", topic_ids=["1", "2"]),
        )

        assert database.get_news_resource_ids(filter_topic_ids=["1"]) == {"a", "c"}
        assert database.get_news_resource_ids(filter_news_ids=["b", "x"]) == {"b"}
        assert database.get_news_resource_ids(filter_topic_ids=["2"], filter_news_ids=["a", "c"]) == {"c"}
        assert database.get_news_resource_ids(filter_topic_ids=[]) == set()
        assert database.get_news_resources(filter_news_ids=[]) == []

    def test_topic_filter_returns_all_topic_ids(self, database):
        """Test resources filtered by topic still carry every topic they belong to"""
        _apply(database, _news("c", topic_ids=["1", "2"]))

        resources = database.get_news_resources(filter_topic_ids=["1"])

        assert len(resources) == 1
        assert resources[0].topic_ids == ("1", "2")

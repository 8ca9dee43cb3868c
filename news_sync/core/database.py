"""
Thread-safe SQLite database for news-sync.

This is the local, offline-first copy of the remote dataset. All reads are
served from here so previously synced data stays available when the remote
source is not.

Schema:
    topics:                 One row per topic (may be a shell with only an id)
    news_resources:         One row per news resource
    news_resources_topics:  Junction table (news_resource_id, topic_id)

Write ordering:
    A news resource references topics. Within apply_news_resource_batch()
    the referenced topics are inserted first, then the news resources,
    then the junction rows, all in one transaction, so a reader never
    observes a news resource whose topic does not exist yet.

Idempotency:
    Every write is an upsert or insert-or-ignore keyed by id, so replaying
    the same batch (e.g. after a failed pass) never raises duplicate-entry
    errors.

Usage:
    db = Database(storage_dir / "database.db")
    db.apply_news_resource_batch(topic_shells, resources, cross_references)
    ids = db.get_news_resource_ids(filter_topic_ids={"3"})
"""

import sqlite3
import threading
from collections.abc import Iterable
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from news_sync.core.exceptions import StorageError
from news_sync.core.logger import get_logger
from news_sync.core.models import NewsResource, Topic, TopicCrossReference

logger = get_logger(__name__)


DATABASE_VERSION = 1


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS topics (
    id TEXT PRIMARY KEY NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    short_description TEXT NOT NULL DEFAULT '',
    long_description TEXT NOT NULL DEFAULT '',
    url TEXT NOT NULL DEFAULT '',
    image_url TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS news_resources (
    id TEXT PRIMARY KEY NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    url TEXT NOT NULL,
    header_image_url TEXT,
    publish_date TEXT NOT NULL,
    type TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS news_resources_topics (
    news_resource_id TEXT NOT NULL,
    topic_id TEXT NOT NULL,
    PRIMARY KEY (news_resource_id, topic_id),
    FOREIGN KEY (news_resource_id) REFERENCES news_resources(id) ON DELETE CASCADE,
    FOREIGN KEY (topic_id) REFERENCES topics(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_news_resources_publish_date ON news_resources(publish_date);
CREATE INDEX IF NOT EXISTS idx_news_resources_topics_topic ON news_resources_topics(topic_id);
"""


_UPSERT_TOPIC_SQL = """
    INSERT INTO topics (id, name, short_description, long_description, url, image_url)
    VALUES (?, ?, ?, ?, ?, ?)
    ON CONFLICT(id) DO UPDATE SET
        name = excluded.name,
        short_description = excluded.short_description,
        long_description = excluded.long_description,
        url = excluded.url,
        image_url = excluded.image_url
"""

_INSERT_OR_IGNORE_TOPIC_SQL = """
    INSERT OR IGNORE INTO topics (id, name, short_description, long_description, url, image_url)
    VALUES (?, ?, ?, ?, ?, ?)
"""

# ON CONFLICT DO UPDATE rather than INSERT OR REPLACE: a REPLACE deletes the
# row first, which would cascade away the resource's junction rows.
_UPSERT_NEWS_RESOURCE_SQL = """
    INSERT INTO news_resources (id, title, content, url, header_image_url, publish_date, type)
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(id) DO UPDATE SET
        title = excluded.title,
        content = excluded.content,
        url = excluded.url,
        header_image_url = excluded.header_image_url,
        publish_date = excluded.publish_date,
        type = excluded.type
"""

_INSERT_OR_IGNORE_CROSS_REF_SQL = """
    INSERT OR IGNORE INTO news_resources_topics (news_resource_id, topic_id)
    VALUES (?, ?)
"""


def _topic_params(topic: Topic) -> tuple:
    return (
        topic.id, topic.name, topic.short_description,
        topic.long_description, topic.url, topic.image_url
    )


def _news_resource_params(resource: NewsResource) -> tuple:
    return (
        resource.id, resource.title, resource.content, resource.url,
        resource.header_image_url, resource.publish_date, resource.type
    )


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


class Database:
    """
    Thread-safe SQLite database holding topics and news resources.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing, which makes it
    safe to call them from asyncio.to_thread() workers.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise StorageError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path), "original_error": str(e)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get the persistent database connection as a context manager.

        The connection is created once and reused for all operations.
        sqlite3 errors raised inside the block are converted to StorageError.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute("PRAGMA journal_mode = WAL")
        try:
            yield self._conn
        except sqlite3.Error as e:
            raise StorageError(
                f"Database operation failed: {e}",
                details={"path": str(self.db_path), "original_error": str(e)}
            ) from e

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()

            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
            elif row[0] != DATABASE_VERSION:
                raise StorageError(
                    f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                    details={"expected": DATABASE_VERSION, "actual": row[0]}
                )
            conn.commit()

    # =========================================================================
    # Topics
    # =========================================================================

    def upsert_topics(self, topics: Iterable[Topic]) -> None:
        """Insert or update topics by id. Overwrites shells with full data."""
        params = [_topic_params(t) for t in topics]
        if not params:
            return
        with self._lock:
            with self._get_connection() as conn:
                with conn:
                    conn.executemany(_UPSERT_TOPIC_SQL, params)

    def insert_or_ignore_topics(self, topics: Iterable[Topic]) -> None:
        """Insert topics that don't exist yet; existing rows are left untouched."""
        params = [_topic_params(t) for t in topics]
        if not params:
            return
        with self._lock:
            with self._get_connection() as conn:
                with conn:
                    conn.executemany(_INSERT_OR_IGNORE_TOPIC_SQL, params)

    def delete_topics(self, ids: Iterable[str]) -> int:
        """Delete topics by id (junction rows cascade). Returns rows deleted."""
        id_list = list(ids)
        if not id_list:
            return 0
        with self._lock:
            with self._get_connection() as conn:
                with conn:
                    cursor = conn.executemany("DELETE FROM topics WHERE id = ?", [(i,) for i in id_list])
                    return cursor.rowcount

    def get_topic_ids(self, filter_ids: Iterable[str] | None = None) -> set[str]:
        """Ids of stored topics, optionally restricted to filter_ids."""
        with self._lock:
            with self._get_connection() as conn:
                if filter_ids is None:
                    cursor = conn.execute("SELECT id FROM topics")
                    return {row[0] for row in cursor.fetchall()}
                return self._select_existing_ids(conn, "topics", filter_ids)

    def get_topics(self, ids: Iterable[str] | None = None) -> list[Topic]:
        """Stored topics ordered by name, optionally restricted to ids."""
        with self._lock:
            with self._get_connection() as conn:
                if ids is None:
                    cursor = conn.execute("SELECT * FROM topics ORDER BY name, id")
                    rows = cursor.fetchall()
                else:
                    id_list = list(ids)
                    if not id_list:
                        return []
                    cursor = conn.execute(
                        f"SELECT * FROM topics WHERE id IN ({_placeholders(len(id_list))}) ORDER BY name, id",
                        id_list
                    )
                    rows = cursor.fetchall()
                return [Topic(**dict(row)) for row in rows]

    # =========================================================================
    # News Resources
    # =========================================================================

    def upsert_news_resources(self, resources: Iterable[NewsResource]) -> None:
        params = [_news_resource_params(r) for r in resources]
        if not params:
            return
        with self._lock:
            with self._get_connection() as conn:
                with conn:
                    conn.executemany(_UPSERT_NEWS_RESOURCE_SQL, params)

    def insert_or_ignore_topic_cross_references(
        self,
        cross_references: Iterable[TopicCrossReference]
    ) -> None:
        params = [(c.news_resource_id, c.topic_id) for c in cross_references]
        if not params:
            return
        with self._lock:
            with self._get_connection() as conn:
                with conn:
                    conn.executemany(_INSERT_OR_IGNORE_CROSS_REF_SQL, params)

    def delete_news_resources(self, ids: Iterable[str]) -> int:
        """Delete news resources by id (junction rows cascade). Returns rows deleted."""
        id_list = list(ids)
        if not id_list:
            return 0
        with self._lock:
            with self._get_connection() as conn:
                with conn:
                    cursor = conn.executemany(
                        "DELETE FROM news_resources WHERE id = ?", [(i,) for i in id_list]
                    )
                    return cursor.rowcount

    def apply_news_resource_batch(
        self,
        topic_shells: Iterable[Topic],
        resources: Iterable[NewsResource],
        cross_references: Iterable[TopicCrossReference]
    ) -> None:
        """
        Write one synced batch of news resources atomically.

        Order is mandatory:
            1. insert-or-ignore the referenced topics (shells)
            2. upsert the news resources
            3. insert-or-ignore the news resource <-> topic junction rows

        Either all three steps are committed or none is.

        Raises:
            StorageError: If any statement fails; the transaction is rolled back.
        """
        topic_params = [_topic_params(t) for t in topic_shells]
        resource_params = [_news_resource_params(r) for r in resources]
        cross_ref_params = [(c.news_resource_id, c.topic_id) for c in cross_references]

        with self._lock:
            with self._get_connection() as conn:
                with conn:
                    conn.executemany(_INSERT_OR_IGNORE_TOPIC_SQL, topic_params)
                    conn.executemany(_UPSERT_NEWS_RESOURCE_SQL, resource_params)
                    conn.executemany(_INSERT_OR_IGNORE_CROSS_REF_SQL, cross_ref_params)

        logger.debug(
            f"Applied batch: {len(topic_params)} topic shells, "
            f"{len(resource_params)} news resources, {len(cross_ref_params)} cross references"
        )

    def get_news_resource_ids(
        self,
        filter_topic_ids: Iterable[str] | None = None,
        filter_news_ids: Iterable[str] | None = None
    ) -> set[str]:
        """
        Ids of stored news resources matching the optional filters.

        Args:
            filter_topic_ids: If given, only resources belonging to at least
                              one of these topics.
            filter_news_ids: If given, only resources among these ids.
        """
        with self._lock:
            with self._get_connection() as conn:
                sql, params = self._news_resource_query("SELECT DISTINCT nr.id", filter_topic_ids, filter_news_ids)
                if sql is None:
                    return set()
                cursor = conn.execute(sql, params)
                return {row[0] for row in cursor.fetchall()}

    def get_news_resources(
        self,
        filter_topic_ids: Iterable[str] | None = None,
        filter_news_ids: Iterable[str] | None = None
    ) -> list[NewsResource]:
        """
        Stored news resources matching the optional filters, newest first,
        each populated with its topic ids.
        """
        with self._lock:
            with self._get_connection() as conn:
                id_sql, params = self._news_resource_query("SELECT DISTINCT nr.id", filter_topic_ids, filter_news_ids)
                if id_sql is None:
                    return []
                rows = conn.execute(
                    f"SELECT * FROM news_resources WHERE id IN ({id_sql}) ORDER BY publish_date DESC, id",
                    params
                ).fetchall()
                if not rows:
                    return []

                topic_map: dict[str, list[str]] = {row["id"]: [] for row in rows}
                cursor = conn.execute(
                    f"""
                    SELECT news_resource_id, topic_id FROM news_resources_topics
                    WHERE news_resource_id IN ({id_sql})
                    ORDER BY topic_id
                    """,
                    params
                )
                for link in cursor.fetchall():
                    topic_map[link[0]].append(link[1])

                return [
                    NewsResource(
                        id=row["id"],
                        title=row["title"],
                        content=row["content"],
                        url=row["url"],
                        header_image_url=row["header_image_url"],
                        publish_date=row["publish_date"],
                        type=row["type"],
                        topic_ids=tuple(topic_map[row["id"]])
                    )
                    for row in rows
                ]

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> dict[str, int]:
        """Row counts for status output."""
        with self._lock:
            with self._get_connection() as conn:
                topics = conn.execute("SELECT COUNT(*) FROM topics").fetchone()[0]
                topic_shells = conn.execute("SELECT COUNT(*) FROM topics WHERE name = ''").fetchone()[0]
                news = conn.execute("SELECT COUNT(*) FROM news_resources").fetchone()[0]
                links = conn.execute("SELECT COUNT(*) FROM news_resources_topics").fetchone()[0]
                return {
                    "topics": topics,
                    "topic_shells": topic_shells,
                    "news_resources": news,
                    "topic_links": links,
                }

    # =========================================================================
    # Private Helpers
    # =========================================================================

    @staticmethod
    def _select_existing_ids(conn: sqlite3.Connection, table: str, ids: Iterable[str]) -> set[str]:
        id_list = list(dict.fromkeys(ids))
        if not id_list:
            return set()
        cursor = conn.execute(
            f"SELECT id FROM {table} WHERE id IN ({_placeholders(len(id_list))})",
            id_list
        )
        return {row[0] for row in cursor.fetchall()}

    @staticmethod
    def _news_resource_query(
        select: str,
        filter_topic_ids: Iterable[str] | None,
        filter_news_ids: Iterable[str] | None
    ) -> tuple[str | None, list[str]]:
        """
        Build the filtered news resource query.

        Returns (None, []) when a filter is given but empty, meaning the
        result is empty without touching the database.
        """
        sql = f"{select} FROM news_resources nr"
        clauses: list[str] = []
        params: list[str] = []

        if filter_topic_ids is not None:
            topic_ids = list(dict.fromkeys(filter_topic_ids))
            if not topic_ids:
                return None, []
            sql += " JOIN news_resources_topics nrt ON nrt.news_resource_id = nr.id"
            clauses.append(f"nrt.topic_id IN ({_placeholders(len(topic_ids))})")
            params.extend(topic_ids)

        if filter_news_ids is not None:
            news_ids = list(dict.fromkeys(filter_news_ids))
            if not news_ids:
                return None, []
            clauses.append(f"nr.id IN ({_placeholders(len(news_ids))})")
            params.extend(news_ids)

        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        return sql, params

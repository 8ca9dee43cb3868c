"""
Demo data source backed by a local JSON feed.

Lets the whole sync pipeline run without a server (demo installs, CLI
smoke runs, tests). The feed holds full items only; change lists are
synthesized: the n-th item of a collection has version n and is never
deleted.

Feed format:
    {
        "topics": [{"id": "1", "name": "Headlines", ...}, ...],
        "news_resources": [{"id": "7", "title": "...", "topics": ["1"], ...}, ...]
    }
"""

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from news_sync.core.exceptions import RemoteProtocolError, RemoteUnavailable
from news_sync.network.base import NetworkDataSource
from news_sync.network.models import NetworkNewsResource, NetworkTopic
from news_sync.sync.models import ChangeList, ChangeListEntry


class DemoNetworkDataSource(NetworkDataSource):
    """Serves topics and news resources from a JSON file, loaded lazily."""

    def __init__(self, feed_path: Path) -> None:
        self.feed_path = feed_path
        self._topics: list[NetworkTopic] | None = None
        self._news_resources: list[NetworkNewsResource] | None = None

    def _load(self) -> None:
        if self._topics is not None:
            return
        try:
            with open(self.feed_path, "r", encoding="utf-8") as f:
                raw: Any = json.load(f)
        except OSError as e:
            raise RemoteUnavailable(
                f"Demo feed unreadable: {e}",
                details={"file_path": str(self.feed_path)}
            ) from e
        except json.JSONDecodeError as e:
            raise RemoteProtocolError(
                f"Demo feed is not valid JSON: {e}",
                details={"file_path": str(self.feed_path)}
            ) from e

        if not isinstance(raw, dict):
            raise RemoteProtocolError(
                "Demo feed must be a JSON object",
                details={"file_path": str(self.feed_path)}
            )

        self._news_resources = [NetworkNewsResource.from_api(i) for i in raw.get("news_resources", [])]
        self._topics = [NetworkTopic.from_api(i) for i in raw.get("topics", [])]

    @staticmethod
    def _change_list(ids: list[str], after: int) -> ChangeList:
        entries = tuple(
            ChangeListEntry(id=item_id, deleted=False, version=version)
            for version, item_id in enumerate(ids, start=1)
            if version > after
        )
        return ChangeList(entries=entries, latest_version=max(after, len(ids)))

    async def get_topic_change_list(self, after: int) -> ChangeList:
        self._load()
        return self._change_list([t.id for t in self._topics], after)

    async def get_news_resource_change_list(self, after: int) -> ChangeList:
        self._load()
        return self._change_list([r.id for r in self._news_resources], after)

    async def get_topics(self, ids: Sequence[str]) -> list[NetworkTopic]:
        self._load()
        wanted = set(ids)
        return [t for t in self._topics if t.id in wanted]

    async def get_news_resources(self, ids: Sequence[str]) -> list[NetworkNewsResource]:
        self._load()
        wanted = set(ids)
        return [r for r in self._news_resources if r.id in wanted]

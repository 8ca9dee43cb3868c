"""
Data models for remote payloads.

This module defines immutable dataclasses mirroring the remote API's JSON
objects, plus the conversions into local models that the sync pass writes.

Design Decisions:
    - All dataclasses are frozen (immutable)
    - Field names are snake_case; from_api() maps the camelCase JSON keys
    - from_api() raises RemoteProtocolError on any shape violation, so a
      malformed payload never reaches the database

JSON shapes:
    change list item: {"id": "12", "changeListVersion": 40, "isDelete": false}
    topic:            {"id": "1", "name": "...", "shortDescription": "...",
                       "longDescription": "...", "url": "...", "imageUrl": "..."}
    news resource:    {"id": "7", "title": "...", "content": "...", "url": "...",
                       "headerImageUrl": "...", "publishDate": "2022-10-06T23:00:00Z",
                       "type": "Article", "topics": ["1", "4"]}
"""

from dataclasses import dataclass
from typing import Any

from news_sync.core.exceptions import RemoteProtocolError
from news_sync.core.models import NewsResource, Topic, TopicCrossReference
from news_sync.sync.models import ChangeListEntry


def _require_mapping(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise RemoteProtocolError(
            f"Expected a JSON object for {what}, got {type(data).__name__}",
            details={"payload": repr(data)[:200]}
        )
    return data


def _require_id(data: dict[str, Any], what: str) -> str:
    raw_id = data.get("id")
    if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)) or str(raw_id).strip() == "":
        raise RemoteProtocolError(
            f"{what} is missing a valid 'id'",
            details={"payload": repr(data)[:200]}
        )
    return str(raw_id)


def _optional_str(data: dict[str, Any], key: str, what: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise RemoteProtocolError(
            f"{what} field '{key}' must be a string",
            details={"field": key, "payload": repr(data)[:200]}
        )
    return value


@dataclass(frozen=True)
class NetworkChangeList:
    """A single change-list item as sent by the server."""
    id: str
    change_list_version: int
    is_delete: bool

    @classmethod
    def from_api(cls, data: Any) -> "NetworkChangeList":
        data = _require_mapping(data, "change list item")
        item_id = _require_id(data, "Change list item")

        version = data.get("changeListVersion")
        if isinstance(version, bool) or not isinstance(version, int):
            raise RemoteProtocolError(
                "Change list item 'changeListVersion' must be an integer",
                details={"id": item_id, "value": repr(version)}
            )

        is_delete = data.get("isDelete", False)
        if not isinstance(is_delete, bool):
            raise RemoteProtocolError(
                "Change list item 'isDelete' must be a boolean",
                details={"id": item_id, "value": repr(is_delete)}
            )

        return cls(id=item_id, change_list_version=version, is_delete=is_delete)

    def as_entry(self) -> ChangeListEntry:
        return ChangeListEntry(id=self.id, deleted=self.is_delete, version=self.change_list_version)


@dataclass(frozen=True)
class NetworkTopic:
    """A topic as sent by the server."""
    id: str
    name: str = ""
    short_description: str = ""
    long_description: str = ""
    url: str = ""
    image_url: str = ""

    @classmethod
    def from_api(cls, data: Any) -> "NetworkTopic":
        data = _require_mapping(data, "topic")
        return cls(
            id=_require_id(data, "Topic"),
            name=_optional_str(data, "name", "Topic"),
            short_description=_optional_str(data, "shortDescription", "Topic"),
            long_description=_optional_str(data, "longDescription", "Topic"),
            url=_optional_str(data, "url", "Topic"),
            image_url=_optional_str(data, "imageUrl", "Topic"),
        )

    def as_entity(self) -> Topic:
        return Topic(
            id=self.id,
            name=self.name,
            short_description=self.short_description,
            long_description=self.long_description,
            url=self.url,
            image_url=self.image_url,
        )


@dataclass(frozen=True)
class NetworkNewsResource:
    """A news resource as sent by the server, referencing topics by id."""
    id: str
    title: str
    content: str
    url: str
    header_image_url: str | None
    publish_date: str
    type: str
    topics: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, data: Any) -> "NetworkNewsResource":
        data = _require_mapping(data, "news resource")
        resource_id = _require_id(data, "News resource")

        topics = data.get("topics", [])
        if not isinstance(topics, list) or not all(isinstance(t, (str, int)) and not isinstance(t, bool) for t in topics):
            raise RemoteProtocolError(
                "News resource 'topics' must be a list of ids",
                details={"id": resource_id, "value": repr(topics)[:200]}
            )

        publish_date = _optional_str(data, "publishDate", "News resource")
        if not publish_date:
            raise RemoteProtocolError(
                "News resource is missing 'publishDate'",
                details={"id": resource_id}
            )

        header_image_url = data.get("headerImageUrl")
        if header_image_url is not None and not isinstance(header_image_url, str):
            raise RemoteProtocolError(
                "News resource 'headerImageUrl' must be a string or null",
                details={"id": resource_id}
            )

        return cls(
            id=resource_id,
            title=_optional_str(data, "title", "News resource"),
            content=_optional_str(data, "content", "News resource"),
            url=_optional_str(data, "url", "News resource"),
            header_image_url=header_image_url or None,
            publish_date=publish_date,
            type=_optional_str(data, "type", "News resource", default="Unknown"),
            topics=tuple(dict.fromkeys(str(t) for t in topics)),
        )

    def as_entity(self) -> NewsResource:
        return NewsResource(
            id=self.id,
            title=self.title,
            content=self.content,
            url=self.url,
            header_image_url=self.header_image_url,
            publish_date=self.publish_date,
            type=self.type,
            topic_ids=self.topics,
        )

    def topic_entity_shells(self) -> list[Topic]:
        """Placeholder topics so the referenced rows exist before this resource."""
        return [Topic.shell(topic_id) for topic_id in self.topics]

    def topic_cross_references(self) -> list[TopicCrossReference]:
        return [
            TopicCrossReference(news_resource_id=self.id, topic_id=topic_id)
            for topic_id in self.topics
        ]


def change_list_latest_version(items: list[NetworkChangeList], after: int) -> int:
    """Highest version among items, or after if there are none."""
    return max((item.change_list_version for item in items), default=after)

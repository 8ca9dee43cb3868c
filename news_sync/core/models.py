"""
Local data models for news-sync.

These are the shapes stored in and read back from the local database.
Network payloads (news_sync.network.models) are converted into these
before being written.

Design Decisions:
    - All dataclasses are frozen (immutable)
    - Models are independent of the SQLite row layout
    - A news resource references topics by id only; the referenced topic
      rows must exist before the news resource is written
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Topic:
    """
    A topic news resources can belong to.

    A topic written as a side effect of syncing a news resource is a
    "shell": only its id is known until the topics collection syncs it.
    """
    id: str
    name: str = ""
    short_description: str = ""
    long_description: str = ""
    url: str = ""
    image_url: str = ""

    @classmethod
    def shell(cls, topic_id: str) -> "Topic":
        return cls(id=topic_id)


@dataclass(frozen=True)
class NewsResource:
    """
    A news item (article, video, ...).

    Attributes:
        id: Server-issued identifier.
        title: Headline.
        content: Short body text.
        url: Link to the full content.
        header_image_url: Optional header image.
        publish_date: ISO-8601 timestamp string, used for newest-first ordering.
        type: Resource type as reported by the server (e.g. "Article").
        topic_ids: Ids of the topics this resource belongs to.
    """
    id: str
    title: str
    content: str
    url: str
    header_image_url: str | None
    publish_date: str
    type: str
    topic_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class TopicCrossReference:
    """Association record linking a news resource to one of its topics."""
    news_resource_id: str
    topic_id: str


@dataclass(frozen=True)
class UserData:
    """Snapshot of the user preferences relevant to syncing and reading."""
    followed_topics: frozenset[str] = field(default_factory=frozenset)
    viewed_news_resources: frozenset[str] = field(default_factory=frozenset)
    bookmarked_news_resources: frozenset[str] = field(default_factory=frozenset)
    should_hide_onboarding: bool = False

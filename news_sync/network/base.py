"""
Remote data source contract.

The sync engine only talks to the remote source through this interface:
a change-list endpoint per collection ("what changed since version N")
and a batch endpoint per collection ("give me these ids").
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from news_sync.network.models import NetworkNewsResource, NetworkTopic
from news_sync.sync.models import ChangeList


class NetworkDataSource(ABC):
    """
    Abstract remote source of topics and news resources.

    All methods raise RemoteUnavailable when the source cannot be reached
    and RemoteProtocolError when a response violates the contract.
    """

    @abstractmethod
    async def get_topic_change_list(self, after: int) -> ChangeList:
        ...

    @abstractmethod
    async def get_news_resource_change_list(self, after: int) -> ChangeList:
        ...

    @abstractmethod
    async def get_topics(self, ids: Sequence[str]) -> list[NetworkTopic]:
        ...

    @abstractmethod
    async def get_news_resources(self, ids: Sequence[str]) -> list[NetworkNewsResource]:
        ...

    async def close(self) -> None:
        """Release any held resources. No-op by default."""
        return None

    async def __aenter__(self) -> "NetworkDataSource":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

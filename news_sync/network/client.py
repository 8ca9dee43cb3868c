"""
HTTP data source for news-sync, built on aiohttp.

Endpoints (relative to the configured base URL):
    GET changelists/topics?after=<version>
    GET changelists/newsresources?after=<version>
    GET topics?id=<id>&id=<id>...
    GET newsresources?id=<id>&id=<id>...

Every response is wrapped as {"data": <payload>}.

Error Mapping:
    - Connection errors, timeouts, HTTP 5xx and 429 -> RemoteUnavailable
    - Other HTTP 4xx, non-JSON bodies, missing "data" wrapper, malformed
      items -> RemoteProtocolError

Retries and authentication are deliberately not handled here; the caller
re-runs the whole pass later.

Usage:
    async with HttpNetworkDataSource("https://example.com/api/") as network:
        change_list = await network.get_topic_change_list(after=0)
"""

import asyncio
from collections.abc import Sequence
from typing import Any

import aiohttp

from news_sync.core.exceptions import RemoteProtocolError, RemoteUnavailable
from news_sync.core.logger import get_logger
from news_sync.network.base import NetworkDataSource
from news_sync.network.models import (
    NetworkChangeList,
    NetworkNewsResource,
    NetworkTopic,
    change_list_latest_version,
)
from news_sync.sync.models import ChangeList

logger = get_logger(__name__)


DEFAULT_TIMEOUT = 30.0

# Status codes that mean "try again later" rather than "you sent garbage".
_TRANSIENT_STATUSES = {408, 429}


class HttpNetworkDataSource(NetworkDataSource):
    """
    aiohttp-backed NetworkDataSource.

    The ClientSession is created lazily on first request and reused; pass
    an existing session to share a connection pool. Sessions passed in are
    not closed by close().
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: aiohttp.ClientSession | None = None
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get(self, path: str, params: list[tuple[str, str]]) -> Any:
        """
        GET base_url + path and return the unwrapped "data" payload.

        Raises:
            RemoteUnavailable: On connection failure, timeout, 5xx, 408 or 429.
            RemoteProtocolError: On other 4xx, non-JSON body or missing wrapper.
        """
        url = self.base_url + path
        session = await self._get_session()
        logger.debug(f"GET {url} ({len(params)} params)")

        try:
            async with session.get(url, params=params) as response:
                if response.status >= 500 or response.status in _TRANSIENT_STATUSES:
                    raise RemoteUnavailable(
                        f"Remote returned HTTP {response.status} for {path}",
                        details={"url": url, "status_code": response.status}
                    )
                if response.status >= 400:
                    raise RemoteProtocolError(
                        f"Remote rejected request for {path}: HTTP {response.status}",
                        details={"url": url, "status_code": response.status}
                    )
                try:
                    body = await response.json(content_type=None)
                except ValueError as e:
                    raise RemoteProtocolError(
                        f"Remote returned invalid JSON for {path}",
                        details={"url": url, "original_error": str(e)}
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteUnavailable(
                f"Failed to reach {url}: {e or type(e).__name__}",
                details={"url": url, "original_error": repr(e)}
            ) from e

        if not isinstance(body, dict) or "data" not in body:
            raise RemoteProtocolError(
                f"Response for {path} is missing the 'data' wrapper",
                details={"url": url}
            )
        return body["data"]

    async def _get_list(self, path: str, params: list[tuple[str, str]]) -> list[Any]:
        data = await self._get(path, params)
        if not isinstance(data, list):
            raise RemoteProtocolError(
                f"Response for {path} must contain a list",
                details={"url": self.base_url + path, "type": type(data).__name__}
            )
        return data

    async def _get_change_list(self, path: str, after: int) -> ChangeList:
        items = [
            NetworkChangeList.from_api(item)
            for item in await self._get_list(path, [("after", str(after))])
        ]
        return ChangeList(
            entries=tuple(item.as_entry() for item in items),
            latest_version=change_list_latest_version(items, after),
        )

    async def get_topic_change_list(self, after: int) -> ChangeList:
        return await self._get_change_list("changelists/topics", after)

    async def get_news_resource_change_list(self, after: int) -> ChangeList:
        return await self._get_change_list("changelists/newsresources", after)

    async def get_topics(self, ids: Sequence[str]) -> list[NetworkTopic]:
        if not ids:
            return []
        data = await self._get_list("topics", [("id", i) for i in ids])
        return [NetworkTopic.from_api(item) for item in data]

    async def get_news_resources(self, ids: Sequence[str]) -> list[NetworkNewsResource]:
        if not ids:
            return []
        data = await self._get_list("newsresources", [("id", i) for i in ids])
        return [NetworkNewsResource.from_api(item) for item in data]

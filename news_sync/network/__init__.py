"""
Network module for news-sync.

Remote data sources the sync engine pulls from:
    - base: NetworkDataSource contract (change lists + batch fetches)
    - client: aiohttp implementation talking to the news API
    - demo: JSON-file implementation for offline/demo use
    - models: Remote payload models and their local conversions
"""

from news_sync.network.base import NetworkDataSource
from news_sync.network.client import HttpNetworkDataSource
from news_sync.network.demo import DemoNetworkDataSource
from news_sync.network.models import NetworkChangeList, NetworkNewsResource, NetworkTopic

__all__ = [
    "NetworkDataSource",
    "HttpNetworkDataSource",
    "DemoNetworkDataSource",
    "NetworkChangeList",
    "NetworkNewsResource",
    "NetworkTopic",
]

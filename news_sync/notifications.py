"""
Notification sinks for newly synced news resources.

The sync engine only decides *which* resources are new and interesting;
delivering that to the user is the job of a Notifier.
"""

from abc import ABC, abstractmethod

from news_sync.core.logger import Colors, get_logger
from news_sync.core.models import NewsResource

logger = get_logger(__name__)


# Upper bound of individual entries in one notification summary.
MAX_NUM_NOTIFICATIONS = 5


class Notifier(ABC):
    """Surfaces new news resources to the user."""

    @abstractmethod
    def post_news_notifications(self, news_resources: list[NewsResource]) -> None:
        ...


class NoOpNotifier(Notifier):
    """Discards notifications. Used when nobody is listening."""

    def post_news_notifications(self, news_resources: list[NewsResource]) -> None:
        return None


class LogNotifier(Notifier):
    """Writes a summary of new news resources to the log / console."""

    def post_news_notifications(self, news_resources: list[NewsResource]) -> None:
        if not news_resources:
            return

        logger.info(f"{Colors.BOLD}{len(news_resources)} new update(s) in your topics{Colors.RESET}")
        for resource in news_resources[:MAX_NUM_NOTIFICATIONS]:
            logger.info(f"  {Colors.CYAN}{resource.title}{Colors.RESET} {resource.url}")
        if len(news_resources) > MAX_NUM_NOTIFICATIONS:
            logger.info(f"  ... and {len(news_resources) - MAX_NUM_NOTIFICATIONS} more")

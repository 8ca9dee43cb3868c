"""
Version watermark storage.

The watermark is the only durable cross-session state of the sync engine.
It is persisted in the preferences file, one integer per collection, and
only ever moves forward.
"""

from news_sync.core.exceptions import StorageError
from news_sync.core.logger import get_logger
from news_sync.core.preferences import PreferencesStore
from news_sync.sync.models import NEVER_SYNCED

logger = get_logger(__name__)


class VersionStore:
    """
    Reads and writes the change-list watermark of each collection.

    No locking beyond the preferences store's own: SyncEngine already
    serializes passes per collection, so there is a single writer per key.
    """

    def __init__(self, preferences: PreferencesStore) -> None:
        self._preferences = preferences

    def read(self, collection: str) -> int:
        """Current watermark, NEVER_SYNCED if the collection was never synced."""
        version = self._preferences.get_change_list_version(collection)
        return version if version > NEVER_SYNCED else NEVER_SYNCED

    def write(self, collection: str, version: int) -> None:
        """
        Persist a new watermark.

        A version lower than the stored one is ignored (with a warning) so
        the watermark never moves backwards.

        Raises:
            StorageError: If the preferences file cannot be written.
        """
        if isinstance(version, bool) or not isinstance(version, int):
            raise StorageError(
                f"Version must be an integer, got {version!r}",
                details={"collection": collection, "version": repr(version)}
            )

        current = self.read(collection)
        if version < current:
            logger.warning(
                f"Ignoring version regression for {collection}: {current} -> {version}"
            )
            return
        if version == current:
            return

        self._preferences.update_change_list_version(collection, version)
        logger.debug(f"Version for {collection} advanced: {current} -> {version}")

    def all(self) -> dict[str, int]:
        return self._preferences.get_change_list_versions()

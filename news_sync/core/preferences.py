"""
Thread-safe JSON preferences store for news-sync.

Holds the small amount of durable state that is not part of the synced
dataset itself:

    change_list_versions:      Version watermark per synced collection
    followed_topics:           Topic ids the user follows (notification interest)
    viewed_news_resources:     News resource ids already seen by the user
    bookmarked_news_resources: News resource ids the user saved
    should_hide_onboarding:    True once the user has completed onboarding

File Format (preferences.json):
    {
        "change_list_versions": {"topics": 12, "news_resources": 240},
        "followed_topics": ["1", "4"],
        "viewed_news_resources": ["17", "18"],
        "bookmarked_news_resources": [],
        "should_hide_onboarding": true
    }

Durability:
    Every update rewrites the whole file through a temporary file and
    os.replace(), so a crash mid-write never leaves a truncated file.
"""

import json
import os
import tempfile
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Callable

from news_sync.core.exceptions import StorageError
from news_sync.core.models import UserData


_DEFAULT_STATE: dict[str, Any] = {
    "change_list_versions": {},
    "followed_topics": [],
    "viewed_news_resources": [],
    "bookmarked_news_resources": [],
    "should_hide_onboarding": False,
}

_LIST_FIELDS = ("followed_topics", "viewed_news_resources", "bookmarked_news_resources")


class PreferencesStore:
    """
    JSON-file backed preferences with a process-wide lock.

    The file is read once on construction and cached; every mutation is
    written through to disk before the method returns.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._state = self._load()

    def _load(self) -> dict[str, Any]:
        state = json.loads(json.dumps(_DEFAULT_STATE))
        if not self.path.exists():
            return state

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(
                f"Preferences file corrupted: {e}",
                details={"file_path": str(self.path), "line": e.lineno}
            ) from e
        except OSError as e:
            raise StorageError(
                f"Failed to read preferences file: {e}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e

        if not isinstance(raw, dict):
            raise StorageError(
                "Preferences file must contain a JSON object",
                details={"file_path": str(self.path)}
            )

        versions = raw.get("change_list_versions", {})
        if not isinstance(versions, dict) or not all(isinstance(v, int) for v in versions.values()):
            raise StorageError(
                "'change_list_versions' must map collection names to integers",
                details={"file_path": str(self.path)}
            )
        state["change_list_versions"] = dict(versions)

        for field_name in _LIST_FIELDS:
            values = raw.get(field_name, [])
            if not isinstance(values, list):
                raise StorageError(
                    f"'{field_name}' must be a list",
                    details={"file_path": str(self.path), "field": field_name}
                )
            state[field_name] = [str(v) for v in values]

        state["should_hide_onboarding"] = bool(raw.get("should_hide_onboarding", False))
        return state

    def _save(self, state: dict[str, Any]) -> None:
        """Atomically write state to disk. Caller holds self._lock."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(state, f, indent=2, sort_keys=True)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(
                f"Failed to write preferences file: {e}",
                details={"file_path": str(self.path), "original_error": str(e)}
            ) from e

    def _update(self, mutate: Callable[[dict[str, Any]], None]) -> None:
        """Apply mutate to a copy of the state, persist it, then swap it in."""
        with self._lock:
            new_state = json.loads(json.dumps(self._state))
            mutate(new_state)
            self._save(new_state)
            self._state = new_state

    # =========================================================================
    # Change List Versions
    # =========================================================================

    def get_change_list_version(self, collection: str) -> int:
        """Stored watermark for collection, 0 if never synced."""
        with self._lock:
            return self._state["change_list_versions"].get(collection, 0)

    def update_change_list_version(self, collection: str, version: int) -> None:
        def mutate(state: dict[str, Any]) -> None:
            state["change_list_versions"][collection] = version

        self._update(mutate)

    def get_change_list_versions(self) -> dict[str, int]:
        with self._lock:
            return dict(self._state["change_list_versions"])

    # =========================================================================
    # User Data
    # =========================================================================

    def user_data(self) -> UserData:
        with self._lock:
            return UserData(
                followed_topics=frozenset(self._state["followed_topics"]),
                viewed_news_resources=frozenset(self._state["viewed_news_resources"]),
                bookmarked_news_resources=frozenset(self._state["bookmarked_news_resources"]),
                should_hide_onboarding=self._state["should_hide_onboarding"],
            )

    def set_followed_topic_ids(self, topic_ids: Iterable[str]) -> None:
        ids = sorted(set(topic_ids))

        def mutate(state: dict[str, Any]) -> None:
            state["followed_topics"] = ids

        self._update(mutate)

    def set_followed_topic_id(self, topic_id: str, followed: bool) -> None:
        self._toggle("followed_topics", [topic_id], followed)

    def set_news_resources_viewed(self, news_resource_ids: Iterable[str], viewed: bool) -> None:
        self._toggle("viewed_news_resources", news_resource_ids, viewed)

    def set_news_resource_bookmarked(self, news_resource_id: str, bookmarked: bool) -> None:
        self._toggle("bookmarked_news_resources", [news_resource_id], bookmarked)

    def set_should_hide_onboarding(self, should_hide: bool) -> None:
        def mutate(state: dict[str, Any]) -> None:
            state["should_hide_onboarding"] = should_hide

        self._update(mutate)

    def _toggle(self, field_name: str, ids: Iterable[str], present: bool) -> None:
        id_set = set(ids)
        if not id_set:
            return

        def mutate(state: dict[str, Any]) -> None:
            current = set(state[field_name])
            current = current | id_set if present else current - id_set
            state[field_name] = sorted(current)

        self._update(mutate)

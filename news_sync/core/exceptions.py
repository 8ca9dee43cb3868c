"""
Exception classes for news-sync.

This module defines all custom exceptions used throughout the application.
Each exception carries a machine-readable kind so that a failed sync pass
can report *why* it failed without the caller having to inspect exception
types.

Exception Hierarchy:
    NewsSyncError (base)
        ConfigError - Configuration file issues
        StorageError - Local database / preferences issues
        RemoteUnavailable - Remote source could not be reached (transient)
        RemoteProtocolError - Remote payload violated the contract
        ConcurrentSyncInProgress - A pass for the same collection is running
"""

from enum import Enum


class SyncErrorKind(str, Enum):
    """Error kinds reported in a SyncResult."""
    CONFIG = "config"
    STORAGE = "storage"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    REMOTE_PROTOCOL = "remote_protocol"
    CONCURRENT_SYNC_IN_PROGRESS = "concurrent_sync_in_progress"
    UNKNOWN = "unknown"


class NewsSyncError(Exception):
    """
    Base exception for all news-sync errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all news-sync errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (collection, ids, URLs).
        kind: SyncErrorKind identifying the failure mode.
        is_retryable: True if re-running the whole pass later may succeed.

    Example:
        try:
            await engine.run("topics")
        except NewsSyncError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    kind: SyncErrorKind = SyncErrorKind.UNKNOWN
    is_retryable: bool = False

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'collection': Name of the collection being synchronized
                     - 'url': URL that caused the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(NewsSyncError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Required fields missing (remote.base_url without remote.demo_file)
        - Invalid field values (e.g., non-positive batch size)
    """
    kind = SyncErrorKind.CONFIG


class StorageError(NewsSyncError):
    """
    Raised when the local database or the preferences file cannot be
    read or written.

    A StorageError during a pass aborts it without advancing the version
    watermark. Already committed chunks stay in place (upserts are
    idempotent), so the next pass simply re-applies the remaining ids.

    Common causes:
        - database.db locked, corrupted or on a full disk
        - preferences.json corrupted (invalid JSON)
        - Permission denied when reading/writing

    Example:
        raise StorageError(
            "Failed to apply news resource batch",
            details={'collection': 'news_resources', 'ids': ['1', '2']}
        )
    """
    kind = SyncErrorKind.STORAGE


class RemoteUnavailable(NewsSyncError):
    """
    Raised when the remote source cannot be reached.

    This is a TRANSIENT error: the caller may retry the whole pass later.
    Covers connection failures, timeouts, 5xx responses and rate limiting.
    """
    kind = SyncErrorKind.REMOTE_UNAVAILABLE
    is_retryable = True


class RemoteProtocolError(NewsSyncError):
    """
    Raised when a remote payload violates the data source contract.

    Not retryable within the same pass. Examples: a response that is not
    JSON, a change-list entry without an id, a batch response containing
    ids that were never requested.
    """
    kind = SyncErrorKind.REMOTE_PROTOCOL


class ConcurrentSyncInProgress(NewsSyncError):
    """
    Raised (or reported) when a pass for a collection is requested while
    another pass for the same collection is still running.

    This is a non-error rejection: the caller should skip or queue.
    """
    kind = SyncErrorKind.CONCURRENT_SYNC_IN_PROGRESS
    is_retryable = True

"""
Logging configuration for news-sync.

This module sets up the logging system with multiple outputs:
    - Console: Real-time progress with tqdm-compatible formatting
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages
    - sync_failures.log: One entry per failed sync pass (collection, kind, version)

Everything to screen is also saved to file, then filtered into
specialized files.

Log File Locations:
    All log files are created in <storage directory>/logs, one set per run.

Usage:
    from news_sync.core.logger import setup_logging, get_logger

    setup_logging(storage_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Starting sync")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Custom formatter that adds colors to console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking tqdm progress bars.

    tqdm progress bars write to stderr and use carriage returns to update in-place.
    This handler uses tqdm.write() which properly coordinates with active progress
    bars, so messages appear above the chunk progress bar during a sync pass.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class SyncFailureHandler(logging.Handler):
    """
    Handler that captures failed sync passes for the sync failure report.

    This handler listens for log records that carry sync failure information
    and writes them to sync_failures.log in a simple, human-readable format:

        news_resources [remote_unavailable] at version 42
        Failed to reach https://example.com/api/newsresources

    The handler looks for specific extra fields in log records:
        - 'sync_failed_collection': The collection whose pass failed
        - 'sync_failed_kind': The SyncErrorKind value
        - 'sync_failed_version': The watermark the pass started from

    Only records containing these fields are written to the report.

    Usage:
        log_sync_failure(logger, "topics", "storage", 7, "disk full")
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "sync_failed_collection"):
            return

        if self.report_file is None:
            return

        try:
            collection = getattr(record, "sync_failed_collection", "unknown")
            kind = getattr(record, "sync_failed_kind", "unknown")
            version = getattr(record, "sync_failed_version", None)
            reason = getattr(record, "sync_failed_reason", record.getMessage())

            version_text = "never synced" if version is None or version <= 0 else f"version {version}"
            self.report_file.write(f"{collection} [{kind}] at {version_text}\n")
            self.report_file.write(f"{reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(output_dir: Path, verbose: bool = False) -> None:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any other operations.

    Args:
        output_dir: Directory where log files will be created.
                    Logs are stored in a 'logs' subdirectory.
        verbose: If True, the console handler shows DEBUG messages too.

    Behavior:
        1. Create output_dir/logs if it doesn't exist
        2. Generate timestamp for this run's log files
        3. Configure root logger level to DEBUG
        4. Console handler (TqdmLoggingHandler), INFO or DEBUG, compact format
        5. Full log file handler, DEBUG, full format
        6. Error log file handler, filtered to ERROR+ by ErrorOnlyFilter
        7. Sync failure report handler

    Thread Safety:
        This function is NOT thread-safe. Call it once from the main
        thread before starting any worker threads.
    """
    logs_dir = output_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_log_path = logs_dir / f"log_full_{timestamp}.log"
    full_handler = logging.FileHandler(full_log_path, mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_log_path = logs_dir / f"log_errors_{timestamp}.log"
    error_handler = logging.FileHandler(error_log_path, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    sync_failures_path = logs_dir / f"sync_failures_{timestamp}.log"
    sync_failure_handler = SyncFailureHandler(sync_failures_path)
    sync_failure_handler.open()
    root_logger.addHandler(sync_failure_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called will have no
        handlers and will not produce output.
    """
    return logging.getLogger(name)


def format_sync_summary(collection: str, fetched: int, deleted: int, version: int) -> str:
    """Format a one-line colored summary of a successful pass."""
    return (
        f"{Colors.GREEN}Synced{Colors.RESET} {collection}: "
        f"{fetched} fetched, {deleted} deleted -> "
        f"{Colors.CYAN}version {version}{Colors.RESET}"
    )


def log_sync_failure(
    logger: logging.Logger,
    collection: str,
    kind: str,
    version: int | None,
    reason: str,
    exc_info: bool = False
) -> None:
    """
    Log a failed sync pass.

    Logs an ERROR level message and attaches the extra fields that
    SyncFailureHandler uses to write to sync_failures.log.

    Args:
        logger: The logger to use for the message.
        collection: Name of the collection whose pass failed.
        kind: SyncErrorKind value describing the failure.
        version: Watermark the pass started from (None if it was never read).
        reason: Description of why the pass failed.
        exc_info: Attach the active exception traceback to the log record.
    """
    logger.error(
        f"Sync failed for {collection} ({kind}): {reason}",
        extra={
            "sync_failed_collection": collection,
            "sync_failed_kind": kind,
            "sync_failed_version": version,
            "sync_failed_reason": reason,
        },
        exc_info=exc_info,
    )


def shutdown_logging() -> None:
    """
    Flush, close and remove all root logger handlers.

    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        root_logger.removeHandler(handler)

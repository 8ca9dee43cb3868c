"""
Command-line interface for news-sync.

This module implements the CLI using Click, providing all commands for
syncing the local news store and reading it offline.
rich-click is used for the output colors.

Commands:
    news-sync --sync                        Sync all collections once
    news-sync --sync --collection topics    Sync only the given collection(s)
    news-sync --watch                       Sync every sync.interval seconds
    news-sync --status                      Show watermarks and local counts
    news-sync --list                        List locally stored news
    news-sync --list --topic <id>           List news in the given topic(s)
    news-sync --follow <id>                 Follow a topic
    news-sync --unfollow <id>               Unfollow a topic
    news-sync --follow-only <id>            Follow exactly the given topic(s)
    news-sync --bookmark <id>               Bookmark a news resource
    news-sync --unbookmark <id>             Remove a bookmark
    news-sync --onboarded                   Mark onboarding as done

Options:
    --config <path>                         Use this config.yaml
    --verbose                               Show DEBUG output on the console

Usage:
    # First run: everything is fetched, nothing is notified
    news-sync --sync

    # Follow topics, finish onboarding, then keep syncing in the background
    news-sync --follow 1 --follow 4 --onboarded
    news-sync --watch

    # Read offline
    news-sync --list --topic 4

Configuration:
    The CLI requires a config.yaml file (current directory, NEWS_SYNC_CONFIG,
    or --config) with:
    - Remote base URL (or a demo feed file)
    - Storage directory for the database, preferences and logs
    - Optional batch size and watch interval

Action Order:
    Preference changes (--follow, --unfollow, --follow-only, --bookmark,
    --unbookmark, --onboarded) are applied first, then --sync / --watch,
    then --status and --list, so a single invocation can update
    preferences, sync and print the result.

Exit Codes:
    0   Success (also when a pass was skipped because one is already running)
    1   Configuration error
    2   Storage error
    3   Remote unavailable or remote protocol error
    4   Other errors
    130 Interrupted
"""

import asyncio
import sys
from pathlib import Path

import rich_click as click
from tqdm import tqdm

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "cli": [
        {
            "name": "Sync",
            "options": ["--sync", "--collection", "--watch"],
        },
        {
            "name": "Read",
            "options": ["--status", "--list", "--topic"],
        },
        {
            "name": "Preferences",
            "options": [
                "--follow", "--unfollow", "--follow-only",
                "--bookmark", "--unbookmark", "--onboarded",
            ],
        },
        {
            "name": "Info",
            "options": ["--config", "--verbose", "--version", "--help"],
        },
    ],
}

from news_sync.core import (
    Config,
    ConfigError,
    Database,
    NewsSyncError,
    PreferencesStore,
    RemoteProtocolError,
    RemoteUnavailable,
    StorageError,
    SyncErrorKind,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from news_sync.network import DemoNetworkDataSource, HttpNetworkDataSource, NetworkDataSource
from news_sync.notifications import LogNotifier
from news_sync.sync import (
    NEWS_RESOURCES,
    TOPICS,
    NewsResourceCollection,
    SyncEngine,
    SyncResult,
    SyncWorker,
    TopicCollection,
    VersionStore,
)

logger = get_logger(__name__)


__version__ = "0.1.0"

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_STORAGE = 2
EXIT_REMOTE = 3
EXIT_OTHER = 4
EXIT_INTERRUPTED = 130

_EXIT_CODES_BY_KIND = {
    SyncErrorKind.CONFIG: EXIT_CONFIG,
    SyncErrorKind.STORAGE: EXIT_STORAGE,
    SyncErrorKind.REMOTE_UNAVAILABLE: EXIT_REMOTE,
    SyncErrorKind.REMOTE_PROTOCOL: EXIT_REMOTE,
    SyncErrorKind.CONCURRENT_SYNC_IN_PROGRESS: EXIT_OK,
}


@click.group(invoke_without_command=True)
@click.option(
    "--sync",
    is_flag=True,
    help="Run one sync pass over all collections"
)
@click.option(
    "--collection",
    type=click.Choice([TOPICS, NEWS_RESOURCES]),
    multiple=True,
    help="Restrict --sync to this collection (repeatable)"
)
@click.option(
    "--watch",
    is_flag=True,
    help="Sync repeatedly every sync.interval seconds"
)
@click.option(
    "--status",
    is_flag=True,
    help="Show sync watermarks, local counts and followed topics"
)
@click.option(
    "--list", "list_news",
    is_flag=True,
    help="List locally stored news resources, newest first"
)
@click.option(
    "--topic",
    type=str,
    multiple=True,
    metavar="<topic-id>",
    help="Restrict --list to this topic (repeatable)"
)
@click.option(
    "--follow",
    type=str,
    multiple=True,
    metavar="<topic-id>",
    help="Follow a topic (repeatable)"
)
@click.option(
    "--unfollow",
    type=str,
    multiple=True,
    metavar="<topic-id>",
    help="Unfollow a topic (repeatable)"
)
@click.option(
    "--follow-only",
    type=str,
    multiple=True,
    metavar="<topic-id>",
    help="Replace the followed topics with exactly these (repeatable)"
)
@click.option(
    "--bookmark",
    type=str,
    multiple=True,
    metavar="<news-id>",
    help="Bookmark a news resource (repeatable)"
)
@click.option(
    "--unbookmark",
    type=str,
    multiple=True,
    metavar="<news-id>",
    help="Remove a news resource bookmark (repeatable)"
)
@click.option(
    "--onboarded",
    is_flag=True,
    help="Mark onboarding as done (enables notifications)"
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Path to config.yaml"
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show debug output on the console"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(
    ctx: click.Context,
    sync: bool,
    collection: tuple[str, ...],
    watch: bool,
    status: bool,
    list_news: bool,
    topic: tuple[str, ...],
    follow: tuple[str, ...],
    unfollow: tuple[str, ...],
    follow_only: tuple[str, ...],
    bookmark: tuple[str, ...],
    unbookmark: tuple[str, ...],
    onboarded: bool,
    config_path: Path | None,
    verbose: bool,
    version: bool
) -> None:
    """
    news-sync: Offline-first news synchronization.

    Keeps a local copy of topics and news resources in step with a remote
    news API using version-based change lists, and reports new stories in
    the topics you follow.

    \b
    SYNC:
        news-sync --sync                         # All collections, once
        news-sync --sync --collection topics     # Topics only
        news-sync --watch                        # Keep syncing

    \b
    READ (works offline):
        news-sync --status
        news-sync --list --topic 4

    \b
    PREFERENCES:
        news-sync --follow 4 --unfollow 2 --onboarded
        news-sync --follow-only 4 --follow-only 7
        news-sync --bookmark 123
    """
    if version:
        click.echo(f"news-sync {__version__}")
        ctx.exit(0)

    has_preferences = bool(follow or unfollow or follow_only or bookmark or unbookmark or onboarded)
    if not (sync or watch or status or list_news or has_preferences):
        click.echo(ctx.get_help())
        ctx.exit(0)

    if sync and watch:
        raise click.UsageError("Cannot use both --sync and --watch")

    if collection and not sync:
        raise click.UsageError("--collection can only be used with --sync")

    if topic and not list_news:
        raise click.UsageError("--topic can only be used with --list")

    overlap = set(follow) & set(unfollow)
    if overlap:
        raise click.UsageError(f"Cannot both follow and unfollow: {', '.join(sorted(overlap))}")

    if follow_only and (follow or unfollow):
        raise click.UsageError("Cannot combine --follow-only with --follow or --unfollow")

    overlap = set(bookmark) & set(unbookmark)
    if overlap:
        raise click.UsageError(f"Cannot both bookmark and unbookmark: {', '.join(sorted(overlap))}")

    ctx.ensure_object(dict)
    ctx.obj["sync"] = sync
    ctx.obj["collections"] = list(dict.fromkeys(collection)) or None
    ctx.obj["watch"] = watch
    ctx.obj["status"] = status
    ctx.obj["list"] = list_news
    ctx.obj["topics"] = list(topic)
    ctx.obj["follow"] = list(follow)
    ctx.obj["unfollow"] = list(unfollow)
    ctx.obj["follow_only"] = list(follow_only)
    ctx.obj["bookmark"] = list(bookmark)
    ctx.obj["unbookmark"] = list(unbookmark)
    ctx.obj["onboarded"] = onboarded
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    _run(ctx.obj)


def _run(options: dict) -> None:
    """
    Execute the requested actions.

    This is the main orchestration function that:
    1. Loads configuration
    2. Sets up logging
    3. Opens the database and preferences
    4. Applies preference changes
    5. Runs sync (once or in watch mode)
    6. Prints status / news lists

    Args:
        options: Dictionary with CLI options from click context.

    Raises:
        SystemExit: Always, with the exit code documented in the module docstring.
    """
    database: Database | None = None
    exit_code = EXIT_OK

    try:
        config = load_config(options["config_path"])

        setup_logging(config.storage.directory, verbose=options["verbose"])
        logger.debug("news-sync starting")

        database = Database(config.storage.database_path)
        preferences = PreferencesStore(config.storage.preferences_path)

        _apply_preferences(preferences, options)

        if options["sync"] or options["watch"]:
            results = asyncio.run(_sync(
                config=config,
                database=database,
                preferences=preferences,
                collections=options["collections"],
                watch=options["watch"],
            ))
            exit_code = _exit_code_for(results)

        if options["status"]:
            _print_status(database, preferences)

        if options["list"]:
            _print_news(database, preferences, options["topics"])

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        exit_code = EXIT_CONFIG

    except StorageError as e:
        click.echo(f"Storage error: {e.message}", err=True)
        logger.error(f"Storage error: {e.message}", exc_info=True)
        exit_code = EXIT_STORAGE

    except (RemoteUnavailable, RemoteProtocolError) as e:
        click.echo(f"Remote error: {e.message}", err=True)
        logger.error(f"Remote error: {e.message}", exc_info=True)
        exit_code = EXIT_REMOTE

    except NewsSyncError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        exit_code = EXIT_OTHER

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        exit_code = EXIT_INTERRUPTED

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        exit_code = EXIT_OTHER

    finally:
        if database is not None:
            database.close()
        shutdown_logging()

    sys.exit(exit_code)


def _create_network(config: Config) -> NetworkDataSource:
    """Demo feed when configured, the HTTP API otherwise."""
    if config.remote.demo_file is not None:
        logger.info(f"Using demo feed: {config.remote.demo_file}")
        return DemoNetworkDataSource(config.remote.demo_file)
    return HttpNetworkDataSource(config.remote.base_url, timeout=config.remote.timeout)


def _apply_preferences(preferences: PreferencesStore, options: dict) -> None:
    for topic_id in options["follow"]:
        preferences.set_followed_topic_id(topic_id, True)
        click.echo(f"Following topic {topic_id}")
    for topic_id in options["unfollow"]:
        preferences.set_followed_topic_id(topic_id, False)
        click.echo(f"Unfollowed topic {topic_id}")
    if options["follow_only"]:
        preferences.set_followed_topic_ids(options["follow_only"])
        click.echo(f"Following only: {', '.join(sorted(set(options['follow_only'])))}")
    for news_id in options["bookmark"]:
        preferences.set_news_resource_bookmarked(news_id, True)
        click.echo(f"Bookmarked {news_id}")
    for news_id in options["unbookmark"]:
        preferences.set_news_resource_bookmarked(news_id, False)
        click.echo(f"Removed bookmark {news_id}")
    if options["onboarded"]:
        preferences.set_should_hide_onboarding(True)
        click.echo("Onboarding marked as done")


class _ChunkProgress:
    """One tqdm bar per collection, advanced from SyncEngine.on_chunk."""

    def __init__(self) -> None:
        self._bars: dict[str, tqdm] = {}

    def update(self, collection: str, done: int, total: int) -> None:
        bar = self._bars.get(collection)
        if bar is None:
            bar = tqdm(total=total, desc=collection, unit="batch", leave=False)
            self._bars[collection] = bar
        bar.update(1)
        if done >= total:
            self._bars.pop(collection).close()

    def close(self) -> None:
        for bar in self._bars.values():
            bar.close()
        self._bars.clear()


async def _sync(
    config: Config,
    database: Database,
    preferences: PreferencesStore,
    collections: list[str] | None,
    watch: bool
) -> dict[str, SyncResult]:
    """
    Run one sync round, or keep running rounds in watch mode.

    Returns:
        Results of the (last) round, keyed by collection name.
    """
    progress = _ChunkProgress()
    last_results: dict[str, SyncResult] = {}

    def remember(results: dict[str, SyncResult]) -> None:
        last_results.clear()
        last_results.update(results)

    async with _create_network(config) as network:
        engine = SyncEngine(
            VersionStore(preferences),
            [
                TopicCollection(network, database),
                NewsResourceCollection(network, database, preferences),
            ],
            chunk_size=config.sync.batch_size,
            on_chunk=progress.update,
        )
        worker = SyncWorker(engine, database, LogNotifier())
        try:
            if watch:
                logger.info(f"Watching: syncing every {config.sync.interval}s (Ctrl+C to stop)")
                await worker.watch(config.sync.interval, on_pass=remember)
            else:
                remember(await worker.run_once(collections))
        finally:
            progress.close()

    return last_results


def _exit_code_for(results: dict[str, SyncResult]) -> int:
    """Exit code of the first failed pass, 0 if every pass succeeded or was skipped."""
    for result in results.values():
        if result.success or result.error_kind is None:
            continue
        code = _EXIT_CODES_BY_KIND.get(result.error_kind, EXIT_OTHER)
        if code != EXIT_OK:
            return code
    return EXIT_OK


def _print_status(database: Database, preferences: PreferencesStore) -> None:
    versions = VersionStore(preferences)
    stats = database.get_stats()
    user_data = preferences.user_data()

    click.echo("=" * 40)
    click.echo("Sync status")
    click.echo("=" * 40)
    for name in (TOPICS, NEWS_RESOURCES):
        version = versions.read(name)
        click.echo(f"  {name:<16} version {version if version else 'never synced'}")
    click.echo(
        f"  Topics:          {stats['topics']} "
        f"({stats['topic_shells']} not yet synced)"
    )
    click.echo(f"  News resources:  {stats['news_resources']}")
    click.echo(
        f"  Followed topics: "
        f"{', '.join(sorted(user_data.followed_topics)) if user_data.followed_topics else 'none'}"
    )
    click.echo(f"  Onboarding done: {'yes' if user_data.should_hide_onboarding else 'no'}")


def _print_news(database: Database, preferences: PreferencesStore, topic_ids: list[str]) -> None:
    resources = database.get_news_resources(filter_topic_ids=topic_ids or None)
    if not resources:
        click.echo("No news stored locally. Run with --sync first.")
        return

    user_data = preferences.user_data()
    for resource in resources:
        marker = "*" if resource.id in user_data.bookmarked_news_resources else " "
        unread = "" if resource.id in user_data.viewed_news_resources else " [new]"
        click.echo(f"{marker} {resource.publish_date[:10]}  {resource.title}{unread}")
        click.echo(f"    {resource.url}")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

"""Main runtime for the rank watcher.

Wires configuration, the subscription store, the stats fetcher, the notifier
and the reconciliation loop together, and dispatches CLI commands.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path

import aiohttp

from apexapi.apexapi import StatsFetcher, defaults as api_defaults
from rankwatch.cli import build_cli_parser, config_overrides
from rankwatch.commands import RankCommands
from rankwatch.config import Config, ConfigError, load_config
from rankwatch.logging_utils import configure_rotating_logger, resolve_log_file, tail_logs
from rankwatch.notifier import LogChannel, Notifier, OneBotHttpChannel
from rankwatch.operations import Blacklist, SubscriptionOperations
from rankwatch.reconcile import ReconciliationLoop
from rankwatch.subscriptions import SubscriptionStore

FALLBACK_LOG_FILE = Path(__file__).resolve().parent / "logs" / "rankwatch.log"


@dataclass
class App:
    config: Config
    store: SubscriptionStore
    fetcher: StatsFetcher
    notifier: Notifier
    operations: SubscriptionOperations
    reconciler: ReconciliationLoop
    commands: RankCommands


def build_notifier(config: Config, session: aiohttp.ClientSession = None, dry_run: bool = False) -> Notifier:
    if dry_run:
        return Notifier([LogChannel()])
    channels = [
        OneBotHttpChannel(endpoint.url, endpoint.access_token, session=session)
        for endpoint in config.onebot
    ]
    return Notifier(channels)


def build_app(config: Config, session: aiohttp.ClientSession = None, dry_run: bool = False) -> App:
    """Create every component around one shared, freshly loaded registry."""
    store = SubscriptionStore(config.data_directory)
    store.load()

    blacklist = Blacklist(config.blacklist)
    fetcher = StatsFetcher(
        api_key=config.api_key,
        max_retries=config.max_retries,
        timeout_ms=config.timeout_ms,
        platform=config.platform,
        session=session,
    )
    notifier = build_notifier(config, session=session, dry_run=dry_run)
    operations = SubscriptionOperations(
        store,
        fetcher,
        notifier,
        blacklist=blacklist,
        min_valid_score=config.min_valid_score,
    )
    reconciler = ReconciliationLoop(
        store,
        fetcher,
        notifier,
        blacklist=blacklist,
        interval_minutes=config.check_interval_minutes,
        min_valid_score=config.min_valid_score,
        max_drop_threshold=config.max_score_drop_threshold,
    )
    commands = RankCommands(operations, notifier, config)
    return App(config, store, fetcher, notifier, operations, reconciler, commands)


async def run_command(app: App, cli_args) -> str:
    match cli_args.command:
        case "query":
            return await app.commands.query(cli_args.player)
        case "watch":
            return await app.commands.watch(cli_args.group, cli_args.player)
        case "list":
            return app.commands.list_players(cli_args.group)
        case "remove":
            return app.commands.remove(cli_args.group, cli_args.player)
        case "test":
            return await app.commands.self_test(cli_args.group)
        case _:
            return app.commands.help()


async def main_async(config: Config, cli_args, logger) -> int:
    async with aiohttp.ClientSession(headers=api_defaults["headers"]) as session:
        app = build_app(config, session=session, dry_run=cli_args.dry_run)

        if cli_args.command != "run":
            print(await run_command(app, cli_args))
            return 0

        if not app.notifier.channels:
            logger.warning("No OneBot endpoint configured; rank changes will not be delivered.")
        logger.info(
            "Checking ranks every %g minutes. Drop threshold %s, minimum valid score %s.",
            config.check_interval_minutes, config.max_score_drop_threshold, config.min_valid_score,
        )
        app.reconciler.start()
        # Keep the async process alive indefinitely.
        try:
            await asyncio.Event().wait()
        finally:
            await app.reconciler.stop()
    return 0


def main(argv=None) -> int:
    """Program entry point."""
    cli_args = build_cli_parser().parse_args(argv)
    if cli_args.command is None and not cli_args.tail_logs:
        cli_args.command = "help"

    try:
        config = load_config(cli_args.config, overrides=config_overrides(cli_args))
    except ConfigError as e:
        if cli_args.tail_logs:
            return tail_logs(resolve_log_file(), lines=cli_args.tail_lines, follow=not cli_args.no_follow)
        print(f"Configuration error: {e}")
        return 2

    log_file = resolve_log_file(config.data_directory)
    if cli_args.tail_logs:
        # Most useful when a separate process is already running the watcher.
        return tail_logs(log_file, lines=cli_args.tail_lines, follow=not cli_args.no_follow)

    logger, log_file = configure_rotating_logger(
        ("rankwatch", "apexapi"),
        preferred_log_file=log_file,
        fallback_log_file=FALLBACK_LOG_FILE,
    )
    if cli_args.command == "run":
        logger.info("%s | Starting rank watcher. Log file: %s", time.ctime(time.time()), log_file)

    try:
        return asyncio.run(main_async(config, cli_args, logger))
    except KeyboardInterrupt:
        logger.info("Rank watcher stopped.")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())

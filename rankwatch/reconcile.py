"""Periodic rank reconciliation across every tracked player."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import suppress
from dataclasses import dataclass

from apexapi.apexapi import FetchError, StatsFetcher
from rankwatch.classifier import RankDelta, classify_rank_delta
from rankwatch.formatting import format_rank_change
from rankwatch.notifier import Notifier
from rankwatch.operations import Blacklist
from rankwatch.subscriptions import SubscriptionStore

logger = logging.getLogger(__name__)


@dataclass
class PassSummary:
    checked: int = 0
    changed: int = 0
    unchanged: int = 0
    rejected: int = 0
    failed: int = 0
    skipped: int = 0
    notify_failed: int = 0


class ReconciliationLoop:
    """Re-fetch every tracked player on a fixed period and alert on score changes."""

    def __init__(
        self,
        store: SubscriptionStore,
        fetcher: StatsFetcher,
        notifier: Notifier,
        blacklist: Blacklist = None,
        interval_minutes: float = 2,
        min_valid_score: int = 1,
        max_drop_threshold: int = 2000,
        clock=time.time,
        sleep=asyncio.sleep,
    ):
        self.store = store
        self.fetcher = fetcher
        self.notifier = notifier
        self.blacklist = blacklist if blacklist is not None else Blacklist()
        self.interval_seconds = interval_minutes * 60
        self.min_valid_score = min_valid_score
        self.max_drop_threshold = max_drop_threshold
        self.clock = clock
        self.sleep = sleep
        self.running = False
        self._task = None

    def start(self):
        """Start the periodic task if it is not already running."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        """Stop scheduling passes. An in-flight pass is abandoned."""
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self.running = False

    async def _run(self) -> None:
        while True:
            await self.sleep(self.interval_seconds)
            try:
                await self.run_pass()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Reconciliation pass crashed; next pass is still scheduled.")

    async def run_pass(self) -> PassSummary:
        """Check every tracked player once, in group order."""
        summary = PassSummary()
        self.running = True
        try:
            for group_id, key in self.store.iter_tracked():
                await self._check_player(group_id, key, summary)
        finally:
            self.running = False
        logger.info(
            "Pass done: %s checked, %s changed, %s rejected, %s failed, %s skipped.",
            summary.checked, summary.changed, summary.rejected, summary.failed, summary.skipped,
        )
        return summary

    async def _check_player(self, group_id: str, key: str, summary: PassSummary) -> None:
        player = self.store.get_player(group_id, key)
        if player is None:
            return

        if player.player_name in self.blacklist:
            logger.warning("Skipping scheduled check of blacklisted player %s.", player.player_name)
            summary.skipped += 1
            return

        summary.checked += 1
        try:
            observation = await self.fetcher.fetch(player.player_name)
        except FetchError as e:
            logger.error("Failed to check rank of %s: %s", player.player_name, e)
            summary.failed += 1
            return

        # The player may have been removed while the fetch was in flight.
        if self.store.get_player(group_id, key) is not player:
            logger.info("%s was removed from group %s during the check.", player.player_name, group_id)
            return

        old_score = player.rank_score
        new_score = observation.rank_score
        delta = classify_rank_delta(old_score, new_score, self.min_valid_score, self.max_drop_threshold)

        match delta:
            case RankDelta.INVALID:
                logger.warning(
                    "Score %s of %s is invalid, keeping %s.", new_score, player.player_name, old_score,
                )
                summary.rejected += 1
            case RankDelta.ANOMALOUS_DROP:
                logger.warning(
                    "Score of %s dropped from %s to %s, beyond the %s threshold; likely an API error.",
                    player.player_name, old_score, new_score, self.max_drop_threshold,
                )
                summary.rejected += 1
            case RankDelta.UNCHANGED:
                summary.unchanged += 1
            case RankDelta.CHANGED:
                now = self.clock()
                player.rank_score = new_score
                player.rank_name = observation.rank_name
                player.rank_div = observation.rank_div
                player.global_rank_percent = observation.global_rank_percent
                player.selected_legend = observation.selected_legend
                player.legend_rank = observation.legend_rank
                player.last_checked = max(player.last_checked, int(now * 1000))
                self.store.save()
                summary.changed += 1
                logger.info("%s in group %s: %s -> %s.", player.player_name, group_id, old_score, new_score)

                message = format_rank_change(player, old_score, observation, now=now)
                if not await self.notifier.send(group_id, message):
                    logger.error("Failed to notify group %s about %s.", group_id, player.player_name)
                    summary.notify_failed += 1

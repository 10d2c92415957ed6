"""Add, remove and list tracked players for a group."""

from __future__ import annotations

import logging
import time

from apexapi.apexapi import PlayerObservation, StatsFetcher
from rankwatch.models import PlayerSnapshot, player_key
from rankwatch.notifier import Notifier
from rankwatch.subscriptions import SubscriptionStore

logger = logging.getLogger(__name__)


class SubscriptionError(Exception):
    """Base class for rejected subscription requests."""

    def __init__(self, player_name: str, message: str = ""):
        super().__init__(message or player_name)
        self.player_name = player_name


class BlacklistedPlayerError(SubscriptionError):
    pass


class AlreadyTrackedError(SubscriptionError):
    pass


class InvalidScoreError(SubscriptionError):
    def __init__(self, player_name: str, score: int, min_valid_score: int):
        super().__init__(player_name, f"{player_name} has score {score}, below the minimum {min_valid_score}")
        self.score = score
        self.min_valid_score = min_valid_score


class Blacklist:
    """Case-insensitive set of player names that may not be queried or tracked."""

    def __init__(self, names=()):
        if isinstance(names, str):
            names = names.split(",")
        self._names = frozenset(player_key(name) for name in names if name and name.strip())

    def __contains__(self, player_name) -> bool:
        return isinstance(player_name, str) and player_key(player_name) in self._names

    def __len__(self) -> int:
        return len(self._names)


def snapshot_from_observation(player_name: str, observation: PlayerObservation, checked_at_ms: int) -> PlayerSnapshot:
    return PlayerSnapshot(
        player_name=player_name,
        rank_score=observation.rank_score,
        rank_name=observation.rank_name,
        rank_div=observation.rank_div,
        last_checked=checked_at_ms,
        global_rank_percent=observation.global_rank_percent,
        selected_legend=observation.selected_legend,
        legend_rank=observation.legend_rank,
    )


class SubscriptionOperations:
    """Subscription commands sharing the store with the reconciliation loop."""

    def __init__(
        self,
        store: SubscriptionStore,
        fetcher: StatsFetcher,
        notifier: Notifier,
        blacklist: Blacklist = None,
        min_valid_score: int = 1,
        clock=time.time,
    ):
        self.store = store
        self.fetcher = fetcher
        self.notifier = notifier
        self.blacklist = blacklist if blacklist is not None else Blacklist()
        self.min_valid_score = min_valid_score
        self.clock = clock

    def is_blacklisted(self, player_name: str) -> bool:
        return player_name in self.blacklist

    async def query(self, player_name: str) -> PlayerObservation:
        """Fetch a player's current stats without tracking them."""
        player_name = player_name.strip()
        if self.is_blacklisted(player_name):
            logger.warning("Blocked query for blacklisted player %s.", player_name)
            raise BlacklistedPlayerError(player_name)
        observation = await self.fetcher.fetch(player_name)
        if observation.rank_score < self.min_valid_score:
            raise InvalidScoreError(player_name, observation.rank_score, self.min_valid_score)
        return observation

    async def add(self, group_id: str, player_name: str) -> PlayerSnapshot:
        """Start tracking player_name in group_id.

        Raises BlacklistedPlayerError before any network call, FetchError when
        the stats cannot be fetched, InvalidScoreError when the reported score
        looks like an API error, and AlreadyTrackedError for duplicates.
        """
        player_name = player_name.strip()
        if self.is_blacklisted(player_name):
            logger.warning("Blocked tracking of blacklisted player %s.", player_name)
            raise BlacklistedPlayerError(player_name)

        observation = await self.fetcher.fetch(player_name)
        if observation.rank_score < self.min_valid_score:
            raise InvalidScoreError(player_name, observation.rank_score, self.min_valid_score)

        # Checked after the fetch; another add may have landed while it was in flight.
        if self.store.get_player(group_id, player_name) is not None:
            raise AlreadyTrackedError(player_name)

        snapshot = snapshot_from_observation(player_name, observation, int(self.clock() * 1000))
        self.store.add_player(group_id, snapshot)
        self.store.save()
        logger.info("Group %s now tracks %s at %s.", group_id, player_name, snapshot.rank_score)

        sent = await self.notifier.send(group_id, f"✅ 测试消息: 已添加对 {player_name} 的排名监控")
        if not sent:
            logger.warning("Confirmation for %s in group %s was not delivered.", player_name, group_id)
        return snapshot

    def remove(self, group_id: str, player_name: str) -> bool:
        removed = self.store.remove_player(group_id, player_name.strip())
        if removed:
            self.store.save()
            logger.info("Group %s stopped tracking %s.", group_id, player_name)
        return removed

    def list(self, group_id: str) -> list[PlayerSnapshot]:
        group = self.store.get_group(group_id)
        if group is None:
            return []
        return list(group.players.values())

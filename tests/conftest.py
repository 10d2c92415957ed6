"""
Shared pytest fixtures for the rank watch test suite.

Provides:
  - ``make_observation``: factory for decoded bridge observations.
  - ``FakeFetcher`` / ``fetcher``: scripted stand-in for ``StatsFetcher``.
  - ``RecordingNotifier`` / ``notifier``: records every message sent.
  - ``store``: a ``SubscriptionStore`` rooted in a temporary directory.
"""

from __future__ import annotations

from collections import defaultdict, deque

import pytest

from apexapi.apexapi import PlayerObservation
from rankwatch.subscriptions import SubscriptionStore


def build_observation(**overrides) -> PlayerObservation:
    values = dict(
        name="moeneri",
        uid="1000",
        platform="PC",
        level=500,
        to_next_level_percent=10,
        rank_score=10000,
        rank_name="钻石",
        rank_div=2,
        global_rank_percent="1.5",
        is_online=True,
        selected_legend="恶灵",
        legend_rank="A",
        current_state="比赛中 (03:12)",
        in_lobby_or_match=True,
    )
    values.update(overrides)
    return PlayerObservation(**values)


@pytest.fixture
def make_observation():
    return build_observation


class FakeFetcher:
    """Returns queued results per lowercased player name; the last result repeats."""

    def __init__(self):
        self.results = defaultdict(deque)
        self.calls = []

    def queue(self, player_name: str, *results) -> None:
        self.results[player_name.lower()].extend(results)

    async def fetch(self, player_name: str) -> PlayerObservation:
        self.calls.append(player_name)
        pending = self.results[player_name.lower()]
        if not pending:
            raise AssertionError(f"No result queued for {player_name}")
        result = pending.popleft() if len(pending) > 1 else pending[0]
        if isinstance(result, Exception):
            raise result
        return result


class RecordingNotifier:
    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent = []
        self.channels = []

    async def send(self, group_id: str, text: str) -> bool:
        self.sent.append((group_id, text))
        return self.succeed


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store(tmp_path) -> SubscriptionStore:
    return SubscriptionStore(tmp_path / "data")


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(succeed=False)

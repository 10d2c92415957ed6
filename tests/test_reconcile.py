"""Tests for rankwatch.reconcile."""

import asyncio

import pytest

from apexapi.apexapi import FetchError, FetchErrorKind, StatsFetcher
from rankwatch.models import PlayerSnapshot
from rankwatch.operations import Blacklist
from rankwatch.reconcile import ReconciliationLoop
from rankwatch.subscriptions import SubscriptionStore

START_MS = 1_600_000_000_000
NOW = 1_700_000_000.0


def tracked(store, group_id, name, score=10000):
    store.add_player(
        group_id,
        PlayerSnapshot(
            player_name=name,
            rank_score=score,
            rank_name="钻石",
            rank_div=2,
            last_checked=START_MS,
        ),
    )


def make_loop(store, fetcher, notifier, blacklist=()):
    return ReconciliationLoop(
        store,
        fetcher,
        notifier,
        blacklist=Blacklist(blacklist),
        interval_minutes=2,
        min_valid_score=1,
        max_drop_threshold=2000,
        clock=lambda: NOW,
    )


def test_accepted_drop_updates_persists_and_notifies(store, fetcher, notifier, make_observation):
    tracked(store, "123", "Moeneri")
    fetcher.queue("moeneri", make_observation(rank_score=8500, rank_name="白金", rank_div=1))

    summary = asyncio.run(make_loop(store, fetcher, notifier).run_pass())

    player = store.get_player("123", "moeneri")
    assert summary.changed == 1
    assert player.rank_score == 8500
    assert player.rank_display == "白金 1"
    assert player.last_checked == int(NOW * 1000)
    assert len(notifier.sent) == 1
    group_id, text = notifier.sent[0]
    assert group_id == "123"
    assert "下降 1500" in text
    assert "白金 1" in text

    reloaded = SubscriptionStore(store.data_dir)
    reloaded.load()
    assert reloaded.get_player("123", "moeneri").rank_score == 8500


def test_anomalous_drop_is_ignored(store, fetcher, notifier, make_observation):
    tracked(store, "123", "Moeneri")
    fetcher.queue("moeneri", make_observation(rank_score=7000))

    summary = asyncio.run(make_loop(store, fetcher, notifier).run_pass())

    assert summary.rejected == 1
    assert store.get_player("123", "moeneri").rank_score == 10000
    assert notifier.sent == []
    assert not store.data_path.exists()


@pytest.mark.parametrize("new_score", [0, -5])
def test_invalid_score_is_ignored(store, fetcher, notifier, make_observation, new_score):
    tracked(store, "123", "Moeneri")
    fetcher.queue("moeneri", make_observation(rank_score=new_score))

    summary = asyncio.run(make_loop(store, fetcher, notifier).run_pass())

    assert summary.rejected == 1
    assert store.get_player("123", "moeneri").rank_score == 10000
    assert notifier.sent == []


def test_unchanged_score_does_not_merge_metadata(store, fetcher, notifier, make_observation):
    tracked(store, "123", "Moeneri")
    fetcher.queue("moeneri", make_observation(rank_score=10000, selected_legend="罗芭"))

    summary = asyncio.run(make_loop(store, fetcher, notifier).run_pass())

    player = store.get_player("123", "moeneri")
    assert summary.unchanged == 1
    assert player.selected_legend == ""
    assert player.last_checked == START_MS
    assert notifier.sent == []


def test_blacklisted_player_is_skipped_not_removed(store, fetcher, notifier, make_observation):
    tracked(store, "123", "Cheater")
    fetcher.queue("cheater", make_observation(rank_score=12000))

    summary = asyncio.run(make_loop(store, fetcher, notifier, blacklist="CHEATER").run_pass())

    assert summary.skipped == 1
    assert fetcher.calls == []
    assert notifier.sent == []
    assert store.get_player("123", "cheater").rank_score == 10000


def test_fetch_failure_does_not_stop_the_pass(store, fetcher, notifier, make_observation):
    tracked(store, "1", "Broken")
    tracked(store, "1", "Fine")
    tracked(store, "2", "Other", score=3000)
    fetcher.queue("broken", FetchError(FetchErrorKind.TRANSIENT, "timed out"))
    fetcher.queue("fine", make_observation(rank_score=10100))
    fetcher.queue("other", make_observation(rank_score=3100))

    summary = asyncio.run(make_loop(store, fetcher, notifier).run_pass())

    assert fetcher.calls == ["Broken", "Fine", "Other"]
    assert summary.failed == 1
    assert summary.changed == 2
    assert [group_id for group_id, _ in notifier.sent] == ["1", "2"]
    assert "上升 100" in notifier.sent[0][1]


def test_notify_failure_keeps_update(store, fetcher, failing_notifier, make_observation):
    tracked(store, "123", "Moeneri")
    fetcher.queue("moeneri", make_observation(rank_score=10500))

    summary = asyncio.run(make_loop(store, fetcher, failing_notifier).run_pass())

    assert summary.notify_failed == 1
    reloaded = SubscriptionStore(store.data_dir)
    reloaded.load()
    assert reloaded.get_player("123", "moeneri").rank_score == 10500


def test_player_removed_during_fetch_is_not_updated(store, notifier, make_observation):
    tracked(store, "123", "Moeneri")
    tracked(store, "123", "Second")

    class RemovingFetcher:
        calls = []

        async def fetch(self, player_name):
            self.calls.append(player_name)
            # A remove command lands while this fetch is suspended.
            store.remove_player("123", "moeneri")
            await asyncio.sleep(0)
            return make_observation(rank_score=11000)

    summary = asyncio.run(make_loop(store, RemovingFetcher(), notifier).run_pass())

    assert store.get_player("123", "moeneri") is None
    assert store.get_player("123", "second").rank_score == 11000
    assert [text.splitlines()[2] for _, text in notifier.sent] == ["👤 Second"]
    assert summary.changed == 1


def test_offline_player_alert_omits_legend_and_state(store, fetcher, notifier, make_observation):
    tracked(store, "123", "Moeneri")
    fetcher.queue("moeneri", make_observation(rank_score=10200, is_online=False))

    asyncio.run(make_loop(store, fetcher, notifier).run_pass())

    text = notifier.sent[0][1]
    assert "当前英雄" not in text
    assert "当前状态" not in text


def test_online_alert_shows_legend_tier_and_state(store, fetcher, notifier, make_observation):
    tracked(store, "123", "Moeneri")
    fetcher.queue("moeneri", make_observation(rank_score=10200))

    asyncio.run(make_loop(store, fetcher, notifier).run_pass())

    text = notifier.sent[0][1]
    assert "🎮 当前英雄：恶灵 (A级)" in text
    assert "🎯 当前状态：比赛中 (03:12)" in text


def test_periodic_task_runs_passes_until_stopped(store, fetcher, notifier, make_observation):
    tracked(store, "123", "Moeneri")
    fetcher.queue("moeneri", make_observation(rank_score=10100), make_observation(rank_score=10200))
    waits = []

    async def scenario():
        async def fake_sleep(seconds):
            waits.append(seconds)
            if len(waits) > 2:
                await asyncio.Event().wait()

        loop = make_loop(store, fetcher, notifier)
        loop.sleep = fake_sleep
        task = loop.start()
        assert loop.start() is task
        for _ in range(20):
            await asyncio.sleep(0)
        await loop.stop()
        return task

    task = asyncio.run(scenario())

    assert task.cancelled()
    assert waits == [120, 120, 120]
    assert len(fetcher.calls) == 2
    assert store.get_player("123", "moeneri").rank_score == 10200


def test_malformed_response_does_not_stop_the_pass(store, notifier):
    tracked(store, "123", "Broken")
    tracked(store, "123", "Good")
    replies = {
        "Broken": {"global": ["oops"], "realtime": {}},
        "Good": {"global": {"rank": {"rankScore": 10300, "rankName": "Diamond", "rankDiv": 2}}, "realtime": {}},
    }

    async def transport(url, params):
        return replies[params["player"]]

    fetcher = StatsFetcher("key", transport=transport)

    summary = asyncio.run(make_loop(store, fetcher, notifier).run_pass())

    assert summary.failed == 1
    assert summary.changed == 1
    assert store.get_player("123", "broken").rank_score == 10000
    assert store.get_player("123", "good").rank_score == 10300
    assert [group_id for group_id, _ in notifier.sent] == ["123"]

"""Decides what to do with a freshly fetched ranked score."""

from enum import Enum


class RankDelta(Enum):
    INVALID = "invalid"                # below the minimum valid score; keep old, stay silent
    ANOMALOUS_DROP = "anomalous_drop"  # drop larger than the threshold; keep old, stay silent
    UNCHANGED = "unchanged"
    CHANGED = "changed"                # accept the new snapshot and notify


def classify_rank_delta(
    old_score: int,
    new_score: int,
    min_valid_score: int,
    max_drop_threshold: int,
) -> RankDelta:
    """Classify the move from old_score to new_score.

    The bridge occasionally reports zero or wildly lower scores for a single
    poll. Those readings are rejected rather than stored.
    """
    if new_score < min_valid_score:
        return RankDelta.INVALID
    if new_score < old_score and old_score - new_score > max_drop_threshold:
        return RankDelta.ANOMALOUS_DROP
    if new_score == old_score:
        return RankDelta.UNCHANGED
    return RankDelta.CHANGED


def format_delta(old_score: int, new_score: int) -> str:
    diff = new_score - old_score
    return f"上升 {diff}" if diff > 0 else f"下降 {abs(diff)}"

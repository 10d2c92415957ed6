from __future__ import annotations

from dataclasses import dataclass, field

from apexapi.translations import UNKNOWN


@dataclass
class PlayerSnapshot:
    """Last accepted rank state of one tracked player."""

    player_name: str
    rank_score: int
    rank_name: str
    rank_div: int
    last_checked: int  # epoch milliseconds
    global_rank_percent: str = UNKNOWN
    selected_legend: str = ""
    legend_rank: str = UNKNOWN

    @property
    def key(self) -> str:
        return player_key(self.player_name)

    @property
    def rank_display(self) -> str:
        return rank_display(self.rank_name, self.rank_div)

    def to_dict(self) -> dict:
        # Field names match the groups.json layout of earlier releases.
        return {
            "playerName": self.player_name,
            "rankScore": self.rank_score,
            "rankName": self.rank_name,
            "rankDiv": self.rank_div,
            "lastChecked": self.last_checked,
            "globalRankPercent": self.global_rank_percent,
            "selectedLegend": self.selected_legend,
            "legendRank": self.legend_rank,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> PlayerSnapshot:
        if not isinstance(raw, dict):
            raise ValueError("Player entry must be an object.")
        name = raw.get("playerName")
        if not name or not isinstance(name, str):
            raise ValueError("Player entry has no playerName.")
        score = int(raw.get("rankScore", 0))
        if score < 0:
            raise ValueError(f"Player entry {name} has a negative rankScore.")
        return cls(
            player_name=name,
            rank_score=score,
            rank_name=str(raw.get("rankName") or ""),
            rank_div=int(raw.get("rankDiv") or 0),
            last_checked=int(raw.get("lastChecked") or 0),
            global_rank_percent=str(raw.get("globalRankPercent") or UNKNOWN),
            selected_legend=str(raw.get("selectedLegend") or ""),
            legend_rank=str(raw.get("legendRank") or UNKNOWN),
        )


@dataclass
class GroupSubscription:
    """One chat group's tracked players, keyed by lowercased name."""

    group_id: str
    players: dict[str, PlayerSnapshot] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "groupId": self.group_id,
            "players": {key: player.to_dict() for key, player in self.players.items()},
        }


def player_key(player_name: str) -> str:
    return player_name.strip().lower()


def rank_display(rank_name: str, rank_div: int) -> str:
    # Division 0 means the tier has no divisions (Master, Predator).
    return f"{rank_name} {rank_div}" if rank_div != 0 else rank_name

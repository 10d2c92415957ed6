from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import suppress
from pathlib import Path

from rankwatch.models import GroupSubscription, PlayerSnapshot, player_key

DATA_FILE_NAME = "groups.json"

logger = logging.getLogger(__name__)


class SubscriptionStore:
    """Owns the group -> tracked players registry and its groups.json file."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_path = self.data_dir / DATA_FILE_NAME
        self.groups: dict[str, GroupSubscription] = {}

    def load(self) -> dict[str, GroupSubscription]:
        """Hydrate the registry from disk. A missing or unreadable file leaves it empty."""
        self.groups = {}
        if not self.data_path.exists():
            logger.info("No subscription data at %s, starting empty.", self.data_path)
            return self.groups

        try:
            with open(self.data_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load subscription data from %s: %s", self.data_path, e)
            return self.groups

        if not isinstance(raw, dict):
            logger.error("Subscription data in %s is not an object, ignoring it.", self.data_path)
            return self.groups

        for group_id, group_raw in raw.items():
            players_raw = group_raw.get("players") if isinstance(group_raw, dict) else None
            if not isinstance(players_raw, dict):
                logger.warning("Skipping malformed group entry %s.", group_id)
                continue
            group = GroupSubscription(group_id=str(group_id))
            for key, player_raw in players_raw.items():
                try:
                    snapshot = PlayerSnapshot.from_dict(player_raw)
                except (TypeError, ValueError) as e:
                    logger.warning("Skipping malformed player %s in group %s: %s", key, group_id, e)
                    continue
                group.players[snapshot.key] = snapshot
            if group.players:
                self.groups[group.group_id] = group

        logger.info(
            "Loaded %s tracked players across %s groups.",
            sum(len(group.players) for group in self.groups.values()),
            len(self.groups),
        )
        return self.groups

    def save(self) -> bool:
        """Write the whole registry, replacing the previous file atomically."""
        document = {group_id: group.to_dict() for group_id, group in self.groups.items()}
        temp_path = None
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.data_dir,
                prefix=".groups-",
                suffix=".tmp",
                delete=False,
            ) as f:
                temp_path = f.name
                json.dump(document, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.data_path)
            return True
        except OSError as e:
            logger.error("Failed to save subscription data to %s: %s", self.data_path, e)
            if temp_path:
                with suppress(OSError):
                    os.unlink(temp_path)
            return False

    def get_group(self, group_id: str) -> GroupSubscription | None:
        return self.groups.get(str(group_id))

    def get_player(self, group_id: str, player_name: str) -> PlayerSnapshot | None:
        group = self.get_group(group_id)
        if group is None:
            return None
        return group.players.get(player_key(player_name))

    def add_player(self, group_id: str, snapshot: PlayerSnapshot) -> None:
        group_id = str(group_id)
        group = self.groups.get(group_id)
        if group is None:
            group = self.groups[group_id] = GroupSubscription(group_id=group_id)
        group.players[snapshot.key] = snapshot

    def remove_player(self, group_id: str, player_name: str) -> bool:
        group = self.get_group(group_id)
        if group is None or group.players.pop(player_key(player_name), None) is None:
            return False
        if not group.players:
            del self.groups[group.group_id]
        return True

    def iter_tracked(self):
        """Yield (group_id, key) pairs from a copy, safe against concurrent mutation."""
        for group_id, group in list(self.groups.items()):
            for key in list(group.players):
                yield group_id, key

"""Command handlers. Each returns the text shown to the user, never a raw fault."""

from __future__ import annotations

import logging

from apexapi.apexapi import FetchError
from rankwatch.config import Config
from rankwatch.formatting import (
    format_help,
    format_player_list,
    format_player_rank,
)
from rankwatch.notifier import Notifier
from rankwatch.operations import (
    AlreadyTrackedError,
    BlacklistedPlayerError,
    InvalidScoreError,
    SubscriptionOperations,
)

logger = logging.getLogger(__name__)

GROUP_ONLY_TEXT = "此命令仅适用于群聊，请在群聊中使用"


def _fetch_failed_text(action: str, error: FetchError) -> str:
    return f"{action}失败: {error}\n可能是网络问题或API密钥无效，请稍后再试"


def _invalid_score_text(error: InvalidScoreError) -> str:
    return (
        f"查询到 {error.player_name} 的分数为 {error.score}，低于最小有效分数 "
        f"{error.min_valid_score}，可能是API错误，请稍后再试"
    )


class RankCommands:
    def __init__(self, operations: SubscriptionOperations, notifier: Notifier, config: Config):
        self.operations = operations
        self.notifier = notifier
        self.config = config

    async def query(self, player_name: str) -> str:
        logger.info("query command: %s", player_name)
        if not player_name:
            return "请提供玩家名称，例如: query moeneri"
        try:
            observation = await self.operations.query(player_name)
        except BlacklistedPlayerError:
            return f"⛔ 该ID（{player_name}）已被管理员加入黑名单，禁止查询"
        except InvalidScoreError as e:
            return _invalid_score_text(e)
        except FetchError as e:
            logger.error("Query for %s failed: %s", player_name, e)
            return _fetch_failed_text("查询", e)
        return format_player_rank(observation)

    async def watch(self, group_id: str | None, player_name: str) -> str:
        logger.info("watch command: %s in group %s", player_name, group_id)
        if not player_name:
            return "请提供要监控的玩家名称，例如: watch moeneri"
        if not group_id:
            return GROUP_ONLY_TEXT
        try:
            snapshot = await self.operations.add(group_id, player_name)
        except BlacklistedPlayerError:
            return f"⛔ 该ID（{player_name}）已被管理员加入黑名单，禁止监控"
        except InvalidScoreError as e:
            return _invalid_score_text(e)
        except AlreadyTrackedError:
            return f"本群已经在监控 {player_name} 的排名变化了"
        except FetchError as e:
            logger.error("Adding %s to group %s failed: %s", player_name, group_id, e)
            return _fetch_failed_text("添加监控", e)
        return f"成功添加对 {snapshot.player_name} 的排名监控！\n当前排名: {snapshot.rank_display} ({snapshot.rank_score}分)"

    def list_players(self, group_id: str | None) -> str:
        if not group_id:
            return GROUP_ONLY_TEXT
        return format_player_list(
            self.operations.list(group_id),
            self.config.check_interval_minutes,
            self.config.max_score_drop_threshold,
            self.config.min_valid_score,
        )

    def remove(self, group_id: str | None, player_name: str) -> str:
        logger.info("remove command: %s in group %s", player_name, group_id)
        if not player_name:
            return "请提供要移除监控的玩家名称，例如: remove moeneri"
        if not group_id:
            return GROUP_ONLY_TEXT
        if self.operations.remove(group_id, player_name):
            return f"已移除本群对 {player_name} 的排名监控"
        return f"本群没有监控 {player_name} 的排名"

    async def self_test(self, group_id: str | None = None) -> str:
        if not group_id:
            return "✅ Apex Legends 排名监控正常运行中"
        if await self.notifier.send(group_id, "✅ Apex Legends 排名监控测试消息"):
            return "✅ Apex Legends 排名监控正常运行中，已发送测试消息到本群"
        return "✅ Apex Legends 排名监控正常运行中，但发送消息失败，可能缺少可用的机器人通道"

    def help(self) -> str:
        return format_help(
            self.config.check_interval_minutes,
            self.config.max_score_drop_threshold,
            self.config.min_valid_score,
            len(self.config.blacklist),
        )

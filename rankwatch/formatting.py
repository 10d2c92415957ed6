"""User-facing text for queries, change alerts, lists and help."""

from __future__ import annotations

import time

from apexapi.apexapi import PlayerObservation
from apexapi.translations import UNKNOWN
from rankwatch.classifier import format_delta
from rankwatch.models import PlayerSnapshot, rank_display

ONLINE_TEXT = "在线"
OFFLINE_TEXT = "离线"


def format_timestamp(seconds: float = None) -> str:
    return time.strftime("%Y/%m/%d %H:%M:%S", time.localtime(seconds))


def _legend_text(legend: str, legend_rank: str) -> str:
    text = legend
    if legend_rank and legend_rank != UNKNOWN:
        text += f" ({legend_rank}级)"
    return text


def format_player_rank(observation: PlayerObservation, now: float = None) -> str:
    """Text for a one-off player query."""
    lines = [
        "📊 Apex 段位信息",
        f"📅 {format_timestamp(now)}",
        f"👤 {observation.name}",
        f"🏆 段位：{rank_display(observation.rank_name, observation.rank_div)}",
        f"🔢 分数：{observation.rank_score}",
    ]
    if observation.global_rank_percent and observation.global_rank_percent != UNKNOWN:
        lines.append(f"🌎 全球排名：前 {observation.global_rank_percent}%")
    lines.append(f"👑 等级：{observation.level}")

    if observation.is_online:
        lines.append(f"🎮 在线状态：{ONLINE_TEXT}")
        if observation.selected_legend:
            lines.append(f"🎯 当前英雄：{_legend_text(observation.selected_legend, observation.legend_rank)}")
        if observation.in_lobby_or_match:
            lines.append(f"🎯 当前状态：{observation.current_state}")
    else:
        lines.append(f"🎮 在线状态：{OFFLINE_TEXT}")
    return "\n".join(lines)


def format_rank_change(
    player: PlayerSnapshot,
    old_score: int,
    observation: PlayerObservation,
    now: float = None,
) -> str:
    """Alert text sent to a group after an accepted score change."""
    lines = [
        "📈 Apex 排位分数变化",
        f"📅 {format_timestamp(now)}",
        f"👤 {player.player_name}",
        f"🔢 原分数：{old_score}",
        f"🔢 当前分数：{observation.rank_score}",
        f"🏆 段位：{player.rank_display}",
        f"📊 变动：{format_delta(old_score, observation.rank_score)} 分",
    ]
    if observation.global_rank_percent and observation.global_rank_percent != UNKNOWN:
        lines.append(f"🌎 全球排名：前 {observation.global_rank_percent}%")

    # Legend and activity are only meaningful while the player is online.
    if observation.is_online and observation.selected_legend:
        lines.append(f"🎮 当前英雄：{_legend_text(observation.selected_legend, observation.legend_rank)}")
    if observation.is_online and observation.in_lobby_or_match and observation.current_state:
        lines.append(f"🎯 当前状态：{observation.current_state}")
    return "\n".join(lines)


def format_player_list(
    players: list[PlayerSnapshot],
    interval_minutes: float,
    max_drop_threshold: int,
    min_valid_score: int,
) -> str:
    if not players:
        return "本群目前没有监控任何玩家的排名"

    lines = ["📋 本群 Apex 排名监控列表", ""]
    for index, player in enumerate(players, start=1):
        lines.append(f"{index}. 👤 {player.player_name}")
        lines.append(f"   🏆 段位: {player.rank_display}")
        lines.append(f"   🔢 分数: {player.rank_score}")
        if player.global_rank_percent and player.global_rank_percent != UNKNOWN:
            lines.append(f"   🌎 全球排名: 前 {player.global_rank_percent}%")
        if player.selected_legend:
            lines.append(f"   🎮 当前英雄: {_legend_text(player.selected_legend, player.legend_rank)}")
        lines.append("")

    lines.extend([
        f"总计: {len(players)} 个玩家",
        f"检测间隔: {interval_minutes:g} 分钟",
        f"分数下降阈值: {max_drop_threshold} 分",
        f"最小有效分数: {min_valid_score} 分",
    ])
    return "\n".join(lines)


def format_help(interval_minutes: float, max_drop_threshold: int, min_valid_score: int, blacklist_size: int = 0) -> str:
    text = (
        "📋 Apex 段位监控使用帮助\n\n"
        "1️⃣ 查询玩家段位：\n"
        "   命令：query <玩家名称>\n"
        "   示例：query moeneri\n"
        "   说明：查询指定玩家的段位、分数和状态信息\n\n"
        "2️⃣ 添加群监控：\n"
        "   命令：watch <玩家名称>\n"
        "   示例：watch moeneri\n"
        "   说明：添加对指定玩家的段位变化监控，当段位分数变化时会在群内通知\n\n"
        "3️⃣ 查看群监控列表：\n"
        "   命令：list\n"
        "   说明：查看当前群内已添加监控的玩家列表\n\n"
        "4️⃣ 移除群监控：\n"
        "   命令：remove <玩家名称>\n"
        "   示例：remove moeneri\n"
        "   说明：移除对指定玩家的段位监控\n\n"
        "5️⃣ 测试：\n"
        "   命令：test\n"
        "   说明：测试是否正常工作及消息发送\n\n"
        "📝 参数说明：\n"
        "   <玩家名称>：Apex Legends 游戏中的玩家ID\n\n"
        "⏱️ 监控说明：\n"
        f"   系统会每 {interval_minutes:g} 分钟检查一次玩家段位变化\n"
        "   当玩家段位分数发生变化时，会在群内发送通知\n"
        f"   分数变化异常判断：下降超过 {max_drop_threshold} 分将被视为异常\n"
        f"   最小有效分数：{min_valid_score} 分以下的分数将被视为无效\n"
        "   英雄强度等级：S>A>B>C>D\n"
    )
    if blacklist_size:
        text += (
            "\n⚠️ 黑名单说明：\n"
            f"   当前已设置 {blacklist_size} 个黑名单ID\n"
            "   黑名单ID无法被查询或监控\n"
        )
    return text

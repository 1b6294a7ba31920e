"""
Trust Engine - Notification Embeds
==================================

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from datetime import datetime
from typing import List, Optional

import discord

from vigil.core.config import EmbedColors, NY_TZ
from vigil.utils.duration import format_duration

from .models import ActionType, PunishmentAction


ACTION_TITLES = {
    ActionType.TIMEOUT: "⏳ User Timed Out",
    ActionType.KICK: "👢 User Kicked",
    ActionType.BAN: "🔨 User Banned",
}

ACTION_COLORS = {
    ActionType.TIMEOUT: EmbedColors.LOG_WARNING,
    ActionType.KICK: EmbedColors.LOG_NEGATIVE,
    ActionType.BAN: EmbedColors.LOG_NEGATIVE,
}


def _target(member: discord.abc.User) -> str:
    return f"{member.mention} (`{member.id}`)"


def punishment_embed(
    member: discord.abc.User,
    action: PunishmentAction,
    reason: str,
) -> discord.Embed:
    embed = discord.Embed(
        title=ACTION_TITLES[action.type],
        color=ACTION_COLORS[action.type],
        timestamp=datetime.now(NY_TZ),
    )
    embed.add_field(name="User", value=_target(member), inline=True)
    if action.type == ActionType.TIMEOUT:
        embed.add_field(
            name="Duration",
            value=format_duration(action.duration_seconds, show_seconds=True),
            inline=True,
        )
    embed.add_field(name="Reason", value=reason[:1024], inline=False)
    embed.set_footer(text="Automatic action by the trust system")
    return embed


def revoke_embed(member: discord.abc.User) -> discord.Embed:
    embed = discord.Embed(
        title="🔓 Timeout Revoked",
        color=EmbedColors.LOG_POSITIVE,
        timestamp=datetime.now(NY_TZ),
    )
    embed.add_field(name="User", value=_target(member), inline=True)
    return embed


def failure_embed(
    user_id: int,
    score: int,
    failed: List[PunishmentAction],
    threshold: Optional[int] = None,
) -> discord.Embed:
    """Staff notice for punishments that could not be applied."""
    embed = discord.Embed(
        title="⚠️ Punishment Failed",
        description="Automatic punishment could not be applied. Manual action may be needed.",
        color=EmbedColors.PRIORITY_HIGH,
        timestamp=datetime.now(NY_TZ),
    )
    embed.add_field(name="User", value=f"<@{user_id}> (`{user_id}`)", inline=True)
    embed.add_field(name="Score", value=str(score), inline=True)
    if threshold is not None:
        embed.add_field(name="Threshold", value=str(threshold), inline=True)
    embed.add_field(
        name="Failed Actions",
        value=", ".join(action.type.value for action in failed),
        inline=False,
    )
    return embed


__all__ = [
    "failure_embed",
    "punishment_embed",
    "revoke_embed",
]

"""
Vigil - Trust Events Cog
========================

Feeds guild messages into the trust service.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from vigil.core.logger import logger
from vigil.services.trust import TrustEvent

if TYPE_CHECKING:
    from vigil.bot import VigilBot


class TrustEvents(commands.Cog):
    """Message listener for trust scoring."""

    def __init__(self, bot: "VigilBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.webhook_id is not None:
            return
        if message.guild is None:
            return
        if self.bot.trust_service is None:
            return

        try:
            await self.bot.trust_service.handle_event(TrustEvent.from_message(message))
        except Exception as e:
            logger.error("Trust Event Failed", [
                ("Guild", str(message.guild.id)),
                ("User", str(message.author.id)),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])


__all__ = ["TrustEvents"]

"""
Vigil - Trust Events Package
============================

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import TYPE_CHECKING

from vigil.core.logger import logger

from .cog import TrustEvents

if TYPE_CHECKING:
    from vigil.bot import VigilBot

__all__ = ["TrustEvents"]


async def setup(bot: "VigilBot") -> None:
    """Load the TrustEvents cog."""
    await bot.add_cog(TrustEvents(bot))
    logger.tree("Trust Events Loaded", [
        ("Events", "on_message"),
    ], emoji="🛡️")

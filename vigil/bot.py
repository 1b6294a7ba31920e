"""
Vigil - Main Bot Class
======================

Discord client that wires the trust engine together and feeds it
guild messages.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from datetime import datetime
from typing import Optional

import discord
from discord.ext import commands

from vigil.core.config import Config, get_config
from vigil.core.database import KeyValueStore, SQLiteKeyValueStore
from vigil.core.logger import logger
from vigil.services.trust import (
    PunishmentExecutor,
    TextSpamDetector,
    TrustService,
    TrustStore,
    WindowSweeper,
)
from vigil.utils.cache import TTLCache


# =============================================================================
# VigilBot Class
# =============================================================================

class VigilBot(commands.Bot):
    """
    Main Discord bot class.

    SERVICE INITIALIZATION ORDER:
    1. __init__: storage, behavior window cache, detectors, executor,
       trust service (all built here and injected, nothing global)
    2. setup_hook: event cogs, window sweeper
    3. on_ready: webhook alerts, startup summary
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        kv: Optional[KeyValueStore] = None,
    ) -> None:
        self.config = config or get_config()

        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True

        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None,
        )

        self.start_time: datetime = datetime.now()
        self._ready_initialized: bool = False

        self.kv: KeyValueStore = kv or SQLiteKeyValueStore(self.config.database_path)
        self.window_cache = TTLCache(max_size=self.config.window_cache_max_size)
        self.window_sweeper = WindowSweeper(
            self.window_cache, interval=self.config.window_cleanup_interval
        )
        self.trust_service: Optional[TrustService] = TrustService(
            client=self,
            store=TrustStore(self.kv),
            detectors=[TextSpamDetector(self.window_cache)],
            executor=PunishmentExecutor(timeout=self.config.moderation_timeout),
        )

        logger.info("Bot Instance Created")

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Load cogs and start background tasks before on_ready."""
        from vigil.handlers import EVENT_COGS
        for cog in EVENT_COGS:
            try:
                await self.load_extension(cog)
            except commands.ExtensionError as e:
                logger.error("Failed to Load Event Cog", [("Cog", cog), ("Error", str(e))])

        await self.window_sweeper.start()

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return

        self._ready_initialized = True

        if not self.user:
            return

        if self.config.error_webhook_url:
            logger.set_webhook(self.config.error_webhook_url)

        logger.tree("BOT ONLINE", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
            ("Detectors", ", ".join(d.name for d in self.trust_service.detectors)),
        ], emoji="🚀")

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> None:
        """Graceful shutdown with proper cleanup."""
        logger.info("Initiating Graceful Shutdown")

        await self.window_sweeper.stop()
        self.kv.close()
        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now() - self.start_time)),
        ], emoji="🛑")

    async def close(self) -> None:
        await self.shutdown()


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["VigilBot"]

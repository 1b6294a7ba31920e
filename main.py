#!/usr/bin/env python3
"""
Vigil - Discord Bot Entry Point
===============================

Trust-score moderation bot: detectors score member behavior and
configured thresholds escalate to timeouts, kicks and bans.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
import sys

from dotenv import load_dotenv

from vigil.core.config import ConfigValidationError, validate_and_log_config
from vigil.core.logger import logger
from vigil.utils.error_handler import ErrorHandler


async def main() -> None:
    """
    Load configuration, build the bot and connect to Discord.

    Raises:
        SystemExit: If configuration is invalid or the bot fails to start.
    """
    load_dotenv()

    logger.tree("VIGIL STARTING", [
        ("Engine", "Trust score escalation"),
        ("Detectors", "text_spam"),
    ], "🛡️")

    try:
        config = validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Configuration Invalid", [("Error", str(e))])
        sys.exit(1)

    from vigil.bot import VigilBot

    bot = VigilBot(config)
    try:
        async with bot:
            await bot.start(config.discord_token)
    except Exception as e:
        ErrorHandler.handle(e, location="main.main", critical=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Bot stopped by user (Ctrl+C)")

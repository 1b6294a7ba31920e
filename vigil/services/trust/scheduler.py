"""
Trust Engine - Behavior Window Sweeper
======================================

Periodically evicts expired behavior windows so members who stop
talking don't keep memory alive until their key is read again.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
from typing import Optional

from vigil.core.logger import logger
from vigil.utils.async_utils import create_safe_task
from vigil.utils.cache import TTLCache

from .constants import WINDOW_CLEANUP_INTERVAL


class WindowSweeper:
    """Runs TTLCache.cleanup() on a fixed interval."""

    def __init__(self, cache: TTLCache, interval: float = WINDOW_CLEANUP_INTERVAL) -> None:
        self.cache = cache
        self.interval = interval
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return

        self._running = True
        self._task = create_safe_task(self._sweep_loop(), "Behavior Window Sweeper")

        logger.tree("Window Sweeper Started", [
            ("Interval", f"{self.interval}s"),
        ], emoji="⏰")

    async def stop(self) -> None:
        self._running = False

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

        logger.tree("Window Sweeper Stopped", [
            ("Status", "Inactive"),
        ], emoji="⏹️")

    def sweep(self) -> int:
        removed = self.cache.cleanup()
        if removed:
            logger.debug("Behavior Windows Swept", [
                ("Removed", str(removed)),
                ("Remaining", str(len(self.cache))),
            ])
        return removed

    async def _sweep_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            self.sweep()


__all__ = ["WindowSweeper"]

"""
Vigil - Async Utilities
=======================

Helpers that keep background tasks and best-effort calls from failing
silently.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
from typing import Any, Coroutine

from vigil.core.logger import logger


async def safe_async_operation(
    name: str,
    coro: Coroutine[Any, Any, Any],
    default: Any = None,
    log_level: str = "warning",
) -> Any:
    """
    Run a single async operation with error handling.

    Args:
        name: Name of the operation for logging.
        coro: The coroutine to run.
        default: Value to return if operation fails.
        log_level: Log level for errors ("debug", "warning", "error").

    Returns:
        Result of the coroutine, or default if it fails.
    """
    try:
        return await coro
    except Exception as e:
        error_details = [
            ("Operation", name),
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:100]),
        ]

        if log_level == "debug":
            logger.debug("Async Operation Failed", error_details)
        elif log_level == "error":
            logger.error("Async Operation Failed", error_details)
        else:
            logger.warning("Async Operation Failed", error_details)

        return default


def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: str = "Background Task",
) -> asyncio.Task:
    """
    Create a background task that logs any exception it dies with.

    Example:
        create_safe_task(self._sweep_loop(), "Behavior Window Sweeper")
    """
    async def wrapped():
        try:
            await coro
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Background Task Failed", [
                ("Task", name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:200]),
            ])

    return asyncio.create_task(wrapped(), name=name)


__all__ = [
    "safe_async_operation",
    "create_safe_task",
]

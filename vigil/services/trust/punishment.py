"""
Trust Engine - Punishment Executor
==================================

Applies and reverses moderation actions on guild members.

DESIGN:
    Every failure is reported as False and logged; nothing is retried.
    A notification that fails to send never changes the result of the
    action it describes.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
from datetime import timedelta
from typing import Awaitable, Callable, Dict, Optional

import discord

from vigil.core.logger import logger
from vigil.utils.async_utils import safe_async_operation

from .constants import DEFAULT_REASON, MAX_BAN_PURGE_SECONDS, MODERATION_TIMEOUT, REVOKE_REASON
from .embeds import punishment_embed, revoke_embed
from .models import ActionType, PunishmentAction


Handler = Callable[[discord.Member, PunishmentAction, str], Awaitable[bool]]


def format_reason(template: str, member: discord.Member) -> str:
    """Fill {user}, {userId} and {tag} placeholders from member."""
    return (
        (template or DEFAULT_REASON)
        .replace("{user}", member.name)
        .replace("{userId}", str(member.id))
        .replace("{tag}", str(member))
    )


class PunishmentExecutor:
    """Runs timeout, kick and ban actions against discord members."""

    def __init__(self, timeout: float = MODERATION_TIMEOUT) -> None:
        self.timeout = timeout
        self._handlers: Dict[ActionType, Handler] = {
            ActionType.TIMEOUT: self._apply_timeout,
            ActionType.KICK: self._apply_kick,
            ActionType.BAN: self._apply_ban,
        }

    @property
    def supported_actions(self) -> frozenset:
        return frozenset(self._handlers)

    # =========================================================================
    # Execute
    # =========================================================================

    async def execute(
        self,
        member: discord.Member,
        action: PunishmentAction,
        notify_channel: Optional[discord.abc.Messageable] = None,
    ) -> bool:
        """
        Apply action to member.

        Returns:
            True if the platform accepted the action, False otherwise.
        """
        handler = self._handlers[action.type]
        reason = format_reason(action.reason_template, member)

        try:
            applied = await handler(member, action, reason)
        except discord.Forbidden:
            self._log_failure(member, action, "Missing permissions or role hierarchy")
            return False
        except discord.NotFound:
            self._log_failure(member, action, "Member not found")
            return False
        except discord.HTTPException as e:
            self._log_failure(member, action, f"HTTP {e.status}: {str(e)[:50]}")
            return False
        except asyncio.TimeoutError:
            self._log_failure(member, action, f"Timed out after {self.timeout}s")
            return False
        except Exception as e:
            self._log_failure(member, action, f"{type(e).__name__}: {str(e)[:50]}")
            return False

        if not applied:
            return False

        logger.tree("Punishment Applied", [
            ("Action", action.type.value),
            ("User", f"{member} ({member.id})"),
            ("Duration", f"{action.duration_seconds}s" if action.duration_seconds else "-"),
            ("Reason", reason[:80]),
        ], emoji="🔨")

        if action.notify and notify_channel is not None:
            await safe_async_operation(
                "Punishment Notification",
                notify_channel.send(embed=punishment_embed(member, action, reason)),
            )

        return True

    def _log_failure(self, member: discord.Member, action: PunishmentAction, error: str) -> None:
        logger.error("Punishment Failed", [
            ("Action", action.type.value),
            ("User", str(member.id)),
            ("Error", error),
        ])

    # =========================================================================
    # Action Handlers
    # =========================================================================

    async def _apply_timeout(self, member: discord.Member, action: PunishmentAction, reason: str) -> bool:
        if not action.duration_seconds:
            logger.warning("Timeout Requires Duration", [
                ("User", str(member.id)),
            ])
            return False
        await asyncio.wait_for(
            member.timeout(timedelta(seconds=action.duration_seconds), reason=reason),
            timeout=self.timeout,
        )
        return True

    async def _apply_kick(self, member: discord.Member, action: PunishmentAction, reason: str) -> bool:
        await asyncio.wait_for(member.kick(reason=reason), timeout=self.timeout)
        return True

    async def _apply_ban(self, member: discord.Member, action: PunishmentAction, reason: str) -> bool:
        purge = min(action.duration_seconds or 0, MAX_BAN_PURGE_SECONDS)
        await asyncio.wait_for(
            member.ban(reason=reason, delete_message_seconds=purge),
            timeout=self.timeout,
        )
        return True

    # =========================================================================
    # Revoke
    # =========================================================================

    async def revoke_timeout(
        self,
        member: discord.Member,
        notify_channel: Optional[discord.abc.Messageable] = None,
    ) -> bool:
        """Clear any timeout on member. Succeeds when none is active."""
        try:
            await asyncio.wait_for(
                member.timeout(None, reason=REVOKE_REASON),
                timeout=self.timeout,
            )
        except (discord.HTTPException, asyncio.TimeoutError) as e:
            logger.error("Timeout Revoke Failed", [
                ("User", str(member.id)),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:50]),
            ])
            return False

        logger.tree("Timeout Revoked", [
            ("User", f"{member} ({member.id})"),
        ], emoji="🔓")

        if notify_channel is not None:
            await safe_async_operation(
                "Revoke Notification",
                notify_channel.send(embed=revoke_embed(member)),
            )
        return True


__all__ = [
    "PunishmentExecutor",
    "format_reason",
]

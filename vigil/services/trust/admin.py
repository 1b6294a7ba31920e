"""
Trust Engine - Staff Operations
===============================

Mixin with the operations the dashboard and staff commands call:
settings management, trust lookups and resets, detection logs, manual
punishments and timeout revocation.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from pydantic.alias_generators import to_snake

from vigil.core.config import NY_TZ
from vigil.core.database import DetectionLogRecord
from vigil.core.logger import logger

from .constants import DEFAULT_LOG_PAGE
from .escalation import next_punishment
from .models import (
    ActionType,
    GuildTrustSettings,
    NextPunishment,
    PunishmentAction,
    TrustRecord,
)

if TYPE_CHECKING:
    from .service import TrustService


REQUIRED_PERMISSIONS = {
    ActionType.TIMEOUT: "moderate_members",
    ActionType.KICK: "kick_members",
    ActionType.BAN: "ban_members",
}


class TrustAdminMixin:
    """Staff-facing trust operations."""

    # =========================================================================
    # Settings
    # =========================================================================

    def get_settings(self: "TrustService", guild_id: int) -> GuildTrustSettings:
        return self.store.load_settings(guild_id)

    def update_settings(
        self: "TrustService",
        guild_id: int,
        updates: Dict[str, Any],
    ) -> GuildTrustSettings:
        """
        Merge a partial update into the guild's settings.

        Raises:
            pydantic.ValidationError: If the merged settings are invalid.
        """
        merged = self.store.load_settings(guild_id).model_dump()
        merged.update({to_snake(key): value for key, value in updates.items()})
        settings = GuildTrustSettings.model_validate(merged)
        self.store.save_settings(guild_id, settings)

        logger.tree("Trust Settings Updated", [
            ("Guild", str(guild_id)),
            ("Enabled", str(settings.enabled)),
            ("Rules", str(len(settings.punishments))),
            ("Fields", ", ".join(sorted(updates))[:80]),
        ], emoji="⚙️")
        return settings

    # =========================================================================
    # Trust Records
    # =========================================================================

    def get_trust(self: "TrustService", guild_id: int, user_id: int) -> TrustRecord:
        """Stored record, or a fresh zero record that is not persisted."""
        record = self.store.load_record(guild_id, user_id)
        return record or TrustRecord(guild_id=guild_id, user_id=user_id)

    def get_all_trust(self: "TrustService", guild_id: int) -> List[TrustRecord]:
        """Every stored record in guild, highest score first."""
        records = [
            record
            for record in (self.store.load_record(guild_id, uid) for uid in self.store.user_ids(guild_id))
            if record is not None
        ]
        return sorted(records, key=lambda record: record.score, reverse=True)

    async def reset_trust(self: "TrustService", guild_id: int, user_id: int) -> bool:
        """Zero a member's score, history and tier. False if no record exists."""
        async with self._locks.hold((guild_id, user_id)):
            record = self.store.load_record(guild_id, user_id)
            if record is None:
                return False
            record.score = 0
            record.tier = None
            record.history = []
            record.last_updated_at = datetime.now(NY_TZ)
            self.store.save_record(record)

        logger.tree("Trust Reset", [
            ("Guild", str(guild_id)),
            ("User", str(user_id)),
        ], emoji="🔄")
        return True

    async def _clear_tier(self: "TrustService", guild_id: int, user_id: int) -> None:
        async with self._locks.hold((guild_id, user_id)):
            record = self.store.load_record(guild_id, user_id)
            if record is not None and record.tier is not None:
                record.tier = None
                self.store.save_record(record)

    def describe_next_punishment(
        self: "TrustService",
        guild_id: int,
        user_id: int,
    ) -> Optional[NextPunishment]:
        """Read-only view of the punishment a member is heading toward."""
        settings = self.store.load_settings(guild_id)
        return next_punishment(self.get_trust(guild_id, user_id).score, settings.punishments)

    # =========================================================================
    # Detection Logs
    # =========================================================================

    def get_logs(
        self: "TrustService",
        guild_id: int,
        limit: int = DEFAULT_LOG_PAGE,
        before: Optional[datetime] = None,
    ) -> List[DetectionLogRecord]:
        """Newest first, optionally only logs strictly older than before."""
        logs = self.store.load_logs(guild_id)
        if before is not None:
            logs = [log for log in logs if datetime.fromisoformat(log["timestamp"]) < before]
        if limit <= 0:
            return []
        return list(reversed(logs[-limit:]))

    def revoke_log(self: "TrustService", guild_id: int, event_id: int) -> bool:
        """Mark every log for event_id as revoked."""
        logs = self.store.load_logs(guild_id)
        changed = False
        for log in logs:
            if log.get("event_id") == event_id and log.get("status") != "revoked":
                log["status"] = "revoked"
                changed = True
        if changed:
            self.store.save_logs(guild_id, logs)
        return changed

    # =========================================================================
    # Manual Moderation
    # =========================================================================

    def _bot_can(self: "TrustService", guild: Any, action_type: ActionType) -> bool:
        me = getattr(guild, "me", None)
        if me is None:
            return False
        return bool(getattr(me.guild_permissions, REQUIRED_PERMISSIONS[action_type], False))

    async def execute_manual_action(
        self: "TrustService",
        guild_id: int,
        user_id: int,
        action: PunishmentAction,
    ) -> bool:
        """Run one action chosen by staff, outside the escalation path."""
        guild = self.client.get_guild(guild_id)
        if guild is None:
            logger.warning("Manual Action Guild Missing", [("Guild", str(guild_id))])
            return False

        if not self._bot_can(guild, action.type):
            logger.warning("Manual Action Missing Permission", [
                ("Guild", str(guild_id)),
                ("Action", action.type.value),
                ("Permission", REQUIRED_PERMISSIONS[action.type]),
            ])
            return False

        member = await self._resolve_member(guild, user_id)
        if member is None:
            return False

        settings = self.store.load_settings(guild_id)
        return await self.executor.execute(member, action, self._log_channel(guild, settings))

    async def revoke_timeout(
        self: "TrustService",
        guild_id: int,
        user_id: int,
        reset: bool = False,
        event_id: Optional[int] = None,
    ) -> bool:
        """
        Lift a member's timeout and drop them out of the escalated state.

        The score is kept unless reset is set. When event_id is given the
        detection logs for that event are marked revoked.
        """
        guild = self.client.get_guild(guild_id)
        if guild is None:
            return False

        if not self._bot_can(guild, ActionType.TIMEOUT):
            logger.warning("Revoke Missing Permission", [
                ("Guild", str(guild_id)),
                ("Permission", "moderate_members"),
            ])
            return False

        member = await self._resolve_member(guild, user_id)
        if member is None:
            return False

        if event_id is not None:
            self.revoke_log(guild_id, event_id)

        settings = self.store.load_settings(guild_id)
        if not await self.executor.revoke_timeout(member, self._log_channel(guild, settings)):
            return False

        await self._clear_tier(guild_id, user_id)
        if reset:
            await self.reset_trust(guild_id, user_id)
        return True

    async def get_timeout_status(
        self: "TrustService",
        guild_id: int,
        user_id: int,
    ) -> Optional[datetime]:
        """When the member's active timeout ends, None if not timed out."""
        guild = self.client.get_guild(guild_id)
        if guild is None:
            return None
        member = await self._resolve_member(guild, user_id)
        if member is None or not member.is_timed_out():
            return None
        return member.timed_out_until


__all__ = ["TrustAdminMixin"]

"""
Trust Engine - Record Store
===========================

Reads and writes trust records, detection logs and guild settings
through a KeyValueStore.

DESIGN:
    Storage errors propagate to the caller. The trust service decides
    whether a failed read or write drops the event.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import List, Optional

from pydantic import ValidationError

from vigil.core.database import DetectionLogRecord, KeyValueStore
from vigil.core.logger import logger

from .constants import INDEX_KEY, LOG_LIMIT, LOGS_KEY, RECORD_KEY, SETTINGS_KEY
from .models import GuildTrustSettings, TrustRecord


class TrustStore:
    """Guild-scoped persistence for the trust engine."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    # =========================================================================
    # Guild Settings
    # =========================================================================

    def load_settings(self, guild_id: int) -> GuildTrustSettings:
        """Stored settings, or defaults when none or invalid."""
        raw = self.kv.get(SETTINGS_KEY.format(guild_id=guild_id))
        if not raw:
            return GuildTrustSettings()
        try:
            return GuildTrustSettings.model_validate(raw)
        except ValidationError as e:
            logger.warning("Invalid Trust Settings", [
                ("Guild", str(guild_id)),
                ("Errors", str(e.error_count())),
                ("Fallback", "Defaults"),
            ])
            return GuildTrustSettings()

    def save_settings(self, guild_id: int, settings: GuildTrustSettings) -> None:
        self.kv.set(
            SETTINGS_KEY.format(guild_id=guild_id),
            settings.model_dump(mode="json", by_alias=True),
        )

    # =========================================================================
    # Trust Records
    # =========================================================================

    def load_record(self, guild_id: int, user_id: int) -> Optional[TrustRecord]:
        raw = self.kv.get(RECORD_KEY.format(guild_id=guild_id, user_id=user_id))
        if not raw:
            return None
        return TrustRecord.from_dict(raw)

    def save_record(self, record: TrustRecord) -> None:
        """
        Persist record. The record write goes last, so once it succeeds
        the score change is committed.
        """
        self._index_user(record.guild_id, record.user_id)
        self.kv.set(
            RECORD_KEY.format(guild_id=record.guild_id, user_id=record.user_id),
            record.to_dict(),
        )

    def user_ids(self, guild_id: int) -> List[int]:
        """Every member with a stored trust record in guild."""
        return [int(uid) for uid in self.kv.get(INDEX_KEY.format(guild_id=guild_id)) or []]

    def _index_user(self, guild_id: int, user_id: int) -> None:
        key = INDEX_KEY.format(guild_id=guild_id)
        index = self.kv.get(key) or []
        if user_id not in index:
            index.append(user_id)
            self.kv.set(key, index)

    # =========================================================================
    # Detection Logs
    # =========================================================================

    def load_logs(self, guild_id: int) -> List[DetectionLogRecord]:
        """Logs oldest first."""
        return list(self.kv.get(LOGS_KEY.format(guild_id=guild_id)) or [])

    def save_logs(self, guild_id: int, logs: List[DetectionLogRecord]) -> None:
        self.kv.set(LOGS_KEY.format(guild_id=guild_id), logs[-LOG_LIMIT:])

    def append_logs(self, guild_id: int, entries: List[DetectionLogRecord]) -> None:
        if not entries:
            return
        logs = self.load_logs(guild_id)
        logs.extend(entries)
        self.save_logs(guild_id, logs)


__all__ = ["TrustStore"]

"""
Vigil - Database Module
=======================

Key/value persistence for trust records, detection logs and guild
settings.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from vigil.core.database.base import (
    DATA_DIR,
    DB_PATH,
    KeyValueStore,
    SQLiteKeyValueStore,
)
from vigil.core.database.memory import MemoryKeyValueStore
from vigil.core.database.models import (
    DetectionLogRecord,
    TrustHistoryRecord,
    TrustRecordDocument,
)

__all__ = [
    "DATA_DIR",
    "DB_PATH",
    "KeyValueStore",
    "SQLiteKeyValueStore",
    "MemoryKeyValueStore",
    "DetectionLogRecord",
    "TrustHistoryRecord",
    "TrustRecordDocument",
]

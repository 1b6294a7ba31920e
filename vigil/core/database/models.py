"""
Vigil - Database Type Definitions
=================================

TypedDict definitions for the JSON documents kept in the key/value store.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import Any, Dict, List, Optional, TypedDict


class TrustHistoryRecord(TypedDict):
    """One score change on a member's trust record."""
    delta: int
    reason: str
    timestamp: str
    detectors: List[str]


class TrustRecordDocument(TypedDict, total=False):
    """Stored form of a member's trust record."""
    guild_id: int
    user_id: int
    score: int
    last_updated_at: str
    tier: Optional[int]
    history: List[TrustHistoryRecord]


class DetectionLogRecord(TypedDict, total=False):
    """One detector firing, kept in the per-guild log list."""
    user_id: int
    event_id: int
    detector: str
    score_delta: int
    reason: str
    timestamp: str
    status: str
    metadata: Dict[str, Any]


__all__ = [
    "TrustHistoryRecord",
    "TrustRecordDocument",
    "DetectionLogRecord",
]

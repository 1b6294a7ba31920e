"""
Trust Engine - Text Spam Detector
=================================

Scores a member's recent messages for duplicate content, rapid fire and
all-caps shouting.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import time
from typing import Callable, List

from vigil.utils.cache import TTLCache, window_key

from ..constants import CAPS_MIN_LENGTH, TEXT_SPAM
from ..models import (
    BehaviorRecord,
    DetectionContext,
    DetectionResult,
    TextSpamConfig,
    TrustEvent,
)
from .base import Detector


# =============================================================================
# Content Helpers
# =============================================================================

def is_shouting(content: str, min_length: int = CAPS_MIN_LENGTH) -> bool:
    """Long message written entirely in capitals."""
    return len(content) > min_length and content.isupper()


# =============================================================================
# Detector
# =============================================================================

class TextSpamDetector(Detector):
    """
    Sliding-window text spam heuristics.

    Each heuristic scores independently and the deltas add up:
    - duplicates: identical content repeated DUPLICATE_THRESHOLD+ times
    - rapid fire: RAPID_THRESHOLD+ messages inside RAPID_WINDOW seconds
    - caps: CAPS_THRESHOLD+ long all-caps messages, current one included

    Every threshold and weight can be overridden per guild through the
    detector's config block.
    """

    name = TEXT_SPAM

    def __init__(
        self,
        cache: TTLCache,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cache = cache
        self._clock = clock

    def _settings(self, context: DetectionContext) -> TextSpamConfig:
        return TextSpamConfig.model_validate(context.detector_config)

    def _remember(
        self,
        key: str,
        record: BehaviorRecord,
        max_records: int,
        ttl: float,
    ) -> List[BehaviorRecord]:
        window: List[BehaviorRecord] = list(self.cache.get(key) or [])
        window.append(record)
        if len(window) > max_records:
            window = window[-max_records:]
        self.cache.set(key, window, ttl=ttl)
        return window

    async def detect(self, event: TrustEvent, context: DetectionContext) -> DetectionResult:
        if not event.content:
            return DetectionResult()

        cfg = self._settings(context)
        now = self._clock()
        key = window_key("messages", context.guild_id, context.user_id)
        window = self._remember(
            key,
            BehaviorRecord(content=event.content, timestamp=now, event_id=event.event_id),
            cfg.max_records,
            cfg.window_ttl,
        )

        score_delta = 0
        reasons: List[str] = []

        duplicate_count = sum(1 for r in window if r.content == event.content)
        if duplicate_count >= cfg.duplicate_threshold:
            score_delta += duplicate_count * cfg.duplicate_weight
            reasons.append(f"Duplicate message sent {duplicate_count} times")

        recent_count = sum(1 for r in window if now - r.timestamp < cfg.rapid_window)
        if recent_count >= cfg.rapid_threshold:
            score_delta += recent_count * cfg.rapid_weight
            reasons.append(
                f"Rapid message sending: {recent_count} messages in {cfg.rapid_window}s"
            )

        if is_shouting(event.content, cfg.caps_min_length):
            caps_count = sum(1 for r in window if is_shouting(r.content, cfg.caps_min_length))
            if caps_count >= cfg.caps_threshold:
                score_delta += cfg.caps_delta
                reasons.append("Excessive use of all caps")

        return DetectionResult(
            score_delta=score_delta,
            reasons=tuple(reasons),
            metadata={
                "duplicate_count": duplicate_count,
                "recent_count": recent_count,
                "total_messages": len(window),
            },
        )


__all__ = [
    "TextSpamDetector",
    "is_shouting",
]

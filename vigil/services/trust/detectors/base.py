"""
Trust Engine - Detector Base
============================

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from abc import ABC, abstractmethod

from ..models import DetectionContext, DetectionResult, TrustEvent


class Detector(ABC):
    """
    A heuristic that scores one inbound event.

    Detectors may keep state in their own behavior window cache entries.
    They never touch trust records and never punish: scoring and
    escalation belong to the trust service.
    """

    name: str = ""

    @abstractmethod
    async def detect(self, event: TrustEvent, context: DetectionContext) -> DetectionResult:
        """Score event. A zero delta means nothing suspicious."""


__all__ = ["Detector"]

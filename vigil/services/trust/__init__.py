"""
Vigil - Trust Engine
====================

Behavior detectors, trust score aggregation and punishment escalation.

Structure:
    - constants.py: Thresholds, weights, limits and storage keys
    - models.py: Guild settings, events, detector results, trust records
    - detectors/: Detector base class and the text spam detector
    - store.py: Persistence of records, logs and settings
    - escalation.py: Threshold selection and per-member locking
    - punishment.py: Timeout, kick and ban execution
    - embeds.py: Notification embeds
    - admin.py: Staff operations mixin
    - scheduler.py: Behavior window sweeper
    - service.py: TrustService

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from .detectors import Detector, TextSpamDetector
from .models import (
    ActionType,
    DetectionContext,
    DetectionResult,
    EscalationOutcome,
    GuildTrustSettings,
    PunishmentAction,
    PunishmentRule,
    TrustEvent,
    TrustRecord,
)
from .punishment import PunishmentExecutor
from .scheduler import WindowSweeper
from .service import TrustService
from .store import TrustStore

__all__ = [
    "ActionType",
    "DetectionContext",
    "DetectionResult",
    "Detector",
    "EscalationOutcome",
    "GuildTrustSettings",
    "PunishmentAction",
    "PunishmentExecutor",
    "PunishmentRule",
    "TextSpamDetector",
    "TrustEvent",
    "TrustRecord",
    "TrustService",
    "TrustStore",
    "WindowSweeper",
]

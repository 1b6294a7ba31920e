"""
Trust Engine Data Models
========================

Pydantic models for guild configuration (validated on the way in from the
dashboard) and dataclasses for runtime events, detector results and
member trust records.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel, to_snake

from vigil.core.config import NY_TZ
from vigil.core.database.models import TrustHistoryRecord, TrustRecordDocument

from .constants import (
    CAPS_DELTA,
    CAPS_MIN_LENGTH,
    CAPS_THRESHOLD,
    DUPLICATE_THRESHOLD,
    DUPLICATE_WEIGHT,
    HISTORY_LIMIT,
    RAPID_THRESHOLD,
    RAPID_WEIGHT,
    RAPID_WINDOW,
    TEXT_SPAM,
    WINDOW_MAX_RECORDS,
    WINDOW_TTL,
)


# =============================================================================
# Guild Configuration
# =============================================================================

class ActionType(str, Enum):
    """Moderation action a punishment rule can apply."""

    TIMEOUT = "timeout"
    KICK = "kick"
    BAN = "ban"


class _CamelModel(BaseModel):
    """Accepts both camelCase (dashboard) and snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class PunishmentAction(_CamelModel):
    """One step of a punishment rule."""

    type: ActionType
    duration_seconds: Optional[int] = Field(default=None, ge=1)
    reason_template: str = ""
    notify: bool = False


class PunishmentRule(_CamelModel):
    """Actions applied when a member's score crosses threshold."""

    threshold: int = Field(ge=0)
    actions: List[PunishmentAction] = Field(min_length=1)


class DetectorSettings(_CamelModel):
    """Per-guild switch and overrides for one detector."""

    enabled: bool = True
    config: Dict[str, Any] = Field(default_factory=dict)


class TextSpamConfig(_CamelModel):
    """Per-guild overrides for the text spam detector. Unknown keys are dropped."""

    max_records: int = Field(default=WINDOW_MAX_RECORDS, ge=1)
    window_ttl: int = Field(default=WINDOW_TTL, ge=1)
    duplicate_threshold: int = Field(default=DUPLICATE_THRESHOLD, ge=1)
    duplicate_weight: int = Field(default=DUPLICATE_WEIGHT, ge=1)
    rapid_threshold: int = Field(default=RAPID_THRESHOLD, ge=1)
    rapid_window: int = Field(default=RAPID_WINDOW, ge=1)
    rapid_weight: int = Field(default=RAPID_WEIGHT, ge=1)
    caps_min_length: int = Field(default=CAPS_MIN_LENGTH, ge=1)
    caps_threshold: int = Field(default=CAPS_THRESHOLD, ge=1)
    caps_delta: int = Field(default=CAPS_DELTA, ge=1)


DETECTOR_CONFIGS: Dict[str, type] = {
    TEXT_SPAM: TextSpamConfig,
}
"""Config model per detector name; detectors not listed take free-form config."""


def _default_detectors() -> Dict[str, DetectorSettings]:
    return {TEXT_SPAM: DetectorSettings()}


class GuildTrustSettings(_CamelModel):
    """Trust engine configuration for one guild."""

    enabled: bool = False
    detectors: Dict[str, DetectorSettings] = Field(default_factory=_default_detectors)
    punishments: List[PunishmentRule] = Field(default_factory=list)
    excluded_roles: List[int] = Field(default_factory=list)
    excluded_channels: List[int] = Field(default_factory=list)
    log_channel_id: Optional[int] = None

    @field_validator("detectors", mode="before")
    @classmethod
    def _normalize_detector_names(cls, value: Any) -> Any:
        # Dashboard sends "textSpam"; detectors register as "text_spam"
        if isinstance(value, dict):
            return {to_snake(str(name)): conf for name, conf in value.items()}
        return value

    @field_validator("detectors")
    @classmethod
    def _validate_detector_configs(
        cls,
        value: Dict[str, DetectorSettings],
    ) -> Dict[str, DetectorSettings]:
        # Stored as snake_case overrides only, so defaults can change later
        for name, settings in value.items():
            config_model = DETECTOR_CONFIGS.get(name)
            if config_model is not None:
                settings.config = config_model.model_validate(settings.config).model_dump(
                    exclude_unset=True,
                )
        return value

    def sorted_rules(self) -> List[PunishmentRule]:
        """Rules ascending by threshold. Equal thresholds keep input order."""
        return sorted(self.punishments, key=lambda rule: rule.threshold)

    def detector_enabled(self, name: str) -> bool:
        settings = self.detectors.get(name)
        return settings.enabled if settings else False

    def detector_config(self, name: str) -> Dict[str, Any]:
        settings = self.detectors.get(name)
        return dict(settings.config) if settings else {}


# =============================================================================
# Events & Detection
# =============================================================================

@dataclass
class TrustEvent:
    """One inbound member action that detectors score."""

    guild_id: int
    user_id: int
    channel_id: int
    event_id: int
    content: str = ""
    kind: str = "message"
    role_ids: Tuple[int, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(NY_TZ))

    @classmethod
    def from_message(cls, message: Any) -> "TrustEvent":
        """Build an event from a discord.Message sent in a guild."""
        roles = getattr(message.author, "roles", None) or []
        return cls(
            guild_id=message.guild.id,
            user_id=message.author.id,
            channel_id=message.channel.id,
            event_id=message.id,
            content=message.content or "",
            role_ids=tuple(role.id for role in roles),
            created_at=message.created_at or datetime.now(NY_TZ),
        )


@dataclass
class DetectionContext:
    """Per-event inputs handed to every detector."""

    guild_id: int
    user_id: int
    channel_id: int
    trust_score: int
    detector_config: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DetectionResult:
    """Immutable outcome of one detector invocation."""

    score_delta: int = 0
    reasons: Tuple[str, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "reasons", tuple(self.reasons))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def triggered(self) -> bool:
        return self.score_delta > 0


@dataclass
class BehaviorRecord:
    """One entry in a member's behavior window."""

    content: str
    timestamp: float
    event_id: int


# =============================================================================
# Trust Records
# =============================================================================

class MemberState(str, Enum):
    CLEAR = "clear"
    SCORED = "scored"
    ESCALATED = "escalated"


@dataclass
class TrustRecord:
    """
    Accumulated score for one member of one guild.

    tier holds the threshold of the last rule applied, None when the
    member isn't escalated.
    """

    guild_id: int
    user_id: int
    score: int = 0
    last_updated_at: datetime = field(default_factory=lambda: datetime.now(NY_TZ))
    tier: Optional[int] = None
    history: List[TrustHistoryRecord] = field(default_factory=list)

    @property
    def state(self) -> MemberState:
        if self.tier is not None:
            return MemberState.ESCALATED
        if self.score > 0:
            return MemberState.SCORED
        return MemberState.CLEAR

    def add_history(self, delta: int, reason: str, detectors: List[str]) -> None:
        self.history.append({
            "delta": delta,
            "reason": reason,
            "timestamp": self.last_updated_at.isoformat(),
            "detectors": list(detectors),
        })
        if len(self.history) > HISTORY_LIMIT:
            del self.history[:-HISTORY_LIMIT]

    def to_dict(self) -> TrustRecordDocument:
        return {
            "guild_id": self.guild_id,
            "user_id": self.user_id,
            "score": self.score,
            "last_updated_at": self.last_updated_at.isoformat(),
            "tier": self.tier,
            "history": list(self.history),
        }

    @classmethod
    def from_dict(cls, data: TrustRecordDocument) -> "TrustRecord":
        return cls(
            guild_id=int(data["guild_id"]),
            user_id=int(data["user_id"]),
            score=int(data.get("score", 0)),
            last_updated_at=datetime.fromisoformat(data["last_updated_at"]),
            tier=data.get("tier"),
            history=list(data.get("history", [])),
        )


# =============================================================================
# Escalation Outcomes
# =============================================================================

@dataclass
class ActionResult:
    action: PunishmentAction
    success: bool


@dataclass
class EscalationOutcome:
    """What handling a single event did to a member."""

    guild_id: int
    user_id: int
    previous_score: int
    score: int
    reasons: List[str] = field(default_factory=list)
    rule: Optional[PunishmentRule] = None
    results: List[ActionResult] = field(default_factory=list)

    @property
    def delta(self) -> int:
        return self.score - self.previous_score

    @property
    def escalated(self) -> bool:
        return self.rule is not None


@dataclass
class NextPunishment:
    """Display info for the next punishment a member is heading toward."""

    threshold: int
    remaining: int
    reached: bool
    rule: PunishmentRule


__all__ = [
    "ActionType",
    "PunishmentAction",
    "PunishmentRule",
    "DetectorSettings",
    "GuildTrustSettings",
    "TrustEvent",
    "DetectionContext",
    "DetectionResult",
    "BehaviorRecord",
    "MemberState",
    "TrustRecord",
    "ActionResult",
    "EscalationOutcome",
    "NextPunishment",
]

"""
Trust Engine - Service
======================

Turns inbound events into trust score changes and escalates members to
punishments as configured thresholds are crossed.

DESIGN:
    Flow per event:
    1. Guild settings gate (enabled, excluded channel, excluded role)
    2. Under the member's lock: run detectors, add up deltas, persist
    3. Pick the highest threshold crossed by this single change
    4. After the lock is released: run that rule's actions in order

    Detectors add up, so their order never changes the total. Punishment
    I/O runs outside the lock so a slow Discord call doesn't hold up the
    member's next message.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple, TYPE_CHECKING

import discord

from vigil.core.config import NY_TZ
from vigil.core.database import DetectionLogRecord
from vigil.core.logger import logger
from vigil.utils.async_utils import safe_async_operation
from vigil.utils.error_handler import ErrorHandler

from .admin import TrustAdminMixin
from .detectors import Detector
from .embeds import failure_embed
from .escalation import KeyedLock, select_crossed_rule
from .models import (
    ActionResult,
    DetectionContext,
    DetectionResult,
    EscalationOutcome,
    GuildTrustSettings,
    PunishmentRule,
    TrustEvent,
    TrustRecord,
)
from .punishment import PunishmentExecutor
from .store import TrustStore

if TYPE_CHECKING:
    from discord import Client


DetectorRun = Tuple[str, DetectionResult]


class TrustService(TrustAdminMixin):
    """
    Trust score aggregation and punishment escalation.

    Attributes:
        client: Discord client used to resolve guilds, members and channels.
        store: Persistence for records, logs and settings.
        detectors: Registered detectors, keyed in settings by name.
        executor: Applies and reverses punishments.
    """

    def __init__(
        self,
        client: "Client",
        store: TrustStore,
        detectors: Sequence[Detector],
        executor: PunishmentExecutor,
    ) -> None:
        self.client = client
        self.store = store
        self.detectors: List[Detector] = list(detectors)
        self.executor = executor
        self._locks = KeyedLock()

    # =========================================================================
    # Event Intake
    # =========================================================================

    def _should_process(self, event: TrustEvent, settings: GuildTrustSettings) -> bool:
        if not settings.enabled:
            return False
        if event.channel_id in settings.excluded_channels:
            return False
        if settings.excluded_roles and set(event.role_ids) & set(settings.excluded_roles):
            return False
        return True

    async def handle_event(self, event: TrustEvent) -> Optional[EscalationOutcome]:
        """
        Score one event and escalate if a threshold was crossed.

        Returns:
            The outcome when the score changed, None otherwise.
        """
        try:
            settings = self.store.load_settings(event.guild_id)
        except Exception as e:
            ErrorHandler.handle(e, "TrustService.handle_event", guild_id=event.guild_id)
            return None

        if not self._should_process(event, settings):
            return None

        rules = settings.sorted_rules()

        try:
            async with self._locks.hold((event.guild_id, event.user_id)):
                outcome = await self._score_event(event, settings, rules)
        except Exception as e:
            ErrorHandler.handle(
                e,
                "TrustService.handle_event",
                guild_id=event.guild_id,
                user_id=event.user_id,
                event_id=event.event_id,
            )
            return None

        if outcome is None:
            return None

        if outcome.rule is not None:
            outcome.results = await self._apply_rule(
                event.guild_id, event.user_id, settings, outcome.rule, outcome.score
            )

        return outcome

    # =========================================================================
    # Scoring
    # =========================================================================

    async def _run_detectors(
        self,
        event: TrustEvent,
        settings: GuildTrustSettings,
        score: int,
    ) -> List[DetectorRun]:
        runs: List[DetectorRun] = []
        for detector in self.detectors:
            if not settings.detector_enabled(detector.name):
                continue

            context = DetectionContext(
                guild_id=event.guild_id,
                user_id=event.user_id,
                channel_id=event.channel_id,
                trust_score=score,
                detector_config=settings.detector_config(detector.name),
            )
            try:
                result = await detector.detect(event, context)
            except Exception as e:
                logger.error("Detector Failed", [
                    ("Detector", detector.name),
                    ("User", str(event.user_id)),
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])
                continue

            if not self._valid_result(result):
                logger.warning("Detector Returned Invalid Result", [
                    ("Detector", detector.name),
                    ("Result", repr(result)[:80]),
                ])
                continue

            runs.append((detector.name, result))
        return runs

    @staticmethod
    def _valid_result(result: Any) -> bool:
        if not isinstance(result, DetectionResult):
            return False
        delta = result.score_delta
        return isinstance(delta, int) and not isinstance(delta, bool) and delta >= 0

    async def _score_event(
        self,
        event: TrustEvent,
        settings: GuildTrustSettings,
        rules: List[PunishmentRule],
    ) -> Optional[EscalationOutcome]:
        record = self.store.load_record(event.guild_id, event.user_id)
        if record is None:
            record = TrustRecord(guild_id=event.guild_id, user_id=event.user_id)

        runs = await self._run_detectors(event, settings, record.score)
        delta = sum(result.score_delta for _, result in runs)
        if delta == 0:
            return None

        fired = [(name, result) for name, result in runs if result.triggered]
        reasons = [reason for _, result in fired for reason in result.reasons]

        previous = record.score
        record.score += delta
        record.last_updated_at = datetime.now(NY_TZ)
        record.add_history(delta, "; ".join(reasons), [name for name, _ in fired])

        rule = select_crossed_rule(rules, previous, record.score)
        if rule is not None:
            record.tier = rule.threshold

        self.store.save_record(record)
        self._record_detections(event, fired, record.last_updated_at)

        logger.tree("Trust Score Updated", [
            ("Guild", str(event.guild_id)),
            ("User", str(event.user_id)),
            ("Score", f"{previous} -> {record.score}"),
            ("Reasons", "; ".join(reasons)[:100] or "-"),
            ("Threshold", str(rule.threshold) if rule else "-"),
        ], emoji="🛡️")

        return EscalationOutcome(
            guild_id=event.guild_id,
            user_id=event.user_id,
            previous_score=previous,
            score=record.score,
            reasons=reasons,
            rule=rule,
        )

    def _record_detections(
        self,
        event: TrustEvent,
        fired: List[DetectorRun],
        at: datetime,
    ) -> None:
        entries: List[DetectionLogRecord] = [
            {
                "user_id": event.user_id,
                "event_id": event.event_id,
                "detector": name,
                "score_delta": result.score_delta,
                "reason": "; ".join(result.reasons),
                "timestamp": at.isoformat(),
                "status": "active",
                "metadata": dict(result.metadata),
            }
            for name, result in fired
        ]
        try:
            self.store.append_logs(event.guild_id, entries)
        except Exception as e:
            logger.warning("Detection Log Write Failed", [
                ("Guild", str(event.guild_id)),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])

    # =========================================================================
    # Punishment
    # =========================================================================

    async def _resolve_member(self, guild: discord.Guild, user_id: int) -> Optional[discord.Member]:
        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id)
        except discord.NotFound:
            return None
        except discord.HTTPException as e:
            logger.warning("Member Fetch Failed", [
                ("Guild", str(guild.id)),
                ("User", str(user_id)),
                ("Error", str(e)[:50]),
            ])
            return None

    def _log_channel(
        self,
        guild: Optional[discord.Guild],
        settings: GuildTrustSettings,
    ) -> Optional[discord.abc.Messageable]:
        if guild is None or not settings.log_channel_id:
            return None
        return guild.get_channel(settings.log_channel_id)

    async def _apply_rule(
        self,
        guild_id: int,
        user_id: int,
        settings: GuildTrustSettings,
        rule: PunishmentRule,
        score: int,
    ) -> List[ActionResult]:
        guild = self.client.get_guild(guild_id)
        member = await self._resolve_member(guild, user_id) if guild else None
        log_channel = self._log_channel(guild, settings)

        results: List[ActionResult] = []
        if member is None:
            logger.warning("Punishment Target Unavailable", [
                ("Guild", str(guild_id)),
                ("User", str(user_id)),
                ("Threshold", str(rule.threshold)),
            ])
            results = [ActionResult(action=action, success=False) for action in rule.actions]
        else:
            for action in rule.actions:
                success = await self.executor.execute(member, action, log_channel)
                results.append(ActionResult(action=action, success=success))

        failed = [result.action for result in results if not result.success]
        if failed and log_channel is not None:
            await safe_async_operation(
                "Punishment Failure Notice",
                log_channel.send(embed=failure_embed(user_id, score, failed, rule.threshold)),
            )

        return results


__all__ = ["TrustService"]

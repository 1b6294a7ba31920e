"""
Vigil - Trust Service Tests
===========================

Integration tests for scoring, escalation and staff operations using an
in-memory store and mocked Discord objects.
"""

import asyncio
import sqlite3
from datetime import datetime, timedelta

import discord
import pytest
from unittest.mock import AsyncMock, MagicMock
from pydantic import ValidationError

from vigil.core.database import MemoryKeyValueStore
from vigil.services.trust import (
    DetectionResult,
    GuildTrustSettings,
    PunishmentAction,
    TrustRecord,
    TrustService,
    TrustStore,
)

from conftest import GUILD_ID, StubDetector, enabled_settings, make_event, make_member


def _rules(*specs):
    return [
        {"threshold": threshold, "actions": actions}
        for threshold, actions in specs
    ]


TIMEOUT_10 = [{"type": "timeout", "durationSeconds": 60}]
TIMEOUT_20 = [{"type": "timeout", "durationSeconds": 600}]
KICK_30 = [{"type": "kick"}]


class TestGating:
    """Tests for settings checks before scoring."""

    @pytest.mark.asyncio
    async def test_disabled_guild_ignored(self, service, store, stub_detector):
        assert await service.handle_event(make_event()) is None
        assert stub_detector.calls == 0
        assert store.load_record(GUILD_ID, 42) is None

    @pytest.mark.asyncio
    async def test_excluded_channel_ignored(self, service, store, stub_detector):
        store.save_settings(GUILD_ID, enabled_settings(excludedChannels=[777]))
        assert await service.handle_event(make_event(channel_id=777)) is None
        assert stub_detector.calls == 0

    @pytest.mark.asyncio
    async def test_excluded_role_ignored(self, service, store, stub_detector):
        store.save_settings(GUILD_ID, enabled_settings(excludedRoles=[5]))
        assert await service.handle_event(make_event(role_ids=(4, 5))) is None
        assert stub_detector.calls == 0

    @pytest.mark.asyncio
    async def test_disabled_detector_skipped(self, service, store, stub_detector):
        settings = GuildTrustSettings.model_validate({
            "enabled": True,
            "detectors": {"stub": {"enabled": False}},
        })
        store.save_settings(GUILD_ID, settings)
        assert await service.handle_event(make_event()) is None
        assert stub_detector.calls == 0


class TestScoring:
    """Tests for delta aggregation and persistence."""

    @pytest.mark.asyncio
    async def test_score_is_sum_of_deltas(self, mock_client, store, executor):
        detectors = [StubDetector("a", 2), StubDetector("b", 3)]
        store.save_settings(GUILD_ID, enabled_settings(["a", "b"]))
        service = TrustService(mock_client, store, detectors, executor)

        for i in range(4):
            await service.handle_event(make_event(event_id=i))

        record = store.load_record(GUILD_ID, 42)
        assert record.score == 20
        assert len(record.history) == 4
        assert record.history[0]["detectors"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_zero_delta_not_written(self, service, store, stub_detector):
        stub_detector.delta = 0
        store.save_settings(GUILD_ID, enabled_settings())
        assert await service.handle_event(make_event()) is None
        assert store.load_record(GUILD_ID, 42) is None

    @pytest.mark.asyncio
    async def test_outcome_reports_change(self, service, store):
        store.save_settings(GUILD_ID, enabled_settings())
        outcome = await service.handle_event(make_event())
        assert outcome.previous_score == 0
        assert outcome.score == 1
        assert outcome.delta == 1
        assert outcome.reasons == ["stub hit"]
        assert outcome.escalated is False

    @pytest.mark.asyncio
    async def test_failing_detector_counts_zero(self, mock_client, store, executor):
        class Broken(StubDetector):
            async def detect(self, event, context):
                raise RuntimeError("boom")

        detectors = [Broken("broken"), StubDetector("ok", 4)]
        store.save_settings(GUILD_ID, enabled_settings(["broken", "ok"]))
        service = TrustService(mock_client, store, detectors, executor)

        outcome = await service.handle_event(make_event())
        assert outcome.score == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", [
        {"score_delta": 3},
        DetectionResult(score_delta=-5),
        DetectionResult(score_delta=True),
        DetectionResult(score_delta=2.5),
    ])
    async def test_invalid_results_ignored(self, mock_client, store, executor, bad):
        class Weird(StubDetector):
            async def detect(self, event, context):
                return bad

        detectors = [Weird("weird"), StubDetector("ok", 1)]
        store.save_settings(GUILD_ID, enabled_settings(["weird", "ok"]))
        service = TrustService(mock_client, store, detectors, executor)

        outcome = await service.handle_event(make_event())
        assert outcome.score == 1

    @pytest.mark.asyncio
    async def test_detection_logs_written(self, service, store):
        store.save_settings(GUILD_ID, enabled_settings())
        await service.handle_event(make_event(event_id=7))
        logs = service.get_logs(GUILD_ID)
        assert len(logs) == 1
        assert logs[0]["event_id"] == 7
        assert logs[0]["detector"] == "stub"
        assert logs[0]["status"] == "active"

    @pytest.mark.asyncio
    async def test_persistence_failure_drops_event(self, mock_client, stub_detector, executor):
        class FailingWrites(MemoryKeyValueStore):
            fail = False

            def set(self, key, value):
                if self.fail:
                    raise sqlite3.OperationalError("database is locked")
                super().set(key, value)

        kv = FailingWrites()
        store = TrustStore(kv)
        store.save_settings(GUILD_ID, enabled_settings())
        store.save_record(TrustRecord(guild_id=GUILD_ID, user_id=42, score=3))
        kv.fail = True

        service = TrustService(mock_client, store, [stub_detector], executor)
        assert await service.handle_event(make_event()) is None
        assert store.load_record(GUILD_ID, 42).score == 3

    @pytest.mark.asyncio
    async def test_index_failure_keeps_crossing_available(self, mock_client, stub_detector, mock_member):
        class FailingIndex(MemoryKeyValueStore):
            fail = True

            def set(self, key, value):
                if self.fail and key == f"Guild/{GUILD_ID}/trust/index":
                    raise sqlite3.OperationalError("database is locked")
                super().set(key, value)

        kv = FailingIndex()
        store = TrustStore(kv)
        store.save_settings(GUILD_ID, enabled_settings(punishments=_rules((5, KICK_30))))
        executor = MagicMock()
        executor.execute = AsyncMock(return_value=True)
        stub_detector.delta = 5
        service = TrustService(mock_client, store, [stub_detector], executor)

        assert await service.handle_event(make_event()) is None
        assert store.load_record(GUILD_ID, 42) is None
        executor.execute.assert_not_awaited()

        kv.fail = False
        outcome = await service.handle_event(make_event(event_id=2))
        assert outcome.score == 5
        assert store.load_record(GUILD_ID, 42).tier == 5
        executor.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lock_released_before_punishment(self, mock_client, store, stub_detector, mock_member):
        store.save_settings(GUILD_ID, enabled_settings(punishments=_rules((5, KICK_30))))
        stub_detector.delta = 5
        kick_started = asyncio.Event()
        release_kick = asyncio.Event()
        service = None

        async def slow_execute(member, action, channel=None):
            assert len(service._locks) == 0
            kick_started.set()
            await release_kick.wait()
            return True

        executor = MagicMock()
        executor.execute = AsyncMock(side_effect=slow_execute)
        service = TrustService(mock_client, store, [stub_detector], executor)

        first = asyncio.create_task(service.handle_event(make_event(event_id=1)))
        await asyncio.wait_for(kick_started.wait(), timeout=1)

        second = await asyncio.wait_for(service.handle_event(make_event(event_id=2)), timeout=1)
        assert second.score == 10

        release_kick.set()
        outcome = await first
        assert outcome.results[0].success is True

    @pytest.mark.asyncio
    async def test_concurrent_events_match_serial_total(self, mock_client, store, executor):
        detector = StubDetector("stub", 3)

        class Yielding(StubDetector):
            async def detect(self, event, context):
                await asyncio.sleep(0)
                return await detector.detect(event, context)

        store.save_settings(GUILD_ID, enabled_settings())
        service = TrustService(mock_client, store, [Yielding("stub")], executor)

        events = [make_event(user_id=uid, event_id=n) for n in range(20) for uid in range(50)]
        await asyncio.gather(*(service.handle_event(e) for e in events))

        for uid in range(50):
            assert store.load_record(GUILD_ID, uid).score == 60
        assert len(service._locks) == 0


class TestEscalation:
    """Tests for threshold crossing and punishment."""

    @pytest.mark.asyncio
    async def test_highest_crossed_rule_fires_once(self, service, store, stub_detector, mock_member):
        store.save_settings(GUILD_ID, enabled_settings(
            punishments=_rules((10, TIMEOUT_10), (20, TIMEOUT_20), (30, KICK_30)),
        ))
        store.save_record(TrustRecord(guild_id=GUILD_ID, user_id=42, score=5))
        stub_detector.delta = 20

        outcome = await service.handle_event(make_event())

        assert outcome.rule.threshold == 20
        assert [r.success for r in outcome.results] == [True]
        mock_member.timeout.assert_awaited_once()
        assert mock_member.timeout.await_args.args[0] == timedelta(seconds=600)
        mock_member.kick.assert_not_awaited()
        assert store.load_record(GUILD_ID, 42).tier == 20

    @pytest.mark.asyncio
    async def test_past_all_thresholds_no_action(self, service, store, stub_detector, mock_member):
        store.save_settings(GUILD_ID, enabled_settings(
            punishments=_rules((10, TIMEOUT_10), (20, TIMEOUT_20), (30, KICK_30)),
        ))
        store.save_record(TrustRecord(guild_id=GUILD_ID, user_id=42, score=35))
        stub_detector.delta = 5

        outcome = await service.handle_event(make_event())

        assert outcome.score == 40
        assert outcome.rule is None
        mock_member.timeout.assert_not_awaited()
        mock_member.kick.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rule_fires_only_on_crossing(self, service, store, stub_detector, mock_member):
        store.save_settings(GUILD_ID, enabled_settings(punishments=_rules((3, KICK_30))))
        for i in range(6):
            await service.handle_event(make_event(event_id=i))
        mock_member.kick.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_action_does_not_stop_later_ones(
        self, service, store, stub_detector, mock_member, mock_channel,
    ):
        mock_member.timeout.side_effect = discord.Forbidden(
            MagicMock(status=403, reason="Forbidden"), "Missing Permissions"
        )
        store.save_settings(GUILD_ID, enabled_settings(
            punishments=_rules((1, TIMEOUT_10 + KICK_30)),
        ))

        outcome = await service.handle_event(make_event())

        assert [r.success for r in outcome.results] == [False, True]
        mock_member.kick.assert_awaited_once()
        embed = mock_channel.send.await_args.kwargs["embed"]
        assert embed.title == "⚠️ Punishment Failed"

    @pytest.mark.asyncio
    async def test_missing_member_reports_failure(self, service, store, mock_channel):
        store.save_settings(GUILD_ID, enabled_settings(punishments=_rules((1, KICK_30))))

        outcome = await service.handle_event(make_event(user_id=999))

        assert [r.success for r in outcome.results] == [False]
        assert store.load_record(GUILD_ID, 999).score == 1
        mock_channel.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unsorted_rules_are_sorted(self, service, store, stub_detector, mock_member):
        store.save_settings(GUILD_ID, enabled_settings(
            punishments=_rules((30, KICK_30), (10, TIMEOUT_10)),
        ))
        stub_detector.delta = 15
        outcome = await service.handle_event(make_event())
        assert outcome.rule.threshold == 10


class TestStaffOperations:
    """Tests for the admin mixin."""

    @pytest.mark.asyncio
    async def test_revoke_keeps_score_and_clears_tier(self, service, store, mock_member):
        store.save_settings(GUILD_ID, enabled_settings())
        store.save_record(TrustRecord(guild_id=GUILD_ID, user_id=42, score=25, tier=20))

        assert await service.revoke_timeout(GUILD_ID, 42) is True

        record = store.load_record(GUILD_ID, 42)
        assert record.score == 25
        assert record.tier is None
        mock_member.timeout.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_revoke_without_active_timeout(self, service, store):
        assert await service.revoke_timeout(GUILD_ID, 42) is True
        assert store.load_record(GUILD_ID, 42) is None

    @pytest.mark.asyncio
    async def test_revoke_with_reset_and_log(self, service, store):
        store.save_settings(GUILD_ID, enabled_settings())
        await service.handle_event(make_event(event_id=55))

        assert await service.revoke_timeout(GUILD_ID, 42, reset=True, event_id=55) is True

        assert store.load_record(GUILD_ID, 42).score == 0
        assert service.get_logs(GUILD_ID)[0]["status"] == "revoked"

    @pytest.mark.asyncio
    async def test_revoke_needs_permission(self, service, mock_guild, mock_member):
        mock_guild.me.guild_permissions.moderate_members = False
        assert await service.revoke_timeout(GUILD_ID, 42) is False
        mock_member.timeout.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset_trust(self, service, store):
        store.save_record(TrustRecord(guild_id=GUILD_ID, user_id=42, score=12, tier=10))
        assert await service.reset_trust(GUILD_ID, 42) is True
        record = store.load_record(GUILD_ID, 42)
        assert (record.score, record.tier, record.history) == (0, None, [])

    @pytest.mark.asyncio
    async def test_reset_unknown_member(self, service):
        assert await service.reset_trust(GUILD_ID, 404) is False

    def test_get_trust_defaults_to_zero(self, service, store):
        record = service.get_trust(GUILD_ID, 42)
        assert record.score == 0
        assert store.load_record(GUILD_ID, 42) is None

    def test_get_all_trust_sorted(self, service, store):
        for uid, score in [(1, 5), (2, 50), (3, 20)]:
            store.save_record(TrustRecord(guild_id=GUILD_ID, user_id=uid, score=score))
        assert [r.user_id for r in service.get_all_trust(GUILD_ID)] == [2, 3, 1]

    def test_get_logs_newest_first_with_before(self, service, store):
        base = datetime(2024, 1, 1, 12, 0)
        store.append_logs(GUILD_ID, [
            {"event_id": i, "timestamp": (base + timedelta(minutes=i)).isoformat(), "status": "active"}
            for i in range(5)
        ])
        assert [log["event_id"] for log in service.get_logs(GUILD_ID, limit=2)] == [4, 3]
        older = service.get_logs(GUILD_ID, before=base + timedelta(minutes=2))
        assert [log["event_id"] for log in older] == [1, 0]

    def test_revoke_unknown_log(self, service):
        assert service.revoke_log(GUILD_ID, 12345) is False

    def test_update_settings_merges(self, service):
        service.update_settings(GUILD_ID, {"enabled": True, "logChannelId": 9})
        settings = service.update_settings(GUILD_ID, {
            "punishments": [{"threshold": 5, "actions": [{"type": "kick"}]}],
        })
        assert settings.enabled is True
        assert settings.log_channel_id == 9
        assert settings.punishments[0].threshold == 5
        assert service.get_settings(GUILD_ID) == settings

    def test_update_settings_rejects_bad_detector_config(self, service):
        with pytest.raises(ValidationError):
            service.update_settings(GUILD_ID, {
                "detectors": {"textSpam": {"config": {"maxRecords": 0}}},
            })
        assert service.get_settings(GUILD_ID) == GuildTrustSettings()

    def test_update_settings_rejects_bad_action(self, service):
        with pytest.raises(ValidationError):
            service.update_settings(GUILD_ID, {
                "punishments": [{"threshold": 5, "actions": [{"type": "mute"}]}],
            })

    def test_describe_next_punishment(self, service, store):
        store.save_settings(GUILD_ID, enabled_settings(
            punishments=_rules((10, TIMEOUT_10), (20, TIMEOUT_20)),
        ))
        store.save_record(TrustRecord(guild_id=GUILD_ID, user_id=42, score=12))
        info = service.describe_next_punishment(GUILD_ID, 42)
        assert (info.threshold, info.remaining) == (20, 8)
        assert store.load_record(GUILD_ID, 42).score == 12

    @pytest.mark.asyncio
    async def test_manual_action(self, service, mock_member):
        action = PunishmentAction(type="kick", reason_template="Manual")
        assert await service.execute_manual_action(GUILD_ID, 42, action) is True
        mock_member.kick.assert_awaited_once_with(reason="Manual")

    @pytest.mark.asyncio
    async def test_manual_action_missing_permission(self, service, mock_guild, mock_member):
        mock_guild.me.guild_permissions.ban_members = False
        action = PunishmentAction(type="ban")
        assert await service.execute_manual_action(GUILD_ID, 42, action) is False
        mock_member.ban.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_manual_action_unknown_guild(self, service):
        assert await service.execute_manual_action(1, 42, PunishmentAction(type="kick")) is False

    @pytest.mark.asyncio
    async def test_timeout_status(self, service, mock_member):
        assert await service.get_timeout_status(GUILD_ID, 42) is None
        until = datetime(2030, 1, 1)
        mock_member.is_timed_out.return_value = True
        mock_member.timed_out_until = until
        assert await service.get_timeout_status(GUILD_ID, 42) == until

    @pytest.mark.asyncio
    async def test_timeout_status_fetches_uncached_member(self, service, mock_guild):
        other = make_member(77, "other")
        mock_guild.members_by_id[77] = other
        mock_guild.get_member.side_effect = lambda uid: None
        assert await service.get_timeout_status(GUILD_ID, 77) is None
        mock_guild.fetch_member.assert_awaited_once_with(77)

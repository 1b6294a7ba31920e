"""
Vigil - Test Fixtures
=====================

Shared fixtures for all tests.
"""

import os
import tempfile
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

# Keep log files out of the working tree
os.environ.setdefault("VIGIL_LOG_DIR", tempfile.mkdtemp(prefix="vigil-logs-"))

from vigil.core.database import MemoryKeyValueStore  # noqa: E402
from vigil.services.trust import (  # noqa: E402
    DetectionResult,
    Detector,
    GuildTrustSettings,
    PunishmentExecutor,
    TrustEvent,
    TrustService,
    TrustStore,
)
from vigil.utils.cache import TTLCache  # noqa: E402


GUILD_ID = 111
CHANNEL_ID = 222
LOG_CHANNEL_ID = 333


# =============================================================================
# Time
# =============================================================================

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(default_ttl=60, max_size=100, clock=clock)


# =============================================================================
# Storage
# =============================================================================

@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv):
    return TrustStore(kv)


# =============================================================================
# Discord Doubles
# =============================================================================

def make_member(user_id: int = 42, name: str = "spammer") -> MagicMock:
    member = MagicMock()
    member.id = user_id
    member.name = name
    member.mention = f"<@{user_id}>"
    member.__str__.return_value = name
    member.timeout = AsyncMock()
    member.kick = AsyncMock()
    member.ban = AsyncMock()
    member.is_timed_out = MagicMock(return_value=False)
    member.timed_out_until = None
    return member


@pytest.fixture
def mock_member():
    return make_member()


@pytest.fixture
def mock_channel():
    channel = MagicMock()
    channel.id = LOG_CHANNEL_ID
    channel.send = AsyncMock()
    return channel


@pytest.fixture
def mock_guild(mock_member, mock_channel):
    guild = MagicMock()
    guild.id = GUILD_ID
    members = {mock_member.id: mock_member}

    def fetch(uid):
        if uid in members:
            return members[uid]
        raise discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Member")

    guild.get_member = MagicMock(side_effect=lambda uid: members.get(uid))
    guild.fetch_member = AsyncMock(side_effect=fetch)
    guild.get_channel = MagicMock(
        side_effect=lambda cid: mock_channel if cid == LOG_CHANNEL_ID else None
    )
    guild.me.guild_permissions.moderate_members = True
    guild.me.guild_permissions.kick_members = True
    guild.me.guild_permissions.ban_members = True
    guild.members_by_id = members
    return guild


@pytest.fixture
def mock_client(mock_guild):
    client = MagicMock()
    client.get_guild = MagicMock(
        side_effect=lambda gid: mock_guild if gid == GUILD_ID else None
    )
    return client


# =============================================================================
# Trust Engine
# =============================================================================

class StubDetector(Detector):
    """Detector returning a fixed delta for every event."""

    def __init__(self, name: str = "stub", delta: int = 1, reasons=("stub hit",)) -> None:
        self.name = name
        self.delta = delta
        self.reasons = tuple(reasons)
        self.calls = 0

    async def detect(self, event, context):
        self.calls += 1
        return DetectionResult(score_delta=self.delta, reasons=self.reasons if self.delta else ())


def enabled_settings(
    detectors: Optional[List[str]] = None,
    punishments: Optional[list] = None,
    **overrides,
) -> GuildTrustSettings:
    data = {
        "enabled": True,
        "detectors": {name: {"enabled": True} for name in (detectors or ["stub"])},
        "punishments": punishments or [],
        "logChannelId": LOG_CHANNEL_ID,
    }
    data.update(overrides)
    return GuildTrustSettings.model_validate(data)


def make_event(user_id: int = 42, event_id: int = 1, content: str = "hello", **kwargs) -> TrustEvent:
    return TrustEvent(
        guild_id=kwargs.pop("guild_id", GUILD_ID),
        user_id=user_id,
        channel_id=kwargs.pop("channel_id", CHANNEL_ID),
        event_id=event_id,
        content=content,
        **kwargs,
    )


@pytest.fixture
def executor():
    return PunishmentExecutor(timeout=1)


@pytest.fixture
def stub_detector():
    return StubDetector()


@pytest.fixture
def service(mock_client, store, stub_detector, executor):
    return TrustService(
        client=mock_client,
        store=store,
        detectors=[stub_detector],
        executor=executor,
    )

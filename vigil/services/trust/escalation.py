"""
Trust Engine - Escalation Helpers
=================================

Threshold selection and per-member locking used by the trust service.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, List, Optional

from .models import NextPunishment, PunishmentRule


# =============================================================================
# Threshold Selection
# =============================================================================

def select_crossed_rule(
    rules: List[PunishmentRule],
    previous: int,
    score: int,
) -> Optional[PunishmentRule]:
    """
    Highest rule whose threshold lies in (previous, score].

    rules must already be sorted ascending. When several rules share the
    winning threshold the last one in order wins. A score that was already
    past every threshold selects nothing.
    """
    selected: Optional[PunishmentRule] = None
    for rule in rules:
        if previous < rule.threshold <= score:
            selected = rule
    return selected


def next_punishment(score: int, rules: List[PunishmentRule]) -> Optional[NextPunishment]:
    """
    The lowest threshold still ahead of score, or the highest one already
    reached when none is left. None when no rules are configured.
    """
    if not rules:
        return None

    ordered = sorted(rules, key=lambda rule: rule.threshold)
    for rule in ordered:
        if rule.threshold > score:
            return NextPunishment(
                threshold=rule.threshold,
                remaining=rule.threshold - score,
                reached=False,
                rule=rule,
            )

    highest = ordered[-1]
    return NextPunishment(threshold=highest.threshold, remaining=0, reached=True, rule=highest)


# =============================================================================
# Keyed Locking
# =============================================================================

class KeyedLock:
    """
    One asyncio.Lock per key, dropped once nobody holds or waits on it.

    Serializes read-modify-write of a single member's record while
    different members proceed in parallel.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._waiters: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


__all__ = [
    "KeyedLock",
    "next_punishment",
    "select_crossed_rule",
]

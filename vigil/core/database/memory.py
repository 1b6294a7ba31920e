"""
Vigil - In-Memory Key/Value Store
=================================

Process-local store for development and tests. Values are JSON
round-tripped on write so callers never share mutable state with it.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import json
from typing import Any, Dict

from .base import KeyValueStore


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed KeyValueStore."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Any:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._data)


__all__ = ["MemoryKeyValueStore"]

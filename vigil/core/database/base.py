"""
Vigil - Database Base Module
============================

Key/value persistence used by the trust engine.

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional

from vigil.core.logger import logger


# =============================================================================
# Constants
# =============================================================================

DATA_DIR = Path("data")
DB_PATH = DATA_DIR / "vigil.db"


# =============================================================================
# Helper Functions
# =============================================================================

def _safe_json_loads(value: Optional[str], default: Any = None) -> Any:
    """Safely parse JSON, returning default on error."""
    if not value:
        return default
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        logger.warning(f"Corrupted JSON in database: {value[:50]}")
        return default


# =============================================================================
# Key/Value Interface
# =============================================================================

class KeyValueStore(ABC):
    """
    Minimal key/value contract with JSON-compatible values.

    Implementations may raise on I/O failure. Callers decide how a failed
    read or write is handled.
    """

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the stored value or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-compatible value."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a key, returning True if it existed."""

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def close(self) -> None:
        pass


# =============================================================================
# SQLite Implementation
# =============================================================================

class SQLiteKeyValueStore(KeyValueStore):
    """
    SQLite-backed key/value store.

    DESIGN: Thread-safe via a connection lock. Uses WAL mode so reads
    don't block the writer.
    """

    def __init__(self, path: Path = DB_PATH) -> None:
        self._path = Path(path)
        self._db_lock: threading.Lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._connect()
        self._init_schema()

    # =========================================================================
    # Connection Management
    # =========================================================================

    def _connect(self) -> None:
        """Establish database connection with WAL mode."""
        try:
            self._conn = sqlite3.connect(
                str(self._path),
                check_same_thread=False,
                timeout=30.0,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA busy_timeout=5000")
            self._conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            logger.error("Database Connection Failed", [("Error", str(e))])
            raise

    def _ensure_connection(self) -> sqlite3.Connection:
        """Ensure connection is valid, reconnect if needed."""
        if self._conn is None:
            self._connect()
        try:
            self._conn.execute("SELECT 1")
        except sqlite3.Error:
            self._connect()
        return self._conn

    def _init_schema(self) -> None:
        self.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at REAL NOT NULL DEFAULT (strftime('%s', 'now'))
            )
            """
        )

    def execute(self, query: str, params: tuple = (), commit: bool = True) -> sqlite3.Cursor:
        """Execute a query with thread safety."""
        with self._db_lock:
            conn = self._ensure_connection()
            cursor = conn.cursor()
            cursor.execute(query, params)
            if commit:
                conn.commit()
            return cursor

    def fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        cursor = self.execute(query, params, commit=False)
        return cursor.fetchone()

    def fetchall(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        cursor = self.execute(query, params, commit=False)
        return cursor.fetchall()

    def close(self) -> None:
        """Close database connection."""
        with self._db_lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                logger.info("Database Connection Closed")

    # =========================================================================
    # Key/Value Operations
    # =========================================================================

    def get(self, key: str) -> Any:
        row = self.fetchone("SELECT value FROM kv_store WHERE key = ?", (key,))
        if row is None:
            return None
        return _safe_json_loads(row["value"])

    def set(self, key: str, value: Any) -> None:
        self.execute(
            """
            INSERT INTO kv_store (key, value, updated_at)
            VALUES (?, ?, strftime('%s', 'now'))
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, json.dumps(value)),
        )

    def delete(self, key: str) -> bool:
        cursor = self.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        return cursor.rowcount > 0


__all__ = [
    "DATA_DIR",
    "DB_PATH",
    "KeyValueStore",
    "SQLiteKeyValueStore",
    "_safe_json_loads",
]

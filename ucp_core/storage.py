"""
ucp_core/storage.py — Scoped key-value configuration store.

KeyManager, DiscoveryService and the agent authorizer read and write
their per-scope settings (signing keys, UCP version, authorization
policy) through this small contract:

    get_string(name, scope) -> str        "" when unset
    set_string(name, scope, value) -> None
    set_strings(values, scope) -> None    optional, atomic multi-write

A scope is an opaque identifier such as a tenant or sales channel id.

Tables:
- config: (scope, name) -> value, plus updated_at
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timezone
from typing import Mapping, Protocol, runtime_checkable


@runtime_checkable
class ConfigStore(Protocol):
    """Scoped string configuration collaborator."""

    def get_string(self, name: str, scope: str) -> str:
        ...

    def set_string(self, name: str, scope: str, value: str) -> None:
        ...


def get_bool(store: ConfigStore, name: str, scope: str) -> bool:
    """Read a boolean setting. `1`, `true`, `yes`, `on` are truthy."""
    return store.get_string(name, scope).strip().lower() in {"1", "true", "yes", "on"}


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class MemoryConfigStore:
    """Dict-backed store for tests and single-process tools."""

    def __init__(self, initial: Mapping[tuple[str, str], str] | None = None):
        self._values: dict[tuple[str, str], str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_string(self, name: str, scope: str) -> str:
        return self._values.get((scope, name), "")

    def set_string(self, name: str, scope: str, value: str) -> None:
        with self._lock:
            self._values[(scope, name)] = value

    def set_strings(self, values: Mapping[str, str], scope: str) -> None:
        with self._lock:
            for name, value in values.items():
                self._values[(scope, name)] = value


# ---------------------------------------------------------------------------
# SQLite store
# ---------------------------------------------------------------------------

class SqliteConfigStore:
    """SQLite storage for scoped configuration values.

    set_strings() writes all values in one transaction, so a crash
    leaves either the previous values or the complete new set.
    """

    def __init__(self, db_path: str = "./ucp_config.db"):
        self.db_path = db_path
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._create_tables()

    def _create_tables(self) -> None:
        """Create tables if they don't exist."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS config (
                scope TEXT NOT NULL,
                name TEXT NOT NULL,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (scope, name)
            );
        """)
        self.conn.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_string(self, name: str, scope: str) -> str:
        """Get a value, or "" if it was never set."""
        row = self.conn.execute(
            "SELECT value FROM config WHERE scope = ? AND name = ?",
            (scope, name),
        ).fetchone()
        return row["value"] if row else ""

    def get_scope(self, scope: str) -> dict[str, str]:
        """Get all values of one scope."""
        rows = self.conn.execute(
            "SELECT name, value FROM config WHERE scope = ? ORDER BY name",
            (scope,),
        ).fetchall()
        return {row["name"]: row["value"] for row in rows}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_string(self, name: str, scope: str, value: str) -> None:
        """Insert or replace a single value."""
        self.set_strings({name: value}, scope)

    def set_strings(self, values: Mapping[str, str], scope: str) -> None:
        """Insert or replace several values atomically."""
        now = datetime.now(timezone.utc).isoformat()
        with self._lock, self.conn:
            self.conn.executemany(
                """INSERT INTO config (scope, name, value, updated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(scope, name) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                [(scope, name, value, now) for name, value in values.items()],
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

"""Usage counters kept in the ``counters`` table and shown on the stats page."""

from __future__ import annotations

import sqlite3
from typing import Dict

from smart_proposal.database.connection import with_connection

COUNTER_KEYS = (
    "proposals_generated",
    "analyses",
    "fallback_analyses",
    "chat_requests",
    "agents_created",
    "scrapes",
)


@with_connection
def increment_counter(conn: sqlite3.Connection, key: str, amount: int = 1) -> None:
    conn.execute(
        """
        INSERT INTO counters (key, value)
        VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value = value + excluded.value
        """,
        (key, amount),
    )
    conn.commit()


@with_connection
def get_counter(conn: sqlite3.Connection, key: str) -> int:
    row = conn.execute("SELECT value FROM counters WHERE key = ?", (key,)).fetchone()
    return int(row["value"]) if row else 0


@with_connection
def all_counters(conn: sqlite3.Connection) -> Dict[str, int]:
    """Every known counter, zero when it has never been bumped."""
    stored = {row["key"]: int(row["value"]) for row in conn.execute("SELECT key, value FROM counters")}
    return {key: stored.get(key, 0) for key in COUNTER_KEYS}

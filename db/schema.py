from __future__ import annotations

import sqlite3


def bootstrap(conn: sqlite3.Connection) -> None:
    """Create the profile cache table and indexes (idempotent)."""
    cur = conn.cursor()

    # One serialized EnrichedProfile per guest id; writes are upserts
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS profile_cache (\n"
            "  api_id TEXT PRIMARY KEY,\n"
            "  document TEXT NOT NULL,\n"
            "  updated_at INTEGER NOT NULL\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_profile_cache_updated_at ON profile_cache(updated_at);")

    conn.commit()

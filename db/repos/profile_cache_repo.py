from __future__ import annotations

import sqlite3
from typing import List, Optional, Sequence

from models import CacheRecord


class ProfileCacheRepo:
    """Raw SQL access to the profile_cache table. Errors propagate to the caller."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def select_by_ids(self, api_ids: Sequence[str]) -> List[CacheRecord]:
        """Return stored records for the given ids; unknown ids are simply absent."""
        if not api_ids:
            return []
        placeholders = ", ".join("?" for _ in api_ids)
        sql = f"SELECT api_id, document, updated_at FROM profile_cache WHERE api_id IN ({placeholders});"
        cur = self.conn.cursor()
        cur.execute(sql, tuple(api_ids))
        return [CacheRecord(api_id=row[0], document=row[1], updated_at=int(row[2])) for row in cur.fetchall()]

    def select_one(self, api_id: str) -> Optional[CacheRecord]:
        rows = self.select_by_ids([api_id])
        return rows[0] if rows else None

    def upsert_many(self, records: Sequence[CacheRecord]) -> int:
        """Insert or overwrite records by api_id (last write wins). Returns rows written."""
        if not records:
            return 0
        sql = (
            "INSERT INTO profile_cache (api_id, document, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(api_id) DO UPDATE SET "
            " document = excluded.document, "
            " updated_at = excluded.updated_at;"
        )
        self.conn.executemany(sql, [(r.api_id, r.document, r.updated_at) for r in records])
        self.conn.commit()
        return len(records)

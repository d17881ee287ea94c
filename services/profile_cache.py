from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import closing
from typing import Callable, Dict, Iterable, Optional, Sequence

from pydantic import ValidationError

from db import schema
from db.connection import get_connection
from db.repos.profile_cache_repo import ProfileCacheRepo
from models import CacheRecord, EnrichedProfile
from utils.batching import chunked


logger = logging.getLogger(__name__)


class ProfileCache:
    """Best-effort profile cache keyed by guest id.

    The cache only saves provider calls: lookups that fail behave like misses
    and writes that fail are logged and dropped. Each operation opens its own
    connection, so writes may run on a background thread.
    """

    def __init__(
        self,
        db_path: str,
        *,
        chunk_size: int = 100,
        connect: Callable[[str], sqlite3.Connection] = get_connection,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db_path = db_path
        self.chunk_size = chunk_size
        self._connect = connect
        self._clock = clock

    def bootstrap(self) -> None:
        with closing(self._connect(self.db_path)) as conn:
            schema.bootstrap(conn)

    def lookup_batch(self, api_ids: Iterable[str]) -> Dict[str, EnrichedProfile]:
        unique_ids = list(dict.fromkeys(i for i in api_ids if i))
        if not unique_ids:
            return {}

        found: Dict[str, EnrichedProfile] = {}
        try:
            with closing(self._connect(self.db_path)) as conn:
                repo = ProfileCacheRepo(conn)
                for chunk in chunked(unique_ids, self.chunk_size):
                    for record in repo.select_by_ids(chunk):
                        profile = self._decode(record)
                        if profile is not None:
                            found[record.api_id] = profile
        except Exception as e:
            logger.error(
                "Cache lookup failed; treating all ids as misses",
                extra={"step": "cache_lookup", "status": "error", "error": str(e)},
            )
            return {}

        logger.info(
            f"Cache lookup: {len(found)} hits of {len(unique_ids)} ids",
            extra={"step": "cache_lookup", "status": "ok"},
        )
        return found

    def get(self, api_id: str) -> Optional[EnrichedProfile]:
        return self.lookup_batch([api_id]).get(api_id)

    def write_batch(self, profiles: Sequence[EnrichedProfile]) -> None:
        if not profiles:
            return
        updated_at = int(self._clock())
        records = [CacheRecord.from_profile(p, updated_at) for p in profiles]
        written = 0
        try:
            with closing(self._connect(self.db_path)) as conn:
                repo = ProfileCacheRepo(conn)
                for chunk in chunked(records, self.chunk_size):
                    written += repo.upsert_many(chunk)
        except Exception as e:
            logger.error(
                f"Cache write failed after {written} of {len(records)} profiles",
                extra={"step": "cache_write", "status": "error", "error": str(e)},
            )
            return
        logger.info(f"Cached {written} profiles", extra={"step": "cache_write", "status": "ok"})

    @staticmethod
    def _decode(record: CacheRecord) -> Optional[EnrichedProfile]:
        try:
            return record.to_profile()
        except ValidationError as e:
            logger.warning(
                f"Skipping unreadable cached profile for {record.api_id}",
                extra={"step": "cache_lookup", "status": "corrupt", "error": str(e)},
            )
            return None

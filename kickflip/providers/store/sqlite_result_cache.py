"""SQLite-backed result cache.

Maps the SHA-256 of a normalized query to the ordered event ids and text
of the answer that was served for it.  Uses ``aiosqlite`` for async I/O,
one connection per operation.

Expiry is enforced at read time (``expires_at > now``), so a stale row is
invisible the moment it lapses even if the crawler has not swept it yet.
"""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path
from typing import Sequence

import aiosqlite
import structlog

from kickflip.interfaces.result_cache import IResultCache
from kickflip.models.cache import CacheEntry
from kickflip.providers.store._sqlite import Clock, from_db_timestamp, to_db_timestamp, utc_now
from kickflip.utils.errors import StoreError
from kickflip.utils.text import query_cache_key

logger = structlog.get_logger(logger_name=__name__)

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS result_cache (
    key         TEXT PRIMARY KEY,
    query       TEXT NOT NULL,
    event_ids   TEXT NOT NULL,
    text        TEXT NOT NULL,
    expires_at  TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_result_cache_expires ON result_cache(expires_at);",
]

_UPSERT_SQL = """\
INSERT INTO result_cache (key, query, event_ids, text, expires_at, created_at)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(key)
DO UPDATE SET query      = excluded.query,
              event_ids  = excluded.event_ids,
              text       = excluded.text,
              expires_at = excluded.expires_at,
              created_at = excluded.created_at;
"""

_SELECT_LIVE_SQL = """\
SELECT key, query, event_ids, text, expires_at, created_at
FROM result_cache
WHERE key = ? AND expires_at > ?;
"""

_DELETE_EXPIRED_SQL = "DELETE FROM result_cache WHERE expires_at <= ?;"


class SQLiteResultCache(IResultCache):
    """Query-result cache persisted in SQLite.

    Parameters
    ----------
    db_path:
        Database file; created with its parent directory on
        :meth:`initialize`.
    ttl_hours:
        Lifetime of each entry.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        db_path: str | Path,
        ttl_hours: float = 6,
        clock: Clock = utc_now,
    ) -> None:
        self._db_path = Path(db_path)
        self._ttl = timedelta(hours=ttl_hours)
        self._clock = clock

    async def initialize(self) -> None:
        """Create the result_cache table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("result_cache_initialized", path=str(self._db_path))

    async def get(self, query: str) -> CacheEntry | None:
        key = query_cache_key(query)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    _SELECT_LIVE_SQL, (key, to_db_timestamp(self._clock()))
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(message=f"Cache read failed: {exc}", provider_name="sqlite") from exc

        if row is None:
            logger.debug("cache_miss", key=key[:12])
            return None
        logger.debug("cache_hit", key=key[:12])
        return CacheEntry(
            key=row["key"],
            query=row["query"],
            event_ids=json.loads(row["event_ids"]),
            text=row["text"],
            expires_at=from_db_timestamp(row["expires_at"]),
            created_at=from_db_timestamp(row["created_at"]),
        )

    async def put(self, query: str, event_ids: Sequence[str], text: str) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(
            key=query_cache_key(query),
            query=query.strip(),
            event_ids=list(event_ids),
            text=text,
            expires_at=now + self._ttl,
            created_at=now,
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _UPSERT_SQL,
                    (
                        entry.key,
                        entry.query,
                        json.dumps(entry.event_ids),
                        entry.text,
                        to_db_timestamp(entry.expires_at),
                        to_db_timestamp(entry.created_at),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(message=f"Cache write failed: {exc}", provider_name="sqlite") from exc
        logger.debug("cache_put", key=entry.key[:12], events=len(entry.event_ids))
        return entry

    async def sweep_expired(self) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    _DELETE_EXPIRED_SQL, (to_db_timestamp(self._clock()),)
                )
                await db.commit()
                removed = cursor.rowcount or 0
        except aiosqlite.Error as exc:
            raise StoreError(message=f"Cache sweep failed: {exc}", provider_name="sqlite") from exc
        logger.info("cache_swept", removed=removed)
        return removed

"""SQLite-backed event index with in-process cosine similarity search.

Each row stores the event as JSON plus an optional embedding serialized
as a float32 BLOB.  Similarity search loads the embedded, non-expired
vectors into a numpy matrix and ranks them against the query vector.
That is plenty for a single city's rolling week of events (a few
thousand rows); a dedicated vector database would only add a second
store to keep in sync.

Row lifecycle:
    upsert(event, None)      -> row exists, invisible to search
    set_embedding(id, v)     -> row joins search
    expires_at passes        -> row invisible to search and fetch
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import aiosqlite
import numpy as np
import structlog

from kickflip.interfaces.event_index import IEventIndex
from kickflip.models.event import Event, ScoredEvent, UpsertOutcome
from kickflip.providers.store._sqlite import Clock, to_db_timestamp, utc_now
from kickflip.utils.errors import StoreError

logger = structlog.get_logger(logger_name=__name__)

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS events (
    id          TEXT PRIMARY KEY,
    payload     TEXT NOT NULL,
    embedding   BLOB,
    origin      TEXT NOT NULL,
    expires_at  TEXT,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_events_expires ON events(expires_at);",
    "CREATE INDEX IF NOT EXISTS idx_events_origin ON events(origin);",
]

# A re-upsert without a vector keeps the one already stored.
_UPSERT_SQL = """\
INSERT INTO events (id, payload, embedding, origin, expires_at, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET payload    = excluded.payload,
              embedding  = COALESCE(excluded.embedding, events.embedding),
              origin     = excluded.origin,
              expires_at = excluded.expires_at,
              updated_at = excluded.updated_at;
"""

_LIVE_FILTER = "(expires_at IS NULL OR expires_at > ?)"


def _to_blob(vector: Sequence[float]) -> bytes:
    return np.asarray(vector, dtype=np.float32).tobytes()


def _from_blob(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=np.float32)


class SQLiteEventIndex(IEventIndex):
    """Event storage plus vector search on a single SQLite file."""

    def __init__(self, db_path: str | Path, clock: Clock = utc_now) -> None:
        self._db_path = Path(db_path)
        self._clock = clock

    async def initialize(self) -> None:
        """Create the events table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("event_index_initialized", path=str(self._db_path))

    async def upsert(self, event: Event, embedding: Sequence[float] | None) -> UpsertOutcome:
        now = self._clock()
        stored = event.model_copy(update={"updated_at": now})
        blob = _to_blob(embedding) if embedding is not None else None
        expires = to_db_timestamp(event.expires_at) if event.expires_at else None
        stamp = to_db_timestamp(now)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute("SELECT 1 FROM events WHERE id = ?", (event.id,))
                existed = await cursor.fetchone() is not None
                await db.execute(
                    _UPSERT_SQL,
                    (
                        event.id,
                        stored.model_dump_json(),
                        blob,
                        event.origin.value,
                        expires,
                        stamp,
                        stamp,
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Upsert of {event.id} failed: {exc}", provider_name="sqlite"
            ) from exc

        outcome = UpsertOutcome.UPDATED if existed else UpsertOutcome.CREATED
        logger.debug(
            "event_upserted",
            event_id=event.id,
            outcome=outcome.value,
            embedded=blob is not None,
        )
        return outcome

    async def fetch_by_ids(self, ids: Sequence[str]) -> list[Event]:
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return []
        placeholders = ", ".join("?" for _ in unique_ids)
        sql = f"SELECT payload FROM events WHERE id IN ({placeholders}) AND {_LIVE_FILTER}"
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, (*unique_ids, to_db_timestamp(self._clock())))
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(message=f"Fetch failed: {exc}", provider_name="sqlite") from exc
        return [Event.model_validate_json(row["payload"]) for row in rows]

    async def similarity_search(
        self,
        vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[ScoredEvent]:
        if limit <= 0:
            return []
        query = np.asarray(vector, dtype=np.float64)
        query_norm = float(np.linalg.norm(query))
        if query_norm == 0.0:
            return []

        sql = (
            "SELECT payload, embedding FROM events "
            f"WHERE embedding IS NOT NULL AND {_LIVE_FILTER}"
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, (to_db_timestamp(self._clock()),))
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(message=f"Search failed: {exc}", provider_name="sqlite") from exc

        payloads: list[str] = []
        vectors: list[np.ndarray] = []
        for row in rows:
            stored = _from_blob(row["embedding"])
            # Rows embedded by a different model are skipped, not compared.
            if stored.shape != query.shape:
                continue
            payloads.append(row["payload"])
            vectors.append(stored)
        if not vectors:
            return []

        matrix = np.vstack(vectors).astype(np.float64)
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0.0] = np.inf
        similarities = (matrix @ query) / (norms * query_norm)

        order = np.argsort(-similarities, kind="stable")
        results: list[ScoredEvent] = []
        for idx in order:
            score = float(similarities[idx])
            if score <= threshold:
                break
            results.append(
                ScoredEvent(event=Event.model_validate_json(payloads[idx]), similarity=score)
            )
            if len(results) >= limit:
                break

        logger.info(
            "similarity_search",
            threshold=threshold,
            limit=limit,
            candidates=len(vectors),
            matches=len(results),
            top=round(results[0].similarity, 4) if results else None,
        )
        return results

    async def list_unembedded(self, limit: int = 500) -> list[Event]:
        sql = (
            "SELECT payload FROM events "
            f"WHERE embedding IS NULL AND {_LIVE_FILTER} "
            "ORDER BY updated_at ASC LIMIT ?"
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, (to_db_timestamp(self._clock()), limit))
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(message=f"Listing failed: {exc}", provider_name="sqlite") from exc
        return [Event.model_validate_json(row["payload"]) for row in rows]

    async def set_embedding(self, event_id: str, vector: Sequence[float]) -> bool:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "UPDATE events SET embedding = ?, updated_at = ? WHERE id = ?",
                    (_to_blob(vector), to_db_timestamp(self._clock()), event_id),
                )
                await db.commit()
                updated = (cursor.rowcount or 0) > 0
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Embedding write for {event_id} failed: {exc}", provider_name="sqlite"
            ) from exc
        return updated

    async def count(self) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute("SELECT COUNT(*) FROM events")
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(message=f"Count failed: {exc}", provider_name="sqlite") from exc
        return int(row[0]) if row else 0

    def get_provider_name(self) -> str:
        return "sqlite"

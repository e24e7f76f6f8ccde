"""Embedding backfill for events stored without a vector.

Discovered events whose embedding failed, and rows imported without one,
sit in the index invisible to search.  ``/api/seed`` (or
``python -m kickflip.cli seed``) runs this to give them vectors.
"""

from __future__ import annotations

import structlog

from kickflip.interfaces.event_index import IEventIndex
from kickflip.models.crawl import BackfillSummary
from kickflip.services.index_writer import IndexWriter
from kickflip.utils.errors import KickflipError
from kickflip.utils.logging import get_logger


class EmbeddingBackfill:
    """Embeds un-embedded index rows in DOCUMENT mode."""

    def __init__(self, index: IEventIndex, writer: IndexWriter, limit: int = 500) -> None:
        self._index = index
        self._writer = writer
        self._limit = limit
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def run(self) -> BackfillSummary:
        events = await self._index.list_unembedded(self._limit)
        if not events:
            self._logger.info("backfill_nothing_to_do")
            return BackfillSummary()

        vectors = await self._writer.embed_documents([e.embedding_text() for e in events])
        embedded = errors = 0
        for event, vector in zip(events, vectors):
            if vector is None:
                errors += 1
                continue
            try:
                found = await self._index.set_embedding(event.id, vector)
            except KickflipError as exc:
                errors += 1
                self._logger.warning("backfill_write_failed", event_id=event.id, error=str(exc))
                continue
            if found:
                embedded += 1
            else:
                errors += 1

        summary = BackfillSummary(candidates=len(events), embedded=embedded, errors=errors)
        self._logger.info("backfill_complete", **summary.model_dump())
        return summary

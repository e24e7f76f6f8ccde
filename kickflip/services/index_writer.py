"""IndexWriter -- embed events in DOCUMENT mode and upsert them.

Shared by the live-discovery background step, the batch crawler and the
embedding backfill.  Every failure is contained to the smallest unit
possible:

    batch embed fails  -> each event in that batch is embedded alone
    single embed fails -> event is stored un-embedded (backfill fixes it)
    upsert fails       -> counted, the rest carry on

:meth:`IndexWriter.store_events` therefore never raises.
"""

from __future__ import annotations

from typing import Sequence

import structlog
from pydantic import BaseModel, ConfigDict

from kickflip.interfaces.embedding_provider import EmbeddingInputType, IEmbeddingProvider
from kickflip.interfaces.event_index import IEventIndex
from kickflip.models.event import Event, UpsertOutcome
from kickflip.utils.errors import EmbeddingError, KickflipError
from kickflip.utils.logging import get_logger
from kickflip.utils.retry import with_retry


class StoreReport(BaseModel):
    """Counts from one :meth:`IndexWriter.store_events` call."""

    model_config = ConfigDict(frozen=True)

    submitted: int = 0
    created: int = 0
    updated: int = 0
    unembedded: int = 0
    errors: int = 0


class IndexWriter:
    """Embeds and persists events with per-item failure isolation."""

    def __init__(self, index: IEventIndex, embedder: IEmbeddingProvider) -> None:
        self._index = index
        self._embedder = embedder
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def embed_documents(self, texts: Sequence[str]) -> list[list[float] | None]:
        """Embed *texts* in provider-sized batches; ``None`` marks a failed item."""
        texts = list(texts)
        batch_size = max(1, self._embedder.max_batch_size())
        vectors: list[list[float] | None] = []
        for start in range(0, len(texts), batch_size):
            batch = texts[start : start + batch_size]
            try:
                embedded = await with_retry(
                    lambda: self._embedder.embed(batch, EmbeddingInputType.DOCUMENT),
                    label="embed_documents",
                )
                if len(embedded) != len(batch):
                    raise EmbeddingError(
                        message=f"Expected {len(batch)} vectors, got {len(embedded)}",
                        provider_name=self._embedder.get_provider_name(),
                    )
                vectors.extend(embedded)
            except KickflipError as exc:
                self._logger.warning(
                    "embed_batch_failed", size=len(batch), error=str(exc)
                )
                for text in batch:
                    vectors.append(await self._embed_one(text))
        return vectors

    async def store_events(self, events: Sequence[Event]) -> StoreReport:
        """Embed and upsert *events*.  Never raises."""
        events = list(events)
        if not events:
            return StoreReport()

        vectors = await self.embed_documents([event.embedding_text() for event in events])

        created = updated = unembedded = errors = 0
        for event, vector in zip(events, vectors):
            if vector is None:
                unembedded += 1
            try:
                outcome = await self._index.upsert(event, vector)
            except KickflipError as exc:
                errors += 1
                self._logger.warning("event_upsert_failed", event_id=event.id, error=str(exc))
                continue
            if outcome is UpsertOutcome.CREATED:
                created += 1
            else:
                updated += 1

        report = StoreReport(
            submitted=len(events),
            created=created,
            updated=updated,
            unembedded=unembedded,
            errors=errors,
        )
        self._logger.info("events_stored", **report.model_dump())
        return report

    async def _embed_one(self, text: str) -> list[float] | None:
        try:
            return await self._embedder.embed_single(text, EmbeddingInputType.DOCUMENT)
        except KickflipError as exc:
            self._logger.warning("embed_item_failed", error=str(exc))
            return None

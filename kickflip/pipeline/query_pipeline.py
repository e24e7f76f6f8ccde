"""QueryPipeline -- the tiered retrieval path behind ``POST /api/chat``.

    cache hit?                 -> resolve ids, done (no embedding, no LLM)
    embed query (QUERY mode)
    high tier: > 0.72, top 10  -> >= 3 results? Formatter
    low tier:  > 0.50, top 6   -> merged with high tier, >= 2? Formatter
    otherwise                  -> LiveDiscovery, store its events in the background
    write cache, respond

Steps run strictly in order for one request.  Thresholds, limits and
count gates come from :class:`RetrievalThresholds`.

Without a datastore (``index``/``cache`` are ``None``) the pipeline goes
straight to LiveDiscovery and persists nothing.
"""

from __future__ import annotations

from typing import Sequence

import structlog

from kickflip.interfaces.embedding_provider import EmbeddingInputType, IEmbeddingProvider
from kickflip.interfaces.event_index import IEventIndex
from kickflip.interfaces.result_cache import IResultCache
from kickflip.models.event import Event, ScoredEvent
from kickflip.models.query import AnswerSource, FormattedAnswer, QueryResult, RetrievalThresholds
from kickflip.pipeline.task_queue import TaskQueue
from kickflip.services.formatter import Formatter
from kickflip.services.index_writer import IndexWriter
from kickflip.services.live_discovery import LiveDiscovery
from kickflip.utils.errors import KickflipError
from kickflip.utils.logging import get_logger
from kickflip.utils.retry import with_retry


def merge_tiers(high: Sequence[ScoredEvent], low: Sequence[ScoredEvent]) -> list[ScoredEvent]:
    """High-tier results first, then unseen low-tier ones, by descending similarity."""
    seen: set[str] = set()
    merged: list[ScoredEvent] = []
    for scored in [*high, *low]:
        if scored.event.id in seen:
            continue
        seen.add(scored.event.id)
        merged.append(scored)
    merged.sort(key=lambda s: s.similarity, reverse=True)
    return merged


def order_by_ids(events: Sequence[Event], ids: Sequence[str]) -> list[Event]:
    """Arrange *events* in the order of *ids*, dropping ids that did not resolve."""
    by_id = {event.id: event for event in events}
    ordered: list[Event] = []
    for event_id in ids:
        event = by_id.pop(event_id, None)
        if event is not None:
            ordered.append(event)
    return ordered


class QueryPipeline:
    """Answers one free-text query with ranked events.

    Parameters
    ----------
    embedder:
        Query embedder.  Unused in no-backend mode.
    formatter:
        Re-ranker for index hits.
    discovery:
        Web-search fallback.
    task_queue:
        Where discovered events are handed for background storage.
    index, cache, writer:
        Storage collaborators; all ``None`` in no-backend mode.
    thresholds:
        Tier gates.
    """

    def __init__(
        self,
        embedder: IEmbeddingProvider | None,
        formatter: Formatter,
        discovery: LiveDiscovery,
        task_queue: TaskQueue,
        index: IEventIndex | None = None,
        cache: IResultCache | None = None,
        writer: IndexWriter | None = None,
        thresholds: RetrievalThresholds | None = None,
    ) -> None:
        self._embedder = embedder
        self._formatter = formatter
        self._discovery = discovery
        self._task_queue = task_queue
        self._index = index
        self._cache = cache
        self._writer = writer
        self._thresholds = thresholds or RetrievalThresholds()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def has_backend(self) -> bool:
        return self._index is not None and self._cache is not None and self._embedder is not None

    async def run(self, query: str) -> QueryResult:
        query = query.strip()
        if not self.has_backend:
            answer = await self._discovery.discover(query)
            self._logger.info("pipeline_path", path="discovery", backend=False)
            return QueryResult(text=answer.text, events=answer.events, source=AnswerSource.DISCOVERY)

        cached = await self._from_cache(query)
        if cached is not None:
            return cached

        vector = await with_retry(
            lambda: self._embedder.embed_single(query, EmbeddingInputType.QUERY),
            label="embed_query",
        )

        t = self._thresholds
        high = await self._search(vector, t.high_threshold, t.high_limit)
        if len(high) >= t.high_min_results:
            self._logger.info("pipeline_path", path="high_tier", matches=len(high))
            answer = await self._formatter.format(query, [s.event for s in high])
            return await self._finish(query, answer, AnswerSource.INDEX)

        low = await self._search(vector, t.low_threshold, t.low_limit)
        candidates = merge_tiers(high, low)
        if len(candidates) >= t.low_min_results:
            self._logger.info("pipeline_path", path="low_tier", matches=len(candidates))
            answer = await self._formatter.format(query, [s.event for s in candidates])
            return await self._finish(query, answer, AnswerSource.INDEX)

        self._logger.info("pipeline_path", path="discovery", matches=len(candidates))
        answer = await self._discovery.discover(query)
        if answer.events and self._writer is not None:
            self._task_queue.submit("store_discovered", self._writer.store_events(answer.events))
        return await self._finish(query, answer, AnswerSource.DISCOVERY)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _from_cache(self, query: str) -> QueryResult | None:
        try:
            entry = await self._cache.get(query)
            if entry is None:
                return None
            events = await self._index.fetch_by_ids(entry.event_ids)
        except KickflipError as exc:
            self._logger.warning("cache_read_failed", error=str(exc))
            return None
        ordered = order_by_ids(events, entry.event_ids)
        self._logger.info(
            "cache_hit", cached_ids=len(entry.event_ids), resolved=len(ordered)
        )
        return QueryResult(text=entry.text, events=ordered, source=AnswerSource.CACHE)

    async def _search(self, vector: list[float], threshold: float, limit: int) -> list[ScoredEvent]:
        return await with_retry(
            lambda: self._index.similarity_search(vector, threshold, limit),
            label="similarity_search",
        )

    async def _finish(
        self, query: str, answer: FormattedAnswer, source: AnswerSource
    ) -> QueryResult:
        try:
            await self._cache.put(query, [e.id for e in answer.events], answer.text)
        except KickflipError as exc:
            self._logger.warning("cache_write_failed", error=str(exc))
        return QueryResult(text=answer.text, events=answer.events, source=source)

"""Abstract base class for the event index.

The index holds every known event plus, where available, its embedding
vector.  Only rows that have an embedding *and* have not expired take
part in similarity search; un-embedded rows stay fetchable by id and are
picked up later by the embedding backfill.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from kickflip.models.event import Event, ScoredEvent, UpsertOutcome


# Concrete implementation: SQLiteEventIndex (kickflip/providers/store/)
class IEventIndex(ABC):
    """Contract for event storage with vector similarity search."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if needed.  Safe to call repeatedly."""

    @abstractmethod
    async def upsert(self, event: Event, embedding: Sequence[float] | None) -> UpsertOutcome:
        """Insert or replace an event by id (last write wins).

        Passing ``embedding=None`` stores the event un-embedded.  A write
        that hits an existing id is a success and reports ``UPDATED``.

        Raises
        ------
        kickflip.utils.errors.StoreError
            If the write itself fails.
        """

    @abstractmethod
    async def fetch_by_ids(self, ids: Sequence[str]) -> list[Event]:
        """Return the events whose ids resolve, in no particular order."""

    @abstractmethod
    async def similarity_search(
        self,
        vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[ScoredEvent]:
        """Return events with cosine similarity strictly above *threshold*.

        Results are sorted by descending similarity and capped at *limit*.
        Expired and un-embedded rows never appear.
        """

    @abstractmethod
    async def list_unembedded(self, limit: int = 500) -> list[Event]:
        """Return up to *limit* non-expired events that have no embedding."""

    @abstractmethod
    async def set_embedding(self, event_id: str, vector: Sequence[float]) -> bool:
        """Attach a vector to an existing row.  Returns ``False`` if the id is unknown."""

    @abstractmethod
    async def count(self) -> int:
        """Total number of rows (embedded or not, expired or not)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this index backend."""

"""Abstract base class for the query result cache."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from kickflip.models.cache import CacheEntry


# Concrete implementation: SQLiteResultCache (kickflip/providers/store/)
class IResultCache(ABC):
    """Exact-match cache from normalized query to (event ids, text).

    Two queries that differ only in case or surrounding/internal whitespace
    share an entry.  Expired entries behave as absent on :meth:`get` and
    are physically removed by :meth:`sweep_expired`.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if needed."""

    @abstractmethod
    async def get(self, query: str) -> CacheEntry | None:
        """Return the live entry for *query*, or ``None``."""

    @abstractmethod
    async def put(self, query: str, event_ids: Sequence[str], text: str) -> CacheEntry:
        """Store an answer for *query*, replacing any previous entry."""

    @abstractmethod
    async def sweep_expired(self) -> int:
        """Delete expired entries and return how many were removed."""

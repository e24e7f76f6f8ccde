"""SQLite-backed storage adapters (event index and result cache)."""

from kickflip.providers.store.sqlite_event_index import SQLiteEventIndex
from kickflip.providers.store.sqlite_result_cache import SQLiteResultCache

__all__ = ["SQLiteEventIndex", "SQLiteResultCache"]

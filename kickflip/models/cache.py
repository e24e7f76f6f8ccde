"""Result-cache entry model."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CacheEntry(BaseModel):
    """A cached answer: the ordered event ids plus the one-liner text.

    ``key`` is the SHA-256 of the normalized query, so two spellings of the
    same question share a row.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="SHA-256 hex digest of the normalized query.")
    query: str = Field(description="Query text as first seen (for debugging).")
    event_ids: list[str] = Field(default_factory=list, description="Ordered event ids.")
    text: str = Field(default="")
    expires_at: datetime
    created_at: datetime

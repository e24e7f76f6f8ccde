"""Batch-crawl bookkeeping models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CrawlJobStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class CrawlJob(BaseModel):
    """One category-scoped search within a crawl run."""

    model_config = ConfigDict(frozen=True)

    label: str
    query: str = ""
    status: CrawlJobStatus = CrawlJobStatus.RUNNING
    found: int = 0
    error: int = 0
    started_at: datetime
    finished_at: datetime | None = None
    error_message: str | None = None


class WindowDecision(BaseModel):
    """Outcome of checking one event's date against the crawl window.

    ``reason`` is one of ``in-window``, ``undated``, ``unparseable-date``,
    ``past`` or ``beyond window``.
    """

    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: str


class CrawlSummary(BaseModel):
    """Totals for one crawl run."""

    model_config = ConfigDict(frozen=True)

    found: int = 0
    unique: int = 0
    duplicates_collapsed: int = 0
    rejected: dict[str, int] = Field(default_factory=dict, description="Rejection counts by reason.")
    filtered: int = Field(default=0, description="Events that passed the window check.")
    stored: int = 0
    updated: int = 0
    errors: int = 0
    cache_rows_swept: int = 0
    jobs: list[CrawlJob] = Field(default_factory=list)
    window_start: date
    window_end: date
    duration_ms: int = 0


class BackfillSummary(BaseModel):
    """Totals for one embedding backfill run."""

    model_config = ConfigDict(frozen=True)

    candidates: int = 0
    embedded: int = 0
    errors: int = 0

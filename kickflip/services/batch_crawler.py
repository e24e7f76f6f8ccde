"""BatchCrawler -- periodic category sweep that fills the event index.

One crawl cycle:

1. Run each category search **sequentially** through the same bounded
   web-search conversation live discovery uses.  A failing search marks
   its :class:`CrawlJob` failed; the cycle moves on.
2. Deduplicate by (lower-cased trimmed title, structured start date).
   The first listing seen wins.
3. Window-filter against ``[today, today + window_days]`` in Seattle
   time.  Undated and unparseable dates are kept.
4. Normalize, embed (DOCUMENT mode, provider-sized batches) and upsert
   each survivor with ``expires_at = window_end + 1 day``.
5. Sweep expired rows from the result cache.

An empty cycle (nothing found, or nothing in window) is a success.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Sequence

import structlog

from kickflip.interfaces.llm_provider import ILLMProvider
from kickflip.interfaces.result_cache import IResultCache
from kickflip.interfaces.web_search_provider import IWebSearchProvider
from kickflip.models.crawl import CrawlJob, CrawlJobStatus, CrawlSummary, WindowDecision
from kickflip.models.event import EventCategory, EventOrigin
from kickflip.pipeline.conversation import DEFAULT_MAX_TURNS, ToolConversation, web_search_tool
from kickflip.services.event_normalizer import EventNormalizer, structured_start_date
from kickflip.services.index_writer import IndexWriter
from kickflip.utils.clock import Clock, local_today, start_of_day, utc_now
from kickflip.utils.errors import KickflipError
from kickflip.utils.json_extract import extract_json
from kickflip.utils.logging import get_logger
from kickflip.utils.text import is_undated_marker, parse_event_date


@dataclass(frozen=True)
class CrawlCategory:
    label: str
    query: str


DEFAULT_CATEGORIES: tuple[CrawlCategory, ...] = (
    CrawlCategory("music", "live music, concerts and DJ nights in Seattle"),
    CrawlCategory("food & drink", "food festivals, pop-ups, tastings and brewery events in Seattle"),
    CrawlCategory("art", "art shows, gallery openings and art walks in Seattle"),
    CrawlCategory("outdoor", "outdoor events, markets, hikes and park events in Seattle"),
    CrawlCategory("nightlife & party", "nightlife, dance parties and club nights in Seattle"),
    CrawlCategory("wellness", "yoga, meditation, run clubs and wellness events in Seattle"),
    CrawlCategory("comedy", "stand-up comedy and improv shows in Seattle"),
    CrawlCategory("sports & fitness", "sports games, fitness classes and races in Seattle"),
)

_CATEGORIES = ", ".join(c.value for c in EventCategory)

SYSTEM_PROMPT = f"""\
You are an event research assistant building a calendar of upcoming events \
in Seattle, WA. Use the web_search tool to find real events from official \
listings. Never invent events or details.

When finished, respond with ONLY a JSON array (no prose, no code fences) of \
objects with these fields:
  title, date (display string), startDate (YYYY-MM-DD, or empty if unknown),
  endDate (YYYY-MM-DD or empty), startTime, location, description (one sentence),
  category (one of: {_CATEGORIES}), vibeTags (2-4 short strings), price, link, organizer
Return an empty array if you find nothing."""


def dedupe_key(raw: dict[str, Any]) -> tuple[str, date | None]:
    title = str(raw.get("title") or "").strip().lower()
    return title, structured_start_date(raw)


def dedupe(raws: Sequence[dict[str, Any]]) -> tuple[list[dict[str, Any]], int]:
    """Collapse listings with the same title and start date.  First one wins."""
    seen: set[tuple[str, date | None]] = set()
    unique: list[dict[str, Any]] = []
    for raw in raws:
        key = dedupe_key(raw)
        if key in seen:
            continue
        seen.add(key)
        unique.append(raw)
    return unique, len(raws) - len(unique)


def raw_date_value(raw: dict[str, Any]) -> Any:
    """The value the window check looks at.

    The structured start date the event will be stored with, when there is
    one; otherwise the raw ``startDate`` / ``date`` text, so placeholders
    and free-form dates keep their rejection reasons.
    """
    start = structured_start_date(raw)
    if start is not None:
        return start
    for key in ("startDate", "start_date"):
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return raw.get("date")


def check_window(value: Any, window_start: date, window_end: date) -> WindowDecision:
    """Decide whether an event dated *value* belongs in the crawl window.

    ``window_end`` is inclusive: an event on that day is in the window.
    """
    if is_undated_marker(value):
        return WindowDecision(accepted=True, reason="undated")
    parsed = parse_event_date(value)
    if parsed is None:
        return WindowDecision(accepted=True, reason="unparseable-date")
    if parsed < window_start:
        return WindowDecision(accepted=False, reason="past")
    if parsed > window_end:
        return WindowDecision(accepted=False, reason="beyond window")
    return WindowDecision(accepted=True, reason="in-window")


class BatchCrawler:
    """Runs one crawl cycle over a fixed set of category searches."""

    def __init__(
        self,
        llm: ILLMProvider,
        search: IWebSearchProvider,
        writer: IndexWriter,
        cache: IResultCache,
        normalizer: EventNormalizer,
        window_days: int = 7,
        categories: Sequence[CrawlCategory] = DEFAULT_CATEGORIES,
        clock: Clock = utc_now,
        max_turns: int = DEFAULT_MAX_TURNS,
    ) -> None:
        self._writer = writer
        self._cache = cache
        self._normalizer = normalizer
        self._window_days = window_days
        self._categories = tuple(categories)
        self._clock = clock
        self._conversation = ToolConversation(
            llm,
            SYSTEM_PROMPT,
            tools=[web_search_tool(search)],
            max_turns=max_turns,
            max_tokens=8000,
        )
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def crawl_window(self, window_days: int | None = None) -> tuple[date, date]:
        start = local_today(self._clock)
        days = self._window_days if window_days is None else window_days
        return start, start + timedelta(days=days)

    async def run(self, window_days: int | None = None) -> CrawlSummary:
        started = time.monotonic()
        window_start, window_end = self.crawl_window(window_days)
        self._logger.info(
            "crawl_started",
            window_start=window_start.isoformat(),
            window_end=window_end.isoformat(),
            jobs=len(self._categories),
        )

        jobs: list[CrawlJob] = []
        collected: list[dict[str, Any]] = []
        for category in self._categories:
            job, raws = await self._run_job(category, window_start, window_end)
            jobs.append(job)
            collected.extend(raws)

        unique, collapsed = dedupe(collected)

        rejected: dict[str, int] = {}
        accepted: list[dict[str, Any]] = []
        for raw in unique:
            decision = check_window(raw_date_value(raw), window_start, window_end)
            if decision.accepted:
                accepted.append(raw)
            else:
                rejected[decision.reason] = rejected.get(decision.reason, 0) + 1

        expires_at = start_of_day(window_end + timedelta(days=1))
        events = []
        skipped = 0
        for raw in accepted:
            event = self._normalizer.normalize(
                raw, EventOrigin.CRAWL, source=raw.get("_crawl_job", ""), expires_at=expires_at
            )
            if event is None:
                skipped += 1
            else:
                events.append(event)

        report = await self._writer.store_events(events)
        swept = await self._sweep_cache()

        summary = CrawlSummary(
            found=len(collected),
            unique=len(unique),
            duplicates_collapsed=collapsed,
            rejected=rejected,
            filtered=len(accepted),
            stored=report.created,
            updated=report.updated,
            errors=report.errors + skipped,
            cache_rows_swept=swept,
            jobs=jobs,
            window_start=window_start,
            window_end=window_end,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        self._logger.info(
            "crawl_complete",
            found=summary.found,
            unique=summary.unique,
            filtered=summary.filtered,
            stored=summary.stored,
            updated=summary.updated,
            errors=summary.errors,
            failed_jobs=sum(1 for j in jobs if j.status is CrawlJobStatus.FAILED),
            duration_ms=summary.duration_ms,
        )
        return summary

    async def _run_job(
        self, category: CrawlCategory, window_start: date, window_end: date
    ) -> tuple[CrawlJob, list[dict[str, Any]]]:
        job = CrawlJob(label=category.label, query=category.query, started_at=self._clock())
        prompt = (
            f"Find {category.query} happening between {window_start.isoformat()} "
            f"and {window_end.isoformat()}."
        )
        try:
            text = await self._conversation.run(prompt)
            payload = extract_json(text, expect=(list, dict))
        except KickflipError as exc:
            self._logger.warning("crawl_job_failed", label=category.label, error=str(exc))
            return (
                job.model_copy(
                    update={
                        "status": CrawlJobStatus.FAILED,
                        "error": 1,
                        "finished_at": self._clock(),
                        "error_message": str(exc),
                    }
                ),
                [],
            )

        if isinstance(payload, dict):
            payload = payload.get("events")
        if not isinstance(payload, list):
            payload = []
        raws = [
            {**item, "_crawl_job": category.label}
            for item in payload
            if isinstance(item, dict)
        ]
        self._logger.info("crawl_job_complete", label=category.label, found=len(raws))
        return (
            job.model_copy(
                update={
                    "status": CrawlJobStatus.COMPLETED,
                    "found": len(raws),
                    "finished_at": self._clock(),
                }
            ),
            raws,
        )

    async def _sweep_cache(self) -> int:
        try:
            return await self._cache.sweep_expired()
        except KickflipError as exc:
            self._logger.warning("cache_sweep_failed", error=str(exc))
            return 0

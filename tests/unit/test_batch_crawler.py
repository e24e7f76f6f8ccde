"""Unit tests for BatchCrawler and its dedupe / window helpers."""

from __future__ import annotations

import json
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from kickflip.interfaces.result_cache import IResultCache
from kickflip.models.conversation import LLMTurn
from kickflip.models.crawl import CrawlJobStatus
from kickflip.models.event import EventOrigin
from kickflip.services.batch_crawler import (
    DEFAULT_CATEGORIES,
    BatchCrawler,
    CrawlCategory,
    check_window,
    dedupe,
    raw_date_value,
)
from kickflip.services.event_normalizer import EventNormalizer
from kickflip.services.index_writer import IndexWriter, StoreReport
from kickflip.utils.clock import start_of_day
from kickflip.utils.errors import LLMError, StoreError

WINDOW_START = date(2026, 11, 1)
WINDOW_END = date(2026, 11, 8)


class TestCheckWindow:
    @pytest.mark.parametrize(
        ("value", "accepted", "reason"),
        [
            ("2026-11-01", True, "in-window"),
            ("2026-11-08", True, "in-window"),
            ("2026-11-09", False, "beyond window"),
            ("2026-10-31", False, "past"),
            ("See Website", True, "undated"),
            (None, True, "undated"),
            ("", True, "undated"),
            ("Sat, Nov 7", True, "unparseable-date"),
        ],
    )
    def test_decisions(self, value: object, accepted: bool, reason: str) -> None:
        decision = check_window(value, WINDOW_START, WINDOW_END)
        assert decision.accepted is accepted
        assert decision.reason == reason


class TestDedupe:
    def test_same_title_and_date_collapse(self) -> None:
        raws = [
            {"title": "Jazz Night", "startDate": "2026-11-03", "link": "first"},
            {"title": "  jazz night ", "startDate": "2026-11-03", "link": "second"},
            {"title": "Jazz Night", "startDate": "2026-11-04"},
        ]
        unique, collapsed = dedupe(raws)
        assert collapsed == 1
        assert [r.get("link") for r in unique] == ["first", None]

    def test_undated_duplicates_collapse(self) -> None:
        unique, collapsed = dedupe([{"title": "Art Walk"}, {"title": "ART WALK"}])
        assert len(unique) == 1
        assert collapsed == 1

    def test_same_title_on_different_iso_display_dates_stays_distinct(self, clock) -> None:
        raws = [
            {"title": "Jazz Night", "date": "2026-11-03"},
            {"title": "Jazz Night", "date": "2026-11-05"},
        ]
        unique, collapsed = dedupe(raws)

        assert collapsed == 0
        ids = [e.id for e in EventNormalizer(clock=clock).normalize_many(unique, EventOrigin.CRAWL)]
        assert ids == ["crawl-jazz-night-20261103", "crawl-jazz-night-20261105"]

    def test_iso_display_date_matches_structured_start_date(self) -> None:
        unique, collapsed = dedupe(
            [{"title": "Jazz Night", "startDate": "2026-11-03"}, {"title": "Jazz Night", "date": "2026-11-03"}]
        )
        assert len(unique) == 1
        assert collapsed == 1

    def test_raw_date_value_prefers_structured(self) -> None:
        assert raw_date_value({"startDate": "2026-11-03", "date": "Tue"}) == date(2026, 11, 3)
        assert raw_date_value({"startDate": "", "date": "See Website"}) == "See Website"
        assert raw_date_value({"startDate": "Sat, Nov 7"}) == "Sat, Nov 7"

    def test_window_uses_the_date_the_event_is_stored_with(self) -> None:
        raw = {"title": "Xmas Market", "startDate": "See Website", "date": "2026-12-25"}
        decision = check_window(raw_date_value(raw), WINDOW_START, WINDOW_END)
        assert decision.accepted is False
        assert decision.reason == "beyond window"


def _crawl_output(events: list[dict]) -> LLMTurn:
    return LLMTurn(text=json.dumps(events), stop_reason="end_turn")


@pytest.fixture
def writer() -> MagicMock:
    writer = MagicMock(spec=IndexWriter)
    writer.store_events = AsyncMock(
        side_effect=lambda events: StoreReport(submitted=len(events), created=len(events))
    )
    return writer


@pytest.fixture
def cache() -> MagicMock:
    cache = MagicMock(spec=IResultCache)
    cache.sweep_expired = AsyncMock(return_value=4)
    return cache


@pytest.fixture
def crawler(mock_llm, mock_search, writer, cache, clock) -> BatchCrawler:
    return BatchCrawler(
        mock_llm,
        mock_search,
        writer,
        cache,
        EventNormalizer(clock=clock),
        window_days=7,
        categories=[CrawlCategory("music", "live music"), CrawlCategory("art", "art shows")],
        clock=clock,
    )


class TestBatchCrawler:
    def test_default_categories(self) -> None:
        labels = [c.label for c in DEFAULT_CATEGORIES]
        assert len(labels) == 8
        assert "music" in labels and "comedy" in labels

    def test_window_is_seattle_today_plus_days(self, crawler: BatchCrawler) -> None:
        assert crawler.crawl_window() == (WINDOW_START, WINDOW_END)
        assert crawler.crawl_window(3) == (WINDOW_START, date(2026, 11, 4))

    @pytest.mark.asyncio
    async def test_full_cycle(self, crawler: BatchCrawler, mock_llm, writer, cache) -> None:
        mock_llm.converse = AsyncMock(
            side_effect=[
                _crawl_output(
                    [
                        {"title": "Jazz Night", "startDate": "2026-11-03", "category": "music"},
                        {"title": "Late Show", "startDate": "2026-11-09", "category": "music"},
                        {"title": "Ongoing Gallery", "date": "See Website", "category": "art"},
                    ]
                ),
                _crawl_output(
                    [
                        {"title": "jazz night", "startDate": "2026-11-03"},
                        {"title": "Old Show", "startDate": "2026-10-20"},
                    ]
                ),
            ]
        )

        summary = await crawler.run()

        assert summary.found == 5
        assert summary.unique == 4
        assert summary.duplicates_collapsed == 1
        assert summary.rejected == {"beyond window": 1, "past": 1}
        assert summary.filtered == 2
        assert summary.stored == 2
        assert summary.cache_rows_swept == 4
        assert summary.window_start == WINDOW_START
        assert summary.window_end == WINDOW_END
        assert [j.status for j in summary.jobs] == [CrawlJobStatus.COMPLETED] * 2
        assert [j.found for j in summary.jobs] == [3, 2]

        stored = writer.store_events.call_args.args[0]
        assert [e.id for e in stored] == [
            "crawl-jazz-night-20261103",
            "crawl-ongoing-gallery-undated",
        ]
        expected_expiry = start_of_day(date(2026, 11, 9))
        assert all(e.expires_at == expected_expiry for e in stored)
        assert all(e.origin is EventOrigin.CRAWL for e in stored)
        assert stored[0].crawl_source == "music"
        cache.sweep_expired.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_job_does_not_stop_the_cycle(self, crawler: BatchCrawler, mock_llm) -> None:
        mock_llm.converse = AsyncMock(
            side_effect=[
                LLMError("overloaded"),
                _crawl_output([{"title": "Gallery Walk", "startDate": "2026-11-05"}]),
            ]
        )
        summary = await crawler.run()
        music, art = summary.jobs
        assert music.status is CrawlJobStatus.FAILED
        assert music.error == 1
        assert "overloaded" in (music.error_message or "")
        assert art.status is CrawlJobStatus.COMPLETED
        assert summary.stored == 1

    @pytest.mark.asyncio
    async def test_unparseable_output_fails_the_job(self, crawler: BatchCrawler, mock_llm) -> None:
        mock_llm.converse = AsyncMock(
            side_effect=[LLMTurn(text="I found nothing, sorry."), _crawl_output([])]
        )
        summary = await crawler.run()
        assert summary.jobs[0].status is CrawlJobStatus.FAILED
        assert summary.jobs[1].status is CrawlJobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_deeply_nested_output_fails_only_that_job(
        self, crawler: BatchCrawler, mock_llm
    ) -> None:
        mock_llm.converse = AsyncMock(
            side_effect=[
                LLMTurn(text="[" * 100_000),
                _crawl_output([{"title": "Gallery Walk", "startDate": "2026-11-05"}]),
            ]
        )
        summary = await crawler.run()
        assert summary.jobs[0].status is CrawlJobStatus.FAILED
        assert summary.jobs[1].status is CrawlJobStatus.COMPLETED
        assert summary.stored == 1

    @pytest.mark.asyncio
    async def test_empty_cycle_succeeds(self, crawler: BatchCrawler, mock_llm, writer) -> None:
        mock_llm.converse = AsyncMock(return_value=_crawl_output([]))
        summary = await crawler.run()
        assert summary.found == 0
        assert summary.stored == 0
        assert summary.errors == 0
        writer.store_events.assert_awaited_once_with([])

    @pytest.mark.asyncio
    async def test_events_wrapped_in_object(self, crawler: BatchCrawler, mock_llm) -> None:
        mock_llm.converse = AsyncMock(
            return_value=LLMTurn(
                text='{"events": [{"title": "Comedy Hour", "startDate": "2026-11-02"}]}'
            )
        )
        summary = await crawler.run()
        assert summary.found == 2
        assert summary.unique == 1

    @pytest.mark.asyncio
    async def test_sweep_failure_is_tolerated(self, crawler: BatchCrawler, mock_llm, cache) -> None:
        mock_llm.converse = AsyncMock(return_value=_crawl_output([]))
        cache.sweep_expired = AsyncMock(side_effect=StoreError("locked"))
        summary = await crawler.run()
        assert summary.cache_rows_swept == 0

    @pytest.mark.asyncio
    async def test_window_override(self, crawler: BatchCrawler, mock_llm, writer) -> None:
        mock_llm.converse = AsyncMock(
            return_value=_crawl_output([{"title": "Jazz Night", "startDate": "2026-11-06"}])
        )
        summary = await crawler.run(window_days=3)
        assert summary.window_end == date(2026, 11, 4)
        assert summary.rejected == {"beyond window": 1}

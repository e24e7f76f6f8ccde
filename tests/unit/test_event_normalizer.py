"""Unit tests for EventNormalizer."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from kickflip.models.event import EventCategory, EventOrigin
from kickflip.services.event_normalizer import EventNormalizer
from kickflip.utils.clock import start_of_day


@pytest.fixture
def normalizer(clock) -> EventNormalizer:
    return EventNormalizer(clock=clock, undated_ttl_days=7)


class TestMakeId:
    def test_dated(self, normalizer: EventNormalizer) -> None:
        assert (
            normalizer.make_id(EventOrigin.CRAWL, "Jazz @ Triple Door", date(2026, 11, 3))
            == "crawl-jazz-triple-door-20261103"
        )

    def test_undated(self, normalizer: EventNormalizer) -> None:
        assert normalizer.make_id(EventOrigin.DISCOVERED, "Open Mic", None) == (
            "discovered-open-mic-undated"
        )


class TestExpiry:
    def test_expires_day_after_end(self, normalizer: EventNormalizer) -> None:
        assert normalizer.discovery_expiry(date(2026, 11, 3), date(2026, 11, 5)) == start_of_day(
            date(2026, 11, 6)
        )

    def test_single_day_event(self, normalizer: EventNormalizer) -> None:
        assert normalizer.discovery_expiry(date(2026, 11, 3), None) == start_of_day(
            date(2026, 11, 4)
        )

    def test_undated_uses_ttl(self, normalizer: EventNormalizer, fixed_now: datetime) -> None:
        assert normalizer.discovery_expiry(None, None) == fixed_now + timedelta(days=7)


class TestNormalize:
    def test_camel_case_payload(self, normalizer: EventNormalizer, fixed_now: datetime) -> None:
        event = normalizer.normalize(
            {
                "title": "Coffee Rave",
                "date": "Sat, Nov 7",
                "startDate": "2026-11-07",
                "startTime": "8 AM",
                "location": "Pioneer Square",
                "category": "PARTY",
                "vibeTags": "coffee, dance ,",
                "price": 15,
                "link": "https://example.com",
            },
            EventOrigin.DISCOVERED,
            source="coffee raves",
        )
        assert event is not None
        assert event.id == "discovered-coffee-rave-20261107"
        assert event.category is EventCategory.PARTY
        assert event.start_date == date(2026, 11, 7)
        assert event.start_time == "8 AM"
        assert event.vibe_tags == ["coffee", "dance"]
        assert event.price == "15"
        assert event.crawl_source == "coffee raves"
        assert event.crawled_at == fixed_now
        assert event.expires_at == start_of_day(date(2026, 11, 8))

    def test_snake_case_and_aliases(self, normalizer: EventNormalizer) -> None:
        event = normalizer.normalize(
            {"name": "Night Market", "start_date": "2026-11-06", "venue": "Chinatown", "url": "u"},
            EventOrigin.CRAWL,
        )
        assert event is not None
        assert event.title == "Night Market"
        assert event.location == "Chinatown"
        assert event.link == "u"

    def test_unknown_category_becomes_other(self, normalizer: EventNormalizer) -> None:
        event = normalizer.normalize({"title": "Thing", "category": "knitting"}, EventOrigin.USER)
        assert event is not None
        assert event.category is EventCategory.OTHER

    def test_iso_display_date_is_used_as_start(self, normalizer: EventNormalizer) -> None:
        event = normalizer.normalize({"title": "Show", "date": "2026-11-05"}, EventOrigin.CRAWL)
        assert event is not None
        assert event.start_date == date(2026, 11, 5)

    def test_end_before_start_is_dropped(self, normalizer: EventNormalizer) -> None:
        event = normalizer.normalize(
            {"title": "Show", "startDate": "2026-11-05", "endDate": "2026-11-01"},
            EventOrigin.CRAWL,
        )
        assert event is not None
        assert event.end_date is None

    def test_explicit_expiry_wins(self, normalizer: EventNormalizer) -> None:
        expires = datetime(2026, 11, 9, 8, 0, tzinfo=timezone.utc)
        event = normalizer.normalize(
            {"title": "Show", "startDate": "2026-11-02"}, EventOrigin.CRAWL, expires_at=expires
        )
        assert event is not None
        assert event.expires_at == expires

    @pytest.mark.parametrize("raw", [{}, {"title": "   "}, {"description": "no title"}])
    def test_missing_title_is_skipped(self, normalizer: EventNormalizer, raw: dict) -> None:
        assert normalizer.normalize(raw, EventOrigin.CRAWL) is None

    def test_normalize_many_skips_junk(self, normalizer: EventNormalizer) -> None:
        events = normalizer.normalize_many(
            [{"title": "A"}, "not a dict", None, {"title": ""}, {"title": "B"}],
            EventOrigin.DISCOVERED,
        )
        assert [e.title for e in events] == ["A", "B"]

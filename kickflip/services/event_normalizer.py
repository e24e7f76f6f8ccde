"""Turn raw model-emitted event dicts into validated :class:`Event` objects.

LLMs return event listings in whatever shape they like: camelCase or
snake_case keys, prices as numbers, tags as a comma string, a made-up
category.  The normalizer is the single place that absorbs that variety,
assigns stable ids and computes expiry, so the index only ever sees
clean rows.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Iterable

import structlog
from pydantic import ValidationError

from kickflip.models.event import Event, EventCategory, EventOrigin
from kickflip.utils.clock import Clock, start_of_day, utc_now
from kickflip.utils.logging import get_logger
from kickflip.utils.text import parse_event_date, slugify

_ID_PREFIX = {
    EventOrigin.CRAWL: "crawl",
    EventOrigin.DISCOVERED: "discovered",
    EventOrigin.USER: "user",
}


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value).strip()


def structured_start_date(raw: dict[str, Any]) -> date | None:
    """The event's first day: ``startDate``, else an ISO display ``date``."""
    return parse_event_date(_first(raw, "startDate", "start_date")) or parse_event_date(
        _as_text(_first(raw, "date"))
    )


class EventNormalizer:
    """Builds Events from loosely structured dicts.

    Parameters
    ----------
    clock:
        Current UTC time; used for ``crawled_at`` and undated expiry.
    undated_ttl_days:
        How long an event with no structured date stays searchable.
    """

    def __init__(self, clock: Clock = utc_now, undated_ttl_days: int = 7) -> None:
        self._clock = clock
        self._undated_ttl = timedelta(days=undated_ttl_days)
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def make_id(self, origin: EventOrigin, title: str, start_date: date | None) -> str:
        """``<origin>-<title-slug>-<yyyymmdd|undated>``."""
        stamp = start_date.strftime("%Y%m%d") if start_date else "undated"
        return f"{_ID_PREFIX[origin]}-{slugify(title)}-{stamp}"

    def discovery_expiry(self, start_date: date | None, end_date: date | None) -> datetime:
        """Expire the day after the event ends; undated events get a fixed horizon."""
        last_day = end_date or start_date
        if last_day is None:
            return self._clock() + self._undated_ttl
        return start_of_day(last_day + timedelta(days=1))

    def normalize(
        self,
        raw: dict[str, Any],
        origin: EventOrigin,
        source: str = "",
        expires_at: datetime | None = None,
    ) -> Event | None:
        """Return an Event, or ``None`` when *raw* has no usable title."""
        title = _as_text(_first(raw, "title", "name"))
        if not title:
            return None

        display_date = _as_text(_first(raw, "date"))
        start_date = structured_start_date(raw)
        end_date = parse_event_date(_first(raw, "endDate", "end_date"))
        if end_date is not None and start_date is not None and end_date < start_date:
            end_date = None

        now = self._clock()
        try:
            return Event(
                id=self.make_id(origin, title, start_date),
                title=title,
                category=EventCategory.coerce(raw.get("category")),
                date=display_date,
                start_date=start_date,
                end_date=end_date,
                start_time=_as_text(_first(raw, "startTime", "start_time", "time")),
                location=_as_text(_first(raw, "location", "venue")),
                description=_as_text(raw.get("description")),
                organizer=_as_text(raw.get("organizer")),
                vibe_tags=_first(raw, "vibeTags", "vibe_tags", "tags") or [],
                price=_as_text(raw.get("price")),
                link=_as_text(_first(raw, "link", "url")),
                origin=origin,
                crawl_source=source,
                expires_at=expires_at or self.discovery_expiry(start_date, end_date),
                crawled_at=now,
                updated_at=now,
            )
        except ValidationError as exc:
            self._logger.warning("event_normalize_failed", title=title, error=str(exc))
            return None

    def normalize_many(
        self,
        raws: Iterable[Any],
        origin: EventOrigin,
        source: str = "",
        expires_at: datetime | None = None,
    ) -> list[Event]:
        """Normalize every dict in *raws*, skipping anything unusable."""
        events: list[Event] = []
        for raw in raws:
            if not isinstance(raw, dict):
                continue
            event = self.normalize(raw, origin, source=source, expires_at=expires_at)
            if event is not None:
                events.append(event)
        return events

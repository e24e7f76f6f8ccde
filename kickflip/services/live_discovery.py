"""LiveDiscovery -- find fresh events on the open web for a query.

Used when the index has nothing convincing.  The LLM gets a
``web_search`` tool and a bounded number of turns
(:class:`~kickflip.pipeline.conversation.ToolConversation`), then answers
with JSON that is normalized into ``discovered`` events.

Malformed output degrades to :data:`NO_RESULTS_TEXT` with no events.
Provider failures (after one retry for transient ones) propagate: the
caller turns them into the generic "try again" response.
"""

from __future__ import annotations

from typing import Any

import structlog

from kickflip.interfaces.llm_provider import ILLMProvider
from kickflip.interfaces.web_search_provider import IWebSearchProvider
from kickflip.models.event import Event, EventCategory, EventOrigin
from kickflip.models.query import FormattedAnswer
from kickflip.pipeline.conversation import DEFAULT_MAX_TURNS, ToolConversation, web_search_tool
from kickflip.services.event_normalizer import EventNormalizer
from kickflip.utils.clock import SEATTLE_TZ, Clock, utc_now
from kickflip.utils.errors import JSONExtractionError
from kickflip.utils.json_extract import extract_json
from kickflip.utils.logging import get_logger
from kickflip.utils.text import truncate_words

NO_RESULTS_TEXT = "Nothing fresh turned up. Try another vibe?"
DEFAULT_FOUND_TEXT = "Fresh finds from around Seattle."
MAX_DISCOVERED_EVENTS = 10

_CATEGORIES = ", ".join(c.value for c in EventCategory)

SYSTEM_PROMPT = f"""\
You are Kickflip, Seattle's premier event discovery AI.

Use the web_search tool to find real, upcoming events in Seattle that match \
the user's request. Prefer official listings (venue sites, ticketing pages, \
local calendars). Never invent events.

When you are done searching, respond with ONLY a JSON object:
{{"text": "<reply, max 12 words>",
  "events": [{{"title": "", "date": "<display date>", "startDate": "YYYY-MM-DD",
              "endDate": "YYYY-MM-DD or empty", "startTime": "", "location": "",
              "description": "<one sentence>", "category": "<one of: {_CATEGORIES}>",
              "vibeTags": ["", ""], "price": "", "link": "", "organizer": ""}}]}}

Return at most {MAX_DISCOVERED_EVENTS} events. Use an empty list if nothing fits."""


def _split_payload(payload: Any) -> tuple[str, list[Any]]:
    if isinstance(payload, list):
        return "", payload
    text = payload.get("text") if isinstance(payload.get("text"), str) else ""
    events = payload.get("events")
    return text, events if isinstance(events, list) else []


class LiveDiscovery:
    """Runs the web-search conversation and normalizes what it finds."""

    def __init__(
        self,
        llm: ILLMProvider,
        search: IWebSearchProvider,
        normalizer: EventNormalizer,
        clock: Clock = utc_now,
        max_turns: int = DEFAULT_MAX_TURNS,
    ) -> None:
        self._normalizer = normalizer
        self._clock = clock
        self._conversation = ToolConversation(
            llm,
            SYSTEM_PROMPT,
            tools=[web_search_tool(search)],
            max_turns=max_turns,
        )
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def discover(self, query: str) -> FormattedAnswer:
        today = self._clock().astimezone(SEATTLE_TZ)
        prompt = (
            f"Today is {today.strftime('%A, %B %d, %Y')}.\n"
            f"Find Seattle events for: {query}"
        )
        final_text = await self._conversation.run(prompt)

        try:
            payload = extract_json(final_text, expect=(dict, list))
        except JSONExtractionError as exc:
            self._logger.warning("discovery_unparseable", query=query, error=str(exc))
            return FormattedAnswer(text=NO_RESULTS_TEXT, events=[])

        text, raw_events = _split_payload(payload)
        events = self._normalizer.normalize_many(
            raw_events[:MAX_DISCOVERED_EVENTS], EventOrigin.DISCOVERED, source=query
        )
        # Several listings of one event collapse onto the same id.
        unique: dict[str, Event] = {}
        for event in events:
            unique.setdefault(event.id, event)
        events = list(unique.values())
        self._logger.info(
            "discovery_complete", query=query, raw=len(raw_events), events=len(events)
        )
        if not events:
            return FormattedAnswer(text=NO_RESULTS_TEXT, events=[])
        return FormattedAnswer(
            text=truncate_words(text, 12) or DEFAULT_FOUND_TEXT, events=events
        )

"""Formatter -- ranks and trims retrieved events and writes the one-liner.

Given the user's query and up to ten candidate events from the index, the
LLM picks and orders the relevant ones and writes a short summary.  Any
failure (provider error, prose instead of JSON, ids that match nothing)
degrades to the unranked candidates plus :data:`FALLBACK_TEXT`; the
caller never sees an exception from :meth:`Formatter.format`.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

import structlog

from kickflip.interfaces.llm_provider import ILLMProvider
from kickflip.models.event import Event
from kickflip.models.query import FormattedAnswer
from kickflip.utils.clock import SEATTLE_TZ, Clock, utc_now
from kickflip.utils.errors import KickflipError
from kickflip.utils.json_extract import extract_json
from kickflip.utils.logging import get_logger
from kickflip.utils.retry import with_retry
from kickflip.utils.text import truncate_words

FALLBACK_TEXT = "Here's what's happening around Seattle."
MAX_SUMMARY_WORDS = 12
MAX_CANDIDATES = 10

SYSTEM_PROMPT = """\
You are Kickflip, Seattle's premier event discovery AI. You are upbeat, \
concise and you know the city.

You will receive a user's request and a JSON list of candidate events. \
Choose the events that genuinely match the request, best match first, and \
write a one-line reply of at most 12 words.

Respond with ONLY a JSON object, no prose, no code fences:
{"text": "<reply, max 12 words>", "events": ["<event id>", ...]}

Only use ids from the candidate list. If none fit well, return the closest \
few anyway."""


def _selected_ids(payload: Any) -> list[str]:
    raw = payload.get("events") if isinstance(payload, dict) else None
    if not isinstance(raw, list):
        return []
    ids: list[str] = []
    for item in raw:
        if isinstance(item, str):
            ids.append(item)
        elif isinstance(item, dict) and isinstance(item.get("id"), str):
            ids.append(item["id"])
    return ids


class Formatter:
    """Re-ranks candidate events with an LLM and writes the reply text."""

    def __init__(self, llm: ILLMProvider, clock: Clock = utc_now) -> None:
        self._llm = llm
        self._clock = clock
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def build_prompt(self, query: str, candidates: Sequence[Event]) -> str:
        now = self._clock().astimezone(SEATTLE_TZ)
        return (
            f"Current time in Seattle: {now.strftime('%A, %B %d, %Y %I:%M %p')}\n"
            f"User request: {query}\n\n"
            f"Candidate events:\n{json.dumps([e.to_candidate() for e in candidates], indent=1)}"
        )

    async def format(self, query: str, candidates: Sequence[Event]) -> FormattedAnswer:
        """Return the model's pick of *candidates* plus a short reply."""
        candidates = list(candidates)[:MAX_CANDIDATES]
        fallback = FormattedAnswer(text=FALLBACK_TEXT, events=candidates)

        try:
            raw = await with_retry(
                lambda: self._llm.complete(
                    SYSTEM_PROMPT,
                    self.build_prompt(query, candidates),
                    temperature=0.3,
                    max_tokens=600,
                ),
                label="format_results",
            )
            payload = extract_json(raw, expect=dict)
        except KickflipError as exc:
            self._logger.warning(
                "formatter_fallback", reason=type(exc).__name__, error=str(exc)
            )
            return fallback

        by_id = {event.id: event for event in candidates}
        chosen: list[Event] = []
        for event_id in _selected_ids(payload):
            event = by_id.pop(event_id, None)
            if event is not None:
                chosen.append(event)

        text = payload.get("text")
        text = truncate_words(text.strip(), MAX_SUMMARY_WORDS) if isinstance(text, str) else ""
        if not chosen:
            self._logger.info("formatter_no_valid_ids", candidates=len(candidates))
            chosen = candidates

        self._logger.info(
            "formatter_complete", candidates=len(candidates), selected=len(chosen)
        )
        return FormattedAnswer(text=text or FALLBACK_TEXT, events=chosen)

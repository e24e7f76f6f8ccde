"""Kickflip domain models -- re-exports all public model classes.

Submodules by concern:
    - event.py         -- Event, categories, scored search results
    - cache.py         -- result-cache entries
    - conversation.py  -- provider-neutral tool-calling messages
    - crawl.py         -- crawl jobs, window decisions, run summaries
    - query.py         -- pipeline thresholds and results
"""

from __future__ import annotations

from kickflip.models.cache import CacheEntry
from kickflip.models.conversation import ConversationMessage, LLMTurn, ToolCall, ToolSpec
from kickflip.models.crawl import (
    BackfillSummary,
    CrawlJob,
    CrawlJobStatus,
    CrawlSummary,
    WindowDecision,
)
from kickflip.models.event import Event, EventCategory, EventOrigin, ScoredEvent, UpsertOutcome
from kickflip.models.query import AnswerSource, FormattedAnswer, QueryResult, RetrievalThresholds

__all__ = [
    "AnswerSource",
    "BackfillSummary",
    "CacheEntry",
    "ConversationMessage",
    "CrawlJob",
    "CrawlJobStatus",
    "CrawlSummary",
    "Event",
    "EventCategory",
    "EventOrigin",
    "FormattedAnswer",
    "LLMTurn",
    "QueryResult",
    "RetrievalThresholds",
    "ScoredEvent",
    "ToolCall",
    "ToolSpec",
    "UpsertOutcome",
    "WindowDecision",
]

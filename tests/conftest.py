"""Shared pytest fixtures for the Kickflip test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from kickflip.interfaces.embedding_provider import IEmbeddingProvider
from kickflip.interfaces.llm_provider import ILLMProvider
from kickflip.interfaces.web_search_provider import IWebSearchProvider, SearchResult
from kickflip.models.event import Event, EventCategory, EventOrigin


class FakeClock:
    """Callable clock that tests move forward explicitly."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


@pytest.fixture
def fixed_now() -> datetime:
    """Sunday 1 Nov 2026, 10:00 in Seattle (18:00 UTC)."""
    return datetime(2026, 11, 1, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now: datetime) -> FakeClock:
    return FakeClock(fixed_now)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for Events with sensible defaults."""

    def _make(event_id: str = "user-jazz-night-20261103", **overrides: Any) -> Event:
        fields: dict[str, Any] = {
            "id": event_id,
            "title": event_id.replace("-", " ").title(),
            "category": EventCategory.MUSIC,
            "date": "Tue, Nov 3",
            "location": "Capitol Hill",
            "description": "Live sets all night.",
            "vibe_tags": ["jazz", "late night"],
            "origin": EventOrigin.USER,
        }
        fields.update(overrides)
        return Event(**fields)

    return _make


@pytest.fixture
def sample_events(make_event: Callable[..., Event]) -> list[Event]:
    return [
        make_event("user-jazz-night-20261103", title="Jazz Night"),
        make_event("user-coffee-rave-20261104", title="Coffee Rave", category="party"),
        make_event("user-gallery-walk-20261105", title="Gallery Walk", category="art"),
        make_event("user-trail-run-20261106", title="Trail Run", category="outdoor"),
    ]


# ---------------------------------------------------------------------------
# Provider mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm() -> MagicMock:
    llm = MagicMock(spec=ILLMProvider)
    llm.complete = AsyncMock(return_value='{"text": "ok", "events": []}')
    llm.converse = AsyncMock()
    llm.get_provider_name.return_value = "mock-llm"
    llm.is_available.return_value = True
    return llm


@pytest.fixture
def mock_embedder() -> MagicMock:
    embedder = MagicMock(spec=IEmbeddingProvider)
    embedder.embed = AsyncMock(side_effect=lambda texts, input_type=None: [[0.1, 0.2, 0.3] for _ in texts])
    embedder.embed_single = AsyncMock(return_value=[0.1, 0.2, 0.3])
    embedder.get_dimension.return_value = 3
    embedder.max_batch_size.return_value = 100
    embedder.get_provider_name.return_value = "mock-embedder"
    embedder.is_available.return_value = True
    return embedder


@pytest.fixture
def mock_search() -> MagicMock:
    search = MagicMock(spec=IWebSearchProvider)
    search.search = AsyncMock(
        return_value=[
            SearchResult(
                title="Jazz at the Royal Room",
                url="https://theroyalroom.com/events",
                snippet="Nightly jazz in Columbia City.",
            )
        ]
    )
    search.get_provider_name.return_value = "mock-search"
    search.is_available.return_value = True
    return search


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "kickflip.db"

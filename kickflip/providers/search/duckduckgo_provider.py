"""DuckDuckGo web-search provider implementing IWebSearchProvider.

Uses the duckduckgo_search library for free, keyless web searches.  The
synchronous ``DDGS`` client is wrapped in ``asyncio.to_thread`` so the
event loop is never blocked.  Failures (rate limits included) surface as
:class:`SearchError`; the tool-calling conversation turns them into an
error tool result and the model carries on.
"""

from __future__ import annotations

import asyncio

import structlog
from duckduckgo_search import DDGS

from kickflip.interfaces.web_search_provider import IWebSearchProvider, SearchResult
from kickflip.utils.errors import SearchError

logger = structlog.get_logger(logger_name=__name__)


class DuckDuckGoSearchProvider(IWebSearchProvider):
    """DuckDuckGo web-search provider.

    *region* biases results toward a locale (``"us-en"`` keeps Seattle
    queries from drifting to other countries).
    """

    def __init__(self, region: str = "us-en") -> None:
        self._region = region
        logger.info("duckduckgo_provider_initialized", region=region)

    async def search(self, query: str, num_results: int = 8) -> list[SearchResult]:
        """Execute a DuckDuckGo web search and return results."""
        try:
            raw_results = await asyncio.to_thread(self._sync_search, query, num_results)
        except Exception as exc:  # noqa: BLE001 -- DDG raises its own exception types
            logger.warning("duckduckgo_search_failed", query=query, error=str(exc))
            raise SearchError(
                message=f"DuckDuckGo search failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        results = [
            SearchResult(
                title=item.get("title", ""),
                url=item.get("href", item.get("url", "")),
                snippet=item.get("body"),
            )
            for item in raw_results or []
        ]
        logger.debug("duckduckgo_search_complete", query=query, result_count=len(results))
        return results

    def _sync_search(self, query: str, max_results: int) -> list[dict]:
        """Run the synchronous DDGS search (called via to_thread)."""
        with DDGS() as ddgs:
            return list(ddgs.text(query, region=self._region, max_results=max_results))

    def get_provider_name(self) -> str:
        return "duckduckgo"

    def is_available(self) -> bool:
        """DuckDuckGo is always available (no API key required)."""
        return True

"""Abstract base class for web-search service providers.

Backs the ``web_search`` tool that live discovery and the batch crawler
hand to the LLM.  Implementations may wrap DuckDuckGo, Brave, SearXNG or
any other engine; the conversation layer only sees :class:`SearchResult`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


# Plain frozen dataclass: a simple value object with no validation needs.
@dataclass(frozen=True)
class SearchResult:
    """A single web-search result.

    Attributes
    ----------
    title:
        The page title as returned by the search engine.
    url:
        The canonical URL of the result page.
    snippet:
        An optional text excerpt from the result.
    """

    title: str
    url: str
    snippet: str | None = None

    def to_tool_payload(self) -> dict[str, str]:
        return {"title": self.title, "url": self.url, "snippet": self.snippet or ""}


# Concrete implementation: DuckDuckGoSearchProvider (kickflip/providers/search/)
class IWebSearchProvider(ABC):
    """Contract for the web search used during event discovery."""

    @abstractmethod
    async def search(self, query: str, num_results: int = 8) -> list[SearchResult]:
        """Execute a web search and return the top results.

        Parameters
        ----------
        query:
            The search query string.
        num_results:
            Maximum number of results to return.

        Raises
        ------
        kickflip.utils.errors.SearchError
            If the search backend fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"duckduckgo"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable."""

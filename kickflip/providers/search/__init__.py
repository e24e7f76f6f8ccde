"""Web-search provider adapters."""

from kickflip.providers.search.duckduckgo_provider import DuckDuckGoSearchProvider

__all__ = ["DuckDuckGoSearchProvider"]

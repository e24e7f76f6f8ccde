"""Utility modules for Kickflip.

- **errors** -- Domain exception hierarchy rooted at KickflipError.
- **json_extract** -- First-balanced-JSON-value extraction from model output.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **retry** -- One fixed-delay retry for transient provider failures.
- **text** -- Query normalization, cache keys, slugs and date parsing.
"""

from kickflip.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    EmbeddingError,
    JSONExtractionError,
    KickflipError,
    LLMError,
    ProviderUnavailableError,
    RateLimitError,
    SearchError,
    StoreError,
)
from kickflip.utils.json_extract import extract_json
from kickflip.utils.logging import configure_logging, get_logger
from kickflip.utils.retry import with_retry
from kickflip.utils.text import normalize_query, parse_event_date, query_cache_key, slugify

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "EmbeddingError",
    "JSONExtractionError",
    "KickflipError",
    "LLMError",
    "ProviderUnavailableError",
    "RateLimitError",
    "SearchError",
    "StoreError",
    "configure_logging",
    "extract_json",
    "get_logger",
    "normalize_query",
    "parse_event_date",
    "query_cache_key",
    "slugify",
    "with_retry",
]

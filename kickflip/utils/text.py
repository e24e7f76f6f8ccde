"""Small text helpers shared by the cache, the normalizer and the crawler."""

from __future__ import annotations

import hashlib
import re
import unicodedata
from datetime import date, datetime

_WHITESPACE_RE = re.compile(r"\s+")
_SLUG_RE = re.compile(r"[^a-z0-9]+")
_ISO_DATE_RE = re.compile(r"^\s*(\d{4}-\d{2}-\d{2})")

# Placeholder strings the crawler sees in place of a real date.
UNDATED_MARKERS = frozenset({"", "see website", "see calendar", "tba", "tbd", "ongoing", "various"})


def normalize_query(query: str) -> str:
    """Case-fold, trim and collapse internal whitespace.

    ``"  Coffee   Raves? "`` and ``"coffee raves?"`` normalize identically.
    """
    return _WHITESPACE_RE.sub(" ", query.strip()).casefold()


def query_cache_key(query: str) -> str:
    """SHA-256 hex digest of the normalized query."""
    return hashlib.sha256(normalize_query(query).encode("utf-8")).hexdigest()


def slugify(text: str, max_length: int = 48) -> str:
    """ASCII slug for building stable event ids (``"Jazz @ Triple Door"`` -> ``"jazz-triple-door"``)."""
    ascii_text = (
        unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    )
    slug = _SLUG_RE.sub("-", ascii_text.lower()).strip("-")
    return slug[:max_length].rstrip("-") or "event"


def parse_event_date(value: object) -> date | None:
    """Parse a structured start/end date, or return ``None``.

    Accepts ``date`` / ``datetime`` objects and strings that begin with an
    ISO ``YYYY-MM-DD`` date (``"2026-03-01"``, ``"2026-03-01T19:00"``).
    Anything else -- ``"See Website"``, ``"Sun, Mar 1"``, ``None`` -- is
    treated as undated.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    match = _ISO_DATE_RE.match(value)
    if not match:
        return None
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        return None


def is_undated_marker(value: object) -> bool:
    """Return ``True`` for missing dates and known placeholders like ``"See Website"``."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip().lower() in UNDATED_MARKERS


def truncate_words(text: str, max_words: int) -> str:
    """Keep at most *max_words* whitespace-separated words."""
    words = text.split()
    if len(words) <= max_words:
        return " ".join(words)
    return " ".join(words[:max_words])

"""Custom exception hierarchy for Kickflip.

All application exceptions inherit from :class:`KickflipError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "anthropic", "voyage", "sqlite") caused the failure.

The hierarchy is organized by the concern that failed:

    KickflipError  (base -- catch-all for any Kickflip error)
    +-- LLMError                 (any LLM API call failure)
    +-- EmbeddingError           (embedding provider failure)
    +-- StoreError               (event index / result cache failure)
    +-- SearchError              (web-search tool failure)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- RateLimitError           (provider rate-limit exceeded)
    +-- ConfigurationError       (startup / missing config)
    +-- AuthenticationError      (bad bearer secret or identity token)
    +-- JSONExtractionError      (no JSON value in model output)

The split matters for the retry policy: only
:class:`ProviderUnavailableError` and :class:`RateLimitError` are
considered transient (see :mod:`kickflip.utils.retry`).  Everything else
is either recovered locally or surfaced as-is.
"""


class KickflipError(Exception):
    """Base exception for all Kickflip errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[voyage] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------

class LLMError(KickflipError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(KickflipError):
    """Raised when the embedding provider fails to return vectors."""

    def __init__(
        self,
        message: str = "Embedding request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StoreError(KickflipError):
    """Raised when the event index or result cache cannot be read or written.

    A duplicate-key condition on upsert is *not* a StoreError -- upserts
    are idempotent by id and a conflict counts as success.
    """

    def __init__(
        self,
        message: str = "Datastore operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SearchError(KickflipError):
    """Raised when the web-search tool fails."""

    def __init__(
        self,
        message: str = "Web search failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Transient errors (retried once by kickflip.utils.retry)
# ---------------------------------------------------------------------------

class ProviderUnavailableError(KickflipError):
    """Raised when an external service is unreachable or times out."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(KickflipError):
    """Raised when an API rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration / boundary errors
# ---------------------------------------------------------------------------

class ConfigurationError(KickflipError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AuthenticationError(KickflipError):
    """Raised when a bearer secret or identity token is rejected.

    Terminal: the API layer maps it to 401 and never retries.
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class JSONExtractionError(KickflipError):
    """Raised when no parseable JSON value can be located in model output.

    Callers recover locally (fallback text + unranked candidates); this
    error never reaches the HTTP layer.
    """

    def __init__(
        self,
        message: str = "Could not locate JSON in model output",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)

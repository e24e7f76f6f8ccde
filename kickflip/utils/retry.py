"""Fixed-delay retry for transient provider failures.

Only network-shaped failures are retried -- a provider that is briefly
unreachable or rate limiting.  Malformed model output, auth failures and
validation errors are never retried here; they either recover locally or
surface immediately.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from kickflip.utils.errors import ProviderUnavailableError, RateLimitError
from kickflip.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    ProviderUnavailableError,
    RateLimitError,
)

DEFAULT_RETRY_DELAY = 0.8  # seconds


async def with_retry(
    operation: Callable[[], Awaitable[_T]],
    *,
    label: str,
    retries: int = 1,
    delay: float = DEFAULT_RETRY_DELAY,
    retry_on: tuple[type[BaseException], ...] = TRANSIENT_ERRORS,
) -> _T:
    """Await ``operation()``, retrying up to *retries* times on transient errors.

    Parameters
    ----------
    operation:
        Zero-argument factory returning a fresh awaitable per attempt
        (a coroutine object cannot be awaited twice).
    label:
        Short name for log lines, e.g. ``"embed_query"``.
    retries:
        Extra attempts after the first.  The pipeline uses exactly one.
    delay:
        Seconds to sleep between attempts.
    retry_on:
        Exception types considered transient.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= retries:
                raise
            attempt += 1
            _logger.warning(
                "transient_failure_retrying",
                operation=label,
                attempt=attempt,
                delay_s=delay,
                error=str(exc),
            )
            await asyncio.sleep(delay)

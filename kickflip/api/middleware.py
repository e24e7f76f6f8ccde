"""API middleware -- CORS, request logging, and error handling.

Starlette middleware is a stack (last added, first executed).  In
``main.py``::

    app.add_middleware(ErrorHandlingMiddleware)    # inner
    app.add_middleware(RequestLoggingMiddleware)   # outer

so the request log always records the final status code, including
responses produced by ErrorHandlingMiddleware.
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from kickflip.api.schemas import ErrorResponse
from kickflip.utils.errors import AuthenticationError, ConfigurationError, KickflipError
from kickflip.utils.logging import bind_request_context, clear_request_context, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

INTERNAL_ERROR_DETAIL = "An internal error occurred."


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware.  Defaults to ``["*"]`` when no origin is configured."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Credentials cannot be combined with a wildcard origin.
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration.

    Binds a request id into structlog's context so every log line emitted
    while handling the request carries it, and echoes it back in the
    ``X-Request-ID`` response header.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        bind_request_context(request_id=request_id, path=str(request.url.path))
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                status=status_code,
                duration_ms=duration_ms,
            )
            clear_request_context()


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert stray ``KickflipError`` subclasses into sanitized JSON.

    - :class:`AuthenticationError` -> 401
    - :class:`ConfigurationError`  -> 503
    - any other KickflipError      -> 500

    Details go to the log. A 500 carries only the error type and a fixed detail.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except AuthenticationError as exc:
            _logger.info("authentication_failed", message=exc.message)
            body = ErrorResponse(error="unauthorized", detail=exc.message)
            return JSONResponse(status_code=401, content=body.model_dump())
        except ConfigurationError as exc:
            _logger.warning("service_not_configured", message=exc.message)
            body = ErrorResponse(error="service unavailable", detail=exc.message)
            return JSONResponse(status_code=503, content=body.model_dump())
        except KickflipError as exc:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            body = ErrorResponse(error=type(exc).__name__, detail=INTERNAL_ERROR_DETAIL)
            return JSONResponse(status_code=500, content=body.model_dump())

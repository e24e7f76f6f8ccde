"""Kickflip API layer -- routes, schemas, auth and middleware."""

from kickflip.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from kickflip.api.routes import router

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
]

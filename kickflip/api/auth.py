"""Shared-secret bearer auth for the cron-triggered endpoints."""

from __future__ import annotations

import secrets

from fastapi import Request

from kickflip.utils.errors import AuthenticationError


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_cron_secret(request: Request) -> None:
    """FastAPI dependency: reject the request unless it carries the cron secret.

    With no secret configured every request is rejected.
    """
    expected = request.app.state.settings.cron_secret
    supplied = bearer_token(request.headers.get("authorization"))
    if not expected or supplied is None:
        raise AuthenticationError(message="Missing or invalid bearer token")
    if not secrets.compare_digest(supplied.encode(), expected.encode()):
        raise AuthenticationError(message="Missing or invalid bearer token")

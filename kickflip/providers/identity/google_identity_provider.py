"""Google Sign-In ID token verification.

Validates a client-supplied ID token against Google's ``tokeninfo``
endpoint over an injected ``httpx.AsyncClient`` and checks that it was
issued for this app (``aud``) by Google (``iss``).  Successful lookups are
memoized in a ``cachetools.TTLCache`` so a client that re-sends the same
token does not cost another round trip.
"""

from __future__ import annotations

import time

import httpx
import structlog
from cachetools import TTLCache

from kickflip.interfaces.identity_provider import IIdentityProvider, VerifiedUser
from kickflip.utils.errors import AuthenticationError, ProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
_VALID_ISSUERS = frozenset({"accounts.google.com", "https://accounts.google.com"})


class GoogleIdentityProvider(IIdentityProvider):
    """Verifies Google ID tokens for one OAuth client id."""

    def __init__(
        self,
        client_id: str,
        http_client: httpx.AsyncClient | None = None,
        cache_ttl: int = 300,
    ) -> None:
        self._client_id = client_id
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(10.0))
        self._verified: TTLCache[str, VerifiedUser] = TTLCache(maxsize=1024, ttl=cache_ttl)

    async def verify(self, token: str) -> VerifiedUser:
        if not self._client_id:
            raise AuthenticationError(
                message="Google sign-in is not configured", provider_name="google"
            )
        cached = self._verified.get(token)
        if cached is not None:
            return cached

        try:
            response = await self._client.get(_TOKENINFO_URL, params={"id_token": token})
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                message=f"Google tokeninfo unreachable: {exc}", provider_name="google"
            ) from exc

        if response.status_code != 200:
            logger.info("google_token_rejected", status=response.status_code)
            raise AuthenticationError(message="Invalid Google token", provider_name="google")

        try:
            claims = response.json()
        except ValueError as exc:
            raise AuthenticationError(
                message="Unreadable tokeninfo response", provider_name="google"
            ) from exc

        if claims.get("aud") != self._client_id:
            raise AuthenticationError(message="Token audience mismatch", provider_name="google")
        if claims.get("iss") not in _VALID_ISSUERS:
            raise AuthenticationError(message="Token issuer mismatch", provider_name="google")
        try:
            expires = int(claims.get("exp", 0))
        except (TypeError, ValueError):
            expires = 0
        if expires and expires < time.time():
            raise AuthenticationError(message="Token expired", provider_name="google")
        if not claims.get("sub"):
            raise AuthenticationError(message="Token has no subject", provider_name="google")

        user = VerifiedUser(
            id=str(claims["sub"]),
            name=claims.get("name") or claims.get("email", ""),
            email=claims.get("email", ""),
            avatar=claims.get("picture", ""),
        )
        self._verified[token] = user
        logger.info("google_user_verified", user_id=user.id)
        return user

    def get_provider_name(self) -> str:
        return "google"

    def is_available(self) -> bool:
        return bool(self._client_id)

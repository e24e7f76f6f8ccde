"""Unit tests for Google token verification and DuckDuckGo search."""

from __future__ import annotations

import time
from unittest.mock import patch

import httpx
import pytest

from kickflip.interfaces.identity_provider import VerifiedUser
from kickflip.providers.identity.google_identity_provider import GoogleIdentityProvider
from kickflip.providers.search.duckduckgo_provider import DuckDuckGoSearchProvider
from kickflip.utils.errors import AuthenticationError, ProviderUnavailableError, SearchError

CLIENT_ID = "kickflip-web.apps.googleusercontent.com"


def _claims(**overrides) -> dict:
    claims = {
        "aud": CLIENT_ID,
        "iss": "https://accounts.google.com",
        "sub": "1234567890",
        "email": "rider@example.com",
        "name": "Rider",
        "picture": "https://example.com/avatar.png",
        "exp": str(int(time.time()) + 3600),
    }
    claims.update(overrides)
    return claims


def _provider(handler, calls: list[str] | None = None) -> GoogleIdentityProvider:
    def counting(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request.url.params.get("id_token", ""))
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(counting))
    return GoogleIdentityProvider(CLIENT_ID, http_client=client)


class TestGoogleIdentityProvider:
    @pytest.mark.asyncio
    async def test_valid_token(self) -> None:
        provider = _provider(lambda request: httpx.Response(200, json=_claims()))
        user = await provider.verify("good-token")
        assert user == VerifiedUser(
            id="1234567890",
            name="Rider",
            email="rider@example.com",
            avatar="https://example.com/avatar.png",
        )

    @pytest.mark.asyncio
    async def test_name_falls_back_to_email(self) -> None:
        provider = _provider(lambda request: httpx.Response(200, json=_claims(name="")))
        assert (await provider.verify("t")).name == "rider@example.com"

    @pytest.mark.asyncio
    async def test_verified_tokens_are_memoized(self) -> None:
        calls: list[str] = []
        provider = _provider(lambda request: httpx.Response(200, json=_claims()), calls)
        await provider.verify("good-token")
        await provider.verify("good-token")
        assert calls == ["good-token"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(400, json={"error": "invalid_token"}),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json=_claims(aud="someone-else")),
            httpx.Response(200, json=_claims(iss="evil.example.com")),
            httpx.Response(200, json=_claims(exp="1000")),
            httpx.Response(200, json=_claims(sub="")),
        ],
    )
    async def test_rejections(self, response: httpx.Response) -> None:
        provider = _provider(lambda request: response)
        with pytest.raises(AuthenticationError):
            await provider.verify("bad-token")

    @pytest.mark.asyncio
    async def test_unconfigured_client_id(self) -> None:
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(200, json=_claims())

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = GoogleIdentityProvider("", http_client=client)
        assert provider.is_available() is False
        with pytest.raises(AuthenticationError):
            await provider.verify("token")
        assert calls == []

    @pytest.mark.asyncio
    async def test_network_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("slow", request=request)

        with pytest.raises(ProviderUnavailableError):
            await _provider(handler).verify("token")


class TestDuckDuckGoSearchProvider:
    @pytest.mark.asyncio
    async def test_results_are_mapped(self) -> None:
        provider = DuckDuckGoSearchProvider()
        raw = [
            {"title": "Seattle Jazz", "href": "https://jazz.example.com", "body": "Tonight"},
            {"title": "No body", "url": "https://other.example.com"},
        ]
        with patch.object(provider, "_sync_search", return_value=raw) as sync:
            results = await provider.search("jazz seattle", num_results=5)
        sync.assert_called_once_with("jazz seattle", 5)
        assert [r.url for r in results] == ["https://jazz.example.com", "https://other.example.com"]
        assert results[0].to_tool_payload() == {
            "title": "Seattle Jazz",
            "url": "https://jazz.example.com",
            "snippet": "Tonight",
        }
        assert results[1].snippet is None

    @pytest.mark.asyncio
    async def test_failure_raises_search_error(self) -> None:
        provider = DuckDuckGoSearchProvider()
        with patch.object(provider, "_sync_search", side_effect=RuntimeError("202 Ratelimit")):
            with pytest.raises(SearchError):
                await provider.search("jazz")

    def test_metadata(self) -> None:
        provider = DuckDuckGoSearchProvider()
        assert provider.get_provider_name() == "duckduckgo"
        assert provider.is_available() is True

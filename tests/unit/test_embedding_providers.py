"""Unit tests for embedding provider adapters -- Voyage and OpenAI."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from kickflip.config.settings import Settings
from kickflip.interfaces.embedding_provider import EmbeddingInputType
from kickflip.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from kickflip.providers.embedding.voyage_embedding_provider import VoyageEmbeddingProvider
from kickflip.utils.errors import EmbeddingError, ProviderUnavailableError, RateLimitError


def _settings(**overrides) -> Settings:
    defaults = {"voyage_api_key": "pa-test", "openai_api_key": "sk-test", "openai_base_url": ""}
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def _voyage(handler) -> VoyageEmbeddingProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return VoyageEmbeddingProvider(_settings(), http_client=client)


def _echo_handler(seen: list[dict]):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append({"body": body, "auth": request.headers.get("authorization")})
        # Voyage may return items out of order; the index field is authoritative.
        data = [
            {"index": i, "embedding": [float(i), 1.0]} for i in range(len(body["input"]))
        ]
        return httpx.Response(200, json={"data": list(reversed(data)), "usage": {"total_tokens": 7}})

    return handler


# ======================================================================
# Voyage
# ======================================================================


class TestVoyageEmbeddingProvider:
    def test_metadata(self) -> None:
        provider = VoyageEmbeddingProvider(_settings(), http_client=MagicMock())
        assert provider.get_provider_name() == "voyage"
        assert provider.get_dimension() == 512
        assert provider.max_batch_size() == 100
        assert provider.is_available() is True

    @pytest.mark.asyncio
    async def test_document_embedding(self) -> None:
        seen: list[dict] = []
        vectors = await _voyage(_echo_handler(seen)).embed(["a", "b", "c"])
        assert vectors == [[0.0, 1.0], [1.0, 1.0], [2.0, 1.0]]
        assert seen[0]["body"] == {
            "input": ["a", "b", "c"],
            "model": "voyage-3-lite",
            "input_type": "document",
        }
        assert seen[0]["auth"] == "Bearer pa-test"

    @pytest.mark.asyncio
    async def test_query_embedding(self) -> None:
        seen: list[dict] = []
        vector = await _voyage(_echo_handler(seen)).embed_single("jazz tonight")
        assert vector == [0.0, 1.0]
        assert seen[0]["body"]["input_type"] == "query"

    @pytest.mark.asyncio
    async def test_large_input_is_batched(self) -> None:
        seen: list[dict] = []
        vectors = await _voyage(_echo_handler(seen)).embed(
            [f"t{n}" for n in range(150)], EmbeddingInputType.DOCUMENT
        )
        assert len(vectors) == 150
        assert [len(s["body"]["input"]) for s in seen] == [100, 50]

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        provider = _voyage(lambda request: httpx.Response(500))
        assert await provider.embed([]) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "expected"),
        [(429, RateLimitError), (503, ProviderUnavailableError), (400, EmbeddingError)],
    )
    async def test_status_mapping(self, status: int, expected: type) -> None:
        provider = _voyage(lambda request: httpx.Response(status, text="nope"))
        with pytest.raises(expected):
            await provider.embed(["a"])

    @pytest.mark.asyncio
    async def test_transport_error_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ProviderUnavailableError):
            await _voyage(handler).embed(["a"])

    @pytest.mark.asyncio
    async def test_malformed_body(self) -> None:
        provider = _voyage(lambda request: httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(EmbeddingError):
            await provider.embed(["a"])

    @pytest.mark.asyncio
    async def test_count_mismatch(self) -> None:
        provider = _voyage(
            lambda request: httpx.Response(200, json={"data": [{"index": 0, "embedding": [1.0]}]})
        )
        with pytest.raises(EmbeddingError):
            await provider.embed(["a", "b"])


# ======================================================================
# OpenAI
# ======================================================================


_OPENAI_PATCH = "kickflip.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"


class TestOpenAIEmbeddingProvider:
    def test_metadata(self) -> None:
        with patch(_OPENAI_PATCH):
            provider = OpenAIEmbeddingProvider(_settings())
        assert provider.get_dimension() == 1536
        assert provider.max_batch_size() == 2048
        assert provider.get_provider_name() == "openai_embedding"

    @pytest.mark.asyncio
    async def test_embed(self) -> None:
        response = MagicMock()
        response.data = [MagicMock(embedding=[0.1, 0.2]), MagicMock(embedding=[0.3, 0.4])]
        response.usage = MagicMock(total_tokens=4)
        client = AsyncMock()
        client.embeddings.create = AsyncMock(return_value=response)

        with patch(_OPENAI_PATCH, return_value=client):
            vectors = await OpenAIEmbeddingProvider(_settings()).embed(["a", "b"])

        assert vectors == [[0.1, 0.2], [0.3, 0.4]]
        assert client.embeddings.create.call_args.kwargs["model"] == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_rate_limit(self) -> None:
        request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
        client = AsyncMock()
        client.embeddings.create = AsyncMock(
            side_effect=openai.RateLimitError(
                "slow down", response=httpx.Response(429, request=request), body=None
            )
        )
        with patch(_OPENAI_PATCH, return_value=client):
            with pytest.raises(RateLimitError):
                await OpenAIEmbeddingProvider(_settings()).embed_single("a")

    @pytest.mark.asyncio
    async def test_short_response_is_an_embedding_error(self) -> None:
        response = MagicMock()
        response.data = [MagicMock(embedding=[0.1, 0.2])]
        response.usage = None
        client = AsyncMock()
        client.embeddings.create = AsyncMock(return_value=response)

        with patch(_OPENAI_PATCH, return_value=client):
            with pytest.raises(EmbeddingError):
                await OpenAIEmbeddingProvider(_settings()).embed(["a", "b"])

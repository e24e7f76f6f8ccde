"""Voyage AI embedding provider adapter.

Talks to the Voyage ``/v1/embeddings`` REST endpoint over an injected
``httpx.AsyncClient``.  Voyage models are asymmetric: queries and
documents are embedded with different ``input_type`` values, which is
exactly what :class:`EmbeddingInputType` carries.
"""

from __future__ import annotations

import httpx
import structlog

from kickflip.config.settings import Settings
from kickflip.interfaces.embedding_provider import EmbeddingInputType, IEmbeddingProvider
from kickflip.utils.errors import EmbeddingError, ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_VOYAGE_EMBEDDINGS_URL = "https://api.voyageai.com/v1/embeddings"
_VOYAGE_BATCH_LIMIT = 100
_DEFAULT_TIMEOUT = 15.0

_MODEL_DIMENSIONS: dict[str, int] = {
    "voyage-3-lite": 512,
    "voyage-3": 1024,
    "voyage-3-large": 1024,
    "voyage-3.5": 1024,
    "voyage-3.5-lite": 1024,
}


class VoyageEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by the Voyage AI API.

    Uses ``voyage-3-lite`` unless ``VOYAGE_MODEL`` says otherwise.  Inputs
    larger than 100 texts are split into sequential batches.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._api_key = settings.voyage_api_key
        self._model = settings.voyage_model or "voyage-3-lite"
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 1024)
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(
        self,
        texts: list[str],
        input_type: EmbeddingInputType = EmbeddingInputType.DOCUMENT,
    ) -> list[list[float]]:
        if not texts:
            return []

        vectors: list[list[float]] = []
        for start in range(0, len(texts), _VOYAGE_BATCH_LIMIT):
            batch = texts[start : start + _VOYAGE_BATCH_LIMIT]
            vectors.extend(await self._embed_batch(batch, input_type))
        return vectors

    async def embed_single(
        self,
        text: str,
        input_type: EmbeddingInputType = EmbeddingInputType.QUERY,
    ) -> list[float]:
        result = await self.embed([text], input_type)
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def max_batch_size(self) -> int:
        return _VOYAGE_BATCH_LIMIT

    def get_provider_name(self) -> str:
        return "voyage"

    def is_available(self) -> bool:
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _embed_batch(
        self, batch: list[str], input_type: EmbeddingInputType
    ) -> list[list[float]]:
        name = self.get_provider_name()
        try:
            response = await self._client.post(
                _VOYAGE_EMBEDDINGS_URL,
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={"input": batch, "model": self._model, "input_type": input_type.value},
            )
        except httpx.TimeoutException as exc:
            raise ProviderUnavailableError(
                message=f"Voyage timed out: {exc}", provider_name=name
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                message=f"Voyage unreachable: {exc}", provider_name=name
            ) from exc

        if response.status_code == 429:
            raise RateLimitError(message="Voyage rate limit exceeded", provider_name=name)
        if response.status_code >= 500:
            raise ProviderUnavailableError(
                message=f"Voyage server error {response.status_code}", provider_name=name
            )
        if response.status_code >= 400:
            raise EmbeddingError(
                message=f"Voyage rejected request ({response.status_code}): {response.text[:200]}",
                provider_name=name,
            )

        try:
            payload = response.json()
            data = sorted(payload["data"], key=lambda item: item.get("index", 0))
            vectors = [item["embedding"] for item in data]
        except (ValueError, KeyError, TypeError) as exc:
            raise EmbeddingError(
                message=f"Malformed Voyage response: {exc}", provider_name=name
            ) from exc

        if len(vectors) != len(batch):
            raise EmbeddingError(
                message=f"Voyage returned {len(vectors)} vectors for {len(batch)} inputs",
                provider_name=name,
            )
        logger.info(
            "voyage_embedding_batch",
            model=self._model,
            input_type=input_type.value,
            batch_size=len(batch),
            tokens=(payload.get("usage") or {}).get("total_tokens"),
        )
        return vectors

"""OpenAI embeddings, the fallback when no Voyage key is configured.

OpenAI embedding models are symmetric, so ``input_type`` only shows up in
the logs.  ``openai_base_url`` points the client at an OpenAI-compatible
server instead.
"""

from __future__ import annotations

import openai
import structlog

from kickflip.config.settings import Settings
from kickflip.interfaces.embedding_provider import EmbeddingInputType, IEmbeddingProvider
from kickflip.utils.errors import EmbeddingError, ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"
_BATCH_LIMIT = 2048

_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """:class:`IEmbeddingProvider` over ``openai.AsyncOpenAI().embeddings``."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._name = "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        # Retries are owned by kickflip.utils.retry, not the SDK.
        self._client = openai.AsyncOpenAI(
            api_key=self._api_key,
            base_url=settings.openai_base_url or None,
            max_retries=0,
        )

    async def embed(
        self,
        texts: list[str],
        input_type: EmbeddingInputType = EmbeddingInputType.DOCUMENT,
    ) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in range(0, len(texts), _BATCH_LIMIT):
            batch = texts[start : start + _BATCH_LIMIT]
            try:
                response = await self._client.embeddings.create(input=batch, model=self._model)
            except openai.APIError as exc:
                raise self._wrap_error(exc) from exc
            if len(response.data) != len(batch):
                raise EmbeddingError(
                    message=f"Expected {len(batch)} vectors, got {len(response.data)}",
                    provider_name=self._name,
                )
            vectors.extend(item.embedding for item in response.data)
            logger.info(
                "openai_embedding_batch",
                model=self._model,
                input_type=input_type.value,
                batch_size=len(batch),
                tokens=response.usage.total_tokens if response.usage else None,
            )
        return vectors

    async def embed_single(
        self,
        text: str,
        input_type: EmbeddingInputType = EmbeddingInputType.QUERY,
    ) -> list[float]:
        return (await self.embed([text], input_type))[0]

    def get_dimension(self) -> int:
        return _DIMENSIONS.get(self._model, 1536)

    def max_batch_size(self) -> int:
        return _BATCH_LIMIT

    def get_provider_name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _wrap_error(self, exc: openai.APIError) -> Exception:
        if isinstance(exc, openai.RateLimitError):
            return RateLimitError(message=f"Embedding rate limited: {exc}", provider_name=self._name)
        if isinstance(exc, (openai.APIConnectionError, openai.InternalServerError)):
            return ProviderUnavailableError(
                message=f"Embedding service unreachable: {exc}", provider_name=self._name
            )
        return EmbeddingError(message=f"Embedding API error: {exc}", provider_name=self._name)

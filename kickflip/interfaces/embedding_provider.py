"""Abstract base class for text-embedding service providers.

Asymmetric embedding models encode search queries and stored documents
differently, so every call states which side it is on via
:class:`EmbeddingInputType`.  Symmetric providers simply ignore it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum


class EmbeddingInputType(str, Enum):
    QUERY = "query"
    DOCUMENT = "document"


# Concrete implementations:
#   VoyageEmbeddingProvider  -- voyage-3-lite over httpx (default)
#   OpenAIEmbeddingProvider  -- text-embedding-3-small (fallback)
# Located in: kickflip/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the event index."""

    @abstractmethod
    async def embed(
        self,
        texts: list[str],
        input_type: EmbeddingInputType = EmbeddingInputType.DOCUMENT,
    ) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            Strings to embed.  Implementations split into provider-sized
            batches internally (see :meth:`max_batch_size`).
        input_type:
            Whether *texts* are search queries or stored documents.

        Returns
        -------
        list[list[float]]
            Vectors positionally aligned with *texts*.

        Raises
        ------
        kickflip.utils.errors.EmbeddingError
            If the API call fails or returns the wrong number of vectors.
        """

    @abstractmethod
    async def embed_single(
        self,
        text: str,
        input_type: EmbeddingInputType = EmbeddingInputType.QUERY,
    ) -> list[float]:
        """Embed one string.  Defaults to QUERY mode (the chat path)."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors."""

    @abstractmethod
    def max_batch_size(self) -> int:
        """Maximum number of texts the provider accepts per call."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""

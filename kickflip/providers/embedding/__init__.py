"""Embedding provider adapters."""

from kickflip.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from kickflip.providers.embedding.voyage_embedding_provider import VoyageEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider", "VoyageEmbeddingProvider"]

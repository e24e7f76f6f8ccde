"""Abstract provider interfaces.

Every external dependency (LLM, embeddings, storage, web search, sign-in)
is reached through one of these ABCs so services and the pipeline never
import a vendor SDK directly.  Concrete adapters live in
``kickflip/providers/``.
"""

from kickflip.interfaces.embedding_provider import EmbeddingInputType, IEmbeddingProvider
from kickflip.interfaces.event_index import IEventIndex
from kickflip.interfaces.identity_provider import IIdentityProvider, VerifiedUser
from kickflip.interfaces.llm_provider import ILLMProvider
from kickflip.interfaces.result_cache import IResultCache
from kickflip.interfaces.web_search_provider import IWebSearchProvider, SearchResult

__all__ = [
    "EmbeddingInputType",
    "IEmbeddingProvider",
    "IEventIndex",
    "IIdentityProvider",
    "ILLMProvider",
    "IResultCache",
    "IWebSearchProvider",
    "SearchResult",
    "VerifiedUser",
]

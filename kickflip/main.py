"""Kickflip FastAPI application entry point.

Wires providers, services and routes together via dependency injection.
Settings come from ``config/config.yaml`` overridden by ``.env`` and the
environment (see :mod:`kickflip.config.loader`).

Capabilities degrade instead of crashing:
    - no datastore      -> chat goes straight to live discovery; crawl/seed 503
    - no embedding key  -> same as no datastore
    - no cron secret    -> crawl/seed always 401
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from kickflip.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from kickflip.api.routes import router as api_router
from kickflip.config.loader import load_settings
from kickflip.config.settings import Settings
from kickflip.interfaces.embedding_provider import IEmbeddingProvider
from kickflip.interfaces.llm_provider import ILLMProvider
from kickflip.models.query import RetrievalThresholds
from kickflip.pipeline.query_pipeline import QueryPipeline
from kickflip.pipeline.task_queue import TaskQueue
from kickflip.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from kickflip.providers.embedding.voyage_embedding_provider import VoyageEmbeddingProvider
from kickflip.providers.identity.google_identity_provider import GoogleIdentityProvider
from kickflip.providers.llm.anthropic_provider import AnthropicLLMProvider
from kickflip.providers.llm.openai_provider import OpenAILLMProvider
from kickflip.providers.search.duckduckgo_provider import DuckDuckGoSearchProvider
from kickflip.providers.store.sqlite_event_index import SQLiteEventIndex
from kickflip.providers.store.sqlite_result_cache import SQLiteResultCache
from kickflip.services.batch_crawler import BatchCrawler
from kickflip.services.embedding_backfill import EmbeddingBackfill
from kickflip.services.event_normalizer import EventNormalizer
from kickflip.services.formatter import Formatter
from kickflip.services.index_writer import IndexWriter
from kickflip.services.live_discovery import LiveDiscovery
from kickflip.utils.logging import configure_logging, get_logger

__version__ = "0.1.0"

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings, timeout: float | None = None) -> ILLMProvider:
    """Select the LLM provider by configured key.  Priority: Anthropic -> OpenAI.

    With neither key set the Anthropic adapter is still returned; its calls
    fail and the chat endpoint answers with the generic retry message.
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings, timeout=timeout)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings, timeout=timeout)
    _logger.warning("no_llm_provider_configured")
    return AnthropicLLMProvider(settings=app_settings, timeout=timeout)


def _build_embedding_provider(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> IEmbeddingProvider | None:
    """Priority: Voyage -> OpenAI.  ``None`` when neither is configured."""
    if app_settings.voyage_api_key:
        return VoyageEmbeddingProvider(settings=app_settings, http_client=http_client)
    if app_settings.openai_api_key:
        return OpenAIEmbeddingProvider(settings=app_settings)
    return None


def build_thresholds(app_settings: Settings) -> RetrievalThresholds:
    return RetrievalThresholds(
        high_threshold=app_settings.retrieval_high_threshold,
        high_limit=app_settings.retrieval_high_limit,
        high_min_results=app_settings.retrieval_high_min_results,
        low_threshold=app_settings.retrieval_low_threshold,
        low_limit=app_settings.retrieval_low_limit,
        low_min_results=app_settings.retrieval_low_min_results,
    )


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance.

    Returns a flat dict of named components to be stored on ``app.state``.
    Storage-dependent components are ``None`` in no-backend mode.
    """
    http_client = httpx.AsyncClient(timeout=30.0)
    task_queue = TaskQueue()

    chat_llm = _build_llm_provider(app_settings)
    crawl_llm = _build_llm_provider(app_settings, timeout=app_settings.crawl_llm_timeout_seconds)
    embedder = _build_embedding_provider(app_settings, http_client)
    search = DuckDuckGoSearchProvider()

    normalizer = EventNormalizer(undated_ttl_days=app_settings.undated_event_ttl_days)
    formatter = Formatter(chat_llm)
    discovery = LiveDiscovery(
        chat_llm, search, normalizer, max_turns=app_settings.discovery_max_turns
    )

    backend = app_settings.has_backend() and embedder is not None
    if app_settings.has_backend() and embedder is None:
        _logger.warning("datastore_without_embeddings", detail="running without backend")

    index: SQLiteEventIndex | None = None
    cache: SQLiteResultCache | None = None
    writer: IndexWriter | None = None
    crawler: BatchCrawler | None = None
    backfill: EmbeddingBackfill | None = None
    if backend:
        db_path = app_settings.datastore_path()
        index = SQLiteEventIndex(db_path)
        cache = SQLiteResultCache(db_path, ttl_hours=app_settings.cache_ttl_hours)
        writer = IndexWriter(index, embedder)
        crawler = BatchCrawler(
            crawl_llm,
            search,
            writer,
            cache,
            normalizer,
            window_days=app_settings.crawl_window_days,
            max_turns=app_settings.discovery_max_turns,
        )
        backfill = EmbeddingBackfill(index, writer)

    pipeline = QueryPipeline(
        embedder=embedder if backend else None,
        formatter=formatter,
        discovery=discovery,
        task_queue=task_queue,
        index=index,
        cache=cache,
        writer=writer,
        thresholds=build_thresholds(app_settings),
    )

    return {
        "settings": app_settings,
        "http_client": http_client,
        "task_queue": task_queue,
        "llm_name": chat_llm.get_provider_name(),
        "embedding_name": embedder.get_provider_name() if embedder else None,
        "index": index,
        "cache": cache,
        "pipeline": pipeline,
        "crawler": crawler,
        "backfill": backfill,
        "identity_provider": GoogleIdentityProvider(
            app_settings.google_client_id, http_client=http_client
        ),
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise storage on startup; drain background work on shutdown."""
    app_settings: Settings = application.state.settings
    components = _build_all(app_settings)
    for key, value in components.items():
        setattr(application.state, key, value)

    if components["index"] is not None:
        await components["index"].initialize()
        await components["cache"].initialize()

    _logger.info(
        "app_startup",
        version=__version__,
        environment=app_settings.app_env,
        llm=components["llm_name"],
        embeddings=components["embedding_name"],
        backend=components["index"] is not None,
    )

    yield

    task_queue: TaskQueue = components["task_queue"]
    try:
        await task_queue.drain(timeout=10.0)
    except TimeoutError:
        _logger.warning("shutdown_tasks_abandoned", pending=task_queue.pending)
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    app_settings = app_settings or load_settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=app_settings.app_env == "production",
    )

    application = FastAPI(
        title="Kickflip API",
        version=__version__,
        description="Seattle event discovery: cached, semantic and live web search.",
        lifespan=_lifespan,
    )
    application.state.settings = app_settings

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(
        application,
        allowed_origins=[app_settings.public_api_base_url]
        if app_settings.public_api_base_url
        else None,
    )

    application.include_router(api_router)
    return application


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    _settings = load_settings()
    uvicorn.run(
        "kickflip.main:create_app",
        factory=True,
        host=_settings.app_host,
        port=_settings.app_port,
        reload=(_settings.app_env == "development"),
    )

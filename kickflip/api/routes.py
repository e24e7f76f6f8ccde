"""FastAPI routes for Kickflip.

Endpoint            Method  Description
-------------------------------------------------------------------
/api/chat           POST    Answer a free-text event query
/api/crawl          POST    Run one crawl cycle (cron, bearer auth)
/api/seed           POST    Schedule the embedding backfill (bearer auth)
/api/auth/google    POST    Verify a Google ID token
/health             GET     Liveness probe

Service dependencies are read from ``app.state`` (populated in
``main._build_all``) through ``Annotated[T, Depends(...)]`` helpers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from kickflip.api.auth import require_cron_secret
from kickflip.api.schemas import (
    ChatErrorResponse,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    GoogleAuthRequest,
    GoogleAuthResponse,
    HealthResponse,
    SeedResponse,
    UserProfile,
)
from kickflip.config.settings import Settings
from kickflip.interfaces.identity_provider import IIdentityProvider
from kickflip.models.crawl import CrawlSummary
from kickflip.models.query import AnswerSource
from kickflip.pipeline.query_pipeline import QueryPipeline
from kickflip.pipeline.task_queue import TaskQueue
from kickflip.services.batch_crawler import BatchCrawler
from kickflip.services.embedding_backfill import EmbeddingBackfill
from kickflip.utils.errors import ConfigurationError
from kickflip.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_pipeline(request: Request) -> QueryPipeline:
    return request.app.state.pipeline


def _get_task_queue(request: Request) -> TaskQueue:
    return request.app.state.task_queue


def _get_identity_provider(request: Request) -> IIdentityProvider:
    return request.app.state.identity_provider


def _get_crawler(request: Request) -> BatchCrawler:
    crawler = getattr(request.app.state, "crawler", None)
    if crawler is None:
        raise ConfigurationError(message="No datastore configured")
    return crawler


def _get_backfill(request: Request) -> EmbeddingBackfill:
    backfill = getattr(request.app.state, "backfill", None)
    if backfill is None:
        raise ConfigurationError(message="No datastore configured")
    return backfill


SettingsDep = Annotated[Settings, Depends(_get_settings)]
PipelineDep = Annotated[QueryPipeline, Depends(_get_pipeline)]
TaskQueueDep = Annotated[TaskQueue, Depends(_get_task_queue)]
IdentityDep = Annotated[IIdentityProvider, Depends(_get_identity_provider)]
# Auth runs before the backend check: an unauthenticated caller always gets 401.
CrawlerDep = Annotated[BatchCrawler, Depends(_get_crawler)]
BackfillDep = Annotated[EmbeddingBackfill, Depends(_get_backfill)]


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


@router.post("/api/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(pipeline: PipelineDep, body: ChatRequest | None = None) -> ChatResponse | JSONResponse:
    """Answer a free-text query with ranked events."""
    query = (body.query if body else None) or ""
    if not query.strip():
        return JSONResponse(status_code=400, content={"error": "query is required"})

    try:
        result = await pipeline.run(query)
    except Exception as exc:  # noqa: BLE001 -- users only ever see the generic reply
        _logger.error("chat_failed", error_type=type(exc).__name__, error=str(exc), exc_info=True)
        return JSONResponse(status_code=500, content=ChatErrorResponse().model_dump())

    return ChatResponse(
        text=result.text,
        events=result.events,
        source=result.source.value if result.source is AnswerSource.CACHE else None,
    )


# ---------------------------------------------------------------------------
# Cron endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/api/crawl",
    response_model=CrawlSummary,
    dependencies=[Depends(require_cron_secret)],
)
async def crawl(crawler: CrawlerDep) -> CrawlSummary:
    """Run one crawl cycle synchronously and return its summary."""
    return await crawler.run()


@router.post(
    "/api/seed",
    status_code=202,
    response_model=SeedResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def seed(backfill: BackfillDep, task_queue: TaskQueueDep) -> SeedResponse:
    """Schedule the embedding backfill and return immediately."""
    task_queue.submit("seed_backfill", backfill.run())
    return SeedResponse()


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@router.post(
    "/api/auth/google",
    response_model=GoogleAuthResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def google_auth(
    identity: IdentityDep, body: GoogleAuthRequest | None = None
) -> GoogleAuthResponse | JSONResponse:
    """Exchange a Google ID token for the signed-in user's profile."""
    token = (body.token if body else None) or ""
    if not token.strip():
        return JSONResponse(status_code=400, content={"error": "token is required"})
    user = await identity.verify(token.strip())
    return GoogleAuthResponse(
        user=UserProfile(id=user.id, name=user.name, email=user.email, avatar=user.avatar)
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse)
async def health(settings: SettingsDep) -> HealthResponse:
    return HealthResponse(timestamp=datetime.now(timezone.utc), backend=settings.has_backend())

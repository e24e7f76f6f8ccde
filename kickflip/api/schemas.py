"""Pydantic request/response schemas for the Kickflip HTTP API.

Request schemas end with "Request", response schemas with "Response".
Request fields are optional at the schema level so that a missing value
is reported by the route as a 400 with a readable message rather than
FastAPI's generic 422.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from kickflip.models.event import Event


class ChatRequest(BaseModel):
    query: str | None = Field(default=None, description="Free-text event request.")


class ChatResponse(BaseModel):
    text: str
    events: list[Event] = Field(default_factory=list)
    # Only set on cache hits; omitted from the JSON otherwise.
    source: str | None = None


class ChatErrorResponse(BaseModel):
    error: str = "AI service unavailable"
    text: str = "Connection bumpy. Try again?"
    events: list[Event] = Field(default_factory=list)


class GoogleAuthRequest(BaseModel):
    token: str | None = None


class UserProfile(BaseModel):
    id: str
    name: str
    email: str
    avatar: str = ""


class GoogleAuthResponse(BaseModel):
    user: UserProfile


class SeedResponse(BaseModel):
    status: str = "accepted"


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime
    backend: bool


class ErrorResponse(BaseModel):
    """Body for every non-chat error."""

    error: str
    detail: str | None = None

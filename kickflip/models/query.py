"""Pipeline input/output models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from kickflip.models.event import Event


class AnswerSource(str, Enum):
    """Which stage of the pipeline produced an answer."""

    CACHE = "cache"
    INDEX = "index"
    DISCOVERY = "discovery"


class RetrievalThresholds(BaseModel):
    """Similarity gates for the two retrieval tiers.

    A tier "succeeds" when it returns at least ``*_min_results`` events
    strictly above its threshold.
    """

    model_config = ConfigDict(frozen=True)

    high_threshold: float = 0.72
    high_limit: int = 10
    high_min_results: int = 3
    low_threshold: float = 0.50
    low_limit: int = 6
    low_min_results: int = 2


class FormattedAnswer(BaseModel):
    """Formatter output: a short one-liner plus the events it picked."""

    model_config = ConfigDict(frozen=True)

    text: str
    events: list[Event] = Field(default_factory=list)


class QueryResult(BaseModel):
    """What the pipeline returns for one query."""

    model_config = ConfigDict(frozen=True)

    text: str
    events: list[Event] = Field(default_factory=list)
    source: AnswerSource

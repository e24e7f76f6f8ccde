"""Event data models for the Kickflip index.

An :class:`Event` is one happening in Seattle -- a show, a pop-up, a run
club.  Events arrive from three places (user submissions, the batch
crawler, live discovery during a chat) and all land in the same index.

Embedding vectors are deliberately *not* part of the model: the index
stores them beside the row, so an Event can be serialized into prompts
and HTTP responses without ever dragging a 1024-float vector along.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventCategory(str, Enum):
    """Closed set of event categories.  Unknown labels coerce to ``OTHER``."""

    MUSIC = "music"
    FOOD = "food"
    ART = "art"
    OUTDOOR = "outdoor"
    PARTY = "party"
    WELLNESS = "wellness"
    FASHION = "fashion"
    SPORTS = "sports"
    COMEDY = "comedy"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: object) -> EventCategory:
        """Map a free-form label onto the enum, falling back to ``OTHER``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            label = value.strip().lower()
            for member in cls:
                if member.value == label:
                    return member
        return cls.OTHER


class EventOrigin(str, Enum):
    """Where an event row came from."""

    USER = "user"
    CRAWL = "crawl"
    DISCOVERED = "discovered"


class Event(BaseModel):
    """A single event as stored in the index and returned to clients."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable unique identifier, e.g. 'crawl-jazz-night-20260301'.")
    title: str = Field(description="Event title as shown to users.")
    category: EventCategory = Field(default=EventCategory.OTHER)
    # Free-form display date ("Sat, Mar 1"); start_date is the structured one.
    date: str = Field(default="", description="Human-readable date string.")
    start_date: dt.date | None = Field(default=None, description="First day of the event, if known.")
    end_date: dt.date | None = Field(default=None, description="Last day of the event, if known.")
    start_time: str = Field(default="", description="Human-readable start time, e.g. '8 PM'.")
    location: str = Field(default="")
    description: str = Field(default="")
    organizer: str = Field(default="")
    vibe_tags: list[str] = Field(default_factory=list, description="Short mood/genre tags.")
    price: str = Field(default="")
    link: str = Field(default="")
    origin: EventOrigin = Field(default=EventOrigin.USER)
    crawl_source: str = Field(default="", description="Crawl job label or discovery query.")
    expires_at: dt.datetime | None = Field(default=None)
    crawled_at: dt.datetime | None = Field(default=None)
    updated_at: dt.datetime | None = Field(default=None)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: object) -> EventCategory:
        return EventCategory.coerce(value)

    @field_validator("vibe_tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(tag).strip() for tag in value if str(tag).strip()]

    def to_candidate(self) -> dict[str, Any]:
        """Compact dict used inside LLM prompts."""
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date or (self.start_date.isoformat() if self.start_date else ""),
            "time": self.start_time,
            "location": self.location,
            "description": self.description,
            "category": self.category.value,
            "tags": list(self.vibe_tags),
            "price": self.price,
            "link": self.link,
        }

    def embedding_text(self, city: str = "Seattle") -> str:
        """Text that represents this event when embedded in DOCUMENT mode."""
        parts = [
            self.title,
            f"Category: {self.category.value}",
            self.description,
            self.location,
        ]
        if self.organizer:
            parts.append(f"Organizer: {self.organizer}")
        if self.vibe_tags:
            parts.append(", ".join(self.vibe_tags))
        if self.date or self.start_date:
            parts.append(f"Date: {self.date or self.start_date.isoformat()}")
        if self.price:
            parts.append(f"Price: {self.price}")
        parts.append(city)
        return " | ".join(part for part in parts if part)


class ScoredEvent(BaseModel):
    """An event returned by similarity search, with its cosine similarity."""

    model_config = ConfigDict(frozen=True)

    event: Event
    similarity: float


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"

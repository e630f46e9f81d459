"""Pydantic schemas for the events resource."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_utc(value: datetime | None) -> datetime | None:
    # Naive timestamps are taken as UTC so start/end always compare.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EventCreate(BaseModel):
    """Request body for creating an event."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field("", description="Event title (required, at most 500 bytes).")
    description: str = Field("", description="Free-form description (at most 1000 bytes).")
    tags: list[str] = Field(default_factory=list, description="Up to 5 unique tags.")
    all_day: bool = Field(False, description="Whether the event lasts the whole day.")
    start: datetime | None = Field(None, description="Start date and time.")
    end: datetime | None = Field(None, description="End date and time (not before start).")

    @field_validator("start", "end")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class EventUpdate(BaseModel):
    """Request body for a partial update; omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    all_day: bool | None = None
    start: datetime | None = None
    end: datetime | None = None

    @field_validator("start", "end")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class Event(BaseModel):
    """A stored event."""

    id: int
    title: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    all_day: bool = False
    start: datetime | None = None
    end: datetime | None = None
    created_at: datetime
    updated_at: datetime
    version: int = Field(1, ge=1, description="Starts at 1, incremented on each update.")


class EventEnvelope(BaseModel):
    event: Event


class ListMetadata(BaseModel):
    """Pagination metadata; every field is absent when there are no records."""

    current_page: int | None = None
    page_size: int | None = None
    first_page: int | None = None
    last_page: int | None = None
    total_records: int | None = None


class EventListEnvelope(BaseModel):
    events: list[Event]
    metadata: ListMetadata


class MessageEnvelope(BaseModel):
    message: str

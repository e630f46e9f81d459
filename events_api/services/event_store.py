"""In-memory event store.

Thread-safe and process-local; it stands in for a database so the HTTP layer
can be exercised end to end. Sync route handlers run in a threadpool, hence
the lock around every read and write.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable

from events_api.core.errors import (
    EDIT_CONFLICT_MESSAGE,
    EditConflictAppError,
    NotFoundAppError,
    ValidationAppError,
)
from events_api.schemas.events import Event, EventCreate, ListMetadata
from events_api.schemas.filters import Filters, calculate_metadata

logger = logging.getLogger(__name__)

MAX_TITLE_BYTES = 500
MAX_DESCRIPTION_BYTES = 1000
MAX_TAGS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_event_fields(
    *,
    title: str,
    description: str,
    tags: list[str],
    start: datetime | None,
    end: datetime | None,
) -> None:
    """Check event fields, raising ValidationAppError with one message per field."""
    errors: dict[str, str] = {}

    if not title.strip():
        errors["title"] = "must be provided"
    elif len(title.encode()) > MAX_TITLE_BYTES:
        errors["title"] = f"must not be more than {MAX_TITLE_BYTES} bytes long"

    if len(description.encode()) > MAX_DESCRIPTION_BYTES:
        errors["description"] = f"must not be more than {MAX_DESCRIPTION_BYTES} bytes long"

    if len(tags) > MAX_TAGS:
        errors["tags"] = f"must not contain more than {MAX_TAGS} tags"
    elif len(set(tags)) != len(tags):
        errors["tags"] = "must not contain duplicate values"
    elif any(not tag.strip() for tag in tags):
        errors["tags"] = "must not contain empty values"

    if start is None:
        errors["start"] = "must be provided"
    if end is None:
        errors["end"] = "must be provided"
    elif start is not None and end < start:
        errors["end"] = "must not be before start"

    if errors:
        raise ValidationAppError(code="invalid_event", message=errors)


class EventStore:
    """Thread-safe in-memory event repository.

    Ids are assigned sequentially from 1 and never reused. Each successful
    update bumps the record's version by one.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._events: dict[int, Event] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def insert(self, data: EventCreate) -> Event:
        """Validate and store a new event."""
        validate_event_fields(
            title=data.title,
            description=data.description,
            tags=data.tags,
            start=data.start,
            end=data.end,
        )

        with self._lock:
            now = self._clock()
            event = Event(
                id=self._next_id,
                title=data.title,
                description=data.description,
                tags=list(data.tags),
                all_day=data.all_day,
                start=data.start,
                end=data.end,
                created_at=now,
                updated_at=now,
                version=1,
            )
            self._events[event.id] = event
            self._next_id += 1

        logger.info("event.created", extra={"event_id": event.id})
        return event

    def get(self, event_id: int) -> Event:
        with self._lock:
            event = self._events.get(event_id)
        if event is None:
            raise NotFoundAppError.default()
        return event

    def update(
        self,
        event_id: int,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> Event:
        """Apply a partial update.

        Raises:
            NotFoundAppError: If the event does not exist.
            EditConflictAppError: If ``expected_version`` is stale.
            ValidationAppError: If the merged record is invalid.
        """
        with self._lock:
            current = self._events.get(event_id)
            if current is None:
                raise NotFoundAppError.default()

            if expected_version is not None and expected_version != current.version:
                raise EditConflictAppError(
                    code="edit_conflict",
                    message=EDIT_CONFLICT_MESSAGE,
                    details={
                        "event_id": event_id,
                        "expected_version": expected_version,
                        "current_version": current.version,
                    },
                )

            merged = current.model_copy(update=changes)
            validate_event_fields(
                title=merged.title,
                description=merged.description,
                tags=merged.tags,
                start=merged.start,
                end=merged.end,
            )

            updated = merged.model_copy(
                update={"updated_at": self._clock(), "version": current.version + 1}
            )
            self._events[event_id] = updated

        logger.info("event.updated", extra={"event_id": event_id, "version": updated.version})
        return updated

    def delete(self, event_id: int) -> None:
        with self._lock:
            if self._events.pop(event_id, None) is None:
                raise NotFoundAppError.default()
        logger.info("event.deleted", extra={"event_id": event_id})

    def list(
        self,
        *,
        title: str = "",
        tags: list[str] | None = None,
        filters: Filters | None = None,
    ) -> tuple[list[Event], ListMetadata]:
        """Filter, sort and paginate events.

        Args:
            title: Case-insensitive substring the title must contain.
            tags: Tags the event must all carry.
            filters: Pagination and sort parameters (validated here).
        """
        filters = filters or Filters()
        filters.validate()

        needle = title.strip().lower()
        wanted = set(tags or [])

        with self._lock:
            matches = [
                event
                for event in self._events.values()
                if (not needle or needle in event.title.lower())
                and wanted.issubset(event.tags)
            ]

        column = filters.sort_column

        def sort_key(event: Event) -> tuple[bool, Any]:
            value = getattr(event, column)
            if isinstance(value, str):
                value = value.lower()
            # Events without a value for the column sort last ascending.
            return (value is None, value if value is not None else 0)

        # Secondary order is always id ascending.
        matches.sort(key=lambda event: event.id)
        matches.sort(key=sort_key, reverse=filters.descending)

        page = matches[filters.offset : filters.offset + filters.limit]
        return page, calculate_metadata(len(matches), filters.page, filters.page_size)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

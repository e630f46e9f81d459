from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, Response, status

from events_api.core.errors import NotFoundAppError, ValidationAppError
from events_api.schemas.events import (
    EventCreate,
    EventEnvelope,
    EventListEnvelope,
    EventUpdate,
    MessageEnvelope,
)
from events_api.schemas.filters import Filters
from events_api.services.event_store import EventStore

router = APIRouter(prefix="/events", tags=["Events"])


def get_event_store(request: Request) -> EventStore:
    """Return the store owned by the running application."""
    return request.app.state.event_store


StoreDep = Annotated[EventStore, Depends(get_event_store)]


def read_id_param(raw_id: str) -> int:
    """Parse a path id; anything that is not a positive integer is a 404."""
    try:
        event_id = int(raw_id)
    except ValueError:
        raise NotFoundAppError.default() from None
    if event_id < 1:
        raise NotFoundAppError.default()
    return event_id


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@router.get("", response_model=EventListEnvelope, response_model_exclude_none=True)
def list_events(
    store: StoreDep,
    title: str = "",
    tags: str = "",
    page: int = 1,
    page_size: int = 20,
    sort: str = "id",
) -> EventListEnvelope:
    """List events, filtered by title substring and tags, paginated and sorted."""
    events, metadata = store.list(
        title=title,
        tags=_split_csv(tags),
        filters=Filters(page=page, page_size=page_size, sort=sort),
    )
    return EventListEnvelope(events=events, metadata=metadata)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=EventEnvelope)
def create_event(payload: EventCreate, store: StoreDep, response: Response) -> EventEnvelope:
    """Create an event; the Location header points at the new resource."""
    event = store.insert(payload)
    response.headers["Location"] = f"/v1/events/{event.id}"
    return EventEnvelope(event=event)


@router.get("/{event_id}", response_model=EventEnvelope)
def show_event(event_id: str, store: StoreDep) -> EventEnvelope:
    return EventEnvelope(event=store.get(read_id_param(event_id)))


@router.patch("/{event_id}", response_model=EventEnvelope)
def update_event(
    event_id: str,
    payload: EventUpdate,
    store: StoreDep,
    expected_version: Annotated[str | None, Header(alias="X-Expected-Version")] = None,
) -> EventEnvelope:
    """Partially update an event.

    When ``X-Expected-Version`` is sent and no longer matches the stored
    version, the update is refused with 409.
    """
    eid = read_id_param(event_id)

    version: int | None = None
    if expected_version is not None:
        if not expected_version.strip().isdigit():
            raise ValidationAppError(
                code="invalid_expected_version",
                message={"X-Expected-Version": "must be a positive integer"},
            )
        version = int(expected_version)

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    return EventEnvelope(event=store.update(eid, changes, expected_version=version))


@router.delete("/{event_id}", response_model=MessageEnvelope)
def delete_event(event_id: str, store: StoreDep) -> MessageEnvelope:
    store.delete(read_id_param(event_id))
    return MessageEnvelope(message="event successfully deleted")

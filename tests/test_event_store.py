"""Unit tests for the in-memory event store and listing filters."""

from datetime import datetime, timedelta, timezone

import pytest

from events_api.core.errors import EditConflictAppError, NotFoundAppError, ValidationAppError
from events_api.schemas.events import EventCreate
from events_api.schemas.filters import Filters, calculate_metadata
from events_api.services.event_store import EventStore, validate_event_fields

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_event(title: str = "Standup", *, tags=None, hours: int = 1, offset_days: int = 0) -> EventCreate:
    start = START + timedelta(days=offset_days)
    return EventCreate(
        title=title,
        tags=tags or [],
        start=start,
        end=start + timedelta(hours=hours),
    )


@pytest.fixture
def store() -> EventStore:
    return EventStore(clock=lambda: START)


class TestValidateEventFields:
    def test_reports_every_missing_field(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_event_fields(title=" ", description="", tags=[], start=None, end=None)

        assert exc_info.value.message == {
            "title": "must be provided",
            "start": "must be provided",
            "end": "must be provided",
        }

    def test_end_before_start(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_event_fields(
                title="x", description="", tags=[], start=START, end=START - timedelta(minutes=1)
            )

        assert exc_info.value.message == {"end": "must not be before start"}

    def test_title_limit_counts_bytes(self) -> None:
        # 250 two-byte characters are exactly 500 bytes.
        validate_event_fields(title="é" * 250, description="", tags=[], start=START, end=START)

        with pytest.raises(ValidationAppError) as exc_info:
            validate_event_fields(title="é" * 251, description="", tags=[], start=START, end=START)
        assert "title" in exc_info.value.message

    @pytest.mark.parametrize(
        "tags, message",
        [
            (["a", "b", "c", "d", "e", "f"], "must not contain more than 5 tags"),
            (["a", "a"], "must not contain duplicate values"),
            (["a", " "], "must not contain empty values"),
        ],
    )
    def test_tag_rules(self, tags, message) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_event_fields(title="x", description="", tags=tags, start=START, end=START)

        assert exc_info.value.message == {"tags": message}


class TestEventStoreCrud:
    def test_insert_assigns_sequential_ids_and_version_one(self, store: EventStore) -> None:
        first = store.insert(make_event("one"))
        second = store.insert(make_event("two"))

        assert (first.id, second.id) == (1, 2)
        assert first.version == 1
        assert first.created_at == first.updated_at == START
        assert len(store) == 2

    def test_insert_invalid_event_stores_nothing(self, store: EventStore) -> None:
        with pytest.raises(ValidationAppError):
            store.insert(EventCreate(title=""))

        assert len(store) == 0

    def test_get_missing_raises_not_found(self, store: EventStore) -> None:
        with pytest.raises(NotFoundAppError):
            store.get(42)

    def test_update_bumps_version(self, store: EventStore) -> None:
        event = store.insert(make_event())

        updated = store.update(event.id, {"title": "Retro"})

        assert updated.title == "Retro"
        assert updated.version == 2
        assert store.get(event.id).version == 2

    def test_update_with_stale_version_conflicts(self, store: EventStore) -> None:
        event = store.insert(make_event())
        store.update(event.id, {"title": "v2"}, expected_version=1)

        with pytest.raises(EditConflictAppError):
            store.update(event.id, {"title": "v3"}, expected_version=1)

        assert store.get(event.id).title == "v2"

    def test_invalid_update_leaves_record_untouched(self, store: EventStore) -> None:
        event = store.insert(make_event())

        with pytest.raises(ValidationAppError):
            store.update(event.id, {"end": START - timedelta(days=1)})

        assert store.get(event.id) == event

    def test_delete_then_missing(self, store: EventStore) -> None:
        event = store.insert(make_event())

        store.delete(event.id)

        with pytest.raises(NotFoundAppError):
            store.delete(event.id)
        assert len(store) == 0

    def test_ids_are_not_reused(self, store: EventStore) -> None:
        first = store.insert(make_event())
        store.delete(first.id)

        assert store.insert(make_event()).id == 2


class TestEventStoreList:
    @pytest.fixture
    def populated(self, store: EventStore) -> EventStore:
        store.insert(make_event("Planning", tags=["work"], offset_days=2))
        store.insert(make_event("lunch", tags=["social"], offset_days=0))
        store.insert(make_event("Team planning", tags=["work", "team"], offset_days=1))
        return store

    def test_title_filter_is_case_insensitive_substring(self, populated: EventStore) -> None:
        events, _ = populated.list(title="PLAN")

        assert [event.id for event in events] == [1, 3]

    def test_tags_filter_requires_all_tags(self, populated: EventStore) -> None:
        events, _ = populated.list(tags=["work", "team"])

        assert [event.id for event in events] == [3]

    def test_sort_by_title_descending(self, populated: EventStore) -> None:
        events, _ = populated.list(filters=Filters(sort="-title"))

        assert [event.title for event in events] == ["Team planning", "Planning", "lunch"]

    def test_sort_by_start(self, populated: EventStore) -> None:
        events, _ = populated.list(filters=Filters(sort="start"))

        assert [event.id for event in events] == [2, 3, 1]

    def test_pagination_and_metadata(self, populated: EventStore) -> None:
        events, metadata = populated.list(filters=Filters(page=2, page_size=2))

        assert [event.id for event in events] == [3]
        assert metadata.model_dump() == {
            "current_page": 2,
            "page_size": 2,
            "first_page": 1,
            "last_page": 2,
            "total_records": 3,
        }

    def test_no_matches_gives_empty_metadata(self, populated: EventStore) -> None:
        events, metadata = populated.list(title="nothing like this")

        assert events == []
        assert metadata.model_dump(exclude_none=True) == {}

    def test_invalid_filters_are_rejected(self, store: EventStore) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            store.list(filters=Filters(page=0, page_size=101, sort="created_at"))

        assert exc_info.value.message == {
            "page": "must be greater than zero",
            "page_size": "must be a maximum of 100",
            "sort": "invalid sort value",
        }


class TestFilters:
    def test_offset_and_direction(self) -> None:
        filters = Filters(page=3, page_size=10, sort="-start")

        assert filters.offset == 20
        assert filters.limit == 10
        assert filters.sort_column == "start"
        assert filters.descending is True

    def test_unsafe_sort_column_raises(self) -> None:
        with pytest.raises(ValueError):
            Filters(sort="id; DROP TABLE events").sort_column

    def test_page_upper_bound(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            Filters(page=10_000_001).validate()

        assert exc_info.value.message == {"page": "must be a maximum of 10,000,000"}

    def test_last_page_rounds_up(self) -> None:
        assert calculate_metadata(21, 1, 20).last_page == 2

"""Listing filters: pagination and sorting."""

from __future__ import annotations

import math
from dataclasses import dataclass

from events_api.core.errors import ValidationAppError
from events_api.schemas.events import ListMetadata

EVENT_SORT_SAFELIST: tuple[str, ...] = (
    "id",
    "title",
    "start",
    "end",
    "-id",
    "-title",
    "-start",
    "-end",
)

MAX_PAGE = 10_000_000
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Filters:
    page: int = 1
    page_size: int = 20
    sort: str = "id"
    sort_safelist: tuple[str, ...] = EVENT_SORT_SAFELIST

    def validate(self) -> None:
        """Raise ValidationAppError listing every invalid parameter."""
        errors: dict[str, str] = {}
        if self.page <= 0:
            errors.setdefault("page", "must be greater than zero")
        if self.page > MAX_PAGE:
            errors.setdefault("page", "must be a maximum of 10,000,000")
        if self.page_size <= 0:
            errors.setdefault("page_size", "must be greater than zero")
        if self.page_size > MAX_PAGE_SIZE:
            errors.setdefault("page_size", "must be a maximum of 100")
        if self.sort not in self.sort_safelist:
            errors.setdefault("sort", "invalid sort value")
        if errors:
            raise ValidationAppError(code="invalid_filters", message=errors)

    @property
    def sort_column(self) -> str:
        if self.sort not in self.sort_safelist:
            # validate() guards every caller; reaching this is a programming error
            raise ValueError(f"unsafe sort parameter: {self.sort}")
        return self.sort.lstrip("-")

    @property
    def descending(self) -> bool:
        return self.sort.startswith("-")

    @property
    def limit(self) -> int:
        return self.page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def calculate_metadata(total_records: int, page: int, page_size: int) -> ListMetadata:
    """Pagination metadata for a result set; empty when there are no records."""
    if total_records == 0:
        return ListMetadata()

    return ListMetadata(
        current_page=page,
        page_size=page_size,
        first_page=1,
        last_page=math.ceil(total_records / page_size),
        total_records=total_records,
    )

"""Query descriptor: the canonical "what is currently requested" value."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

# Filter value meaning "no restriction"; never sent to the API
ALL = "all"


class FilterKey(str, Enum):
    """Filter criteria a collection listing can be narrowed by."""

    OWNER_ID = "owner_id"
    AREA_ID = "area_id"
    DATE_RANGE = "date_range"
    STATUS = "status"


def normalize_filters(filters: dict[Any, Any] | None) -> dict[FilterKey, str]:
    """Coerce keys to FilterKey and drop "all"/empty values.

    Dropping the sentinel makes ``{"area_id": "all"}`` and ``{}`` equivalent.
    """
    normalized: dict[FilterKey, str] = {}
    for key, value in (filters or {}).items():
        if value is None:
            continue
        value = str(value)
        if value == "" or value == ALL:
            continue
        normalized[FilterKey(key)] = value
    return normalized


class QueryDescriptor(BaseModel):
    """Immutable page/search/filter request for one collection.

    Two descriptors are equivalent iff all fields compare equal.
    """

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, gt=0)
    search_term: str = ""
    filters: dict[FilterKey, str] = Field(default_factory=dict)
    sort: Any = None

    model_config = {"frozen": True}

    @field_validator("filters", mode="before")
    @classmethod
    def clean_filters(cls, v: Any) -> dict[FilterKey, str]:
        return normalize_filters(v)

    def filter_value(self, key: FilterKey | str) -> str:
        """Get a filter's value, or "all" when unset."""
        return self.filters.get(FilterKey(key), ALL)

    @property
    def has_active_filters(self) -> bool:
        """True when a search term or any filter narrows the listing."""
        return bool(self.search_term or self.filters)

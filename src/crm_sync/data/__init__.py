"""Registry of the API's resource collections.

Each collection records where it lives on the API, which key its listing
payload stores items under, how filter criteria map to query parameters,
and which model parses its records.
"""

from dataclasses import dataclass, field
from typing import Any

from crm_sync.models.query import FilterKey
from crm_sync.models.resources import (
    Area,
    Client,
    Inquiry,
    Notification,
    Resource,
    Salesman,
)


@dataclass(frozen=True)
class CollectionSpec:
    """Static description of one API-backed resource collection."""

    name: str
    path: str
    items_key: str = "items"
    filter_params: dict[FilterKey, str] = field(default_factory=dict)
    resource_model: type[Resource] = Resource
    export_prefix: str | None = None

    def parse_item(self, data: dict[str, Any]) -> Resource:
        return self.resource_model.model_validate(data)

    def item_path(self, item_id: str) -> str:
        return f"{self.path}/{item_id}"

    @property
    def export_path(self) -> str:
        return f"{self.path}/export"


COLLECTIONS: dict[str, CollectionSpec] = {
    "clients": CollectionSpec(
        name="clients",
        path="clients",
        items_key="clients",
        filter_params={
            FilterKey.AREA_ID: "area",
            FilterKey.STATUS: "status",
        },
        resource_model=Client,
        export_prefix="clients",
    ),
    "inquiries": CollectionSpec(
        name="inquiries",
        path="feedback",
        items_key="feedbacks",
        filter_params={
            FilterKey.OWNER_ID: "salesmanId",
            FilterKey.AREA_ID: "areaId",
            FilterKey.DATE_RANGE: "dateRange",
        },
        resource_model=Inquiry,
        export_prefix="inquiries",
    ),
    "notifications": CollectionSpec(
        name="notifications",
        path="notifications",
        items_key="notifications",
        resource_model=Notification,
    ),
    "areas": CollectionSpec(
        name="areas",
        path="areas",
        items_key="areas",
        resource_model=Area,
    ),
    "users": CollectionSpec(
        name="users",
        path="users",
        items_key="users",
        resource_model=Salesman,
    ),
}

# Alternate names accepted on the command line
ALIASES = {
    "feedback": "inquiries",
    "feedbacks": "inquiries",
    "salesmen": "users",
}


def get_collection(name: str) -> CollectionSpec:
    """Look up a collection by name (case-insensitive).

    Raises:
        ValueError: If the collection is unknown
    """
    key = name.lower()
    key = ALIASES.get(key, key)
    if key in COLLECTIONS:
        return COLLECTIONS[key]
    raise ValueError(
        f"Unknown collection: {name}. Known collections: {', '.join(list_collections())}"
    )


def list_collections() -> list[str]:
    """List known collection names.

    Returns:
        Sorted list of collection names
    """
    return sorted(COLLECTIONS.keys())


__all__ = [
    "ALIASES",
    "COLLECTIONS",
    "CollectionSpec",
    "get_collection",
    "list_collections",
]

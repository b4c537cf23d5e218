"""Pydantic models for CRM API records and paginated responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Resource(BaseModel):
    """Generic API record identified by a unique id.

    Fields beyond the ones a subclass declares are kept as extras so that
    the record can be sent back to the API unchanged.
    """

    id: str = Field(alias="_id")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        if isinstance(v, int):
            return str(v)
        return v


class Client(Resource):
    """Customer account."""

    name: str = ""
    phone: str | None = None
    email: str | None = None
    city: str | None = None
    area: Any = None
    is_active: bool = Field(default=True, alias="isActive")


class Inquiry(Resource):
    """Client inquiry (feedback) captured by a salesman."""

    lead: str = "Green"
    notes: str | None = None
    client: dict[str, Any] | None = None
    salesman: dict[str, Any] | None = None
    audio: dict[str, Any] | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @property
    def has_audio(self) -> bool:
        """True when an audio recording is attached."""
        return bool(self.audio and self.audio.get("key"))


class Notification(Resource):
    """Audit notification (OTP sent/resent/verified)."""

    type: str | None = None
    status: str | None = None
    message: str | None = None
    is_read: bool = Field(default=False, alias="isRead")
    created_at: datetime | None = Field(default=None, alias="createdAt")


class Area(Resource):
    """Sales area reference record."""

    name: str = ""
    city: str = ""
    state: str = ""
    is_active: bool = Field(default=True, alias="isActive")


class Salesman(Resource):
    """User with the salesman role."""

    name: str = ""
    city: str | None = None
    role: str = "salesman"


class PageResponse(BaseModel):
    """One page of a collection listing."""

    items: list[Any] = Field(default_factory=list)
    current_page: int = Field(default=1, alias="currentPage")
    total_pages: int = Field(default=1, alias="totalPages")
    total: int = 0

    model_config = {"populate_by_name": True}

    @classmethod
    def from_payload(cls, payload: dict[str, Any], items_key: str = "items") -> "PageResponse":
        """Parse an API listing, reading items from the collection's key."""
        items = payload.get(items_key)
        if items is None:
            items = payload.get("items", [])
        data = {k: v for k, v in payload.items() if k not in (items_key, "items")}
        return cls.model_validate({**data, "items": items})

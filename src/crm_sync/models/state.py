"""Per-collection fetch state snapshots."""

from enum import Enum

from pydantic import BaseModel, Field

from crm_sync.errors import ServerRejection, SyncError
from crm_sync.models.query import QueryDescriptor
from crm_sync.models.resources import Resource


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


class Pagination(BaseModel):
    """Pagination metadata of the currently cached page."""

    current_page: int = 1
    total_pages: int = 1
    total_items: int = 0
    page_size: int = 20


class ErrorInfo(BaseModel):
    """Displayable failure stored in state or returned from a mutation."""

    message: str
    kind: str = "error"
    status_code: int | None = None

    @classmethod
    def from_exception(cls, exc: Exception) -> "ErrorInfo":
        if isinstance(exc, SyncError):
            status_code = exc.status_code if isinstance(exc, ServerRejection) else None
            return cls(message=exc.message, kind=exc.kind, status_code=status_code)
        return cls(message=str(exc) or exc.__class__.__name__)


class FetchState(BaseModel):
    """Read-only snapshot of a collection's cache.

    ``status`` is LOADING exactly when ``in_flight_query_id`` is set.
    """

    status: FetchStatus = FetchStatus.IDLE
    items: tuple[Resource, ...] = ()
    pagination: Pagination = Field(default_factory=Pagination)
    error: ErrorInfo | None = None
    in_flight_query_id: str | None = None
    query: QueryDescriptor | None = None

    model_config = {"frozen": True}

    @property
    def loading(self) -> bool:
        return self.status == FetchStatus.LOADING

    @property
    def is_empty(self) -> bool:
        return not self.items

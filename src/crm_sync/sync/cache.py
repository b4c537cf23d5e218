"""Resource cache: the authoritative page, pagination and status of a collection."""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable

from crm_sync.data import CollectionSpec
from crm_sync.models.query import QueryDescriptor
from crm_sync.models.resources import PageResponse, Resource
from crm_sync.models.state import ErrorInfo, FetchState, FetchStatus, Pagination

logger = logging.getLogger(__name__)

Listener = Callable[[FetchState], None]


# -----------------------------------------------------------------------------
# Structural patches
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Insert:
    """Put a server-confirmed record at the head of the current page."""

    item: Resource


@dataclass(frozen=True)
class Replace:
    item_id: str
    item: Resource


@dataclass(frozen=True)
class Remove:
    item_id: str


@dataclass(frozen=True)
class MarkRead:
    """Flip the read flag of the given ids (all items when ``item_ids`` is None)."""

    item_ids: tuple[str, ...] | None = None


Patch = Insert | Replace | Remove | MarkRead


@dataclass(frozen=True)
class PageCorrection:
    """Signal that the current page emptied and ``page`` should be fetched instead."""

    page: int


# -----------------------------------------------------------------------------
# Fetch outcomes
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class FetchSuccess:
    page: PageResponse
    page_size: int


@dataclass(frozen=True)
class FetchFailure:
    error: ErrorInfo


FetchOutcome = FetchSuccess | FetchFailure


class ResourceCache:
    """In-memory store for one resource collection.

    Only the fetch orchestrator may call :meth:`begin_fetch` and
    :meth:`apply_fetch_result`; everything else reads :meth:`project` or
    patches items through :meth:`apply_mutation`.

    Derived statistics (:meth:`count_where`, :meth:`count_by`) describe the
    current page only. They are not collection-wide totals; use
    ``pagination.total_items`` for that.
    """

    def __init__(self, collection: CollectionSpec, page_size: int = 20):
        self.collection = collection
        self._status = FetchStatus.IDLE
        self._items: list[Resource] = []
        self._pagination = Pagination(page_size=page_size)
        self._error: ErrorInfo | None = None
        self._in_flight: str | None = None
        self._query: QueryDescriptor | None = None
        self._loaded_once = False
        self._listeners: list[Listener] = []

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def project(self) -> FetchState:
        """Get an immutable snapshot of the cache."""
        return FetchState(
            status=self._status,
            items=tuple(self._items),
            pagination=self._pagination.model_copy(),
            error=self._error,
            in_flight_query_id=self._in_flight,
            query=self._query,
        )

    @property
    def in_flight_query_id(self) -> str | None:
        return self._in_flight

    @property
    def query(self) -> QueryDescriptor | None:
        """Descriptor of the most recently issued query."""
        return self._query

    def get(self, item_id: str) -> Resource | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def count_where(self, predicate: Callable[[Resource], bool]) -> int:
        """Count current-page items matching ``predicate`` (page-local)."""
        return sum(1 for item in self._items if predicate(item))

    def count_by(self, field: str) -> dict[Any, int]:
        """Count current-page items per value of ``field`` (page-local)."""
        return dict(Counter(getattr(item, field, None) for item in self._items))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with a snapshot after every change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        if not self._listeners:
            return
        snapshot = self.project()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Listener failed for {self.collection.name}")

    # -------------------------------------------------------------------------
    # Fetch transitions (orchestrator only)
    # -------------------------------------------------------------------------

    def begin_fetch(self, query_id: str, query: QueryDescriptor):
        """Mark ``query_id`` as the in-flight query, superseding any other."""
        self._in_flight = query_id
        self._query = query
        self._status = FetchStatus.LOADING
        self._error = None
        self._notify()

    def apply_fetch_result(self, query_id: str, outcome: FetchOutcome) -> bool:
        """Apply a fetch outcome if it belongs to the in-flight query.

        Returns:
            False if the outcome was stale and discarded
        """
        if query_id != self._in_flight:
            return False

        self._in_flight = None
        if isinstance(outcome, FetchSuccess):
            page = outcome.page
            self._items = [
                item if isinstance(item, Resource) else self.collection.parse_item(item)
                for item in page.items
            ]
            self._pagination = Pagination(
                current_page=page.current_page,
                total_pages=max(1, page.total_pages),
                total_items=page.total,
                page_size=outcome.page_size,
            )
            self._status = FetchStatus.LOADED
            self._error = None
            self._loaded_once = True
        else:
            self._status = FetchStatus.ERRORED
            self._error = outcome.error
            if not self._loaded_once:
                self._items = []

        self._notify()
        return True

    def invalidate(self):
        """Forget the in-flight query so its response is discarded."""
        if self._in_flight is None:
            return
        self._in_flight = None
        self._status = FetchStatus.LOADED if self._loaded_once else FetchStatus.IDLE
        self._notify()

    def clear_error(self):
        """Dismiss the stored fetch error."""
        if self._error is None:
            return
        self._error = None
        if self._status == FetchStatus.ERRORED:
            self._status = FetchStatus.LOADED if self._loaded_once else FetchStatus.IDLE
        self._notify()

    # -------------------------------------------------------------------------
    # Mutation patches
    # -------------------------------------------------------------------------

    def apply_mutation(self, patch: Patch) -> PageCorrection | None:
        """Apply a structural patch to the current page.

        Returns:
            A PageCorrection when a removal emptied a page other than page 1
        """
        correction = None
        if isinstance(patch, Insert):
            self._insert(patch.item)
        elif isinstance(patch, Replace):
            self._replace(patch.item_id, patch.item)
        elif isinstance(patch, Remove):
            correction = self._remove(patch.item_id)
        elif isinstance(patch, MarkRead):
            self._mark_read(patch.item_ids)
        else:
            raise TypeError(f"Unknown patch: {patch!r}")

        self._notify()
        return correction

    def _insert(self, item: Resource):
        self._items.insert(0, item)
        page_size = self._pagination.page_size
        if len(self._items) > page_size:
            del self._items[page_size:]
        self._set_total(self._pagination.total_items + 1)

    def _replace(self, item_id: str, item: Resource):
        for index, existing in enumerate(self._items):
            if existing.id == item_id:
                self._items[index] = item
                return
        logger.debug(f"Replace skipped, {item_id} not on current page")

    def _remove(self, item_id: str) -> PageCorrection | None:
        before = len(self._items)
        self._items = [item for item in self._items if item.id != item_id]
        if len(self._items) == before:
            logger.debug(f"Remove skipped, {item_id} not on current page")
            return None

        self._set_total(max(0, self._pagination.total_items - 1))
        current = self._pagination.current_page
        if not self._items and current > 1:
            return PageCorrection(page=max(1, min(current - 1, self._pagination.total_pages)))
        return None

    def _mark_read(self, item_ids: tuple[str, ...] | None):
        wanted = None if item_ids is None else set(item_ids)
        for index, item in enumerate(self._items):
            if wanted is not None and item.id not in wanted:
                continue
            if getattr(item, "is_read", True):
                continue
            self._items[index] = item.model_copy(update={"is_read": True})

    def _set_total(self, total: int):
        page_size = self._pagination.page_size
        self._pagination = self._pagination.model_copy(update={
            "total_items": total,
            "total_pages": max(1, math.ceil(total / page_size)),
        })

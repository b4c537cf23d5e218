"""CollectionEngine - wires debounce, query, fetch, cache and mutations for one collection."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from crm_sync.clients.base import Transport
from crm_sync.clients.http import HTTPTransport, export_collection
from crm_sync.data import CollectionSpec, get_collection
from crm_sync.models.mutation import MutationIntent, MutationResult
from crm_sync.models.query import ALL, FilterKey, QueryDescriptor
from crm_sync.models.state import FetchState
from crm_sync.settings import SyncSettings
from crm_sync.sync.cache import PageCorrection, ResourceCache
from crm_sync.sync.debounce import CallLater, Debouncer
from crm_sync.sync.mutations import DeleteConfirmation, MutationReconciler, UnreadCounter
from crm_sync.sync.orchestrator import FetchOrchestrator
from crm_sync.sync.query import compose, to_params

logger = logging.getLogger(__name__)


class CollectionEngine:
    """Synchronizes one paginated resource collection with the API.

    One engine per collection; views receive the engine they need rather
    than reaching into a shared store. The requested query lives in
    :attr:`query`, the resolved page and pagination in :meth:`state`.

    Example:
        engine = CollectionEngine("clients", transport)
        await engine.load()
        engine.type_search("acme")      # committed after 500ms
        await engine.set_filter(FilterKey.AREA_ID, "a1")
        await engine.set_page(2)

        # Use as async context manager for teardown
        async with CollectionEngine("inquiries", transport) as engine:
            await engine.load()
    """

    def __init__(
        self,
        collection: str | CollectionSpec,
        transport: Transport,
        settings: SyncSettings | None = None,
        call_later: CallLater | None = None,
        owns_transport: bool = False,
    ):
        """Initialize engine.

        Args:
            collection: Collection name or spec
            transport: Transport used for every request
            settings: Page size and debounce delays
            call_later: Timer source for the search debounce (tests)
            owns_transport: Close the transport on :meth:`close`
        """
        if isinstance(collection, str):
            collection = get_collection(collection)
        self.collection = collection
        self.transport = transport
        self.settings = settings or SyncSettings()
        self._owns_transport = owns_transport

        self.cache = ResourceCache(collection, page_size=self.settings.page_size)
        self.orchestrator = FetchOrchestrator(transport, self.cache)
        self.reconciler = MutationReconciler(transport, self.cache, resync=self._resync)
        self.deletion = DeleteConfirmation(self.reconciler)
        self.search = Debouncer(
            self.settings.search_debounce,
            self._on_search_committed,
            call_later=call_later,
        )

        self._query = QueryDescriptor(page_size=self.settings.page_size)
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def query(self) -> QueryDescriptor:
        """The currently requested query."""
        return self._query

    def state(self) -> FetchState:
        return self.cache.project()

    def subscribe(self, listener: Callable[[FetchState], None]) -> Callable[[], None]:
        return self.cache.subscribe(listener)

    @property
    def searching(self) -> bool:
        """True while typed search text is waiting to be committed."""
        return self.search.searching

    # -------------------------------------------------------------------------
    # Query intents
    # -------------------------------------------------------------------------

    async def load(self) -> bool:
        """Fetch the current query (initial load or manual refresh)."""
        return await self.orchestrator.run(self._query)

    refresh = load

    async def retry(self) -> bool:
        """Re-issue the last query after a failure."""
        return await self.load()

    async def update_query(self, **change: Any) -> bool:
        """Compose a change into the query and fetch if it changed.

        Returns:
            True if a request was issued

        Raises:
            ValueError: If the collection cannot be filtered by a given key;
                the current query is left unchanged
        """
        self._ensure_open()
        composed = compose(self._query, **change)
        if composed is self._query:
            logger.debug(f"{self.collection.name} query unchanged, skipping fetch")
            return False
        to_params(composed, self.collection)
        self._query = composed
        await self.orchestrator.run(composed)
        return True

    async def set_query(self, descriptor: QueryDescriptor) -> bool:
        """Replace the whole query and fetch it, even if unchanged."""
        self._ensure_open()
        to_params(descriptor, self.collection)
        self._query = descriptor
        return await self.orchestrator.run(descriptor)

    async def set_page(self, page: int) -> bool:
        return await self.update_query(page=page)

    async def next_page(self) -> bool:
        pagination = self.cache.project().pagination
        if pagination.current_page >= pagination.total_pages:
            return False
        return await self.set_page(pagination.current_page + 1)

    async def previous_page(self) -> bool:
        current = self.cache.project().pagination.current_page
        if current <= 1:
            return False
        return await self.set_page(current - 1)

    async def set_filter(self, key: FilterKey | str, value: str) -> bool:
        """Set one filter ("all" clears it)."""
        key = FilterKey(key)
        if key not in self.collection.filter_params:
            raise ValueError(f"Collection {self.collection.name} cannot be filtered by {key.value}")
        return await self.update_query(filters={key: value})

    async def set_search(self, term: str) -> bool:
        """Commit a search term immediately, bypassing the debounce."""
        self.search.reset(term)
        return await self.update_query(search_term=term)

    def type_search(self, raw: str):
        """Feed raw search-box text; committed after the debounce delay."""
        self._ensure_open()
        self.search.submit(raw)

    async def clear_search(self) -> bool:
        return await self.set_search("")

    async def clear_filters(self) -> bool:
        """Reset search and every filter, back to page 1."""
        self.search.reset("")
        cleared = {key: ALL for key in self._query.filters}
        return await self.update_query(search_term="", filters=cleared)

    def _on_search_committed(self, term: str):
        if self._closed:
            return
        task = asyncio.get_running_loop().create_task(self.update_query(search_term=term))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self):
        """Wait for fetches started by committed search text."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _resync(self, correction: PageCorrection | None):
        if correction is not None and await self.set_page(correction.page):
            return
        await self.refresh()

    # -------------------------------------------------------------------------
    # Mutation intents
    # -------------------------------------------------------------------------

    async def dispatch(self, intent: MutationIntent) -> MutationResult:
        self._ensure_open()
        return await self.reconciler.dispatch(intent)

    async def create(self, payload: dict[str, Any]) -> MutationResult:
        return await self.dispatch(MutationIntent.create(payload))

    async def update(self, item_id: str, payload: dict[str, Any]) -> MutationResult:
        return await self.dispatch(MutationIntent.update(item_id, payload))

    async def toggle_status(self, item_id: str) -> MutationResult:
        return await self.dispatch(MutationIntent.toggle_status(item_id))

    def request_delete(self, item_id: str) -> bool:
        return self.deletion.request(item_id)

    def cancel_delete(self) -> MutationResult:
        return self.deletion.cancel()

    async def confirm_delete(self) -> MutationResult:
        self._ensure_open()
        return await self.deletion.confirm()

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    async def export(
        self,
        output_dir: str | Path = ".",
        query: QueryDescriptor | None = None,
    ) -> Path:
        """Download the CSV export for the current (or given) search and filters."""
        params = to_params(query or self._query, self.collection, paginate=False)
        prefix = self.collection.export_prefix or self.collection.name
        return await export_collection(
            self.transport, self.collection.export_path, params, output_dir, prefix
        )

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def _ensure_open(self):
        if self._closed:
            raise RuntimeError(f"{self.collection.name} engine is closed")

    async def close(self):
        """Cancel timers and pending fetches; late responses are discarded."""
        if self._closed:
            return
        self._closed = True
        self.search.cancel()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self.orchestrator.invalidate()
        if self._owns_transport and hasattr(self.transport, "close"):
            self.transport.close()


class NotificationEngine(CollectionEngine):
    """Notifications listing plus the unread counter and mark-read intents.

    Mark-read flips the local flag and decrements the counter before the
    server confirms; a failure re-fetches the counter rather than undoing
    the flip.
    """

    PAGE_SIZE = 50

    def __init__(
        self,
        transport: Transport,
        settings: SyncSettings | None = None,
        call_later: CallLater | None = None,
        owns_transport: bool = False,
    ):
        settings = settings or SyncSettings()
        if "page_size" not in settings.model_fields_set:
            settings = settings.model_copy(update={"page_size": self.PAGE_SIZE})
        super().__init__(
            "notifications",
            transport,
            settings=settings,
            call_later=call_later,
            owns_transport=owns_transport,
        )
        self.unread = UnreadCounter(transport)
        self.reconciler.unread = self.unread

    @property
    def unread_count(self) -> int:
        return self.unread.count

    async def load(self) -> bool:
        applied, _ = await asyncio.gather(
            self.orchestrator.run(self._query),
            self.unread.refresh(),
        )
        return applied

    refresh = load

    async def refresh_unread_count(self) -> int:
        return await self.unread.refresh()

    async def mark_read(self, notification_id: str) -> MutationResult:
        return await self.dispatch(MutationIntent.mark_read(notification_id))

    async def mark_all_read(self) -> MutationResult:
        return await self.dispatch(MutationIntent.mark_all_read())


@dataclass(frozen=True)
class InquiryStats:
    """Lead counts of the current page; ``total`` is the collection-wide count."""

    total: int
    high_priority: int
    medium_priority: int
    low_priority: int
    with_audio: int


def inquiry_stats(state: FetchState) -> InquiryStats:
    """Summarize inquiries for the stats cards.

    The lead and audio counts are page-local: they cover only the items on
    the current page, not the whole filtered collection.
    """
    items = state.items
    return InquiryStats(
        total=state.pagination.total_items or len(items),
        high_priority=sum(1 for i in items if getattr(i, "lead", None) == "Red"),
        medium_priority=sum(1 for i in items if getattr(i, "lead", None) == "Orange"),
        low_priority=sum(1 for i in items if getattr(i, "lead", None) == "Green"),
        with_audio=sum(1 for i in items if getattr(i, "has_audio", False)),
    )


def open_engine(name: str, settings: SyncSettings | None = None) -> CollectionEngine:
    """Create an engine with its own HTTP transport built from ``settings``."""
    settings = settings or SyncSettings()
    transport = HTTPTransport.from_settings(settings)
    if get_collection(name).name == "notifications":
        return NotificationEngine(transport, settings=settings, owns_transport=True)
    return CollectionEngine(name, transport, settings=settings, owns_transport=True)

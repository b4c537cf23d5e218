"""Fetch orchestrator: one in-flight listing request per collection."""

import logging
import uuid

from pydantic import ValidationError

from crm_sync.clients.base import Transport
from crm_sync.errors import TransportError
from crm_sync.models.query import QueryDescriptor
from crm_sync.models.resources import PageResponse
from crm_sync.models.state import ErrorInfo
from crm_sync.sync.cache import FetchFailure, FetchSuccess, ResourceCache
from crm_sync.sync.query import to_params

logger = logging.getLogger(__name__)


class FetchOrchestrator:
    """Issues listing requests for a collection and applies their results.

    The last request issued wins: a response whose query id is no longer
    the cache's in-flight id is dropped, never merged. There is no
    automatic retry; call :meth:`retry` (or :meth:`run` again) instead.

    Example:
        orchestrator = FetchOrchestrator(transport, cache)
        await orchestrator.run(QueryDescriptor(page=2))
        print(cache.project().pagination.current_page)
    """

    def __init__(self, transport: Transport, cache: ResourceCache):
        self.transport = transport
        self.cache = cache
        self.collection = cache.collection
        self.discarded = 0

    async def run(self, descriptor: QueryDescriptor) -> bool:
        """Fetch the page described by ``descriptor`` into the cache.

        Args:
            descriptor: Query to issue

        Returns:
            True if this request's outcome was applied to the cache
        """
        if self.cache.in_flight_query_id is not None and self.cache.query == descriptor:
            logger.debug(f"Skipping duplicate {self.collection.name} query: {descriptor}")
            return False

        params = to_params(descriptor, self.collection)
        query_id = uuid.uuid4().hex
        self.cache.begin_fetch(query_id, descriptor)
        logger.info(f"Fetching {self.collection.name} {params}")

        try:
            payload = await self.transport.get(self.collection.path, params)
            if isinstance(payload, list):
                payload = {"items": payload}
            page = PageResponse.from_payload(payload or {}, self.collection.items_key)
            page.items = [self.collection.parse_item(item) for item in page.items]
            outcome = FetchSuccess(page=page, page_size=descriptor.page_size)
        except TransportError as e:
            outcome = FetchFailure(error=ErrorInfo.from_exception(e))
        except ValidationError as e:
            outcome = FetchFailure(
                error=ErrorInfo(message=f"Malformed {self.collection.name} response: {e.error_count()} errors")
            )
        except Exception as e:
            # The in-flight id must not outlive its request
            if self.cache.apply_fetch_result(query_id, FetchFailure(error=ErrorInfo.from_exception(e))):
                logger.error(f"Unexpected error fetching {self.collection.name}: {e!r}")
            raise

        applied = self.cache.apply_fetch_result(query_id, outcome)
        if not applied:
            self.discarded += 1
            logger.debug(f"Discarded stale {self.collection.name} response for {descriptor}")
        elif isinstance(outcome, FetchFailure):
            logger.warning(f"Failed to fetch {self.collection.name}: {outcome.error.message}")
        return applied

    async def retry(self) -> bool:
        """Re-issue the most recent query."""
        if self.cache.query is None:
            return False
        return await self.run(self.cache.query)

    def invalidate(self):
        """Drop the in-flight request identity (teardown)."""
        self.cache.invalidate()

"""Mutation reconciler: applies create/update/delete/mark-read results to the cache."""

import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from crm_sync.clients.base import Transport
from crm_sync.errors import SyncError, TransportError, ValidationFailure
from crm_sync.models.mutation import (
    DeleteStage,
    MutationIntent,
    MutationKind,
    MutationResult,
    MutationStatus,
)
from crm_sync.models.state import ErrorInfo
from crm_sync.sync.cache import Insert, MarkRead, PageCorrection, Remove, Replace, ResourceCache

logger = logging.getLogger(__name__)

# Called after a delete with the cache's page correction (None: re-run current query)
Resync = Callable[[PageCorrection | None], Awaitable[Any]]

UNREAD_COUNT_PATH = "notifications/unread-count"
READ_ALL_PATH = "notifications/read-all"


def unwrap_record(payload: Any) -> Any:
    """Return the record from a ``{"data": record}`` envelope, or the payload itself."""
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        return payload["data"]
    return payload


class UnreadCounter:
    """Unread-notification count kept beside the notifications cache.

    The count is decremented optimistically and never goes below zero;
    :meth:`refresh` replaces it with the server's value.
    """

    def __init__(self, transport: Transport, count: int = 0):
        self.transport = transport
        self.count = count
        self.error: ErrorInfo | None = None

    def decrement(self, by: int = 1):
        self.count = max(0, self.count - by)

    def clear(self):
        self.count = 0

    async def refresh(self) -> int:
        """Fetch the unread count from the server.

        Returns:
            The current count (unchanged if the request failed)
        """
        try:
            payload = await self.transport.get(UNREAD_COUNT_PATH)
        except TransportError as e:
            self.error = ErrorInfo.from_exception(e)
            logger.warning(f"Failed to fetch unread count: {e.message}")
            return self.count

        try:
            count = int((payload or {}).get("count", 0))
        except (AttributeError, TypeError, ValueError):
            self.error = ErrorInfo(message="Malformed unread count response", kind="server")
            logger.warning(f"Malformed unread count response: {payload!r}")
            return self.count

        self.error = None
        self.count = max(0, count)
        return self.count


class MutationReconciler:
    """Sends mutation intents to the API and patches the cache with the results.

    At most one mutation per target id may be pending. A second intent for
    the same target while the first is in flight returns a BUSY result
    without touching the transport.

    Policies:
    - Create: insert the record the server returned, never the payload sent
    - Update / ToggleStatus: replace only after the server confirms
    - Delete: remove after confirmation, then resync pagination
    - MarkRead / MarkAllRead: flip the read flag immediately; on failure
      re-fetch the unread count instead of rolling back
    """

    def __init__(
        self,
        transport: Transport,
        cache: ResourceCache,
        resync: Resync | None = None,
        unread: UnreadCounter | None = None,
    ):
        self.transport = transport
        self.cache = cache
        self.collection = cache.collection
        self.resync = resync
        self.unread = unread
        self._pending: set[str] = set()

    def is_pending(self, target_id: str) -> bool:
        return target_id in self._pending

    async def dispatch(self, intent: MutationIntent) -> MutationResult:
        """Apply a mutation intent.

        Args:
            intent: The mutation to perform

        Returns:
            MutationResult with status APPLIED, FAILED or BUSY
        """
        key = intent.exclusion_key
        if key is not None and key in self._pending:
            logger.info(f"Ignoring {intent.kind.value} on {self.collection.name}/{key}: busy")
            return MutationResult(status=MutationStatus.BUSY, intent=intent)

        if key is not None:
            self._pending.add(key)
        try:
            return await self._dispatch(intent)
        except SyncError as e:
            return await self._failed(intent, ErrorInfo.from_exception(e))
        except ValidationError:
            error = ErrorInfo(message=f"Malformed {self.collection.name} response", kind="server")
            return await self._failed(intent, error)
        except Exception as e:
            logger.error(f"Unexpected error in {intent.kind.value} on {self.collection.name}: {e!r}")
            await self._refresh_unread(intent)
            raise
        finally:
            if key is not None:
                self._pending.discard(key)

    async def _failed(self, intent: MutationIntent, error: ErrorInfo) -> MutationResult:
        target = f"/{intent.target_id}" if intent.target_id else ""
        logger.warning(f"{intent.kind.value} failed for {self.collection.name}{target}: {error.message}")
        await self._refresh_unread(intent)
        return MutationResult(status=MutationStatus.FAILED, intent=intent, error=error)

    async def _refresh_unread(self, intent: MutationIntent):
        """Replace an optimistic unread count with the server's after a failed mark-read."""
        if intent.kind in (MutationKind.MARK_READ, MutationKind.MARK_ALL_READ) and self.unread:
            await self.unread.refresh()

    async def _dispatch(self, intent: MutationIntent) -> MutationResult:
        kind = intent.kind
        if kind != MutationKind.CREATE and kind != MutationKind.MARK_ALL_READ and not intent.target_id:
            raise ValidationFailure(f"{kind.value} requires a target id")
        if kind in (MutationKind.CREATE, MutationKind.UPDATE) and not intent.payload:
            raise ValidationFailure(f"{kind.value} requires a payload")

        if kind == MutationKind.CREATE:
            payload = await self.transport.post(self.collection.path, intent.payload)
            item = self.collection.parse_item(unwrap_record(payload))
            self.cache.apply_mutation(Insert(item))
            logger.info(f"Created {self.collection.name}/{item.id}")
            return MutationResult(status=MutationStatus.APPLIED, intent=intent, item=item)

        if kind == MutationKind.UPDATE:
            path = self.collection.item_path(intent.target_id)
            payload = await self.transport.put(path, intent.payload)
            item = self.collection.parse_item(unwrap_record(payload))
            self.cache.apply_mutation(Replace(intent.target_id, item))
            logger.info(f"Updated {self.collection.name}/{item.id}")
            return MutationResult(status=MutationStatus.APPLIED, intent=intent, item=item)

        if kind == MutationKind.TOGGLE_STATUS:
            path = f"{self.collection.item_path(intent.target_id)}/toggle-status"
            payload = await self.transport.patch(path)
            item = self.collection.parse_item(unwrap_record(payload))
            self.cache.apply_mutation(Replace(intent.target_id, item))
            return MutationResult(status=MutationStatus.APPLIED, intent=intent, item=item)

        if kind == MutationKind.DELETE:
            await self.transport.delete(self.collection.item_path(intent.target_id))
            correction = self.cache.apply_mutation(Remove(intent.target_id))
            logger.info(f"Deleted {self.collection.name}/{intent.target_id}")
            if self.resync is not None:
                await self.resync(correction)
            return MutationResult(status=MutationStatus.APPLIED, intent=intent)

        if kind == MutationKind.MARK_READ:
            item = self.cache.get(intent.target_id)
            was_unread = item is not None and not getattr(item, "is_read", True)
            self.cache.apply_mutation(MarkRead((intent.target_id,)))
            if was_unread and self.unread:
                self.unread.decrement()
            await self.transport.patch(f"{self.collection.item_path(intent.target_id)}/read")
            return MutationResult(
                status=MutationStatus.APPLIED,
                intent=intent,
                item=self.cache.get(intent.target_id),
            )

        if kind == MutationKind.MARK_ALL_READ:
            self.cache.apply_mutation(MarkRead())
            if self.unread:
                self.unread.clear()
            await self.transport.patch(READ_ALL_PATH)
            return MutationResult(status=MutationStatus.APPLIED, intent=intent)

        raise ValueError(f"Unsupported mutation: {kind}")


class DeleteConfirmation:
    """Two-step confirm/cancel flow in front of a Delete intent.

    ``Idle -> Requested -> (Cancelled -> Idle | Confirmed -> Pending ->
    (Applied | Failed) -> Idle)``. The flow always returns to IDLE; a
    failure is kept in :attr:`error` for display.

    Example:
        flow = DeleteConfirmation(reconciler)
        flow.request(client.id)
        result = await flow.confirm()
    """

    def __init__(self, reconciler: MutationReconciler):
        self.reconciler = reconciler
        self.stage = DeleteStage.IDLE
        self.target_id: str | None = None
        self.error: ErrorInfo | None = None

    def request(self, target_id: str) -> bool:
        """Ask for confirmation to delete ``target_id``.

        Returns:
            False if a delete is already being sent
        """
        if self.stage == DeleteStage.PENDING:
            return False
        self.stage = DeleteStage.REQUESTED
        self.target_id = target_id
        self.error = None
        return True

    def cancel(self) -> MutationResult:
        """Abandon the requested delete."""
        target_id = self.target_id
        if self.stage == DeleteStage.REQUESTED:
            self._reset()
        return MutationResult(
            status=MutationStatus.CANCELLED,
            intent=MutationIntent.delete(target_id) if target_id else None,
        )

    async def confirm(self) -> MutationResult:
        """Send the requested delete.

        Raises:
            RuntimeError: If no delete was requested
        """
        if self.stage == DeleteStage.PENDING:
            return MutationResult(status=MutationStatus.BUSY)
        if self.stage != DeleteStage.REQUESTED or self.target_id is None:
            raise RuntimeError("No delete has been requested")

        self.stage = DeleteStage.PENDING
        try:
            result = await self.reconciler.dispatch(MutationIntent.delete(self.target_id))
        finally:
            self._reset()
        self.error = result.error
        return result

    def _reset(self):
        self.stage = DeleteStage.IDLE
        self.target_id = None

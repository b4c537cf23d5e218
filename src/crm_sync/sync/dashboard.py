"""Dashboard loader: period-keyed summary fetch with last-request-wins."""

import logging
import uuid
from typing import Callable

from pydantic import ValidationError

from crm_sync.clients.base import Transport
from crm_sync.errors import TransportError
from crm_sync.models.dashboard import DashboardData, DashboardPeriod, DashboardState
from crm_sync.models.state import ErrorInfo, FetchStatus

logger = logging.getLogger(__name__)

DASHBOARD_PATH = "dashboard"

Listener = Callable[[DashboardState], None]


class DashboardLoader:
    """Loads the dashboard summary for the selected chart period.

    Changing the period re-issues the request. Only the most recently
    issued request may update the state; a response for a period the user
    has already switched away from is dropped.

    Example:
        dashboard = DashboardLoader(transport)
        await dashboard.load()
        await dashboard.set_period("week")
        print(dashboard.state().data.stats.total_inquiries)
    """

    def __init__(self, transport: Transport, period: DashboardPeriod | str = DashboardPeriod.MONTH):
        self.transport = transport
        self._period = DashboardPeriod(period)
        self._status = FetchStatus.IDLE
        self._data: DashboardData | None = None
        self._error: ErrorInfo | None = None
        self._in_flight: str | None = None
        self._listeners: list[Listener] = []
        self.discarded = 0

    def state(self) -> DashboardState:
        return DashboardState(
            status=self._status,
            period=self._period,
            data=self._data,
            error=self._error,
            in_flight_request_id=self._in_flight,
        )

    @property
    def period(self) -> DashboardPeriod:
        return self._period

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
        snapshot = self.state()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Dashboard listener failed")

    async def load(self, period: DashboardPeriod | str | None = None) -> bool:
        """Fetch the dashboard for ``period`` (default: the current period).

        Args:
            period: Chart bucket: day, week or month

        Returns:
            True if this request's outcome was applied
        """
        period = self._period if period is None else DashboardPeriod(period)
        if self._in_flight is not None and period == self._period:
            logger.debug(f"Skipping duplicate dashboard request for {period.value}")
            return False

        request_id = uuid.uuid4().hex
        self._period = period
        self._in_flight = request_id
        self._status = FetchStatus.LOADING
        self._error = None
        self._notify()
        logger.info(f"Fetching dashboard for {period.value}")

        data = None
        error = None
        try:
            payload = await self.transport.get(DASHBOARD_PATH, {"period": period.value})
            if not isinstance(payload, dict):
                raise TypeError(f"expected an object, got {type(payload).__name__}")
            data = DashboardData.from_payload(payload)
        except TransportError as e:
            error = ErrorInfo.from_exception(e)
        except (TypeError, ValidationError) as e:
            error = ErrorInfo(message=f"Malformed dashboard response: {e}", kind="server")
        except Exception as e:
            if self._finish(request_id, None, ErrorInfo.from_exception(e)):
                logger.error(f"Unexpected error fetching dashboard: {e!r}")
            raise

        applied = self._finish(request_id, data, error)
        if not applied:
            self.discarded += 1
            logger.debug(f"Discarded stale dashboard response for {period.value}")
        elif error is not None:
            logger.warning(f"Failed to fetch dashboard: {error.message}")
        return applied

    def _finish(self, request_id: str, data: DashboardData | None, error: ErrorInfo | None) -> bool:
        if request_id != self._in_flight:
            return False
        self._in_flight = None
        if error is not None:
            self._status = FetchStatus.ERRORED
            self._error = error
        else:
            self._status = FetchStatus.LOADED
            self._data = data
        self._notify()
        return True

    async def set_period(self, period: DashboardPeriod | str) -> bool:
        """Switch the chart period and fetch it.

        Returns:
            False without a request if the period is already selected and loaded
        """
        period = DashboardPeriod(period)
        if period == self._period and self._status == FetchStatus.LOADED:
            return False
        return await self.load(period)

    async def retry(self) -> bool:
        """Re-issue the request for the current period."""
        return await self.load()

    def invalidate(self):
        """Drop the in-flight request so its response is discarded (teardown)."""
        if self._in_flight is None:
            return
        self._in_flight = None
        self._status = FetchStatus.LOADED if self._data is not None else FetchStatus.IDLE
        self._notify()

    def close(self):
        self.invalidate()
        self._listeners.clear()

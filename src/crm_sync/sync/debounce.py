"""Debounce controller for free-text input."""

import asyncio
import logging
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

SEARCH_DEBOUNCE_DELAY = 0.5
FILTER_DEBOUNCE_DELAY = 0.3


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


CallLater = Callable[[float, Callable[[], None]], TimerHandle]


class Debouncer:
    """Turns a rapid stream of raw values into committed values.

    A value is emitted ``delay`` seconds after the last ``submit`` call, and
    only if nothing superseded it in the meantime. Emitting a value equal to
    the last committed one is a no-op, so retyping the same text does not
    re-issue a query.

    Example:
        debouncer = Debouncer(0.5, engine.set_search)
        debouncer.submit("a")
        debouncer.submit("ac")
        debouncer.submit("acme")   # only "acme" reaches set_search, once
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[str], Any],
        *,
        initial: str = "",
        call_later: CallLater | None = None,
    ):
        """Initialize debouncer.

        Args:
            delay: Quiet period in seconds before a value is committed
            callback: Called with each committed value
            initial: Value considered already committed
            call_later: Timer source (defaults to the running loop's call_later)
        """
        self.delay = delay
        self._callback = callback
        self._committed = initial
        self._pending: str | None = None
        self._handle: TimerHandle | None = None
        self._call_later = call_later

    @property
    def committed(self) -> str:
        """Last value emitted downstream."""
        return self._committed

    @property
    def pending(self) -> bool:
        """True while a submitted value is waiting for its timer."""
        return self._handle is not None

    @property
    def searching(self) -> bool:
        """True while a value different from the committed one is waiting."""
        return self.pending and self._pending != self._committed

    def submit(self, value: str):
        """Record a raw input value, restarting the quiet period."""
        self._cancel_timer()
        self._pending = value
        self._handle = self._schedule(self._fire)

    def flush(self) -> bool:
        """Emit the pending value now instead of waiting.

        Returns:
            True if a value was emitted
        """
        if self._handle is None:
            return False
        self._cancel_timer()
        value, self._pending = self._pending, None
        return self._commit(value)

    def cancel(self):
        """Drop the pending value without emitting (component teardown)."""
        self._cancel_timer()
        self._pending = None

    def reset(self, value: str = ""):
        """Set the committed value without emitting anything."""
        self.cancel()
        self._committed = value

    def _schedule(self, fn: Callable[[], None]) -> TimerHandle:
        if self._call_later is not None:
            return self._call_later(self.delay, fn)
        return asyncio.get_running_loop().call_later(self.delay, fn)

    def _cancel_timer(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self):
        self._handle = None
        value, self._pending = self._pending, None
        self._commit(value)

    def _commit(self, value: str | None) -> bool:
        if value is None or value == self._committed:
            logger.debug(f"Debounced value unchanged: {value!r}")
            return False
        self._committed = value
        self._callback(value)
        return True

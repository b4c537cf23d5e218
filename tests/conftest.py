"""Pytest configuration and fakes for crm-sync tests."""

import asyncio
import copy
import math
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires a running CRM API)",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires a running CRM API)"
    )


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


# -----------------------------------------------------------------------------
# Fake transport
# -----------------------------------------------------------------------------


@dataclass
class HeldCall:
    """A request parked until the test releases it."""

    method: str
    path: str
    arg: Any
    future: asyncio.Future


class FakeTransport:
    """In-memory Transport.

    Routes map ``(method, path)`` to a value, an exception instance, or a
    callable receiving the params/body. With ``hold`` set, calls park on a
    future until :meth:`release` answers them, so tests control the order
    in which responses arrive.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.held: list[HeldCall] = []
        self.hold = False
        self.closed = False

    def route(self, method: str, path: str, result: Any):
        self.routes[(method, path)] = result

    def calls_to(self, method: str, path: str | None = None) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] == method and (path is None or c[1] == path)]

    def answer(self, method: str, path: str, arg: Any) -> Any:
        if (method, path) not in self.routes:
            raise AssertionError(f"Unexpected request: {method} {path}")
        result = self.routes[(method, path)]
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            result = result(arg)
        return copy.deepcopy(result)

    async def _call(self, method: str, path: str, arg: Any) -> Any:
        self.calls.append((method, path, arg))
        if self.hold:
            future = asyncio.get_running_loop().create_future()
            self.held.append(HeldCall(method, path, arg, future))
            return await future
        return self.answer(method, path, arg)

    def release(self, index: int = 0, result: Any = None, error: Exception | None = None):
        """Answer a held call (from its route unless ``result``/``error`` given)."""
        call = self.held.pop(index)
        if error is not None:
            call.future.set_exception(error)
            return
        if result is None:
            try:
                result = self.answer(call.method, call.path, call.arg)
            except Exception as e:
                call.future.set_exception(e)
                return
        call.future.set_result(result)

    async def get(self, path, params=None):
        return await self._call("GET", path, params)

    async def post(self, path, body=None):
        return await self._call("POST", path, body)

    async def put(self, path, body=None):
        return await self._call("PUT", path, body)

    async def patch(self, path, body=None):
        return await self._call("PATCH", path, body)

    async def delete(self, path):
        return await self._call("DELETE", path, None)

    async def download(self, path, params=None):
        return await self._call("DOWNLOAD", path, params)

    def close(self):
        self.closed = True


def paged_listing(records: list[dict], items_key: str) -> Callable[[dict | None], dict]:
    """Route handler serving ``records`` the way the API pages and searches them."""

    def handler(params):
        params = params or {}
        page = params.get("page", 1)
        limit = params.get("limit", 20)
        rows = records
        if params.get("search"):
            needle = params["search"].lower()
            rows = [r for r in rows if needle in r.get("name", "").lower()]
        start = (page - 1) * limit
        return {
            items_key: rows[start:start + limit],
            "currentPage": page,
            "totalPages": max(1, math.ceil(len(rows) / limit)),
            "total": len(rows),
        }

    return handler


# -----------------------------------------------------------------------------
# Fake clock
# -----------------------------------------------------------------------------


@dataclass
class FakeTimer:
    when: float
    fn: Callable[[], None]
    cancelled: bool = field(default=False)

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Manually advanced ``call_later`` replacement."""

    def __init__(self):
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, fn: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, fn)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float):
        self.now += seconds
        due = sorted(
            (t for t in self.timers if not t.cancelled and t.when <= self.now),
            key=lambda t: t.when,
        )
        for timer in due:
            self.timers.remove(timer)
            timer.fn()
        self.timers = [t for t in self.timers if not t.cancelled]

    @property
    def active(self) -> int:
        return sum(1 for t in self.timers if not t.cancelled)


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


def client_record(n: int, **overrides) -> dict:
    record = {"_id": f"c{n}", "name": f"Client {n}", "isActive": True}
    record.update(overrides)
    return record


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def clients_db():
    """45 client records served from GET clients."""
    return [client_record(n) for n in range(1, 46)]


@pytest.fixture
def make_client():
    return client_record


@pytest.fixture
def paged():
    return paged_listing

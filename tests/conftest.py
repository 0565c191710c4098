"""Test configuration and shared fakes for the entire test suite."""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

import pytest


# =============================================================================
# REST FAKES
# =============================================================================


class FakeResponse:
    """Minimal aiohttp response used as an async context manager."""

    def __init__(self, body: Any = None, status: int = 200, headers: Optional[Dict] = None):
        self.status = status
        self.headers = headers or {}
        self._body = body if isinstance(body, str) else json.dumps(body)

    async def text(self) -> str:
        return self._body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


class FakeSession:
    """
    Stand-in for aiohttp.ClientSession.

    Each get() consumes the next queued item: a FakeResponse is returned, an
    exception is raised, and an awaitable is awaited first (for slow requests).
    """

    def __init__(self, *responses: Any):
        self.responses: List[Any] = list(responses)
        self.calls: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self.closed = False

    def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> "_PendingRequest":
        self.calls.append((url, params))
        return _PendingRequest(self.responses.pop(0))

    async def close(self) -> None:
        self.closed = True


class _PendingRequest:
    def __init__(self, item: Any):
        self._item = item

    async def __aenter__(self) -> FakeResponse:
        item = self._item
        if isinstance(item, BaseException):
            raise item
        if asyncio.iscoroutine(item) or isinstance(item, asyncio.Future):
            item = await item
        return item

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


class FakeRestClient:
    """
    Stand-in for RestClient that serves canned payloads by path.

    A value that is an exception instance is raised instead of returned.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = routes or {}
        self.calls: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self.closed = False

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        abort: Optional[asyncio.Event] = None,
    ) -> Any:
        self.calls.append((path, params))
        result = self.routes[path]
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# STREAMING FAKES
# =============================================================================

_END = object()


class FakeTransport:
    """
    Scriptable in-memory transport.

    Frames pushed with feed() are yielded in order. end() finishes the
    iteration, optionally by raising ``error`` (an abnormal close).
    """

    def __init__(self, *frames: Union[str, Dict, List]):
        self.sent: List[str] = []
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()
        for frame in frames:
            self.feed(frame)

    def feed(self, frame: Union[str, Dict, List]) -> None:
        self._queue.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def end(self, error: Optional[BaseException] = None) -> None:
        self._queue.put_nowait(error if error is not None else _END)

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True
        self._queue.put_nowait(_END)

    def __aiter__(self) -> "FakeTransport":
        return self

    async def __anext__(self) -> str:
        item = await self._queue.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeTransportFactory:
    """Hands out queued transports; raises OSError once they run out."""

    def __init__(self, *transports: Union[FakeTransport, BaseException]):
        self.transports = list(transports)
        self.urls: List[str] = []

    async def __call__(self, url: str) -> FakeTransport:
        self.urls.append(url)
        if not self.transports:
            raise OSError("connection refused")
        item = self.transports.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingSleep:
    """
    Sleep replacement that records requested delays.

    The first ``immediate`` calls return at once; later calls wait until
    cancelled, so a session stops cycling after a known number of retries.
    """

    def __init__(self, immediate: int = 1):
        self.immediate = immediate
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if len(self.delays) <= self.immediate:
            await asyncio.sleep(0)
            return
        await asyncio.Event().wait()


async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def fake_session_class() -> type:
    """Return the fake aiohttp session class."""
    return FakeSession


@pytest.fixture
def fake_response_class() -> type:
    """Return the fake aiohttp response class."""
    return FakeResponse


@pytest.fixture
def fake_rest_class() -> type:
    """Return the fake REST client class."""
    return FakeRestClient


@pytest.fixture
def transport_class() -> type:
    """Return the fake transport class."""
    return FakeTransport


@pytest.fixture
def factory_class() -> type:
    """Return the fake transport factory class."""
    return FakeTransportFactory


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Sleep that returns once, then blocks until cancelled."""
    return RecordingSleep(immediate=1)


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    """Poll a predicate on the event loop until it holds."""
    return _wait_until


@pytest.fixture
def collected() -> List[Tuple[Any, str]]:
    """List that a recording handler appends (message, exchange_name) to."""
    return []


@pytest.fixture
def handler(collected: List[Tuple[Any, str]]) -> Callable[[Any, str], None]:
    """Message handler that records every delivery."""

    def _handler(message: Any, exchange_name: str) -> None:
        collected.append((message, exchange_name))

    return _handler

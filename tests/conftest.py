"""Shared pytest fixtures for geminifs tests.

Provides a recording ``httpx.MockTransport``, a transport/client wired to
it, and a fake clock/sleep pair so polling tests run without real time.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from geminifs.client import GeminiFileStoreClient
from geminifs.transport import GeminiTransport

API_KEY = "test-key"
BASE_URL = "https://generativelanguage.googleapis.com"


class RecordingHandler:
    """MockTransport handler that records requests and replays queued responses.

    Each queued item is either an ``httpx.Response``, an exception instance
    (raised when its turn comes), or a callable taking the request and
    returning one of those.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._queue: list[Any] = []

    def add(self, item: Any) -> RecordingHandler:
        self._queue.append(item)
        return self

    def add_json(self, payload: Any, status_code: int = 200, headers: dict | None = None):
        return self.add(httpx.Response(status_code, json=payload, headers=headers))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._queue:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        item = self._queue.pop(0)
        if callable(item) and not isinstance(item, httpx.Response):
            item = item(request)
        if isinstance(item, Exception):
            raise item
        return item

    def json_body(self, index: int) -> Any:
        return json.loads(self.requests[index].content)


class FakeClock:
    """Monotonic clock that only advances when :meth:`sleep` is awaited."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def http_client(handler: RecordingHandler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    yield client
    await client.aclose()


@pytest.fixture
def transport(http_client: httpx.AsyncClient) -> GeminiTransport:
    return GeminiTransport(api_key=API_KEY, base_url=BASE_URL, client=http_client)


@pytest.fixture
def make_client(http_client: httpx.AsyncClient, fake_clock: FakeClock) -> Callable[..., GeminiFileStoreClient]:
    """Factory for a client backed by the mock transport and fake clock."""

    def _make(**kwargs: Any) -> GeminiFileStoreClient:
        return GeminiFileStoreClient(
            api_key=kwargs.pop("api_key", API_KEY),
            http_client=http_client,
            clock=fake_clock,
            sleep=fake_clock.sleep,
            **kwargs,
        )

    return _make

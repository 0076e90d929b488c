"""Test doubles shared across the unit tests."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from reportflow.api.schemas.orders import OrderDocument
from reportflow.db.models import Order

STORAGE_BASE = "https://storage.test"
TOKEN_URL = "https://creds.test/token.txt"
COOKIE_URL = "https://creds.test/Cookie.txt"
ANALYSIS_URL = "https://analysis.test/api/deep-check"
CDN_BASE = "https://cdn.test/v1_1"
SOURCE_URL = "https://files.test/uploads/essay.docx"
WORKFLOW_ID = "wf-0001"


def order_document(order: Order) -> OrderDocument:
    """The insert-event view of a stored order."""
    return OrderDocument.from_order(order)


class RecordingRouter:
    """Maps (method, url-prefix) to canned responses and records every request."""

    def __init__(self) -> None:
        self.routes: list[tuple[str, str, Any]] = []
        self.requests: list[httpx.Request] = []

    def add(self, method: str, prefix: str, response: Any) -> "RecordingRouter":
        self.routes.append((method.upper(), prefix, response))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for method, prefix, response in self.routes:
            if request.method == method and url.startswith(prefix):
                if callable(response):
                    return response(request)
                return response
        return httpx.Response(404, json={"error": "no route"})

    def sent_to(self, prefix: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).startswith(prefix)]


class VirtualClock:
    """Monotonic clock advanced only by `sleep`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


STREAM_END = object()


class FakeSubscription:
    """Change subscription fed by the test through push()."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def push(self, item) -> None:
        self.queue.put_nowait(item)

    def __aiter__(self):
        return self

    async def __anext__(self) -> OrderDocument:
        if self.closed:
            raise StopAsyncIteration
        item = await self.queue.get()
        if item is STREAM_END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True
        self.queue.put_nowait(STREAM_END)


class FakeStream:
    """open() fails with the queued errors first, then succeeds.

    With `gated=True` a successful open waits until `gate` is set.
    """

    def __init__(self, failures: list[BaseException] | None = None, gated: bool = False) -> None:
        self.failures = list(failures or [])
        self.gate = asyncio.Event()
        if not gated:
            self.gate.set()
        self.opens = 0
        self.subscriptions: list[FakeSubscription] = []

    async def open(self) -> FakeSubscription:
        self.opens += 1
        if self.failures:
            raise self.failures.pop(0)
        await self.gate.wait()
        subscription = FakeSubscription()
        self.subscriptions.append(subscription)
        return subscription

    @property
    def current(self) -> FakeSubscription:
        return self.subscriptions[-1]


async def settle(turns: int = 20) -> None:
    """Let pending tasks run for a few event-loop turns."""
    for _ in range(turns):
        await asyncio.sleep(0)

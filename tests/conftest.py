from __future__ import annotations

import heapq
import itertools
from typing import Any, AsyncIterator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.services.mapping.session import MappingSessionRegistry
from app.services.rules.layout_loader import LayoutMapStore
from app.state import global_state


class FakeHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Manual clock: callbacks run only when ``advance`` passes their deadline."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, FakeHandle, Callable[..., Any], tuple[Any, ...]]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        handle = FakeHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), handle, callback, args))
        return handle

    def advance(self, ms: float) -> None:
        target = self.now + ms / 1000
        while self._queue and self._queue[0][0] <= target:
            when, _seq, handle, callback, args = heapq.heappop(self._queue)
            self.now = when
            if not handle.cancelled:
                callback(*args)
        self.now = target

    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)


@pytest.fixture
def fake_loop() -> FakeLoop:
    return FakeLoop()


@pytest_asyncio.fixture
async def client(tmp_path) -> AsyncIterator[AsyncClient]:
    """HTTP client against the app with services wired to a temp directory."""

    global_state.layout_store = LayoutMapStore(tmp_path / "layout_maps")
    global_state.sessions = MappingSessionRegistry(history_limit=10)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    global_state.sessions.close_all()
    global_state.layout_store = None
    global_state.sessions = None

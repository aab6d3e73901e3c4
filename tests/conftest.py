"""Pytest configuration and fixtures for blogdesk tests."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

import httpx
import pytest

from adapters.http_client import HttpDispatcher
from adapters.token_storage import MemoryStorage
from core.config import AppSettings
from core.domain.outcome import Outcome, RequestDescriptor
from core.services.session_store import SessionStore

API_BASE = "https://blog.test/api"


class Router:
    """Scripted `httpx.MockTransport` handler.

    Each (method, path) owns a queue of replies; the last reply repeats.
    A reply is an `httpx.Response`, an exception class from httpx (raised
    with the request attached) or a callable taking the request.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = defaultdict(list)
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Any) -> "Router":
        self.routes[(method.upper(), path)].extend(replies)
        return self

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": "Not found"})
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, type) and issubclass(reply, httpx.HTTPError):
            raise reply("simulated failure", request=request)
        if callable(reply) and not isinstance(reply, httpx.Response):
            return reply(request)
        return reply


class SleepRecorder:
    """Stands in for `asyncio.sleep`; records delays instead of waiting."""

    def __init__(self, on_sleep: Callable[[float], None] | None = None) -> None:
        self.calls: list[float] = []
        self._on_sleep = on_sleep

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._on_sleep is not None:
            self._on_sleep(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


class ScriptedDispatcher:
    """Dispatcher double returning pre-baked outcomes in order."""

    def __init__(self, *outcomes: Outcome) -> None:
        self.outcomes = list(outcomes)
        self.sent: list[RequestDescriptor] = []

    async def send(self, descriptor: RequestDescriptor) -> Outcome:
        self.sent.append(descriptor)
        if len(self.outcomes) > 1:
            return self.outcomes.pop(0)
        return self.outcomes[0]


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        api_base_url=API_BASE,
        session_file=tmp_path / "session.json",
    )


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def session_store(storage) -> SessionStore:
    store = SessionStore(storage)
    store.init()
    return store


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
async def dispatcher(settings, session_store, router):
    dispatcher = HttpDispatcher(
        session=session_store,
        settings=settings,
        transport=httpx.MockTransport(router),
    )
    yield dispatcher
    await dispatcher.aclose()

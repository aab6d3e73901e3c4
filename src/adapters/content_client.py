"""Composition root: wires storage, session, dispatcher, retries and operations.

Usage:
    ```python
    settings = AppSettings()
    async with ContentClient(settings) as client:
        await client.auth.login("admin@example.com", "secret")
        await client.feed.refresh()
        client.feed.search("python")
    ```
"""

from __future__ import annotations

from typing import Awaitable, Callable

import httpx

from adapters.http_client import HttpDispatcher
from adapters.token_storage import JsonFileStorage
from core.config import AppSettings
from core.interfaces.storage import KeyValueStorage
from core.services.auth import AuthService
from core.services.blog_feed import BlogFeed
from core.services.content_api import ContentAPI
from core.services.retry import RetryController, health_probe
from core.services.session_store import SessionStore


class ContentClient:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        storage: KeyValueStorage | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[object]] | None = None,
    ) -> None:
        self.settings = settings or AppSettings()
        self.session = SessionStore(storage or JsonFileStorage(self.settings.resolved_session_file()))
        self.session.init()

        self.dispatcher = HttpDispatcher(
            session=self.session,
            settings=self.settings,
            transport=transport,
        )
        retry_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.retry = RetryController(
            probe=health_probe(
                self.dispatcher,
                timeout_ms=int(self.settings.health_timeout_seconds * 1000),
            ),
            max_attempts=self.settings.max_attempts,
            backoff_ms=int(self.settings.backoff_seconds * 1000),
            retryable_statuses=self.settings.retryable_statuses,
            **retry_kwargs,
        )
        self.api = ContentAPI(self.dispatcher, self.retry, self.settings)
        self.auth = AuthService(self.api.admin, self.session)
        self.feed = BlogFeed(self.api.blogs)

    async def __aenter__(self) -> "ContentClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.dispatcher.aclose()

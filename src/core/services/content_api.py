"""Domain operations of the content service.

Each operation is a named request descriptor sent through the dispatcher
and wrapped by the retry controller. They return the raw `Outcome`; turning
bodies into models is left to `parse_*` helpers so callers decide what to do
with a malformed record.

Usage:
    ```python
    api = ContentAPI(dispatcher, retry, settings)
    outcome = await api.blogs.get_blogs()
    if isinstance(outcome, Success):
        blogs = parse_blogs(outcome.body)
    ```
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError

from core.config import AppSettings
from core.domain.models import Author, AuthorDraft, BlogDraft, BlogEntity, BlogUpdate, EntityId
from core.domain.outcome import ContentKind, Outcome, RequestDescriptor
from core.interfaces.dispatcher import RequestDispatcher
from core.services.cancellation import CancelToken
from core.services.retry import RetryController

logger = logging.getLogger(__name__)

TOKEN_KEYS = ("token", "accessToken", "authToken")


@dataclass(frozen=True)
class OperationConfig:
    """Timeout and retry budget for one kind of call."""

    timeout_ms: int
    max_attempts: int | None = None


def _seconds_to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))


class _Operations:
    def __init__(
        self,
        dispatcher: RequestDispatcher,
        retry: RetryController,
        settings: AppSettings | None = None,
    ) -> None:
        settings = settings or AppSettings()
        self._dispatcher = dispatcher
        self._retry = retry
        self.default_config = OperationConfig(timeout_ms=_seconds_to_ms(settings.http_timeout_seconds))
        self.upload_config = OperationConfig(timeout_ms=_seconds_to_ms(settings.upload_timeout_seconds))

    async def _call(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        content_kind: ContentKind = ContentKind.JSON,
        authenticated: bool = True,
        config: OperationConfig | None = None,
        cancel: CancelToken | None = None,
    ) -> Outcome:
        config = config or self.default_config
        descriptor = RequestDescriptor(
            method=method,
            path=path,
            body=body,
            content_kind=content_kind,
            timeout_ms=config.timeout_ms,
            authenticated=authenticated,
        )

        async def attempt() -> Outcome:
            return await self._dispatcher.send(descriptor)

        return await self._retry.with_retry(attempt, config.max_attempts, cancel=cancel)


class BlogsAPI(_Operations):
    async def get_blogs(self, *, cancel: CancelToken | None = None) -> Outcome:
        logger.debug("Fetching blogs...")
        return await self._call("GET", "/blogs", cancel=cancel)

    async def create_blog(self, draft: BlogDraft, *, cancel: CancelToken | None = None) -> Outcome:
        return await self._call(
            "POST",
            "/blogs",
            body=draft.to_multipart(),
            content_kind=ContentKind.MULTIPART,
            config=self.upload_config,
            cancel=cancel,
        )

    async def update_blog(
        self,
        blog_id: EntityId,
        update: BlogUpdate,
        *,
        cancel: CancelToken | None = None,
    ) -> Outcome:
        return await self._call("PUT", f"/blogs/{blog_id}", body=update.fields(), cancel=cancel)

    async def delete_blog(self, blog_id: EntityId, *, cancel: CancelToken | None = None) -> Outcome:
        return await self._call("DELETE", f"/blogs/{blog_id}", cancel=cancel)


class AuthorsAPI(_Operations):
    async def get_authors(self, *, cancel: CancelToken | None = None) -> Outcome:
        return await self._call("GET", "/authors", cancel=cancel)

    async def create_author(self, draft: AuthorDraft, *, cancel: CancelToken | None = None) -> Outcome:
        return await self._call("POST", "/authors", body=draft.payload(), cancel=cancel)


class AdminAPI(_Operations):
    async def login(self, email: str, password: str, *, cancel: CancelToken | None = None) -> Outcome:
        logger.debug("Attempting login...")
        return await self._call(
            "POST",
            "/admin/login",
            body={"email": email, "password": password},
            authenticated=False,
            cancel=cancel,
        )

    async def logout(self, *, cancel: CancelToken | None = None) -> Outcome:
        return await self._call("POST", "/admin/logout", cancel=cancel)

    async def test_connection(self, *, cancel: CancelToken | None = None) -> Outcome:
        """`GET /health` under the API prefix, with retries."""

        logger.debug("Testing backend connection...")
        return await self._call("GET", "/health", authenticated=False, cancel=cancel)


class ContentAPI:
    """Groups the operation families over one dispatcher and retry policy.

    Attributes:
        blogs: BlogsAPI - list/create/update/delete posts
        authors: AuthorsAPI - list/create authors
        admin: AdminAPI - login/logout/connection test
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        retry: RetryController,
        settings: AppSettings | None = None,
    ) -> None:
        settings = settings or AppSettings()
        self.blogs = BlogsAPI(dispatcher, retry, settings)
        self.authors = AuthorsAPI(dispatcher, retry, settings)
        self.admin = AdminAPI(dispatcher, retry, settings)


def _records(body: Any) -> list[Any]:
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in ("blogs", "authors", "data", "items"):
            value = body.get(key)
            if isinstance(value, list):
                return value
    return []


def parse_blogs(body: Any) -> list[BlogEntity]:
    blogs: list[BlogEntity] = []
    for record in _records(body):
        try:
            blogs.append(BlogEntity.model_validate(record))
        except ValidationError as exc:
            logger.warning("Skipping malformed blog record: %s", exc.errors()[:1])
    return blogs


def parse_blog(body: Any) -> BlogEntity | None:
    """Entity returned by create/update, if the server sent one."""

    if not isinstance(body, Mapping):
        return None
    record = body.get("blog") if isinstance(body.get("blog"), Mapping) else body
    try:
        return BlogEntity.model_validate(record)
    except ValidationError:
        return None


def parse_authors(body: Any) -> list[Author]:
    authors: list[Author] = []
    for record in _records(body):
        try:
            authors.append(Author.model_validate(record))
        except ValidationError as exc:
            logger.warning("Skipping malformed author record: %s", exc.errors()[:1])
    return authors


def extract_token(body: Any) -> str | None:
    """Token from a login response (`token`, `accessToken` or `authToken`)."""

    if not isinstance(body, Mapping):
        return None
    for key in TOKEN_KEYS:
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None

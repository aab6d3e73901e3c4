"""Dispatcher: auth header, failure classification and 401 teardown."""

import asyncio

import httpx
import pytest

from adapters.http_client import HttpDispatcher, classify_exception, classify_response
from core.domain.outcome import (
    ContentKind,
    Failure,
    FailureKind,
    FilePart,
    MultipartBody,
    RequestDescriptor,
    Success,
)

API_BASE = "https://blog.test/api"


def _get(path="/blogs", **kwargs):
    return RequestDescriptor(method="GET", path=path, **kwargs)


async def test_attaches_bearer_token_when_logged_in(dispatcher, router, session_store):
    session_store.establish("secret-token", "a@b.c")
    router.add("GET", "/api/blogs", httpx.Response(200, json=[]))

    outcome = await dispatcher.send(_get())

    assert outcome == Success(status=200, body=[])
    assert router.requests[0].headers["Authorization"] == "Bearer secret-token"


async def test_no_token_means_no_header(dispatcher, router):
    router.add("POST", "/api/admin/login", httpx.Response(200, json={"token": "t"}))

    outcome = await dispatcher.send(
        RequestDescriptor("POST", "/admin/login", body={"email": "a@b.c", "password": "x"}, authenticated=False)
    )

    assert isinstance(outcome, Success)
    assert "Authorization" not in router.requests[0].headers
    assert router.requests[0].headers["Content-Type"] == "application/json"


async def test_unauthenticated_descriptor_skips_token(dispatcher, router, session_store):
    session_store.establish("secret-token", "a@b.c")
    router.add("GET", "/health", httpx.Response(200, json={"status": "ok"}))

    await dispatcher.send(_get("/health", authenticated=False, use_service_root=True))

    assert "Authorization" not in router.requests[0].headers
    assert str(router.requests[0].url) == "https://blog.test/health"


@pytest.mark.parametrize(
    "exc_type",
    [httpx.ConnectTimeout, httpx.ReadTimeout, httpx.ConnectError, httpx.ReadError],
)
async def test_no_response_errors_are_transient(dispatcher, router, exc_type):
    router.add("GET", "/api/blogs", exc_type)

    outcome = await dispatcher.send(_get())

    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.TRANSIENT
    assert outcome.status is None


async def test_other_transport_errors_are_unknown(dispatcher, router):
    router.add("GET", "/api/blogs", httpx.UnsupportedProtocol)

    outcome = await dispatcher.send(_get())

    assert outcome.kind is FailureKind.UNKNOWN


async def test_client_error_carries_server_message(dispatcher, router):
    router.add("PUT", "/api/blogs/7", httpx.Response(404, json={"error": "Blog not found"}))

    outcome = await dispatcher.send(RequestDescriptor("PUT", "/blogs/7", body={"title": "x"}))

    assert outcome == Failure(FailureKind.CLIENT_ERROR, 404, "Blog not found")


async def test_server_error(dispatcher, router):
    router.add("GET", "/api/blogs", httpx.Response(503, text="upstream down"))

    outcome = await dispatcher.send(_get())

    assert outcome.kind is FailureKind.SERVER_ERROR
    assert outcome.status == 503


async def test_unauthorized_clears_session_before_returning(dispatcher, router, session_store):
    session_store.establish("stale", "a@b.c")
    seen = []
    session_store.subscribe(lambda: seen.append(session_store.current_token()))
    router.add("GET", "/api/blogs", httpx.Response(401, json={"message": "Token expired"}))

    outcome = await dispatcher.send(_get())

    assert outcome == Failure(FailureKind.UNAUTHORIZED, 401, "Token expired")
    assert session_store.current_token() is None
    assert seen == [None]


async def test_concurrent_unauthorized_emit_single_invalidation(dispatcher, router, session_store):
    session_store.establish("stale", "a@b.c")
    notifications = []
    session_store.subscribe(lambda: notifications.append(1))
    router.add("GET", "/api/blogs", httpx.Response(401))
    router.add("GET", "/api/authors", httpx.Response(401))
    router.add("DELETE", "/api/blogs/1", httpx.Response(401))

    outcomes = await asyncio.gather(
        dispatcher.send(_get("/blogs")),
        dispatcher.send(_get("/authors")),
        dispatcher.send(RequestDescriptor("DELETE", "/blogs/1")),
    )

    assert all(o.kind is FailureKind.UNAUTHORIZED for o in outcomes)
    assert session_store.current_token() is None
    assert notifications == [1]


async def test_unauthorized_without_session_keeps_it_empty(dispatcher, router, session_store):
    notifications = []
    session_store.subscribe(lambda: notifications.append(1))
    router.add("POST", "/api/admin/login", httpx.Response(401, json={"error": "Invalid credentials"}))

    outcome = await dispatcher.send(RequestDescriptor("POST", "/admin/login", body={}, authenticated=False))

    assert outcome.message == "Invalid credentials"
    assert session_store.current_token() is None
    assert notifications == []


async def test_unauthorized_on_tokenless_request_keeps_live_session(dispatcher, router, session_store):
    session_store.establish("live-token", "a@b.c")
    notifications = []
    session_store.subscribe(lambda: notifications.append(1))
    router.add("GET", "/health", httpx.Response(401))

    outcome = await dispatcher.send(_get("/health", authenticated=False, use_service_root=True))

    assert outcome.kind is FailureKind.UNAUTHORIZED
    assert session_store.current_token() == "live-token"
    assert notifications == []


async def test_multipart_body_is_form_data(dispatcher, router):
    router.add("POST", "/api/blogs", httpx.Response(201, json={"_id": "b1", "title": "Hi"}))
    body = MultipartBody(
        fields={"title": "Hi", "content": "Body", "author": "a1"},
        files={"image": FilePart("cover.png", b"\x89PNG", "image/png")},
    )

    outcome = await dispatcher.send(
        RequestDescriptor("POST", "/blogs", body=body, content_kind=ContentKind.MULTIPART, timeout_ms=180_000)
    )

    assert isinstance(outcome, Success)
    request = router.requests[0]
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b'name="title"' in request.content
    assert b'filename="cover.png"' in request.content


async def test_multipart_without_file_is_still_form_data(dispatcher, router):
    router.add("POST", "/api/blogs", httpx.Response(201, json={}))
    body = MultipartBody(fields={"title": "Hi", "content": "Body", "author": "a1"})

    await dispatcher.send(RequestDescriptor("POST", "/blogs", body=body, content_kind=ContentKind.MULTIPART))

    assert router.requests[0].headers["Content-Type"].startswith("multipart/form-data")


async def test_descriptor_timeout_is_applied(dispatcher, router):
    router.add("GET", "/api/blogs", httpx.Response(200, json=[]))

    await dispatcher.send(_get(timeout_ms=2_500))

    timeout = router.requests[0].extensions["timeout"]
    assert timeout["read"] == 2.5


async def test_non_json_success_body_is_text(dispatcher, router):
    router.add("POST", "/api/admin/logout", httpx.Response(200, text="bye"))

    outcome = await dispatcher.send(RequestDescriptor("POST", "/admin/logout"))

    assert outcome == Success(status=200, body="bye")


def test_explicit_base_url_derives_service_root(session_store, settings):
    dispatcher = HttpDispatcher(session=session_store, settings=settings, base_url="https://other.test/api/")

    assert dispatcher.url_for(_get()) == "https://other.test/api/blogs"
    assert dispatcher.url_for(_get("/health", use_service_root=True)) == "https://other.test/health"


def test_default_urls_come_from_settings(session_store, settings):
    dispatcher = HttpDispatcher(session=session_store, settings=settings)

    assert dispatcher.base_url == API_BASE


def test_classify_redirect_status_as_unknown():
    response = httpx.Response(304, request=httpx.Request("GET", API_BASE))

    assert classify_response(response).kind is FailureKind.UNKNOWN


def test_classify_exception_unknown_for_generic_errors():
    assert classify_exception(ValueError("boom")).kind is FailureKind.UNKNOWN

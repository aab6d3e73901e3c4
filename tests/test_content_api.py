"""Domain operations: descriptors they build and how bodies are parsed."""

import pytest

from core.domain.models import AuthorDraft, BlogUpdate
from core.domain.outcome import ContentKind, Failure, FailureKind, Success
from core.services.content_api import (
    ContentAPI,
    OperationConfig,
    extract_token,
    parse_authors,
    parse_blog,
    parse_blogs,
)
from core.services.retry import RetryController

from conftest import ScriptedDispatcher


def _api(settings, sleeper, *outcomes):
    dispatcher = ScriptedDispatcher(*(outcomes or (Success(200),)))
    return ContentAPI(dispatcher, RetryController(sleep=sleeper), settings), dispatcher


async def test_default_timeout_comes_from_settings(settings, sleeper):
    api, dispatcher = _api(settings, sleeper)

    await api.blogs.get_blogs()

    assert dispatcher.sent[0].timeout_ms == 120_000
    assert dispatcher.sent[0].authenticated


async def test_update_sends_only_set_fields(settings, sleeper):
    api, dispatcher = _api(settings, sleeper)

    await api.blogs.update_blog(42, BlogUpdate(content="  Body  "))

    descriptor = dispatcher.sent[0]
    assert (descriptor.method, descriptor.path) == ("PUT", "/blogs/42")
    assert descriptor.body == {"content": "Body"}
    assert descriptor.content_kind is ContentKind.JSON


async def test_authors_operations(settings, sleeper):
    api, dispatcher = _api(settings, sleeper)

    await api.authors.get_authors()
    await api.authors.create_author(AuthorDraft(name=" Ana ", email="ana@example.com"))

    assert [(d.method, d.path) for d in dispatcher.sent] == [("GET", "/authors"), ("POST", "/authors")]
    assert dispatcher.sent[1].body == {"name": "Ana", "email": "ana@example.com"}


async def test_test_connection_hits_api_health_without_token(settings, sleeper):
    api, dispatcher = _api(settings, sleeper)

    await api.admin.test_connection()

    descriptor = dispatcher.sent[0]
    assert descriptor.path == "/health"
    assert not descriptor.use_service_root
    assert not descriptor.authenticated


async def test_operation_budget_overrides_controller_default(settings, sleeper):
    api, dispatcher = _api(settings, sleeper, Failure(FailureKind.TRANSIENT))
    api.blogs.default_config = OperationConfig(timeout_ms=1_000, max_attempts=2)

    outcome = await api.blogs.get_blogs()

    assert outcome.kind is FailureKind.TRANSIENT
    assert len(dispatcher.sent) == 2
    assert dispatcher.sent[0].timeout_ms == 1_000


def test_parse_blogs_accepts_list_or_wrapper():
    records = [{"_id": "1", "title": "A"}, {"_id": "2", "title": "B"}]

    assert [b.id for b in parse_blogs(records)] == ["1", "2"]
    assert [b.id for b in parse_blogs({"blogs": records})] == ["1", "2"]
    assert parse_blogs("nope") == []


def test_parse_blogs_skips_malformed_records():
    blogs = parse_blogs([{"title": "no id"}, {"_id": "2", "title": "ok"}])

    assert [b.id for b in blogs] == ["2"]


def test_parse_blog_reads_populated_author_and_date():
    blog = parse_blog(
        {
            "_id": "b1",
            "title": "T",
            "author": {"_id": "a1", "name": "Ana"},
            "createdAt": "2024-05-01T10:00:00.000Z",
        }
    )

    assert blog.author_name == "Ana"
    assert blog.created_at.year == 2024


@pytest.mark.parametrize("body", [None, "text", {"message": "created"}, []])
def test_parse_blog_without_entity(body):
    assert parse_blog(body) is None


def test_parse_authors():
    authors = parse_authors({"authors": [{"_id": "a1", "name": "Ana"}, {"name": "missing id"}]})

    assert [(a.id, a.name) for a in authors] == [("a1", "Ana")]


@pytest.mark.parametrize(
    "body,expected",
    [
        ({"token": "a"}, "a"),
        ({"accessToken": "b"}, "b"),
        ({"authToken": "c"}, "c"),
        ({"token": "", "accessToken": "d"}, "d"),
        ({"user": {}}, None),
        ("token", None),
    ],
)
def test_extract_token(body, expected):
    assert extract_token(body) == expected

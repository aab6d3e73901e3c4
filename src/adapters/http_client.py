"""Wrapper de httpx: dispatcher autenticado con clasificación de fallos.

Por qué un wrapper:
- Estandariza timeouts, headers, auth y logging para todas las operaciones.
- Convierte cualquier resultado de red en un `Outcome` cerrado; ningún
  `httpx.HTTPError` sale de este módulo.
- Facilita testeo: el cliente acepta un `httpx.MockTransport`.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core.config import AppSettings, derive_service_root
from core.domain.outcome import (
    ContentKind,
    Failure,
    FailureKind,
    MultipartBody,
    Outcome,
    RequestDescriptor,
    Success,
)
from core.services.session_store import SessionStore

logger = logging.getLogger(__name__)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que todas las operaciones se comporten igual.
    - Permite inyectar un transport en tests.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def server_message(response: httpx.Response) -> str:
    """Message provided by the server (`error` or `message` key), if any."""

    body = _parse_body(response)
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""


def classify_response(response: httpx.Response) -> Outcome:
    status = response.status_code
    if 200 <= status < 300:
        return Success(status=status, body=_parse_body(response))
    if status == 401:
        return Failure(FailureKind.UNAUTHORIZED, status, server_message(response))
    if 400 <= status < 500:
        return Failure(FailureKind.CLIENT_ERROR, status, server_message(response))
    if status >= 500:
        return Failure(
            FailureKind.SERVER_ERROR,
            status,
            server_message(response) or f"Server error: {status}",
        )
    return Failure(FailureKind.UNKNOWN, status, f"Unexpected response status: {status}")


def classify_exception(exc: Exception) -> Failure:
    """Map a transport exception (no response received) to a `Failure`."""

    if isinstance(exc, httpx.TimeoutException):
        return Failure(FailureKind.TRANSIENT, None, "Request timed out")
    if isinstance(exc, httpx.NetworkError):
        return Failure(
            FailureKind.TRANSIENT,
            None,
            "Cannot connect to server. Please check your internet connection.",
        )
    return Failure(FailureKind.UNKNOWN, None, str(exc) or type(exc).__name__)


class HttpDispatcher:
    """Authenticated request dispatcher over `httpx.AsyncClient`.

    Usage:
        ```python
        async with HttpDispatcher(session=store, settings=settings) as dispatcher:
            outcome = await dispatcher.send(RequestDescriptor("GET", "/blogs"))
        ```

    A 401 tears the session down through `SessionStore.invalidate()` before
    `send` returns, so a caller holding an UNAUTHORIZED outcome can rely on
    the session already being empty.
    """

    def __init__(
        self,
        *,
        session: SessionStore,
        settings: AppSettings | None = None,
        base_url: str | None = None,
        service_root_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._session = session
        self.base_url = (base_url or self._settings.api_base_url).rstrip("/")
        if service_root_url:
            self.service_root_url = service_root_url.rstrip("/")
        elif base_url:
            self.service_root_url = derive_service_root(base_url)
        else:
            self.service_root_url = self._settings.resolved_service_root()

        self._owns_client = client is None
        self._client = client or build_async_client(self._settings, transport=transport)

    async def __aenter__(self) -> "HttpDispatcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def url_for(self, descriptor: RequestDescriptor) -> str:
        root = self.service_root_url if descriptor.use_service_root else self.base_url
        return f"{root}/{descriptor.path.lstrip('/')}"

    async def send(self, descriptor: RequestDescriptor) -> Outcome:
        url = self.url_for(descriptor)
        headers: dict[str, str] = {}
        token = self._session.current_token() if descriptor.authenticated else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        logger.debug("Making %s request to: %s", descriptor.method.upper(), url)
        try:
            response = await self._client.request(
                descriptor.method.upper(),
                url,
                headers=headers,
                timeout=httpx.Timeout(descriptor.timeout_ms / 1000),
                **_body_kwargs(descriptor),
            )
        except httpx.HTTPError as exc:
            failure = classify_exception(exc)
            logger.warning(
                "%s %s failed without response (%s): %s",
                descriptor.method.upper(),
                url,
                failure.kind.value,
                exc,
            )
            return failure
        except Exception as exc:
            logger.exception("Unexpected error dispatching %s %s", descriptor.method.upper(), url)
            return Failure(FailureKind.UNKNOWN, None, str(exc) or type(exc).__name__)

        outcome = classify_response(response)
        if isinstance(outcome, Success):
            logger.debug("API Response: %s %s", outcome.status, url)
            return outcome

        logger.warning(
            "API Error: %s %s -> %s (%s) %s",
            descriptor.method.upper(),
            url,
            outcome.status,
            outcome.kind.value,
            outcome.message,
        )
        # A 401 on a request that carried no token says nothing about the session.
        if outcome.kind is FailureKind.UNAUTHORIZED and token:
            self._session.invalidate()
        return outcome


def _body_kwargs(descriptor: RequestDescriptor) -> dict[str, Any]:
    if descriptor.body is None:
        return {}
    if descriptor.content_kind is ContentKind.MULTIPART:
        body: MultipartBody = descriptor.body
        # Plain fields go in as filename-less parts so the request is always
        # multipart/form-data, with or without an attached file.
        parts: list[tuple[str, tuple[str | None, Any] | tuple[str, bytes, str]]] = [
            (name, (None, value)) for name, value in body.fields.items()
        ]
        parts.extend(
            (name, (part.filename, part.content, part.content_type))
            for name, part in body.files.items()
        )
        return {"files": parts}
    return {"json": descriptor.body}

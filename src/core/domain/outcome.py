"""Request descriptors and the closed result type of every dispatch.

Callers never see transport exceptions: the dispatcher turns whatever
happened on the wire into exactly one `Outcome` and every consumer matches
on `Success` / `Failure` plus `FailureKind`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class ContentKind(str, Enum):
    JSON = "json"
    MULTIPART = "multipart"


class FailureKind(str, Enum):
    """Closed failure taxonomy."""

    TRANSIENT = "transient"
    UNAUTHORIZED = "unauthorized"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


_DEFAULT_MESSAGES: dict[FailureKind, str] = {
    FailureKind.TRANSIENT: "Cannot connect to server. Please check your internet connection.",
    FailureKind.UNAUTHORIZED: "Your session has expired. Please log in again.",
    FailureKind.CLIENT_ERROR: "The request was rejected by the server.",
    FailureKind.SERVER_ERROR: "The server failed to process the request.",
    FailureKind.UNKNOWN: "Unexpected error.",
}


def default_message(kind: FailureKind) -> str:
    """Kind-specific fallback text for presentation layers."""

    return _DEFAULT_MESSAGES[kind]


@dataclass(frozen=True)
class FilePart:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class MultipartBody:
    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, FilePart] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestDescriptor:
    """One outgoing request. Built per call and discarded afterwards."""

    method: str
    path: str
    body: Any = None
    content_kind: ContentKind = ContentKind.JSON
    timeout_ms: int = 120_000
    authenticated: bool = True
    use_service_root: bool = False

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if self.content_kind is ContentKind.MULTIPART and not isinstance(self.body, MultipartBody):
            raise ValueError("multipart requests need a MultipartBody")


@dataclass(frozen=True)
class Success:
    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    status: int | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return False

    def display_message(self) -> str:
        return self.message or default_message(self.kind)


Outcome = Union[Success, Failure]


def is_transient(outcome: Outcome) -> bool:
    return isinstance(outcome, Failure) and outcome.kind is FailureKind.TRANSIENT

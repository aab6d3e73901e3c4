"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación estricta en el borde (respuestas del servidor, borradores del usuario).
- Los registros del servidor traen claves propias (`_id`, `createdAt`); aquí se
  normalizan una sola vez.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic.config import ConfigDict

from core.domain.outcome import FilePart, MultipartBody

MAX_IMAGE_BYTES = 5 * 1024 * 1024

EntityId = str | int


class Identity(BaseModel):
    """Who is logged in."""

    model_config = ConfigDict(frozen=True)

    email: str = Field(..., min_length=1, description="Account email used to log in.")


class Session(BaseModel):
    """Snapshot of the authentication state.

    `token` and `identity` are either both set or both empty.
    """

    model_config = ConfigDict(frozen=True)

    token: str | None = Field(default=None, description="Opaque bearer token.")
    identity: Identity | None = Field(default=None, description="Identity bound to the token.")

    @model_validator(mode="after")
    def _token_and_identity_together(self) -> "Session":
        if (self.token is None) != (self.identity is None):
            raise ValueError("token and identity must be both present or both absent")
        return self

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None


class AuthorRef(BaseModel):
    """Author as embedded in a blog record (populated by the server)."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: EntityId | None = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    name: str | None = Field(default=None, description="Display name.")


class Author(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: EntityId = Field(..., validation_alias=AliasChoices("_id", "id"))
    name: str = Field(default="", description="Display name.")
    email: str | None = Field(default=None)


class BlogEntity(BaseModel):
    """A blog post as owned by the server.

    The client never mints `id`; entities come from list responses or from
    the server's reply to a create.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: EntityId = Field(..., validation_alias=AliasChoices("_id", "id"))
    title: str = Field(default="")
    content: str = Field(default="")
    author: AuthorRef | str | None = Field(
        default=None,
        description="Populated author, or a bare author id when the server did not populate it.",
    )
    image: str | None = Field(default=None, description="Image URL or stored filename.")
    created_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "created_at"),
    )

    @property
    def author_name(self) -> str:
        if isinstance(self.author, AuthorRef):
            return self.author.name or ""
        return ""


def _require_text(value: str, field_name: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{field_name} is required")
    return value


class ImageUpload(BaseModel):
    """Binary image attached to a new blog post."""

    filename: str = Field(..., min_length=1)
    content: bytes
    content_type: str = Field(default="application/octet-stream")

    @field_validator("content_type")
    @classmethod
    def _must_be_image(cls, value: str) -> str:
        if not value.startswith("image/"):
            raise ValueError("Please select a valid image file")
        return value

    @field_validator("content")
    @classmethod
    def _max_size(cls, value: bytes) -> bytes:
        if len(value) > MAX_IMAGE_BYTES:
            raise ValueError("Image size should be less than 5MB")
        return value

    @classmethod
    def from_path(cls, path: Path) -> "ImageUpload":
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content=path.read_bytes(),
            content_type=content_type or "application/octet-stream",
        )

    def as_file_part(self) -> FilePart:
        return FilePart(filename=self.filename, content=self.content, content_type=self.content_type)


class BlogDraft(BaseModel):
    """User input for a new blog post, sent as multipart form data."""

    title: str
    content: str
    author: str = Field(..., description="Author id.")
    image: ImageUpload | None = None

    @field_validator("title", "content", "author")
    @classmethod
    def _strip_required(cls, value: str, info: Any) -> str:
        return _require_text(value, info.field_name)

    def to_multipart(self) -> MultipartBody:
        files = {"image": self.image.as_file_part()} if self.image else {}
        return MultipartBody(
            fields={"title": self.title, "content": self.content, "author": self.author},
            files=files,
        )


class BlogUpdate(BaseModel):
    """Editable fields of an existing post. Unset fields are left alone."""

    title: str | None = None
    content: str | None = None

    @field_validator("title", "content")
    @classmethod
    def _strip_required(cls, value: str | None, info: Any) -> str | None:
        if value is None:
            return None
        return _require_text(value, info.field_name)

    @model_validator(mode="after")
    def _not_empty(self) -> "BlogUpdate":
        if self.title is None and self.content is None:
            raise ValueError("nothing to update")
        return self

    def fields(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


class AuthorDraft(BaseModel):
    name: str
    email: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _require_text(value, "name")

    def payload(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)

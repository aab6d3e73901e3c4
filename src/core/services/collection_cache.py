"""In-memory snapshot of the server's blog collection.

The base sequence keeps server order and unique ids. The filtered sequence
is derived from it and the active search term and is recomputed on every
change; nothing mutates it directly.

Mutations are meant to be applied only after the server confirmed the
corresponding operation (see `core.services.blog_feed`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from core.domain.models import BlogEntity, EntityId

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id"})


def matches(entity: BlogEntity, term: str) -> bool:
    """Case-insensitive substring match on title, content or author name."""

    needle = term.lower()
    return (
        needle in entity.title.lower()
        or needle in entity.content.lower()
        or needle in entity.author_name.lower()
    )


def _coerce(item: BlogEntity | Mapping[str, Any]) -> BlogEntity:
    if isinstance(item, BlogEntity):
        return item
    return BlogEntity.model_validate(item)


@dataclass(frozen=True)
class CollectionStats:
    total: int
    visible: int
    search_term: str


class CollectionCache:
    def __init__(self, items: Iterable[BlogEntity | Mapping[str, Any]] = ()) -> None:
        self._items: list[BlogEntity] = []
        self._filtered: list[BlogEntity] = []
        self._term = ""
        self.load(items)

    @property
    def items(self) -> tuple[BlogEntity, ...]:
        return tuple(self._items)

    @property
    def filtered(self) -> tuple[BlogEntity, ...]:
        return tuple(self._filtered)

    @property
    def search_term(self) -> str:
        return self._term

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity_id: object) -> bool:
        return self._index_of(entity_id) is not None  # type: ignore[arg-type]

    def get(self, entity_id: EntityId) -> BlogEntity | None:
        index = self._index_of(entity_id)
        return None if index is None else self._items[index]

    def load(self, items: Iterable[BlogEntity | Mapping[str, Any]]) -> None:
        """Replace the whole snapshot (after a full fetch)."""

        seen: set[EntityId] = set()
        loaded: list[BlogEntity] = []
        for raw in items:
            entity = _coerce(raw)
            if entity.id in seen:
                logger.warning("Duplicate blog id %r in snapshot; keeping the first", entity.id)
                continue
            seen.add(entity.id)
            loaded.append(entity)
        self._items = loaded
        self._refilter()

    def apply_create(self, item: BlogEntity | Mapping[str, Any] | None, *, position: int | None = None) -> bool:
        """Insert the entity the server returned for a create.

        Without a returned entity nothing changes; the next `load()` brings
        the new post in. An id already present is replaced in place.
        """

        if item is None:
            return False
        entity = _coerce(item)
        index = self._index_of(entity.id)
        if index is not None:
            self._items[index] = entity
        elif position is None:
            self._items.append(entity)
        else:
            self._items.insert(max(0, min(position, len(self._items))), entity)
        self._refilter()
        return True

    def apply_update(self, entity_id: EntityId, fields: Mapping[str, Any]) -> bool:
        index = self._index_of(entity_id)
        if index is None:
            # Deleted concurrently, or never loaded.
            return False
        current = self._items[index]
        known = set(BlogEntity.model_fields)
        changes = {k: v for k, v in fields.items() if k in known and k not in _IMMUTABLE_FIELDS}
        if not changes:
            return False
        self._items[index] = current.model_copy(update=changes)
        self._refilter()
        return True

    def apply_delete(self, entity_id: EntityId) -> bool:
        index = self._index_of(entity_id)
        if index is None:
            return False
        del self._items[index]
        self._refilter()
        return True

    def set_filter(self, term: str | None) -> tuple[BlogEntity, ...]:
        self._term = term or ""
        self._refilter()
        return self.filtered

    def recent(self, limit: int = 5) -> tuple[BlogEntity, ...]:
        """First `limit` posts in server order (the server lists newest first)."""

        return tuple(self._items[: max(0, limit)])

    def stats(self) -> CollectionStats:
        return CollectionStats(total=len(self._items), visible=len(self._filtered), search_term=self._term)

    def _index_of(self, entity_id: EntityId) -> int | None:
        for index, entity in enumerate(self._items):
            if entity.id == entity_id:
                return index
        return None

    def _refilter(self) -> None:
        if not self._term:
            self._filtered = list(self._items)
            return
        self._filtered = [entity for entity in self._items if matches(entity, self._term)]

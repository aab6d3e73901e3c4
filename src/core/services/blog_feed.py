"""Optimistic reconciliation between blog operations and the local cache.

"Optimistic" means no full refetch after a mutation, not "apply before the
server answers": the cache only changes after a `Success`, and never for a
call whose `CancelToken` was cancelled, even if a late response arrives.

Two calls racing on the same id are not serialized; whichever `Success`
resolves last decides the cached state.
"""

from __future__ import annotations

import logging
from typing import Any

from core.domain.models import BlogDraft, BlogEntity, BlogUpdate, EntityId
from core.domain.outcome import Outcome, Success
from core.services.cancellation import CancelToken
from core.services.collection_cache import CollectionCache
from core.services.content_api import BlogsAPI, parse_blog, parse_blogs

logger = logging.getLogger(__name__)


class BlogFeed:
    def __init__(self, blogs: BlogsAPI, cache: CollectionCache | None = None) -> None:
        self._blogs = blogs
        self.cache = cache if cache is not None else CollectionCache()

    def _live(self, outcome: Outcome, cancel: CancelToken | None) -> bool:
        if not isinstance(outcome, Success):
            return False
        if cancel is not None and cancel.cancelled:
            logger.debug("Dropping result of a cancelled call")
            return False
        return True

    async def refresh(self, *, cancel: CancelToken | None = None) -> Outcome:
        outcome = await self._blogs.get_blogs(cancel=cancel)
        if self._live(outcome, cancel):
            self.cache.load(parse_blogs(outcome.body))  # type: ignore[union-attr]
        return outcome

    async def create(self, draft: BlogDraft, *, cancel: CancelToken | None = None) -> Outcome:
        outcome = await self._blogs.create_blog(draft, cancel=cancel)
        if self._live(outcome, cancel):
            created = parse_blog(outcome.body)  # type: ignore[union-attr]
            if created is None:
                logger.debug("Create response carried no entity; it will appear on next refresh")
            self.cache.apply_create(created)
        return outcome

    async def update(
        self,
        blog_id: EntityId,
        update: BlogUpdate,
        *,
        cancel: CancelToken | None = None,
    ) -> Outcome:
        outcome = await self._blogs.update_blog(blog_id, update, cancel=cancel)
        if self._live(outcome, cancel):
            self.cache.apply_update(blog_id, update.fields())
        return outcome

    async def delete(self, blog_id: EntityId, *, cancel: CancelToken | None = None) -> Outcome:
        outcome = await self._blogs.delete_blog(blog_id, cancel=cancel)
        if self._live(outcome, cancel):
            self.cache.apply_delete(blog_id)
        return outcome

    def search(self, term: str | None) -> tuple[BlogEntity, ...]:
        return self.cache.set_filter(term)

    def snapshot(self) -> list[dict[str, Any]]:
        return [entity.model_dump(mode="json") for entity in self.cache.items]
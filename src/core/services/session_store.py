"""Session Store: sole owner of the auth token and identity.

Lifecycle:
- `init()` once at process start rehydrates from durable storage.
- `establish()` after a successful login.
- `clear()` on logout, `invalidate()` when the server answers 401.

Nothing else in the codebase touches the durable token storage; every other
component reads through `current_token()` / `session`.
"""

from __future__ import annotations

import logging
from typing import Callable

from core.domain.models import Identity, Session
from core.interfaces.storage import KeyValueStorage

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
EMAIL_KEY = "userEmail"

InvalidationListener = Callable[[], None]


class SessionStore:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._session = Session()
        self._initialized = False
        self._listeners: list[InvalidationListener] = []

    def init(self) -> Session:
        """Rehydrate from durable storage. Later calls are no-ops."""

        if self._initialized:
            return self._session
        self._initialized = True

        token = self._storage.get(TOKEN_KEY)
        email = self._storage.get(EMAIL_KEY)
        if token and email:
            self._session = Session(token=token, identity=Identity(email=email))
            logger.debug("Session restored for %s", email)
        elif token or email:
            # Half a session is no session; drop the orphan entry.
            logger.warning("Discarding incomplete persisted session")
            self._storage.delete(TOKEN_KEY)
            self._storage.delete(EMAIL_KEY)
        return self._session

    def establish(self, token: str, email: str) -> Session:
        if not token:
            raise ValueError("token must be a non-empty string")
        if not email:
            raise ValueError("email must be a non-empty string")

        self._storage.set(TOKEN_KEY, token)
        self._storage.set(EMAIL_KEY, email)
        self._session = Session(token=token, identity=Identity(email=email))
        self._initialized = True
        logger.info("Session established for %s", email)
        return self._session

    def clear(self) -> None:
        """Drop the session and notify listeners, even if it was already empty."""

        self._drop()
        self._notify()

    def invalidate(self) -> bool:
        """Server-side rejection of the token (HTTP 401).

        Only the live -> empty transition notifies, so several requests
        failing with 401 at once produce a single invalidation event.
        Returns whether this call performed the transition.
        """

        if self._session.token is None:
            # Storage might still hold a stale pair written by another process.
            self._storage.delete(TOKEN_KEY)
            self._storage.delete(EMAIL_KEY)
            return False
        logger.warning("Session rejected by the server; clearing credentials")
        self._drop()
        self._notify()
        return True

    def current_token(self) -> str | None:
        return self._session.token

    @property
    def session(self) -> Session:
        return self._session

    @property
    def identity(self) -> Identity | None:
        return self._session.identity

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    def subscribe(self, listener: InvalidationListener) -> Callable[[], None]:
        """Register an invalidation listener; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _drop(self) -> None:
        self._storage.delete(TOKEN_KEY)
        self._storage.delete(EMAIL_KEY)
        self._session = Session()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Session invalidation listener failed")

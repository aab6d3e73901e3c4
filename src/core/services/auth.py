"""Login/logout on top of the admin operations and the Session Store."""

from __future__ import annotations

import logging

from core.domain.outcome import Failure, FailureKind, Outcome, Success
from core.services.cancellation import CancelToken
from core.services.content_api import AdminAPI, extract_token
from core.services.session_store import SessionStore

logger = logging.getLogger(__name__)

NO_TOKEN_MESSAGE = "No authentication token received from server"


def login_failure_message(outcome: Failure) -> str:
    """Text shown to the user for a failed login."""

    if outcome.message:
        return outcome.message
    if outcome.status is not None:
        return f"Server error: {outcome.status}"
    return outcome.display_message()


class AuthService:
    def __init__(self, admin: AdminAPI, session: SessionStore) -> None:
        self._admin = admin
        self._session = session

    async def login(self, email: str, password: str, *, cancel: CancelToken | None = None) -> Outcome:
        """Authenticate and establish the session.

        A 2xx answer without a usable token is reported as an UNKNOWN failure
        and leaves the session untouched. If `cancel` fired while the request
        was in flight, `asyncio.CancelledError` is raised and no session is
        established.
        """

        email = email.strip()
        outcome = await self._admin.login(email, password, cancel=cancel)
        if not isinstance(outcome, Success):
            logger.warning("Login failed: %s", outcome.display_message())
            return outcome
        if cancel is not None:
            cancel.raise_if_cancelled()

        token = extract_token(outcome.body)
        if token is None:
            logger.error(NO_TOKEN_MESSAGE)
            return Failure(FailureKind.UNKNOWN, outcome.status, NO_TOKEN_MESSAGE)

        self._session.establish(token, email)
        logger.info("Login successful")
        return outcome

    async def logout(self, *, cancel: CancelToken | None = None) -> Outcome:
        """Tell the server, then drop the local session whatever it answered."""

        outcome = await self._admin.logout(cancel=cancel)
        if isinstance(outcome, Failure):
            logger.info("Server logout failed (%s); clearing local session anyway", outcome.kind.value)
        # A 401 here already invalidated (and announced) the session.
        if self._session.is_authenticated:
            self._session.clear()
        return outcome

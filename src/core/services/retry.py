"""Retry/Recovery controller for a backend that may be cold.

Only TRANSIENT failures (timeouts, connectivity loss) are retried. Anything
the server answered definitively (401, other 4xx, 5xx) goes back to the
caller on the first attempt so real errors are never masked by waiting.

Between attempts the controller waits `backoff_ms * retry_index` and fires a
best-effort health probe at the service root to wake the backend up.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from core.domain.outcome import Failure, FailureKind, Outcome, RequestDescriptor
from core.interfaces.dispatcher import RequestDispatcher
from core.services.cancellation import CancelToken

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Outcome]]
Probe = Callable[[], Awaitable[object]]
Sleep = Callable[[float], Awaitable[object]]

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_MS = 5_000


def health_probe(dispatcher: RequestDispatcher, *, timeout_ms: int = 30_000) -> Probe:
    """Unauthenticated `GET /health` at the service root."""

    descriptor = RequestDescriptor(
        method="GET",
        path="/health",
        timeout_ms=timeout_ms,
        authenticated=False,
        use_service_root=True,
    )

    async def probe() -> Outcome:
        return await dispatcher.send(descriptor)

    return probe


class RetryController:
    def __init__(
        self,
        *,
        probe: Probe | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_ms: int = DEFAULT_BACKOFF_MS,
        retryable_statuses: Iterable[int] = (),
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._probe = probe
        self.max_attempts = max_attempts
        self.backoff_ms = backoff_ms
        self.retryable_statuses = frozenset(retryable_statuses)
        self._sleep = sleep

    def should_retry(self, outcome: Outcome) -> bool:
        if not isinstance(outcome, Failure):
            return False
        if outcome.kind is FailureKind.TRANSIENT:
            return True
        return outcome.kind is FailureKind.SERVER_ERROR and outcome.status in self.retryable_statuses

    def delay_ms(self, retry_index: int) -> int:
        """Wait before the `retry_index`-th retry (1-based)."""

        return self.backoff_ms * retry_index

    async def with_retry(
        self,
        operation: Operation,
        max_attempts: int | None = None,
        *,
        cancel: CancelToken | None = None,
    ) -> Outcome:
        attempts = self.max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        attempt = 1
        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()

            outcome = await operation()
            if not self.should_retry(outcome):
                return outcome
            if attempt >= attempts:
                logger.warning("Giving up after %d attempts", attempts)
                return outcome

            delay = self.delay_ms(attempt)
            logger.warning(
                "Request %d failed (%s, likely cold start); retrying in %.1fs",
                attempt,
                outcome.message if isinstance(outcome, Failure) else "",
                delay / 1000,
            )
            await self._wait(delay / 1000, cancel)
            await self._wake_up(cancel)
            attempt += 1
            logger.info("Retry attempt %d/%d", attempt - 1, attempts - 1)

    async def _wait(self, seconds: float, cancel: CancelToken | None) -> None:
        if cancel is None:
            await self._sleep(seconds)
            return

        cancel.raise_if_cancelled()
        sleeper = asyncio.ensure_future(self._sleep(seconds))
        watcher = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, watcher):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sleeper, watcher, return_exceptions=True)
        cancel.raise_if_cancelled()

    async def _wake_up(self, cancel: CancelToken | None) -> None:
        if self._probe is None:
            return
        if cancel is not None:
            cancel.raise_if_cancelled()
        logger.info("Waking up server...")
        try:
            result = await self._probe()
        except Exception as exc:
            logger.info("Server wake-up failed (expected during cold starts): %s", exc)
            return
        if isinstance(result, Failure):
            logger.info("Server wake-up failed (expected during cold starts): %s", result.display_message())
        else:
            logger.info("Server is awake")

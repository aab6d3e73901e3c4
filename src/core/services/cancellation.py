"""Cancellation token threaded through retries and reconciliation.

A caller that abandons a call (the screen went away, the user pressed
Ctrl-C) cancels its token. The retry controller stops waiting and raises
`asyncio.CancelledError`; the reconciler refuses to apply a late result.
"""

from __future__ import annotations

import asyncio


class CancelToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise asyncio.CancelledError(self.reason or "operation cancelled")

    async def wait(self) -> None:
        await self._event.wait()

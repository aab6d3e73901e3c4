"""Contrato del dispatcher de requests.

Por qué Protocol:
- Las operaciones de dominio y el retry controller solo necesitan `send`; la
  implementación con httpx y los dobles de test son intercambiables.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.outcome import Outcome, RequestDescriptor


@runtime_checkable
class RequestDispatcher(Protocol):
    """Executes one request and classifies the result.

    Rules:
    - `send` is async because it suspends on network I/O.
    - It never raises for transport or HTTP failures; it returns a `Failure`.
    """

    async def send(self, descriptor: RequestDescriptor) -> Outcome:
        ...

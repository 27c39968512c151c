"""
Delivery transports.

A transport turns one ``PushPayload`` into one network operation and
reports the outcome as a ``DeliveryResult`` instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..core.payload import PushPayload

# The ingestion API answers 201 Created or 202 Accepted
ACCEPTED_STATUS_CODES: frozenset[int] = frozenset({201, 202})


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    records: int
    status_code: int | None = None
    error: str | None = None


@runtime_checkable
class Sender(Protocol):
    name: str

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def send(self, payload: PushPayload) -> DeliveryResult: ...


__all__ = ["ACCEPTED_STATUS_CODES", "DeliveryResult", "Sender"]

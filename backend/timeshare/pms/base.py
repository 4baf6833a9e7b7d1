"""Property Management System adapter contract.

The engine only ever talks to a PMS through :class:`PmsAdapter`. Adapters
raise :class:`PmsError` for transport or upstream failures; the services
translate that (and timeouts) into ``ExternalFailure``.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any


class PmsError(Exception):
    def __init__(self, message: str, *, retryable: bool = False, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.details = details or {}


@dataclass(frozen=True)
class PmsAvailability:
    available: bool
    available_nights: int
    reason: str | None = None


@dataclass(frozen=True)
class PmsBookingPayload:
    property_id: uuid.UUID
    check_in: date
    check_out: date
    owner_id: uuid.UUID | None = None
    room_type: str | None = None
    idempotency_key: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days


@dataclass(frozen=True)
class PmsBookingResult:
    pms_booking_id: str
    status: str
    provider: str
    guest_token: str | None = None
    payment_reference: str | None = None

    @property
    def confirmed(self) -> bool:
        return self.status == "confirmed"


class PmsAdapter(ABC):
    provider: str = "unknown"

    @abstractmethod
    async def check_availability(
        self, property_id: uuid.UUID, start: date, end: date, nights: int
    ) -> PmsAvailability: ...

    @abstractmethod
    async def create_booking(self, payload: PmsBookingPayload) -> PmsBookingResult:
        """Create a booking; adapters forward ``payload.idempotency_key`` upstream."""

    @abstractmethod
    async def cancel_booking(self, pms_booking_id: str) -> None: ...

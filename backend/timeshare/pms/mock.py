"""Deterministic PMS used in development and by ``PMS_PROVIDER=mock``."""

import logging
import uuid
from datetime import date

from timeshare.pms.base import PmsAdapter, PmsAvailability, PmsBookingPayload, PmsBookingResult

logger = logging.getLogger(__name__)


class MockPmsAdapter(PmsAdapter):
    """Always has rooms and always confirms.

    Bookings are remembered per idempotency key, so a retried create returns
    the booking made the first time instead of a new one.
    """

    provider = "mock"

    def __init__(self) -> None:
        self.bookings: dict[str, PmsBookingResult] = {}
        self.cancelled: set[str] = set()
        self._by_key: dict[str, str] = {}

    async def check_availability(
        self, property_id: uuid.UUID, start: date, end: date, nights: int
    ) -> PmsAvailability:
        return PmsAvailability(available=True, available_nights=max(nights, (end - start).days))

    async def create_booking(self, payload: PmsBookingPayload) -> PmsBookingResult:
        key = payload.idempotency_key
        if key is not None and key in self._by_key:
            return self.bookings[self._by_key[key]]

        pms_booking_id = f"mock-booking-{uuid.uuid4().hex[:12]}"
        result = PmsBookingResult(
            pms_booking_id=pms_booking_id,
            status="confirmed",
            provider=self.provider,
            guest_token=uuid.uuid4().hex,
            payment_reference=None,
        )
        self.bookings[pms_booking_id] = result
        if key is not None:
            self._by_key[key] = pms_booking_id
        logger.info("Mock PMS booked %s at property %s", pms_booking_id, payload.property_id)
        return result

    async def cancel_booking(self, pms_booking_id: str) -> None:
        self.cancelled.add(pms_booking_id)
        logger.info("Mock PMS cancelled %s", pms_booking_id)

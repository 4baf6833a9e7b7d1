"""Uniform view over the two things a swap can trade: weeks and bookings."""

import uuid
from dataclasses import dataclass
from datetime import date

from timeshare.domain.enums import SWAPPABLE_BOOKING_STATUSES, WeekStatus
from timeshare.domain.sources import BookingSource, SwapSource, WeekSource
from timeshare.errors import NotAvailable, NotFound
from timeshare.models import Booking, Week
from timeshare.repositories.base import Transaction


@dataclass
class SwapSlot:
    source: SwapSource
    entity: Week | Booking
    owner_id: uuid.UUID | None
    property_id: uuid.UUID
    accommodation_type: str | None
    start: date
    end: date

    @property
    def nights(self) -> int:
        return (self.end - self.start).days

    @property
    def is_offerable(self) -> bool:
        """Weeks must be available; bookings confirmed or checked in."""
        if isinstance(self.entity, Week):
            return self.entity.status == WeekStatus.AVAILABLE
        return self.entity.status in SWAPPABLE_BOOKING_STATUSES

    def ensure_offerable(self) -> None:
        if not self.is_offerable:
            raise NotAvailable(
                f"{self.source.type.value.capitalize()} is not available for swapping",
                source_type=self.source.type.value,
                source_id=str(self.source.id),
                current_status=self.entity.status.value,
            )

    def week_ids(self) -> list[uuid.UUID]:
        return [self.source.id] if isinstance(self.source, WeekSource) else []

    def booking_ids(self) -> list[uuid.UUID]:
        return [self.source.id] if isinstance(self.source, BookingSource) else []


async def resolve_source(tx: Transaction, source: SwapSource, *, for_update: bool = False) -> SwapSlot:
    """Load the week or booking behind ``source``.

    Raises:
        NotFound: If the referenced row does not exist.
    """
    if isinstance(source, WeekSource):
        week = await tx.get_week(source.id, for_update=for_update)
        if week is None:
            raise NotFound("Week not found", week_id=str(source.id))
        return SwapSlot(
            source=source,
            entity=week,
            owner_id=week.owner_id,
            property_id=week.property_id,
            accommodation_type=week.accommodation_type,
            start=week.start_date,
            end=week.end_date,
        )

    booking = await tx.get_booking(source.id, for_update=for_update)
    if booking is None:
        raise NotFound("Booking not found", booking_id=str(source.id))
    return SwapSlot(
        source=source,
        entity=booking,
        owner_id=booking.owner_id,
        property_id=booking.property_id,
        accommodation_type=booking.room_type,
        start=booking.check_in,
        end=booking.check_out,
    )

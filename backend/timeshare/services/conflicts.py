"""Conflict checker.

Counts everything that already claims a property for a date range. Callers
run it inside the same transaction that commits the transition depending on
the answer.
"""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from timeshare.domain.enums import (
    BLOCKING_BOOKING_STATUSES,
    BLOCKING_WEEK_STATUSES,
    IN_FLIGHT_SWAP_STATUSES,
)
from timeshare.errors import Conflict
from timeshare.repositories.base import Transaction


@dataclass(frozen=True)
class ConflictCounts:
    bookings: int = 0
    weeks: int = 0
    swaps: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"bookings": self.bookings, "weeks": self.weeks, "swaps": self.swaps}


@dataclass(frozen=True)
class Availability:
    available: bool
    conflicts: ConflictCounts = field(default_factory=ConflictCounts)


async def check_availability(
    tx: Transaction,
    property_id: uuid.UUID,
    start: date,
    end: date,
    *,
    exclude_week_ids: Iterable[uuid.UUID] = (),
    exclude_booking_ids: Iterable[uuid.UUID] = (),
    exclude_swap_ids: Iterable[uuid.UUID] = (),
) -> Availability:
    """Count conflicting bookings, weeks and in-flight swaps at ``property_id``.

    Bookings and weeks conflict when they overlap ``[start, end)``. Swaps are
    counted per property while pending, matched or awaiting payment. The
    exclusions let a caller ignore the slot it is evaluating.
    """
    counts = ConflictCounts(
        bookings=await tx.count_overlapping_bookings(
            property_id, start, end, BLOCKING_BOOKING_STATUSES, exclude_ids=list(exclude_booking_ids)
        ),
        weeks=await tx.count_overlapping_weeks(
            property_id, start, end, BLOCKING_WEEK_STATUSES, exclude_ids=list(exclude_week_ids)
        ),
        swaps=await tx.count_property_swaps(
            property_id, IN_FLIGHT_SWAP_STATUSES, exclude_ids=list(exclude_swap_ids)
        ),
    )
    available = counts.bookings == 0 and counts.weeks == 0 and counts.swaps == 0
    return Availability(available=available, conflicts=counts)


async def ensure_available(
    tx: Transaction,
    property_id: uuid.UUID,
    start: date,
    end: date,
    *,
    exclude_week_ids: Iterable[uuid.UUID] = (),
    exclude_booking_ids: Iterable[uuid.UUID] = (),
    exclude_swap_ids: Iterable[uuid.UUID] = (),
) -> None:
    """Raise :class:`Conflict` carrying the counts unless the range is free."""
    result = await check_availability(
        tx,
        property_id,
        start,
        end,
        exclude_week_ids=exclude_week_ids,
        exclude_booking_ids=exclude_booking_ids,
        exclude_swap_ids=exclude_swap_ids,
    )
    if not result.available:
        raise Conflict(
            "Dates conflict with existing reservations",
            property_id=str(property_id),
            conflicts=result.conflicts.as_dict(),
        )

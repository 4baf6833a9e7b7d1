"""Compatibility matcher.

Finds weeks a requester could swap into, and open swap requests a member
could answer with one of their own bookings or weeks.
"""

import logging
import uuid
from typing import Literal

from timeshare.config import settings
from timeshare.domain.enums import (
    IN_FLIGHT_SWAP_STATUSES,
    BookingStatus,
    SwapStatus,
    WeekStatus,
)
from timeshare.domain.sources import BookingSource, SwapSource, WeekSource
from timeshare.errors import Forbidden, NotAvailable, NotFound, PeakRestricted
from timeshare.models import Booking, SwapRequest, Week
from timeshare.repositories.base import Store, Transaction
from timeshare.services.conflicts import check_availability
from timeshare.services.peak_calendar import PeakCalendar

logger = logging.getLogger(__name__)

SwapRole = Literal["requester", "responder", "both"]

_OFFERED_WEEK_STATUSES = frozenset({WeekStatus.AVAILABLE, WeekStatus.CONFIRMED})
_CONFIRMED_ONLY = frozenset({BookingStatus.CONFIRMED})
_PENDING_ONLY = frozenset({SwapStatus.PENDING})

# (accommodation type, nights)
Fingerprint = tuple[str | None, int]


def _booking_fingerprint(booking: Booking) -> Fingerprint:
    return booking.room_type, booking.nights


def _week_fingerprint(week: Week) -> Fingerprint:
    return week.accommodation_type, week.nights


class CompatibilityMatcher:
    def __init__(self, store: Store, peak_calendar: PeakCalendar) -> None:
        self.store = store
        self.peak_calendar = peak_calendar

    async def find_compatible_weeks(
        self,
        requester_week_id: uuid.UUID,
        requester_id: uuid.UUID,
        *,
        property_id: uuid.UUID | None = None,
        limit: int | None = None,
    ) -> list[Week]:
        """Weeks the requester's week could be swapped with, earliest first.

        A candidate shares the accommodation type, belongs to someone else,
        is available, lies outside every peak period and has no conflicting
        reservation at its property.

        Raises:
            NotFound: Requester week does not exist.
            Forbidden: Requester week belongs to someone else.
            NotAvailable: Requester week is not available.
            PeakRestricted: Requester week touches a peak period.
        """
        if limit is None:
            limit = settings.matcher_default_limit
        async with self.store.transaction() as tx:
            week = await tx.get_week(requester_week_id)
            if week is None:
                raise NotFound("Week not found", week_id=str(requester_week_id))
            if week.owner_id != requester_id:
                raise Forbidden("Week does not belong to the requester", week_id=str(week.id))
            if week.status != WeekStatus.AVAILABLE:
                raise NotAvailable(
                    "Week is not available for swapping",
                    week_id=str(week.id),
                    current_status=week.status.value,
                )
            if self.peak_calendar.overlaps_peak(week.start_date, week.end_date):
                raise PeakRestricted(
                    "Weeks in peak periods cannot be swapped",
                    start_date=week.start_date.isoformat(),
                    end_date=week.end_date.isoformat(),
                )

            candidates = await tx.list_weeks(
                accommodation_type=week.accommodation_type,
                statuses={WeekStatus.AVAILABLE},
                exclude_owner_id=requester_id,
                exclude_ids=[week.id],
                property_id=property_id,
                limit=limit,
            )
            own_swaps = await tx.list_swaps_referencing(
                [WeekSource(week.id)],
                statuses=IN_FLIGHT_SWAP_STATUSES,
                as_responder=False,
            )
            own_swap_ids = [s.id for s in own_swaps]

            compatible = []
            for candidate in candidates:
                if self.peak_calendar.overlaps_peak(candidate.start_date, candidate.end_date):
                    continue
                availability = await check_availability(
                    tx,
                    candidate.property_id,
                    candidate.start_date,
                    candidate.end_date,
                    exclude_week_ids=[candidate.id, week.id],
                    exclude_swap_ids=own_swap_ids,
                )
                if availability.available:
                    compatible.append(candidate)

        logger.info(
            "Matcher found %d compatible weeks for week %s (%d candidates)",
            len(compatible),
            requester_week_id,
            len(candidates),
        )
        return compatible

    async def get_available_swaps_for_user(self, user_id: uuid.UUID) -> list[SwapRequest]:
        """Open swap requests the user can answer with a slot they hold.

        A swap qualifies when it is pending, has no responder, was created by
        someone else, and the requester's offer has the same accommodation
        type and number of nights as one of the user's free slots.
        """
        async with self.store.transaction() as tx:
            fingerprints = await self._free_fingerprints(tx, user_id)
            if not fingerprints:
                return []

            open_swaps = await tx.list_swaps(
                statuses=_PENDING_ONLY,
                exclude_requester_id=user_id,
                unmatched_only=True,
            )
            matches = []
            for swap in open_swaps:
                offered = await self._offered_fingerprints(tx, swap)
                if offered & fingerprints:
                    matches.append(swap)
        return matches

    async def _free_fingerprints(self, tx: Transaction, user_id: uuid.UUID) -> set[Fingerprint]:
        """Fingerprints of the user's slots not already promised to an active swap."""
        bookings = await tx.list_bookings(owner_id=user_id, statuses=_CONFIRMED_ONLY)
        weeks = await tx.list_weeks(owner_id=user_id, statuses=_OFFERED_WEEK_STATUSES)
        sources: list[SwapSource] = [BookingSource(b.id) for b in bookings]
        sources += [WeekSource(w.id) for w in weeks]
        if not sources:
            return set()

        committed = await tx.list_swaps_referencing(
            sources, statuses=IN_FLIGHT_SWAP_STATUSES, as_requester=False
        )
        committed_ids = {s.responder_source_id for s in committed}

        fingerprints = {_booking_fingerprint(b) for b in bookings if b.id not in committed_ids}
        fingerprints |= {_week_fingerprint(w) for w in weeks if w.id not in committed_ids}
        return fingerprints

    async def _offered_fingerprints(self, tx: Transaction, swap: SwapRequest) -> set[Fingerprint]:
        source = swap.requester_source
        if isinstance(source, BookingSource):
            booking = await tx.get_booking(source.id)
            if booking is None or booking.status != BookingStatus.CONFIRMED:
                return set()
            return {_booking_fingerprint(booking)}

        bookings = await tx.list_bookings(owner_id=swap.requester_id, statuses=_CONFIRMED_ONLY)
        offered = {_booking_fingerprint(b) for b in bookings}
        week = await tx.get_week(source.id)
        if week is not None:
            offered.add(_week_fingerprint(week))
        return offered

    async def get_owner_swaps(self, owner_id: uuid.UUID, role: SwapRole = "both") -> list[SwapRequest]:
        """Swaps the owner created and/or is the responder of, newest first."""
        async with self.store.transaction() as tx:
            found: dict[uuid.UUID, SwapRequest] = {}
            if role in ("requester", "both"):
                for swap in await tx.list_swaps(requester_id=owner_id):
                    found[swap.id] = swap
            if role in ("responder", "both"):
                bookings = await tx.list_bookings(owner_id=owner_id)
                weeks = await tx.list_weeks(owner_id=owner_id)
                sources: list[SwapSource] = [BookingSource(b.id) for b in bookings]
                sources += [WeekSource(w.id) for w in weeks]
                for swap in await tx.list_swaps_referencing(sources, as_requester=False):
                    found[swap.id] = swap
        return sorted(found.values(), key=lambda s: s.created_at, reverse=True)

"""Store interface shared by the in-memory and the relational implementations.

A :class:`Store` hands out :class:`Transaction` objects through an async
context manager. Everything a service reads and writes for one state
transition goes through a single transaction: leaving the block normally
commits, raising rolls every change back.

Locking contract: ``for_update=True`` reads hold the row until the
transaction ends, so two transactions that lock the same row are serialized.
Both implementations honor it (the in-memory store serializes whole
transactions, which is strictly stronger).
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import TypeVar

from timeshare.domain.enums import (
    BookingStatus,
    CreditRequestStatus,
    SwapStatus,
    WeekStatus,
)
from timeshare.domain.sources import SwapSource
from timeshare.models import (
    Booking,
    NightCredit,
    NightCreditRequest,
    Property,
    SwapRequest,
    User,
    Week,
)

EntityT = TypeVar("EntityT", Booking, NightCredit, NightCreditRequest, Property, SwapRequest, User, Week)


class Transaction(ABC):
    """Unit of work over the engine's tables."""

    # --- writes -----------------------------------------------------------

    @abstractmethod
    async def add(self, entity: EntityT) -> EntityT:
        """Persist a new entity and assign its id.

        Raises:
            DuplicateIdempotencyKey: If a booking with the same
                ``idempotency_key`` already exists.
        """

    # --- single-row reads -------------------------------------------------

    @abstractmethod
    async def get_user(self, user_id: uuid.UUID) -> User | None: ...

    @abstractmethod
    async def get_property(self, property_id: uuid.UUID) -> Property | None: ...

    @abstractmethod
    async def get_week(self, week_id: uuid.UUID, *, for_update: bool = False) -> Week | None: ...

    @abstractmethod
    async def get_booking(self, booking_id: uuid.UUID, *, for_update: bool = False) -> Booking | None: ...

    @abstractmethod
    async def get_booking_by_idempotency_key(self, key: str) -> Booking | None: ...

    @abstractmethod
    async def get_swap(self, swap_id: uuid.UUID, *, for_update: bool = False) -> SwapRequest | None: ...

    @abstractmethod
    async def get_credit(self, credit_id: uuid.UUID, *, for_update: bool = False) -> NightCredit | None: ...

    @abstractmethod
    async def get_credit_request(
        self, request_id: uuid.UUID, *, for_update: bool = False
    ) -> NightCreditRequest | None: ...

    @abstractmethod
    async def get_credit_request_by_payment_intent(
        self, payment_intent_id: str, *, for_update: bool = False
    ) -> NightCreditRequest | None: ...

    # --- queries ----------------------------------------------------------

    @abstractmethod
    async def has_active_staff(self, property_id: uuid.UUID) -> bool:
        """True if at least one active staff user is assigned to the property."""

    @abstractmethod
    async def list_weeks(
        self,
        *,
        owner_id: uuid.UUID | None = None,
        exclude_owner_id: uuid.UUID | None = None,
        exclude_ids: Iterable[uuid.UUID] = (),
        accommodation_type: str | None = None,
        statuses: Iterable[WeekStatus] | None = None,
        property_id: uuid.UUID | None = None,
        limit: int | None = None,
    ) -> list[Week]:
        """Weeks matching every given filter, ordered by ``start_date`` ascending."""

    @abstractmethod
    async def list_bookings(
        self,
        *,
        owner_id: uuid.UUID | None = None,
        statuses: Iterable[BookingStatus] | None = None,
        booking_ids: Iterable[uuid.UUID] | None = None,
    ) -> list[Booking]:
        """Bookings matching every given filter, ordered by ``check_in`` ascending."""

    @abstractmethod
    async def list_swaps(
        self,
        *,
        statuses: Iterable[SwapStatus] | None = None,
        requester_id: uuid.UUID | None = None,
        exclude_requester_id: uuid.UUID | None = None,
        unmatched_only: bool = False,
    ) -> list[SwapRequest]:
        """Swaps matching every given filter, newest first."""

    @abstractmethod
    async def list_swaps_referencing(
        self,
        sources: Iterable[SwapSource],
        *,
        statuses: Iterable[SwapStatus] | None = None,
        as_requester: bool = True,
        as_responder: bool = True,
    ) -> list[SwapRequest]:
        """Swaps whose requester and/or responder slot is one of ``sources``, newest first."""

    @abstractmethod
    async def list_credits(self, owner_id: uuid.UUID) -> list[NightCredit]: ...

    @abstractmethod
    async def list_credit_requests(
        self,
        *,
        owner_id: uuid.UUID | None = None,
        property_id: uuid.UUID | None = None,
        credit_id: uuid.UUID | None = None,
        statuses: Iterable[CreditRequestStatus] | None = None,
    ) -> list[NightCreditRequest]:
        """Requests matching every given filter, oldest first."""

    # --- conflict counts --------------------------------------------------

    @abstractmethod
    async def count_overlapping_bookings(
        self,
        property_id: uuid.UUID,
        start: date,
        end: date,
        statuses: Iterable[BookingStatus],
        exclude_ids: Iterable[uuid.UUID] = (),
    ) -> int:
        """Bookings at the property with ``check_in < end`` and ``check_out > start``."""

    @abstractmethod
    async def count_overlapping_weeks(
        self,
        property_id: uuid.UUID,
        start: date,
        end: date,
        statuses: Iterable[WeekStatus],
        exclude_ids: Iterable[uuid.UUID] = (),
    ) -> int:
        """Weeks at the property with ``start_date < end`` and ``end_date > start``."""

    @abstractmethod
    async def count_property_swaps(
        self,
        property_id: uuid.UUID,
        statuses: Iterable[SwapStatus],
        exclude_ids: Iterable[uuid.UUID] = (),
    ) -> int: ...


class Store(ABC):
    """Factory for transactions."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[Transaction]:
        """Open a transaction; commit on normal exit, roll back on error."""

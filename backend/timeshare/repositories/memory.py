"""In-memory store: one id-keyed arena per table.

Used by the test suite and by ``STORE_BACKEND=memory`` for local demos.
Entities are ordinary (transient) model instances. A single
``asyncio.Lock`` serializes transactions; on rollback every column of every
pre-existing entity is restored in place and newly added entities are
dropped, so callers holding references see the pre-transaction values.
"""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

from timeshare.domain.dates import utcnow
from timeshare.domain.enums import (
    BookingStatus,
    CreditRequestStatus,
    SourceType,
    SwapStatus,
    UserRole,
    WeekStatus,
)
from timeshare.domain.sources import SwapSource
from timeshare.errors import DuplicateIdempotencyKey
from timeshare.models import (
    Booking,
    NightCredit,
    NightCreditRequest,
    Property,
    SwapRequest,
    User,
    Week,
)
from timeshare.repositories.base import EntityT, Store, Transaction

logger = logging.getLogger(__name__)

_TABLES: tuple[type, ...] = (User, Property, Week, Booking, SwapRequest, NightCredit, NightCreditRequest)


def _column_keys(entity: Any) -> list[str]:
    return [attr.key for attr in entity.__mapper__.column_attrs]


def _apply_defaults(entity: Any) -> None:
    """Fill python-side scalar column defaults the way a flush would."""
    for column in entity.__mapper__.columns:
        default = column.default
        if default is None or not default.is_scalar:
            continue
        attr = entity.__mapper__.get_property_by_column(column)
        if getattr(entity, attr.key) is None:
            setattr(entity, attr.key, default.arg)


class InMemoryStore(Store):
    """Arena-with-id-map store."""

    def __init__(self) -> None:
        self.tables: dict[type, dict[uuid.UUID, Any]] = {model: {} for model in _TABLES}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryTransaction"]:
        async with self._lock:
            snapshot = {
                model: {key: (row, {c: getattr(row, c) for c in _column_keys(row)}) for key, row in rows.items()}
                for model, rows in self.tables.items()
            }
            tx = InMemoryTransaction(self)
            try:
                yield tx
            except BaseException:
                self._restore(snapshot)
                raise

    def _restore(self, snapshot: dict[type, dict[uuid.UUID, tuple[Any, dict[str, Any]]]]) -> None:
        for model, rows in snapshot.items():
            restored = {}
            for key, (row, values) in rows.items():
                for column, value in values.items():
                    setattr(row, column, value)
                restored[key] = row
            self.tables[model] = restored
        logger.debug("In-memory transaction rolled back")

    def seed(self, *entities: Any) -> None:
        """Insert fixtures directly, bypassing transactions."""
        for entity in entities:
            _prepare(entity)
            self.tables[type(entity)][entity.id] = entity


def _prepare(entity: Any) -> None:
    if getattr(entity, "id", None) is None:
        entity.id = uuid.uuid4()
    _apply_defaults(entity)
    now = utcnow()
    if entity.created_at is None:
        entity.created_at = now
    if entity.updated_at is None:
        entity.updated_at = now


def _in(value: Any, allowed: Iterable[Any] | None) -> bool:
    return allowed is None or value in allowed


def _overlaps(start: date, end: date, other_start: date, other_end: date) -> bool:
    return other_start < end and other_end > start


class InMemoryTransaction(Transaction):
    """Transaction over an :class:`InMemoryStore`; filters are list comprehensions."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def _rows(self, model: type[EntityT]) -> list[EntityT]:
        return list(self._store.tables[model].values())

    def _get(self, model: type[EntityT], key: uuid.UUID) -> EntityT | None:
        return self._store.tables[model].get(key)

    async def add(self, entity: EntityT) -> EntityT:
        if isinstance(entity, Booking) and entity.idempotency_key is not None:
            if await self.get_booking_by_idempotency_key(entity.idempotency_key) is not None:
                raise DuplicateIdempotencyKey(entity.idempotency_key)
        _prepare(entity)
        self._store.tables[type(entity)][entity.id] = entity
        return entity

    async def get_user(self, user_id: uuid.UUID) -> User | None:
        return self._get(User, user_id)

    async def get_property(self, property_id: uuid.UUID) -> Property | None:
        return self._get(Property, property_id)

    async def get_week(self, week_id: uuid.UUID, *, for_update: bool = False) -> Week | None:
        return self._get(Week, week_id)

    async def get_booking(self, booking_id: uuid.UUID, *, for_update: bool = False) -> Booking | None:
        return self._get(Booking, booking_id)

    async def get_booking_by_idempotency_key(self, key: str) -> Booking | None:
        return next((b for b in self._rows(Booking) if b.idempotency_key == key), None)

    async def get_swap(self, swap_id: uuid.UUID, *, for_update: bool = False) -> SwapRequest | None:
        return self._get(SwapRequest, swap_id)

    async def get_credit(self, credit_id: uuid.UUID, *, for_update: bool = False) -> NightCredit | None:
        return self._get(NightCredit, credit_id)

    async def get_credit_request(
        self, request_id: uuid.UUID, *, for_update: bool = False
    ) -> NightCreditRequest | None:
        return self._get(NightCreditRequest, request_id)

    async def get_credit_request_by_payment_intent(
        self, payment_intent_id: str, *, for_update: bool = False
    ) -> NightCreditRequest | None:
        return next(
            (r for r in self._rows(NightCreditRequest) if r.payment_intent_id == payment_intent_id),
            None,
        )

    async def has_active_staff(self, property_id: uuid.UUID) -> bool:
        return any(
            u.role == UserRole.STAFF and u.is_active and u.property_id == property_id for u in self._rows(User)
        )

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
        excluded = set(exclude_ids)
        weeks = [
            w
            for w in self._rows(Week)
            if (owner_id is None or w.owner_id == owner_id)
            and (exclude_owner_id is None or w.owner_id != exclude_owner_id)
            and w.id not in excluded
            and (accommodation_type is None or w.accommodation_type == accommodation_type)
            and _in(w.status, statuses)
            and (property_id is None or w.property_id == property_id)
        ]
        weeks.sort(key=lambda w: w.start_date)
        return weeks[:limit] if limit is not None else weeks

    async def list_bookings(
        self,
        *,
        owner_id: uuid.UUID | None = None,
        statuses: Iterable[BookingStatus] | None = None,
        booking_ids: Iterable[uuid.UUID] | None = None,
    ) -> list[Booking]:
        bookings = [
            b
            for b in self._rows(Booking)
            if (owner_id is None or b.owner_id == owner_id)
            and _in(b.status, statuses)
            and _in(b.id, booking_ids)
        ]
        bookings.sort(key=lambda b: b.check_in)
        return bookings

    async def list_swaps(
        self,
        *,
        statuses: Iterable[SwapStatus] | None = None,
        requester_id: uuid.UUID | None = None,
        exclude_requester_id: uuid.UUID | None = None,
        unmatched_only: bool = False,
    ) -> list[SwapRequest]:
        swaps = [
            s
            for s in self._rows(SwapRequest)
            if _in(s.status, statuses)
            and (requester_id is None or s.requester_id == requester_id)
            and (exclude_requester_id is None or s.requester_id != exclude_requester_id)
            and (not unmatched_only or s.responder_source_id is None)
        ]
        swaps.sort(key=lambda s: s.created_at, reverse=True)
        return swaps

    async def list_swaps_referencing(
        self,
        sources: Iterable[SwapSource],
        *,
        statuses: Iterable[SwapStatus] | None = None,
        as_requester: bool = True,
        as_responder: bool = True,
    ) -> list[SwapRequest]:
        wanted = {(s.type, s.id) for s in sources}

        def _matches(swap: SwapRequest) -> bool:
            if as_requester and (swap.requester_source_type, swap.requester_source_id) in wanted:
                return True
            if as_responder and swap.responder_source_type is not None:
                return (SourceType(swap.responder_source_type), swap.responder_source_id) in wanted
            return False

        swaps = [s for s in self._rows(SwapRequest) if _in(s.status, statuses) and _matches(s)]
        swaps.sort(key=lambda s: s.created_at, reverse=True)
        return swaps

    async def list_credits(self, owner_id: uuid.UUID) -> list[NightCredit]:
        credits = [c for c in self._rows(NightCredit) if c.owner_id == owner_id]
        credits.sort(key=lambda c: c.expiry_date)
        return credits

    async def list_credit_requests(
        self,
        *,
        owner_id: uuid.UUID | None = None,
        property_id: uuid.UUID | None = None,
        credit_id: uuid.UUID | None = None,
        statuses: Iterable[CreditRequestStatus] | None = None,
    ) -> list[NightCreditRequest]:
        requests = [
            r
            for r in self._rows(NightCreditRequest)
            if (owner_id is None or r.owner_id == owner_id)
            and (property_id is None or r.property_id == property_id)
            and (credit_id is None or r.credit_id == credit_id)
            and _in(r.status, statuses)
        ]
        requests.sort(key=lambda r: r.created_at)
        return requests

    async def count_overlapping_bookings(
        self,
        property_id: uuid.UUID,
        start: date,
        end: date,
        statuses: Iterable[BookingStatus],
        exclude_ids: Iterable[uuid.UUID] = (),
    ) -> int:
        excluded = set(exclude_ids)
        return sum(
            1
            for b in self._rows(Booking)
            if b.property_id == property_id
            and b.id not in excluded
            and _in(b.status, statuses)
            and _overlaps(start, end, b.check_in, b.check_out)
        )

    async def count_overlapping_weeks(
        self,
        property_id: uuid.UUID,
        start: date,
        end: date,
        statuses: Iterable[WeekStatus],
        exclude_ids: Iterable[uuid.UUID] = (),
    ) -> int:
        excluded = set(exclude_ids)
        return sum(
            1
            for w in self._rows(Week)
            if w.property_id == property_id
            and w.id not in excluded
            and _in(w.status, statuses)
            and _overlaps(start, end, w.start_date, w.end_date)
        )

    async def count_property_swaps(
        self,
        property_id: uuid.UUID,
        statuses: Iterable[SwapStatus],
        exclude_ids: Iterable[uuid.UUID] = (),
    ) -> int:
        excluded = set(exclude_ids)
        return sum(
            1
            for s in self._rows(SwapRequest)
            if s.property_id == property_id and s.id not in excluded and _in(s.status, statuses)
        )

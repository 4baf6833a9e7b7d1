"""Relational store on SQLAlchemy's async session.

``for_update=True`` reads issue ``SELECT ... FOR UPDATE`` and refresh the
identity map (``populate_existing``) so the caller always sees the committed
row it now holds the lock on.
"""

import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeshare.domain.enums import (
    BookingStatus,
    CreditRequestStatus,
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


class SqlAlchemyStore(Store):
    """Store backed by an ``async_sessionmaker``; one session per transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlAlchemyTransaction"]:
        async with self._session_factory() as session:
            async with session.begin():
                yield SqlAlchemyTransaction(session)


class SqlAlchemyTransaction(Transaction):
    """Transaction bound to a single :class:`AsyncSession`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _one(self, query: Select[Any], *, for_update: bool = False) -> Any:
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def _all(self, query: Select[Any]) -> list[Any]:
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def _count(self, query: Select[Any]) -> int:
        result = await self.session.execute(query)
        return result.scalar_one()

    async def add(self, entity: EntityT) -> EntityT:
        self.session.add(entity)
        try:
            # SAVEPOINT so a unique violation does not poison the outer transaction
            async with self.session.begin_nested():
                await self.session.flush()
        except IntegrityError as exc:
            key = getattr(entity, "idempotency_key", None)
            if isinstance(entity, Booking) and key is not None and "idempotency_key" in str(exc.orig):
                raise DuplicateIdempotencyKey(key) from exc
            raise
        return entity

    async def get_user(self, user_id: uuid.UUID) -> User | None:
        return await self._one(select(User).where(User.id == user_id))

    async def get_property(self, property_id: uuid.UUID) -> Property | None:
        return await self._one(select(Property).where(Property.id == property_id))

    async def get_week(self, week_id: uuid.UUID, *, for_update: bool = False) -> Week | None:
        return await self._one(select(Week).where(Week.id == week_id), for_update=for_update)

    async def get_booking(self, booking_id: uuid.UUID, *, for_update: bool = False) -> Booking | None:
        return await self._one(select(Booking).where(Booking.id == booking_id), for_update=for_update)

    async def get_booking_by_idempotency_key(self, key: str) -> Booking | None:
        return await self._one(select(Booking).where(Booking.idempotency_key == key))

    async def get_swap(self, swap_id: uuid.UUID, *, for_update: bool = False) -> SwapRequest | None:
        return await self._one(select(SwapRequest).where(SwapRequest.id == swap_id), for_update=for_update)

    async def get_credit(self, credit_id: uuid.UUID, *, for_update: bool = False) -> NightCredit | None:
        return await self._one(select(NightCredit).where(NightCredit.id == credit_id), for_update=for_update)

    async def get_credit_request(
        self, request_id: uuid.UUID, *, for_update: bool = False
    ) -> NightCreditRequest | None:
        return await self._one(
            select(NightCreditRequest).where(NightCreditRequest.id == request_id),
            for_update=for_update,
        )

    async def get_credit_request_by_payment_intent(
        self, payment_intent_id: str, *, for_update: bool = False
    ) -> NightCreditRequest | None:
        return await self._one(
            select(NightCreditRequest).where(NightCreditRequest.payment_intent_id == payment_intent_id),
            for_update=for_update,
        )

    async def has_active_staff(self, property_id: uuid.UUID) -> bool:
        count = await self._count(
            select(func.count())
            .select_from(User)
            .where(
                User.property_id == property_id,
                User.role == UserRole.STAFF,
                User.is_active.is_(True),
            )
        )
        return count > 0

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
        query = select(Week)
        if owner_id is not None:
            query = query.where(Week.owner_id == owner_id)
        if exclude_owner_id is not None:
            query = query.where(Week.owner_id != exclude_owner_id)
        excluded = list(exclude_ids)
        if excluded:
            query = query.where(Week.id.not_in(excluded))
        if accommodation_type is not None:
            query = query.where(Week.accommodation_type == accommodation_type)
        if statuses is not None:
            query = query.where(Week.status.in_(list(statuses)))
        if property_id is not None:
            query = query.where(Week.property_id == property_id)
        query = query.order_by(Week.start_date.asc())
        if limit is not None:
            query = query.limit(limit)
        return await self._all(query)

    async def list_bookings(
        self,
        *,
        owner_id: uuid.UUID | None = None,
        statuses: Iterable[BookingStatus] | None = None,
        booking_ids: Iterable[uuid.UUID] | None = None,
    ) -> list[Booking]:
        query = select(Booking)
        if owner_id is not None:
            query = query.where(Booking.owner_id == owner_id)
        if statuses is not None:
            query = query.where(Booking.status.in_(list(statuses)))
        if booking_ids is not None:
            query = query.where(Booking.id.in_(list(booking_ids)))
        return await self._all(query.order_by(Booking.check_in.asc()))

    async def list_swaps(
        self,
        *,
        statuses: Iterable[SwapStatus] | None = None,
        requester_id: uuid.UUID | None = None,
        exclude_requester_id: uuid.UUID | None = None,
        unmatched_only: bool = False,
    ) -> list[SwapRequest]:
        query = select(SwapRequest)
        if statuses is not None:
            query = query.where(SwapRequest.status.in_(list(statuses)))
        if requester_id is not None:
            query = query.where(SwapRequest.requester_id == requester_id)
        if exclude_requester_id is not None:
            query = query.where(SwapRequest.requester_id != exclude_requester_id)
        if unmatched_only:
            query = query.where(SwapRequest.responder_source_id.is_(None))
        return await self._all(query.order_by(SwapRequest.created_at.desc()))

    async def list_swaps_referencing(
        self,
        sources: Iterable[SwapSource],
        *,
        statuses: Iterable[SwapStatus] | None = None,
        as_requester: bool = True,
        as_responder: bool = True,
    ) -> list[SwapRequest]:
        clauses = []
        for source in sources:
            if as_requester:
                clauses.append(
                    and_(
                        SwapRequest.requester_source_type == source.type,
                        SwapRequest.requester_source_id == source.id,
                    )
                )
            if as_responder:
                clauses.append(
                    and_(
                        SwapRequest.responder_source_type == source.type,
                        SwapRequest.responder_source_id == source.id,
                    )
                )
        if not clauses:
            return []
        query = select(SwapRequest).where(or_(*clauses))
        if statuses is not None:
            query = query.where(SwapRequest.status.in_(list(statuses)))
        return await self._all(query.order_by(SwapRequest.created_at.desc()))

    async def list_credits(self, owner_id: uuid.UUID) -> list[NightCredit]:
        return await self._all(
            select(NightCredit).where(NightCredit.owner_id == owner_id).order_by(NightCredit.expiry_date.asc())
        )

    async def list_credit_requests(
        self,
        *,
        owner_id: uuid.UUID | None = None,
        property_id: uuid.UUID | None = None,
        credit_id: uuid.UUID | None = None,
        statuses: Iterable[CreditRequestStatus] | None = None,
    ) -> list[NightCreditRequest]:
        query = select(NightCreditRequest)
        if owner_id is not None:
            query = query.where(NightCreditRequest.owner_id == owner_id)
        if property_id is not None:
            query = query.where(NightCreditRequest.property_id == property_id)
        if credit_id is not None:
            query = query.where(NightCreditRequest.credit_id == credit_id)
        if statuses is not None:
            query = query.where(NightCreditRequest.status.in_(list(statuses)))
        return await self._all(query.order_by(NightCreditRequest.created_at.asc()))

    async def count_overlapping_bookings(
        self,
        property_id: uuid.UUID,
        start: date,
        end: date,
        statuses: Iterable[BookingStatus],
        exclude_ids: Iterable[uuid.UUID] = (),
    ) -> int:
        query = (
            select(func.count())
            .select_from(Booking)
            .where(
                Booking.property_id == property_id,
                Booking.status.in_(list(statuses)),
                Booking.check_in < end,
                Booking.check_out > start,
            )
        )
        excluded = list(exclude_ids)
        if excluded:
            query = query.where(Booking.id.not_in(excluded))
        return await self._count(query)

    async def count_overlapping_weeks(
        self,
        property_id: uuid.UUID,
        start: date,
        end: date,
        statuses: Iterable[WeekStatus],
        exclude_ids: Iterable[uuid.UUID] = (),
    ) -> int:
        query = (
            select(func.count())
            .select_from(Week)
            .where(
                Week.property_id == property_id,
                Week.status.in_(list(statuses)),
                Week.start_date < end,
                Week.end_date > start,
            )
        )
        excluded = list(exclude_ids)
        if excluded:
            query = query.where(Week.id.not_in(excluded))
        return await self._count(query)

    async def count_property_swaps(
        self,
        property_id: uuid.UUID,
        statuses: Iterable[SwapStatus],
        exclude_ids: Iterable[uuid.UUID] = (),
    ) -> int:
        query = (
            select(func.count())
            .select_from(SwapRequest)
            .where(
                SwapRequest.property_id == property_id,
                SwapRequest.status.in_(list(statuses)),
            )
        )
        excluded = list(exclude_ids)
        if excluded:
            query = query.where(SwapRequest.id.not_in(excluded))
        return await self._count(query)

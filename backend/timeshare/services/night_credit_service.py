"""Night-credit ledger and the booking transaction that spends it.

Spending credits always follows the same shape: lock the credit, re-check
it, book with the PMS, insert the local booking and decrement the balance,
all inside one store transaction. If anything after a confirmed PMS booking
fails, the remote booking is cancelled again (best effort, logged).
"""

import logging
import secrets
import uuid
from datetime import date, datetime, time

from timeshare.billing.gateway import PaymentGateway, PaymentIntent
from timeshare.config import settings
from timeshare.domain.dates import add_months, nights_between, utcnow
from timeshare.domain.enums import (
    IN_FLIGHT_SWAP_STATUSES,
    BookingOrigin,
    BookingStatus,
    CreditPaymentStatus,
    CreditRequestStatus,
    NightCreditStatus,
    UserRole,
    WeekStatus,
)
from timeshare.domain.sources import WeekSource
from timeshare.domain.transitions import ensure_request_transition
from timeshare.errors import (
    Conflict,
    DuplicateIdempotencyKey,
    ExternalFailure,
    Forbidden,
    InsufficientBalance,
    InvalidState,
    NotAvailable,
    NotFound,
    PeakRestricted,
)
from timeshare.models import Booking, NightCredit, NightCreditRequest
from timeshare.pms.base import PmsAdapter, PmsBookingPayload, PmsBookingResult
from timeshare.repositories.base import Store, Transaction
from timeshare.services.conflicts import ensure_available
from timeshare.services.external import call_external
from timeshare.services.idempotency import IdempotencyGuard, IdempotentResult, ensure_key_holder
from timeshare.services.peak_calendar import PeakCalendar
from timeshare.services.pricing import extra_nights_price
from timeshare.services.swap_service import ensure_arbiter

logger = logging.getLogger(__name__)

# keys of staff-reviewed bookings; owners cannot pick keys in this namespace
REQUEST_KEY_PREFIX = "night-credit-request-"


def ensure_credit_usable(credit: NightCredit, nights: int, now: datetime) -> None:
    """Raise unless ``credit`` is active, unexpired and holds ``nights``."""
    if credit.status != NightCreditStatus.ACTIVE:
        raise InvalidState(
            "Night credit is not active",
            credit_id=str(credit.id),
            current_status=credit.status.value,
        )
    if credit.is_expired(now):
        raise InvalidState(
            "Night credit has expired",
            credit_id=str(credit.id),
            expiry_date=credit.expiry_date.isoformat(),
        )
    if credit.remaining_nights < nights:
        raise InsufficientBalance(
            "Not enough nights left on this credit",
            credit_id=str(credit.id),
            remaining_nights=credit.remaining_nights,
            requested_nights=nights,
        )


def debit(credit: NightCredit, nights: int) -> None:
    credit.remaining_nights -= nights
    if credit.remaining_nights == 0:
        credit.status = NightCreditStatus.USED


class NightCreditService:
    def __init__(
        self,
        store: Store,
        peak_calendar: PeakCalendar,
        pms: PmsAdapter,
        payments: PaymentGateway,
        *,
        pms_timeout: float | None = None,
        payment_timeout: float | None = None,
        currency: str | None = None,
        peak_blocks_redemption: bool | None = None,
    ) -> None:
        self.store = store
        self.peak_calendar = peak_calendar
        self.pms = pms
        self.payments = payments
        self.guard = IdempotencyGuard(store)
        self.pms_timeout = pms_timeout or settings.pms_timeout_seconds
        self.payment_timeout = payment_timeout or settings.payment_timeout_seconds
        self.currency = currency or settings.payment_currency
        self.peak_blocks_redemption = (
            settings.peak_blocks_credit_redemption if peak_blocks_redemption is None else peak_blocks_redemption
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _owned_credit(
        self, tx: Transaction, credit_id: uuid.UUID, owner_id: uuid.UUID, *, for_update: bool = False
    ) -> NightCredit:
        credit = await tx.get_credit(credit_id, for_update=for_update)
        if credit is None or credit.owner_id != owner_id:
            raise NotFound("Night credit not found", credit_id=str(credit_id))
        return credit

    async def _lock_request(self, tx: Transaction, request_id: uuid.UUID) -> NightCreditRequest:
        request = await tx.get_credit_request(request_id, for_update=True)
        if request is None:
            raise NotFound("Night credit request not found", request_id=str(request_id))
        return request

    async def _ensure_property(self, tx: Transaction, property_id: uuid.UUID) -> None:
        if await tx.get_property(property_id) is None:
            raise NotFound("Property not found", property_id=str(property_id))

    def _ensure_range(self, check_in: date, check_out: date) -> int:
        nights = nights_between(check_in, check_out)
        if nights <= 0:
            raise InvalidState("check_out must be after check_in")
        if self.peak_blocks_redemption and self.peak_calendar.overlaps_peak(check_in, check_out):
            raise PeakRestricted(
                "Night credits cannot be redeemed during peak periods",
                check_in=check_in.isoformat(),
                check_out=check_out.isoformat(),
            )
        return nights

    async def _book_with_pms(self, payload: PmsBookingPayload) -> PmsBookingResult:
        result = await call_external(
            self.pms.create_booking(payload),
            timeout=self.pms_timeout,
            service="pms",
            operation="create_booking",
        )
        if not result.confirmed:
            logger.warning("PMS returned %s for booking %s", result.status, result.pms_booking_id)
            raise ExternalFailure(
                "PMS did not confirm the booking",
                service="pms",
                operation="create_booking",
                pms_status=result.status,
            )
        return result

    async def _compensate(self, result: PmsBookingResult, reason: str) -> None:
        """Cancel a PMS booking whose local record could not be committed."""
        try:
            await call_external(
                self.pms.cancel_booking(result.pms_booking_id),
                timeout=self.pms_timeout,
                service="pms",
                operation="cancel_booking",
            )
        except ExternalFailure:
            logger.exception(
                "Compensating cancel failed; PMS booking %s has no local record (%s)",
                result.pms_booking_id,
                reason,
            )
            return
        logger.warning("Cancelled PMS booking %s after local failure (%s)", result.pms_booking_id, reason)

    @staticmethod
    def _local_booking(
        result: PmsBookingResult,
        *,
        owner_id: uuid.UUID,
        property_id: uuid.UUID,
        credit_id: uuid.UUID,
        check_in: date,
        check_out: date,
        room_type: str | None,
        idempotency_key: str | None,
    ) -> Booking:
        return Booking(
            property_id=property_id,
            owner_id=owner_id,
            room_type=room_type,
            check_in=check_in,
            check_out=check_out,
            status=BookingStatus.CONFIRMED,
            origin=BookingOrigin.NIGHT_CREDIT,
            guest_token=secrets.token_urlsafe(32),
            pms_booking_id=result.pms_booking_id,
            pms_provider=result.provider,
            payment_reference=result.payment_reference,
            idempotency_key=idempotency_key,
            night_credit_id=credit_id,
        )

    # ------------------------------------------------------------------
    # Credits
    # ------------------------------------------------------------------

    async def list_credits(self, owner_id: uuid.UUID) -> list[NightCredit]:
        async with self.store.transaction() as tx:
            return await tx.list_credits(owner_id)

    async def convert_week(self, owner_id: uuid.UUID, week_id: uuid.UUID) -> NightCredit:
        """Turn an available week into a credit worth its nights.

        The credit expires when the week's ``valid_until`` does, or after the
        configured number of months when the week has none.
        """
        async with self.store.transaction() as tx:
            week = await tx.get_week(week_id, for_update=True)
            if week is None or week.owner_id != owner_id:
                raise NotFound("Week not found", week_id=str(week_id))
            if week.status != WeekStatus.AVAILABLE:
                raise NotAvailable(
                    "Only available weeks can be converted",
                    week_id=str(week_id),
                    current_status=week.status.value,
                )
            active = await tx.list_swaps_referencing([WeekSource(week.id)], statuses=IN_FLIGHT_SWAP_STATUSES)
            if active:
                raise InvalidState(
                    "Week is part of an active swap",
                    week_id=str(week_id),
                    swap_id=str(active[0].id),
                )

            if week.valid_until is not None:
                expiry = datetime.combine(week.valid_until, time.min)
            else:
                expiry = add_months(utcnow(), settings.credit_expiry_months)
            credit = NightCredit(
                owner_id=owner_id,
                original_week_id=week.id,
                total_nights=week.nights,
                remaining_nights=week.nights,
                expiry_date=expiry,
                status=NightCreditStatus.ACTIVE,
            )
            week.status = WeekStatus.CONVERTED
            await tx.add(credit)

        logger.info("Week %s converted into credit %s (%d nights)", week_id, credit.id, credit.total_nights)
        return credit

    # ------------------------------------------------------------------
    # Redemption requests
    # ------------------------------------------------------------------

    async def create_request(
        self,
        owner_id: uuid.UUID,
        credit_id: uuid.UUID,
        property_id: uuid.UUID,
        check_in: date,
        check_out: date,
        nights_requested: int,
        *,
        additional_nights: int = 0,
        room_type: str | None = None,
    ) -> NightCreditRequest:
        """Ask the property's staff to accept a stay paid with credits.

        Extra nights beyond the credit balance are priced up front and must
        be paid before the request can complete.
        """
        if nights_requested < 1:
            raise InvalidState("At least one night must be requested")
        if additional_nights < 0:
            raise InvalidState("additional_nights cannot be negative")
        self._ensure_range(check_in, check_out)

        async with self.store.transaction() as tx:
            credit = await self._owned_credit(tx, credit_id, owner_id, for_update=True)
            ensure_credit_usable(credit, nights_requested, utcnow())
            await self._ensure_property(tx, property_id)
            pending = await tx.list_credit_requests(credit_id=credit_id, statuses={CreditRequestStatus.PENDING})
            if pending:
                raise InvalidState(
                    "A pending request already exists for this credit",
                    request_id=str(pending[0].id),
                )

            request = NightCreditRequest(
                owner_id=owner_id,
                credit_id=credit_id,
                property_id=property_id,
                check_in=check_in,
                check_out=check_out,
                nights_requested=nights_requested,
                room_type=room_type,
                status=CreditRequestStatus.PENDING,
                additional_nights=additional_nights,
                payment_status=CreditPaymentStatus.NOT_REQUIRED,
            )
            if additional_nights > 0:
                pricing = extra_nights_price(additional_nights)
                request.additional_price = pricing.guest_price
                request.additional_commission = pricing.commission
                request.payment_status = CreditPaymentStatus.PENDING
            await tx.add(request)

        logger.info(
            "Night credit request %s created by %s (%d nights + %d paid)",
            request.id,
            owner_id,
            nights_requested,
            additional_nights,
        )
        return request

    async def get_request(self, request_id: uuid.UUID, user_id: uuid.UUID) -> NightCreditRequest:
        async with self.store.transaction() as tx:
            request = await tx.get_credit_request(request_id)
            if request is None:
                raise NotFound("Night credit request not found", request_id=str(request_id))
            if request.owner_id != user_id:
                try:
                    await ensure_arbiter(tx, user_id, request.property_id)
                except Forbidden:
                    raise NotFound("Night credit request not found", request_id=str(request_id)) from None
            return request

    async def list_owner_requests(self, owner_id: uuid.UUID) -> list[NightCreditRequest]:
        async with self.store.transaction() as tx:
            return await tx.list_credit_requests(owner_id=owner_id)

    async def list_property_requests(
        self, staff_id: uuid.UUID, *, statuses: frozenset[CreditRequestStatus] | None = None
    ) -> list[NightCreditRequest]:
        """Requests for the staff member's property (every property for admins)."""
        async with self.store.transaction() as tx:
            user = await tx.get_user(staff_id)
            if user is None or user.role not in (UserRole.STAFF, UserRole.ADMIN):
                raise Forbidden("Only staff can list night credit requests")
            if user.role == UserRole.ADMIN:
                return await tx.list_credit_requests(statuses=statuses)
            if user.property_id is None:
                return []
            return await tx.list_credit_requests(property_id=user.property_id, statuses=statuses)

    async def approve_request(
        self, request_id: uuid.UUID, staff_id: uuid.UUID, notes: str | None = None
    ) -> NightCreditRequest:
        """Approve a pending request; completes it right away when nothing is owed.

        Raises:
            InvalidState: The request is no longer pending.
            Conflict: The dates are taken at the property.
        """
        async with self.store.transaction() as tx:
            request = await self._lock_request(tx, request_id)
            await ensure_arbiter(tx, staff_id, request.property_id)
            request.status = ensure_request_transition(request.status, CreditRequestStatus.APPROVED)
            await ensure_available(tx, request.property_id, request.check_in, request.check_out)
            request.reviewed_by_staff_id = staff_id
            request.review_date = utcnow()
            request.staff_notes = notes
            payment_outstanding = request.payment_outstanding

        logger.info("Night credit request %s approved by staff %s", request_id, staff_id)
        if payment_outstanding:
            return request
        return await self.complete_request(request_id)

    async def reject_request(
        self, request_id: uuid.UUID, staff_id: uuid.UUID, reason: str | None = None
    ) -> NightCreditRequest:
        async with self.store.transaction() as tx:
            request = await self._lock_request(tx, request_id)
            await ensure_arbiter(tx, staff_id, request.property_id)
            request.status = ensure_request_transition(request.status, CreditRequestStatus.REJECTED)
            request.reviewed_by_staff_id = staff_id
            request.review_date = utcnow()
            request.staff_notes = reason

        logger.info("Night credit request %s rejected by staff %s", request_id, staff_id)
        return request

    async def cancel_request(self, request_id: uuid.UUID, owner_id: uuid.UUID) -> NightCreditRequest:
        async with self.store.transaction() as tx:
            request = await self._lock_request(tx, request_id)
            if request.owner_id != owner_id:
                raise NotFound("Night credit request not found", request_id=str(request_id))
            request.status = ensure_request_transition(request.status, CreditRequestStatus.EXPIRED)

        logger.info("Night credit request %s cancelled by owner %s", request_id, owner_id)
        return request

    # ------------------------------------------------------------------
    # Paid extra nights
    # ------------------------------------------------------------------

    def _ensure_awaiting_payment(self, request: NightCreditRequest, owner_id: uuid.UUID) -> None:
        if request.owner_id != owner_id:
            raise NotFound("Night credit request not found", request_id=str(request.id))
        if request.status != CreditRequestStatus.APPROVED:
            raise InvalidState(
                "Only approved requests can be paid",
                current_status=request.status.value,
            )
        if not request.payment_outstanding:
            raise InvalidState(
                "Nothing to pay for this request",
                payment_status=request.payment_status.value,
            )

    async def create_payment_intent(self, request_id: uuid.UUID, owner_id: uuid.UUID) -> PaymentIntent:
        async with self.store.transaction() as tx:
            request = await self._lock_request(tx, request_id)
            self._ensure_awaiting_payment(request, owner_id)
            amount = request.additional_price
            if request.payment_intent_id and request.payment_status == CreditPaymentStatus.PENDING:
                return PaymentIntent(
                    id=request.payment_intent_id, client_secret=None, amount=amount, currency=self.currency
                )

        intent = await call_external(
            self.payments.create_payment_intent(
                amount,
                self.currency,
                {"night_credit_request_id": str(request_id), "owner_id": str(owner_id), "type": "extra_nights"},
            ),
            timeout=self.payment_timeout,
            service="payments",
            operation="create_payment_intent",
        )

        async with self.store.transaction() as tx:
            request = await self._lock_request(tx, request_id)
            self._ensure_awaiting_payment(request, owner_id)
            request.payment_intent_id = intent.id
            request.payment_status = CreditPaymentStatus.PENDING

        logger.info("Payment intent %s created for night credit request %s", intent.id, request_id)
        return intent

    async def confirm_payment(
        self, request_id: uuid.UUID, owner_id: uuid.UUID, payment_intent_id: str
    ) -> NightCreditRequest:
        """Check the payment with the gateway and complete the request on success."""
        async with self.store.transaction() as tx:
            request = await self._lock_request(tx, request_id)
            self._ensure_awaiting_payment(request, owner_id)
            if request.payment_intent_id != payment_intent_id:
                raise InvalidState("Payment intent does not belong to this request")

        confirmation = await call_external(
            self.payments.confirm_payment(payment_intent_id),
            timeout=self.payment_timeout,
            service="payments",
            operation="confirm_payment",
        )
        if not confirmation.success:
            async with self.store.transaction() as tx:
                request = await self._lock_request(tx, request_id)
                request.payment_status = CreditPaymentStatus.FAILED
            raise InvalidState(
                "Payment has not been completed",
                payment_status=confirmation.status or "unknown",
            )
        return await self.handle_payment_success(request_id=request_id)

    async def handle_payment_success(
        self, *, request_id: uuid.UUID | None = None, payment_intent_id: str | None = None
    ) -> NightCreditRequest:
        """Record a successful payment and complete the request.

        Accepts either identifier so it can back both the owner flow and a
        gateway notification. Repeated calls for a completed request are
        no-ops.
        """
        async with self.store.transaction() as tx:
            if request_id is not None:
                request = await self._lock_request(tx, request_id)
            elif payment_intent_id is not None:
                request = await tx.get_credit_request_by_payment_intent(payment_intent_id, for_update=True)
                if request is None:
                    raise NotFound("No request for this payment", payment_intent_id=payment_intent_id)
            else:
                raise ValueError("request_id or payment_intent_id is required")

            if request.status == CreditRequestStatus.COMPLETED:
                return request
            if request.status != CreditRequestStatus.APPROVED:
                raise InvalidState("Request is not approved", current_status=request.status.value)
            request.payment_status = CreditPaymentStatus.PAID
            if payment_intent_id is not None:
                request.payment_intent_id = payment_intent_id
            request_id = request.id

        logger.info("Payment recorded for night credit request %s", request_id)
        return await self.complete_request(request_id)

    # ------------------------------------------------------------------
    # Booking transactions
    # ------------------------------------------------------------------

    async def complete_request(self, request_id: uuid.UUID) -> NightCreditRequest:
        """Book the approved stay with the PMS and spend the credit, atomically."""
        pms_result: PmsBookingResult | None = None
        try:
            async with self.store.transaction() as tx:
                request = await self._lock_request(tx, request_id)
                ensure_request_transition(request.status, CreditRequestStatus.COMPLETED)
                if request.payment_outstanding:
                    raise InvalidState(
                        "Payment for the extra nights is still outstanding",
                        payment_status=request.payment_status.value,
                    )
                credit = await tx.get_credit(request.credit_id, for_update=True)
                if credit is None:
                    raise NotFound("Night credit not found", credit_id=str(request.credit_id))
                ensure_credit_usable(credit, request.nights_requested, utcnow())

                await ensure_available(tx, request.property_id, request.check_in, request.check_out)
                key = f"{REQUEST_KEY_PREFIX}{request.id}"
                if await tx.get_booking_by_idempotency_key(key) is not None:
                    raise Conflict("Idempotency key already used", idempotency_key=key)
                pms_result = await self._book_with_pms(
                    PmsBookingPayload(
                        property_id=request.property_id,
                        check_in=request.check_in,
                        check_out=request.check_out,
                        owner_id=request.owner_id,
                        room_type=request.room_type,
                        idempotency_key=key,
                        metadata={"night_credit_request_id": str(request.id)},
                    )
                )
                booking = await tx.add(
                    self._local_booking(
                        pms_result,
                        owner_id=request.owner_id,
                        property_id=request.property_id,
                        credit_id=credit.id,
                        check_in=request.check_in,
                        check_out=request.check_out,
                        room_type=request.room_type,
                        idempotency_key=key,
                    )
                )
                debit(credit, request.nights_requested)
                request.status = CreditRequestStatus.COMPLETED
                request.booking_id = booking.id
        except Exception as exc:
            if pms_result is not None and pms_result.confirmed:
                await self._compensate(pms_result, f"request {request_id}: {exc.__class__.__name__}")
            raise

        logger.info(
            "Night credit request %s completed: booking %s, credit %s has %d nights left",
            request_id,
            booking.id,
            credit.id,
            credit.remaining_nights,
        )
        return request

    async def use_credits(
        self,
        owner_id: uuid.UUID,
        credit_id: uuid.UUID,
        property_id: uuid.UUID,
        check_in: date,
        check_out: date,
        *,
        room_type: str | None = None,
        idempotency_key: str | None = None,
    ) -> IdempotentResult:
        """Book directly against a credit, without staff review.

        A repeated ``idempotency_key`` returns the booking created the first
        time (``replayed=True``) and changes nothing.
        """
        nights = self._ensure_range(check_in, check_out)
        if idempotency_key is not None and idempotency_key.startswith(REQUEST_KEY_PREFIX):
            raise InvalidState("Idempotency key uses a reserved prefix", idempotency_key=idempotency_key)

        async def operation() -> Booking:
            async with self.store.transaction() as tx:
                credit = await self._owned_credit(tx, credit_id, owner_id)
                ensure_credit_usable(credit, nights, utcnow())
                await self._ensure_property(tx, property_id)

            availability = await call_external(
                self.pms.check_availability(property_id, check_in, check_out, nights),
                timeout=self.pms_timeout,
                service="pms",
                operation="check_availability",
            )
            if not availability.available or availability.available_nights < nights:
                raise Conflict(
                    "The property has no availability for these dates",
                    property_id=str(property_id),
                    available_nights=availability.available_nights,
                    requested_nights=nights,
                    reason=availability.reason,
                )
            return await self._redeem(
                owner_id, credit_id, property_id, check_in, check_out, nights, room_type, idempotency_key
            )

        result = await self.guard.run(idempotency_key, operation, owner_id=owner_id, credit_id=credit_id)
        if not result.replayed:
            logger.info(
                "Owner %s used %d nights of credit %s (booking %s)", owner_id, nights, credit_id, result.value.id
            )
        return result

    async def _redeem(
        self,
        owner_id: uuid.UUID,
        credit_id: uuid.UUID,
        property_id: uuid.UUID,
        check_in: date,
        check_out: date,
        nights: int,
        room_type: str | None,
        idempotency_key: str | None,
    ) -> Booking:
        pms_result: PmsBookingResult | None = None
        try:
            async with self.store.transaction() as tx:
                if idempotency_key is not None:
                    existing = await tx.get_booking_by_idempotency_key(idempotency_key)
                    if existing is not None:
                        ensure_key_holder(existing, idempotency_key, owner_id, credit_id)
                        raise DuplicateIdempotencyKey(idempotency_key)
                credit = await self._owned_credit(tx, credit_id, owner_id, for_update=True)
                ensure_credit_usable(credit, nights, utcnow())

                pms_result = await self._book_with_pms(
                    PmsBookingPayload(
                        property_id=property_id,
                        check_in=check_in,
                        check_out=check_out,
                        owner_id=owner_id,
                        room_type=room_type,
                        idempotency_key=idempotency_key,
                        metadata={"night_credit_id": str(credit_id)},
                    )
                )
                booking = await tx.add(
                    self._local_booking(
                        pms_result,
                        owner_id=owner_id,
                        property_id=property_id,
                        credit_id=credit.id,
                        check_in=check_in,
                        check_out=check_out,
                        room_type=room_type,
                        idempotency_key=idempotency_key,
                    )
                )
                debit(credit, nights)
        except DuplicateIdempotencyKey:
            # the PMS saw the same key, so the winner owns that remote booking
            raise
        except Exception as exc:
            if pms_result is not None and pms_result.confirmed:
                await self._compensate(pms_result, f"credit {credit_id}: {exc.__class__.__name__}")
            raise
        return booking
